"""Data access layer for ledger snapshots and the command journal"""

from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from peer_ledger.domain.engine import CommandResult
from peer_ledger.domain.models import LedgerSnapshot
from peer_ledger.domain.serialization import changes_to_dict, snapshot_from_dict, snapshot_to_dict
from peer_ledger.infrastructure.database.models import CommandJournalRecord, LedgerStateRecord


class SnapshotRepository:
    """Repository for the serialized ledger snapshot"""

    def __init__(self, db: Session):
        self.db = db

    def load(self, ledger_key: str) -> Optional[Tuple[LedgerSnapshot, int]]:
        """Stored snapshot and version, or None for a fresh ledger"""
        record = self.db.get(LedgerStateRecord, ledger_key)
        if record is None:
            return None
        return snapshot_from_dict(record.payload), record.version

    def save(self, ledger_key: str, snapshot: LedgerSnapshot, version: int) -> LedgerStateRecord:
        record = self.db.get(LedgerStateRecord, ledger_key)
        if record is None:
            record = LedgerStateRecord(ledger_key=ledger_key)
            self.db.add(record)
        record.payload = snapshot_to_dict(snapshot)
        record.version = version
        self.db.flush()
        return record


class JournalRepository:
    """Repository for committed command history"""

    def __init__(self, db: Session):
        self.db = db

    def append(self, ledger_key: str, result: CommandResult) -> CommandJournalRecord:
        record = CommandJournalRecord(
            ledger_key=ledger_key,
            version=result.version,
            command=result.command.name,
            actor_id=result.command.actor_id or result.snapshot.current_user_id,
            changes=changes_to_dict(result.changes),
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get_recent(self, ledger_key: str, actor_id: Optional[str] = None, limit: int = 20) -> List[CommandJournalRecord]:
        """Fetch most recent journal entries, newest first"""
        query = self.db.query(CommandJournalRecord).filter(CommandJournalRecord.ledger_key == ledger_key)
        if actor_id is not None:
            query = query.filter(CommandJournalRecord.actor_id == actor_id)
        return query.order_by(CommandJournalRecord.version.desc()).limit(limit).all()


class SnapshotPersister:
    """Engine listener writing each committed snapshot and journal row in one transaction"""

    def __init__(self, session_factory: Callable[[], Session], ledger_key: str):
        self.session_factory = session_factory
        self.ledger_key = ledger_key

    def __call__(self, result: CommandResult) -> None:
        db = self.session_factory()
        try:
            SnapshotRepository(db).save(self.ledger_key, result.snapshot, result.version)
            JournalRepository(db).append(self.ledger_key, result)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def hydrate(self) -> Optional[Tuple[LedgerSnapshot, int]]:
        db = self.session_factory()
        try:
            return SnapshotRepository(db).load(self.ledger_key)
        finally:
            db.close()
