"""Whole-ledger endpoints: snapshot, reset and command history"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from peer_ledger.api.dependencies import get_actor_id, get_engine, get_request_id, run_command
from peer_ledger.api.v1.schemas import CommandResponse, HistoryItem, HistoryResponse
from peer_ledger.config import settings
from peer_ledger.domain.commands import SystemReset
from peer_ledger.domain.engine import LedgerEngine
from peer_ledger.domain.serialization import changes_to_dict, snapshot_to_dict
from peer_ledger.infrastructure.database.repositories import JournalRepository
from peer_ledger.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/snapshot")
def get_snapshot(engine: LedgerEngine = Depends(get_engine)) -> Dict[str, Any]:
    """Full committed state as plain records, plus the commit version"""
    snapshot = engine.snapshot
    return {"version": engine.version, "snapshot": snapshot_to_dict(snapshot)}


@router.post("/reset", response_model=CommandResponse)
async def system_reset(
    request: Request,
    actor_id: Optional[str] = Depends(get_actor_id),
    engine: LedgerEngine = Depends(get_engine),
):
    """
    Discard all capital, loans and payments. Lender only.

    Every registered member is kept.
    """
    result = run_command(engine, SystemReset(actor_id=actor_id), get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.get("/history", response_model=HistoryResponse)
def get_history(
    actor_id: Optional[str] = Query(None, description="Only commands by this user"),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """
    Retrieve recently committed commands, newest first.

    Returns:
        Journal entries with the entity changes each command made
    """
    journal = JournalRepository(db)
    entries = journal.get_recent(settings.ledger_key, actor_id=actor_id, limit=limit)

    return HistoryResponse(
        actor_id=actor_id,
        commands=[
            HistoryItem(
                version=entry.version,
                command=entry.command,
                actor_id=entry.actor_id,
                changes=entry.changes,
                created_at=entry.created_at.isoformat(),
            )
            for entry in entries
        ],
    )
