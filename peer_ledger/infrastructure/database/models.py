"""SQLAlchemy ORM models for the snapshot store and command journal"""

import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class LedgerStateRecord(Base):
    """Latest serialized snapshot for a ledger"""

    __tablename__ = "ledger_state"

    ledger_key = Column(String(64), primary_key=True)
    version = Column(Integer, nullable=False, default=0)
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class CommandJournalRecord(Base):
    """One row per committed command"""

    __tablename__ = "command_journal"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ledger_key = Column(String(64), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    command = Column(Text, nullable=False)
    actor_id = Column(Text, nullable=True, index=True)
    changes = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
