"""Dependency injection for FastAPI endpoints"""

import time
from typing import Optional

from fastapi import Header, HTTPException, Request

from peer_ledger.domain.commands import Command
from peer_ledger.domain.engine import CommandResult, LedgerEngine
from peer_ledger.domain.exceptions import InvalidInput, LedgerError, LoanNotFound, Unauthorized, UserNotFound
from peer_ledger.infrastructure.observability.logging import log_command
from peer_ledger.infrastructure.observability.metrics import record_rejection

ERROR_STATUS = {
    Unauthorized: 403,
    UserNotFound: 404,
    LoanNotFound: 404,
    InvalidInput: 422,
}


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_engine(request: Request) -> LedgerEngine:
    """Provide the app's ledger engine"""
    return request.app.state.engine


def get_actor_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Acting user from the X-User-Id header; None falls back to the session user"""
    return x_user_id


def status_for(error: LedgerError) -> int:
    # Remaining domain rejections are state conflicts
    return ERROR_STATUS.get(type(error), 409)


def run_command(engine: LedgerEngine, command: Command, request_id: str) -> CommandResult:
    """Execute a command and translate domain rejections into HTTP errors"""
    start_time = time.time()
    try:
        result = engine.execute(command)
    except LedgerError as e:
        record_rejection(command.name)
        log_command(
            request_id,
            command.name,
            command.actor_id,
            "rejected",
            (time.time() - start_time) * 1000,
            error_code=e.code,
        )
        raise HTTPException(
            status_code=status_for(e),
            detail={"code": e.code, "message": e.message, "details": e.details},
        )

    log_command(
        request_id,
        command.name,
        command.actor_id,
        "committed" if not result.changes.is_empty else "noop",
        (time.time() - start_time) * 1000,
        version=result.version,
    )
    return result
