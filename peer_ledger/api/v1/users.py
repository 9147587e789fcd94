"""Member registration and session selection"""

from fastapi import APIRouter, Depends, Request

from peer_ledger.api.dependencies import get_engine, get_request_id, run_command
from peer_ledger.api.v1.schemas import (
    CommandResponse,
    RegisterUserRequest,
    SwitchUserRequest,
    UserCountsSchema,
    UsersResponse,
    user_schema,
)
from peer_ledger.domain.commands import RegisterUser, SwitchUser
from peer_ledger.domain.engine import LedgerEngine
from peer_ledger.domain.serialization import changes_to_dict

router = APIRouter()


@router.post("/users", response_model=CommandResponse, status_code=201)
async def register_user(
    request_body: RegisterUserRequest,
    request: Request,
    engine: LedgerEngine = Depends(get_engine),
):
    """
    Join the lending circle as the lender or one of up to 19 borrowers.

    The new member becomes the session's acting user.
    """
    command = RegisterUser(username=request_body.name, role=request_body.role)
    result = run_command(engine, command, get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.post("/session", response_model=CommandResponse)
async def switch_user(
    request_body: SwitchUserRequest,
    request: Request,
    engine: LedgerEngine = Depends(get_engine),
):
    """Select which registered member acts when no X-User-Id header is sent"""
    result = run_command(engine, SwitchUser(user_id=request_body.user_id), get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.get("/users", response_model=UsersResponse)
def list_users(engine: LedgerEngine = Depends(get_engine)):
    snapshot = engine.snapshot
    counts = engine.user_counts()
    return UsersResponse(
        current_user_id=snapshot.current_user_id,
        counts=UserCountsSchema(
            lenders=counts.lenders,
            borrowers=counts.borrowers,
            max_lenders=counts.max_lenders,
            max_borrowers=counts.max_borrowers,
        ),
        users=[user_schema(user) for user in snapshot.users],
    )
