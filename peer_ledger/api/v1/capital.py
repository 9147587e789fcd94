"""Lender capital deposits, withdrawals and pool summary"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from peer_ledger.api.dependencies import get_actor_id, get_engine, get_request_id, run_command
from peer_ledger.api.v1.schemas import CapitalRequest, CommandResponse, LenderSummaryResponse
from peer_ledger.domain.commands import DepositCapital, WithdrawCapital
from peer_ledger.domain.engine import LedgerEngine
from peer_ledger.domain.money import Money
from peer_ledger.domain.serialization import changes_to_dict

router = APIRouter()


@router.post("/capital/deposit", response_model=CommandResponse)
async def deposit_capital(
    request_body: CapitalRequest,
    request: Request,
    actor_id: Optional[str] = Depends(get_actor_id),
    engine: LedgerEngine = Depends(get_engine),
):
    command = DepositCapital(actor_id=actor_id, amount=Money(request_body.amount_cents))
    result = run_command(engine, command, get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.post("/capital/withdraw", response_model=CommandResponse)
async def withdraw_capital(
    request_body: CapitalRequest,
    request: Request,
    actor_id: Optional[str] = Depends(get_actor_id),
    engine: LedgerEngine = Depends(get_engine),
):
    """
    Withdraw undeployed capital.

    Fails with 409 insufficient_capital when the amount is above what is not
    tied up in outstanding loan principal.
    """
    command = WithdrawCapital(actor_id=actor_id, amount=Money(request_body.amount_cents))
    result = run_command(engine, command, get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.get("/capital/summary", response_model=LenderSummaryResponse)
def capital_summary(engine: LedgerEngine = Depends(get_engine)):
    summary = engine.lender_summary()
    return LenderSummaryResponse(
        total_capital_cents=summary.total_capital.cents,
        deployed_principal_cents=summary.deployed_principal.cents,
        available_capital_cents=summary.available_capital.cents,
        interest_earned_cents=summary.interest_earned.cents,
        pending_loans=summary.pending_loans,
        active_loans=summary.active_loans,
        overdue_loans=summary.overdue_loans,
    )
