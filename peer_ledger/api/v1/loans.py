"""Loan requests, approval decisions and repayments"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from peer_ledger.api.dependencies import get_actor_id, get_engine, get_request_id, run_command
from peer_ledger.api.v1.schemas import (
    BorrowerSummaryResponse,
    CommandResponse,
    LoanDecisionRequest,
    LoanRequest,
    LoanSchema,
    PaymentRequest,
    loan_schema,
    payment_schema,
)
from peer_ledger.domain.commands import DecideLoan, RecordPayment, RequestLoan
from peer_ledger.domain.engine import LedgerEngine
from peer_ledger.domain.exceptions import UserNotFound
from peer_ledger.domain.models import LoanStatus
from peer_ledger.domain.money import Money
from peer_ledger.domain.serialization import changes_to_dict

router = APIRouter()


@router.post("/loans", response_model=CommandResponse, status_code=201)
async def request_loan(
    request_body: LoanRequest,
    request: Request,
    actor_id: Optional[str] = Depends(get_actor_id),
    engine: LedgerEngine = Depends(get_engine),
):
    """
    Request a loan of up to $1000.

    Weekly loans carry 2% interest, monthly loans 6%. A borrower may hold
    one open loan at a time.
    """
    command = RequestLoan(
        actor_id=actor_id,
        principal=Money(request_body.principal_cents),
        schedule=request_body.schedule,
    )
    result = run_command(engine, command, get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.post("/loans/{loan_id}/decision", response_model=CommandResponse)
async def decide_loan(
    loan_id: str,
    request_body: LoanDecisionRequest,
    request: Request,
    actor_id: Optional[str] = Depends(get_actor_id),
    engine: LedgerEngine = Depends(get_engine),
):
    command = DecideLoan(actor_id=actor_id, loan_id=loan_id, approve=request_body.approve)
    result = run_command(engine, command, get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.post("/loans/{loan_id}/payments", response_model=CommandResponse, status_code=201)
async def record_payment(
    loan_id: str,
    request_body: PaymentRequest,
    request: Request,
    actor_id: Optional[str] = Depends(get_actor_id),
    engine: LedgerEngine = Depends(get_engine),
):
    """Pay toward an approved loan; interest is settled before principal"""
    command = RecordPayment(
        actor_id=actor_id,
        loan_id=loan_id,
        amount=Money(request_body.amount_cents),
        method=request_body.method,
    )
    result = run_command(engine, command, get_request_id(request))
    return CommandResponse(version=result.version, changes=changes_to_dict(result.changes))


@router.get("/loans", response_model=List[LoanSchema])
def list_loans(
    status: Optional[LoanStatus] = Query(None, description="Filter by status"),
    borrower_id: Optional[str] = Query(None, description="Filter by borrower"),
    engine: LedgerEngine = Depends(get_engine),
):
    loans = engine.snapshot.loans.values()
    return [
        loan_schema(loan)
        for loan in loans
        if (status is None or loan.status == status)
        and (borrower_id is None or loan.borrower_id == borrower_id)
    ]


@router.get("/borrowers/{borrower_id}/summary", response_model=BorrowerSummaryResponse)
def borrower_summary(borrower_id: str, engine: LedgerEngine = Depends(get_engine)):
    snapshot = engine.snapshot
    try:
        summary = engine.borrower_summary(borrower_id)
    except UserNotFound:
        raise HTTPException(status_code=404, detail="Borrower not found")

    return BorrowerSummaryResponse(
        borrower_id=summary.borrower_id,
        total_borrowed_cents=summary.total_borrowed.cents,
        amount_due_cents=summary.amount_due.cents,
        total_paid_cents=summary.total_paid.cents,
        open_loans=summary.open_loans,
        loans=[loan_schema(loan) for loan in snapshot.loans_for(borrower_id)],
        payments=[payment_schema(p) for p in snapshot.payments_for(borrower_id)],
    )
