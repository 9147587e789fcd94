"""Loan book: request, approval decision, and overdue accrual"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from peer_ledger.domain.capital import available_capital
from peer_ledger.domain.exceptions import (
    DuplicateActiveLoan,
    InsufficientCapital,
    InvalidInput,
    InvalidLoanState,
    LoanLimitExceeded,
    LoanNotFound,
)
from peer_ledger.domain.models import LedgerSnapshot, Loan, LoanStatus, PaymentSchedule, User
from peer_ledger.domain.money import Money
from peer_ledger.utils.date_utils import add_schedule_period

MAX_LOAN_PRINCIPAL = Money(100_000)  # $1000


def get_loan(snapshot: LedgerSnapshot, loan_id: str) -> Loan:
    loan = snapshot.loans.get(loan_id)
    if loan is None:
        raise LoanNotFound(f"Loan '{loan_id}' not found", {"loan_id": loan_id})
    return loan


def open_loan_for(snapshot: LedgerSnapshot, borrower_id: str) -> Optional[Loan]:
    """Borrower's pending loan, or approved loan with a balance still owed"""
    for loan in snapshot.loans.values():
        if loan.borrower_id == borrower_id and loan.is_open:
            return loan
    return None


def request_loan(
    snapshot: LedgerSnapshot,
    loan_id: str,
    borrower: User,
    principal: Money,
    schedule: PaymentSchedule,
    now: datetime,
) -> LedgerSnapshot:
    """
    Create a pending loan.

    total_due is fixed here as principal plus one period of schedule interest.

    Raises:
        InvalidInput: principal is not positive
        LoanLimitExceeded: principal above the $1000 cap
        DuplicateActiveLoan: borrower already has an open loan
    """
    if not principal.is_positive():
        raise InvalidInput("Loan amount must be positive", {"principal": str(principal)})
    if principal > MAX_LOAN_PRINCIPAL:
        raise LoanLimitExceeded(
            f"Maximum loan amount is {MAX_LOAN_PRINCIPAL}",
            {"principal": str(principal), "limit": str(MAX_LOAN_PRINCIPAL)},
        )

    existing = open_loan_for(snapshot, borrower.id)
    if existing is not None:
        raise DuplicateActiveLoan(
            "You already have an active loan", {"loan_id": existing.id, "status": existing.status.value}
        )

    rate = schedule.interest_rate
    loan = Loan(
        id=loan_id,
        borrower_id=borrower.id,
        borrower_name=borrower.name,
        principal=principal,
        interest_rate=rate,
        schedule=schedule,
        status=LoanStatus.PENDING,
        requested_at=now,
        total_due=principal + principal.apply_rate(rate),
    )
    return replace(snapshot, loans={**snapshot.loans, loan.id: loan})


def decide_loan(
    snapshot: LedgerSnapshot,
    loan_id: str,
    lender_id: str,
    approve: bool,
    now: datetime,
) -> LedgerSnapshot:
    """
    Approve or reject a pending loan. The decision is final.

    Approval starts the first repayment period from now.
    """
    loan = get_loan(snapshot, loan_id)
    if loan.status != LoanStatus.PENDING:
        raise InvalidLoanState(
            f"Loan already {loan.status.value}", {"loan_id": loan.id, "status": loan.status.value}
        )

    if not approve:
        decided = replace(loan, status=LoanStatus.REJECTED)
        return replace(snapshot, loans={**snapshot.loans, loan.id: decided})

    available = available_capital(snapshot, lender_id)
    if loan.principal > available:
        raise InsufficientCapital(
            "Insufficient capital to approve loan",
            {"loan_id": loan.id, "principal": str(loan.principal), "available": str(available)},
        )

    decided = replace(
        loan,
        status=LoanStatus.APPROVED,
        approved_at=now,
        due_date=add_schedule_period(now, loan.schedule),
    )
    return replace(snapshot, loans={**snapshot.loans, loan.id: decided})


def mark_overdue(loan: Loan, now: datetime) -> Loan:
    """
    Flag a loan past its due date and apply the one-time overdue bump.

    The bump is schedule-rate interest on the remaining balance. It is not
    re-applied until a payment re-arms the loan for a new period.
    Loans that are not approved, not yet due, already flagged, or fully
    repaid come back unchanged.
    """
    if loan.status != LoanStatus.APPROVED or loan.due_date is None:
        return loan
    if loan.is_overdue or not loan.due_date < now:
        return loan
    if not loan.remaining_balance.is_positive():
        return loan

    if loan.overdue_interest_applied:
        return replace(loan, is_overdue=True)

    bump = loan.remaining_balance.apply_rate(loan.interest_rate)
    return replace(
        loan,
        is_overdue=True,
        total_due=loan.total_due + bump,
        overdue_interest_applied=True,
    )


def mark_overdue_sweep(snapshot: LedgerSnapshot, now: datetime) -> LedgerSnapshot:
    """Run mark_overdue over every loan; returns the same snapshot when nothing changed"""
    changed = {}
    for loan_id, loan in snapshot.loans.items():
        swept = mark_overdue(loan, now)
        if swept is not loan:
            changed[loan_id] = swept

    if not changed:
        return snapshot
    return replace(snapshot, loans={**snapshot.loans, **changed})
