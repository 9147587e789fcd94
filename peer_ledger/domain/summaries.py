"""Read models for lender and borrower dashboards"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from peer_ledger.domain.capital import deployed_principal, total_capital
from peer_ledger.domain.models import LedgerSnapshot, Loan, LoanStatus, Role
from peer_ledger.domain.money import Money, total
from peer_ledger.domain.users import ROLE_CAPACITY, count_by_role


@dataclass(frozen=True)
class LenderSummary:
    total_capital: Money
    deployed_principal: Money
    available_capital: Money
    interest_earned: Money
    pending_loans: int
    active_loans: int
    overdue_loans: int


@dataclass(frozen=True)
class BorrowerSummary:
    borrower_id: str
    total_borrowed: Money
    amount_due: Money
    total_paid: Money
    open_loans: int


@dataclass(frozen=True)
class UserCounts:
    lenders: int
    borrowers: int
    max_lenders: int
    max_borrowers: int


def lender_summary(snapshot: LedgerSnapshot, lender_id: str) -> LenderSummary:
    # Approved loans that still owe money; repaid loans keep their last overdue flag
    owing = [loan for loan in snapshot.loans.values() if loan.status == LoanStatus.APPROVED and loan.is_open]
    capital = total_capital(snapshot, lender_id)
    deployed = deployed_principal(snapshot)

    return LenderSummary(
        total_capital=capital,
        deployed_principal=deployed,
        available_capital=capital - deployed,
        interest_earned=total(p.interest_amount for p in snapshot.payments),
        pending_loans=sum(1 for loan in snapshot.loans.values() if loan.status == LoanStatus.PENDING),
        active_loans=len(owing),
        overdue_loans=sum(1 for loan in owing if loan.is_overdue),
    )


def borrower_summary(snapshot: LedgerSnapshot, borrower_id: str) -> BorrowerSummary:
    loans = snapshot.loans_for(borrower_id)
    approved = [loan for loan in loans if loan.status == LoanStatus.APPROVED]

    return BorrowerSummary(
        borrower_id=borrower_id,
        total_borrowed=total(loan.principal for loan in approved),
        amount_due=total(loan.remaining_balance for loan in approved),
        total_paid=total(p.amount for p in snapshot.payments_for(borrower_id)),
        open_loans=sum(1 for loan in loans if loan.is_open),
    )


def user_counts(snapshot: LedgerSnapshot) -> UserCounts:
    counts = count_by_role(snapshot)
    return UserCounts(
        lenders=counts[Role.LENDER],
        borrowers=counts[Role.BORROWER],
        max_lenders=ROLE_CAPACITY[Role.LENDER],
        max_borrowers=ROLE_CAPACITY[Role.BORROWER],
    )


def loan_progress(loan: Loan) -> Decimal:
    """Percent of total_due paid so far, two decimals"""
    if loan.total_due.is_zero():
        return Decimal("0.00")
    percent = Decimal(loan.amount_paid.cents * 100) / Decimal(loan.total_due.cents)
    return percent.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
