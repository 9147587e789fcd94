"""Payment allocation: interest first, remainder to principal"""

from dataclasses import dataclass, replace
from datetime import datetime

from peer_ledger.domain.exceptions import ExceedsBalance, InvalidInput, InvalidLoanState, Unauthorized
from peer_ledger.domain.loans import get_loan
from peer_ledger.domain.models import LedgerSnapshot, Loan, LoanStatus, Payment, PaymentMethod
from peer_ledger.domain.money import Money
from peer_ledger.utils.date_utils import add_schedule_period


@dataclass(frozen=True)
class Allocation:
    interest: Money
    principal: Money


def allocate_payment(loan: Loan, amount: Money) -> Allocation:
    """
    Split a payment between outstanding interest and principal.

    Interest owed is everything in total_due above principal (schedule
    interest plus overdue bumps) minus interest already paid. Principal takes
    the rest, so the two parts always add back to the amount exactly.

    Example:
        $318 due on $300 principal, nothing paid, $150 payment
        interest = min(150, 18) = 18, principal = 132
    """
    interest = min(amount, max(loan.outstanding_interest, Money(0)))
    return Allocation(interest=interest, principal=amount - interest)


def record_payment(
    snapshot: LedgerSnapshot,
    payment_id: str,
    loan_id: str,
    payer_id: str,
    amount: Money,
    method: PaymentMethod,
    now: datetime,
) -> LedgerSnapshot:
    """
    Apply a borrower payment to their approved loan.

    A payment that leaves a balance starts a new period: due date moves one
    schedule period from now and the overdue flags are cleared, which re-arms
    the overdue bump. A payment that clears the balance leaves the loan
    approved with nothing owed.

    Raises:
        InvalidInput: amount is not positive
        Unauthorized: payer does not own the loan
        InvalidLoanState: loan is not approved or already fully repaid
        ExceedsBalance: amount is above the remaining balance
    """
    if not amount.is_positive():
        raise InvalidInput("Payment amount must be positive", {"amount": str(amount)})

    loan = get_loan(snapshot, loan_id)
    if loan.borrower_id != payer_id:
        raise Unauthorized("Only the loan's borrower can pay it", {"loan_id": loan.id})
    if loan.status != LoanStatus.APPROVED:
        raise InvalidLoanState(
            f"Cannot pay a {loan.status.value} loan", {"loan_id": loan.id, "status": loan.status.value}
        )
    if loan.is_fully_paid:
        raise InvalidLoanState("Loan is already fully repaid", {"loan_id": loan.id})

    remaining = loan.remaining_balance
    if amount > remaining:
        raise ExceedsBalance(
            "Payment amount exceeds remaining balance",
            {"amount": str(amount), "remaining": str(remaining)},
        )

    split = allocate_payment(loan, amount)
    payment = Payment(
        id=payment_id,
        loan_id=loan.id,
        borrower_id=loan.borrower_id,
        amount=amount,
        method=method,
        paid_at=now,
        principal_amount=split.principal,
        interest_amount=split.interest,
    )

    updated = replace(
        loan,
        principal_paid=loan.principal_paid + split.principal,
        interest_paid=loan.interest_paid + split.interest,
    )
    if updated.remaining_balance.is_positive():
        updated = replace(
            updated,
            due_date=add_schedule_period(now, loan.schedule),
            is_overdue=False,
            overdue_interest_applied=False,
        )

    return replace(
        snapshot,
        loans={**snapshot.loans, loan.id: updated},
        payments=snapshot.payments + (payment,),
    )
