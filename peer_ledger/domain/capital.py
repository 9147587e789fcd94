"""Capital ledger: append-only deposits and withdrawals, derived availability"""

from dataclasses import replace
from datetime import datetime

from peer_ledger.domain.exceptions import InsufficientCapital, InvalidInput
from peer_ledger.domain.models import CapitalEntry, LedgerSnapshot, LoanStatus
from peer_ledger.domain.money import Money, total


def total_capital(snapshot: LedgerSnapshot, lender_id: str) -> Money:
    """Running sum of the lender's signed capital entries"""
    return total(entry.amount for entry in snapshot.capital if entry.lender_id == lender_id)


def deployed_principal(snapshot: LedgerSnapshot) -> Money:
    """
    Principal still out on approved loans.

    A loan counts only while its outstanding principal is positive.
    """
    return total(
        loan.outstanding_principal
        for loan in snapshot.loans.values()
        if loan.status == LoanStatus.APPROVED and loan.outstanding_principal.is_positive()
    )


def available_capital(snapshot: LedgerSnapshot, lender_id: str) -> Money:
    """Recomputed on every call from entries and loan state; never cached"""
    return total_capital(snapshot, lender_id) - deployed_principal(snapshot)


def deposit(
    snapshot: LedgerSnapshot,
    entry_id: str,
    lender_id: str,
    amount: Money,
    now: datetime,
) -> LedgerSnapshot:
    if not amount.is_positive():
        raise InvalidInput("Deposit amount must be positive", {"amount": str(amount)})

    entry = CapitalEntry(id=entry_id, lender_id=lender_id, amount=amount, created_at=now)
    return replace(snapshot, capital=snapshot.capital + (entry,))


def withdraw(
    snapshot: LedgerSnapshot,
    entry_id: str,
    lender_id: str,
    amount: Money,
    now: datetime,
) -> LedgerSnapshot:
    """
    Append a negative entry if the amount is covered by available capital.

    Raises:
        InvalidInput: amount is not positive
        InsufficientCapital: amount is above available capital
    """
    if not amount.is_positive():
        raise InvalidInput("Withdrawal amount must be positive", {"amount": str(amount)})

    available = available_capital(snapshot, lender_id)
    if amount > available:
        raise InsufficientCapital(
            "Insufficient available capital",
            {"requested": str(amount), "available": str(available)},
        )

    entry = CapitalEntry(id=entry_id, lender_id=lender_id, amount=-amount, created_at=now)
    return replace(snapshot, capital=snapshot.capital + (entry,))
