"""Domain models - immutable dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from peer_ledger.domain.money import Money


class Role(str, Enum):
    LENDER = "lender"
    BORROWER = "borrower"


class LoanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentSchedule(str, Enum):
    """Loan term; fixes both the interest rate and the due-date cadence"""

    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def interest_rate(self) -> Decimal:
        return SCHEDULE_RATES[self]


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK = "bank"
    CARD = "card"
    MOBILE = "mobile"


SCHEDULE_RATES: Dict[PaymentSchedule, Decimal] = {
    PaymentSchedule.WEEKLY: Decimal("0.02"),
    PaymentSchedule.MONTHLY: Decimal("0.06"),
}


@dataclass(frozen=True)
class User:
    """Registered member of the lending circle"""

    id: str
    name: str
    role: Role
    joined_at: datetime


@dataclass(frozen=True)
class CapitalEntry:
    """Signed capital movement: positive deposit, negative withdrawal"""

    id: str
    lender_id: str
    amount: Money
    created_at: datetime


@dataclass(frozen=True)
class Loan:
    """Loan request and its repayment state"""

    id: str
    borrower_id: str
    borrower_name: str
    principal: Money
    interest_rate: Decimal
    schedule: PaymentSchedule
    status: LoanStatus
    requested_at: datetime
    total_due: Money
    approved_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    principal_paid: Money = Money(0)
    interest_paid: Money = Money(0)
    is_overdue: bool = False
    overdue_interest_applied: bool = False

    @property
    def amount_paid(self) -> Money:
        return self.principal_paid + self.interest_paid

    @property
    def remaining_balance(self) -> Money:
        return self.total_due - self.amount_paid

    @property
    def outstanding_principal(self) -> Money:
        return self.principal - self.principal_paid

    @property
    def outstanding_interest(self) -> Money:
        # Everything above principal in total_due is interest: base schedule
        # interest plus any overdue bumps.
        return self.total_due - self.principal - self.interest_paid

    @property
    def is_fully_paid(self) -> bool:
        return self.status == LoanStatus.APPROVED and self.remaining_balance.is_zero()

    @property
    def is_open(self) -> bool:
        """Pending, or approved with a balance still owed"""
        if self.status == LoanStatus.PENDING:
            return True
        return self.status == LoanStatus.APPROVED and self.remaining_balance.is_positive()


@dataclass(frozen=True)
class Payment:
    """Repayment against an approved loan, split into interest and principal"""

    id: str
    loan_id: str
    borrower_id: str
    amount: Money
    method: PaymentMethod
    paid_at: datetime
    principal_amount: Money
    interest_amount: Money


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Complete ledger state at one committed version.

    Collections are read-only (tuples and a mapping proxy over loans);
    transitions build a new snapshot.
    Derived values (available capital, summaries) are never stored here.
    """

    users: Tuple[User, ...] = ()
    capital: Tuple[CapitalEntry, ...] = ()
    loans: Mapping[str, Loan] = field(default_factory=dict)
    payments: Tuple[Payment, ...] = ()
    current_user_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "loans", MappingProxyType(dict(self.loans)))

    def get_user(self, user_id: str) -> Optional[User]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    @property
    def lender(self) -> Optional[User]:
        for user in self.users:
            if user.role == Role.LENDER:
                return user
        return None

    @property
    def current_user(self) -> Optional[User]:
        if self.current_user_id is None:
            return None
        return self.get_user(self.current_user_id)

    def loans_for(self, borrower_id: str) -> Tuple[Loan, ...]:
        return tuple(loan for loan in self.loans.values() if loan.borrower_id == borrower_id)

    def payments_for(self, borrower_id: str) -> Tuple[Payment, ...]:
        return tuple(p for p in self.payments if p.borrower_id == borrower_id)
