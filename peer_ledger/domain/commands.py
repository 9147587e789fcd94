"""Command records accepted by the ledger engine"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from peer_ledger.domain.models import PaymentMethod, PaymentSchedule, Role
from peer_ledger.domain.money import Money


@dataclass(frozen=True)
class Command:
    """Base command. actor_id overrides the session's current user when set."""

    actor_id: Optional[str] = None

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class RegisterUser(Command):
    username: str = ""
    role: Role = Role.BORROWER


@dataclass(frozen=True)
class SwitchUser(Command):
    user_id: str = ""


@dataclass(frozen=True)
class DepositCapital(Command):
    amount: Money = Money(0)


@dataclass(frozen=True)
class WithdrawCapital(Command):
    amount: Money = Money(0)


@dataclass(frozen=True)
class RequestLoan(Command):
    principal: Money = Money(0)
    schedule: PaymentSchedule = PaymentSchedule.MONTHLY


@dataclass(frozen=True)
class DecideLoan(Command):
    loan_id: str = ""
    approve: bool = True


@dataclass(frozen=True)
class RecordPayment(Command):
    loan_id: str = ""
    amount: Money = Money(0)
    method: PaymentMethod = PaymentMethod.CASH


@dataclass(frozen=True)
class SystemReset(Command):
    pass


@dataclass(frozen=True)
class OverdueSweep(Command):
    """Issued by the scheduler only"""

    now: Optional[datetime] = None
