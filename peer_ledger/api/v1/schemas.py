"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from peer_ledger.domain.models import Loan, Payment, PaymentMethod, PaymentSchedule, Role, User
from peer_ledger.domain.summaries import loan_progress


class RegisterUserRequest(BaseModel):
    """Request body for POST /v1/users"""

    name: str = Field(..., min_length=1, max_length=80, description="Display name, unique ignoring case")
    role: Role


class SwitchUserRequest(BaseModel):
    """Request body for POST /v1/session"""

    user_id: str = Field(..., min_length=1)


class CapitalRequest(BaseModel):
    """Request body for POST /v1/capital/deposit and /withdraw"""

    amount_cents: int = Field(..., gt=0, description="Amount in cents")


class LoanRequest(BaseModel):
    """Request body for POST /v1/loans"""

    principal_cents: int = Field(..., gt=0, description="Requested principal in cents")
    schedule: PaymentSchedule


class LoanDecisionRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/decision"""

    approve: bool


class PaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/payments"""

    amount_cents: int = Field(..., gt=0, description="Payment amount in cents")
    method: PaymentMethod


class UserSchema(BaseModel):
    id: str
    name: str
    role: Role
    joined_at: datetime


class LoanSchema(BaseModel):
    id: str
    borrower_id: str
    borrower_name: str
    principal_cents: int
    interest_rate: Decimal
    schedule: PaymentSchedule
    status: str
    requested_at: datetime
    approved_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    total_due_cents: int
    principal_paid_cents: int
    interest_paid_cents: int
    remaining_balance_cents: int
    progress_percent: Decimal
    is_overdue: bool
    overdue_interest_applied: bool


class PaymentSchema(BaseModel):
    id: str
    loan_id: str
    borrower_id: str
    amount_cents: int
    method: PaymentMethod
    paid_at: datetime
    principal_cents: int
    interest_cents: int


class CommandResponse(BaseModel):
    """Outcome of any committed command"""

    version: int
    changes: Dict[str, Any]


class UserCountsSchema(BaseModel):
    lenders: int
    borrowers: int
    max_lenders: int
    max_borrowers: int


class UsersResponse(BaseModel):
    """Response for GET /v1/users"""

    current_user_id: Optional[str] = None
    counts: UserCountsSchema
    users: List[UserSchema]


class LenderSummaryResponse(BaseModel):
    """Response for GET /v1/capital/summary"""

    total_capital_cents: int
    deployed_principal_cents: int
    available_capital_cents: int
    interest_earned_cents: int
    pending_loans: int
    active_loans: int
    overdue_loans: int


class BorrowerSummaryResponse(BaseModel):
    """Response for GET /v1/borrowers/{borrower_id}/summary"""

    borrower_id: str
    total_borrowed_cents: int
    amount_due_cents: int
    total_paid_cents: int
    open_loans: int
    loans: List[LoanSchema]
    payments: List[PaymentSchema]


class HistoryItem(BaseModel):
    """Single committed command"""

    version: int
    command: str
    actor_id: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    created_at: str


class HistoryResponse(BaseModel):
    """Response for GET /v1/history"""

    actor_id: Optional[str] = None
    commands: List[HistoryItem]


def user_schema(user: User) -> UserSchema:
    return UserSchema(id=user.id, name=user.name, role=user.role, joined_at=user.joined_at)


def loan_schema(loan: Loan) -> LoanSchema:
    return LoanSchema(
        id=loan.id,
        borrower_id=loan.borrower_id,
        borrower_name=loan.borrower_name,
        principal_cents=loan.principal.cents,
        interest_rate=loan.interest_rate,
        schedule=loan.schedule,
        status=loan.status.value,
        requested_at=loan.requested_at,
        approved_at=loan.approved_at,
        due_date=loan.due_date,
        total_due_cents=loan.total_due.cents,
        principal_paid_cents=loan.principal_paid.cents,
        interest_paid_cents=loan.interest_paid.cents,
        remaining_balance_cents=loan.remaining_balance.cents,
        progress_percent=loan_progress(loan),
        is_overdue=loan.is_overdue,
        overdue_interest_applied=loan.overdue_interest_applied,
    )


def payment_schema(payment: Payment) -> PaymentSchema:
    return PaymentSchema(
        id=payment.id,
        loan_id=payment.loan_id,
        borrower_id=payment.borrower_id,
        amount_cents=payment.amount.cents,
        method=payment.method,
        paid_at=payment.paid_at,
        principal_cents=payment.principal_amount.cents,
        interest_cents=payment.interest_amount.cents,
    )
