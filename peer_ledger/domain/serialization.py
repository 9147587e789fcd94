"""Plain JSON-safe records for snapshots and change sets"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from peer_ledger.domain.models import (
    CapitalEntry,
    LedgerSnapshot,
    Loan,
    LoanStatus,
    Payment,
    PaymentMethod,
    PaymentSchedule,
    Role,
    User,
)
from peer_ledger.domain.money import Money

SCHEMA_VERSION = 1


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


def user_to_record(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "role": user.role.value,
        "joined_at": _dt(user.joined_at),
    }


def user_from_record(data: Dict[str, Any]) -> User:
    return User(
        id=data["id"],
        name=data["name"],
        role=Role(data["role"]),
        joined_at=_parse_dt(data["joined_at"]),
    )


def capital_to_record(entry: CapitalEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "lender_id": entry.lender_id,
        "amount_cents": entry.amount.cents,
        "created_at": _dt(entry.created_at),
    }


def capital_from_record(data: Dict[str, Any]) -> CapitalEntry:
    return CapitalEntry(
        id=data["id"],
        lender_id=data["lender_id"],
        amount=Money(data["amount_cents"]),
        created_at=_parse_dt(data["created_at"]),
    )


def loan_to_record(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "borrower_id": loan.borrower_id,
        "borrower_name": loan.borrower_name,
        "principal_cents": loan.principal.cents,
        "interest_rate": str(loan.interest_rate),
        "schedule": loan.schedule.value,
        "status": loan.status.value,
        "requested_at": _dt(loan.requested_at),
        "approved_at": _dt(loan.approved_at),
        "due_date": _dt(loan.due_date),
        "total_due_cents": loan.total_due.cents,
        "principal_paid_cents": loan.principal_paid.cents,
        "interest_paid_cents": loan.interest_paid.cents,
        "is_overdue": loan.is_overdue,
        "overdue_interest_applied": loan.overdue_interest_applied,
    }


def loan_from_record(data: Dict[str, Any]) -> Loan:
    return Loan(
        id=data["id"],
        borrower_id=data["borrower_id"],
        borrower_name=data["borrower_name"],
        principal=Money(data["principal_cents"]),
        interest_rate=Decimal(data["interest_rate"]),
        schedule=PaymentSchedule(data["schedule"]),
        status=LoanStatus(data["status"]),
        requested_at=_parse_dt(data["requested_at"]),
        approved_at=_parse_dt(data.get("approved_at")),
        due_date=_parse_dt(data.get("due_date")),
        total_due=Money(data["total_due_cents"]),
        principal_paid=Money(data.get("principal_paid_cents", 0)),
        interest_paid=Money(data.get("interest_paid_cents", 0)),
        is_overdue=data.get("is_overdue", False),
        overdue_interest_applied=data.get("overdue_interest_applied", False),
    )


def payment_to_record(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "loan_id": payment.loan_id,
        "borrower_id": payment.borrower_id,
        "amount_cents": payment.amount.cents,
        "method": payment.method.value,
        "paid_at": _dt(payment.paid_at),
        "principal_cents": payment.principal_amount.cents,
        "interest_cents": payment.interest_amount.cents,
    }


def payment_from_record(data: Dict[str, Any]) -> Payment:
    return Payment(
        id=data["id"],
        loan_id=data["loan_id"],
        borrower_id=data["borrower_id"],
        amount=Money(data["amount_cents"]),
        method=PaymentMethod(data["method"]),
        paid_at=_parse_dt(data["paid_at"]),
        principal_amount=Money(data["principal_cents"]),
        interest_amount=Money(data["interest_cents"]),
    )


ENTITY_ENCODERS = {
    "users": user_to_record,
    "capital": capital_to_record,
    "loans": loan_to_record,
    "payments": payment_to_record,
}


def snapshot_to_dict(snapshot: LedgerSnapshot) -> Dict[str, Any]:
    """
    Serialize a snapshot to plain dicts and lists.

    Only stored state goes out; available capital and other derived values
    are recomputed on load.
    """
    return {
        "schema_version": SCHEMA_VERSION,
        "users": [user_to_record(u) for u in snapshot.users],
        "capital": [capital_to_record(c) for c in snapshot.capital],
        "loans": [loan_to_record(loan) for loan in snapshot.loans.values()],
        "payments": [payment_to_record(p) for p in snapshot.payments],
        "current_user_id": snapshot.current_user_id,
    }


def snapshot_from_dict(data: Dict[str, Any]) -> LedgerSnapshot:
    loans = [loan_from_record(item) for item in data.get("loans", [])]
    return LedgerSnapshot(
        users=tuple(user_from_record(item) for item in data.get("users", [])),
        capital=tuple(capital_from_record(item) for item in data.get("capital", [])),
        loans={loan.id: loan for loan in loans},
        payments=tuple(payment_from_record(item) for item in data.get("payments", [])),
        current_user_id=data.get("current_user_id"),
    )


def changes_to_dict(changes) -> Dict[str, Any]:
    """Encode a ChangeSet; deleted entities are sent as ids only"""
    out: Dict[str, Any] = {}
    for kind, encode in ENTITY_ENCODERS.items():
        delta = getattr(changes, kind)
        if not delta:
            continue
        out[kind] = {
            "inserted": [encode(entity) for entity in delta.inserted],
            "updated": [encode(entity) for entity in delta.updated],
            "deleted": [entity.id for entity in delta.deleted],
        }
    if changes.current_user_changed:
        out["current_user_changed"] = True
    return out
