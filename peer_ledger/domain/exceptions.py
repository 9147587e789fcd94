"""Domain-specific exceptions"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for domain layer. Rejected commands leave the ledger unchanged."""

    code = "ledger_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidInput(LedgerError):
    """Amount or name failed basic validation"""

    code = "invalid_input"


class DuplicateName(LedgerError):
    """Display name already taken (case-insensitive)"""

    code = "duplicate_name"


class RoleCapacityExceeded(LedgerError):
    """Lender or borrower seats are all taken"""

    code = "role_capacity_exceeded"


class LoanLimitExceeded(LedgerError):
    """Requested principal is above the per-loan cap"""

    code = "loan_limit_exceeded"


class DuplicateActiveLoan(LedgerError):
    """Borrower already has a pending or unpaid approved loan"""

    code = "duplicate_active_loan"


class InsufficientCapital(LedgerError):
    """Withdrawal or approval exceeds available capital"""

    code = "insufficient_capital"


class InvalidLoanState(LedgerError):
    """Loan is not in a state that allows the operation"""

    code = "invalid_loan_state"


class ExceedsBalance(LedgerError):
    """Payment is larger than the remaining balance"""

    code = "exceeds_balance"


class Unauthorized(LedgerError):
    """Acting user lacks the role or ownership for the command"""

    code = "unauthorized"


class UserNotFound(LedgerError):
    """No registered user with the given id"""

    code = "user_not_found"


class LoanNotFound(LedgerError):
    """No loan with the given id"""

    code = "loan_not_found"
