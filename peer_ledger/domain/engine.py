"""Ledger engine - the single writer over users, capital, loans and payments"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from peer_ledger.domain import capital, loans, payments, summaries, users
from peer_ledger.domain.commands import (
    Command,
    DecideLoan,
    DepositCapital,
    OverdueSweep,
    RecordPayment,
    RegisterUser,
    RequestLoan,
    SwitchUser,
    SystemReset,
    WithdrawCapital,
)
from peer_ledger.domain.exceptions import LedgerError, UserNotFound
from peer_ledger.domain.models import LedgerSnapshot, Role
from peer_ledger.domain.money import Money
from peer_ledger.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

IdFactory = Callable[[str], str]
Clock = Callable[[], datetime]


def uuid_ids(kind: str) -> str:
    return f"{kind}_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class EntityChanges:
    inserted: Tuple = ()
    updated: Tuple = ()
    deleted: Tuple = ()

    def __bool__(self) -> bool:
        return bool(self.inserted or self.updated or self.deleted)


@dataclass(frozen=True)
class ChangeSet:
    """Entity-level delta between two committed snapshots"""

    users: EntityChanges = field(default_factory=EntityChanges)
    capital: EntityChanges = field(default_factory=EntityChanges)
    loans: EntityChanges = field(default_factory=EntityChanges)
    payments: EntityChanges = field(default_factory=EntityChanges)
    current_user_changed: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.users or self.capital or self.loans or self.payments or self.current_user_changed)


@dataclass(frozen=True)
class CommandResult:
    command: Command
    version: int
    snapshot: LedgerSnapshot
    changes: ChangeSet
    committed_at: datetime


def _diff(before, after) -> EntityChanges:
    old = {entity.id: entity for entity in before}
    new = {entity.id: entity for entity in after}
    return EntityChanges(
        inserted=tuple(entity for key, entity in new.items() if key not in old),
        updated=tuple(entity for key, entity in new.items() if key in old and old[key] != entity),
        deleted=tuple(entity for key, entity in old.items() if key not in new),
    )


def diff_snapshots(before: LedgerSnapshot, after: LedgerSnapshot) -> ChangeSet:
    if before is after:
        return ChangeSet()
    return ChangeSet(
        users=_diff(before.users, after.users),
        capital=_diff(before.capital, after.capital),
        loans=_diff(before.loans.values(), after.loans.values()),
        payments=_diff(before.payments, after.payments),
        current_user_changed=before.current_user_id != after.current_user_id,
    )


class LedgerEngine:
    """
    Aggregate root and serialization point for every ledger mutation.

    Commands run one at a time under a lock. Each handler is a pure function
    of the current snapshot that either returns a new snapshot or raises a
    LedgerError; the snapshot is swapped only on success, so a rejected
    command leaves nothing behind. Handlers do no I/O.

    Committed results go to subscribers while the lock is still held, so
    subscribers see commits strictly in version order and finish before the
    next command starts. The snapshot store relies on this to journal rows in
    version order; a slow subscriber delays the next command.
    """

    def __init__(
        self,
        snapshot: Optional[LedgerSnapshot] = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = uuid_ids,
    ):
        self._snapshot = snapshot or LedgerSnapshot()
        self._version = 0
        self._clock = clock
        self._new_id = id_factory
        self._lock = threading.RLock()
        self._listeners: List[Callable[[CommandResult], None]] = []
        self._handlers: Dict[type, Callable[[LedgerSnapshot, Command], LedgerSnapshot]] = {
            RegisterUser: self._register_user,
            SwitchUser: self._switch_user,
            DepositCapital: self._deposit,
            WithdrawCapital: self._withdraw,
            RequestLoan: self._request_loan,
            DecideLoan: self._decide_loan,
            RecordPayment: self._record_payment,
            SystemReset: self._system_reset,
            OverdueSweep: self._overdue_sweep,
        }

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._version

    def subscribe(self, listener: Callable[[CommandResult], None]) -> None:
        self._listeners.append(listener)

    def load(self, snapshot: LedgerSnapshot, version: int = 0) -> None:
        """Hydrate from a stored snapshot. Nothing is emitted."""
        with self._lock:
            self._snapshot = snapshot
            self._version = version

    def execute(self, command: Command) -> CommandResult:
        """
        Validate and commit one command.

        Raises:
            LedgerError: command rejected; state unchanged
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {type(command).__name__}")

        with self._lock:
            started = time.perf_counter()
            before = self._snapshot
            try:
                after = handler(before, command)
            except LedgerError as e:
                logger.warning(
                    f"Command rejected: {e}",
                    extra={"command": command.name, "actor_id": command.actor_id, "error_code": e.code},
                )
                raise

            changes = diff_snapshots(before, after)
            if changes.is_empty:
                return CommandResult(command, self._version, before, changes, self._clock())

            self._snapshot = after
            self._version += 1
            result = CommandResult(command, self._version, after, changes, self._clock())

            logger.info(
                "Command committed",
                extra={
                    "command": command.name,
                    "actor_id": command.actor_id or after.current_user_id,
                    "version": self._version,
                    "duration_ms": (time.perf_counter() - started) * 1000,
                },
            )
            self._emit(result)
            return result

    def _emit(self, result: CommandResult) -> None:
        """Notify subscribers in registration order; called with the lock held"""
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                # The commit stands; a failing subscriber must not undo it
                logger.exception("Change listener failed", extra={"version": result.version})

    # Queries

    def available_capital(self) -> Money:
        lender = self._snapshot.lender
        if lender is None:
            return Money(0)
        return capital.available_capital(self._snapshot, lender.id)

    def lender_summary(self) -> summaries.LenderSummary:
        snapshot = self._snapshot
        lender = snapshot.lender
        return summaries.lender_summary(snapshot, lender.id if lender else "")

    def borrower_summary(self, borrower_id: str) -> summaries.BorrowerSummary:
        snapshot = self._snapshot
        if snapshot.get_user(borrower_id) is None:
            raise UserNotFound(f"User '{borrower_id}' not found", {"user_id": borrower_id})
        return summaries.borrower_summary(snapshot, borrower_id)

    def user_counts(self) -> summaries.UserCounts:
        return summaries.user_counts(self._snapshot)

    # Handlers

    def _register_user(self, snapshot: LedgerSnapshot, command: RegisterUser) -> LedgerSnapshot:
        return users.register_user(snapshot, self._new_id("user"), command.username, command.role, self._clock())

    def _switch_user(self, snapshot: LedgerSnapshot, command: SwitchUser) -> LedgerSnapshot:
        return users.switch_user(snapshot, command.user_id)

    def _deposit(self, snapshot: LedgerSnapshot, command: DepositCapital) -> LedgerSnapshot:
        lender = users.require_actor(snapshot, command.actor_id, Role.LENDER)
        return capital.deposit(snapshot, self._new_id("capital"), lender.id, command.amount, self._clock())

    def _withdraw(self, snapshot: LedgerSnapshot, command: WithdrawCapital) -> LedgerSnapshot:
        lender = users.require_actor(snapshot, command.actor_id, Role.LENDER)
        return capital.withdraw(snapshot, self._new_id("capital"), lender.id, command.amount, self._clock())

    def _request_loan(self, snapshot: LedgerSnapshot, command: RequestLoan) -> LedgerSnapshot:
        borrower = users.require_actor(snapshot, command.actor_id, Role.BORROWER)
        return loans.request_loan(
            snapshot, self._new_id("loan"), borrower, command.principal, command.schedule, self._clock()
        )

    def _decide_loan(self, snapshot: LedgerSnapshot, command: DecideLoan) -> LedgerSnapshot:
        lender = users.require_actor(snapshot, command.actor_id, Role.LENDER)
        return loans.decide_loan(snapshot, command.loan_id, lender.id, command.approve, self._clock())

    def _record_payment(self, snapshot: LedgerSnapshot, command: RecordPayment) -> LedgerSnapshot:
        borrower = users.require_actor(snapshot, command.actor_id, Role.BORROWER)
        return payments.record_payment(
            snapshot,
            self._new_id("payment"),
            command.loan_id,
            borrower.id,
            command.amount,
            command.method,
            self._clock(),
        )

    def _system_reset(self, snapshot: LedgerSnapshot, command: SystemReset) -> LedgerSnapshot:
        users.require_actor(snapshot, command.actor_id, Role.LENDER)
        return replace(snapshot, capital=(), loans={}, payments=())

    def _overdue_sweep(self, snapshot: LedgerSnapshot, command: OverdueSweep) -> LedgerSnapshot:
        return loans.mark_overdue_sweep(snapshot, command.now or self._clock())
