"""Unit tests for the ledger engine: command surface, role gates, atomic commits"""

import threading
from datetime import timedelta

import pytest

from peer_ledger.domain.commands import (
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
from peer_ledger.domain.exceptions import (
    DuplicateActiveLoan,
    DuplicateName,
    InsufficientCapital,
    InvalidInput,
    InvalidLoanState,
    LoanLimitExceeded,
    RoleCapacityExceeded,
    Unauthorized,
    UserNotFound,
)
from peer_ledger.domain.models import LoanStatus, PaymentMethod, PaymentSchedule, Role
from peer_ledger.domain.money import Money


def register(engine, name, role):
    return engine.execute(RegisterUser(username=name, role=role)).changes.users.inserted[0]


# Registration


def test_register_sets_current_user(ledger):
    """Test new member becomes the acting user"""
    alice = register(ledger, "Alice", Role.LENDER)

    assert ledger.snapshot.current_user_id == alice.id
    assert alice.name == "Alice"
    assert alice.role == Role.LENDER


def test_register_trims_name(ledger):
    """Test surrounding whitespace is stripped from names"""
    user = register(ledger, "  Bob  ", Role.BORROWER)
    assert user.name == "Bob"


def test_register_rejects_blank_name(ledger):
    """Test blank name is invalid input"""
    with pytest.raises(InvalidInput):
        register(ledger, "   ", Role.BORROWER)


def test_register_duplicate_name_ignores_case(ledger):
    """Test names are unique ignoring case"""
    register(ledger, "Alice", Role.LENDER)
    with pytest.raises(DuplicateName):
        register(ledger, "ALICE", Role.BORROWER)


def test_only_one_lender(ledger):
    """Test second lender is refused"""
    register(ledger, "Alice", Role.LENDER)
    with pytest.raises(RoleCapacityExceeded):
        register(ledger, "Zed", Role.LENDER)


def test_at_most_nineteen_borrowers(ledger):
    """Test twentieth borrower is refused"""
    for i in range(19):
        register(ledger, f"borrower{i}", Role.BORROWER)

    with pytest.raises(RoleCapacityExceeded):
        register(ledger, "one too many", Role.BORROWER)

    counts = ledger.user_counts()
    assert counts.borrowers == 19
    assert counts.max_borrowers == 19
    assert counts.lenders == 0


def test_switch_user(ledger):
    """Test switching the acting user"""
    alice = register(ledger, "Alice", Role.LENDER)
    register(ledger, "Bob", Role.BORROWER)

    result = ledger.execute(SwitchUser(user_id=alice.id))

    assert ledger.snapshot.current_user_id == alice.id
    assert result.changes.current_user_changed


def test_switch_to_unknown_user_fails(ledger):
    """Test switching to an unknown user"""
    with pytest.raises(UserNotFound):
        ledger.execute(SwitchUser(user_id="ghost"))


# Role gates


def test_session_user_is_used_when_no_actor_given(ledger):
    """Test session user acts when no actor is given"""
    register(ledger, "Alice", Role.LENDER)
    ledger.execute(DepositCapital(amount=Money(10_000)))

    assert ledger.available_capital() == Money(10_000)


def test_borrower_cannot_touch_capital(ledger):
    """Test capital commands are lender only"""
    register(ledger, "Alice", Role.LENDER)
    bob = register(ledger, "Bob", Role.BORROWER)

    with pytest.raises(Unauthorized):
        ledger.execute(DepositCapital(actor_id=bob.id, amount=Money(10_000)))
    with pytest.raises(Unauthorized):
        ledger.execute(WithdrawCapital(actor_id=bob.id, amount=Money(1)))


def test_lender_cannot_request_loan(ledger):
    """Test loan requests are borrower only"""
    alice = register(ledger, "Alice", Role.LENDER)
    with pytest.raises(Unauthorized):
        ledger.execute(RequestLoan(actor_id=alice.id, principal=Money(100), schedule=PaymentSchedule.WEEKLY))


def test_borrower_cannot_decide_or_reset(funded_ledger):
    """Test decisions and reset are lender only"""
    engine, ids = funded_ledger
    with pytest.raises(Unauthorized):
        engine.execute(DecideLoan(actor_id=ids["bob"], loan_id=ids["loan"], approve=True))
    with pytest.raises(Unauthorized):
        engine.execute(SystemReset(actor_id=ids["bob"]))


def test_no_acting_user_is_unauthorized(ledger):
    """Test command with no acting user"""
    with pytest.raises(Unauthorized):
        ledger.execute(DepositCapital(amount=Money(100)))


def test_unknown_actor_is_unauthorized(ledger):
    """Test command from an unregistered actor"""
    register(ledger, "Alice", Role.LENDER)
    with pytest.raises(Unauthorized):
        ledger.execute(DepositCapital(actor_id="ghost", amount=Money(100)))


def test_other_borrower_cannot_pay(funded_ledger):
    """Test only the loan's borrower can pay it"""
    engine, ids = funded_ledger
    carol = register(engine, "Carol", Role.BORROWER)

    with pytest.raises(Unauthorized):
        engine.execute(
            RecordPayment(actor_id=carol.id, loan_id=ids["loan"], amount=Money(100), method=PaymentMethod.CARD)
        )


# Scenarios


def test_scenario_a_approval_deploys_capital(funded_ledger):
    """Test approval of a $300 monthly loan against $500 capital"""
    engine, ids = funded_ledger
    loan = engine.snapshot.loans[ids["loan"]]

    assert loan.total_due == Money(31_800)
    assert loan.status == LoanStatus.APPROVED
    assert engine.available_capital() == Money(20_000)


def test_scenario_b_payment_split_and_cycle_reset(funded_ledger, clock):
    """Test $150 payment splits 18 interest / 132 principal and resets the cycle"""
    engine, ids = funded_ledger
    paid_at = clock.advance(days=2)

    result = engine.execute(
        RecordPayment(actor_id=ids["bob"], loan_id=ids["loan"], amount=Money(15_000), method=PaymentMethod.CASH)
    )
    payment = result.changes.payments.inserted[0]
    loan = result.snapshot.loans[ids["loan"]]

    assert payment.interest_amount == Money(1_800)
    assert payment.principal_amount == Money(13_200)
    assert loan.due_date == paid_at + timedelta(days=31)  # Jan 17 -> Feb 17
    assert not loan.is_overdue
    assert not loan.overdue_interest_applied
    assert engine.available_capital() == Money(33_200)


def test_scenario_c_over_cap_request(funded_ledger):
    """Test $1200 request exceeds the loan cap"""
    engine, _ = funded_ledger
    carol = register(engine, "Carol", Role.BORROWER)

    with pytest.raises(LoanLimitExceeded):
        engine.execute(RequestLoan(actor_id=carol.id, principal=Money(120_000), schedule=PaymentSchedule.WEEKLY))


def test_scenario_d_second_request_while_owing(funded_ledger):
    """Test second request while a balance is owed"""
    engine, ids = funded_ledger
    engine.execute(
        RecordPayment(actor_id=ids["bob"], loan_id=ids["loan"], amount=Money(15_000), method=PaymentMethod.CASH)
    )

    with pytest.raises(DuplicateActiveLoan):
        engine.execute(RequestLoan(actor_id=ids["bob"], principal=Money(5_000), schedule=PaymentSchedule.WEEKLY))


def test_scenario_e_overdue_bump_then_idempotent_sweep(funded_ledger, clock):
    """Test overdue bump is applied once across sweeps"""
    engine, ids = funded_ledger
    engine.execute(
        RecordPayment(actor_id=ids["bob"], loan_id=ids["loan"], amount=Money(15_000), method=PaymentMethod.CASH)
    )

    first = engine.execute(OverdueSweep(now=clock.advance(days=45)))
    loan = first.snapshot.loans[ids["loan"]]

    assert loan.is_overdue
    assert loan.total_due == Money(32_808)  # 318.00 + 168.00 remaining * 6%

    second = engine.execute(OverdueSweep(now=clock.advance(days=10)))

    assert second.changes.is_empty
    assert second.version == first.version
    assert engine.snapshot.loans[ids["loan"]].total_due == Money(32_808)


def test_scenario_f_over_withdrawal_leaves_state_unchanged(funded_ledger):
    """Test failed withdrawal leaves snapshot and version untouched"""
    engine, ids = funded_ledger
    before, version = engine.snapshot, engine.version

    with pytest.raises(InsufficientCapital):
        engine.execute(WithdrawCapital(actor_id=ids["alice"], amount=Money(20_001)))

    assert engine.snapshot is before
    assert engine.version == version


def test_approval_beyond_available_capital_fails(funded_ledger):
    """Test approval needs enough available capital"""
    engine, ids = funded_ledger
    carol = register(engine, "Carol", Role.BORROWER)
    loan = engine.execute(
        RequestLoan(actor_id=carol.id, principal=Money(25_000), schedule=PaymentSchedule.WEEKLY)
    ).changes.loans.inserted[0]

    with pytest.raises(InsufficientCapital):
        engine.execute(DecideLoan(actor_id=ids["alice"], loan_id=loan.id, approve=True))
    assert engine.snapshot.loans[loan.id].status == LoanStatus.PENDING


def test_redeciding_fails(funded_ledger):
    """Test a decided loan cannot be decided again"""
    engine, ids = funded_ledger
    with pytest.raises(InvalidLoanState):
        engine.execute(DecideLoan(actor_id=ids["alice"], loan_id=ids["loan"], approve=False))


def test_new_request_after_full_repayment(funded_ledger):
    """Test repaid borrower may request again"""
    engine, ids = funded_ledger
    engine.execute(
        RecordPayment(actor_id=ids["bob"], loan_id=ids["loan"], amount=Money(31_800), method=PaymentMethod.BANK)
    )

    result = engine.execute(
        RequestLoan(actor_id=ids["bob"], principal=Money(5_000), schedule=PaymentSchedule.WEEKLY)
    )
    assert result.changes.loans.inserted[0].status == LoanStatus.PENDING
    assert engine.available_capital() == Money(50_000)


# Reset


def test_system_reset_keeps_members(funded_ledger):
    """Test reset clears money records and keeps members"""
    engine, ids = funded_ledger
    engine.execute(
        RecordPayment(actor_id=ids["bob"], loan_id=ids["loan"], amount=Money(1_000), method=PaymentMethod.MOBILE)
    )
    engine.execute(SwitchUser(user_id=ids["alice"]))

    result = engine.execute(SystemReset())
    snapshot = result.snapshot

    assert {u.id for u in snapshot.users} == {ids["alice"], ids["bob"]}
    assert snapshot.current_user_id == ids["alice"]
    assert snapshot.capital == ()
    assert snapshot.loans == {}
    assert snapshot.payments == ()
    assert len(result.changes.loans.deleted) == 1
    assert len(result.changes.payments.deleted) == 1
    assert engine.available_capital() == Money(0)


# Commit and emission


def test_listeners_receive_commits_in_order(ledger):
    """Test listeners get commits in version order"""
    seen = []
    ledger.subscribe(seen.append)

    register(ledger, "Alice", Role.LENDER)
    ledger.execute(DepositCapital(amount=Money(500)))

    assert [r.version for r in seen] == [1, 2]
    assert [r.command.name for r in seen] == ["RegisterUser", "DepositCapital"]
    assert seen[1].changes.capital.inserted[0].amount == Money(500)


def test_rejected_and_noop_commands_are_not_emitted(ledger, clock):
    """Test rejected and empty commands are not emitted"""
    seen = []
    ledger.subscribe(seen.append)

    with pytest.raises(Unauthorized):
        ledger.execute(DepositCapital(amount=Money(500)))
    result = ledger.execute(OverdueSweep(now=clock()))

    assert seen == []
    assert result.changes.is_empty
    assert ledger.version == 0


def test_failing_listener_does_not_undo_commit(ledger):
    """Test a listener error leaves the commit in place"""
    def explode(result):
        raise RuntimeError("downstream is down")

    ledger.subscribe(explode)
    register(ledger, "Alice", Role.LENDER)

    assert ledger.version == 1
    assert len(ledger.snapshot.users) == 1


def test_unsupported_command_type(ledger):
    """Test unknown command objects raise TypeError"""
    with pytest.raises(TypeError):
        ledger.execute(object())


def test_concurrent_commands_are_serialized(ledger):
    """Test concurrent deposits all commit exactly once"""
    alice = register(ledger, "Alice", Role.LENDER)

    def deposit_many():
        for _ in range(50):
            ledger.execute(DepositCapital(actor_id=alice.id, amount=Money(1)))

    threads = [threading.Thread(target=deposit_many) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert ledger.available_capital() == Money(400)
    assert ledger.version == 401
    assert len({entry.id for entry in ledger.snapshot.capital}) == 400


def test_listeners_finish_before_next_commit(ledger):
    """Test each listener sees its own version as current"""
    alice = register(ledger, "Alice", Role.LENDER)
    observed = []
    ledger.subscribe(lambda result: observed.append((result.version, ledger.version)))

    def deposit_many():
        for _ in range(25):
            ledger.execute(DepositCapital(actor_id=alice.id, amount=Money(1)))

    threads = [threading.Thread(target=deposit_many) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(version == current for version, current in observed)
    assert [version for version, _ in observed] == list(range(2, 102))


def test_committed_loans_cannot_be_mutated_in_place(funded_ledger):
    """Test committed loan mapping is read-only"""
    engine, ids = funded_ledger
    loans = engine.snapshot.loans

    with pytest.raises(TypeError):
        loans[ids["loan"]] = None
    with pytest.raises(TypeError):
        del loans[ids["loan"]]
    assert engine.snapshot.loans[ids["loan"]].status == LoanStatus.APPROVED


# Queries


def test_lender_and_borrower_summaries(funded_ledger, clock):
    """Test dashboard figures after a partial payment"""
    engine, ids = funded_ledger
    engine.execute(
        RecordPayment(actor_id=ids["bob"], loan_id=ids["loan"], amount=Money(15_000), method=PaymentMethod.CASH)
    )

    lender = engine.lender_summary()
    assert lender.total_capital == Money(50_000)
    assert lender.deployed_principal == Money(16_800)
    assert lender.available_capital == Money(33_200)
    assert lender.interest_earned == Money(1_800)
    assert (lender.pending_loans, lender.active_loans, lender.overdue_loans) == (0, 1, 0)

    borrower = engine.borrower_summary(ids["bob"])
    assert borrower.total_borrowed == Money(30_000)
    assert borrower.amount_due == Money(16_800)
    assert borrower.total_paid == Money(15_000)
    assert borrower.open_loans == 1


def test_repaid_overdue_loan_is_not_counted_overdue(funded_ledger, clock):
    """Test paid-off overdue loan leaves the overdue count"""
    engine, ids = funded_ledger
    engine.execute(OverdueSweep(now=clock.advance(days=45)))
    assert engine.lender_summary().overdue_loans == 1

    remaining = engine.snapshot.loans[ids["loan"]].remaining_balance
    engine.execute(
        RecordPayment(actor_id=ids["bob"], loan_id=ids["loan"], amount=remaining, method=PaymentMethod.BANK)
    )

    lender = engine.lender_summary()
    assert engine.snapshot.loans[ids["loan"]].is_overdue
    assert (lender.active_loans, lender.overdue_loans) == (0, 0)


def test_borrower_summary_unknown_user(ledger):
    """Test borrower summary for an unknown user"""
    with pytest.raises(UserNotFound):
        ledger.borrower_summary("ghost")
