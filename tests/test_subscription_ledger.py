"""
Subscription Ledger Test Suite

Coverage:
  - subscribe: create, replace, validation, injected store
  - collect: interval gate (interval - 1 vs interval), lastPaid advance,
    double collection, unknown / disabled / mismatched records
  - check_collection is side-effect free
  - unsubscribe and read-only views
  - Clock implementations
"""

import os
import sys
from unittest.mock import patch

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from autosave.clock import ManualClock, SystemClock
from autosave.constants import ACCRUAL_INTERVAL_SECONDS, SECONDS_PER_WEEK
from autosave.exceptions import (
    ClockError,
    PrematureCollection,
    SubscriptionAmountMismatch,
    UnknownOrDisabledSubscription,
)
from autosave.instructions import TransferInstruction, to_address
from autosave.store import InMemorySubscriptionStore, Subscription
from autosave.subscriptions import SubscriptionLedger


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ACCOUNT = to_address("0x" + "a1" * 20)
PAYEE = to_address("0x" + "e5" * 20)
OTHER_PAYEE = to_address("0x" + "e6" * 20)

T0 = 1_700_000_000
INTERVAL = ACCRUAL_INTERVAL_SECONDS


def make_ledger(start=T0, **kwargs):
    clock = ManualClock(start)
    return SubscriptionLedger(clock=clock, **kwargs), clock


# ══════════════════════════════════════════════════════════════════════
#  SUBSCRIBE
# ══════════════════════════════════════════════════════════════════════


class TestSubscribe:
    """subscribe() creates and replaces records."""

    def test_interval_is_four_weeks(self):
        assert INTERVAL == 4 * SECONDS_PER_WEEK == 2_419_200

    def test_subscribe_basic(self):
        ledger, _ = make_ledger()
        sub = ledger.subscribe(PAYEE, ACCOUNT, 10)
        assert sub == Subscription(amount=10, last_paid=T0, enabled=True)
        assert ledger.get_subscription(PAYEE, ACCOUNT) == sub

    def test_subscribe_explicit_now(self):
        ledger, _ = make_ledger()
        sub = ledger.subscribe(PAYEE, ACCOUNT, 10, now=T0 + 5)
        assert sub.last_paid == T0 + 5

    def test_zero_amount_allowed(self):
        ledger, _ = make_ledger()
        assert ledger.subscribe(PAYEE, ACCOUNT, 0).amount == 0

    def test_negative_amount_raises(self):
        ledger, _ = make_ledger()
        with pytest.raises(ValueError, match="negative"):
            ledger.subscribe(PAYEE, ACCOUNT, -1)

    def test_resubscribe_replaces_and_resets_timer(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.advance(INTERVAL)
        ledger.subscribe(PAYEE, ACCOUNT, 25)
        sub = ledger.get_subscription(PAYEE, ACCOUNT)
        assert sub.amount == 25
        assert sub.last_paid == T0 + INTERVAL
        with pytest.raises(PrematureCollection):
            ledger.collect(PAYEE, ACCOUNT, 25)

    def test_keyed_by_payee_then_account(self):
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        assert ledger.get_subscription(OTHER_PAYEE, ACCOUNT) is None
        assert ledger.get_subscription(ACCOUNT, PAYEE) is None

    def test_injected_store_is_used(self):
        store = InMemorySubscriptionStore()
        ledger = SubscriptionLedger(store=store, clock=ManualClock(T0))
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        assert store.get(PAYEE, ACCOUNT).amount == 10

    def test_zero_interval_raises(self):
        with pytest.raises(ValueError, match="positive"):
            SubscriptionLedger(accrual_interval=0)


# ══════════════════════════════════════════════════════════════════════
#  COLLECT
# ══════════════════════════════════════════════════════════════════════


class TestCollect:
    """collect() enforces the accrual interval."""

    def test_premature_one_second_early(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.set(T0 + INTERVAL - 1)
        with pytest.raises(PrematureCollection) as exc_info:
            ledger.collect(PAYEE, ACCOUNT, 10)
        assert exc_info.value.next_collectable_at == T0 + INTERVAL

    def test_succeeds_at_interval(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.set(T0 + INTERVAL)
        instr = ledger.collect(PAYEE, ACCOUNT, 10)
        assert instr == TransferInstruction(asset=None, sender=ACCOUNT, recipient=PAYEE, amount=10)
        assert ledger.get_subscription(PAYEE, ACCOUNT).last_paid == T0 + INTERVAL

    def test_immediate_second_collect_fails(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.advance(INTERVAL)
        ledger.collect(PAYEE, ACCOUNT, 10)
        with pytest.raises(PrematureCollection):
            ledger.collect(PAYEE, ACCOUNT, 10)

    def test_late_collection_rearms_from_collection_time(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.advance(3 * INTERVAL)
        ledger.collect(PAYEE, ACCOUNT, 10)
        # Missed intervals do not accumulate
        with pytest.raises(PrematureCollection):
            ledger.collect(PAYEE, ACCOUNT, 10)
        clock.advance(INTERVAL)
        ledger.collect(PAYEE, ACCOUNT, 10)

    def test_collect_every_interval(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        for _ in range(3):
            clock.advance(INTERVAL)
            ledger.collect(PAYEE, ACCOUNT, 10)
        assert ledger.get_subscription(PAYEE, ACCOUNT).last_paid == T0 + 3 * INTERVAL

    def test_unknown_subscription_raises(self):
        ledger, _ = make_ledger()
        with pytest.raises(UnknownOrDisabledSubscription):
            ledger.collect(PAYEE, ACCOUNT, 10)

    def test_other_payee_cannot_collect(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.advance(INTERVAL)
        with pytest.raises(UnknownOrDisabledSubscription):
            ledger.collect(OTHER_PAYEE, ACCOUNT, 10)

    def test_amount_mismatch_raises(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.advance(INTERVAL)
        with pytest.raises(SubscriptionAmountMismatch, match="does not match"):
            ledger.collect(PAYEE, ACCOUNT, 11)

    def test_amount_mismatch_is_unknown_subscription(self):
        assert issubclass(SubscriptionAmountMismatch, UnknownOrDisabledSubscription)

    def test_failed_collect_keeps_last_paid(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.advance(INTERVAL - 1)
        with pytest.raises(PrematureCollection):
            ledger.collect(PAYEE, ACCOUNT, 10)
        assert ledger.get_subscription(PAYEE, ACCOUNT).last_paid == T0

    def test_custom_interval(self):
        ledger, clock = make_ledger(accrual_interval=60)
        ledger.subscribe(PAYEE, ACCOUNT, 1)
        clock.advance(60)
        assert ledger.collect(PAYEE, ACCOUNT, 1).amount == 1

    def test_explicit_now(self):
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        ledger.collect(PAYEE, ACCOUNT, 10, now=T0 + INTERVAL)
        assert ledger.get_subscription(PAYEE, ACCOUNT).last_paid == T0 + INTERVAL


class TestCheckCollection:
    """check_collection() has no side effects."""

    def test_check_does_not_advance(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        clock.advance(INTERVAL)
        ledger.check_collection(PAYEE, ACCOUNT, 10)
        ledger.check_collection(PAYEE, ACCOUNT, 10)
        assert ledger.get_subscription(PAYEE, ACCOUNT).last_paid == T0

    def test_check_premature(self):
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        with pytest.raises(PrematureCollection):
            ledger.check_collection(PAYEE, ACCOUNT, 10)


# ══════════════════════════════════════════════════════════════════════
#  UNSUBSCRIBE & VIEWS
# ══════════════════════════════════════════════════════════════════════


class TestUnsubscribe:
    """Disabling is the only removal path."""

    def test_unsubscribe_disables(self):
        ledger, clock = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        sub = ledger.unsubscribe(PAYEE, ACCOUNT)
        assert sub.enabled is False
        clock.advance(INTERVAL)
        with pytest.raises(UnknownOrDisabledSubscription):
            ledger.collect(PAYEE, ACCOUNT, 10)

    def test_record_is_kept(self):
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        ledger.unsubscribe(PAYEE, ACCOUNT)
        assert ledger.get_subscription(PAYEE, ACCOUNT).amount == 10

    def test_unsubscribe_unknown_raises(self):
        ledger, _ = make_ledger()
        with pytest.raises(UnknownOrDisabledSubscription):
            ledger.unsubscribe(PAYEE, ACCOUNT)


class TestViews:
    """Read-only inspection."""

    def test_next_collection_time(self):
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        assert ledger.next_collection_time(PAYEE, ACCOUNT) == T0 + INTERVAL

    def test_next_collection_time_unknown(self):
        ledger, _ = make_ledger()
        assert ledger.next_collection_time(PAYEE, ACCOUNT) is None

    def test_next_collection_time_disabled(self):
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        ledger.unsubscribe(PAYEE, ACCOUNT)
        assert ledger.next_collection_time(PAYEE, ACCOUNT) is None

    def test_subscriptions_of(self):
        other_account = to_address("0x" + "a2" * 20)
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        ledger.subscribe(PAYEE, other_account, 20)
        subs = ledger.subscriptions_of(PAYEE)
        assert {a: s.amount for a, s in subs.items()} == {ACCOUNT: 10, other_account: 20}

    def test_to_dict(self):
        ledger, _ = make_ledger()
        ledger.subscribe(PAYEE, ACCOUNT, 10)
        d = ledger.to_dict(PAYEE)
        assert d["accrualInterval"] == INTERVAL
        assert d["subscriptions"][ACCOUNT] == {"amount": "10", "lastPaid": T0, "enabled": True}


# ══════════════════════════════════════════════════════════════════════
#  CLOCKS
# ══════════════════════════════════════════════════════════════════════


class TestClocks:
    """Time sources."""

    def test_manual_advance(self):
        clock = ManualClock(100)
        assert clock.advance(5) == 105
        assert clock.now() == 105

    def test_manual_negative_advance_raises(self):
        with pytest.raises(ClockError):
            ManualClock(100).advance(-1)

    def test_manual_set_backwards_raises(self):
        clock = ManualClock(100)
        with pytest.raises(ClockError, match="monotonic"):
            clock.set(99)

    def test_manual_negative_start_raises(self):
        with pytest.raises(ClockError):
            ManualClock(-1)

    def test_system_clock_never_goes_back(self):
        clock = SystemClock()
        with patch("autosave.clock.time.time", return_value=2000.7):
            assert clock.now() == 2000
        with patch("autosave.clock.time.time", return_value=1500.0):
            assert clock.now() == 2000
