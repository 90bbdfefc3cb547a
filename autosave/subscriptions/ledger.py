"""
Subscription Ledger

Tracks recurring native-currency entitlements keyed by (payee, account).
An account owner authorizes a subscription upstream; the payee then pulls
``amount`` once per accrual interval.

Lifecycle:
  Unregistered --subscribe--> Active --collect--> Active (interval re-armed)
  Active --unsubscribe--> Disabled

Collection never succeeds twice within one interval for the same pair.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..clock import Clock, SystemClock
from ..constants import ACCRUAL_INTERVAL_SECONDS
from ..exceptions import (
    PrematureCollection,
    SubscriptionAmountMismatch,
    UnknownOrDisabledSubscription,
)
from ..instructions import TransferInstruction, to_address
from ..logger import get_logger
from ..store import InMemorySubscriptionStore, Subscription, SubscriptionStore

logger = get_logger(__name__)


class SubscriptionLedger:
    """
    Per-(payee, account) subscriptions with time-gated collection.

    Every time-dependent method takes an optional ``now``; when omitted the
    injected clock is read. Passing the same ``now`` to ``check_collection``
    and ``collect`` lets a host check, transfer, then commit.
    """

    def __init__(
        self,
        store: Optional[SubscriptionStore] = None,
        clock: Optional[Clock] = None,
        accrual_interval: int = ACCRUAL_INTERVAL_SECONDS,
    ):
        if accrual_interval <= 0:
            raise ValueError(f"Accrual interval must be positive, got {accrual_interval}")
        self._store = store if store is not None else InMemorySubscriptionStore()
        self.clock = clock if clock is not None else SystemClock()
        self.accrual_interval = accrual_interval

    def _now(self, now: Optional[int]) -> int:
        return self.clock.now() if now is None else int(now)

    # ── Registration ──────────────────────────────────────────────────

    def subscribe(
        self,
        payee: str,
        account: str,
        amount: int,
        now: Optional[int] = None,
    ) -> Subscription:
        """
        Create or replace the subscription of *payee* against *account*.

        Authorization of *account* is the caller's responsibility. The first
        collection becomes possible one accrual interval after registration.
        """
        if amount < 0:
            raise ValueError(f"Subscription amount cannot be negative: {amount}")
        payee, account = to_address(payee), to_address(account)
        subscription = Subscription(amount=int(amount), last_paid=self._now(now), enabled=True)
        self._store.put(payee, account, subscription)
        logger.info(f"Subscription: {account} → {payee} amount={amount} every {self.accrual_interval}s")
        return subscription

    def unsubscribe(self, payee: str, account: str) -> Subscription:
        """Disable a subscription. Disabling is the only removal path."""
        payee, account = to_address(payee), to_address(account)
        current = self._store.get(payee, account)
        if current is None:
            raise UnknownOrDisabledSubscription(f"No subscription of {payee} against {account}")
        subscription = current.disabled()
        self._store.put(payee, account, subscription)
        logger.info(f"Subscription disabled: {account} → {payee}")
        return subscription

    # ── Collection ────────────────────────────────────────────────────

    def check_collection(
        self,
        payee: str,
        account: str,
        amount: int,
        now: Optional[int] = None,
    ) -> Subscription:
        """
        Verify *payee* may collect *amount* from *account* at *now*.

        Has no side effects.

        Raises:
            UnknownOrDisabledSubscription: no enabled record for the pair
            SubscriptionAmountMismatch: *amount* differs from the record
            PrematureCollection: accrual interval has not elapsed
        """
        payee, account = to_address(payee), to_address(account)
        subscription = self._store.get(payee, account)
        if subscription is None or not subscription.enabled:
            raise UnknownOrDisabledSubscription(
                f"No enabled subscription of {payee} against {account}"
            )
        if amount != subscription.amount:
            raise SubscriptionAmountMismatch(
                f"Claimed amount {amount} does not match subscription amount "
                f"{subscription.amount}"
            )

        now = self._now(now)
        next_at = subscription.last_paid + self.accrual_interval
        if now < next_at:
            raise PrematureCollection(
                f"Subscription of {payee} against {account} is collectable at "
                f"{next_at}, now is {now}",
                next_collectable_at=next_at,
            )
        return subscription

    def collect(
        self,
        payee: str,
        account: str,
        amount: int,
        now: Optional[int] = None,
    ) -> TransferInstruction:
        """
        Collect one interval's payment and re-arm the interval.

        Returns:
            Native-currency transfer from *account* to *payee*
        """
        now = self._now(now)
        subscription = self.check_collection(payee, account, amount, now)
        payee, account = to_address(payee), to_address(account)

        self._store.put(payee, account, subscription.paid_at(now))
        logger.info(f"Collected: {account} → {payee} amount={amount} at {now}")
        return TransferInstruction(asset=None, sender=account, recipient=payee, amount=amount)

    # ── Read-only views ───────────────────────────────────────────────

    def get_subscription(self, payee: str, account: str) -> Optional[Subscription]:
        return self._store.get(to_address(payee), to_address(account))

    def subscriptions_of(self, payee: str) -> Dict[str, Subscription]:
        return self._store.of_payee(to_address(payee))

    def next_collection_time(self, payee: str, account: str) -> Optional[int]:
        subscription = self.get_subscription(payee, account)
        if subscription is None or not subscription.enabled:
            return None
        return subscription.last_paid + self.accrual_interval

    def to_dict(self, payee: str) -> Dict[str, Any]:
        return {
            "payee": to_address(payee),
            "accrualInterval": self.accrual_interval,
            "subscriptions": {
                account: s.to_dict() for account, s in self.subscriptions_of(payee).items()
            },
        }

    def __repr__(self) -> str:
        return f"<SubscriptionLedger interval={self.accrual_interval}s>"
