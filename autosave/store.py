"""
Record stores for the savings engines.

Each engine owns exactly one table and receives it by injection:

  - RoundUpStore      : roundUpAutomations[account][slot] -> RoundUpAutomation
  - SubscriptionStore : subscriptions[payee][account]     -> Subscription

The in-memory implementations back tests and single-process hosts; any
object satisfying the protocol (a database table, a chain state view) can be
passed instead.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Protocol, Tuple


@dataclass(frozen=True)
class RoundUpAutomation:
    """
    Round-up rule for one account slot.

    Attributes:
        savings_destination: Account receiving the surcharge
        round_up_unit:       Increment transfer amounts are rounded up to
        enabled:             Inert when False
    """
    savings_destination: str
    round_up_unit: int
    enabled: bool = True

    @property
    def is_active(self) -> bool:
        # A zero unit is a no-op, never "round up to 0"
        return self.enabled and self.round_up_unit > 0

    def disabled(self) -> "RoundUpAutomation":
        return replace(self, enabled=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "savingsDestination": self.savings_destination,
            "roundUpUnit": str(self.round_up_unit),
            "enabled": self.enabled,
        }


@dataclass(frozen=True)
class Subscription:
    """
    Recurring native-currency entitlement of a payee against an account.

    Attributes:
        amount:     Payable per accrual interval
        last_paid:  Unix time of last collection (or of registration)
        enabled:    Collectable only when True
    """
    amount: int
    last_paid: int
    enabled: bool = True

    def paid_at(self, timestamp: int) -> "Subscription":
        return replace(self, last_paid=timestamp)

    def disabled(self) -> "Subscription":
        return replace(self, enabled=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "lastPaid": self.last_paid,
            "enabled": self.enabled,
        }


class RoundUpStore(Protocol):
    """Protocol for round-up automation storage."""

    def get(self, account: str, slot: int) -> Optional[RoundUpAutomation]: ...

    def put(self, account: str, slot: int, automation: RoundUpAutomation) -> None: ...

    def slots(self, account: str) -> List[Tuple[int, RoundUpAutomation]]:
        """All registered slots of *account*, ascending."""
        ...


class SubscriptionStore(Protocol):
    """Protocol for subscription storage."""

    def get(self, payee: str, account: str) -> Optional[Subscription]: ...

    def put(self, payee: str, account: str, subscription: Subscription) -> None: ...

    def of_payee(self, payee: str) -> Dict[str, Subscription]: ...


class InMemoryRoundUpStore:
    """Dict-backed RoundUpStore."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[int, RoundUpAutomation]] = {}

    def get(self, account: str, slot: int) -> Optional[RoundUpAutomation]:
        return self._records.get(account, {}).get(slot)

    def put(self, account: str, slot: int, automation: RoundUpAutomation) -> None:
        self._records.setdefault(account, {})[slot] = automation

    def slots(self, account: str) -> List[Tuple[int, RoundUpAutomation]]:
        return sorted(self._records.get(account, {}).items())

    def __len__(self) -> int:
        return sum(len(s) for s in self._records.values())


class InMemorySubscriptionStore:
    """Dict-backed SubscriptionStore."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Subscription]] = {}

    def get(self, payee: str, account: str) -> Optional[Subscription]:
        return self._records.get(payee, {}).get(account)

    def put(self, payee: str, account: str, subscription: Subscription) -> None:
        self._records.setdefault(payee, {})[account] = subscription

    def of_payee(self, payee: str) -> Dict[str, Subscription]:
        return dict(self._records.get(payee, {}))

    def __len__(self) -> int:
        return sum(len(s) for s in self._records.values())
