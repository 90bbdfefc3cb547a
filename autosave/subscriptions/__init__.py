"""
Recurring pull-payments.

Provides:
  - SubscriptionLedger : subscribe / collect with accrual-interval gating
"""

from .ledger import SubscriptionLedger

__all__ = [
    "SubscriptionLedger",
]
