"""
autosave Exceptions

Custom exception classes for the savings automation core.
"""

from typing import Optional


class AutosaveException(Exception):
    """Base exception for autosave."""
    pass


class InvalidAddressError(AutosaveException):
    """Invalid account or token address."""
    pass


class MalformedInstructionPayload(AutosaveException):
    """Calldata does not match the shape its selector claims."""
    pass


class UnknownAutomation(AutosaveException):
    """No round-up automation is registered at the requested slot."""
    pass


class UnknownOrDisabledSubscription(AutosaveException):
    """No enabled subscription matches the (payee, account) pair."""
    pass


class SubscriptionAmountMismatch(UnknownOrDisabledSubscription):
    """Claimed amount differs from the amount stored for the subscription."""
    pass


class PrematureCollection(AutosaveException):
    """Collection attempted before the accrual interval elapsed."""

    def __init__(self, message: str, next_collectable_at: Optional[int] = None):
        super().__init__(message)
        self.next_collectable_at = next_collectable_at


class SecondaryTransferFailed(AutosaveException):
    """A savings transfer failed while the pipeline runs both-or-neither."""
    pass


class ClockError(AutosaveException):
    """Clock moved backwards or was given an invalid timestamp."""
    pass


class ConfigurationError(AutosaveException):
    """Configuration error."""
    pass
