"""
Round-Up Policy Engine

Owns the per-account round-up automations and, given the calldata an
account is about to execute, proposes a secondary transfer that moves the
round-up surcharge to the account's savings destination.

Flow on interception:
  1. Select automations (slot 0 only, or every slot, per SlotPolicy)
  2. Decode ``execute(token, value, transfer(recipient, amount))``
  3. savings = ceil(amount / unit) * unit - amount
  4. Propose ``transfer(savings)`` of the same token to the destination

The primary call is never modified; the engine returns descriptions and
performs no transfers itself.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..constants import DEFAULT_ROUND_UP_SLOT
from ..exceptions import UnknownAutomation
from ..instructions import (
    ExecuteCall,
    TransferInstruction,
    decode_account_call,
    decode_token_transfer,
    to_address,
)
from ..instructions.codec import Calldata
from ..logger import get_logger
from ..store import InMemoryRoundUpStore, RoundUpAutomation, RoundUpStore
from .arithmetic import savings_for

logger = get_logger(__name__)


class SlotPolicy(Enum):
    """Which of an account's automations an interception consults."""
    FIRST_SLOT = "first_slot"    # Slot 0 only
    ALL_ENABLED = "all_enabled"  # Every registered slot, ascending


def _check_slot(slot: int) -> int:
    if isinstance(slot, bool) or not isinstance(slot, int) or slot < 0:
        raise ValueError(f"Slot must be a non-negative integer, got {slot!r}")
    return slot


def _check_unit(unit: int) -> int:
    # Sign is checked at interception time
    if isinstance(unit, bool) or not isinstance(unit, int):
        raise ValueError(f"Round-up unit must be an integer, got {unit!r}")
    return unit


class RoundUpPolicyEngine:
    """
    Per-account round-up automations with transfer interception.

    Usage::

        engine = RoundUpPolicyEngine()
        engine.register(account, 0, savings, 1_000_000)
        for instruction in engine.intercept(account, calldata):
            host.transfer(instruction)
    """

    def __init__(
        self,
        store: Optional[RoundUpStore] = None,
        slot_policy: SlotPolicy = SlotPolicy.FIRST_SLOT,
    ):
        """
        Args:
            store: Automation table (in-memory if omitted)
            slot_policy: Slots consulted on interception
        """
        self._store = store if store is not None else InMemoryRoundUpStore()
        self.slot_policy = slot_policy

    # ── Registration ──────────────────────────────────────────────────

    def register(
        self,
        account: str,
        slot: int,
        savings_destination: str,
        round_up_unit: int,
    ) -> RoundUpAutomation:
        """
        Create or replace the automation at (*account*, *slot*).

        The unit must be an integer but its sign is not checked here; a
        non-positive unit leaves the automation inert at interception time.
        """
        account = to_address(account)
        automation = RoundUpAutomation(
            savings_destination=to_address(savings_destination),
            round_up_unit=_check_unit(round_up_unit),
            enabled=True,
        )
        self._store.put(account, _check_slot(slot), automation)
        logger.info(
            f"Round-up registered: {account} slot={slot} → "
            f"{automation.savings_destination} unit={automation.round_up_unit}"
        )
        return automation

    def disable(self, account: str, slot: int = DEFAULT_ROUND_UP_SLOT) -> RoundUpAutomation:
        """Switch off an automation. Records are kept, never deleted."""
        account = to_address(account)
        current = self._store.get(account, _check_slot(slot))
        if current is None:
            raise UnknownAutomation(f"No round-up automation for {account} slot={slot}")
        automation = current.disabled()
        self._store.put(account, slot, automation)
        logger.info(f"Round-up disabled: {account} slot={slot}")
        return automation

    # ── Read-only views ───────────────────────────────────────────────

    def get_automation(
        self, account: str, slot: int = DEFAULT_ROUND_UP_SLOT
    ) -> Optional[RoundUpAutomation]:
        return self._store.get(to_address(account), _check_slot(slot))

    def automations_of(self, account: str) -> Dict[int, RoundUpAutomation]:
        return dict(self._store.slots(to_address(account)))

    # ── Interception ──────────────────────────────────────────────────

    def _active_automations(self, account: str) -> List[Tuple[int, RoundUpAutomation]]:
        if self.slot_policy is SlotPolicy.ALL_ENABLED:
            candidates = self._store.slots(account)
        else:
            automation = self._store.get(account, DEFAULT_ROUND_UP_SLOT)
            candidates = [] if automation is None else [(DEFAULT_ROUND_UP_SLOT, automation)]
        return [(slot, a) for slot, a in candidates if a.is_active]

    def intercept(self, account: str, calldata: Calldata) -> List[TransferInstruction]:
        """
        Propose savings transfers for a call *account* is about to execute.

        Returns:
            Secondary transfers to perform before the primary call; an empty
            list means no action. Under SlotPolicy.FIRST_SLOT at most one.

        Raises:
            MalformedInstructionPayload: calldata claims to be an execute or
                token transfer but does not decode
        """
        account = to_address(account)
        automations = self._active_automations(account)
        if not automations:
            return []

        call = decode_account_call(calldata)
        if not isinstance(call, ExecuteCall):
            logger.debug(f"No round-up: {account} call is not execute")
            return []

        transfer = decode_token_transfer(call.data)
        if transfer is None:
            logger.debug(f"No round-up: {account} execute to {call.target} is not a token transfer")
            return []

        instructions = []
        for slot, automation in automations:
            savings = savings_for(transfer.amount, automation.round_up_unit)
            if savings == 0:
                logger.debug(
                    f"No round-up: amount={transfer.amount} is a multiple of "
                    f"unit {automation.round_up_unit} (slot={slot})"
                )
                continue
            instructions.append(
                TransferInstruction(
                    asset=call.target,
                    sender=account,
                    recipient=automation.savings_destination,
                    amount=savings,
                )
            )
            logger.info(
                f"Round-up: {account} slot={slot} transfer of {transfer.amount} "
                f"→ save amount={savings} to {automation.savings_destination}"
            )
        return instructions

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self, account: str) -> Dict[str, Any]:
        return {
            "account": to_address(account),
            "slotPolicy": self.slot_policy.value,
            "automations": {
                str(slot): a.to_dict() for slot, a in self.automations_of(account).items()
            },
        }

    def __repr__(self) -> str:
        return f"<RoundUpPolicyEngine policy={self.slot_policy.value}>"
