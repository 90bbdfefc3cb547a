"""
Transfer Pipeline — host-side execution of savings automations

The engines only describe transfers. This module is the adapter a host
account uses to run them around its own calls:

  execute_transfer(account, calldata)
    1. decode the primary call (execute-wrapped token or native transfer)
    2. ask the round-up engine for secondary transfers
    3. run each secondary strictly before the primary, under the
       configured SecondaryFailurePolicy
    4. run the primary, unchanged
    Steps 3-4 sit inside one primitive snapshot: a raise reverts every
    transfer already applied, so no call leaves money partly moved.

  collect_subscription(payee, account, amount)
    check eligibility → transfer → commit ``last_paid``

Everything runs synchronously in the caller's thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Protocol

from .exceptions import MalformedInstructionPayload, SecondaryTransferFailed
from .instructions import (
    ExecuteCall,
    TransferInstruction,
    decode_account_call,
    decode_token_transfer,
    to_address,
)
from .instructions.codec import Calldata
from .logger import get_logger
from .roundup import RoundUpPolicyEngine
from .subscriptions import SubscriptionLedger

logger = get_logger(__name__)


class SecondaryFailurePolicy(Enum):
    """What a failed savings transfer does to the primary transfer."""
    ISOLATE = "isolate"  # Log it, primary still executes
    ATOMIC = "atomic"    # Raise, primary is not executed


class TransferPrimitive(Protocol):
    """
    Value-transfer capability held by the host account.

    Snapshots nest: ``revert(id)`` and ``commit(id)`` both release *id* and
    every snapshot taken after it.
    """

    def transfer(self, instruction: TransferInstruction) -> Any: ...

    def snapshot(self) -> int: ...

    def revert(self, snapshot_id: int) -> None: ...

    def commit(self, snapshot_id: int) -> None: ...


@dataclass
class SecondaryOutcome:
    """Result of one savings transfer."""
    instruction: TransferInstruction
    executed: bool
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instruction": self.instruction.to_dict(),
            "executed": self.executed,
            "error": self.error,
        }


@dataclass
class ExecutionReceipt:
    """What the pipeline did for one primary transfer."""
    account: str
    primary: TransferInstruction
    secondaries: List[SecondaryOutcome] = field(default_factory=list)

    @property
    def saved(self) -> int:
        return sum(o.instruction.amount for o in self.secondaries if o.executed)

    @property
    def failed(self) -> List[SecondaryOutcome]:
        return [o for o in self.secondaries if not o.executed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.account,
            "primary": self.primary.to_dict(),
            "secondaries": [o.to_dict() for o in self.secondaries],
            "saved": str(self.saved),
        }


def primary_transfer(account: str, calldata: Calldata) -> TransferInstruction:
    """
    Describe the value movement performed by an ``execute`` call.

    ``execute(token, 0, transfer(to, amount))`` is a token transfer;
    ``execute(to, value, b"")`` is a native transfer.

    Raises:
        MalformedInstructionPayload: the call moves no value the pipeline
            knows how to execute
    """
    account = to_address(account)
    call = decode_account_call(calldata)
    if not isinstance(call, ExecuteCall):
        raise MalformedInstructionPayload(
            f"Selector 0x{call.selector.hex()} is not an execute call"
        )

    if not call.data:
        return TransferInstruction(asset=None, sender=account, recipient=call.target, amount=call.value)

    transfer = decode_token_transfer(call.data)
    if transfer is None:
        raise MalformedInstructionPayload(
            f"execute to {call.target} does not wrap a token transfer"
        )
    return TransferInstruction(
        asset=call.target, sender=account, recipient=transfer.recipient, amount=transfer.amount
    )


class TransferPipeline:
    """
    Runs primary transfers with their round-up savings, and settles
    subscription collections, through a TransferPrimitive.
    """

    def __init__(
        self,
        engine: RoundUpPolicyEngine,
        ledger: SubscriptionLedger,
        primitive: TransferPrimitive,
        failure_policy: SecondaryFailurePolicy = SecondaryFailurePolicy.ISOLATE,
    ):
        self.engine = engine
        self.ledger = ledger
        self.primitive = primitive
        self.failure_policy = failure_policy

    # ── Round-up path ─────────────────────────────────────────────────

    def _run_secondary(self, instruction: TransferInstruction) -> SecondaryOutcome:
        checkpoint = self.primitive.snapshot()
        try:
            self.primitive.transfer(instruction)
        except Exception as e:
            self.primitive.revert(checkpoint)
            if self.failure_policy is SecondaryFailurePolicy.ATOMIC:
                logger.error(
                    f"Savings transfer failed, aborting: {instruction.sender} → "
                    f"{instruction.recipient} amount={instruction.amount}: {e}"
                )
                raise SecondaryTransferFailed(
                    f"Savings transfer of {instruction.amount} to "
                    f"{instruction.recipient} failed: {e}"
                ) from e
            logger.warning(
                f"Savings transfer failed, continuing: {instruction.sender} → "
                f"{instruction.recipient} amount={instruction.amount}: {e}"
            )
            return SecondaryOutcome(instruction=instruction, executed=False, error=str(e))
        self.primitive.commit(checkpoint)
        return SecondaryOutcome(instruction=instruction, executed=True)

    def _apply(
        self,
        secondaries: List[TransferInstruction],
        primary: TransferInstruction,
    ) -> List[SecondaryOutcome]:
        """Run secondaries then primary as one unit; any raise reverts all of it."""
        checkpoint = self.primitive.snapshot()
        outcomes: List[SecondaryOutcome] = []
        try:
            for instruction in secondaries:
                outcomes.append(self._run_secondary(instruction))
            self.primitive.transfer(primary)
        except Exception:
            self.primitive.revert(checkpoint)
            raise
        self.primitive.commit(checkpoint)
        return outcomes

    def execute_transfer(self, account: str, calldata: Calldata) -> ExecutionReceipt:
        """
        Execute *account*'s outgoing transfer with its savings transfers.

        Savings and primary either all land or none do. Under ISOLATE a
        primary that fails only because savings ran first is retried alone,
        and those savings are reported as not executed.

        Raises:
            MalformedInstructionPayload: calldata is not a transfer
            SecondaryTransferFailed: a savings transfer failed under ATOMIC
        """
        primary = primary_transfer(account, calldata)
        receipt = ExecutionReceipt(account=primary.sender, primary=primary)
        secondaries = self.engine.intercept(primary.sender, calldata)

        try:
            receipt.secondaries = self._apply(secondaries, primary)
        except SecondaryTransferFailed:
            raise
        except Exception as e:
            if self.failure_policy is SecondaryFailurePolicy.ATOMIC or not secondaries:
                raise
            logger.warning(
                f"Primary transfer failed after savings, retrying without savings: "
                f"{primary.sender} → {primary.recipient} amount={primary.amount}: {e}"
            )
            self._apply([], primary)
            receipt.secondaries = [
                SecondaryOutcome(
                    instruction=instruction,
                    executed=False,
                    error=f"reverted, primary transfer could not be paid: {e}",
                )
                for instruction in secondaries
            ]

        logger.debug(
            f"Executed: {primary.sender} → {primary.recipient} amount={primary.amount} "
            f"(saved {receipt.saved})"
        )
        return receipt

    # ── Subscription path ─────────────────────────────────────────────

    def collect_subscription(
        self, payee: str, account: str, amount: int
    ) -> TransferInstruction:
        """
        Pay *payee* one interval of its subscription against *account*.

        ``last_paid`` only advances once the transfer has gone through.
        """
        now = self.ledger.clock.now()
        self.ledger.check_collection(payee, account, amount, now)
        instruction = TransferInstruction(
            asset=None, sender=to_address(account), recipient=to_address(payee), amount=amount
        )
        self.primitive.transfer(instruction)
        return self.ledger.collect(payee, account, amount, now)

    def __repr__(self) -> str:
        return f"<TransferPipeline policy={self.failure_policy.value}>"


def build_pipeline(
    config,
    primitive: TransferPrimitive,
    clock=None,
    roundup_store=None,
    subscription_store=None,
) -> TransferPipeline:
    """
    Wire engine, ledger and pipeline from an AutosaveConfig.

    Args:
        config: AutosaveConfig (see autosave.config)
        primitive: Value-transfer capability
        clock: Time source for the ledger (system clock if omitted)
        roundup_store / subscription_store: Optional injected tables
    """
    engine = RoundUpPolicyEngine(store=roundup_store, slot_policy=config.roundup.policy)
    ledger = SubscriptionLedger(
        store=subscription_store,
        clock=clock,
        accrual_interval=config.subscriptions.accrual_interval_seconds,
    )
    return TransferPipeline(
        engine, ledger, primitive, failure_policy=config.pipeline.policy
    )
