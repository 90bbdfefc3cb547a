"""
Mock Tokens — in-memory value transfer

Implements a minimal ERC-20–style token and a TokenBook that holds several
tokens plus native-currency balances. The book satisfies the pipeline's
TransferPrimitive protocol, so hosts and tests can execute the transfer
instructions the savings engines produce.

Amounts are smallest-unit integers (e.g. 1_000_000 = 1.00 at 6 decimals).
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..constants import MOCK_TOKEN_DEFAULT_DECIMALS, UINT256_MAX
from ..exceptions import AutosaveException
from ..instructions import TransferInstruction, to_address
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TokenError(AutosaveException):
    """Base exception for mock token operations."""


class InsufficientBalanceError(TokenError):
    """Raised when sender balance is too low."""


class UnknownAssetError(TokenError):
    """Raised when a transfer names a token the book does not hold."""


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every successful transfer. ``asset`` is None for native."""
    asset: Optional[str]
    sender: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "asset": self.asset,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  MOCK TOKEN
# ══════════════════════════════════════════════════════════════════════

class MockToken:
    """
    ERC-20–style fungible token with unrestricted minting.

        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - mint(recipient, amount)
        - total_supply → int
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        address: str,
        decimals: int = MOCK_TOKEN_DEFAULT_DECIMALS,
    ):
        if not name:
            raise TokenError("Token name cannot be empty")
        if not symbol:
            raise TokenError("Token symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise TokenError(f"Decimals must be 0-18, got {decimals}")

        self.name = name
        self.symbol = symbol
        self.address = to_address(address)
        self.decimals = decimals
        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._events: List[TransferEvent] = []

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, address: str) -> int:
        return self._balances.get(to_address(address), 0)

    @property
    def events(self) -> List[TransferEvent]:
        return list(self._events)

    # ── Operations ────────────────────────────────────────────────────

    def mint(self, recipient: str, amount: int) -> None:
        if amount <= 0:
            raise TokenError("Mint amount must be positive")
        if self._total_supply + amount > UINT256_MAX:
            raise TokenError(f"Minting {amount} would overflow total supply")
        recipient = to_address(recipient)
        self._total_supply += amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """Move *amount* from *sender* to *recipient*."""
        if amount < 0:
            raise TokenError("Transfer amount cannot be negative")

        sender, recipient = to_address(sender), to_address(recipient)
        bal = self._balances.get(sender, 0)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount} {self.symbol}"
            )

        self._balances[sender] = bal - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

        event = TransferEvent(asset=self.address, sender=sender, recipient=recipient, amount=amount)
        self._events.append(event)
        logger.debug(f"Transfer: {sender} → {recipient} amount={amount} {self.symbol}")
        return event

    def state(self) -> Dict[str, Any]:
        """Copy of the mutable ledger state."""
        return {
            "balances": dict(self._balances),
            "events": list(self._events),
            "total_supply": self._total_supply,
        }

    def restore(self, state: Dict[str, Any]) -> None:
        """Reset the ledger to a copy taken by state()."""
        self._balances = dict(state["balances"])
        self._events = list(state["events"])
        self._total_supply = state["total_supply"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "address": self.address,
            "decimals": self.decimals,
            "totalSupply": str(self._total_supply),
            "holders": len([b for b in self._balances.values() if b > 0]),
        }

    def __repr__(self) -> str:
        return f"<MockToken {self.symbol} supply={self._total_supply}>"


# ══════════════════════════════════════════════════════════════════════
#  TOKEN BOOK
# ══════════════════════════════════════════════════════════════════════

class TokenBook:
    """
    Tokens keyed by contract address, plus native-currency balances.

    ``transfer(instruction)`` executes a TransferInstruction against the
    matching token (or the native balances when ``asset`` is None).
    ``snapshot()`` / ``revert(id)`` / ``commit(id)`` bracket a group of
    transfers so they apply together or not at all.
    """

    def __init__(self) -> None:
        self._tokens: Dict[str, MockToken] = {}
        self._native: Dict[str, int] = {}
        self._native_events: List[TransferEvent] = []
        self._snapshots: List[Dict[str, Any]] = []

    # ── Tokens ────────────────────────────────────────────────────────

    def deploy(self, token: MockToken) -> MockToken:
        if token.address in self._tokens:
            raise TokenError(f"Token already deployed at {token.address}")
        self._tokens[token.address] = token
        logger.info(f"Token deployed: {token.symbol} at {token.address}")
        return token

    def get(self, address: str) -> MockToken:
        token = self._tokens.get(to_address(address))
        if token is None:
            raise UnknownAssetError(f"No token deployed at {address}")
        return token

    # ── Native currency ───────────────────────────────────────────────

    def fund(self, address: str, amount: int) -> None:
        if amount <= 0:
            raise TokenError("Funding amount must be positive")
        address = to_address(address)
        self._native[address] = self._native.get(address, 0) + amount

    def native_balance_of(self, address: str) -> int:
        return self._native.get(to_address(address), 0)

    @property
    def native_events(self) -> List[TransferEvent]:
        return list(self._native_events)

    def _transfer_native(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        if amount < 0:
            raise TokenError("Transfer amount cannot be negative")
        sender, recipient = to_address(sender), to_address(recipient)
        bal = self._native.get(sender, 0)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} native balance {bal} < transfer amount {amount}"
            )
        self._native[sender] = bal - amount
        self._native[recipient] = self._native.get(recipient, 0) + amount
        event = TransferEvent(asset=None, sender=sender, recipient=recipient, amount=amount)
        self._native_events.append(event)
        return event

    # ── TransferPrimitive ─────────────────────────────────────────────

    def transfer(self, instruction: TransferInstruction) -> TransferEvent:
        if instruction.is_native:
            return self._transfer_native(
                instruction.sender, instruction.recipient, instruction.amount
            )
        return self.get(instruction.asset).transfer(
            instruction.sender, instruction.recipient, instruction.amount
        )

    def balance_of(self, asset: Optional[str], address: str) -> int:
        if asset is None:
            return self.native_balance_of(address)
        return self.get(asset).balance_of(address)

    # ── Snapshots ─────────────────────────────────────────────────────

    def snapshot(self) -> int:
        """
        Capture every balance for a later revert.

        Returns:
            Snapshot ID
        """
        self._snapshots.append({
            "tokens": {a: t.state() for a, t in self._tokens.items()},
            "native": dict(self._native),
            "native_events": list(self._native_events),
        })
        return len(self._snapshots) - 1

    def _check_snapshot(self, snapshot_id: int) -> None:
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")

    def revert(self, snapshot_id: int) -> None:
        """Restore balances to *snapshot_id* and drop it and newer snapshots."""
        self._check_snapshot(snapshot_id)
        snapshot = self._snapshots[snapshot_id]
        for address, state in snapshot["tokens"].items():
            self._tokens[address].restore(state)
        self._native = dict(snapshot["native"])
        self._native_events = list(snapshot["native_events"])
        self._snapshots = self._snapshots[:snapshot_id]

    def commit(self, snapshot_id: int) -> None:
        """Keep current balances and release *snapshot_id* and newer snapshots."""
        self._check_snapshot(snapshot_id)
        self._snapshots = self._snapshots[:snapshot_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokens": {a: t.to_dict() for a, t in self._tokens.items()},
            "nativeHolders": len([b for b in self._native.values() if b > 0]),
        }

    def __repr__(self) -> str:
        return f"<TokenBook tokens={len(self._tokens)}>"
