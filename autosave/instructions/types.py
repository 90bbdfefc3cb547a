"""
Instruction schema.

An account call is one of two tagged variants:

  - ExecuteCall : ``execute(address target, uint256 value, bytes data)``
  - OtherCall   : any other selector, carried opaquely

An ExecuteCall's ``data`` may in turn be a TokenTransferCall
(``transfer(address,uint256)``).

TransferInstruction describes a value movement the host should perform.
The core only produces these; it never moves value itself.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class ExecuteCall:
    """Outer account call forwarding ``data`` to ``target`` with ``value`` wei."""
    target: str
    value: int
    data: bytes


@dataclass(frozen=True)
class OtherCall:
    """Any account call that is not ``execute``."""
    selector: bytes
    data: bytes


AccountCall = Union[ExecuteCall, OtherCall]


@dataclass(frozen=True)
class TokenTransferCall:
    """Inner ``transfer(address,uint256)`` call."""
    recipient: str
    amount: int


@dataclass(frozen=True)
class TransferInstruction:
    """
    Move ``amount`` of ``asset`` from ``sender`` to ``recipient``.

    Attributes:
        asset:      Token contract address, or None for native currency
        sender:     Account whose funds move
        recipient:  Destination account
        amount:     Smallest-unit integer quantity
    """
    asset: Optional[str]
    sender: str
    recipient: str
    amount: int

    @property
    def is_native(self) -> bool:
        return self.asset is None

    def to_calldata(self) -> bytes:
        """Render as the account call that performs this transfer."""
        from .codec import encode_execute, encode_token_transfer

        if self.is_native:
            return encode_execute(self.recipient, self.amount, b"")
        return encode_execute(
            self.asset, 0, encode_token_transfer(self.recipient, self.amount)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset": self.asset,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
        }
