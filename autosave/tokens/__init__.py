"""
In-memory tokens for hosts and tests.

Provides:
  - MockToken  : ERC-20–style token with minting
  - TokenBook  : token registry + native balances; executes TransferInstructions
"""

from .mock_token import (
    InsufficientBalanceError,
    MockToken,
    TokenBook,
    TokenError,
    TransferEvent,
    UnknownAssetError,
)

__all__ = [
    "MockToken",
    "TokenBook",
    "TransferEvent",
    "TokenError",
    "InsufficientBalanceError",
    "UnknownAssetError",
]
