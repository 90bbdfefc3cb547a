"""
Account call schema and ABI codec.

Provides:
  - ExecuteCall / OtherCall  : tagged outer-call variants
  - TokenTransferCall        : decoded inner token transfer
  - TransferInstruction      : value movement for the host to perform
  - decode / encode helpers
"""

from .types import (
    AccountCall,
    ExecuteCall,
    OtherCall,
    TokenTransferCall,
    TransferInstruction,
)
from .codec import (
    EXECUTE_SELECTOR,
    TOKEN_TRANSFER_SELECTOR,
    decode_account_call,
    decode_token_transfer,
    encode_execute,
    encode_function_call,
    encode_token_transfer,
    function_selector,
    to_address,
    to_calldata_bytes,
)

__all__ = [
    # Schema
    "AccountCall",
    "ExecuteCall",
    "OtherCall",
    "TokenTransferCall",
    "TransferInstruction",
    # Codec
    "EXECUTE_SELECTOR",
    "TOKEN_TRANSFER_SELECTOR",
    "decode_account_call",
    "decode_token_transfer",
    "encode_execute",
    "encode_function_call",
    "encode_token_transfer",
    "function_selector",
    "to_address",
    "to_calldata_bytes",
]
