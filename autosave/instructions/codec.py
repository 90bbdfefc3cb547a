"""
Account Calldata Codec

Ethereum ABI encoding and decoding of the account calls the savings layer
inspects. Decoding validates selector and shape; any payload that claims to
be an ``execute`` or token ``transfer`` but does not decode cleanly raises
MalformedInstructionPayload instead of yielding garbage values.
"""

from typing import Optional, Union

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import is_address, keccak, to_checksum_address

from ..constants import (
    EXECUTE_SIGNATURE,
    SELECTOR_SIZE,
    TOKEN_TRANSFER_CALLDATA_SIZE,
    TOKEN_TRANSFER_SIGNATURE,
)
from ..exceptions import InvalidAddressError, MalformedInstructionPayload
from .types import AccountCall, ExecuteCall, OtherCall, TokenTransferCall

Calldata = Union[bytes, bytearray, str]


def function_selector(function_signature: str) -> bytes:
    """
    Compute an Ethereum function selector (first 4 bytes of keccak256(sig)).

    Args:
        function_signature: Signature like "transfer(address,uint256)"
    """
    return keccak(text=function_signature)[:SELECTOR_SIZE]


EXECUTE_SELECTOR = function_selector(EXECUTE_SIGNATURE)
TOKEN_TRANSFER_SELECTOR = function_selector(TOKEN_TRANSFER_SIGNATURE)


def to_address(value: Union[str, bytes]) -> str:
    """
    Normalise an address to EIP-55 checksum form.

    Accepts 0x-prefixed hex (any valid casing) or 20 raw bytes.

    Raises:
        InvalidAddressError: if *value* is not an address
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise InvalidAddressError(f"Binary address must be 20 bytes, got {len(value)}")
        return to_checksum_address("0x" + bytes(value).hex())
    if not isinstance(value, str) or not is_address(value):
        raise InvalidAddressError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def to_calldata_bytes(calldata: Calldata) -> bytes:
    """Accept raw bytes or a 0x-prefixed hex string."""
    if isinstance(calldata, (bytes, bytearray)):
        return bytes(calldata)
    if isinstance(calldata, str):
        text = calldata[2:] if calldata[:2] in ("0x", "0X") else calldata
        try:
            return bytes.fromhex(text)
        except ValueError as e:
            raise MalformedInstructionPayload(f"Calldata is not valid hex: {e}") from e
    raise MalformedInstructionPayload(
        f"Calldata must be bytes or hex string, got {type(calldata).__name__}"
    )


def encode_function_call(function_signature: str, *args) -> bytes:
    """
    Encode function call data (selector + ABI-encoded arguments).

    Args:
        function_signature: Function signature
        *args: Function arguments
    """
    selector = function_selector(function_signature)

    # "transfer(address,uint256)" -> ['address', 'uint256']
    args_start = function_signature.index('(') + 1
    args_end = function_signature.rindex(')')
    arg_types_str = function_signature[args_start:args_end]

    if arg_types_str:
        arg_types = [t.strip() for t in arg_types_str.split(',')]
        return selector + encode(arg_types, args)
    return selector


def encode_execute(target: str, value: int, data: bytes) -> bytes:
    """Encode ``execute(target, value, data)``."""
    return encode_function_call(EXECUTE_SIGNATURE, to_address(target), value, bytes(data))


def encode_token_transfer(recipient: str, amount: int) -> bytes:
    """Encode ``transfer(recipient, amount)``."""
    return encode_function_call(TOKEN_TRANSFER_SIGNATURE, to_address(recipient), amount)


def decode_account_call(calldata: Calldata) -> AccountCall:
    """
    Decode an account call into its tagged variant.

    Returns:
        ExecuteCall for ``execute`` payloads, OtherCall for anything else

    Raises:
        MalformedInstructionPayload: payload shorter than a selector, or an
            ``execute`` payload whose arguments do not decode
    """
    data = to_calldata_bytes(calldata)
    if len(data) < SELECTOR_SIZE:
        raise MalformedInstructionPayload(
            f"Calldata of {len(data)} bytes is shorter than a function selector"
        )

    selector, args = data[:SELECTOR_SIZE], data[SELECTOR_SIZE:]
    if selector != EXECUTE_SELECTOR:
        return OtherCall(selector=selector, data=args)

    try:
        target, value, inner = decode(["address", "uint256", "bytes"], args)
    except (DecodingError, ValueError) as e:
        raise MalformedInstructionPayload(f"Malformed execute payload: {e}") from e

    return ExecuteCall(target=to_checksum_address(target), value=value, data=inner)


def decode_token_transfer(data: Calldata) -> Optional[TokenTransferCall]:
    """
    Decode an inner ``transfer(address,uint256)`` call.

    Returns:
        TokenTransferCall, or None if *data* is not a token transfer

    Raises:
        MalformedInstructionPayload: transfer selector with the wrong shape
    """
    data = to_calldata_bytes(data)
    if data[:SELECTOR_SIZE] != TOKEN_TRANSFER_SELECTOR:
        return None

    if len(data) != TOKEN_TRANSFER_CALLDATA_SIZE:
        raise MalformedInstructionPayload(
            f"Token transfer calldata must be {TOKEN_TRANSFER_CALLDATA_SIZE} bytes, "
            f"got {len(data)}"
        )

    try:
        recipient, amount = decode(["address", "uint256"], data[SELECTOR_SIZE:])
    except (DecodingError, ValueError) as e:
        raise MalformedInstructionPayload(f"Malformed token transfer: {e}") from e

    return TokenTransferCall(recipient=to_checksum_address(recipient), amount=amount)
