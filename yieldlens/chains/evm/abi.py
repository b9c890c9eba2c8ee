"""ABI encoding helpers for read-only contract calls, no I/O."""
from __future__ import annotations

from typing import Any

from eth_abi import decode, encode
from eth_utils import (
    decode_hex,
    function_signature_to_4byte_selector,
    is_address,
    to_checksum_address,
)

from ...models import ContractCall

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(address: str) -> str:
    """Checksum an address, raising ValueError when it is not one."""
    if not isinstance(address, str) or not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def is_zero_address(address: str | None) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def _normalize_args(types: tuple[str, ...], args: tuple[Any, ...]) -> list[Any]:
    if len(types) != len(args):
        raise ValueError(f"Expected {len(types)} arguments, got {len(args)}")
    return [
        normalize_address(arg) if typ == "address" else arg
        for typ, arg in zip(types, args)
    ]


def encode_call(call: ContractCall) -> str:
    """Return the 0x-prefixed calldata for ``call``."""
    selector = function_signature_to_4byte_selector(call.signature)
    payload = encode(list(call.input_types), _normalize_args(call.input_types, call.args))
    return "0x" + (selector + payload).hex()


def decode_result(call: ContractCall, raw: str) -> tuple[Any, ...]:
    """Decode eth_call return data according to ``call.output_types``.

    An empty ``0x`` response (call to a non-contract, or a burned id on some
    managers) is an error rather than a zero value.
    """
    data = decode_hex(raw) if raw else b""
    if not data and call.output_types:
        raise ValueError(f"Empty return data for {call.signature} on {call.to}")
    return tuple(decode(list(call.output_types), data))
