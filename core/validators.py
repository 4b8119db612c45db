# PATH: core/validators.py
"""
Validators for ledger addresses, function ids and amounts.

ADDRESS CONTRACT:
- Addresses are compared in LONG form: "0x" + 64 lowercase hex chars
- Short forms ("0x1") and missing "0x" prefixes are accepted on input
- Anything longer than 32 bytes or containing non-hex chars is rejected

USAGE:
    from core.validators import normalize_address, same_address

    addr = normalize_address("0x1")  # "0x000...001"
    same_address("0x1", "0x0000...0001")  # True
"""

import re
from typing import Iterable

from core.constants import ADDRESS_HEX_LENGTH, ErrorCode
from core.exceptions import ValidationError

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")

# <address>::<module>::<function>
_FUNCTION_ID_RE = re.compile(r"^(0x[0-9a-fA-F]+)::([A-Za-z_][A-Za-z0-9_]*)::([A-Za-z_][A-Za-z0-9_]*)$")

U64_MAX = 2 ** 64 - 1


def normalize_address(address: str) -> str:
    """
    Normalize an account address to long form.

    Raises:
        ValidationError: If the address is empty, too long, or not hex
    """
    if not isinstance(address, str):
        raise ValidationError(
            f"Address must be a string, got {type(address).__name__}",
            details={"address": repr(address)},
        )

    raw = address.strip()
    if raw.startswith(("0x", "0X")):
        raw = raw[2:]

    if not raw or len(raw) > ADDRESS_HEX_LENGTH or not _HEX_RE.match(raw):
        raise ValidationError(
            f"Invalid address: {address!r}",
            details={"address": address},
        )

    return "0x" + raw.lower().zfill(ADDRESS_HEX_LENGTH)


def is_valid_address(address: str) -> bool:
    """Check an address without raising."""
    try:
        normalize_address(address)
        return True
    except ValidationError:
        return False


def same_address(a: str, b: str) -> bool:
    """Compare two addresses regardless of short/long form."""
    return normalize_address(a) == normalize_address(b)


def normalize_addresses(addresses: Iterable[str]) -> list[str]:
    """Normalize a batch, keeping order and dropping duplicates."""
    seen: dict[str, None] = {}
    for address in addresses:
        seen.setdefault(normalize_address(address), None)
    return list(seen)


def split_function_id(function_id: str) -> tuple[str, str, str]:
    """
    Split "<address>::<module>::<function>".

    Returns:
        (normalized_address, module, function)
    """
    match = _FUNCTION_ID_RE.match(function_id or "")
    if not match:
        raise ValidationError(
            f"Invalid function id: {function_id!r}",
            code=ErrorCode.CONFIG_INVALID,
            details={"function_id": function_id},
        )
    address, module, function = match.groups()
    return normalize_address(address), module, function


def validate_amount(amount: int) -> int:
    """
    Validate a token amount (u64, strictly positive).

    bool is rejected even though it is an int subclass.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(
            f"Amount must be an integer, got {type(amount).__name__}",
            code=ErrorCode.VALIDATION_INVALID_AMOUNT,
            details={"amount": repr(amount)},
        )
    if amount <= 0 or amount > U64_MAX:
        raise ValidationError(
            f"Amount out of range: {amount}",
            code=ErrorCode.VALIDATION_INVALID_AMOUNT,
            details={"amount": amount},
        )
    return amount
