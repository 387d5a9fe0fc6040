"""Address normalization shared by every public entry point."""
from __future__ import annotations

from eth_utils import is_address, to_checksum_address


def normalize_address(value: str | bytes) -> str:
    """Return *value* as an EIP-55 checksum address.

    Accepts ``0x``-prefixed hex (any case, but mixed case must carry a valid
    checksum) or 20 raw bytes.

    Raises
    ------
    ValueError
        If *value* is not a valid address.
    """
    if not isinstance(value, (str, bytes, bytearray)) or not is_address(value):
        raise ValueError(f"{value!r} is not a valid address.")
    return to_checksum_address(value)


def same_address(left: str | None, right: str | None) -> bool:
    """Case-insensitive address equality; ``None`` never matches."""
    if left is None or right is None:
        return False
    return left.lower() == right.lower()


__all__ = ["normalize_address", "same_address"]
