from __future__ import annotations

from eth_utils import is_hex_address, to_checksum_address

from pool_enrichment.domain.exceptions import InvalidAddressError


def to_canonical_address(address: str) -> str:
    value = (address or "").strip()
    if not is_hex_address(value):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return to_checksum_address(value)


def is_same_address(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return to_canonical_address(left) == to_canonical_address(right)
