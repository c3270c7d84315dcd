from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Iterable

from pool_enrichment.domain.entities.pool import Pool, PoolToken
from pool_enrichment.domain.services.addresses import to_canonical_address


def is_stable_like(pool_type: str, stable_pool_types: Iterable[str]) -> bool:
    return pool_type in set(stable_pool_types)


def weight_sort_key(weight: str | None) -> Decimal:
    """Unparsable or missing weights sort as zero."""
    if weight is None:
        return Decimal("0")
    try:
        value = Decimal(str(weight).strip())
    except InvalidOperation:
        return Decimal("0")
    return value if value.is_finite() else Decimal("0")


def format_pool_tokens(pool: Pool, *, stable_pool_types: Iterable[str]) -> list[PoolToken]:
    tokens = [replace(token, address=to_canonical_address(token.address)) for token in pool.tokens]
    pool.tokens_list = [to_canonical_address(address) for address in pool.tokens_list]

    if not is_stable_like(pool.pool_type, stable_pool_types):
        # sorted() is stable, so equal weights keep their fetch order
        tokens = sorted(tokens, key=lambda token: weight_sort_key(token.weight), reverse=True)

    pool.tokens = tokens
    return tokens
