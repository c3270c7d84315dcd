from __future__ import annotations

from pool_enrichment.domain.entities.pool import Pool, PoolSnapshot
from pool_enrichment.domain.services.decimal_math import sub, to_decimal, to_str


def fees_snapshot(pool: Pool, pool_snapshot: PoolSnapshot | None) -> str:
    if pool_snapshot is None:
        return "0"
    return sub(pool.total_swap_fee, pool_snapshot.total_swap_fee)


def volume_snapshot(pool: Pool, pool_snapshot: PoolSnapshot | None) -> str:
    if pool_snapshot is None:
        return "0"
    return sub(pool.total_swap_volume, pool_snapshot.total_swap_volume)


def calc_fees(pool: Pool, past_pool: PoolSnapshot | None) -> str:
    """Fees since ``past_pool``; the lifetime total when there is no history."""
    if past_pool is None:
        return to_str(to_decimal(pool.total_swap_fee, field_name="total_swap_fee"))
    return sub(pool.total_swap_fee, past_pool.total_swap_fee)
