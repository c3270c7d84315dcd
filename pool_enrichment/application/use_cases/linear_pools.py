from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from pool_enrichment.application.ports.pool_index_port import PoolIndexPort
from pool_enrichment.domain.entities.pool import LinearPool, Pool, PoolToken
from pool_enrichment.domain.services.addresses import is_same_address, to_canonical_address


logger = logging.getLogger(__name__)


# Linear pools are wrapper references, not listings; no liquidity filter applies.
PERMISSIVE_TOTAL_SHARES_GT = Decimal("-1")


def _index_of(tokens_list: list[str], address: str) -> int | None:
    for idx, candidate in enumerate(tokens_list):
        if is_same_address(candidate, address):
            return idx
    return None


def _aligned(values: list[str | None] | None, size: int) -> list[str | None]:
    if values is None:
        return [None] * size
    if len(values) < size:
        return list(values) + [None] * (size - len(values))
    return values


def decorate_with_linear_pool_attrs(
    pool: Pool,
    *,
    pool_index: PoolIndexPort,
    total_shares_gt: Decimal = PERMISSIVE_TOTAL_SHARES_GT,
) -> dict[str, PoolToken]:
    """Substitute linear pool references in ``pool.tokens_list`` by their main/wrapped tokens.

    Sets ``main_tokens``/``wrapped_tokens`` at the positions holding a linear pool and
    ``linear_pool_tokens_map`` with every underlying token of those linear pools. Errors
    from ``pool_index`` propagate unchanged.
    """
    linear_pools: list[LinearPool] = pool_index.get_linear_pools(
        address_in=list(pool.tokens_list),
        total_shares_gt=total_shares_gt,
    )

    tokens_map: dict[str, PoolToken] = {}
    for linear_pool in linear_pools:
        if is_same_address(linear_pool.address, pool.address):
            continue

        index = _index_of(pool.tokens_list, linear_pool.address)
        if index is None:
            logger.warning(
                "linear_pools: linear_pool_not_in_tokens_list pool=%s linear_pool=%s",
                pool.id,
                linear_pool.address,
            )
            continue

        size = len(pool.tokens_list)
        pool.main_tokens = _aligned(pool.main_tokens, size)
        pool.wrapped_tokens = _aligned(pool.wrapped_tokens, size)
        pool.main_tokens[index] = to_canonical_address(linear_pool.tokens_list[linear_pool.main_index])
        pool.wrapped_tokens[index] = to_canonical_address(
            linear_pool.tokens_list[linear_pool.wrapped_index]
        )

        for token in linear_pool.tokens:
            if is_same_address(token.address, linear_pool.address):
                continue
            address = to_canonical_address(token.address)
            tokens_map[address] = replace(token, address=address)

    logger.info(
        "linear_pools: decorated pool=%s linear_pools=%s underlying_tokens=%s",
        pool.id,
        len(linear_pools),
        len(tokens_map),
    )
    pool.linear_pool_tokens_map = tokens_map
    return tokens_map


def remove_pre_minted_bpt(pool: Pool, *, pool_index: PoolIndexPort | None = None) -> list[str]:
    """Drop the pool's own share token from ``tokens_list``.

    Aligned ``main_tokens``/``wrapped_tokens`` entries are dropped together with it.
    Running it again is a no-op.
    """
    share_address = pool_index.address_for(pool_id=pool.id) if pool_index is not None else pool.address
    keep = [
        idx for idx, address in enumerate(pool.tokens_list) if not is_same_address(address, share_address)
    ]
    if len(keep) == len(pool.tokens_list):
        return pool.tokens_list

    size = len(pool.tokens_list)
    if pool.main_tokens is not None:
        main_tokens = _aligned(pool.main_tokens, size)
        pool.main_tokens = [main_tokens[idx] for idx in keep]
    if pool.wrapped_tokens is not None:
        wrapped_tokens = _aligned(pool.wrapped_tokens, size)
        pool.wrapped_tokens = [wrapped_tokens[idx] for idx in keep]
    pool.tokens_list = [pool.tokens_list[idx] for idx in keep]
    return pool.tokens_list
