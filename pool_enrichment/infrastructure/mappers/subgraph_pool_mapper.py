from __future__ import annotations

from pool_enrichment.domain.entities.pool import LinearPool, Pool, PoolSnapshot, PoolToken


def _str_or(value, default: str = "0") -> str:
    return str(value) if value is not None else default


def map_pool_token(row: dict) -> PoolToken:
    decimals = row.get("decimals")
    return PoolToken(
        address=str(row["address"]),
        balance=_str_or(row.get("balance")),
        weight=str(row["weight"]) if row.get("weight") is not None else None,
        decimals=int(decimals) if decimals is not None else 18,
        symbol=row.get("symbol"),
    )


def _pool_kwargs(row: dict) -> dict:
    tokens = [map_pool_token(token) for token in row.get("tokens") or []]
    tokens_list = row.get("tokensList")
    if tokens_list is None:
        tokens_list = [token.address for token in tokens]
    return {
        "id": str(row["id"]),
        "address": str(row.get("address") or str(row["id"])[:42]),
        "pool_type": str(row.get("poolType") or ""),
        "tokens": tokens,
        "tokens_list": [str(address) for address in tokens_list],
        "total_shares": _str_or(row.get("totalShares")),
        "total_liquidity": _str_or(row.get("totalLiquidity")),
        "total_swap_fee": _str_or(row.get("totalSwapFee")),
        "total_swap_volume": _str_or(row.get("totalSwapVolume")),
        "swap_fee": _str_or(row.get("swapFee")),
        "create_time": int(row.get("createTime") or 0),
    }


def map_pool(row: dict) -> Pool:
    return Pool(**_pool_kwargs(row))


def map_linear_pool(row: dict) -> LinearPool | None:
    main_index = row.get("mainIndex")
    wrapped_index = row.get("wrappedIndex")
    if main_index is None or wrapped_index is None:
        return None
    return LinearPool(
        **_pool_kwargs(row),
        main_index=int(main_index),
        wrapped_index=int(wrapped_index),
    )


def map_pool_snapshot(row: dict | None) -> PoolSnapshot | None:
    if not row:
        return None
    return PoolSnapshot(
        total_swap_fee=_str_or(row.get("totalSwapFee")),
        total_swap_volume=_str_or(row.get("totalSwapVolume")),
    )
