from __future__ import annotations

from dataclasses import dataclass, field


# canonical token address -> {currency: price}
TokenPrices = dict[str, dict[str, str]]


class PoolType:
    WEIGHTED = "Weighted"
    INVESTMENT = "Investment"
    LIQUIDITY_BOOTSTRAPPING = "LiquidityBootstrapping"
    STABLE = "Stable"
    META_STABLE = "MetaStable"
    STABLE_PHANTOM = "StablePhantom"
    COMPOSABLE_STABLE = "ComposableStable"
    LINEAR = "Linear"
    AAVE_LINEAR = "AaveLinear"
    ERC4626_LINEAR = "ERC4626Linear"


@dataclass
class PoolToken:
    address: str
    balance: str
    weight: str | None = None
    decimals: int = 18
    symbol: str | None = None


@dataclass(frozen=True)
class GaugeBalApr:
    min: str = "0"
    max: str = "0"


@dataclass(frozen=True)
class PoolAprs:
    swap_fees: str
    liquidity_mining: str
    staking_bal: GaugeBalApr
    staking_reward: str
    total_unstaked: str
    total_staked_min: str
    total_staked_max: str


@dataclass
class Pool:
    """Pool record as fetched from the index, plus the fields derived by enrichment.

    Monetary figures are decimal strings. ``main_tokens`` and ``wrapped_tokens`` are
    sparse and aligned by position with ``tokens_list``.
    """

    id: str
    address: str
    pool_type: str
    tokens: list[PoolToken] = field(default_factory=list)
    tokens_list: list[str] = field(default_factory=list)
    total_shares: str = "0"
    total_liquidity: str = "0"
    total_swap_fee: str = "0"
    total_swap_volume: str = "0"
    swap_fee: str = "0"
    create_time: int = 0
    # reward token address -> tokens distributed per week
    liquidity_mining_rewards: dict[str, str] | None = None

    apr: PoolAprs | None = None
    fees_snapshot: str | None = None
    volume_snapshot: str | None = None
    is_new: bool | None = None
    main_tokens: list[str | None] | None = None
    wrapped_tokens: list[str | None] | None = None
    linear_pool_tokens_map: dict[str, PoolToken] | None = None


@dataclass
class LinearPool(Pool):
    main_index: int = 0
    wrapped_index: int = 0


@dataclass(frozen=True)
class PoolSnapshot:
    total_swap_fee: str
    total_swap_volume: str
