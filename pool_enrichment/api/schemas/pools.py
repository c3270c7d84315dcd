from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PoolTokenPayload(BaseModel):
    address: str = Field(..., description="Token address (0x...).")
    balance: str = Field("0", description="Token balance held by the pool.")
    weight: str | None = Field(None, description="Normalized weight; null for non-weighted pools.")
    decimals: int = Field(18, ge=0)
    symbol: str | None = None


class PoolPayload(BaseModel):
    """Pool as returned by the Balancer subgraph (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Pool id.")
    address: str = Field(..., description="Pool contract address.")
    pool_type: str = Field(..., alias="poolType")
    tokens: list[PoolTokenPayload] = Field(default_factory=list)
    tokens_list: list[str] | None = Field(
        None,
        alias="tokensList",
        description="Addresses counted as pool tokens; defaults to the addresses in tokens.",
    )
    total_shares: str = Field("0", alias="totalShares")
    total_liquidity: str = Field("0", alias="totalLiquidity")
    total_swap_fee: str = Field("0", alias="totalSwapFee")
    total_swap_volume: str = Field("0", alias="totalSwapVolume")
    swap_fee: str = Field("0", alias="swapFee")
    create_time: int = Field(0, alias="createTime", description="Creation time (unix seconds).")


class PoolSnapshotPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_swap_fee: str = Field("0", alias="totalSwapFee")
    total_swap_volume: str = Field("0", alias="totalSwapVolume")


class GaugeBalAprPayload(BaseModel):
    min: Decimal = Decimal("0")
    max: Decimal = Decimal("0")


class EnrichPoolRequest(BaseModel):
    pool: PoolPayload
    prices: dict[str, dict[str, Decimal]] = Field(
        default_factory=dict,
        description="Token address -> {currency: price}.",
    )
    currency: str | None = Field(None, description="Target fiat currency (default from settings).")
    pool_snapshot: PoolSnapshotPayload | None = Field(None, description="Prior snapshot; null if none.")
    protocol_fee_percentage: Decimal = Field(Decimal("0"), ge=0, le=1)
    staking_bal_apr: GaugeBalAprPayload = Field(default_factory=GaugeBalAprPayload)
    staking_reward_apr: Decimal = Decimal("0")
    excluded_addresses: list[str] = Field(default_factory=list)
    liquidity_mining_rewards: dict[str, Decimal] | None = Field(
        None,
        description="Reward token address -> tokens distributed per week.",
    )


class PoolTokenResponse(BaseModel):
    address: str
    balance: str
    weight: str | None
    decimals: int
    symbol: str | None


class GaugeBalAprResponse(BaseModel):
    min: str
    max: str


class PoolAprsResponse(BaseModel):
    swap_fees: str
    liquidity_mining: str
    staking_bal: GaugeBalAprResponse
    staking_reward: str
    total_unstaked: str
    total_staked_min: str
    total_staked_max: str


class EnrichPoolResponse(BaseModel):
    id: str
    address: str
    pool_type: str
    tokens: list[PoolTokenResponse]
    tokens_list: list[str]
    main_tokens: list[str | None] | None
    wrapped_tokens: list[str | None] | None
    linear_pool_tokens_map: dict[str, PoolTokenResponse] | None
    total_shares: str
    total_liquidity: str
    bpt_price: str | None
    apr: PoolAprsResponse | None
    fees_snapshot: str | None
    volume_snapshot: str | None
    is_new: bool | None
