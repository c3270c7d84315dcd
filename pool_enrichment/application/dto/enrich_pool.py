from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pool_enrichment.domain.entities.pool import GaugeBalApr, Pool, PoolSnapshot, TokenPrices


@dataclass(frozen=True)
class EnrichPoolInput:
    pool: Pool
    prices: TokenPrices
    currency: str
    pool_snapshot: PoolSnapshot | None
    protocol_fee_percentage: Decimal
    staking_bal_apr: GaugeBalApr
    staking_reward_apr: str = "0"
    excluded_addresses: tuple[str, ...] = ()


@dataclass(frozen=True)
class EnrichPoolOutput:
    pool: Pool
    bpt_price: str | None
