from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Callable

from pool_enrichment.domain.entities.pool import GaugeBalApr, Pool, PoolAprs, PoolSnapshot, TokenPrices
from pool_enrichment.domain.services.decimal_math import MONEY_CONTEXT, add, to_decimal, to_str
from pool_enrichment.domain.services.liquidity import canonical_prices, token_price
from pool_enrichment.domain.services.snapshot_delta import fees_snapshot


DAYS_PER_YEAR = Decimal("365")
WEEKS_PER_YEAR = Decimal("52")


def calc_swap_fee_apr(
    *,
    fees_delta: str,
    total_liquidity: str,
    protocol_fee_percentage: Decimal | str | float,
    period_days: Decimal = Decimal("1"),
) -> str:
    liquidity = to_decimal(total_liquidity, field_name="total_liquidity")
    days = to_decimal(period_days, field_name="period_days")
    if liquidity <= 0 or days <= 0:
        return "0"

    protocol_fee = to_decimal(protocol_fee_percentage, field_name="protocol_fee_percentage")
    with localcontext(MONEY_CONTEXT):
        net_fees = to_decimal(fees_delta, field_name="fees_delta") * (Decimal("1") - protocol_fee)
        return to_str(net_fees * DAYS_PER_YEAR / days / liquidity)


def calc_liquidity_mining_apr(
    *,
    pool: Pool,
    prices: TokenPrices,
    currency: str,
    total_liquidity: str,
) -> str:
    rewards = pool.liquidity_mining_rewards or {}
    liquidity = to_decimal(total_liquidity, field_name="total_liquidity")
    if not rewards or liquidity <= 0:
        return "0"

    lookup = canonical_prices(prices)
    yearly_value = Decimal("0")
    with localcontext(MONEY_CONTEXT):
        for address, weekly_amount in rewards.items():
            price = token_price(lookup, address, currency)
            if price is None:
                continue
            amount = to_decimal(weekly_amount, field_name=f"liquidity_mining_rewards[{address}]")
            yearly_value += amount * price * WEEKS_PER_YEAR
        return to_str(yearly_value / liquidity)


SwapFeeAprFn = Callable[..., str]
LiquidityMiningAprFn = Callable[..., str]


@dataclass(frozen=True)
class AprCalculators:
    swap_fee_apr: SwapFeeAprFn = calc_swap_fee_apr
    liquidity_mining_apr: LiquidityMiningAprFn = calc_liquidity_mining_apr


DEFAULT_APR_CALCULATORS = AprCalculators()


def calc_pool_apr(
    pool: Pool,
    pool_snapshot: PoolSnapshot | None,
    prices: TokenPrices,
    currency: str,
    protocol_fee_percentage: Decimal | str | float,
    staking_bal_apr: GaugeBalApr,
    staking_reward_apr: str = "0",
    *,
    calculators: AprCalculators = DEFAULT_APR_CALCULATORS,
    period_days: Decimal = Decimal("1"),
) -> PoolAprs:
    """Composite APR for a pool.

    Swap fee APR needs a prior snapshot; without one it is ``"0"``. Staking yields are
    computed elsewhere and only added here.
    """
    if pool_snapshot is None:
        swap_fees = "0"
    else:
        swap_fees = calculators.swap_fee_apr(
            fees_delta=fees_snapshot(pool, pool_snapshot),
            total_liquidity=pool.total_liquidity,
            protocol_fee_percentage=protocol_fee_percentage,
            period_days=period_days,
        )

    liquidity_mining = calculators.liquidity_mining_apr(
        pool=pool,
        prices=prices,
        currency=currency,
        total_liquidity=pool.total_liquidity,
    )

    total_unstaked = add(swap_fees, liquidity_mining)
    return PoolAprs(
        swap_fees=swap_fees,
        liquidity_mining=liquidity_mining,
        staking_bal=staking_bal_apr,
        staking_reward=add(staking_reward_apr),
        total_unstaked=total_unstaked,
        total_staked_min=add(total_unstaked, staking_bal_apr.min, staking_reward_apr),
        total_staked_max=add(total_unstaked, staking_bal_apr.max, staking_reward_apr),
    )
