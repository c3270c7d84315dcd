from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, TypeVar

from pool_enrichment.application.dto.enrich_pool import EnrichPoolInput, EnrichPoolOutput
from pool_enrichment.application.ports.pool_index_port import PoolIndexPort
from pool_enrichment.application.use_cases.linear_pools import (
    PERMISSIVE_TOTAL_SHARES_GT,
    decorate_with_linear_pool_attrs,
    remove_pre_minted_bpt,
)
from pool_enrichment.domain.entities.pool import (
    GaugeBalApr,
    Pool,
    PoolAprs,
    PoolSnapshot,
    PoolToken,
    PoolType,
    TokenPrices,
)
from pool_enrichment.domain.exceptions import PoolFinalizedError
from pool_enrichment.domain.services import liquidity, pool_age, snapshot_delta
from pool_enrichment.domain.services.pool_apr import DEFAULT_APR_CALCULATORS, AprCalculators, calc_pool_apr
from pool_enrichment.domain.services.token_format import format_pool_tokens


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STABLE_POOL_TYPES = frozenset(
    {
        PoolType.STABLE,
        PoolType.META_STABLE,
        PoolType.STABLE_PHANTOM,
        PoolType.COMPOSABLE_STABLE,
    }
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PoolEnrichmentPipeline:
    """Decorates one pool in place.

    Every stage runs at most once per pool: a repeated call returns what the first
    run produced. Once finalized, stages raise ``PoolFinalizedError``. One pipeline
    must own its pool; concurrent pipelines over the same ``Pool`` are not supported.
    """

    def __init__(
        self,
        pool: Pool,
        *,
        pool_index: PoolIndexPort,
        stable_pool_types: Iterable[str] = DEFAULT_STABLE_POOL_TYPES,
        calculators: AprCalculators = DEFAULT_APR_CALCULATORS,
        linear_pool_total_shares_gt: Decimal = PERMISSIVE_TOTAL_SHARES_GT,
        swap_fee_snapshot_days: Decimal = Decimal("1"),
        now: Callable[[], datetime] = _utc_now,
    ):
        self.pool = pool
        self._pool_index = pool_index
        self._stable_pool_types = frozenset(stable_pool_types)
        self._calculators = calculators
        self._linear_pool_total_shares_gt = linear_pool_total_shares_gt
        self._swap_fee_snapshot_days = swap_fee_snapshot_days
        self._now = now
        self._completed: dict[str, object] = {}
        self._finalized = False
        self.format()

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def is_new(self) -> bool:
        return pool_age.is_new(self.pool, now=self._now())

    @property
    def bpt_price(self) -> str | None:
        return liquidity.bpt_price(self.pool.total_liquidity, self.pool.total_shares)

    def _run_once(self, stage: str, apply: Callable[[], T]) -> T:
        if self._finalized:
            raise PoolFinalizedError(f"Pool {self.pool.id} is finalized; cannot run {stage}.")
        if stage in self._completed:
            logger.debug("pool_enrichment: stage_already_applied pool=%s stage=%s", self.pool.id, stage)
            return self._completed[stage]  # type: ignore[return-value]
        result = apply()
        self._completed[stage] = result
        return result

    def format(self) -> Pool:
        def apply() -> Pool:
            self.pool.is_new = self.is_new
            self.format_pool_tokens()
            return self.pool

        return self._run_once("format", apply)

    def format_pool_tokens(self) -> list[PoolToken]:
        return self._run_once(
            "format_pool_tokens",
            lambda: format_pool_tokens(self.pool, stable_pool_types=self._stable_pool_types),
        )

    def set_linear_pools(self) -> dict[str, PoolToken]:
        return self._run_once(
            "set_linear_pools",
            lambda: decorate_with_linear_pool_attrs(
                self.pool,
                pool_index=self._pool_index,
                total_shares_gt=self._linear_pool_total_shares_gt,
            ),
        )

    def remove_pre_minted_bpt(self) -> list[str]:
        return self._run_once(
            "remove_pre_minted_bpt",
            lambda: remove_pre_minted_bpt(self.pool, pool_index=self._pool_index),
        )

    def set_total_liquidity(self, prices: TokenPrices, currency: str) -> str:
        """Values the pool's own tokens; linear resolution and pre-mint removal run first."""

        def apply() -> str:
            self.set_linear_pools()
            self.remove_pre_minted_bpt()
            self.pool.total_liquidity = liquidity.calc_total_liquidity(self.pool, prices, currency)
            return self.pool.total_liquidity

        return self._run_once("set_total_liquidity", apply)

    def remove_excluded_addresses(
        self,
        excluded_addresses: Iterable[str],
        prices: TokenPrices,
        currency: str,
        total_liquidity: str | None = None,
    ) -> str:
        return liquidity.remove_excluded_addresses(
            total_liquidity if total_liquidity is not None else self.pool.total_liquidity,
            excluded_addresses,
            self.pool,
            prices,
            currency,
        )

    def set_displayed_liquidity(
        self,
        excluded_addresses: Iterable[str],
        prices: TokenPrices,
        currency: str,
    ) -> str:
        def apply() -> str:
            total = self.set_total_liquidity(prices, currency)
            self.pool.total_liquidity = self.remove_excluded_addresses(
                excluded_addresses,
                prices,
                currency,
                total_liquidity=total,
            )
            return self.pool.total_liquidity

        return self._run_once("remove_excluded_addresses", apply)

    def set_apr(
        self,
        pool_snapshot: PoolSnapshot | None,
        prices: TokenPrices,
        currency: str,
        protocol_fee_percentage: Decimal | str | float,
        staking_bal_apr: GaugeBalApr,
        staking_reward_apr: str = "0",
    ) -> PoolAprs:
        def apply() -> PoolAprs:
            self.set_total_liquidity(prices, currency)
            self.pool.apr = calc_pool_apr(
                self.pool,
                pool_snapshot,
                prices,
                currency,
                protocol_fee_percentage,
                staking_bal_apr,
                staking_reward_apr,
                calculators=self._calculators,
                period_days=self._swap_fee_snapshot_days,
            )
            return self.pool.apr

        return self._run_once("set_apr", apply)

    def set_fees_snapshot(self, pool_snapshot: PoolSnapshot | None) -> str:
        def apply() -> str:
            self.pool.fees_snapshot = snapshot_delta.fees_snapshot(self.pool, pool_snapshot)
            return self.pool.fees_snapshot

        return self._run_once("set_fees_snapshot", apply)

    def set_volume_snapshot(self, pool_snapshot: PoolSnapshot | None) -> str:
        def apply() -> str:
            self.pool.volume_snapshot = snapshot_delta.volume_snapshot(self.pool, pool_snapshot)
            return self.pool.volume_snapshot

        return self._run_once("set_volume_snapshot", apply)

    def calc_fees(self, past_pool: PoolSnapshot | None) -> str:
        return snapshot_delta.calc_fees(self.pool, past_pool)

    def finalize(self) -> Pool:
        self._finalized = True
        return self.pool

    def enrich(
        self,
        *,
        prices: TokenPrices,
        currency: str,
        pool_snapshot: PoolSnapshot | None,
        protocol_fee_percentage: Decimal | str | float,
        staking_bal_apr: GaugeBalApr,
        staking_reward_apr: str = "0",
        excluded_addresses: Iterable[str] = (),
    ) -> Pool:
        self.set_linear_pools()
        self.remove_pre_minted_bpt()
        self.set_total_liquidity(prices, currency)
        self.set_displayed_liquidity(excluded_addresses, prices, currency)
        self.set_apr(
            pool_snapshot,
            prices,
            currency,
            protocol_fee_percentage,
            staking_bal_apr,
            staking_reward_apr,
        )
        self.set_fees_snapshot(pool_snapshot)
        self.set_volume_snapshot(pool_snapshot)

        if pool_snapshot is None and not self.pool.is_new:
            logger.warning(
                "pool_enrichment: missing_snapshot_for_established_pool pool=%s create_time=%s",
                self.pool.id,
                self.pool.create_time,
            )
        logger.info(
            "pool_enrichment: enriched pool=%s type=%s total_liquidity=%s currency=%s fees_snapshot=%s is_new=%s",
            self.pool.id,
            self.pool.pool_type,
            self.pool.total_liquidity,
            currency,
            self.pool.fees_snapshot,
            self.pool.is_new,
        )
        return self.finalize()


class EnrichPoolUseCase:
    def __init__(
        self,
        *,
        pool_index_port: PoolIndexPort,
        stable_pool_types: Iterable[str] = DEFAULT_STABLE_POOL_TYPES,
        calculators: AprCalculators = DEFAULT_APR_CALCULATORS,
        linear_pool_total_shares_gt: Decimal = PERMISSIVE_TOTAL_SHARES_GT,
        swap_fee_snapshot_days: Decimal = Decimal("1"),
        now: Callable[[], datetime] = _utc_now,
    ):
        self._pool_index_port = pool_index_port
        self._stable_pool_types = frozenset(stable_pool_types)
        self._calculators = calculators
        self._linear_pool_total_shares_gt = linear_pool_total_shares_gt
        self._swap_fee_snapshot_days = swap_fee_snapshot_days
        self._now = now

    def execute(self, command: EnrichPoolInput) -> EnrichPoolOutput:
        pipeline = PoolEnrichmentPipeline(
            command.pool,
            pool_index=self._pool_index_port,
            stable_pool_types=self._stable_pool_types,
            calculators=self._calculators,
            linear_pool_total_shares_gt=self._linear_pool_total_shares_gt,
            swap_fee_snapshot_days=self._swap_fee_snapshot_days,
            now=self._now,
        )
        pool = pipeline.enrich(
            prices=command.prices,
            currency=command.currency,
            pool_snapshot=command.pool_snapshot,
            protocol_fee_percentage=command.protocol_fee_percentage,
            staking_bal_apr=command.staking_bal_apr,
            staking_reward_apr=command.staking_reward_apr,
            excluded_addresses=command.excluded_addresses,
        )
        return EnrichPoolOutput(pool=pool, bpt_price=pipeline.bpt_price)
