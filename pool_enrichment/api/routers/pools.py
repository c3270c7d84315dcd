from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from pool_enrichment.api.deps import get_enrich_pool_use_case
from pool_enrichment.api.schemas.pools import (
    EnrichPoolRequest,
    EnrichPoolResponse,
    GaugeBalAprResponse,
    PoolAprsResponse,
    PoolTokenResponse,
)
from pool_enrichment.application.dto.enrich_pool import EnrichPoolInput
from pool_enrichment.application.use_cases.enrich_pool import EnrichPoolUseCase
from pool_enrichment.domain.entities.pool import GaugeBalApr, PoolToken
from pool_enrichment.domain.exceptions import DomainError
from pool_enrichment.infrastructure.clients.balancer_subgraph_client import (
    SubgraphQueryError,
    SubgraphResolutionError,
)
from pool_enrichment.infrastructure.mappers.subgraph_pool_mapper import map_pool, map_pool_snapshot
from pool_enrichment.shared.config import get_settings

router = APIRouter()
logger = logging.getLogger(__name__)


def _token_response(token: PoolToken) -> PoolTokenResponse:
    return PoolTokenResponse(
        address=token.address,
        balance=token.balance,
        weight=token.weight,
        decimals=token.decimals,
        symbol=token.symbol,
    )


@router.post("/v1/networks/{network}/pools/enrich", response_model=EnrichPoolResponse)
def enrich_pool(
    network: str,
    req: EnrichPoolRequest,
    use_case: EnrichPoolUseCase = Depends(get_enrich_pool_use_case),
):
    currency = (req.currency or get_settings().default_currency).lower()
    pool = map_pool(req.pool.model_dump(by_alias=True))
    if req.liquidity_mining_rewards:
        pool.liquidity_mining_rewards = {
            address: str(amount) for address, amount in req.liquidity_mining_rewards.items()
        }
    snapshot = map_pool_snapshot(req.pool_snapshot.model_dump(by_alias=True)) if req.pool_snapshot else None

    try:
        result = use_case.execute(
            EnrichPoolInput(
                pool=pool,
                prices={
                    address: {key.lower(): str(value) for key, value in entry.items()}
                    for address, entry in req.prices.items()
                },
                currency=currency,
                pool_snapshot=snapshot,
                protocol_fee_percentage=req.protocol_fee_percentage,
                staking_bal_apr=GaugeBalApr(
                    min=str(req.staking_bal_apr.min),
                    max=str(req.staking_bal_apr.max),
                ),
                staking_reward_apr=str(req.staking_reward_apr),
                excluded_addresses=tuple(req.excluded_addresses),
            )
        )
    except DomainError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (SubgraphQueryError, SubgraphResolutionError) as exc:
        logger.warning(
            "pools_router: pool_index_unavailable network=%s pool=%s detail=%s",
            network,
            pool.id,
            exc,
        )
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    decorated = result.pool
    apr = decorated.apr
    return EnrichPoolResponse(
        id=decorated.id,
        address=decorated.address,
        pool_type=decorated.pool_type,
        tokens=[_token_response(token) for token in decorated.tokens],
        tokens_list=decorated.tokens_list,
        main_tokens=decorated.main_tokens,
        wrapped_tokens=decorated.wrapped_tokens,
        linear_pool_tokens_map=(
            {address: _token_response(token) for address, token in decorated.linear_pool_tokens_map.items()}
            if decorated.linear_pool_tokens_map is not None
            else None
        ),
        total_shares=decorated.total_shares,
        total_liquidity=decorated.total_liquidity,
        bpt_price=result.bpt_price,
        apr=(
            PoolAprsResponse(
                swap_fees=apr.swap_fees,
                liquidity_mining=apr.liquidity_mining,
                staking_bal=GaugeBalAprResponse(min=apr.staking_bal.min, max=apr.staking_bal.max),
                staking_reward=apr.staking_reward,
                total_unstaked=apr.total_unstaked,
                total_staked_min=apr.total_staked_min,
                total_staked_max=apr.total_staked_max,
            )
            if apr is not None
            else None
        ),
        fees_snapshot=decorated.fees_snapshot,
        volume_snapshot=decorated.volume_snapshot,
        is_new=decorated.is_new,
    )
