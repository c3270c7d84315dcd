from __future__ import annotations

from functools import lru_cache

from pool_enrichment.application.use_cases.enrich_pool import EnrichPoolUseCase
from pool_enrichment.infrastructure.clients.balancer_subgraph_client import (
    BalancerSubgraphClient,
    BalancerSubgraphClientSettings,
)
from pool_enrichment.shared.config import get_settings


@lru_cache(maxsize=8)
def _get_balancer_subgraph_client(network: str) -> BalancerSubgraphClient:
    settings = get_settings()
    return BalancerSubgraphClient(
        BalancerSubgraphClientSettings(
            graph_gateway_base=settings.graph_gateway_base,
            graph_api_key=settings.graph_api_key,
            graph_subgraph_ids=settings.balancer_subgraph_ids,
            timeout_seconds=settings.graph_request_timeout_seconds,
            max_retries=settings.graph_max_retries,
            min_interval_ms=settings.graph_min_interval_ms,
        ),
        network=network,
    )


def get_enrich_pool_use_case(network: str) -> EnrichPoolUseCase:
    settings = get_settings()
    return EnrichPoolUseCase(
        pool_index_port=_get_balancer_subgraph_client(network.strip().lower()),
        stable_pool_types=settings.stable_pool_types,
        linear_pool_total_shares_gt=settings.linear_pool_total_shares_gt,
        swap_fee_snapshot_days=settings.swap_fee_snapshot_days,
    )
