from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv


load_dotenv()


DEFAULT_STABLE_POOL_TYPES = "Stable,MetaStable,StablePhantom,ComposableStable"


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _csv(name: str, default: str) -> frozenset[str]:
    value = _env(name, default) or ""
    return frozenset(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    graph_gateway_base: str
    graph_api_key: str
    balancer_subgraph_ids: dict
    graph_request_timeout_seconds: float
    graph_max_retries: int
    graph_min_interval_ms: int
    linear_pool_total_shares_gt: Decimal
    stable_pool_types: frozenset[str]
    swap_fee_snapshot_days: Decimal
    default_currency: str
    log_level: str


def get_settings() -> Settings:
    subgraphs = {
        "ethereum": _env("BALANCER_SUBGRAPH_ID_ETHEREUM", ""),
        "arbitrum": _env("BALANCER_SUBGRAPH_ID_ARBITRUM", ""),
        "polygon": _env("BALANCER_SUBGRAPH_ID_POLYGON", ""),
        "gnosis": _env("BALANCER_SUBGRAPH_ID_GNOSIS", ""),
        "base": _env("BALANCER_SUBGRAPH_ID_BASE", ""),
    }
    return Settings(
        graph_gateway_base=_env("GRAPH_GATEWAY_BASE", "https://gateway.thegraph.com/api"),
        graph_api_key=_env("GRAPH_API_KEY", ""),
        balancer_subgraph_ids=subgraphs,
        graph_request_timeout_seconds=float(_env("GRAPH_REQUEST_TIMEOUT_SECONDS", "10")),
        graph_max_retries=int(_env("GRAPH_MAX_RETRIES", "3")),
        graph_min_interval_ms=int(_env("GRAPH_MIN_INTERVAL_MS", "0")),
        linear_pool_total_shares_gt=Decimal(_env("LINEAR_POOL_TOTAL_SHARES_GT", "-1")),
        stable_pool_types=_csv("STABLE_POOL_TYPES", DEFAULT_STABLE_POOL_TYPES),
        swap_fee_snapshot_days=Decimal(_env("SWAP_FEE_SNAPSHOT_DAYS", "1")),
        default_currency=(_env("DEFAULT_CURRENCY", "usd") or "usd").lower(),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
    )
