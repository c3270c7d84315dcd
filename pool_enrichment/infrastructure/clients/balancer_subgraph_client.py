from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from threading import Lock
import time

import httpx

from pool_enrichment.domain.entities.pool import LinearPool
from pool_enrichment.domain.services.addresses import to_canonical_address
from pool_enrichment.infrastructure.mappers.subgraph_pool_mapper import map_linear_pool


logger = logging.getLogger(__name__)


LINEAR_POOLS_QUERY = """
query LinearPools($addresses: [Bytes!]!, $totalSharesGt: BigDecimal!, $first: Int!) {
  pools(first: $first, where: { address_in: $addresses, totalShares_gt: $totalSharesGt }) {
    id
    address
    poolType
    totalShares
    tokensList
    mainIndex
    wrappedIndex
    tokens {
      address
      balance
      weight
      decimals
      symbol
    }
  }
}
"""


class SubgraphResolutionError(RuntimeError):
    pass


class SubgraphQueryError(RuntimeError):
    pass


class SubgraphUnavailableError(SubgraphQueryError):
    """Transient gateway or indexer failure; the request may succeed if repeated."""


BACKOFF_BASE_SECONDS = 0.25

# Fragments of gateway/indexer messages that describe the serving side, not the query.
INDEXER_ERROR_MARKERS = (
    "indexer",
    "bad indexers",
    "has only indexed up to",
    "timeout",
    "timed out",
    "too many requests",
    "service unavailable",
)


def _is_indexer_error(message: str) -> bool:
    lower_msg = message.lower()
    return any(marker in lower_msg for marker in INDEXER_ERROR_MARKERS)


def build_gateway_url(gateway_base: str, api_key: str, subgraph_id: str) -> str:
    if subgraph_id.startswith(("http://", "https://")):
        return subgraph_id.rstrip("/")
    parts = [gateway_base.rstrip("/")]
    if api_key.strip():
        parts.append(api_key.strip())
    parts.extend(["subgraphs", "id", subgraph_id])
    return "/".join(parts)


@dataclass(frozen=True)
class BalancerSubgraphClientSettings:
    graph_gateway_base: str
    graph_api_key: str
    graph_subgraph_ids: dict
    timeout_seconds: float
    max_retries: int
    min_interval_ms: int


class BalancerSubgraphClient:
    def __init__(self, settings: BalancerSubgraphClientSettings, *, network: str):
        self._settings = settings
        self._network = network.strip().lower()
        self._lock = Lock()
        self._next_request_at = 0.0

    def get_linear_pools(
        self,
        *,
        address_in: list[str],
        total_shares_gt: Decimal,
    ) -> list[LinearPool]:
        addresses = sorted({address.lower() for address in address_in})
        if not addresses:
            return []

        payload = self._post_graphql(
            url=self._resolve_subgraph_url(),
            query=LINEAR_POOLS_QUERY,
            variables={
                "addresses": addresses,
                "totalSharesGt": str(total_shares_gt),
                "first": max(len(addresses), 1),
            },
        )
        rows = (payload.get("data") or {}).get("pools") or []
        linear_pools: list[LinearPool] = []
        for row in rows:
            linear_pool = map_linear_pool(row)
            if linear_pool is None:
                continue
            linear_pools.append(linear_pool)

        logger.info(
            "balancer_subgraph_client: fetched_linear_pools requested=%s returned=%s linear=%s network=%s",
            len(addresses),
            len(rows),
            len(linear_pools),
            self._network,
        )
        return linear_pools

    def address_for(self, *, pool_id: str) -> str:
        # pool ids are the pool address followed by specialization and nonce bytes
        return to_canonical_address(pool_id[:42])

    def _post_graphql(self, *, url: str, query: str, variables: dict) -> dict:
        attempts = max(1, self._settings.max_retries)
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            self._wait_for_slot()
            try:
                return self._send(url=url, query=query, variables=variables)
            except SubgraphUnavailableError as exc:
                last_exc = exc
            if attempt == attempts:
                break
            backoff = BACKOFF_BASE_SECONDS * (2 ** (attempt - 1))
            logger.warning(
                "balancer_subgraph_client: graphql_retry attempt=%s/%s network=%s backoff=%.2fs error=%s",
                attempt,
                attempts,
                self._network,
                backoff,
                last_exc,
            )
            time.sleep(backoff)

        raise SubgraphQueryError(
            f"Balancer subgraph unavailable after {attempts} attempt(s): {last_exc}"
        ) from last_exc

    def _send(self, *, url: str, query: str, variables: dict) -> dict:
        """One round trip to the gateway.

        Raises ``SubgraphUnavailableError`` for failures worth another attempt (transport
        errors, throttling, 5xx, unreadable bodies, indexer-side GraphQL errors) and
        ``SubgraphQueryError`` for everything else, which no retry will fix.
        """
        try:
            with httpx.Client(timeout=self._settings.timeout_seconds) as client:
                response = client.post(url, json={"query": query, "variables": variables})
        except httpx.TransportError as exc:
            raise SubgraphUnavailableError(f"transport error: {exc}") from exc

        status = response.status_code
        if status == 429 or status >= 500:
            raise SubgraphUnavailableError(f"gateway returned HTTP {status}")
        if status >= 400:
            raise SubgraphQueryError(f"gateway rejected request with HTTP {status}: {response.text[:200]}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise SubgraphUnavailableError("gateway returned a non-JSON body") from exc

        errors = payload.get("errors") or []
        if not errors:
            return payload

        message = " | ".join(str(err.get("message", err)) for err in errors)
        if _is_indexer_error(message):
            raise SubgraphUnavailableError(message)
        raise SubgraphQueryError(f"Balancer subgraph rejected query: {message}")

    def _wait_for_slot(self) -> None:
        min_interval = max(0, self._settings.min_interval_ms) / 1000.0
        if min_interval <= 0:
            return

        with self._lock:
            wait = self._next_request_at - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._next_request_at = time.monotonic() + min_interval

    def _resolve_subgraph_url(self) -> str:
        subgraph_id = str(self._settings.graph_subgraph_ids.get(self._network) or "").strip()
        if not subgraph_id:
            raise SubgraphResolutionError(
                f"Missing BALANCER_SUBGRAPH_ID_{self._network.upper()} for network '{self._network}'."
            )
        return build_gateway_url(
            self._settings.graph_gateway_base,
            self._settings.graph_api_key,
            subgraph_id,
        )
