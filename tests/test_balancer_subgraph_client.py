from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from pool_enrichment.infrastructure.clients.balancer_subgraph_client import (
    BalancerSubgraphClient,
    BalancerSubgraphClientSettings,
    SubgraphQueryError,
    SubgraphResolutionError,
    SubgraphUnavailableError,
    build_gateway_url,
)


LINEAR = "0x" + "4" * 40
MAIN_LOWER = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
WRAPPED = "0x" + "5" * 40
PLAIN = "0x" + "2" * 40


def _make_client(*, max_retries: int = 1, subgraph_ids: dict | None = None) -> BalancerSubgraphClient:
    return BalancerSubgraphClient(
        BalancerSubgraphClientSettings(
            graph_gateway_base="https://gateway.thegraph.com/api",
            graph_api_key="api-key",
            graph_subgraph_ids=subgraph_ids if subgraph_ids is not None else {"ethereum": "subgraph-id"},
            timeout_seconds=10,
            max_retries=max_retries,
            min_interval_ms=0,
        ),
        network="Ethereum",
    )


def _pool_row(address: str, *, main_index, wrapped_index) -> dict:
    return {
        "id": address + "0" * 24,
        "address": address,
        "poolType": "AaveLinear" if main_index is not None else "Weighted",
        "totalShares": "0",
        "tokensList": [MAIN_LOWER, WRAPPED, address],
        "mainIndex": main_index,
        "wrappedIndex": wrapped_index,
        "tokens": [
            {"address": MAIN_LOWER, "balance": "100", "weight": None, "decimals": 6, "symbol": "USDC"},
            {"address": WRAPPED, "balance": "90", "weight": None, "decimals": 6, "symbol": "aUSDC"},
            {"address": address, "balance": "1", "weight": None, "decimals": 18, "symbol": "bb-a-USDC"},
        ],
    }


GATEWAY = "https://gateway.thegraph.com/api"


def test_build_gateway_url_uses_id_when_value_is_not_url():
    assert build_gateway_url(GATEWAY, "api-key", "GAWNgiGrA9eRce5gha9tWc7q5DPvN3fs5rSJ6tEULFNM") == (
        "https://gateway.thegraph.com/api/api-key/subgraphs/id/"
        "GAWNgiGrA9eRce5gha9tWc7q5DPvN3fs5rSJ6tEULFNM"
    )


def test_build_gateway_url_keeps_full_url_unchanged():
    full_url = "https://api.studio.thegraph.com/query/75376/balancer-v2/version/latest"
    assert build_gateway_url(GATEWAY, "api-key", full_url + "/") == full_url


def test_build_gateway_url_without_api_key():
    assert build_gateway_url(GATEWAY + "/", " ", "abc") == GATEWAY + "/subgraphs/id/abc"


def test_missing_subgraph_for_network_raises():
    client = _make_client(subgraph_ids={"ethereum": ""})
    with pytest.raises(SubgraphResolutionError):
        client.get_linear_pools(address_in=[LINEAR], total_shares_gt=Decimal("-1"))


def test_get_linear_pools_keeps_only_pools_with_linear_indexes(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    captured: dict = {}

    def fake_post_graphql(*, url: str, query: str, variables: dict) -> dict:
        captured.update(url=url, query=query, variables=variables)
        return {
            "data": {
                "pools": [
                    _pool_row(LINEAR, main_index=0, wrapped_index=1),
                    _pool_row(PLAIN, main_index=None, wrapped_index=None),
                ]
            }
        }

    monkeypatch.setattr(client, "_post_graphql", fake_post_graphql)

    pools = client.get_linear_pools(
        address_in=[LINEAR, PLAIN, LINEAR.upper().replace("0X", "0x")],
        total_shares_gt=Decimal("-1"),
    )

    assert [pool.address for pool in pools] == [LINEAR]
    assert pools[0].main_index == 0
    assert pools[0].wrapped_index == 1
    assert pools[0].tokens[0].decimals == 6
    assert captured["url"].endswith("/subgraphs/id/subgraph-id")
    assert captured["variables"]["addresses"] == [PLAIN, LINEAR]
    assert captured["variables"]["totalSharesGt"] == "-1"


def test_get_linear_pools_skips_query_for_empty_input(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()

    def fail(**_kwargs):
        raise AssertionError("should not query")

    monkeypatch.setattr(client, "_post_graphql", fail)
    assert client.get_linear_pools(address_in=[], total_shares_gt=Decimal("-1")) == []


def test_address_for_takes_address_prefix_of_pool_id():
    client = _make_client()
    pool_id = "0xa13a9247ea42d743238089903570127dda72fe4400000000000000000000035d"
    assert client.address_for(pool_id=pool_id).lower() == "0xa13a9247ea42d743238089903570127dda72fe44"


class _FakeHttpClient:
    calls = 0
    responses: list = []

    def __init__(self, *args, **kwargs):
        _ = (args, kwargs)

    def __enter__(self) -> "_FakeHttpClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        _ = (exc_type, exc, tb)
        return None

    def post(self, url: str, json: dict) -> httpx.Response:
        _ = (url, json)
        cls = type(self)
        cls.calls += 1
        outcome = cls.responses[min(cls.calls, len(cls.responses)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fake_http(monkeypatch: pytest.MonkeyPatch):
    _FakeHttpClient.calls = 0
    _FakeHttpClient.responses = []
    monkeypatch.setattr(httpx, "Client", _FakeHttpClient)
    monkeypatch.setattr(
        "pool_enrichment.infrastructure.clients.balancer_subgraph_client.time.sleep",
        lambda _seconds: None,
    )
    return _FakeHttpClient


def test_indexer_errors_are_retried_then_raised(fake_http):
    client = _make_client(max_retries=3)
    fake_http.responses = [httpx.Response(200, json={"errors": [{"message": "indexer unavailable"}]})]

    with pytest.raises(SubgraphQueryError, match="indexer unavailable"):
        client.get_linear_pools(address_in=[LINEAR], total_shares_gt=Decimal("-1"))
    assert fake_http.calls == 3


def test_malformed_query_errors_are_not_retried(fake_http):
    client = _make_client(max_retries=3)
    fake_http.responses = [
        httpx.Response(200, json={"errors": [{"message": 'Type `Pool` has no field `mainIndexx`'}]})
    ]

    with pytest.raises(SubgraphQueryError, match="rejected query") as excinfo:
        client.get_linear_pools(address_in=[LINEAR], total_shares_gt=Decimal("-1"))
    assert not isinstance(excinfo.value, SubgraphUnavailableError)
    assert fake_http.calls == 1


def test_client_errors_are_not_retried(fake_http):
    client = _make_client(max_retries=3)
    fake_http.responses = [httpx.Response(401, text="invalid api key")]

    with pytest.raises(SubgraphQueryError, match="HTTP 401"):
        client.get_linear_pools(address_in=[LINEAR], total_shares_gt=Decimal("-1"))
    assert fake_http.calls == 1


def test_transient_failures_recover_on_retry(fake_http):
    client = _make_client(max_retries=3)
    fake_http.responses = [
        httpx.ConnectError("connection refused"),
        httpx.Response(503, text="busy"),
        httpx.Response(200, json={"data": {"pools": [_pool_row(LINEAR, main_index=0, wrapped_index=1)]}}),
    ]

    pools = client.get_linear_pools(address_in=[LINEAR], total_shares_gt=Decimal("-1"))

    assert [pool.address for pool in pools] == [LINEAR]
    assert fake_http.calls == 3


def test_successful_payload_is_returned(fake_http):
    client = _make_client()
    fake_http.responses = [httpx.Response(200, json={"data": {"pools": []}})]

    assert client.get_linear_pools(address_in=[LINEAR], total_shares_gt=Decimal("-1")) == []
    assert fake_http.calls == 1
