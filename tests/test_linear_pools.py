from __future__ import annotations

from decimal import Decimal
import unittest

import pytest

from pool_enrichment.application.use_cases.linear_pools import (
    decorate_with_linear_pool_attrs,
    remove_pre_minted_bpt,
)
from pool_enrichment.domain.entities.pool import LinearPool, Pool, PoolToken, PoolType


PARENT = "0x" + "1" * 40
PARENT_ID = PARENT + "000000000000000000000abc"
TOKEN_A = "0x" + "2" * 40
TOKEN_B = "0x" + "3" * 40
LINEAR = "0x" + "4" * 40
MAIN_LOWER = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
MAIN_CHECKSUM = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
WRAPPED = "0x" + "5" * 40


class FakePoolIndex:
    def __init__(self, linear_pools: list[LinearPool] | None = None, error: Exception | None = None):
        self.linear_pools = linear_pools or []
        self.error = error
        self.calls: list[dict] = []

    def get_linear_pools(self, *, address_in: list[str], total_shares_gt: Decimal) -> list[LinearPool]:
        self.calls.append({"address_in": address_in, "total_shares_gt": total_shares_gt})
        if self.error is not None:
            raise self.error
        return self.linear_pools

    def address_for(self, *, pool_id: str) -> str:
        return pool_id[:42]


def _linear_pool() -> LinearPool:
    return LinearPool(
        id=LINEAR + "0" * 24,
        address=LINEAR,
        pool_type=PoolType.AAVE_LINEAR,
        tokens=[
            PoolToken(address=MAIN_LOWER, balance="1000", decimals=6, symbol="USDC"),
            PoolToken(address=WRAPPED, balance="900", decimals=6, symbol="aUSDC"),
            PoolToken(address=LINEAR, balance="5192296858534827", symbol="bb-a-USDC"),
        ],
        tokens_list=[MAIN_LOWER, WRAPPED, LINEAR],
        main_index=0,
        wrapped_index=1,
    )


def _parent(tokens_list: list[str]) -> Pool:
    return Pool(
        id=PARENT_ID,
        address=PARENT,
        pool_type=PoolType.COMPOSABLE_STABLE,
        tokens=[PoolToken(address=address, balance="1") for address in tokens_list],
        tokens_list=list(tokens_list),
    )


class DecorateWithLinearPoolAttrsTests(unittest.TestCase):
    def test_linear_pool_at_index_two_is_unwrapped(self):
        pool = _parent([TOKEN_A, TOKEN_B, LINEAR])
        index = FakePoolIndex([_linear_pool()])

        tokens_map = decorate_with_linear_pool_attrs(pool, pool_index=index)

        assert pool.main_tokens is not None and pool.wrapped_tokens is not None
        self.assertEqual(pool.main_tokens[2], MAIN_CHECKSUM)
        self.assertEqual(pool.wrapped_tokens[2], WRAPPED)
        self.assertIsNone(pool.main_tokens[0])
        self.assertIsNone(pool.wrapped_tokens[1])
        self.assertEqual(set(tokens_map), {MAIN_CHECKSUM, WRAPPED})
        self.assertNotIn(LINEAR, tokens_map)
        self.assertEqual(tokens_map[MAIN_CHECKSUM].address, MAIN_CHECKSUM)
        self.assertEqual(tokens_map[MAIN_CHECKSUM].balance, "1000")
        self.assertIs(pool.linear_pool_tokens_map, tokens_map)

    def test_query_disables_liquidity_filter(self):
        pool = _parent([TOKEN_A, LINEAR])
        index = FakePoolIndex([_linear_pool()])

        decorate_with_linear_pool_attrs(pool, pool_index=index)

        self.assertEqual(index.calls[0]["address_in"], [TOKEN_A, LINEAR])
        self.assertEqual(index.calls[0]["total_shares_gt"], Decimal("-1"))

    def test_no_linear_pools_is_not_an_error(self):
        pool = _parent([TOKEN_A, TOKEN_B])

        tokens_map = decorate_with_linear_pool_attrs(pool, pool_index=FakePoolIndex())

        self.assertEqual(tokens_map, {})
        self.assertIsNone(pool.main_tokens)
        self.assertIsNone(pool.wrapped_tokens)

    def test_linear_pool_matches_tokens_list_case_insensitively(self):
        linear_pool = _linear_pool()
        linear_pool.address = "0x" + "ab" * 20
        pool = _parent([TOKEN_A, "0x" + "AB" * 20])

        decorate_with_linear_pool_attrs(pool, pool_index=FakePoolIndex([linear_pool]))

        assert pool.main_tokens is not None
        self.assertEqual(pool.main_tokens[1], MAIN_CHECKSUM)

    def test_parent_pool_is_never_its_own_linear_pool(self):
        pool = _parent([PARENT, TOKEN_A])
        self_reference = _linear_pool()
        self_reference.address = PARENT

        tokens_map = decorate_with_linear_pool_attrs(pool, pool_index=FakePoolIndex([self_reference]))

        self.assertEqual(tokens_map, {})
        self.assertIsNone(pool.main_tokens)


def test_query_failure_propagates():
    pool = _parent([TOKEN_A, LINEAR])
    index = FakePoolIndex(error=RuntimeError("subgraph down"))

    with pytest.raises(RuntimeError, match="subgraph down"):
        decorate_with_linear_pool_attrs(pool, pool_index=index)
    assert pool.main_tokens is None


class RemovePreMintedBptTests(unittest.TestCase):
    def test_share_token_is_removed(self):
        pool = _parent([PARENT, TOKEN_A, TOKEN_B])

        result = remove_pre_minted_bpt(pool, pool_index=FakePoolIndex())

        self.assertEqual(result, [TOKEN_A, TOKEN_B])
        self.assertEqual(pool.tokens_list, [TOKEN_A, TOKEN_B])

    def test_running_twice_equals_running_once(self):
        pool = _parent([TOKEN_A, PARENT, TOKEN_B])
        index = FakePoolIndex()

        once = list(remove_pre_minted_bpt(pool, pool_index=index))
        twice = remove_pre_minted_bpt(pool, pool_index=index)

        self.assertEqual(once, twice)

    def test_aligned_linear_attributes_follow_removal(self):
        pool = _parent([PARENT, TOKEN_A, LINEAR])
        index = FakePoolIndex([_linear_pool()])
        decorate_with_linear_pool_attrs(pool, pool_index=index)

        remove_pre_minted_bpt(pool, pool_index=index)

        self.assertEqual(pool.tokens_list, [TOKEN_A, LINEAR])
        self.assertEqual(pool.main_tokens, [None, MAIN_CHECKSUM])
        self.assertEqual(pool.wrapped_tokens, [None, WRAPPED])

    def test_falls_back_to_pool_address_without_index(self):
        pool = _parent([TOKEN_A, PARENT.upper().replace("0X", "0x")])

        self.assertEqual(remove_pre_minted_bpt(pool), [TOKEN_A])
