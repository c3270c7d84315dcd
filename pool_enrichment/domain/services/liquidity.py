from __future__ import annotations

import logging
from decimal import Decimal, localcontext
from typing import Iterable

from pool_enrichment.domain.entities.pool import Pool, PoolToken, TokenPrices
from pool_enrichment.domain.services.addresses import to_canonical_address
from pool_enrichment.domain.services.decimal_math import MONEY_CONTEXT, div, to_decimal, to_str


logger = logging.getLogger(__name__)


def canonical_prices(prices: TokenPrices) -> dict[str, dict[str, str]]:
    return {to_canonical_address(address): value for address, value in prices.items()}


def token_price(
    prices: dict[str, dict[str, str]],
    address: str,
    currency: str,
) -> Decimal | None:
    entry = prices.get(to_canonical_address(address))
    if not entry:
        return None
    value = entry.get(currency)
    if value is None:
        return None
    return to_decimal(value, field_name=f"price[{address}][{currency}]")


def _valued_tokens(pool: Pool) -> list[PoolToken]:
    listed = {to_canonical_address(address) for address in pool.tokens_list}
    return [token for token in pool.tokens if to_canonical_address(token.address) in listed]


def _token_value(token: PoolToken, price: Decimal) -> Decimal:
    return to_decimal(token.balance, field_name=f"balance[{token.address}]") * price


def calc_total_liquidity(pool: Pool, prices: TokenPrices, currency: str) -> str:
    """Sum of balance x price over the pool's listed tokens.

    Tokens without a price in ``currency`` contribute zero. Tokens no longer present in
    ``tokens_list`` (the pre-minted share token) are not valued.
    """
    lookup = canonical_prices(prices)
    total = Decimal("0")
    missing: list[str] = []
    with localcontext(MONEY_CONTEXT):
        for token in _valued_tokens(pool):
            price = token_price(lookup, token.address, currency)
            if price is None:
                missing.append(token.address)
                continue
            total += _token_value(token, price)

    if missing:
        logger.warning(
            "liquidity: missing_prices pool=%s currency=%s tokens=%s",
            pool.id,
            currency,
            ",".join(missing),
        )
    return to_str(total)


def remove_excluded_addresses(
    total_liquidity: str,
    excluded_addresses: Iterable[str],
    pool: Pool,
    prices: TokenPrices,
    currency: str,
) -> str:
    excluded = {to_canonical_address(address) for address in excluded_addresses}
    if not excluded:
        return to_str(to_decimal(total_liquidity, field_name="total_liquidity"))

    lookup = canonical_prices(prices)
    with localcontext(MONEY_CONTEXT):
        remaining = to_decimal(total_liquidity, field_name="total_liquidity")
        for token in _valued_tokens(pool):
            if to_canonical_address(token.address) not in excluded:
                continue
            price = token_price(lookup, token.address, currency)
            if price is None:
                continue
            remaining -= _token_value(token, price)

    if remaining < 0:
        logger.warning(
            "liquidity: excluded_exceeds_total pool=%s total=%s remaining=%s",
            pool.id,
            total_liquidity,
            to_str(remaining),
        )
        return "0"
    return to_str(remaining)


def bpt_price(total_liquidity: str, total_shares: str) -> str | None:
    """Liquidity per share; ``None`` when the share supply is zero."""
    return div(
        to_decimal(total_liquidity, field_name="total_liquidity"),
        to_decimal(total_shares, field_name="total_shares"),
    )
