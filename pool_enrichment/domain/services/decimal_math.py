from __future__ import annotations

from decimal import Context, Decimal, InvalidOperation, localcontext

from pool_enrichment.domain.exceptions import MalformedNumericInputError


# Wide enough for 18-decimal balances times prices without rounding.
MONEY_CONTEXT = Context(prec=96)

Numeric = Decimal | str | int


def to_decimal(value: Numeric | float | None, *, field_name: str = "value") -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise MalformedNumericInputError(f"{field_name} must be a decimal number, got {value!r}.")
    else:
        # floats go through str() so the shortest repr is used, not the binary expansion
        text = str(value).strip()
        try:
            result = Decimal(text)
        except InvalidOperation as exc:
            raise MalformedNumericInputError(
                f"{field_name} must be a decimal number, got {value!r}."
            ) from exc
    if not result.is_finite():
        raise MalformedNumericInputError(f"{field_name} must be finite, got {value!r}.")
    return result


def to_str(value: Decimal) -> str:
    if value.is_zero():
        return "0"
    return format(value.normalize(MONEY_CONTEXT), "f")


def add(*values: Numeric) -> str:
    with localcontext(MONEY_CONTEXT):
        total = sum((to_decimal(value) for value in values), Decimal("0"))
    return to_str(total)


def sub(left: Numeric, right: Numeric) -> str:
    with localcontext(MONEY_CONTEXT):
        return to_str(to_decimal(left) - to_decimal(right))


def mul(left: Numeric, right: Numeric) -> str:
    with localcontext(MONEY_CONTEXT):
        return to_str(to_decimal(left) * to_decimal(right))


def div(numerator: Numeric, denominator: Numeric) -> str | None:
    """Exact-as-possible division; ``None`` when the denominator is zero."""
    den = to_decimal(denominator)
    if den.is_zero():
        return None
    with localcontext(MONEY_CONTEXT):
        return to_str(to_decimal(numerator) / den)
