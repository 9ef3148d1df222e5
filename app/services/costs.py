"""Расчет стоимости объекта недвижимости и цены одной доли."""
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional, Union

import structlog

from app.exceptions import InvalidMoneyError, InvalidUnitCountError
from app.schemas import UnitCosts

logger = structlog.get_logger(__name__)

DEFAULT_PURCHASE_PCT = Decimal("5")
DEFAULT_TRANSACTION_PCT = Decimal("5")
DEFAULT_MOF_PCT = Decimal("3")

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")

# Денежные колонки Numeric(20, 2)
MAX_MONEY = Decimal("1e18")
MONEY_PRECISION = 50

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d*(?:\.\d*)?")

Money = Union[str, int, float, Decimal]


def _to_decimal(value: Union[int, float, Decimal]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _check_range(value: Decimal) -> Decimal:
    if abs(value) >= MAX_MONEY:
        raise InvalidMoneyError(f"Money value out of range: {value}")
    return value


def parse_money(value: Optional[Money], strict: bool = False) -> Decimal:
    """
    Разбирает денежное значение.

    Числа берутся как есть. Из строки удаляется все, кроме цифр и точки,
    затем читается начальная числовая часть ("₦1,000.50" -> 1000.50).

    :param value: Число или строка с суммой
    :param strict: Если True, нераспознанное значение вызывает ошибку
    :return: Decimal; в нестрогом режиме 0 для нераспознанных значений
    :raises InvalidMoneyError: В строгом режиме при нераспознанном значении
        и в любом режиме для сумм от MAX_MONEY и выше
    """
    if value is None or isinstance(value, bool):
        parsed = None
    elif isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value)
        text = _LEADING_NUMBER.match(cleaned).group(0)
        parsed = Decimal(text) if text not in ("", ".") else None
    else:
        try:
            parsed = _to_decimal(value)
        except InvalidOperation:
            parsed = None

    if parsed is not None and parsed.is_finite():
        return _check_range(parsed)

    if strict:
        raise InvalidMoneyError(f"Cannot parse money value: {value!r}")
    logger.warning("money_input_unparsable", value=repr(value))
    return Decimal("0")


def to_money(value: Decimal) -> Decimal:
    """
    Округляет сумму до двух знаков (ROUND_HALF_UP).

    :raises InvalidMoneyError: Если сумма не помещается в денежную колонку
    """
    _check_range(value)
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_money_string(value: Decimal) -> str:
    return f"{to_money(value):.2f}"


def compute_unit_costs(
    property_price: Optional[Money],
    purchase_pct: Money = DEFAULT_PURCHASE_PCT,
    transaction_pct: Money = DEFAULT_TRANSACTION_PCT,
    mof_pct: Money = DEFAULT_MOF_PCT,
) -> UnitCosts:
    """
    Считает затраты на покупку, комиссии и итоговую цену объекта.

    purchase_costs = price * purchase_pct / 100
    transaction_fees = price * transaction_pct / 100
    mof_fees = price * mof_pct / 100
    total_cost = price + purchase_costs + transaction_fees + mof_fees

    Промежуточные значения не округляются, результат округляется
    до двух знаков и возвращается строками. Суммы от MAX_MONEY
    отклоняются с InvalidMoneyError.
    """
    price = parse_money(property_price)
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        purchase = price * _to_decimal(purchase_pct) / HUNDRED
        transaction = price * _to_decimal(transaction_pct) / HUNDRED
        mof = price * _to_decimal(mof_pct) / HUNDRED
        total = price + purchase + transaction + mof

    return UnitCosts(
        property_price=to_money_string(price),
        purchase_costs=to_money_string(purchase),
        transaction_fees=to_money_string(transaction),
        mof_fees=to_money_string(mof),
        total_cost=to_money_string(total),
    )


def price_per_unit(total_cost: Money, num_units: Optional[int]) -> str:
    """
    Цена одной доли: total_cost / num_units.

    Отсутствующее количество долей считается равным 1.

    :raises InvalidUnitCountError: Если num_units меньше 1
    """
    if num_units is None:
        num_units = 1
    if num_units < 1:
        raise InvalidUnitCountError(
            f"Number of units must be at least 1, got {num_units}"
        )
    return to_money_string(parse_money(total_cost, strict=True) / num_units)
