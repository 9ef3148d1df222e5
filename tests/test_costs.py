from decimal import Decimal

import pytest

from app.exceptions import InvalidMoneyError, InvalidUnitCountError
from app.services.costs import (
    compute_unit_costs, parse_money, price_per_unit
)


class TestComputeUnitCosts:
    """Тесты расчета стоимости объекта."""

    def test_default_rates(self):
        """Ставки 5/5/3 от цены 100."""
        costs = compute_unit_costs(100, 5, 5, 3)

        assert costs.property_price == "100.00"
        assert costs.purchase_costs == "5.00"
        assert costs.transaction_fees == "5.00"
        assert costs.mof_fees == "3.00"
        assert costs.total_cost == "113.00"

    def test_defaults_when_rates_omitted(self):
        """Без ставок используются значения по умолчанию."""
        assert compute_unit_costs(100).total_cost == "113.00"

    def test_formatted_string_price(self):
        """Символ валюты и разделители тысяч отбрасываются."""
        costs = compute_unit_costs("₦1,000.50", 10, 0, 0)

        assert costs.property_price == "1000.50"
        assert costs.purchase_costs == "100.05"
        assert costs.transaction_fees == "0.00"
        assert costs.mof_fees == "0.00"
        assert costs.total_cost == "1100.55"

    def test_malformed_price_becomes_zero(self):
        """Строка без цифр дает нулевую цену (нестрогий разбор)."""
        costs = compute_unit_costs("not a price")

        assert costs.property_price == "0.00"
        assert costs.purchase_costs == "0.00"
        assert costs.transaction_fees == "0.00"
        assert costs.mof_fees == "0.00"
        assert costs.total_cost == "0.00"

    @pytest.mark.parametrize(
        "price, rates",
        [
            (0, (5, 5, 3)),
            (250000, (5, 5, 3)),
            ("45,999.99", (7.5, 1.25, 3)),
            (12345.67, (0, 0, 0)),
            ("1,000,000", (2.5, 0.5, 10)),
        ],
    )
    def test_total_is_sum_of_parts(self, price, rates):
        """Итог равен сумме цены и всех начислений с точностью до копейки."""
        costs = compute_unit_costs(price, *rates)

        parts = (
            Decimal(costs.property_price)
            + Decimal(costs.purchase_costs)
            + Decimal(costs.transaction_fees)
            + Decimal(costs.mof_fees)
        )
        assert abs(Decimal(costs.total_cost) - parts) <= Decimal("0.02")

    def test_large_price_is_exact(self):
        """Крупные суммы считаются без потери точности."""
        costs = compute_unit_costs("999999999999999999.99", 0, 0, 0)
        assert costs.total_cost == "999999999999999999.99"

        costs = compute_unit_costs("123456789012345678.91", 5, 0, 0)
        assert costs.purchase_costs == "6172839450617283.95"

    def test_oversized_price_rejected(self):
        with pytest.raises(InvalidMoneyError):
            compute_unit_costs("1" + "0" * 30)

    def test_total_overflow_rejected(self):
        """Цена в пределах, но итог с комиссиями выходит за колонку."""
        with pytest.raises(InvalidMoneyError):
            compute_unit_costs("900000000000000000", 5, 5, 3)

    def test_rounding_half_up(self):
        """Половина копейки округляется вверх."""
        costs = compute_unit_costs("0.10", 5, 0, 0)
        assert costs.purchase_costs == "0.01"


class TestParseMoney:
    """Тесты разбора денежных значений."""

    def test_number_passthrough(self):
        assert parse_money(1500) == Decimal("1500")
        assert parse_money(99.5) == Decimal("99.5")

    def test_leading_numeric_prefix(self):
        """Берется только начальная числовая часть."""
        assert parse_money("1.2.3") == Decimal("1.2")
        assert parse_money("$ 2,500") == Decimal("2500")

    def test_unparsable_is_zero(self):
        assert parse_money("") == Decimal("0")
        assert parse_money("...") == Decimal("0")
        assert parse_money(None) == Decimal("0")
        assert parse_money(float("nan")) == Decimal("0")

    def test_strict_mode_raises(self):
        with pytest.raises(InvalidMoneyError):
            parse_money("N/A", strict=True)

    def test_oversized_value_rejected(self):
        """Сумма, не помещающаяся в Numeric(20, 2), отклоняется."""
        with pytest.raises(InvalidMoneyError):
            parse_money("1" + "0" * 30)
        with pytest.raises(InvalidMoneyError):
            parse_money(1e30)


class TestPricePerUnit:
    """Тесты цены одной доли."""

    def test_divides_total_by_units(self):
        assert price_per_unit("113.00", 4) == "28.25"

    def test_missing_units_means_one(self):
        assert price_per_unit("113.00", None) == "113.00"

    def test_zero_units_rejected(self):
        with pytest.raises(InvalidUnitCountError):
            price_per_unit("113.00", 0)
