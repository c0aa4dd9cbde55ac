"""Tests for Scope 3 value-chain categories."""

import pytest

from carbonscope.calculation.models import Scope3Inputs
from carbonscope.calculation.scope3_calculator import CATEGORY_11_METHODOLOGY, Scope3Calculator
from carbonscope.exceptions import UnknownProductType, UnknownUnit


@pytest.fixture
def calc(reference, converter):
    return Scope3Calculator(reference, converter)


# ==============================================================================
# Category 11 - Use of sold products
# ==============================================================================

class TestSoldProducts:
    """Tests for end-use combustion of sold products."""

    def test_motor_gasoline(self, calc):
        """1000 gallons of gasoline release 8887 kg CO2 when burned."""
        result = calc.calculate_sold_product("motorGasoline", 1000, "gallon")
        assert result.co2e_kg == pytest.approx(8887)
        assert result.co2_kg == result.co2e_kg
        assert result.methodology == CATEGORY_11_METHODOLOGY

    def test_natural_gas_mcf_via_hhv(self, calc):
        """Natural gas Mcf is converted to MMBtu through its heating value."""
        result = calc.calculate_sold_product("naturalGas", 1000, "mcf")
        assert result.details["native_quantity"] == pytest.approx(1028)
        assert result.co2e_kg == pytest.approx(1028 * 53.06)

    def test_crude_in_gallons(self, calc):
        """Crude oil in gallons is converted to barrels."""
        result = calc.calculate_sold_product("crudeOil", 42, "gallon")
        assert result.co2e_kg == pytest.approx(430, rel=1e-5)

    def test_unknown_product(self, calc):
        """Unknown products raise UnknownProductType."""
        with pytest.raises(UnknownProductType):
            calc.calculate_sold_product("unobtainium", 1, "gallon")

    def test_unconvertible_unit(self, calc):
        """A mass quantity of a volume product cannot be converted."""
        with pytest.raises(UnknownUnit):
            calc.calculate_sold_product("diesel", 1, "kg")


class TestCategory11:
    """Tests for the Category 11 aggregate."""

    def test_aggregates_per_product(self, calc):
        """Rows of the same product merge into one breakdown item."""
        rows = [
            {"product_type": "motorGasoline", "quantity": 1000, "unit": "gallon"},
            {"product_type": "motorGasoline", "quantity": 3785.41, "unit": "liter"},
            {"product_type": "diesel", "quantity": 500, "unit": "gallon"},
        ]
        result = calc.calculate_category11(rows)
        items = {b.key: b for b in result.breakdown}
        assert items["motorGasoline"].quantity == pytest.approx(2000)
        assert items["motorGasoline"].unit == "gallon"
        assert items["motorGasoline"].details == {"entries": 2}
        assert result.co2e_kg == pytest.approx(2000 * 8.887 + 500 * 10.18)
        assert result.details["product_count"] == 2

    def test_skips_unknown_products(self, calc):
        """Unknown products are reported, not counted as zero."""
        rows = [
            {"product_type": "diesel", "quantity": 1, "unit": "gallon"},
            {"product_type": "unobtainium", "quantity": 1, "unit": "gallon"},
        ]
        result = calc.calculate_category11(rows)
        assert len(result.skipped) == 1
        assert result.skipped[0].error_code == "CS_CALC_UNKNOWN_PRODUCT_TYPE"
        assert result.co2e_kg == pytest.approx(10.18)

    def test_zero_quantity(self, calc):
        """Zero rows are counted but left out of the breakdown."""
        rows = [{"product_type": "diesel", "quantity": 0, "unit": "gallon"}]
        result = calc.calculate_category11(rows)
        assert result.breakdown == []
        assert result.details["zero_quantity_entries"] == 1

    def test_skips_non_finite_quantities(self, calc):
        """NaN and infinite quantities are skipped, never summed."""
        rows = [
            {"product_type": "motorGasoline", "quantity": "nan", "unit": "gallon"},
            {"product_type": "motorGasoline", "quantity": float("inf"), "unit": "gallon"},
            {"product_type": "diesel", "quantity": 100, "unit": "gallon"},
        ]
        result = calc.calculate_category11(rows)
        assert [s.index for s in result.skipped] == [0, 1]
        assert {s.error_code for s in result.skipped} == {"CS_CALC_INVALID_ENTRY"}
        assert result.co2e_kg == pytest.approx(1018)


# ==============================================================================
# Categories 3, 4, 9 and 10
# ==============================================================================

class TestOtherCategories:
    """Tests for upstream energy, transport and processing."""

    def test_category3_electricity(self, calc):
        """Well-to-tank electricity uses kg CO2e/kWh."""
        result = calc.calculate_category3([
            {"energy_type": "electricity", "quantity": 100, "unit": "MWh"},
        ])
        assert result.co2e_kg == pytest.approx(100000 * 0.05)
        assert result.details["category"] == 3

    def test_category3_natural_gas_mcf(self, calc):
        """Natural gas volumes reach MMBtu through the heating value."""
        result = calc.calculate_category3([
            {"energy_type": "naturalGas", "quantity": 100, "unit": "mcf"},
        ])
        assert result.co2e_kg == pytest.approx(102.8 * 8.5)

    def test_category4_truck(self, calc):
        """10 t over 500 km by truck is 5000 tonne-km at 0.107."""
        result = calc.calculate_category4([{"mode": "truck", "distance_km": 500, "mass_tonnes": 10}])
        assert result.breakdown[0].quantity == 5000
        assert result.breakdown[0].unit == "tonne_km"
        assert result.co2e_kg == pytest.approx(535)

    def test_category9_uses_same_factors(self, calc):
        """Downstream transport uses the upstream mode factors."""
        shipment = [{"mode": "rail", "distance_km": 1000, "mass_tonnes": 100}]
        upstream = calc.calculate_category4(shipment)
        downstream = calc.calculate_category9(shipment)
        assert upstream.co2e_kg == downstream.co2e_kg
        assert downstream.source_kind == "category_9"

    def test_transport_skips_negative_and_unknown(self, calc):
        """Negative distances and unknown modes are skipped."""
        result = calc.calculate_category4([
            {"mode": "teleport", "distance_km": 1, "mass_tonnes": 1},
            {"mode": "ship", "distance_km": -5, "mass_tonnes": 1},
            {"mode": "ship", "distance_km": 100, "mass_tonnes": 1},
        ])
        assert [s.index for s in result.skipped] == [0, 1]
        assert result.co2e_kg == pytest.approx(1.6)

    def test_category10_reference_factor(self, calc):
        """Processing defaults to the reference factor."""
        result = calc.calculate_category10([{"product_type": "crudeOil", "quantity": 1000}])
        assert result.co2e_kg == pytest.approx(45000)
        assert result.breakdown[0].details["factor_source"] == "reference"

    def test_category10_caller_factor_wins(self, calc):
        """A caller factor overrides the reference, even for unknown products."""
        result = calc.calculate_category10([
            {"product_type": "crudeOil", "quantity": 100, "processing_emission_factor": 2.0},
            {"product_type": "bitumen", "quantity": 10, "processing_emission_factor": 0},
        ])
        assert result.co2e_kg == pytest.approx(200)
        assert [b.details["factor_source"] for b in result.breakdown] == ["caller", "caller"]

    def test_category10_unknown_without_factor(self, calc):
        """Unknown products without a caller factor are skipped."""
        result = calc.calculate_category10([{"product_type": "bitumen", "quantity": 10}])
        assert result.co2e_kg == 0
        assert result.skipped[0].error_code == "CS_CALC_UNKNOWN_PRODUCT_TYPE"

    def test_category10_negative_caller_factor(self, calc):
        """Negative caller factors are rejected per row."""
        result = calc.calculate_category10([
            {"product_type": "crudeOil", "quantity": 1, "processing_emission_factor": -1},
        ])
        assert result.skipped[0].error_code == "CS_CALC_INVALID_INPUT"


# ==============================================================================
# Total
# ==============================================================================

class TestScope3Total:
    """Tests for the Scope 3 total."""

    def test_only_supplied_categories(self, calc):
        """Categories without rows are absent."""
        total = calc.calculate_total(Scope3Inputs(
            sold_products=[{"product_type": "diesel", "quantity": 100, "unit": "gallon"}],
            upstream_transport=[{"mode": "truck", "distance_km": 10, "mass_tonnes": 1}],
        ))
        assert list(total.by_source) == ["category_11", "category_4"]
        assert total.co2e_tonnes == pytest.approx((1018 + 1.07) / 1000)

    def test_empty_inputs(self, calc):
        """No rows give an empty zero total."""
        total = calc.calculate_total(Scope3Inputs())
        assert total.by_source == {}
        assert total.co2e_tonnes == 0

    def test_list_categories(self, calc):
        """All fifteen categories are listed."""
        categories = calc.list_categories()
        assert len(categories) == 15
        assert categories[10]["name"] == "Use of Sold Products"

