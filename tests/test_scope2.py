"""Tests for Scope 2 purchased electricity and thermal energy."""

import pytest

from carbonscope.calculation.scope2_calculator import (
    DUAL_METHODOLOGY,
    LOCATION_METHODOLOGY,
    MARKET_METHODOLOGY,
    Scope2Calculator,
)
from carbonscope.exceptions import GridFactorNotFound, InvalidInput, UnknownUnit

LB_TO_KG = 0.453592


@pytest.fixture
def calc(reference, converter):
    return Scope2Calculator(reference, converter)


# ==============================================================================
# Grid factors
# ==============================================================================

class TestGridFactors:
    """Tests for grid factor resolution and normalisation."""

    def test_region_default(self, calc):
        """US resolves to the national average."""
        grid = calc.get_grid_factor("US")
        assert grid.resolution == "region"
        assert grid.factor_kg_per_kwh == pytest.approx(0.373)

    def test_subregion_in_lb_per_mwh(self, calc):
        """eGRID subregions in lb/MWh are normalised to kg/kWh."""
        grid = calc.get_grid_factor("US", "CAMX")
        assert grid.resolution == "subregion"
        assert grid.original_unit == "lbCO2e/MWh"
        assert grid.factor_kg_per_kwh == pytest.approx(497.4 * LB_TO_KG / 1000)

    def test_tonnes_per_mwh(self, calc):
        """t/MWh is numerically equal to kg/kWh."""
        assert calc.get_grid_factor("GB").factor_kg_per_kwh == pytest.approx(0.207)

    def test_case_insensitive_codes(self, calc):
        """Region and subregion codes are case-insensitive."""
        assert calc.get_grid_factor("ca", "ab").factor_kg_per_kwh == pytest.approx(0.54)

    def test_unknown_subregion_falls_back(self, calc):
        """An unknown subregion falls back to the region default."""
        grid = calc.get_grid_factor("AU", "ZZZ")
        assert grid.resolution == "region"
        assert grid.subregion is None
        assert grid.factor_kg_per_kwh == pytest.approx(0.68)

    def test_unknown_region(self, calc):
        """An unknown region raises GridFactorNotFound."""
        with pytest.raises(GridFactorNotFound):
            calc.get_grid_factor("ATLANTIS")

    @pytest.mark.parametrize("value,unit,expected", [
        (0.5, "kgCO2e/kWh", 0.5),
        (500, "gCO2/kWh", 0.5),
        (0.5, "tCO2e/MWh", 0.5),
        (1000, "lbCO2e/MWh", 0.453592),
    ])
    def test_normalize(self, calc, value, unit, expected):
        """Supported units normalise to kg CO2e/kWh."""
        assert calc.normalize_grid_factor(value, unit) == pytest.approx(expected)

    def test_normalize_bad_unit(self, calc):
        """Unsupported grid units raise InvalidInput."""
        with pytest.raises(InvalidInput):
            calc.normalize_grid_factor(1, "kgCO2e/therm")

    def test_list_regions(self, calc):
        """Regions are listed with their subregions."""
        regions = {r["code"]: r for r in calc.list_regions()}
        assert regions["US"]["has_subregions"] is True
        assert regions["DE"]["has_subregions"] is False


# ==============================================================================
# Location-based
# ==============================================================================

class TestLocationBased:
    """Tests for location-based electricity."""

    def test_us_100000_kwh(self, calc):
        """100,000 kWh on the US grid is 37.3 t CO2e."""
        result = calc.calculate_location_based(100000, "US")
        assert result.co2e_tonnes == pytest.approx(37.3)
        assert result.co2_kg is None
        assert result.gwp_version is None
        assert result.methodology == LOCATION_METHODOLOGY

    def test_mwh_input(self, calc):
        """MWh consumption is converted to kWh."""
        result = calc.calculate_location_based(100, "US", unit="MWh")
        assert result.details["electricity_kwh"] == pytest.approx(100000)
        assert result.co2e_tonnes == pytest.approx(37.3)

    def test_non_energy_unit(self, calc):
        """Consumption must be an energy quantity."""
        with pytest.raises(UnknownUnit):
            calc.calculate_location_based(100, "US", unit="gallon")

    def test_negative_consumption(self, calc):
        """Negative consumption raises InvalidInput."""
        with pytest.raises(InvalidInput):
            calc.calculate_location_based(-1, "US")

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_consumption(self, calc, value):
        """NaN and infinite consumption raise InvalidInput."""
        with pytest.raises(InvalidInput):
            calc.calculate_location_based(value, "US")


# ==============================================================================
# Market-based and dual reporting
# ==============================================================================

class TestMarketBased:
    """Tests for market-based electricity."""

    def test_rec_carve_out(self, calc):
        """50 MWh of zero-emission RECs leaves 50,000 kWh on the grid."""
        result = calc.calculate_market_based(100000, 0.4, rec_mwh=50)
        assert result.details["grid_kwh"] == pytest.approx(50000)
        assert result.co2e_kg == pytest.approx(20000)
        assert result.methodology == MARKET_METHODOLOGY
        assert result.warnings == []

    def test_residual_factor_wins(self, calc):
        """The residual mix factor replaces the market factor for grid power."""
        result = calc.calculate_market_based(10000, 0.4, residual_factor=0.5)
        assert result.details["effective_grid_factor"] == 0.5
        assert result.co2e_kg == pytest.approx(5000)

    def test_ppa_with_own_factor(self, calc):
        """PPA volumes use their own factor."""
        result = calc.calculate_market_based(10000, 0.4, ppa_mwh=4, ppa_factor=0.1)
        assert result.details["ppa_emissions_kg"] == pytest.approx(400)
        assert result.co2e_kg == pytest.approx(6000 * 0.4 + 400)

    def test_over_contracted(self, calc):
        """Instruments above consumption clamp grid power at zero and warn."""
        result = calc.calculate_market_based(10000, 0.4, rec_mwh=20)
        assert result.details["grid_kwh"] == 0
        assert result.co2e_kg == 0
        assert len(result.warnings) == 1

    def test_negative_factor(self, calc):
        """Negative factors raise InvalidInput."""
        with pytest.raises(InvalidInput):
            calc.calculate_market_based(100, -0.1)


class TestDualReporting:
    """Tests for location and market side by side."""

    def test_reduction(self, calc):
        """Dual reporting reports the market-based reduction."""
        dual = calc.calculate_dual_reporting(100000, "US", market_factor=0.3)
        assert dual.location_based.co2e_kg == pytest.approx(37300)
        assert dual.market_based.co2e_kg == pytest.approx(30000)
        assert dual.reduction_kg == pytest.approx(7300)
        assert dual.reduction_percent == pytest.approx(7300 / 37300 * 100)
        assert dual.methodology == DUAL_METHODOLOGY

    def test_market_factor_defaults_to_grid(self, calc):
        """Without a market factor both methods agree."""
        dual = calc.calculate_dual_reporting(5000, "GB")
        assert dual.reduction_kg == pytest.approx(0)

    def test_explicit_zero_market_factor(self, calc):
        """An explicit zero market factor is honoured."""
        dual = calc.calculate_dual_reporting(5000, "GB", market_factor=0)
        assert dual.market_based.co2e_kg == 0
        assert dual.reduction_percent == pytest.approx(100)

    def test_zero_consumption(self, calc):
        """Zero consumption gives a zero reduction percentage."""
        dual = calc.calculate_dual_reporting(0, "US")
        assert dual.reduction_percent == 0


# ==============================================================================
# Purchased thermal energy
# ==============================================================================

class TestThermalEnergy:
    """Tests for steam, heating and cooling."""

    def test_steam_default_factor(self, calc):
        """Steam uses 66.33 kg CO2e/MMBtu by default."""
        result = calc.calculate_purchased_steam(100)
        assert result.co2e_kg == pytest.approx(6633)
        assert result.source_kind == "steam"

    def test_steam_in_gj_with_factor(self, calc):
        """GJ are converted to MMBtu and a caller factor is used."""
        result = calc.calculate_purchased_steam(100, unit="GJ", emission_factor=50)
        assert result.co2e_kg == pytest.approx(94.7817 * 50)

    def test_cooling(self, calc):
        """Cooling uses its own default factor."""
        result = calc.calculate_purchased_heating_cooling(10, "cooling")
        assert result.co2e_kg == pytest.approx(550)
        assert result.source_kind == "cooling"

    def test_unknown_energy_type(self, calc):
        """Only heating and cooling are accepted."""
        with pytest.raises(InvalidInput):
            calc.calculate_purchased_heating_cooling(10, "plasma")
