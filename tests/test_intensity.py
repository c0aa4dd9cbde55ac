"""Tests for intensity metrics and regulatory thresholds."""

import pytest

from carbonscope.calculation.intensity import IntensityCalculator, scope_breakdown
from carbonscope.calculation.models import ProductionData, RunTotals


@pytest.fixture
def calc(reference, converter):
    return IntensityCalculator(reference, converter)


# ==============================================================================
# Carbon intensity
# ==============================================================================

class TestCarbonIntensity:
    """Tests for kg CO2e per BOE."""

    @pytest.mark.parametrize("tonnes,rating", [
        (100, "excellent"),
        (170, "good"),
        (200, "average"),
        (300, "below_average"),
    ])
    def test_ratings(self, calc, tonnes, rating):
        """Ratings follow the upstream quartiles at 10,000 BOE."""
        result = calc.carbon_intensity(tonnes, 10000)
        assert result.intensity == pytest.approx(tonnes * 1000 / 10000)
        assert result.rating == rating
        assert result.unit == "kgCO2e/BOE"

    @pytest.mark.parametrize("production", [0, -10, None])
    def test_undefined_without_production(self, calc, production):
        """Zero, negative or missing production soft-fails."""
        result = calc.carbon_intensity(100, production)
        assert result.intensity is None
        assert result.error == "Production must be greater than zero"

    @pytest.mark.parametrize("production", [float("nan"), float("inf")])
    def test_undefined_with_non_finite_production(self, calc, production):
        """NaN or infinite production soft-fails."""
        assert calc.carbon_intensity(100, production).intensity is None


# ==============================================================================
# Methane, flaring and revenue intensity
# ==============================================================================

class TestOtherIntensities:
    """Tests for methane, flaring and revenue metrics."""

    def test_methane_intensity(self, calc):
        """1 t CH4 against 10,000 Mcf is 0.5238% of marketed gas."""
        result = calc.methane_intensity(1, 10000)
        assert result.intensity == pytest.approx(0.5238)
        assert result.details["targets"]["OGCI_2025"] == {"target": 0.25, "met": False}

    def test_methane_target_met(self, calc):
        """Low methane meets every target."""
        result = calc.methane_intensity(0.1, 100000)
        assert all(t["met"] for t in result.details["targets"].values())

    def test_methane_without_gas(self, calc):
        """Zero gas production soft-fails."""
        result = calc.methane_intensity(1, 0)
        assert result.error == "Gas production must be greater than zero"

    def test_flaring_intensity(self, calc):
        """1 Mcf over 10 BOE is 2.83 m3/BOE, rated good."""
        result = calc.flaring_intensity(1, 10)
        assert result.intensity == pytest.approx(28.3168 / 10)
        assert result.rating == "good"

    def test_zero_flaring(self, calc):
        """No flared gas is rated zero_flaring."""
        assert calc.flaring_intensity(0, 1000).rating == "zero_flaring"

    def test_negative_flaring_soft_fails(self, calc):
        """Negative flare volumes return an error instead of raising."""
        result = calc.flaring_intensity(-1, 1000)
        assert result.intensity is None
        assert result.error is not None

    def test_revenue_intensity(self, calc):
        """Tonnes per million of revenue."""
        result = calc.revenue_intensity(500, 20)
        assert result.intensity == 25
        assert calc.revenue_intensity(500, 0).error == "Revenue must be greater than zero"


# ==============================================================================
# Report and breakdown
# ==============================================================================

class TestIntensityReport:
    """Tests for calculate_all and scope_breakdown."""

    def test_only_supplied_metrics(self, calc):
        """Metrics without inputs are None."""
        totals = RunTotals.from_scopes(80, 20)
        report = calc.calculate_all(ProductionData(production_boe=10000), totals)
        assert report.carbon_intensity.intensity == pytest.approx(10)
        assert report.methane_intensity is None
        assert report.flaring_intensity is None
        assert report.revenue_intensity is None
        assert report.scope_breakdown["scope1_percent"] == pytest.approx(80)

    def test_all_metrics(self, calc):
        """Every metric is produced when all inputs are present."""
        production = ProductionData(
            production_boe=10000, gas_production_mcf=5000, revenue_million=2,
            ch4_tonnes=0.5, flaring_volume_mcf=10,
        )
        report = calc.calculate_all(production, RunTotals.from_scopes(100, 0))
        assert report.methane_intensity is not None
        assert report.flaring_intensity is not None
        assert report.revenue_intensity.intensity == 50

    def test_breakdown_percentages(self):
        """Percentages split the grand total."""
        split = scope_breakdown(RunTotals.from_scopes(50, 25, 25))
        assert split == {
            "scope1_percent": 50.0,
            "scope2_percent": 25.0,
            "scope3_percent": 25.0,
            "scope1and2_percent": 75.0,
        }

    def test_breakdown_zero_total(self):
        """A zero total gives zero percentages."""
        split = scope_breakdown(RunTotals.from_scopes(0, 0))
        assert set(split.values()) == {0.0}


# ==============================================================================
# Regulatory thresholds
# ==============================================================================

class TestThresholds:
    """Tests for reporting threshold checks."""

    def test_below_everything(self, calc):
        """Small facilities breach nothing."""
        assert calc.check_regulatory_thresholds(24999, 24999) == []

    def test_limit_is_inclusive(self, calc):
        """Exactly reaching a limit counts as a breach."""
        breaches = calc.check_regulatory_thresholds(25000, 0)
        assert [b.threshold_id for b in breaches] == ["EPA_GHGRP"]
        assert breaches[0].unit == "tonnes CO2e"

    def test_safeguard_uses_scope1(self, calc):
        """The Safeguard Mechanism is judged on Scope 1 alone."""
        breaches = calc.check_regulatory_thresholds(150000, 40000)
        assert "AU_Safeguard" not in [b.threshold_id for b in breaches]

        breaches = calc.check_regulatory_thresholds(150000, 100000)
        safeguard = [b for b in breaches if b.threshold_id == "AU_Safeguard"][0]
        assert safeguard.basis == "scope1"
        assert safeguard.value_tonnes == 100000
        assert safeguard.unit == "tonnes CO2e Scope 1"
