"""Tests for 40 CFR 98.253 flaring calculations."""

import pytest

from carbonscope.calculation.flaring_calculator import (
    COMPOSITION_METHODOLOGY,
    DEFAULT_METHODOLOGY,
    FlaringCalculator,
)
from carbonscope.exceptions import InvalidInput, UnknownComponentType


@pytest.fixture
def calc(reference, converter):
    return FlaringCalculator(reference, converter)


# ==============================================================================
# Default method (Equation Y-2)
# ==============================================================================

class TestDefaultMethod:
    """Tests for the default-factor method."""

    def test_ten_mmscf(self, calc):
        """10 MMscf at 1000 MMBtu/MMscf, 59 kg/MMBtu and 98% efficiency."""
        result = calc.calculate_default(10, "AR5")

        assert result.co2_kg == pytest.approx(578200)
        uncombusted_c = 578200 * 12 / 44 / 0.98 * 0.02
        assert result.ch4_kg == pytest.approx(uncombusted_c * 0.4 * 16 / 12)
        assert result.n2o_kg == pytest.approx(0.6)
        assert result.details["total_energy_mmbtu"] == pytest.approx(10000)
        assert result.methodology == DEFAULT_METHODOLOGY

    def test_co2e_identity(self, calc):
        """CO2e is CO2 + CH4*28 + N2O*265 under AR5."""
        result = calc.calculate_default(10, "AR5")
        expected = result.co2_kg + result.ch4_kg * 28 + result.n2o_kg * 265
        assert result.co2e_kg == pytest.approx(expected)

    def test_custom_hhv_and_efficiency(self, calc):
        """Caller HHV and efficiency override the defaults."""
        result = calc.calculate_default(1, "AR5", hhv=1200, combustion_efficiency=0.95)
        assert result.co2_kg == pytest.approx(1200 * 59 * 0.95)
        assert result.details["combustion_efficiency"] == 0.95

    def test_full_efficiency_has_no_methane(self, calc):
        """At 100% efficiency no carbon is left uncombusted."""
        result = calc.calculate_default(5, "AR5", combustion_efficiency=1.0)
        assert result.ch4_kg == 0

    def test_zero_volume(self, calc):
        """Zero volume gives zero emissions."""
        result = calc.calculate_default(0, "AR5")
        assert result.co2e_kg == 0

    @pytest.mark.parametrize("efficiency", [-0.1, 1.5])
    def test_efficiency_out_of_range(self, calc, efficiency):
        """Efficiency outside [0, 1] raises InvalidInput."""
        with pytest.raises(InvalidInput):
            calc.calculate_default(1, "AR5", combustion_efficiency=efficiency)

    def test_negative_volume(self, calc):
        """Negative volumes raise InvalidInput."""
        with pytest.raises(InvalidInput):
            calc.calculate_default(-1, "AR5")

    def test_non_positive_hhv(self, calc):
        """HHV must be positive."""
        with pytest.raises(InvalidInput):
            calc.calculate_default(1, "AR5", hhv=0)


# ==============================================================================
# Composition method (Equation Y-1)
# ==============================================================================

class TestCompositionMethod:
    """Tests for the gas composition method."""

    def test_pure_methane(self, calc):
        """849,500 scf of methane is 16,040 mol-weighted kg of gas."""
        result = calc.calculate_with_composition(
            849500, {"methane": 1.0}, "AR5", combustion_efficiency=1.0,
        )
        assert result.co2_kg == pytest.approx(16.04 * 44 / 12)
        assert result.ch4_kg == 0
        assert result.n2o_kg == 0
        assert result.methodology == COMPOSITION_METHODOLOGY
        assert result.warnings == []

    def test_zero_efficiency_uses_potential_carbon(self, calc):
        """With nothing combusted all potential carbon becomes uncombusted."""
        result = calc.calculate_with_composition(
            849500, {"methane": 1.0}, "AR5", combustion_efficiency=0.0,
        )
        assert result.co2_kg == 0
        assert result.details["uncombusted_carbon_kg"] == pytest.approx(16.04)
        assert result.ch4_kg == pytest.approx(16.04 * 0.4 * 16 / 12)

    def test_list_form_with_explicit_properties(self, calc):
        """Components not in the catalogue can carry their own properties."""
        composition = [
            {"component": "methane", "mole_fraction": 0.9},
            {"component": "hexane", "mole_fraction": 0.1, "molecular_weight": 86.18, "carbon_atoms": 6},
        ]
        result = calc.calculate_with_composition(1_000_000, composition, "AR5")
        components = {c["component"]: c for c in result.details["component_results"]}
        assert set(components) == {"methane", "hexane"}
        assert components["hexane"]["carbon_atoms"] == 6

    def test_inert_components_add_no_co2(self, calc):
        """Components without carbon contribute nothing."""
        result = calc.calculate_with_composition(
            100000, {"n2": 0.5, "methane": 0.5}, "AR5", combustion_efficiency=1.0,
        )
        components = {c["component"]: c for c in result.details["component_results"]}
        assert components["n2"]["co2_kg"] == 0
        assert result.co2_kg == pytest.approx(components["methane"]["co2_kg"])

    def test_fraction_sum_warning(self, calc):
        """Mole fractions far from 1 produce a warning, not an error."""
        result = calc.calculate_with_composition(1000, {"methane": 0.5}, "AR5")
        assert len(result.warnings) == 1
        assert "0.5000" in result.warnings[0]

    def test_default_composition(self, calc):
        """The reference composition sums to one."""
        composition = calc.default_gas_composition()
        assert sum(c["mole_fraction"] for c in composition) == pytest.approx(1.0)
        result = calc.calculate_with_composition(1000, composition, "AR5")
        assert result.warnings == []

    def test_unknown_component(self, calc):
        """An uncatalogued component without properties is rejected."""
        with pytest.raises(UnknownComponentType):
            calc.calculate_with_composition(1000, {"unobtainium": 1.0}, "AR5")

    def test_bad_mole_fraction(self, calc):
        """Mole fractions above 1 are invalid."""
        with pytest.raises(InvalidInput):
            calc.calculate_with_composition(1000, {"methane": 1.5}, "AR5")

    def test_empty_composition(self, calc):
        """An empty composition is invalid."""
        with pytest.raises(InvalidInput):
            calc.calculate_with_composition(1000, [], "AR5")


# ==============================================================================
# Helpers
# ==============================================================================

class TestVolumeConversion:
    """Tests for flare volume conversion."""

    def test_mcf_to_mmscf(self, calc):
        """1000 Mcf is 1 MMscf."""
        assert calc.convert_volume(1000, "Mcf", "MMscf") == pytest.approx(1.0)
