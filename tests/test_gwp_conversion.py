"""Tests for GWP conversion across AR4, AR5 and AR6."""

import pytest

from carbonscope.calculation.gwp_conversion import GWPConverter, normalize_gas_key
from carbonscope.calculation.models import EmissionsVector
from carbonscope.exceptions import InvalidInput, UnknownGasType, UnknownGWPVersion


@pytest.fixture
def gwp(reference):
    return GWPConverter(reference)


# ==============================================================================
# Gas keys and multipliers
# ==============================================================================

class TestGasKeys:
    """Tests for alias normalisation and GWP lookup."""

    @pytest.mark.parametrize("alias", ["CH4", "ch4", "methane", "Methane", "CH4_fossil"])
    def test_methane_aliases(self, alias):
        """Methane spellings resolve to CH4_fossil."""
        assert normalize_gas_key(alias) == "CH4_fossil"

    def test_unknown_alias_passes_through(self):
        """Unmapped gases are returned unchanged."""
        assert normalize_gas_key("HFC_134a") == "HFC_134a"

    @pytest.mark.parametrize("version,ch4,n2o", [
        ("AR4", 25, 298),
        ("AR5", 28, 265),
        ("AR6", 29.8, 273),
    ])
    def test_table_values(self, gwp, version, ch4, n2o):
        """Each report carries its published CH4 and N2O multipliers."""
        assert gwp.get_gwp("CH4", version) == ch4
        assert gwp.get_gwp("N2O", version) == n2o
        assert gwp.get_gwp("CO2", version) == 1

    def test_version_is_case_insensitive(self, gwp):
        """Version keys are normalised."""
        assert gwp.get_gwp("methane", "ar6") == 29.8

    def test_unknown_version(self, gwp):
        """Unknown versions raise UnknownGWPVersion."""
        with pytest.raises(UnknownGWPVersion):
            gwp.get_gwp("CH4", "AR99")

    def test_unknown_gas(self, gwp):
        """Unknown gases raise UnknownGasType."""
        with pytest.raises(UnknownGasType):
            gwp.get_gwp("unobtainium", "AR5")


# ==============================================================================
# Conversion
# ==============================================================================

class TestConvertToCO2e:
    """Tests for single-gas and multi-gas conversion."""

    def test_single_gas(self, gwp):
        """1 tonne CH4 under AR5 is 28 tonnes CO2e."""
        result = gwp.convert_to_co2e(1, "CH4", "AR5", input_unit="tonnes")
        assert result.amount_kg == 1000
        assert result.co2e_kg == 28000
        assert result.co2e_tonnes == 28
        assert result.gas_key == "CH4_fossil"

    def test_negative_amount(self, gwp):
        """Negative gas amounts raise InvalidInput."""
        with pytest.raises(InvalidInput):
            gwp.convert_to_co2e(-1, "CO2", "AR5")

    def test_bad_input_unit(self, gwp):
        """Only kg and tonnes are accepted."""
        with pytest.raises(InvalidInput):
            gwp.convert_to_co2e(1, "CO2", "AR5", input_unit="lb")

    def test_aggregate_vector(self, gwp):
        """A three-gas vector sums to CO2 + CH4*GWP + N2O*GWP."""
        vector = EmissionsVector(co2_kg=1000, ch4_kg=10, n2o_kg=1)
        result = gwp.aggregate_to_co2e(vector, "AR5")
        assert result.co2e_kg == pytest.approx(1000 + 10 * 28 + 1 * 265)
        assert set(result.breakdown) == {"CO2", "CH4_fossil", "N2O"}
        assert result.gwp_version == "AR5"
        assert result.time_horizon == 100

    def test_aggregate_skips_zero(self, gwp):
        """Zero amounts are left out of the breakdown."""
        result = gwp.aggregate_to_co2e({"CO2": 5, "CH4": 0}, "AR5")
        assert list(result.breakdown) == ["CO2"]

    def test_aggregate_unknown_gas_raises(self, gwp):
        """Unknown gases are not silently dropped."""
        with pytest.raises(UnknownGasType):
            gwp.aggregate_to_co2e({"CO2": 5, "XYZ": 1}, "AR5")

    def test_build_source_result_identity(self, gwp):
        """SourceResult CO2e equals the gas-weighted sum."""
        vector = EmissionsVector(co2_kg=500, ch4_kg=2, n2o_kg=0.5)
        result = gwp.build_source_result("flaring", vector, "AR6", "test")
        assert result.co2e_kg == pytest.approx(500 + 2 * 29.8 + 0.5 * 273)
        assert result.co2e_tonnes == pytest.approx(result.co2e_kg / 1000)
        assert result.gwp_version == "AR6"


# ==============================================================================
# Comparison and listing
# ==============================================================================

class TestComparison:
    """Tests for compare_versions and table listing."""

    def test_ar6_exceeds_ar5_for_methane(self, gwp):
        """Fossil methane weighs more under AR6 than AR5."""
        comparison = gwp.compare_versions({"CH4": 1000}, "AR5", "AR6")
        assert comparison.base_tonnes == pytest.approx(28)
        assert comparison.compare_tonnes == pytest.approx(29.8)
        assert comparison.difference_percent == pytest.approx((29.8 - 28) / 28 * 100)

    def test_zero_base_has_no_percent(self, gwp):
        """A zero base total gives no percentage."""
        comparison = gwp.compare_versions({"CO2": 0}, "AR5", "AR6")
        assert comparison.difference_percent is None

    def test_list_versions(self, gwp):
        """AR5 is the single default table."""
        versions = {v["version"]: v for v in gwp.list_versions()}
        assert set(versions) == {"AR4", "AR5", "AR6"}
        assert versions["AR5"]["default"] is True
        assert versions["AR4"]["deprecated"] is True

    def test_get_table_sorted(self, gwp):
        """Table rows are sorted by descending GWP."""
        rows = gwp.get_table("AR5")
        assert rows[0]["gas"] == "SF6"
        assert rows[-1]["gas"] == "CO2"
