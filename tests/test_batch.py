"""Tests for parallel facility batches."""

import pytest

from carbonscope.calculation.batch_calculator import FacilityBatchCalculator
from carbonscope.calculation.models import CalculationInputs


@pytest.fixture
def batch(engine):
    return FacilityBatchCalculator(engine, max_workers=4)


@pytest.fixture
def facilities():
    return {
        "well-pad-7": {"scope2": {"electricity": 50000, "region": "US"}},
        "gas-plant-2": {"scope2": {"electricity": 90000, "region": "CA", "subregion": "AB"}},
        "compressor-9": {"scope1": {"stationary": [
            {"fuel_type": "naturalGas", "quantity": 300, "unit": "mcf"},
        ]}},
    }


# ==============================================================================
# Successful batches
# ==============================================================================

class TestFacilityBatch:
    """Tests for FacilityBatchCalculator.calculate_facilities."""

    def test_all_facilities_run(self, batch, facilities, settings, fixed_time):
        """Every facility produces a run keyed by its id."""
        result = batch.calculate_facilities(facilities, settings, calculated_at=fixed_time)
        assert result.successful_count == 3
        assert result.failed_count == 0
        assert list(result.runs) == sorted(facilities)

    def test_matches_sequential_runs(self, batch, engine, facilities, settings, fixed_time):
        """Parallel results equal one-at-a-time engine runs."""
        result = batch.calculate_facilities(facilities, settings, calculated_at=fixed_time)
        for facility_id, inputs in facilities.items():
            single = engine.run({**inputs, "facility_id": facility_id}, settings, fixed_time)
            assert result.runs[facility_id].provenance_hash == single.provenance_hash

    def test_facility_id_defaults_to_key(self, batch, facilities, settings):
        """Runs inherit the batch key as their facility id."""
        result = batch.calculate_facilities(facilities, settings)
        assert result.runs["gas-plant-2"].facility_id == "gas-plant-2"

    def test_explicit_facility_id_kept(self, batch, settings):
        """A facility id inside the inputs is not overwritten."""
        inputs = CalculationInputs(facility_id="FAC-001")
        result = batch.calculate_facilities({"row-1": inputs}, settings)
        assert result.runs["row-1"].facility_id == "FAC-001"

    def test_total_tonnes(self, batch, facilities, settings):
        """The batch total is the sum of facility totals."""
        result = batch.calculate_facilities(facilities, settings)
        expected = sum(r.totals.total_tonnes for r in result.runs.values())
        assert result.total_tonnes == pytest.approx(expected)

    def test_empty_batch(self, batch, settings):
        """An empty batch succeeds with nothing in it."""
        result = batch.calculate_facilities({}, settings)
        assert result.successful_count == 0
        assert result.total_tonnes == 0


# ==============================================================================
# Failure isolation
# ==============================================================================

class TestFailureIsolation:
    """Tests for per-facility error isolation."""

    def test_one_failure_does_not_stop_batch(self, batch, facilities, settings):
        """A failing facility is reported while the rest complete."""
        facilities["atlantis"] = {"scope2": {"electricity": 1, "region": "ATLANTIS"}}
        result = batch.calculate_facilities(facilities, settings)
        assert result.successful_count == 3
        failure = result.failures["atlantis"]
        assert failure.error_type == "GridFactorNotFound"
        assert failure.error_code == "CS_CALC_GRID_FACTOR_NOT_FOUND"

    def test_invalid_inputs_reported(self, batch, settings):
        """Unparseable inputs fail only their facility."""
        result = batch.calculate_facilities(
            {"bad": {"scope1": {"mobile": 42}}, "good": {}}, settings,
        )
        assert set(result.runs) == {"good"}
        assert result.failures["bad"].error_code == "CS_CALC_INVALID_INPUT"

    def test_to_dict(self, batch, settings):
        """Batch results serialise to plain data."""
        result = batch.calculate_facilities({"good": {}}, settings)
        data = result.to_dict()
        assert set(data) == {"runs", "failures", "duration_seconds"}
        assert data["runs"]["good"]["facility_id"] == "good"
