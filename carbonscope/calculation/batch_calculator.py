# -*- coding: utf-8 -*-
"""
Facility Batch Calculator

Runs independent facility calculations in parallel.

Features:
- Thread pool execution (each run builds its own result objects, so runs
  never share mutable state)
- Error isolation: one failing facility doesn't stop the batch
- Prometheus batch size and duration when metrics are enabled
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from carbonscope import metrics
from carbonscope.calculation.engine import CalculationEngine
from carbonscope.calculation.models import CalculationInputs, CalculationRun, CalculationSettings
from carbonscope.exceptions import CarbonScopeException, format_exception_chain

logger = logging.getLogger(__name__)


class FacilityFailure(BaseModel):
    """Why one facility in a batch produced no run."""

    model_config = ConfigDict(frozen=True)

    facility_id: str
    error_type: str
    error_code: Optional[str] = None
    message: str


class FacilityBatchResult(BaseModel):
    """
    Result of a facility batch.

    Attributes:
        runs: Completed runs keyed by facility id
        failures: Failed facilities keyed by facility id
        duration_seconds: Wall-clock time for the whole batch
    """

    model_config = ConfigDict(frozen=True)

    runs: Dict[str, CalculationRun] = Field(default_factory=dict)
    failures: Dict[str, FacilityFailure] = Field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def successful_count(self) -> int:
        return len(self.runs)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def total_tonnes(self) -> float:
        """Grand total over successful facilities, in facility-id order."""
        total = 0.0
        for facility_id in sorted(self.runs):
            total += self.runs[facility_id].totals.total_tonnes
        return total

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class FacilityBatchCalculator:
    """Parallel, failure-isolated calculation of many facilities."""

    def __init__(
        self,
        engine: Optional[CalculationEngine] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            engine: Shared calculation engine (auto-creates if None)
            max_workers: Worker threads (defaults to ThreadPoolExecutor's choice)
        """
        self.engine = engine or CalculationEngine()
        self.max_workers = max_workers

    @classmethod
    def from_config(
        cls,
        config: Any = None,
        engine: Optional[CalculationEngine] = None,
    ) -> FacilityBatchCalculator:
        """Build a calculator sized by ``max_batch_workers`` (the singleton config by default)."""
        if config is None:
            from carbonscope.config import get_config
            config = get_config()
        return cls(engine, max_workers=config.max_batch_workers)

    def calculate_facilities(
        self,
        inputs_by_facility: Mapping[str, Union[CalculationInputs, Dict[str, Any]]],
        settings: Optional[CalculationSettings] = None,
        max_workers: Optional[int] = None,
        calculated_at: Optional[datetime] = None,
    ) -> FacilityBatchResult:
        """
        Calculate every facility with the same settings.

        Args:
            inputs_by_facility: ``{facility_id: inputs}``
            settings: Shared settings for every run
            max_workers: Overrides the calculator's worker count
            calculated_at: Timestamp stamped on every run (default: now)

        Returns:
            FacilityBatchResult with runs and failures keyed by facility id

        Example:
            >>> batch = FacilityBatchCalculator(max_workers=4)
            >>> result = batch.calculate_facilities({
            ...     "well-pad-7": {"scope2": {"electricity": 50000, "region": "US"}},
            ...     "gas-plant-2": {"scope2": {"electricity": 90000, "region": "CA"}},
            ... })
            >>> result.successful_count
            2
        """
        settings = settings or CalculationSettings()
        workers = max_workers or self.max_workers
        start = time.monotonic()
        runs: Dict[str, CalculationRun] = {}
        failures: Dict[str, FacilityFailure] = {}

        logger.info("Starting facility batch: %d facilities", len(inputs_by_facility))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_facility = {
                executor.submit(
                    self.engine.run,
                    _with_facility_id(facility_id, inputs),
                    settings,
                    calculated_at,
                ): facility_id
                for facility_id, inputs in inputs_by_facility.items()
            }
            for future in as_completed(future_to_facility):
                facility_id = future_to_facility[future]
                try:
                    runs[facility_id] = future.result()
                except CarbonScopeException as exc:
                    logger.error(
                        "Facility %s failed:\n%s", facility_id, format_exception_chain(exc),
                    )
                    failures[facility_id] = FacilityFailure(
                        facility_id=facility_id,
                        error_type=type(exc).__name__,
                        error_code=exc.error_code,
                        message=exc.message,
                    )
                except (ValueError, LookupError, TypeError) as exc:
                    logger.error(
                        "Facility %s failed:\n%s", facility_id, format_exception_chain(exc),
                    )
                    failures[facility_id] = FacilityFailure(
                        facility_id=facility_id,
                        error_type=type(exc).__name__,
                        message=str(exc),
                    )

        duration = time.monotonic() - start
        logger.info(
            "Facility batch complete: %d succeeded, %d failed in %.3fs",
            len(runs), len(failures), duration,
        )
        if settings.enable_metrics:
            metrics.observe_batch_size(len(inputs_by_facility))
            metrics.observe_duration("facility_batch", duration)

        return FacilityBatchResult(
            runs={k: runs[k] for k in sorted(runs)},
            failures={k: failures[k] for k in sorted(failures)},
            duration_seconds=duration,
        )


def _with_facility_id(
    facility_id: str,
    inputs: Union[CalculationInputs, Dict[str, Any]],
) -> Union[CalculationInputs, Dict[str, Any]]:
    """Default a missing facility_id to the batch key."""
    if isinstance(inputs, CalculationInputs):
        if inputs.facility_id is None:
            return inputs.model_copy(update={"facility_id": facility_id})
        return inputs
    if isinstance(inputs, Mapping) and not inputs.get("facility_id"):
        return {**inputs, "facility_id": facility_id}
    return inputs


__all__ = ["FacilityBatchCalculator", "FacilityBatchResult", "FacilityFailure"]
