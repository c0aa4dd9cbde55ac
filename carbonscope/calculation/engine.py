# -*- coding: utf-8 -*-
"""
Calculation Engine - one facility, one reporting period

Orchestrates the source calculators into a single immutable
CalculationRun through five stages:

    1. VALIDATE   - Input parsing and GWP version check
    2. SCOPE 1    - Combustion, flaring, venting, fugitive, pneumatic
    3. SCOPE 2    - Location-based electricity (plus market-based dual
                    reporting when instruments are given), purchased thermal
    4. SCOPE 3    - Optional value-chain categories
    5. ASSEMBLE   - Totals, intensity metrics, thresholds, provenance hash

Settings (GWP version, default region) arrive as an explicit
CalculationSettings argument; the engine never reads global configuration.
Scope 2 totals use the location-based figure.

Example:
    >>> engine = CalculationEngine()
    >>> run = engine.run(
    ...     {"scope2": {"electricity": 100000, "region": "US"}},
    ...     CalculationSettings(gwp_version="AR5"),
    ... )
    >>> run.totals.scope2_tonnes
    37.3
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from carbonscope import metrics
from carbonscope._version import __version__
from carbonscope.calculation.flaring_calculator import FlaringCalculator
from carbonscope.calculation.fugitive_calculator import FugitiveCalculator
from carbonscope.calculation.gwp_conversion import GWPConverter
from carbonscope.calculation.intensity import IntensityCalculator
from carbonscope.calculation.models import (
    CalculationInputs,
    CalculationRun,
    CalculationSettings,
    DualReportingResult,
    FlaringInput,
    FugitiveInput,
    ProductionData,
    RunTotals,
    Scope,
    Scope1Inputs,
    Scope2Inputs,
    ScopeTotal,
    SourceKind,
    SourceResult,
)
from carbonscope.calculation.reference_data import ReferenceData, get_reference_data
from carbonscope.calculation.scope1_calculator import Scope1Calculator
from carbonscope.calculation.scope2_calculator import Scope2Calculator
from carbonscope.calculation.scope3_calculator import Scope3Calculator
from carbonscope.calculation.unit_converter import UnitConverter
from carbonscope.exceptions import InvalidInput

logger = logging.getLogger(__name__)


class CalculationEngine:
    """
    Facility-level orchestrator.

    Holds no per-run state: one engine can serve concurrent runs from
    several threads.
    """

    def __init__(self, reference: Optional[ReferenceData] = None):
        self.reference = reference or get_reference_data()
        self.unit_converter = UnitConverter(self.reference)
        self.gwp = GWPConverter(self.reference)
        self.scope1 = Scope1Calculator(self.reference, self.unit_converter, self.gwp)
        self.flaring = FlaringCalculator(self.reference, self.unit_converter, self.gwp)
        self.fugitive = FugitiveCalculator(self.reference, self.unit_converter, self.gwp)
        self.scope2 = Scope2Calculator(self.reference, self.unit_converter)
        self.scope3 = Scope3Calculator(self.reference, self.unit_converter)
        self.intensity = IntensityCalculator(self.reference, self.unit_converter)

    def run(
        self,
        inputs: Union[CalculationInputs, Dict[str, Any]],
        settings: Optional[CalculationSettings] = None,
        calculated_at: Optional[datetime] = None,
    ) -> CalculationRun:
        """
        Calculate every supplied scope for one facility.

        Args:
            inputs: CalculationInputs or an equivalent plain mapping
            settings: GWP version, default region, metrics toggle
            calculated_at: Timestamp to stamp on the run (default: now, UTC)

        Returns:
            CalculationRun stamped with its provenance hash

        Raises:
            InvalidInput: If ``inputs`` cannot be parsed, or a single-entry
                input (flaring, fugitive average) is invalid
            UnknownGWPVersion: If the settings name an unknown GWP table
            CalculationException: Other typed lookup failures of single-entry
                inputs (unknown facility type, missing grid factor, ...)
        """
        settings = settings or CalculationSettings()
        start = time.monotonic()
        try:
            run = self._run(inputs, settings, calculated_at)
        except Exception:
            if settings.enable_metrics:
                metrics.record_run(settings.gwp_version, "failed")
            raise

        if settings.enable_metrics:
            self._record_metrics(run, settings, time.monotonic() - start)
        return run

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(
        self,
        inputs: Union[CalculationInputs, Dict[str, Any]],
        settings: CalculationSettings,
        calculated_at: Optional[datetime],
    ) -> CalculationRun:
        # Stage 1: validate
        inputs = _parse_inputs(inputs)
        gwp_version = self.reference.get_gwp_table(settings.gwp_version).version
        logger.info(
            "Calculating facility %s with %s, region %s",
            inputs.facility_id or "<unnamed>", gwp_version, settings.region,
        )

        # Stages 2-4: scopes
        scope1 = self.calculate_scope1(inputs.scope1, gwp_version, inputs.production)
        scope2, dual = self.calculate_scope2(inputs.scope2, settings.region)
        scope3 = self.scope3.calculate_total(inputs.scope3) if inputs.scope3 is not None else None

        # Stage 5: assemble
        totals = RunTotals.from_scopes(
            scope1.co2e_tonnes,
            scope2.co2e_tonnes,
            scope3.co2e_tonnes if scope3 is not None else 0.0,
        )
        intensity = None
        if inputs.production is not None:
            production = self._complete_production(inputs.production, inputs.scope1, scope1)
            intensity = self.intensity.calculate_all(production, totals)
        breaches = self.intensity.check_regulatory_thresholds(totals.total_tonnes, totals.scope1_tonnes)

        run = CalculationRun(
            facility_id=inputs.facility_id,
            totals=totals,
            scope1=scope1,
            scope2=scope2,
            scope3=scope3,
            scope2_dual_reporting=dual,
            intensity=intensity,
            threshold_breaches=breaches,
            gwp_version=gwp_version,
            region=settings.region,
            calculated_at=calculated_at or datetime.now(timezone.utc),
            engine_version=__version__,
        ).with_provenance()

        logger.info(
            "Facility %s total %.3f t CO2e (S1 %.3f, S2 %.3f, S3 %.3f)",
            inputs.facility_id or "<unnamed>", totals.total_tonnes,
            totals.scope1_tonnes, totals.scope2_tonnes, totals.scope3_tonnes,
        )
        return run

    def calculate_scope1(
        self,
        scope1: Scope1Inputs,
        gwp_version: str,
        production: Optional[ProductionData] = None,
    ) -> ScopeTotal:
        """Scope 1 total over every supplied source."""
        by_source: Dict[str, SourceResult] = {}
        if scope1.stationary:
            by_source[SourceKind.STATIONARY_COMBUSTION.value] = (
                self.scope1.calculate_total_stationary_combustion(scope1.stationary, gwp_version)
            )
        if scope1.mobile:
            by_source[SourceKind.MOBILE_COMBUSTION.value] = (
                self.scope1.calculate_total_mobile_combustion(scope1.mobile, gwp_version)
            )
        if scope1.flaring is not None:
            by_source[SourceKind.FLARING.value] = self._flaring(scope1.flaring, gwp_version)
        if scope1.venting is not None:
            by_source[SourceKind.VENTING.value] = self.fugitive.calculate_venting(
                scope1.venting.sources, gwp_version, scope1.venting.methane_content,
            )
        if scope1.fugitive is not None:
            by_source[SourceKind.FUGITIVE.value] = self._fugitive(scope1.fugitive, gwp_version, production)
        if scope1.pneumatic is not None:
            by_source[SourceKind.PNEUMATIC_DEVICES.value] = self.fugitive.calculate_pneumatic_devices(
                scope1.pneumatic.device_counts, gwp_version, scope1.pneumatic.methane_content,
            )
        return ScopeTotal.from_sources(by_source)

    def calculate_scope2(self, scope2: Scope2Inputs, default_region: str) -> tuple:
        """
        Scope 2 total and, when market instruments are given, dual reporting.

        Returns:
            ``(ScopeTotal, Optional[DualReportingResult])``
        """
        by_source: Dict[str, SourceResult] = {}
        dual: Optional[DualReportingResult] = None
        region = scope2.region or default_region

        if scope2.electricity is not None:
            if scope2.market is not None:
                market = scope2.market
                dual = self.scope2.calculate_dual_reporting(
                    scope2.electricity,
                    region,
                    scope2.subregion,
                    market_factor=market.market_factor,
                    unit=scope2.electricity_unit,
                    rec_mwh=market.rec_mwh,
                    rec_factor=market.rec_factor,
                    ppa_mwh=market.ppa_mwh,
                    ppa_factor=market.ppa_factor,
                    residual_factor=market.residual_factor,
                )
                by_source[SourceKind.ELECTRICITY.value] = dual.location_based
            else:
                by_source[SourceKind.ELECTRICITY.value] = self.scope2.calculate_location_based(
                    scope2.electricity, region, scope2.subregion, scope2.electricity_unit,
                )
        if scope2.steam is not None:
            by_source[SourceKind.STEAM.value] = self.scope2.calculate_purchased_steam(
                scope2.steam, scope2.thermal_unit,
            )
        for energy_type, quantity in (("heating", scope2.heating), ("cooling", scope2.cooling)):
            if quantity is not None:
                by_source[energy_type] = self.scope2.calculate_purchased_heating_cooling(
                    quantity, energy_type, scope2.thermal_unit,
                )
        return ScopeTotal.from_sources(by_source), dual

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _flaring(self, flaring: FlaringInput, gwp_version: str) -> SourceResult:
        if flaring.method == "composition":
            volume_scf = self.unit_converter.convert(flaring.volume, flaring.unit, "scf", category="volume")
            composition = flaring.gas_composition or self.flaring.default_gas_composition()
            return self.flaring.calculate_with_composition(
                volume_scf, composition, gwp_version, flaring.combustion_efficiency,
            )
        volume_mmscf = self.unit_converter.convert(flaring.volume, flaring.unit, "mmscf", category="volume")
        return self.flaring.calculate_default(
            volume_mmscf, gwp_version, flaring.hhv, flaring.combustion_efficiency,
        )

    def _fugitive(
        self,
        fugitive: FugitiveInput,
        gwp_version: str,
        production: Optional[ProductionData],
    ) -> SourceResult:
        if fugitive.method == "average":
            production_boe = fugitive.production_boe
            if production_boe is None and production is not None:
                production_boe = production.production_boe
            if fugitive.facility_type is None or production_boe is None:
                raise InvalidInput(
                    message="Average fugitive method needs facility_type and production_boe",
                    field="fugitive",
                    value=fugitive.model_dump(),
                )
            return self.fugitive.calculate_average_method(
                fugitive.facility_type, production_boe, gwp_version,
            )
        return self.fugitive.calculate_component_count(
            fugitive.components, gwp_version, fugitive.service_type,
        )

    def _complete_production(
        self,
        production: ProductionData,
        scope1_inputs: Scope1Inputs,
        scope1: ScopeTotal,
    ) -> ProductionData:
        """Fill CH4 tonnes and flared volume from the run when not supplied."""
        update: Dict[str, Any] = {}
        if production.ch4_tonnes is None:
            update["ch4_tonnes"] = scope1.ch4_kg / 1000
        if production.flaring_volume_mcf is None and scope1_inputs.flaring is not None:
            flaring = scope1_inputs.flaring
            update["flaring_volume_mcf"] = self.unit_converter.convert(
                flaring.volume, flaring.unit, "mcf", category="volume",
            )
        return production.model_copy(update=update) if update else production

    @staticmethod
    def _record_metrics(run: CalculationRun, settings: CalculationSettings, seconds: float) -> None:
        metrics.record_run(run.gwp_version, "completed")
        metrics.observe_duration("engine_run", seconds)
        scopes = [(Scope.SCOPE1, run.scope1), (Scope.SCOPE2, run.scope2), (Scope.SCOPE3, run.scope3)]
        for scope, total in scopes:
            if total is None:
                continue
            metrics.record_emissions(scope.value, total.co2e_tonnes)
            for source_kind, skipped in total.skipped.items():
                metrics.record_skipped(source_kind, len(skipped))


def _parse_inputs(inputs: Union[CalculationInputs, Dict[str, Any]]) -> CalculationInputs:
    if isinstance(inputs, CalculationInputs):
        return inputs
    try:
        return CalculationInputs.model_validate(inputs)
    except ValidationError as exc:
        raise InvalidInput(
            message=f"Invalid calculation inputs: {exc.error_count()} validation error(s)",
            field="inputs",
            value=None,
            context={"errors": [
                {"loc": ".".join(str(p) for p in e["loc"]), "msg": e["msg"]} for e in exc.errors()
            ]},
        ) from exc


__all__ = ["CalculationEngine"]
