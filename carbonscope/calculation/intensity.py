# -*- coding: utf-8 -*-
"""
Intensity Metrics and Regulatory Thresholds

Normalised metrics (carbon, methane, flaring and revenue intensity)
compared against industry benchmarks, plus threshold checks against
mandatory reporting triggers.

Intensity metrics soft-fail: a zero or negative denominator returns an
IntensityResult with ``intensity=None`` and ``error`` set, because these
metrics are routinely requested before production data is available.
Threshold checks return an empty list when nothing is breached.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional

from carbonscope.calculation.models import (
    IntensityReport,
    IntensityResult,
    ProductionData,
    RunTotals,
    ThresholdBreach,
)
from carbonscope.calculation.reference_data import ReferenceData, get_reference_data
from carbonscope.calculation.unit_converter import UnitConverter

logger = logging.getLogger(__name__)

CARBON_INTENSITY_UNIT = "kgCO2e/BOE"
METHANE_INTENSITY_UNIT = "percent"
FLARING_INTENSITY_UNIT = "m³/BOE"
REVENUE_INTENSITY_UNIT = "tCO2e/million revenue"

_THRESHOLD_UNITS = {"total": "tonnes CO2e", "scope1": "tonnes CO2e Scope 1"}


class IntensityCalculator:
    """Benchmark-rated intensity metrics and reporting threshold checks."""

    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        unit_converter: Optional[UnitConverter] = None,
    ):
        self.reference = reference or get_reference_data()
        self.unit_converter = unit_converter or UnitConverter(self.reference)
        self.benchmarks = self.reference.benchmarks

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def carbon_intensity(self, total_tonnes: float, production_boe: Optional[float]) -> IntensityResult:
        """kg CO2e per barrel of oil equivalent, rated against upstream quartiles."""
        if not _is_positive(production_boe):
            return _undefined("carbon_intensity", CARBON_INTENSITY_UNIT, "Production must be greater than zero")

        intensity = (total_tonnes * 1000) / production_boe
        quartiles = self.benchmarks.carbon_intensity
        if intensity <= quartiles.top25:
            percentile, rating = "Top 25%", "excellent"
        elif intensity <= quartiles.median:
            percentile, rating = "Above median", "good"
        elif intensity <= quartiles.bottom25:
            percentile, rating = "Below median", "average"
        else:
            percentile, rating = "Bottom 25%", "below_average"

        return IntensityResult(
            metric="carbon_intensity",
            intensity=intensity,
            unit=CARBON_INTENSITY_UNIT,
            rating=rating,
            details={
                "total_emissions_tonnes": total_tonnes,
                "production_boe": production_boe,
                "percentile": percentile,
                "industry_average": quartiles.average,
            },
        )

    def methane_intensity(self, ch4_tonnes: float, gas_production_mcf: Optional[float]) -> IntensityResult:
        """Methane emitted as a percentage of marketed gas, against OGCI/OGMP targets."""
        if not _is_positive(gas_production_mcf):
            return _undefined("methane_intensity", METHANE_INTENSITY_UNIT, "Gas production must be greater than zero")

        methane = self.benchmarks.methane_intensity
        ch4_mcf = ch4_tonnes * self.benchmarks.methane_mcf_per_tonne
        intensity = (ch4_mcf / gas_production_mcf) * 100
        return IntensityResult(
            metric="methane_intensity",
            intensity=intensity,
            unit=METHANE_INTENSITY_UNIT,
            details={
                "ch4_tonnes": ch4_tonnes,
                "gas_production_mcf": gas_production_mcf,
                "ch4_equivalent_mcf": ch4_mcf,
                "targets": {
                    name: {"target": target, "met": intensity <= target}
                    for name, target in methane.targets.items()
                },
                "industry_average": methane.industry_average,
                "top_performers": methane.top_performers,
            },
        )

    def flaring_intensity(self, flaring_volume_mcf: float, production_boe: Optional[float]) -> IntensityResult:
        """Cubic metres flared per BOE, rated against the global average."""
        if not _is_positive(production_boe):
            return _undefined("flaring_intensity", FLARING_INTENSITY_UNIT, "Production must be greater than zero")
        if flaring_volume_mcf is None or not math.isfinite(flaring_volume_mcf) or flaring_volume_mcf < 0:
            return _undefined("flaring_intensity", FLARING_INTENSITY_UNIT, "Flaring volume must be non-negative")

        flaring = self.benchmarks.flaring_intensity
        volume_m3 = self.unit_converter.convert(flaring_volume_mcf, "mcf", "m3", category="volume")
        intensity = volume_m3 / production_boe
        if intensity == 0:
            rating = "zero_flaring"
        elif intensity < flaring.global_average / 2:
            rating = "excellent"
        elif intensity < flaring.global_average:
            rating = "good"
        else:
            rating = "above_average"

        return IntensityResult(
            metric="flaring_intensity",
            intensity=intensity,
            unit=FLARING_INTENSITY_UNIT,
            rating=rating,
            details={
                "flaring_volume_mcf": flaring_volume_mcf,
                "flaring_volume_m3": volume_m3,
                "production_boe": production_boe,
                "global_average": flaring.global_average,
                "below_average": intensity < flaring.global_average,
                "world_bank_zrf_target": flaring.world_bank_zrf_target,
            },
        )

    def revenue_intensity(self, total_tonnes: float, revenue_million: Optional[float]) -> IntensityResult:
        """Tonnes CO2e per million of revenue."""
        if not _is_positive(revenue_million):
            return _undefined("revenue_intensity", REVENUE_INTENSITY_UNIT, "Revenue must be greater than zero")
        return IntensityResult(
            metric="revenue_intensity",
            intensity=total_tonnes / revenue_million,
            unit=REVENUE_INTENSITY_UNIT,
            details={"total_emissions_tonnes": total_tonnes, "revenue_million": revenue_million},
        )

    def calculate_all(self, production: ProductionData, totals: RunTotals) -> IntensityReport:
        """
        Every metric the production data supports, plus the scope split.

        A metric is omitted (None) when its inputs were not supplied at all;
        when supplied but non-positive, the metric carries an error instead.
        """
        carbon = methane = flaring = revenue = None
        if production.production_boe is not None:
            carbon = self.carbon_intensity(totals.total_tonnes, production.production_boe)
            if production.flaring_volume_mcf is not None:
                flaring = self.flaring_intensity(production.flaring_volume_mcf, production.production_boe)
        if production.gas_production_mcf is not None and production.ch4_tonnes is not None:
            methane = self.methane_intensity(production.ch4_tonnes, production.gas_production_mcf)
        if production.revenue_million is not None:
            revenue = self.revenue_intensity(totals.total_tonnes, production.revenue_million)

        return IntensityReport(
            carbon_intensity=carbon,
            methane_intensity=methane,
            flaring_intensity=flaring,
            revenue_intensity=revenue,
            scope_breakdown=scope_breakdown(totals),
        )

    # ------------------------------------------------------------------
    # Regulatory thresholds
    # ------------------------------------------------------------------

    def check_regulatory_thresholds(self, total_tonnes: float, scope1_tonnes: float) -> List[ThresholdBreach]:
        """
        Reporting thresholds met or exceeded by this facility.

        A threshold is breached when the value on its basis (total or
        Scope 1 tonnes) is greater than or equal to its limit.
        """
        values = {"total": total_tonnes, "scope1": scope1_tonnes}
        breaches = []
        for threshold in self.benchmarks.thresholds:
            value = values[threshold.basis]
            if value >= threshold.limit_tonnes:
                breaches.append(ThresholdBreach(
                    threshold_id=threshold.id,
                    name=threshold.name,
                    jurisdiction=threshold.jurisdiction,
                    basis=threshold.basis,
                    value_tonnes=value,
                    limit_tonnes=threshold.limit_tonnes,
                    unit=_THRESHOLD_UNITS[threshold.basis],
                    requirement=threshold.requirement,
                ))
        if breaches:
            logger.info(
                "Regulatory thresholds breached: %s", ", ".join(b.threshold_id for b in breaches),
            )
        return breaches


def scope_breakdown(totals: RunTotals) -> Dict[str, float]:
    """Percentage split of the grand total across scopes (zeros when total is 0)."""
    total = totals.total_tonnes

    def percent(value: float) -> float:
        return (value / total) * 100 if total > 0 else 0.0

    return {
        "scope1_percent": percent(totals.scope1_tonnes),
        "scope2_percent": percent(totals.scope2_tonnes),
        "scope3_percent": percent(totals.scope3_tonnes),
        "scope1and2_percent": percent(totals.scope1_tonnes + totals.scope2_tonnes),
    }


def _is_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _undefined(metric: str, unit: str, error: str) -> IntensityResult:
    logger.debug("%s undefined: %s", metric, error)
    return IntensityResult(metric=metric, intensity=None, unit=unit, error=error)


__all__ = ["IntensityCalculator", "scope_breakdown"]
