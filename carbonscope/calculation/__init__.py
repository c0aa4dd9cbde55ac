# -*- coding: utf-8 -*-
"""
CarbonScope Calculation Engine

Deterministic GHG calculations for oil & gas operations across Scopes
1, 2 and 3.

Key Guarantees:
- DETERMINISTIC: Same inputs and GWP version -> bit-identical results
- NO AMBIENT STATE: GWP version and region are explicit arguments
- PARTIAL FAILURE: aggregate calculators skip and report bad rows
- FULL PROVENANCE: SHA-256 hash over every CalculationRun

Components:
- UnitConverter: Decimal-based unit conversions with fuel heating values
- GWPConverter: AR4/AR5/AR6 CO2e conversion
- Scope1Calculator: Stationary and mobile combustion
- FlaringCalculator: 40 CFR 98.253 default and composition methods
- FugitiveCalculator: Equipment leaks, venting, pneumatic devices
- Scope2Calculator: Location-based, market-based, dual reporting, thermal
- Scope3Calculator: Categories 3, 4, 9, 10 and 11
- IntensityCalculator: Intensity metrics and regulatory thresholds
- CalculationEngine: One facility -> CalculationRun
- FacilityBatchCalculator: Many facilities in parallel
"""

from carbonscope.calculation.reference_data import (
    ReferenceData,
    get_reference_data,
    set_reference_data,
    reset_reference_data,
)

from carbonscope.calculation.unit_converter import UnitConverter
from carbonscope.calculation.gwp_conversion import GWPConverter, normalize_gas_key

from carbonscope.calculation.models import (
    SourceKind,
    Scope,
    EmissionsVector,
    SkippedEntry,
    BreakdownItem,
    SourceResult,
    ScopeTotal,
    RunTotals,
    DualReportingResult,
    IntensityResult,
    IntensityReport,
    ThresholdBreach,
    CalculationInputs,
    CalculationSettings,
    CalculationRun,
)

from carbonscope.calculation.scope1_calculator import Scope1Calculator
from carbonscope.calculation.flaring_calculator import FlaringCalculator
from carbonscope.calculation.fugitive_calculator import FugitiveCalculator
from carbonscope.calculation.scope2_calculator import Scope2Calculator
from carbonscope.calculation.scope3_calculator import Scope3Calculator
from carbonscope.calculation.intensity import IntensityCalculator

from carbonscope.calculation.engine import CalculationEngine

from carbonscope.calculation.batch_calculator import (
    FacilityBatchCalculator,
    FacilityBatchResult,
    FacilityFailure,
)

__all__ = [
    # Reference data
    "ReferenceData",
    "get_reference_data",
    "set_reference_data",
    "reset_reference_data",
    # Conversions
    "UnitConverter",
    "GWPConverter",
    "normalize_gas_key",
    # Models
    "SourceKind",
    "Scope",
    "EmissionsVector",
    "SkippedEntry",
    "BreakdownItem",
    "SourceResult",
    "ScopeTotal",
    "RunTotals",
    "DualReportingResult",
    "IntensityResult",
    "IntensityReport",
    "ThresholdBreach",
    "CalculationInputs",
    "CalculationSettings",
    "CalculationRun",
    # Calculators
    "Scope1Calculator",
    "FlaringCalculator",
    "FugitiveCalculator",
    "Scope2Calculator",
    "Scope3Calculator",
    "IntensityCalculator",
    # Orchestration
    "CalculationEngine",
    "FacilityBatchCalculator",
    "FacilityBatchResult",
    "FacilityFailure",
]
