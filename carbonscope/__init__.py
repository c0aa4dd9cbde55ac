# -*- coding: utf-8 -*-
"""
CarbonScope: GHG Accounting for Oil & Gas Operations
====================================================

Scope 1/2/3 emissions calculation following the GHG Protocol, EPA
40 CFR Part 98 and IPCC GWP tables (AR4/AR5/AR6).

Key Components:
    - config: CarbonScopeConfig with CARBONSCOPE_ env prefix
    - exceptions: Typed error hierarchy (InvalidInput, Unknown*Type, ...)
    - calculation: Calculators, CalculationEngine, FacilityBatchCalculator
    - metrics: Prometheus metrics with cs_ prefix
    - provenance: SHA-256 hashing of calculation runs

Example:
    >>> from carbonscope import CalculationEngine, CalculationSettings
    >>> run = CalculationEngine().run(
    ...     {"scope1": {"stationary": [
    ...         {"fuel_type": "naturalGas", "quantity": 1200, "unit": "mcf"},
    ...     ]}},
    ...     CalculationSettings(gwp_version="AR6"),
    ... )
    >>> run.verify_provenance()
    True
"""

import logging

from carbonscope._version import __version__

from carbonscope.config import CarbonScopeConfig, configure_logging, get_config, set_config, reset_config
from carbonscope.exceptions import (
    CarbonScopeException,
    CalculationException,
    InvalidInput,
    ReferenceLookupError,
    UnknownUnit,
    IncompatibleUnits,
    UnknownFuelType,
    UnknownVehicleType,
    UnknownFacilityType,
    UnknownComponentType,
    UnknownProductType,
    UnknownGWPVersion,
    UnknownGasType,
    GridFactorNotFound,
    ReferenceDataError,
)
from carbonscope.calculation import (
    CalculationEngine,
    CalculationInputs,
    CalculationRun,
    CalculationSettings,
    FacilityBatchCalculator,
    ReferenceData,
    get_reference_data,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "CarbonScopeConfig",
    "get_config",
    "set_config",
    "reset_config",
    "configure_logging",
    "CarbonScopeException",
    "CalculationException",
    "InvalidInput",
    "ReferenceLookupError",
    "UnknownUnit",
    "IncompatibleUnits",
    "UnknownFuelType",
    "UnknownVehicleType",
    "UnknownFacilityType",
    "UnknownComponentType",
    "UnknownProductType",
    "UnknownGWPVersion",
    "UnknownGasType",
    "GridFactorNotFound",
    "ReferenceDataError",
    "CalculationEngine",
    "CalculationInputs",
    "CalculationRun",
    "CalculationSettings",
    "FacilityBatchCalculator",
    "ReferenceData",
    "get_reference_data",
]
