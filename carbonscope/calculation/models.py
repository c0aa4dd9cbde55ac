# -*- coding: utf-8 -*-
"""
CarbonScope Calculation Data Models

Pydantic v2 value objects exchanged between the calculators, the engine
and external collaborators (exporters, persistence). All result models
are frozen: a recalculation builds new objects instead of mutating old ones.

Enumerations:
    SourceKind, Scope

Intermediate / Result Models:
    EmissionsVector, GasConversion, CO2eAggregate, GWPComparison,
    SkippedEntry, BreakdownItem, SourceResult, ScopeTotal, RunTotals,
    ResolvedGridFactor, DualReportingResult, IntensityResult,
    IntensityReport, ThresholdBreach, CalculationRun

Input Models:
    StationaryCombustionEntry, MobileCombustionEntry, VentSourceEntry,
    ComponentCountEntry, PneumaticDeviceEntry, GasComponentEntry, SoldProductEntry,
    PurchasedEnergyEntry, ShipmentEntry, ProcessedProductEntry,
    FlaringInput, FugitiveInput, VentingInput, PneumaticInput,
    MarketInstruments, Scope1Inputs, Scope2Inputs, Scope3Inputs,
    ProductionData, CalculationInputs, CalculationSettings
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from carbonscope.provenance import hash_payload


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SourceKind(str, Enum):
    """Emission source keys used in ScopeTotal.by_source."""

    STATIONARY_COMBUSTION = "stationary_combustion"
    MOBILE_COMBUSTION = "mobile_combustion"
    FLARING = "flaring"
    VENTING = "venting"
    FUGITIVE = "fugitive"
    PNEUMATIC_DEVICES = "pneumatic_devices"
    ELECTRICITY = "electricity"
    ELECTRICITY_MARKET = "electricity_market"
    STEAM = "steam"
    HEATING = "heating"
    COOLING = "cooling"
    CATEGORY_3 = "category_3"
    CATEGORY_4 = "category_4"
    CATEGORY_9 = "category_9"
    CATEGORY_10 = "category_10"
    CATEGORY_11 = "category_11"
    SCOPE3_TOTAL = "scope3_total"


class Scope(str, Enum):
    SCOPE1 = "scope1"
    SCOPE2 = "scope2"
    SCOPE3 = "scope3"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible dictionary representation."""
        return self.model_dump(mode="json")


class _Entry(BaseModel):
    """Base for caller-supplied activity records (unknown keys ignored, NaN and inf rejected)."""

    model_config = ConfigDict(frozen=True, extra="ignore", allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Gas vectors and GWP results
# ---------------------------------------------------------------------------


class EmissionsVector(_Frozen):
    """Mass of each gas released by one activity record, in kilograms."""

    co2_kg: float = Field(default=0.0, ge=0)
    ch4_kg: float = Field(default=0.0, ge=0)
    n2o_kg: float = Field(default=0.0, ge=0)

    def as_gas_amounts(self) -> Dict[str, float]:
        """Gas key -> kg, keyed as in the GWP tables."""
        return {"CO2": self.co2_kg, "CH4_fossil": self.ch4_kg, "N2O": self.n2o_kg}

    @classmethod
    def total(cls, vectors: List[EmissionsVector]) -> EmissionsVector:
        """Sum a list of vectors gas by gas."""
        return cls(
            co2_kg=sum(v.co2_kg for v in vectors),
            ch4_kg=sum(v.ch4_kg for v in vectors),
            n2o_kg=sum(v.n2o_kg for v in vectors),
        )


class GasConversion(_Frozen):
    gas: str
    gas_key: str
    amount_kg: float
    gwp: float
    co2e_kg: float
    co2e_tonnes: float
    gwp_version: str


class CO2eAggregate(_Frozen):
    co2e_kg: float
    co2e_tonnes: float
    breakdown: Dict[str, GasConversion]
    gwp_version: str
    source: str
    time_horizon: int


class GWPComparison(_Frozen):
    base_version: str
    compare_version: str
    base_tonnes: float
    compare_tonnes: float
    difference_tonnes: float
    difference_percent: Optional[float]


# ---------------------------------------------------------------------------
# Source and scope results
# ---------------------------------------------------------------------------


class SkippedEntry(_Frozen):
    """An aggregate input row that was not counted, and why."""

    index: int
    reason: str
    error_code: Optional[str] = None
    entry: Any = None


class BreakdownItem(_Frozen):
    """Contribution of one entry (or one key) to an aggregate result."""

    key: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    co2_kg: Optional[float] = None
    ch4_kg: Optional[float] = None
    n2o_kg: Optional[float] = None
    co2e_kg: float
    co2e_tonnes: float
    details: Dict[str, Any] = Field(default_factory=dict)


class SourceResult(_Frozen):
    """Output of one calculator call.

    Gas fields are ``None`` when the factor is already CO2e-denominated
    (grid electricity, purchased thermal energy, most Scope 3 categories).
    For gas-resolved results ``co2e_kg = co2_kg + ch4_kg*GWP(CH4) + n2o_kg*GWP(N2O)``
    and ``co2e_tonnes = co2e_kg / 1000``.
    """

    source_kind: str
    co2_kg: Optional[float] = None
    ch4_kg: Optional[float] = None
    n2o_kg: Optional[float] = None
    co2e_kg: float
    co2e_tonnes: float
    methodology: str
    gwp_version: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    breakdown: List[BreakdownItem] = Field(default_factory=list)
    skipped: List[SkippedEntry] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def co2e_only(
        cls,
        source_kind: str,
        co2e_kg: float,
        methodology: str,
        **kwargs: Any,
    ) -> SourceResult:
        """Build a result whose factor is already expressed in CO2e."""
        return cls(
            source_kind=source_kind,
            co2e_kg=co2e_kg,
            co2e_tonnes=co2e_kg / 1000,
            methodology=methodology,
            **kwargs,
        )

    @property
    def ch4_tonnes(self) -> Optional[float]:
        return None if self.ch4_kg is None else self.ch4_kg / 1000


class ScopeTotal(_Frozen):
    """Per-scope total; ``co2e_tonnes`` is the sum over ``by_source``."""

    co2e_tonnes: float
    by_source: Dict[str, SourceResult] = Field(default_factory=dict)

    @classmethod
    def from_sources(cls, by_source: Dict[str, SourceResult]) -> ScopeTotal:
        total = 0.0
        for result in by_source.values():
            total += result.co2e_tonnes
        return cls(co2e_tonnes=total, by_source=by_source)

    @model_validator(mode="after")
    def validate_sum(self) -> ScopeTotal:
        expected = 0.0
        for result in self.by_source.values():
            expected += result.co2e_tonnes
        if self.co2e_tonnes != expected:
            raise ValueError(
                f"co2e_tonnes {self.co2e_tonnes} does not equal the source sum {expected}"
            )
        return self

    @property
    def skipped(self) -> Dict[str, List[SkippedEntry]]:
        """Skipped entries per source, only for sources that skipped any."""
        return {k: r.skipped for k, r in self.by_source.items() if r.skipped}

    @property
    def ch4_kg(self) -> float:
        return sum(r.ch4_kg for r in self.by_source.values() if r.ch4_kg is not None)


class RunTotals(_Frozen):
    scope1_tonnes: float
    scope2_tonnes: float
    scope3_tonnes: float
    total_tonnes: float

    @classmethod
    def from_scopes(cls, scope1: float, scope2: float, scope3: float = 0.0) -> RunTotals:
        return cls(
            scope1_tonnes=scope1,
            scope2_tonnes=scope2,
            scope3_tonnes=scope3,
            total_tonnes=scope1 + scope2 + scope3,
        )


class ResolvedGridFactor(_Frozen):
    region: str
    subregion: Optional[str] = None
    resolution: Literal["subregion", "region"]
    factor_kg_per_kwh: float
    original_factor: float
    original_unit: str
    source: str = ""
    year: Optional[int] = None


class DualReportingResult(_Frozen):
    location_based: SourceResult
    market_based: SourceResult
    reduction_kg: float
    reduction_tonnes: float
    reduction_percent: float
    methodology: str


class IntensityResult(_Frozen):
    """A normalised metric; ``intensity`` is None with ``error`` set when undefined."""

    metric: str
    intensity: Optional[float] = None
    unit: str
    error: Optional[str] = None
    rating: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class IntensityReport(_Frozen):
    carbon_intensity: Optional[IntensityResult] = None
    methane_intensity: Optional[IntensityResult] = None
    flaring_intensity: Optional[IntensityResult] = None
    revenue_intensity: Optional[IntensityResult] = None
    scope_breakdown: Dict[str, float] = Field(default_factory=dict)


class ThresholdBreach(_Frozen):
    threshold_id: str
    name: str
    jurisdiction: str = ""
    basis: str
    value_tonnes: float
    limit_tonnes: float
    unit: str
    requirement: str


# ---------------------------------------------------------------------------
# Activity-data entries (validated one at a time by aggregators)
# ---------------------------------------------------------------------------


class StationaryCombustionEntry(_Entry):
    fuel_type: str
    quantity: float
    unit: str = "MMBtu"


class MobileCombustionEntry(_Entry):
    vehicle_type: str
    quantity: float
    unit: str = "gallon"
    fuel_type: str = "motorGasoline"


class VentSourceEntry(_Entry):
    volume: float
    unit: str = "scf"
    name: Optional[str] = None


class ComponentCountEntry(_Entry):
    component_type: str
    count: float


class PneumaticDeviceEntry(_Entry):
    device_type: str
    count: float


class GasComponentEntry(_Entry):
    """One flare-gas component: catalogue key and/or explicit properties."""

    mole_fraction: float = Field(..., ge=0, le=1)
    component: Optional[str] = None
    molecular_weight: Optional[float] = Field(default=None, gt=0)
    carbon_atoms: Optional[int] = Field(default=None, ge=0)


class SoldProductEntry(_Entry):
    product_type: str
    quantity: float
    unit: str


class PurchasedEnergyEntry(_Entry):
    energy_type: str
    quantity: float
    unit: str


class ShipmentEntry(_Entry):
    mode: str
    distance_km: float
    mass_tonnes: float


class ProcessedProductEntry(_Entry):
    product_type: str
    quantity: float
    unit: Optional[str] = None
    processing_emission_factor: Optional[float] = None


# ---------------------------------------------------------------------------
# Per-scope inputs
# ---------------------------------------------------------------------------


class FlaringInput(_Entry):
    method: Literal["default", "composition"] = "default"
    volume: float
    unit: str = "MMscf"
    hhv: Optional[float] = None
    combustion_efficiency: Optional[float] = None
    gas_composition: Optional[List[Dict[str, Any]]] = None


class FugitiveInput(_Entry):
    method: Literal["component_count", "average"] = "component_count"
    components: List[Dict[str, Any]] = Field(default_factory=list)
    service_type: str = "gasService"
    facility_type: Optional[str] = None
    production_boe: Optional[float] = None


class VentingInput(_Entry):
    sources: List[Dict[str, Any]] = Field(default_factory=list)
    methane_content: Optional[float] = None


class PneumaticInput(_Entry):
    device_counts: Dict[str, Any] = Field(default_factory=dict)
    methane_content: Optional[float] = None


class MarketInstruments(_Entry):
    market_factor: Optional[float] = None
    rec_mwh: float = 0.0
    rec_factor: float = 0.0
    ppa_mwh: float = 0.0
    ppa_factor: float = 0.0
    residual_factor: Optional[float] = None


class Scope1Inputs(_Entry):
    stationary: List[Dict[str, Any]] = Field(default_factory=list)
    mobile: List[Dict[str, Any]] = Field(default_factory=list)
    flaring: Optional[FlaringInput] = None
    venting: Optional[VentingInput] = None
    fugitive: Optional[FugitiveInput] = None
    pneumatic: Optional[PneumaticInput] = None


class Scope2Inputs(_Entry):
    electricity: Optional[float] = None
    electricity_unit: str = "kWh"
    region: Optional[str] = None
    subregion: Optional[str] = None
    market: Optional[MarketInstruments] = None
    steam: Optional[float] = None
    heating: Optional[float] = None
    cooling: Optional[float] = None
    thermal_unit: str = "MMBtu"


class Scope3Inputs(_Entry):
    sold_products: List[Dict[str, Any]] = Field(default_factory=list)
    purchased_energy: List[Dict[str, Any]] = Field(default_factory=list)
    upstream_transport: List[Dict[str, Any]] = Field(default_factory=list)
    downstream_transport: List[Dict[str, Any]] = Field(default_factory=list)
    processing: List[Dict[str, Any]] = Field(default_factory=list)


class ProductionData(_Entry):
    production_boe: Optional[float] = None
    gas_production_mcf: Optional[float] = None
    revenue_million: Optional[float] = None
    ch4_tonnes: Optional[float] = None
    flaring_volume_mcf: Optional[float] = None


class CalculationInputs(_Entry):
    facility_id: Optional[str] = None
    scope1: Scope1Inputs = Field(default_factory=Scope1Inputs)
    scope2: Scope2Inputs = Field(default_factory=Scope2Inputs)
    scope3: Optional[Scope3Inputs] = None
    production: Optional[ProductionData] = None


class CalculationSettings(_Frozen):
    """Cross-cutting settings passed explicitly into every run."""

    gwp_version: str = "AR5"
    region: str = "US"
    enable_metrics: bool = False

    @classmethod
    def from_config(cls, config: Any = None) -> CalculationSettings:
        """Build settings from a CarbonScopeConfig (the singleton by default)."""
        if config is None:
            from carbonscope.config import get_config
            config = get_config()
        return cls(
            gwp_version=config.default_gwp_version,
            region=config.default_region,
            enable_metrics=config.enable_metrics,
        )


# ---------------------------------------------------------------------------
# Top-level run
# ---------------------------------------------------------------------------


class CalculationRun(_Frozen):
    """Immutable snapshot of one calculation, handed to exporters."""

    facility_id: Optional[str] = None
    totals: RunTotals
    scope1: ScopeTotal
    scope2: ScopeTotal
    scope3: Optional[ScopeTotal] = None
    scope2_dual_reporting: Optional[DualReportingResult] = None
    intensity: Optional[IntensityReport] = None
    threshold_breaches: List[ThresholdBreach] = Field(default_factory=list)
    gwp_version: str
    region: str
    calculated_at: datetime
    engine_version: str
    provenance_hash: str = ""

    def provenance_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"provenance_hash"})

    def with_provenance(self) -> CalculationRun:
        """Return a copy stamped with the hash of its own content."""
        return self.model_copy(update={"provenance_hash": hash_payload(self.provenance_payload())})

    def verify_provenance(self) -> bool:
        return bool(self.provenance_hash) and (
            hash_payload(self.provenance_payload()) == self.provenance_hash
        )
