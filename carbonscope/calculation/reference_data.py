# -*- coding: utf-8 -*-
"""
Reference Data Tables

Typed, immutable lookup tables loaded from the YAML files in
``carbonscope/data``:

- gwp_values.yaml          GWP multipliers per IPCC assessment report
- combustion_factors.yaml  Stationary (per MMBtu) and mobile (per gallon) factors
- heating_values.yaml      Fuel higher heating values (MMBtu per native unit)
- flaring.yaml             40 CFR 98.253 constants and gas component catalogue
- fugitive.yaml            Component leak rates, facility averages, venting,
                           pneumatic devices
- grid_factors.yaml        Grid intensity by region/subregion, purchased thermal
- scope3.yaml              Sold-product, upstream, transport, processing factors
- benchmarks.yaml          Intensity benchmarks and regulatory thresholds

Every table is validated into pydantic models when loaded. A missing file,
a malformed record or a unit the converter does not know raises
ReferenceDataError immediately, so bad data fails at startup rather than
inside a calculation.

Example:
    >>> from carbonscope.calculation.reference_data import get_reference_data
    >>> ref = get_reference_data()
    >>> ref.get_gwp_table("AR5").values["CH4_fossil"]
    28.0
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from carbonscope.calculation.unit_converter import UnitConverter
from carbonscope.exceptions import (
    GridFactorNotFound,
    ReferenceDataError,
    UnknownComponentType,
    UnknownFacilityType,
    UnknownFuelType,
    UnknownGWPVersion,
    UnknownProductType,
    UnknownVehicleType,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Record types
# ---------------------------------------------------------------------------


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GWPTable(_Record):
    """GWP multipliers for one IPCC assessment report."""

    version: str
    source: str
    time_horizon: int = Field(..., gt=0, description="Time horizon in years")
    description: str = ""
    default: bool = False
    deprecated: bool = False
    values: Dict[str, float]

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: Dict[str, float]) -> Dict[str, float]:
        if v.get("CO2") != 1:
            raise ValueError("CO2 multiplier must be exactly 1")
        for gas, gwp in v.items():
            if gwp <= 0:
                raise ValueError(f"GWP for {gas} must be positive, got {gwp}")
        return v


class CombustionFactor(_Record):
    """kg CO2 / CH4 / N2O released per canonical unit of fuel."""

    co2: float = Field(..., ge=0)
    ch4: float = Field(..., ge=0)
    n2o: float = Field(..., ge=0)
    unit: str
    source: str = ""


class HeatingValue(_Record):
    """Higher heating value in MMBtu per native unit."""

    unit: str
    hhv: float = Field(..., gt=0)


class MobileFactorTable(_Record):
    factors: Dict[str, CombustionFactor]
    vehicle_fuel_map: Dict[str, Dict[str, str]]

    @model_validator(mode="after")
    def validate_map_targets(self) -> MobileFactorTable:
        for vehicle, fuels in self.vehicle_fuel_map.items():
            for fuel, key in fuels.items():
                if key not in self.factors:
                    raise ValueError(
                        f"vehicle_fuel_map[{vehicle}][{fuel}] points to "
                        f"unknown factor '{key}'"
                    )
        return self


class GasComponentProperties(_Record):
    name: str = ""
    molecular_weight: float = Field(..., gt=0)
    carbon_atoms: int = Field(..., ge=0)
    hhv_btu_scf: float = Field(default=0.0, ge=0)


class FlaringDefaults(_Record):
    """Constants for the default (Y-2) and composition (Y-1) flaring methods."""

    default_co2_factor: float = Field(..., gt=0, description="kg CO2 per MMBtu")
    default_hhv: float = Field(..., gt=0, description="MMBtu per MMscf")
    default_combustion_efficiency: float = Field(..., ge=0, le=1)
    n2o_factor: float = Field(..., ge=0, description="kg N2O per MMBtu")
    uncombusted_carbon_ch4_fraction: float = Field(..., ge=0, le=1)
    molar_volume_conversion: float = Field(..., gt=0, description="scf per kg-mole")
    mole_fraction_tolerance: float = Field(..., ge=0)
    components: Dict[str, GasComponentProperties]
    default_composition: Dict[str, float]

    @model_validator(mode="after")
    def validate_default_composition(self) -> FlaringDefaults:
        for component in self.default_composition:
            if component not in self.components:
                raise ValueError(f"default_composition uses unknown component '{component}'")
        return self


class ServiceComponentFactors(_Record):
    methane_fraction: float = Field(..., ge=0, le=1, description="CH4 mass fraction of THC")
    factors: Dict[str, float] = Field(..., description="lb THC / hr / component")


class VentingDefaults(_Record):
    default_methane_content: float = Field(..., ge=0, le=1)
    methane_density_kg_per_scf: float = Field(..., gt=0)


class PneumaticDevice(_Record):
    name: str = ""
    emission_rate_scfh: float = Field(..., ge=0)
    annual_emissions_mcf: float = Field(..., ge=0)


class FugitiveFactors(_Record):
    hours_per_year: float = Field(..., gt=0)
    services: Dict[str, ServiceComponentFactors]
    facility_average: Dict[str, float] = Field(..., description="kg CH4 per BOE")
    venting: VentingDefaults
    pneumatic_devices: Dict[str, PneumaticDevice]


GridUnit = Literal[
    "kgCO2e/kWh", "kgCO2/kWh", "tCO2e/MWh", "tCO2/MWh",
    "lbCO2e/MWh", "lbCO2/MWh", "gCO2e/kWh", "gCO2/kWh",
]


class GridFactor(_Record):
    name: str = ""
    factor: float = Field(..., ge=0)
    unit: GridUnit
    source: str = ""
    year: Optional[int] = None


class GridRegion(_Record):
    """A country/grid region with an optional default and subregions."""

    name: str
    factor: Optional[float] = Field(default=None, ge=0)
    unit: Optional[GridUnit] = None
    source: str = ""
    year: Optional[int] = None
    subregions: Dict[str, GridFactor] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_default_pair(self) -> GridRegion:
        if (self.factor is None) != (self.unit is None):
            raise ValueError("region factor and unit must be given together")
        if self.factor is None and not self.subregions:
            raise ValueError("region needs a default factor or subregions")
        return self

    @property
    def default_factor(self) -> Optional[GridFactor]:
        if self.factor is None:
            return None
        return GridFactor(
            name=self.name, factor=self.factor, unit=self.unit,
            source=self.source, year=self.year,
        )


class UnitFactor(_Record):
    """kg per native unit, used by the Scope 3 product tables."""

    name: str = ""
    factor: float = Field(..., ge=0)
    unit: str


class Scope3Category(_Record):
    id: int = Field(..., ge=1, le=15)
    name: str
    relevance: str
    method: str = ""


class Scope3Factors(_Record):
    sold_products: Dict[str, UnitFactor]
    upstream_energy: Dict[str, UnitFactor]
    transport_modes: Dict[str, float] = Field(..., description="kg CO2e per tonne-km")
    processing: Dict[str, UnitFactor]
    categories: List[Scope3Category]


class CarbonIntensityBenchmarks(_Record):
    top25: float
    median: float
    bottom25: float
    average: float


class MethaneIntensityBenchmarks(_Record):
    industry_average: float
    top_performers: float
    targets: Dict[str, float]


class FlaringIntensityBenchmarks(_Record):
    global_average: float = Field(..., gt=0)
    world_bank_zrf_target: float = Field(..., ge=0)


class RegulatoryThreshold(_Record):
    id: str
    name: str
    jurisdiction: str = ""
    basis: Literal["total", "scope1"]
    limit_tonnes: float = Field(..., gt=0)
    requirement: str


class Benchmarks(_Record):
    carbon_intensity: CarbonIntensityBenchmarks
    methane_intensity: MethaneIntensityBenchmarks
    methane_mcf_per_tonne: float = Field(..., gt=0)
    flaring_intensity: FlaringIntensityBenchmarks
    thresholds: List[RegulatoryThreshold]


# ---------------------------------------------------------------------------
# ReferenceData
# ---------------------------------------------------------------------------


class ReferenceData(_Record):
    """All reference tables the calculators consume, read-only."""

    gwp_tables: Dict[str, GWPTable]
    gas_labels: Dict[str, str] = Field(default_factory=dict)
    stationary_factors: Dict[str, CombustionFactor]
    mobile: MobileFactorTable
    heating_values: Dict[str, HeatingValue]
    flaring: FlaringDefaults
    fugitive: FugitiveFactors
    grid_regions: Dict[str, GridRegion]
    purchased_energy: Dict[str, float] = Field(..., description="kg CO2e per MMBtu")
    scope3: Scope3Factors
    benchmarks: Benchmarks

    # -- Loading -------------------------------------------------------------

    @classmethod
    def load(cls, directory: Optional[Union[str, Path]] = None) -> ReferenceData:
        """
        Load and validate every reference table from ``directory``.

        Args:
            directory: Folder containing the YAML tables. Defaults to the
                packaged ``carbonscope/data``.

        Raises:
            ReferenceDataError: If a file is missing, unreadable or invalid.
        """
        base = Path(directory) if directory else Path(__file__).parent.parent / "data"

        gwp = _read_yaml(base, "gwp_values.yaml")
        combustion = _read_yaml(base, "combustion_factors.yaml")
        heating = _read_yaml(base, "heating_values.yaml")
        flaring = _read_yaml(base, "flaring.yaml")
        fugitive = _read_yaml(base, "fugitive.yaml")
        grid = _read_yaml(base, "grid_factors.yaml")
        scope3 = _read_yaml(base, "scope3.yaml")
        benchmarks = _read_yaml(base, "benchmarks.yaml")

        try:
            reference = cls(
                gwp_tables={
                    str(version): {"version": str(version), **table}
                    for version, table in _section(gwp, "versions", "gwp_values.yaml").items()
                },
                gas_labels=gwp.get("labels", {}),
                stationary_factors=_section(combustion, "stationary", "combustion_factors.yaml"),
                mobile=_section(combustion, "mobile", "combustion_factors.yaml"),
                heating_values=_section(heating, "fuels", "heating_values.yaml"),
                flaring=flaring,
                fugitive=fugitive,
                grid_regions=_section(grid, "regions", "grid_factors.yaml"),
                purchased_energy=_section(grid, "purchased_energy", "grid_factors.yaml"),
                scope3=scope3,
                benchmarks=benchmarks,
            )
        except ValidationError as exc:
            raise ReferenceDataError(
                message=f"Invalid reference data in {base}: {exc.error_count()} error(s)",
                context={"errors": exc.errors(include_url=False)},
            ) from exc

        reference._validate_units()
        reference._validate_defaults()
        logger.info(
            "Loaded reference data from %s: %d GWP tables, %d stationary fuels, "
            "%d grid regions, %d sold products",
            base,
            len(reference.gwp_tables),
            len(reference.stationary_factors),
            len(reference.grid_regions),
            len(reference.scope3.sold_products),
        )
        return reference

    def _validate_units(self) -> None:
        checks = []
        for fuel, f in self.stationary_factors.items():
            checks.append((f"stationary.{fuel}", f.unit, "energy"))
        for key, f in self.mobile.factors.items():
            checks.append((f"mobile.{key}", f.unit, "volume"))
        for fuel, hv in self.heating_values.items():
            checks.append((f"heating_values.{fuel}", hv.unit, None))
        for table_name in ("sold_products", "upstream_energy", "processing"):
            for key, f in getattr(self.scope3, table_name).items():
                checks.append((f"scope3.{table_name}.{key}", f.unit, None))

        for location, unit, category in checks:
            unit_category = UnitConverter.get_unit_category(unit)
            if unit_category is None or (category and unit_category != category):
                raise ReferenceDataError(
                    message=f"{location} has unsupported unit '{unit}'",
                    context={"expected_category": category},
                )

    def _validate_defaults(self) -> None:
        defaults = [v for v, t in self.gwp_tables.items() if t.default]
        if len(defaults) != 1:
            raise ReferenceDataError(
                message=f"Exactly one GWP table must be the default, found {defaults}",
                source_file="gwp_values.yaml",
            )

    # -- Lookups -------------------------------------------------------------

    def get_gwp_table(self, version: str) -> GWPTable:
        key = str(version).strip().upper()
        table = self.gwp_tables.get(key)
        if table is None:
            raise UnknownGWPVersion(
                message=f"Unknown GWP version: {version}",
                key=version,
                available=self.gwp_tables.keys(),
            )
        return table

    @property
    def default_gwp_version(self) -> str:
        return next(v for v, t in self.gwp_tables.items() if t.default)

    def get_stationary_factor(self, fuel_type: str) -> CombustionFactor:
        factor = self.stationary_factors.get(fuel_type)
        if factor is None:
            raise UnknownFuelType(
                message=f"Unknown fuel type: {fuel_type}",
                key=fuel_type,
                available=self.stationary_factors.keys(),
            )
        return factor

    def resolve_mobile_factor(self, vehicle_type: str, fuel_type: str) -> tuple:
        """Return ``(factor_key, CombustionFactor)`` for a vehicle and fuel.

        Falls back to the ``<fuel><Vehicle>`` key when the vehicle has no
        mapping for the fuel.
        """
        key = self.mobile.vehicle_fuel_map.get(vehicle_type, {}).get(fuel_type)
        if key is None:
            key = f"{fuel_type}{vehicle_type}"
        factor = self.mobile.factors.get(key)
        if factor is None:
            raise UnknownVehicleType(
                message=f"No mobile factor for vehicle '{vehicle_type}' with fuel '{fuel_type}'",
                key=vehicle_type,
                available=self.mobile.vehicle_fuel_map.keys(),
                context={"fuel_type": fuel_type},
            )
        return key, factor

    def get_service_factors(self, service_type: str) -> Optional[ServiceComponentFactors]:
        return self.fugitive.services.get(service_type)

    def get_component_factor(self, service_type: str, component_type: str) -> float:
        service = self.fugitive.services[service_type]
        factor = service.factors.get(component_type)
        if factor is None:
            raise UnknownComponentType(
                message=f"Unknown component type '{component_type}' for {service_type}",
                key=component_type,
                available=service.factors.keys(),
            )
        return factor

    def get_facility_average_factor(self, facility_type: str) -> float:
        factor = self.fugitive.facility_average.get(facility_type)
        if factor is None:
            raise UnknownFacilityType(
                message=f"Unknown facility type: {facility_type}",
                key=facility_type,
                available=self.fugitive.facility_average.keys(),
            )
        return factor

    def get_pneumatic_device(self, device_type: str) -> PneumaticDevice:
        device = self.fugitive.pneumatic_devices.get(device_type)
        if device is None:
            raise UnknownComponentType(
                message=f"Unknown pneumatic device type: {device_type}",
                key=device_type,
                available=self.fugitive.pneumatic_devices.keys(),
            )
        return device

    def get_grid_region(self, region: str) -> GridRegion:
        data = self.grid_regions.get(str(region).strip().upper())
        if data is None:
            raise GridFactorNotFound(
                message=f"No grid factor for region '{region}'",
                key=region,
                available=self.grid_regions.keys(),
            )
        return data

    def get_scope3_factor(self, table_name: str, key: str) -> UnitFactor:
        table: Dict[str, UnitFactor] = getattr(self.scope3, table_name)
        factor = table.get(key)
        if factor is None:
            raise UnknownProductType(
                message=f"Unknown {table_name.replace('_', ' ')} type: {key}",
                key=key,
                available=table.keys(),
            )
        return factor

    def get_transport_factor(self, mode: str) -> float:
        factor = self.scope3.transport_modes.get(mode)
        if factor is None:
            raise UnknownProductType(
                message=f"Unknown transport mode: {mode}",
                key=mode,
                available=self.scope3.transport_modes.keys(),
            )
        return factor

    # -- Enumeration ---------------------------------------------------------

    def list_fuel_types(self) -> List[str]:
        return sorted(self.stationary_factors)

    def list_vehicle_types(self) -> List[str]:
        return sorted(self.mobile.vehicle_fuel_map)

    def list_component_types(self, service_type: str = "gasService") -> List[str]:
        service = self.fugitive.services.get(service_type)
        return sorted(service.factors) if service else []

    def list_facility_types(self) -> List[str]:
        return sorted(self.fugitive.facility_average)

    def list_regions(self) -> List[Dict[str, Any]]:
        """Grid regions with their subregions, sorted by region name."""
        regions = []
        for code, data in self.grid_regions.items():
            regions.append({
                "code": code,
                "name": data.name,
                "has_subregions": bool(data.subregions),
                "subregions": [
                    {"code": sub_code, "name": sub.name or sub_code, "factor": sub.factor, "unit": sub.unit}
                    for sub_code, sub in data.subregions.items()
                ],
            })
        return sorted(regions, key=lambda r: r["name"])


# ---------------------------------------------------------------------------
# YAML helpers
# ---------------------------------------------------------------------------


def _read_yaml(base: Path, filename: str) -> Dict[str, Any]:
    path = base / filename
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ReferenceDataError(
            message=f"Reference table not found: {path}",
            source_file=filename,
        ) from exc
    except yaml.YAMLError as exc:
        raise ReferenceDataError(
            message=f"Malformed YAML in {path}: {exc}",
            source_file=filename,
        ) from exc

    if not isinstance(data, dict):
        raise ReferenceDataError(
            message=f"Reference table {path} must contain a mapping",
            source_file=filename,
        )
    return data


def _section(data: Dict[str, Any], key: str, filename: str) -> Any:
    if key not in data:
        raise ReferenceDataError(
            message=f"Missing section '{key}'",
            source_file=filename,
        )
    return data[key]


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_reference_instance: Optional[ReferenceData] = None
_reference_lock = threading.Lock()


def get_reference_data() -> ReferenceData:
    """Return the shared ReferenceData, loading it on first use.

    The directory comes from ``CarbonScopeConfig.reference_data_dir``.
    """
    global _reference_instance
    if _reference_instance is None:
        with _reference_lock:
            if _reference_instance is None:
                from carbonscope.config import get_config
                _reference_instance = ReferenceData.load(get_config().reference_data_dir)
    return _reference_instance


def set_reference_data(reference: ReferenceData) -> None:
    """Replace the shared ReferenceData (testing and custom tables)."""
    global _reference_instance
    with _reference_lock:
        _reference_instance = reference


def reset_reference_data() -> None:
    """Drop the shared ReferenceData so the next access reloads it."""
    global _reference_instance
    with _reference_lock:
        _reference_instance = None


__all__ = [
    "GWPTable",
    "CombustionFactor",
    "HeatingValue",
    "MobileFactorTable",
    "GasComponentProperties",
    "FlaringDefaults",
    "ServiceComponentFactors",
    "VentingDefaults",
    "PneumaticDevice",
    "FugitiveFactors",
    "GridFactor",
    "GridRegion",
    "UnitFactor",
    "Scope3Category",
    "Scope3Factors",
    "Benchmarks",
    "RegulatoryThreshold",
    "ReferenceData",
    "get_reference_data",
    "set_reference_data",
    "reset_reference_data",
]
