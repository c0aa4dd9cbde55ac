# -*- coding: utf-8 -*-
"""
Scope 2 Calculator - Indirect Emissions from Purchased Energy

1. Location-based: consumption x regional grid factor
2. Market-based: contractual instruments (RECs, PPAs) carved out of gross
   consumption, remainder at the residual/market factor
3. Dual reporting: both methods on the same consumption
4. Purchased steam, heating and cooling

Grid factors are normalised to kg CO2e/kWh before use, whatever unit the
reference table stores them in (kg/kWh, t/MWh, lb/MWh, g/kWh).

Reference: GHG Protocol Scope 2 Guidance
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from carbonscope.calculation.models import (
    DualReportingResult,
    ResolvedGridFactor,
    SourceKind,
    SourceResult,
)
from carbonscope.calculation.reference_data import GridFactor, ReferenceData, get_reference_data
from carbonscope.calculation.unit_converter import UnitConverter, require_non_negative
from carbonscope.exceptions import GridFactorNotFound, InvalidInput

logger = logging.getLogger(__name__)

LOCATION_METHODOLOGY = "GHG Protocol Location-Based Method"
MARKET_METHODOLOGY = "GHG Protocol Market-Based Method"
DUAL_METHODOLOGY = "GHG Protocol Scope 2 Dual Reporting"
STEAM_METHODOLOGY = "Purchased Steam - Default Emission Factor"
THERMAL_METHODOLOGY = "Purchased Heating/Cooling - Default Emission Factor"

_GRID_UNIT = re.compile(r"^(kg|t|lb|g)CO2e?/(kWh|MWh)$")
_MASS_UNITS = {"kg": "kg", "t": "tonne", "lb": "lb", "g": "g"}


class Scope2Calculator:
    """Location-based, market-based and purchased thermal energy emissions."""

    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        unit_converter: Optional[UnitConverter] = None,
    ):
        self.reference = reference or get_reference_data()
        self.unit_converter = unit_converter or UnitConverter(self.reference)

    # ------------------------------------------------------------------
    # Grid factors
    # ------------------------------------------------------------------

    def get_grid_factor(self, region: str, subregion: Optional[str] = None) -> ResolvedGridFactor:
        """
        Resolve a grid factor, falling back from subregion to region default.

        Raises:
            GridFactorNotFound: If the region is unknown, or neither the
                subregion nor a region default resolves
        """
        region_key = str(region).strip().upper()
        data = self.reference.get_grid_region(region_key)

        if subregion:
            sub_key = str(subregion).strip().upper()
            sub = data.subregions.get(sub_key)
            if sub is not None:
                return self._resolved(region_key, sub_key, "subregion", sub)
            logger.info(
                "Subregion %s not found for %s, using region default", subregion, region_key,
            )

        default = data.default_factor
        if default is None:
            raise GridFactorNotFound(
                message=f"Region '{region_key}' has no default grid factor; a subregion is required",
                key=subregion or region_key,
                available=data.subregions.keys(),
            )
        return self._resolved(region_key, None, "region", default)

    def normalize_grid_factor(self, value: float, unit: str) -> float:
        """Convert a grid factor to kg CO2e per kWh."""
        match = _GRID_UNIT.match(unit)
        if match is None:
            raise InvalidInput(
                message=f"Unsupported grid factor unit: {unit}", field="unit", value=unit,
            )
        mass_unit, energy_unit = match.groups()
        kg = self.unit_converter.convert(value, _MASS_UNITS[mass_unit], "kg", category="mass")
        kwh_per_unit = self.unit_converter.convert(1, energy_unit, "kwh", category="energy")
        return kg / kwh_per_unit

    def _resolved(
        self, region: str, subregion: Optional[str], resolution: str, factor: GridFactor,
    ) -> ResolvedGridFactor:
        return ResolvedGridFactor(
            region=region,
            subregion=subregion,
            resolution=resolution,
            factor_kg_per_kwh=self.normalize_grid_factor(factor.factor, factor.unit),
            original_factor=factor.factor,
            original_unit=factor.unit,
            source=factor.source,
            year=factor.year,
        )

    def list_regions(self) -> List[Dict[str, Any]]:
        return self.reference.list_regions()

    # ------------------------------------------------------------------
    # Electricity
    # ------------------------------------------------------------------

    def calculate_location_based(
        self,
        electricity: float,
        region: str,
        subregion: Optional[str] = None,
        unit: str = "kWh",
    ) -> SourceResult:
        """
        Location-based emissions: consumption x average grid factor.

        Raises:
            GridFactorNotFound: If no factor resolves
            InvalidInput: If consumption is negative or not finite
            UnknownUnit: If unit is not an energy unit
        """
        kwh = self.unit_converter.convert(electricity, unit, "kwh", category="energy")
        grid = self.get_grid_factor(region, subregion)
        co2e_kg = kwh * grid.factor_kg_per_kwh
        return SourceResult.co2e_only(
            SourceKind.ELECTRICITY.value,
            co2e_kg,
            LOCATION_METHODOLOGY,
            details={
                "electricity_kwh": kwh,
                "grid_factor_kg_per_kwh": grid.factor_kg_per_kwh,
                "grid_factor": grid.to_dict(),
            },
        )

    def calculate_market_based(
        self,
        electricity: float,
        market_factor: float,
        rec_mwh: float = 0.0,
        rec_factor: float = 0.0,
        ppa_mwh: float = 0.0,
        ppa_factor: float = 0.0,
        residual_factor: Optional[float] = None,
        unit: str = "kWh",
    ) -> SourceResult:
        """
        Market-based emissions with contractual-instrument carve-out.

        grid_kWh = max(0, consumption - (REC + PPA) kWh); the grid portion
        uses ``residual_factor`` if given, else ``market_factor``. REC and
        PPA volumes use their own factors. Factors are kg CO2e/kWh.

        Raises:
            InvalidInput: On negative volumes or factors
        """
        for name, value in (
            ("market_factor", market_factor), ("rec_factor", rec_factor),
            ("ppa_factor", ppa_factor), ("rec_mwh", rec_mwh), ("ppa_mwh", ppa_mwh),
        ):
            require_non_negative(value, name)
        if residual_factor is not None:
            require_non_negative(residual_factor, "residual_factor")

        kwh = self.unit_converter.convert(electricity, unit, "kwh", category="energy")
        rec_kwh = self.unit_converter.convert(rec_mwh, "mwh", "kwh")
        ppa_kwh = self.unit_converter.convert(ppa_mwh, "mwh", "kwh")
        contractual_kwh = rec_kwh + ppa_kwh
        grid_kwh = max(0.0, kwh - contractual_kwh)

        effective_grid_factor = residual_factor if residual_factor is not None else market_factor
        grid_kg = grid_kwh * effective_grid_factor
        rec_kg = rec_kwh * rec_factor
        ppa_kg = ppa_kwh * ppa_factor

        warnings = []
        if contractual_kwh > kwh:
            message = (
                f"Contractual instruments ({contractual_kwh:.0f} kWh) exceed "
                f"consumption ({kwh:.0f} kWh)"
            )
            logger.warning("Market-based Scope 2: %s", message)
            warnings.append(message)

        return SourceResult.co2e_only(
            SourceKind.ELECTRICITY_MARKET.value,
            grid_kg + rec_kg + ppa_kg,
            MARKET_METHODOLOGY,
            details={
                "electricity_kwh": kwh,
                "grid_kwh": grid_kwh,
                "contractual_kwh": contractual_kwh,
                "rec_mwh": rec_mwh,
                "ppa_mwh": ppa_mwh,
                "market_factor": market_factor,
                "effective_grid_factor": effective_grid_factor,
                "rec_factor": rec_factor,
                "ppa_factor": ppa_factor,
                "grid_emissions_kg": grid_kg,
                "rec_emissions_kg": rec_kg,
                "ppa_emissions_kg": ppa_kg,
            },
            warnings=warnings,
        )

    def calculate_dual_reporting(
        self,
        electricity: float,
        region: str,
        subregion: Optional[str] = None,
        market_factor: Optional[float] = None,
        unit: str = "kWh",
        **market_options: Any,
    ) -> DualReportingResult:
        """
        Location- and market-based results on the same consumption.

        ``market_factor`` defaults to the location grid factor when None
        (an explicit 0 is honoured). ``market_options`` are passed to
        calculate_market_based (rec_mwh, rec_factor, ppa_mwh, ppa_factor,
        residual_factor).
        """
        location = self.calculate_location_based(electricity, region, subregion, unit)
        if market_factor is None:
            market_factor = location.details["grid_factor_kg_per_kwh"]
        market = self.calculate_market_based(electricity, market_factor, unit=unit, **market_options)

        reduction_kg = location.co2e_kg - market.co2e_kg
        reduction_percent = (
            (reduction_kg / location.co2e_kg) * 100 if location.co2e_kg > 0 else 0.0
        )
        return DualReportingResult(
            location_based=location,
            market_based=market,
            reduction_kg=reduction_kg,
            reduction_tonnes=reduction_kg / 1000,
            reduction_percent=reduction_percent,
            methodology=DUAL_METHODOLOGY,
        )

    # ------------------------------------------------------------------
    # Purchased thermal energy
    # ------------------------------------------------------------------

    def calculate_purchased_steam(
        self,
        quantity: float,
        unit: str = "MMBtu",
        emission_factor: Optional[float] = None,
    ) -> SourceResult:
        """Emissions from purchased steam (factor in kg CO2e/MMBtu)."""
        return self._thermal("steam", quantity, unit, emission_factor, STEAM_METHODOLOGY)

    def calculate_purchased_heating_cooling(
        self,
        quantity: float,
        energy_type: str,
        unit: str = "MMBtu",
        emission_factor: Optional[float] = None,
    ) -> SourceResult:
        """
        Emissions from purchased district heating or cooling.

        Raises:
            InvalidInput: If energy_type is not 'heating' or 'cooling'
        """
        if energy_type not in ("heating", "cooling"):
            raise InvalidInput(
                message=f"Unknown energy type: {energy_type}; expected 'heating' or 'cooling'",
                field="energy_type",
                value=energy_type,
            )
        return self._thermal(energy_type, quantity, unit, emission_factor, THERMAL_METHODOLOGY)

    def _thermal(
        self,
        energy_type: str,
        quantity: float,
        unit: str,
        emission_factor: Optional[float],
        methodology: str,
    ) -> SourceResult:
        mmbtu = self.unit_converter.convert(quantity, unit, "mmbtu", category="energy")
        if emission_factor is None:
            emission_factor = self.reference.purchased_energy[energy_type]
        require_non_negative(emission_factor, "emission_factor")
        return SourceResult.co2e_only(
            energy_type,
            mmbtu * emission_factor,
            methodology,
            details={
                "energy_type": energy_type,
                "quantity_mmbtu": mmbtu,
                "emission_factor_kg_per_mmbtu": emission_factor,
            },
        )


__all__ = [
    "Scope2Calculator",
    "LOCATION_METHODOLOGY",
    "MARKET_METHODOLOGY",
    "DUAL_METHODOLOGY",
]
