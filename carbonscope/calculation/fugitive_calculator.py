# -*- coding: utf-8 -*-
"""
Fugitive and Vented Methane Calculator

Methods:
1. Component count - EPA Protocol for Equipment Leak Emission Estimates.
   count x leak factor (lb THC/hr) x 8760 hr -> THC, x methane fraction -> CH4
2. Average factor - production (BOE) x facility-type factor (kg CH4/BOE)
3. Venting - vented volume (scf) x methane content x methane density
4. Pneumatic devices - 40 CFR Part 98 Subpart W annual bleed per device

All results are CH4 only; CO2e is CH4 x GWP(CH4) for the chosen version.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from carbonscope.calculation.aggregation import ENTRY_ERRORS, skipped_entry
from carbonscope.calculation.gwp_conversion import GWPConverter
from carbonscope.calculation.models import (
    BreakdownItem,
    ComponentCountEntry,
    EmissionsVector,
    PneumaticDeviceEntry,
    SkippedEntry,
    SourceKind,
    SourceResult,
    VentSourceEntry,
)
from carbonscope.calculation.reference_data import ReferenceData, get_reference_data
from carbonscope.calculation.unit_converter import UnitConverter, require_non_negative
from carbonscope.exceptions import InvalidInput

logger = logging.getLogger(__name__)

COMPONENT_COUNT_METHODOLOGY = "EPA Protocol for Equipment Leak Estimates - Component Count Method"
AVERAGE_METHODOLOGY = "Industry Average Emission Factors"
VENTING_METHODOLOGY = "Direct Venting Calculation"
PNEUMATIC_METHODOLOGY = "40 CFR Part 98 Subpart W - Pneumatic Device Emissions"


class FugitiveCalculator:
    """Equipment leaks, vented gas and pneumatic device emissions."""

    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        unit_converter: Optional[UnitConverter] = None,
        gwp_converter: Optional[GWPConverter] = None,
    ):
        self.reference = reference or get_reference_data()
        self.unit_converter = unit_converter or UnitConverter(self.reference)
        self.gwp = gwp_converter or GWPConverter(self.reference)

    # ------------------------------------------------------------------
    # Component count
    # ------------------------------------------------------------------

    def calculate_component_count(
        self,
        components: Iterable[Any],
        gwp_version: str,
        service_type: str = "gasService",
    ) -> SourceResult:
        """
        Annual leak emissions from equipment component counts.

        Args:
            components: Mappings with ``component_type`` and ``count``
            gwp_version: GWP table to apply
            service_type: 'gasService', 'lightLiquid' or 'heavyLiquid'

        Raises:
            InvalidInput: If the service type is unknown

        Unknown component types and non-finite or negative counts are
        skipped and reported in ``skipped``.
        """
        service = self.reference.get_service_factors(service_type)
        if service is None:
            raise InvalidInput(
                message=f"Unknown service type: {service_type}",
                field="service_type",
                value=service_type,
                context={"available": sorted(self.reference.fugitive.services)},
            )
        ch4_gwp = self.gwp.get_gwp("CH4", gwp_version)
        hours = self.reference.fugitive.hours_per_year

        thc_lb_per_hour = 0.0
        breakdown: List[BreakdownItem] = []
        skipped: List[SkippedEntry] = []
        for index, raw in enumerate(components):
            try:
                entry = ComponentCountEntry.model_validate(raw)
                require_non_negative(entry.count, "count")
                factor = self.reference.get_component_factor(service_type, entry.component_type)
            except ENTRY_ERRORS as exc:
                skipped.append(skipped_entry(index, raw, exc, SourceKind.FUGITIVE.value))
                continue

            if entry.count == 0:
                continue
            lb_per_hour = entry.count * factor
            thc_lb_per_hour += lb_per_hour
            component_ch4_kg = self.unit_converter.convert(
                lb_per_hour * hours * service.methane_fraction, "lb", "kg",
            )
            breakdown.append(BreakdownItem(
                key=entry.component_type,
                quantity=entry.count,
                unit="components",
                ch4_kg=component_ch4_kg,
                co2e_kg=component_ch4_kg * ch4_gwp,
                co2e_tonnes=component_ch4_kg * ch4_gwp / 1000,
                details={
                    "factor_lb_per_hour": factor,
                    "emissions_lb_per_hour": lb_per_hour,
                    "emissions_lb_per_year": lb_per_hour * hours,
                },
            ))

        thc_lb_per_year = thc_lb_per_hour * hours
        ch4_lb_per_year = thc_lb_per_year * service.methane_fraction
        ch4_kg = self.unit_converter.convert(ch4_lb_per_year, "lb", "kg")

        return self.gwp.build_source_result(
            SourceKind.FUGITIVE.value,
            EmissionsVector(ch4_kg=ch4_kg),
            gwp_version,
            COMPONENT_COUNT_METHODOLOGY,
            details={
                "method": "component_count",
                "service_type": service_type,
                "methane_fraction": service.methane_fraction,
                "thc_lb_per_hour": thc_lb_per_hour,
                "thc_lb_per_year": thc_lb_per_year,
                "ch4_lb_per_year": ch4_lb_per_year,
            },
            breakdown=breakdown,
            skipped=skipped,
        )

    # ------------------------------------------------------------------
    # Average factor
    # ------------------------------------------------------------------

    def calculate_average_method(
        self,
        facility_type: str,
        production_boe: float,
        gwp_version: str,
    ) -> SourceResult:
        """
        Fugitive methane from a facility-type average factor.

        Raises:
            UnknownFacilityType: If the facility type has no factor
            InvalidInput: If production is negative or not finite
        """
        factor = self.reference.get_facility_average_factor(facility_type)
        require_non_negative(production_boe, "production_boe")
        ch4_kg = production_boe * factor
        return self.gwp.build_source_result(
            SourceKind.FUGITIVE.value,
            EmissionsVector(ch4_kg=ch4_kg),
            gwp_version,
            AVERAGE_METHODOLOGY,
            details={
                "method": "average",
                "facility_type": facility_type,
                "production_boe": production_boe,
                "factor_kg_ch4_per_boe": factor,
            },
        )

    # ------------------------------------------------------------------
    # Venting
    # ------------------------------------------------------------------

    def calculate_venting(
        self,
        vent_sources: Iterable[Any],
        gwp_version: str,
        methane_content: Optional[float] = None,
    ) -> SourceResult:
        """
        Methane from intentionally vented gas.

        Args:
            vent_sources: Mappings with ``volume`` and optional ``unit``
                (scf, Mcf, MMscf, m3; default scf)
            gwp_version: GWP table to apply
            methane_content: CH4 mole fraction of the vented gas (default 0.86)
        """
        content = self._methane_content(methane_content)
        density = self.reference.fugitive.venting.methane_density_kg_per_scf
        ch4_gwp = self.gwp.get_gwp("CH4", gwp_version)

        total_scf = 0.0
        breakdown: List[BreakdownItem] = []
        skipped: List[SkippedEntry] = []
        for index, raw in enumerate(vent_sources):
            try:
                entry = VentSourceEntry.model_validate(raw)
                volume_scf = self.unit_converter.convert(entry.volume, entry.unit, "scf", category="volume")
            except ENTRY_ERRORS as exc:
                skipped.append(skipped_entry(index, raw, exc, SourceKind.VENTING.value))
                continue
            if volume_scf == 0:
                continue
            total_scf += volume_scf
            source_ch4 = volume_scf * content * density
            source_co2e = source_ch4 * ch4_gwp
            breakdown.append(BreakdownItem(
                key=entry.name or f"source_{index}",
                quantity=entry.volume,
                unit=entry.unit,
                ch4_kg=source_ch4,
                co2e_kg=source_co2e,
                co2e_tonnes=source_co2e / 1000,
                details={"volume_scf": volume_scf},
            ))

        ch4_kg = total_scf * content * density
        return self.gwp.build_source_result(
            SourceKind.VENTING.value,
            EmissionsVector(ch4_kg=ch4_kg),
            gwp_version,
            VENTING_METHODOLOGY,
            details={
                "total_volume_scf": total_scf,
                "methane_content": content,
                "methane_density_kg_per_scf": density,
            },
            breakdown=breakdown,
            skipped=skipped,
        )

    # ------------------------------------------------------------------
    # Pneumatic devices
    # ------------------------------------------------------------------

    def calculate_pneumatic_devices(
        self,
        device_counts: Mapping[str, Any],
        gwp_version: str,
        methane_content: Optional[float] = None,
    ) -> SourceResult:
        """
        Methane from natural-gas driven pneumatic controllers and pumps.

        Args:
            device_counts: ``{device_type: count}``
            gwp_version: GWP table to apply
            methane_content: CH4 mole fraction of the supply gas (default 0.86)

        Unknown device types and non-numeric, non-finite or negative counts
        are skipped and reported.
        """
        content = self._methane_content(methane_content)
        density = self.reference.fugitive.venting.methane_density_kg_per_scf
        ch4_gwp = self.gwp.get_gwp("CH4", gwp_version)

        total_mcf = 0.0
        breakdown: List[BreakdownItem] = []
        skipped: List[SkippedEntry] = []
        for index, (device_type, count) in enumerate(device_counts.items()):
            raw = {"device_type": device_type, "count": count}
            try:
                entry = PneumaticDeviceEntry.model_validate(raw)
                require_non_negative(entry.count, "count")
                device = self.reference.get_pneumatic_device(entry.device_type)
            except ENTRY_ERRORS as exc:
                skipped.append(skipped_entry(index, raw, exc, SourceKind.PNEUMATIC_DEVICES.value))
                continue
            count = entry.count
            if count == 0:
                continue
            device_mcf = count * device.annual_emissions_mcf
            total_mcf += device_mcf
            device_ch4 = self.unit_converter.convert(device_mcf, "mcf", "scf") * content * density
            device_co2e = device_ch4 * ch4_gwp
            breakdown.append(BreakdownItem(
                key=device_type,
                quantity=count,
                unit="devices",
                ch4_kg=device_ch4,
                co2e_kg=device_co2e,
                co2e_tonnes=device_co2e / 1000,
                details={"annual_emissions_mcf": device_mcf},
            ))

        total_scf = self.unit_converter.convert(total_mcf, "mcf", "scf")
        ch4_kg = total_scf * content * density
        return self.gwp.build_source_result(
            SourceKind.PNEUMATIC_DEVICES.value,
            EmissionsVector(ch4_kg=ch4_kg),
            gwp_version,
            PNEUMATIC_METHODOLOGY,
            details={
                "total_gas_mcf": total_mcf,
                "methane_content": content,
                "methane_density_kg_per_scf": density,
            },
            breakdown=breakdown,
            skipped=skipped,
        )

    def list_pneumatic_devices(self) -> Dict[str, Dict[str, Any]]:
        """Device types accepted by calculate_pneumatic_devices, with annual emissions in Mcf."""
        return {k: d.model_dump() for k, d in self.reference.fugitive.pneumatic_devices.items()}

    def _methane_content(self, methane_content: Optional[float]) -> float:
        if methane_content is None:
            return self.reference.fugitive.venting.default_methane_content
        if not 0 <= methane_content <= 1:
            raise InvalidInput(
                message=f"Methane content must be between 0 and 1, got {methane_content}",
                field="methane_content",
                value=methane_content,
            )
        return methane_content


__all__ = [
    "FugitiveCalculator",
    "COMPONENT_COUNT_METHODOLOGY",
    "AVERAGE_METHODOLOGY",
    "VENTING_METHODOLOGY",
    "PNEUMATIC_METHODOLOGY",
]
