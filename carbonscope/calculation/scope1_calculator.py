# -*- coding: utf-8 -*-
"""
Scope 1 Calculator - Fuel Combustion

Direct emissions from fuel burned in equipment and vehicles the operator
owns or controls:
1. Stationary Combustion (heaters, boilers, turbines, engines) - per MMBtu
2. Mobile Combustion (fleet vehicles, mobile equipment) - per gallon

Flaring, venting and fugitive sources live in flaring_calculator and
fugitive_calculator.

Reference: EPA GHG Emission Factors Hub, GHG Protocol Corporate Standard
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from carbonscope.calculation.aggregation import ENTRY_ERRORS, skipped_entry
from carbonscope.calculation.gwp_conversion import GWPConverter
from carbonscope.calculation.models import (
    BreakdownItem,
    EmissionsVector,
    MobileCombustionEntry,
    SkippedEntry,
    SourceKind,
    SourceResult,
    StationaryCombustionEntry,
)
from carbonscope.calculation.reference_data import ReferenceData, get_reference_data
from carbonscope.calculation.unit_converter import UnitConverter

logger = logging.getLogger(__name__)

STATIONARY_METHODOLOGY = "EPA GHG Emission Factors Hub 2024"
MOBILE_METHODOLOGY = "EPA Mobile Combustion Factors"


class Scope1Calculator:
    """
    Scope 1 combustion calculator.

    Single-entry methods raise typed errors. The ``calculate_total_*``
    methods skip bad rows and report them in ``SourceResult.skipped``.
    """

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
    # Stationary combustion
    # ------------------------------------------------------------------

    def calculate_stationary_combustion(
        self,
        fuel_type: str,
        quantity: float,
        unit: str,
        gwp_version: str,
    ) -> SourceResult:
        """
        Emissions from burning fuel in stationary equipment.

        Args:
            fuel_type: Fuel key (e.g., 'naturalGas', 'distillateFuelOil2')
            quantity: Non-negative amount of fuel
            unit: Unit of quantity (energy, or a unit convertible via the fuel HHV)
            gwp_version: GWP table to apply

        Raises:
            UnknownFuelType: If the fuel has no combustion factor
            UnknownUnit: If the unit cannot be converted to MMBtu for this fuel
            InvalidInput: If quantity is negative or not finite
        """
        factor = self.reference.get_stationary_factor(fuel_type)
        mmbtu = self.unit_converter.to_canonical_energy(quantity, unit, fuel_type)

        vector = EmissionsVector(
            co2_kg=mmbtu * factor.co2,
            ch4_kg=mmbtu * factor.ch4,
            n2o_kg=mmbtu * factor.n2o,
        )
        return self.gwp.build_source_result(
            SourceKind.STATIONARY_COMBUSTION.value,
            vector,
            gwp_version,
            STATIONARY_METHODOLOGY,
            details={
                "fuel_type": fuel_type,
                "quantity": quantity,
                "unit": unit,
                "quantity_mmbtu": mmbtu,
                "factors_kg_per_mmbtu": {"co2": factor.co2, "ch4": factor.ch4, "n2o": factor.n2o},
            },
        )

    def calculate_total_stationary_combustion(
        self,
        entries: Iterable[Any],
        gwp_version: str,
    ) -> SourceResult:
        """
        Sum stationary combustion over heterogeneous fuel entries.

        Each entry is a mapping with ``fuel_type``, ``quantity`` and an
        optional ``unit`` (default MMBtu). Entries that are malformed or
        reference an unknown fuel/unit are skipped and reported.
        """
        self.reference.get_gwp_table(gwp_version)
        vectors: List[EmissionsVector] = []
        breakdown: List[BreakdownItem] = []
        skipped: List[SkippedEntry] = []
        zero_entries = 0

        for index, raw in enumerate(entries):
            try:
                entry = StationaryCombustionEntry.model_validate(raw)
                result = self.calculate_stationary_combustion(
                    entry.fuel_type, entry.quantity, entry.unit, gwp_version,
                )
            except ENTRY_ERRORS as exc:
                skipped.append(skipped_entry(index, raw, exc, SourceKind.STATIONARY_COMBUSTION.value))
                continue

            if entry.quantity == 0:
                zero_entries += 1
                continue

            vectors.append(EmissionsVector(
                co2_kg=result.co2_kg, ch4_kg=result.ch4_kg, n2o_kg=result.n2o_kg,
            ))
            breakdown.append(_breakdown_item(entry.fuel_type, entry.quantity, entry.unit, result))

        return self.gwp.build_source_result(
            SourceKind.STATIONARY_COMBUSTION.value,
            EmissionsVector.total(vectors),
            gwp_version,
            STATIONARY_METHODOLOGY,
            details={"entries_counted": len(breakdown), "zero_quantity_entries": zero_entries},
            breakdown=breakdown,
            skipped=skipped,
        )

    # ------------------------------------------------------------------
    # Mobile combustion
    # ------------------------------------------------------------------

    def calculate_mobile_combustion(
        self,
        vehicle_type: str,
        quantity: float,
        unit: str,
        gwp_version: str,
        fuel_type: str = "motorGasoline",
    ) -> SourceResult:
        """
        Emissions from fuel burned in vehicles and mobile equipment.

        Args:
            vehicle_type: 'PassengerCar', 'LightTruck', 'HeavyTruck', 'Equipment'
            quantity: Non-negative fuel volume
            unit: Volume unit (gallon, liter, barrel, ...)
            gwp_version: GWP table to apply
            fuel_type: 'motorGasoline' or 'diesel'

        Raises:
            UnknownVehicleType: If no factor exists for the vehicle/fuel pair
            UnknownUnit: If the unit is not a volume unit
            InvalidInput: If quantity is negative or not finite
        """
        factor_key, factor = self.reference.resolve_mobile_factor(vehicle_type, fuel_type)
        gallons = self.unit_converter.convert(quantity, unit, factor.unit, category="volume")

        vector = EmissionsVector(
            co2_kg=gallons * factor.co2,
            ch4_kg=gallons * factor.ch4,
            n2o_kg=gallons * factor.n2o,
        )
        return self.gwp.build_source_result(
            SourceKind.MOBILE_COMBUSTION.value,
            vector,
            gwp_version,
            MOBILE_METHODOLOGY,
            details={
                "vehicle_type": vehicle_type,
                "fuel_type": fuel_type,
                "factor_key": factor_key,
                "quantity": quantity,
                "unit": unit,
                "quantity_gallons": gallons,
            },
        )

    def calculate_total_mobile_combustion(
        self,
        entries: Iterable[Any],
        gwp_version: str,
    ) -> SourceResult:
        """
        Sum mobile combustion over fleet entries.

        Each entry is a mapping with ``vehicle_type``, ``quantity`` and
        optional ``fuel_type`` (default motorGasoline) and ``unit``
        (default gallon).
        """
        self.reference.get_gwp_table(gwp_version)
        vectors: List[EmissionsVector] = []
        breakdown: List[BreakdownItem] = []
        skipped: List[SkippedEntry] = []
        zero_entries = 0

        for index, raw in enumerate(entries):
            try:
                entry = MobileCombustionEntry.model_validate(raw)
                result = self.calculate_mobile_combustion(
                    entry.vehicle_type, entry.quantity, entry.unit, gwp_version, entry.fuel_type,
                )
            except ENTRY_ERRORS as exc:
                skipped.append(skipped_entry(index, raw, exc, SourceKind.MOBILE_COMBUSTION.value))
                continue

            if entry.quantity == 0:
                zero_entries += 1
                continue

            vectors.append(EmissionsVector(
                co2_kg=result.co2_kg, ch4_kg=result.ch4_kg, n2o_kg=result.n2o_kg,
            ))
            breakdown.append(_breakdown_item(
                f"{entry.vehicle_type}:{entry.fuel_type}", entry.quantity, entry.unit, result,
            ))

        return self.gwp.build_source_result(
            SourceKind.MOBILE_COMBUSTION.value,
            EmissionsVector.total(vectors),
            gwp_version,
            MOBILE_METHODOLOGY,
            details={"entries_counted": len(breakdown), "zero_quantity_entries": zero_entries},
            breakdown=breakdown,
            skipped=skipped,
        )


def _breakdown_item(key: str, quantity: float, unit: str, result: SourceResult) -> BreakdownItem:
    return BreakdownItem(
        key=key,
        quantity=quantity,
        unit=unit,
        co2_kg=result.co2_kg,
        ch4_kg=result.ch4_kg,
        n2o_kg=result.n2o_kg,
        co2e_kg=result.co2e_kg,
        co2e_tonnes=result.co2e_tonnes,
        details=result.details,
    )


__all__ = ["Scope1Calculator", "STATIONARY_METHODOLOGY", "MOBILE_METHODOLOGY"]
