# -*- coding: utf-8 -*-
"""
Scope 3 Calculator - Value Chain Emissions

Categories covered (GHG Protocol Corporate Value Chain Standard):
- Category 3:  Fuel and energy related activities (well-to-tank factors)
- Category 4:  Upstream transportation (tonne-km x mode factor)
- Category 9:  Downstream transportation (same factors as Category 4)
- Category 10: Processing of sold products
- Category 11: Use of sold products (end-use combustion, typically
  70-90% of an oil & gas company's value-chain footprint)

Every category is an aggregate over caller-supplied rows: unknown
products, unconvertible units and malformed rows are skipped and
reported, never counted as zero.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel

from carbonscope.calculation.aggregation import ENTRY_ERRORS, skipped_entry
from carbonscope.calculation.models import (
    BreakdownItem,
    ProcessedProductEntry,
    PurchasedEnergyEntry,
    Scope3Inputs,
    ScopeTotal,
    ShipmentEntry,
    SkippedEntry,
    SoldProductEntry,
    SourceKind,
    SourceResult,
)
from carbonscope.calculation.reference_data import ReferenceData, get_reference_data
from carbonscope.calculation.unit_converter import UnitConverter, require_non_negative

logger = logging.getLogger(__name__)

CATEGORY_3_METHODOLOGY = "GHG Protocol Scope 3 Category 3"
CATEGORY_4_METHODOLOGY = "GHG Protocol Scope 3 Category 4"
CATEGORY_9_METHODOLOGY = "GHG Protocol Scope 3 Category 9"
CATEGORY_10_METHODOLOGY = "GHG Protocol Scope 3 Category 10"
CATEGORY_11_METHODOLOGY = "GHG Protocol Scope 3 Category 11 - End-use Combustion"

# (key, quantity, unit, co2e_kg, details) for one counted row
_Contribution = Tuple[str, float, Optional[str], float, Dict[str, Any]]


class Scope3Calculator:
    """Value-chain categories 3, 4, 9, 10 and 11."""

    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        unit_converter: Optional[UnitConverter] = None,
    ):
        self.reference = reference or get_reference_data()
        self.unit_converter = unit_converter or UnitConverter(self.reference)

    # ------------------------------------------------------------------
    # Category 11 - Use of sold products
    # ------------------------------------------------------------------

    def calculate_sold_product(self, product_type: str, quantity: float, unit: str) -> SourceResult:
        """
        End-use combustion CO2 of one sold product.

        The quantity is converted to the factor's native unit first
        (gallon <-> liter, barrel <-> gallon, Mcf -> MMBtu for gas via the
        fuel heating value).

        Raises:
            UnknownProductType: If the product has no combustion factor
            UnknownUnit: If the unit cannot be converted to the factor unit
            InvalidInput: If quantity is negative or not finite
        """
        factor = self.reference.get_scope3_factor("sold_products", product_type)
        native_quantity = self.unit_converter.to_unit(
            quantity, unit, factor.unit, fuel_type=product_type,
        )
        co2_kg = native_quantity * factor.factor
        return SourceResult.co2e_only(
            SourceKind.CATEGORY_11.value,
            co2_kg,
            CATEGORY_11_METHODOLOGY,
            co2_kg=co2_kg,
            details={
                "product_type": product_type,
                "quantity": quantity,
                "unit": unit,
                "native_quantity": native_quantity,
                "native_unit": factor.unit,
                "factor_kg_co2_per_unit": factor.factor,
            },
        )

    def calculate_category11(self, sold_products: Iterable[Any]) -> SourceResult:
        """
        Category 11 over a list of ``{product_type, quantity, unit}`` rows.

        The breakdown has one item per product type, quantities summed in
        the factor's native unit.
        """
        per_product: Dict[str, Dict[str, Any]] = {}
        skipped: List[SkippedEntry] = []
        zero_entries = 0
        total_kg = 0.0

        for index, raw in enumerate(sold_products):
            try:
                entry = SoldProductEntry.model_validate(raw)
                result = self.calculate_sold_product(entry.product_type, entry.quantity, entry.unit)
            except ENTRY_ERRORS as exc:
                skipped.append(skipped_entry(index, raw, exc, SourceKind.CATEGORY_11.value))
                continue
            if entry.quantity == 0:
                zero_entries += 1
                continue

            total_kg += result.co2e_kg
            item = per_product.setdefault(entry.product_type, {
                "quantity": 0.0,
                "unit": result.details["native_unit"],
                "co2_kg": 0.0,
                "entries": 0,
            })
            item["quantity"] += result.details["native_quantity"]
            item["co2_kg"] += result.co2e_kg
            item["entries"] += 1

        breakdown = [
            BreakdownItem(
                key=product,
                quantity=item["quantity"],
                unit=item["unit"],
                co2_kg=item["co2_kg"],
                co2e_kg=item["co2_kg"],
                co2e_tonnes=item["co2_kg"] / 1000,
                details={"entries": item["entries"]},
            )
            for product, item in per_product.items()
        ]
        return SourceResult.co2e_only(
            SourceKind.CATEGORY_11.value,
            total_kg,
            CATEGORY_11_METHODOLOGY,
            co2_kg=total_kg,
            details={
                "category": 11,
                "category_name": "Use of Sold Products",
                "product_count": len(breakdown),
                "zero_quantity_entries": zero_entries,
            },
            breakdown=breakdown,
            skipped=skipped,
        )

    # ------------------------------------------------------------------
    # Category 3 - Fuel and energy related activities
    # ------------------------------------------------------------------

    def calculate_category3(self, purchased_energy: Iterable[Any]) -> SourceResult:
        """Upstream (well-to-tank) emissions of purchased fuels and electricity."""

        def contribution(entry: PurchasedEnergyEntry) -> _Contribution:
            factor = self.reference.get_scope3_factor("upstream_energy", entry.energy_type)
            native_quantity = self.unit_converter.to_unit(
                entry.quantity, entry.unit, factor.unit, fuel_type=entry.energy_type,
            )
            return (
                entry.energy_type,
                entry.quantity,
                entry.unit,
                native_quantity * factor.factor,
                {"native_quantity": native_quantity, "native_unit": factor.unit, "factor": factor.factor},
            )

        return self._aggregate(
            SourceKind.CATEGORY_3, 3, "Fuel and Energy Related Activities",
            CATEGORY_3_METHODOLOGY, purchased_energy, PurchasedEnergyEntry, contribution,
        )

    # ------------------------------------------------------------------
    # Categories 4 and 9 - Transportation
    # ------------------------------------------------------------------

    def calculate_category4(self, shipments: Iterable[Any]) -> SourceResult:
        """Upstream transportation: mass x distance x mode factor."""
        return self._transport(
            SourceKind.CATEGORY_4, 4, "Upstream Transportation and Distribution",
            CATEGORY_4_METHODOLOGY, shipments,
        )

    def calculate_category9(self, shipments: Iterable[Any]) -> SourceResult:
        """Downstream transportation, using the Category 4 mode factors."""
        return self._transport(
            SourceKind.CATEGORY_9, 9, "Downstream Transportation and Distribution",
            CATEGORY_9_METHODOLOGY, shipments,
        )

    def _transport(
        self,
        kind: SourceKind,
        category: int,
        name: str,
        methodology: str,
        shipments: Iterable[Any],
    ) -> SourceResult:
        def contribution(entry: ShipmentEntry) -> _Contribution:
            factor = self.reference.get_transport_factor(entry.mode)
            require_non_negative(entry.mass_tonnes, "mass_tonnes")
            require_non_negative(entry.distance_km, "distance_km")
            tonne_km = entry.mass_tonnes * entry.distance_km
            return (
                entry.mode,
                tonne_km,
                "tonne_km",
                tonne_km * factor,
                {
                    "mass_tonnes": entry.mass_tonnes,
                    "distance_km": entry.distance_km,
                    "factor_kg_per_tonne_km": factor,
                },
            )

        return self._aggregate(kind, category, name, methodology, shipments, ShipmentEntry, contribution)

    # ------------------------------------------------------------------
    # Category 10 - Processing of sold products
    # ------------------------------------------------------------------

    def calculate_category10(self, products: Iterable[Any]) -> SourceResult:
        """
        Third-party processing of intermediate products.

        A caller-supplied ``processing_emission_factor`` (kg CO2e per unit
        of the row's quantity) wins. Otherwise the reference factor is
        used after converting to its native unit. Rows with neither are
        skipped.
        """

        def contribution(entry: ProcessedProductEntry) -> _Contribution:
            if entry.processing_emission_factor is not None:
                require_non_negative(entry.processing_emission_factor, "processing_emission_factor")
                require_non_negative(entry.quantity, "quantity")
                return (
                    entry.product_type,
                    entry.quantity,
                    entry.unit,
                    entry.quantity * entry.processing_emission_factor,
                    {"factor": entry.processing_emission_factor, "factor_source": "caller"},
                )
            factor = self.reference.get_scope3_factor("processing", entry.product_type)
            native_quantity = self.unit_converter.to_unit(
                entry.quantity, entry.unit or factor.unit, factor.unit, fuel_type=entry.product_type,
            )
            return (
                entry.product_type,
                entry.quantity,
                entry.unit or factor.unit,
                native_quantity * factor.factor,
                {
                    "native_quantity": native_quantity,
                    "native_unit": factor.unit,
                    "factor": factor.factor,
                    "factor_source": "reference",
                },
            )

        return self._aggregate(
            SourceKind.CATEGORY_10, 10, "Processing of Sold Products",
            CATEGORY_10_METHODOLOGY, products, ProcessedProductEntry, contribution,
        )

    # ------------------------------------------------------------------
    # Total
    # ------------------------------------------------------------------

    def calculate_total(self, inputs: Scope3Inputs) -> ScopeTotal:
        """
        Sum the categories that were supplied.

        Categories with no rows are absent from ``by_source`` and
        contribute zero.
        """
        by_source: Dict[str, SourceResult] = {}
        if inputs.sold_products:
            by_source[SourceKind.CATEGORY_11.value] = self.calculate_category11(inputs.sold_products)
        if inputs.purchased_energy:
            by_source[SourceKind.CATEGORY_3.value] = self.calculate_category3(inputs.purchased_energy)
        if inputs.upstream_transport:
            by_source[SourceKind.CATEGORY_4.value] = self.calculate_category4(inputs.upstream_transport)
        if inputs.downstream_transport:
            by_source[SourceKind.CATEGORY_9.value] = self.calculate_category9(inputs.downstream_transport)
        if inputs.processing:
            by_source[SourceKind.CATEGORY_10.value] = self.calculate_category10(inputs.processing)

        total = ScopeTotal.from_sources(by_source)
        logger.debug(
            "Scope 3 total %.3f t CO2e over categories %s", total.co2e_tonnes, list(by_source),
        )
        return total

    def list_categories(self) -> List[Dict[str, Any]]:
        """The 15 Scope 3 categories with their oil & gas relevance."""
        return [c.model_dump() for c in self.reference.scope3.categories]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _aggregate(
        self,
        kind: SourceKind,
        category: int,
        name: str,
        methodology: str,
        rows: Iterable[Any],
        entry_model: Type[BaseModel],
        contribution: Callable[[Any], _Contribution],
    ) -> SourceResult:
        total_kg = 0.0
        breakdown: List[BreakdownItem] = []
        skipped: List[SkippedEntry] = []
        zero_entries = 0

        for index, raw in enumerate(rows):
            try:
                entry = entry_model.model_validate(raw)
                key, quantity, unit, co2e_kg, details = contribution(entry)
            except ENTRY_ERRORS as exc:
                skipped.append(skipped_entry(index, raw, exc, kind.value))
                continue
            if quantity == 0:
                zero_entries += 1
                continue
            total_kg += co2e_kg
            breakdown.append(BreakdownItem(
                key=key,
                quantity=quantity,
                unit=unit,
                co2e_kg=co2e_kg,
                co2e_tonnes=co2e_kg / 1000,
                details=details,
            ))

        return SourceResult.co2e_only(
            kind.value,
            total_kg,
            methodology,
            details={
                "category": category,
                "category_name": name,
                "entries_counted": len(breakdown),
                "zero_quantity_entries": zero_entries,
            },
            breakdown=breakdown,
            skipped=skipped,
        )


__all__ = [
    "Scope3Calculator",
    "CATEGORY_3_METHODOLOGY",
    "CATEGORY_4_METHODOLOGY",
    "CATEGORY_9_METHODOLOGY",
    "CATEGORY_10_METHODOLOGY",
    "CATEGORY_11_METHODOLOGY",
]
