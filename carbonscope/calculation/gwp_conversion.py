# -*- coding: utf-8 -*-
"""
GWP Conversion

Maps gas amounts to CO2-equivalent mass using a selected IPCC GWP table
(AR4, AR5, AR6). Gas identifiers are normalised through an alias map, so
"methane", "ch4" and "CH4" all resolve to ``CH4_fossil``.

``build_source_result`` is the one place where an EmissionsVector becomes
a SourceResult, which keeps the CO2e identity identical across every
calculator.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from carbonscope.calculation.models import (
    CO2eAggregate,
    EmissionsVector,
    GasConversion,
    GWPComparison,
    SourceResult,
)
from carbonscope.calculation.reference_data import ReferenceData, get_reference_data
from carbonscope.calculation.unit_converter import require_non_negative
from carbonscope.exceptions import InvalidInput, UnknownGasType

logger = logging.getLogger(__name__)

#: Alias -> GWP table key
GAS_ALIASES: Dict[str, str] = {
    'CO2': 'CO2',
    'co2': 'CO2',
    'carbon dioxide': 'CO2',
    'CH4': 'CH4_fossil',
    'ch4': 'CH4_fossil',
    'methane': 'CH4_fossil',
    'CH4_fossil': 'CH4_fossil',
    'CH4_biogenic': 'CH4_non_fossil',
    'CH4_non_fossil': 'CH4_non_fossil',
    'N2O': 'N2O',
    'n2o': 'N2O',
    'nitrous oxide': 'N2O',
    'SF6': 'SF6',
    'sf6': 'SF6',
    'sulfur hexafluoride': 'SF6',
}

_INPUT_UNIT_TO_KG = {'kg': 1.0, 'tonnes': 1000.0, 'tonne': 1000.0, 't': 1000.0}


def normalize_gas_key(gas: str) -> str:
    """Resolve a gas alias to its GWP table key; unknown keys pass through."""
    return GAS_ALIASES.get(gas, GAS_ALIASES.get(str(gas).strip().lower(), gas))


class GWPConverter:
    """Converts gas masses to CO2e with an explicitly chosen GWP version."""

    def __init__(self, reference: Optional[ReferenceData] = None):
        self.reference = reference or get_reference_data()

    def get_gwp(self, gas: str, version: str) -> float:
        """
        Get the GWP multiplier for a gas.

        Raises:
            UnknownGWPVersion: If version is not a loaded table
            UnknownGasType: If the gas is not mapped after alias normalisation
        """
        table = self.reference.get_gwp_table(version)
        key = normalize_gas_key(gas)
        gwp = table.values.get(key)
        if gwp is None:
            raise UnknownGasType(
                message=f"Unknown gas type '{gas}' for GWP {table.version}",
                key=gas,
                available=table.values.keys(),
            )
        return gwp

    def convert_to_co2e(
        self,
        amount: float,
        gas: str,
        version: str,
        input_unit: str = "kg",
    ) -> GasConversion:
        """Convert one gas amount (kg or tonnes) to CO2e."""
        amount_kg = self._to_kg(amount, input_unit)
        gwp = self.get_gwp(gas, version)
        co2e_kg = amount_kg * gwp
        return GasConversion(
            gas=gas,
            gas_key=normalize_gas_key(gas),
            amount_kg=amount_kg,
            gwp=gwp,
            co2e_kg=co2e_kg,
            co2e_tonnes=co2e_kg / 1000,
            gwp_version=self.reference.get_gwp_table(version).version,
        )

    def aggregate_to_co2e(
        self,
        emissions: Union[EmissionsVector, Mapping[str, Optional[float]]],
        version: str,
        input_unit: str = "kg",
    ) -> CO2eAggregate:
        """
        Sum a multi-gas vector into CO2e with a per-gas breakdown.

        Zero or missing amounts are skipped. Unknown gases raise
        UnknownGasType rather than being dropped.
        """
        table = self.reference.get_gwp_table(version)
        if isinstance(emissions, EmissionsVector):
            amounts: Mapping[str, Optional[float]] = emissions.as_gas_amounts()
        else:
            amounts = emissions

        total_kg = 0.0
        breakdown: Dict[str, GasConversion] = {}
        for gas, amount in amounts.items():
            if not amount:
                continue
            conversion = self.convert_to_co2e(amount, gas, table.version, input_unit)
            breakdown[conversion.gas_key] = conversion
            total_kg += conversion.co2e_kg

        return CO2eAggregate(
            co2e_kg=total_kg,
            co2e_tonnes=total_kg / 1000,
            breakdown=breakdown,
            gwp_version=table.version,
            source=table.source,
            time_horizon=table.time_horizon,
        )

    def build_source_result(
        self,
        source_kind: str,
        vector: EmissionsVector,
        version: str,
        methodology: str,
        **extra: Any,
    ) -> SourceResult:
        """Turn a three-gas vector into a SourceResult under ``version``."""
        aggregate = self.aggregate_to_co2e(vector, version)
        return SourceResult(
            source_kind=source_kind,
            co2_kg=vector.co2_kg,
            ch4_kg=vector.ch4_kg,
            n2o_kg=vector.n2o_kg,
            co2e_kg=aggregate.co2e_kg,
            co2e_tonnes=aggregate.co2e_tonnes,
            methodology=methodology,
            gwp_version=aggregate.gwp_version,
            **extra,
        )

    def compare_versions(
        self,
        emissions: Union[EmissionsVector, Mapping[str, Optional[float]]],
        base_version: str = "AR5",
        compare_version: str = "AR6",
    ) -> GWPComparison:
        """Show how the CO2e total moves between two GWP tables."""
        base = self.aggregate_to_co2e(emissions, base_version)
        other = self.aggregate_to_co2e(emissions, compare_version)
        difference = other.co2e_tonnes - base.co2e_tonnes
        percent = (difference / base.co2e_tonnes) * 100 if base.co2e_tonnes > 0 else None
        return GWPComparison(
            base_version=base.gwp_version,
            compare_version=other.gwp_version,
            base_tonnes=base.co2e_tonnes,
            compare_tonnes=other.co2e_tonnes,
            difference_tonnes=difference,
            difference_percent=percent,
        )

    def list_versions(self) -> List[Dict[str, Any]]:
        """Metadata for each loaded GWP table."""
        return [
            {
                "version": t.version,
                "source": t.source,
                "time_horizon": t.time_horizon,
                "default": t.default,
                "deprecated": t.deprecated,
                "description": t.description,
            }
            for t in self.reference.gwp_tables.values()
        ]

    def get_table(self, version: str) -> List[Dict[str, Any]]:
        """Gases in one table, highest GWP first."""
        table = self.reference.get_gwp_table(version)
        rows = [
            {
                "gas": gas,
                "label": self.reference.gas_labels.get(gas, gas),
                "gwp": gwp,
            }
            for gas, gwp in table.values.items()
        ]
        return sorted(rows, key=lambda r: r["gwp"], reverse=True)

    @staticmethod
    def _to_kg(amount: float, input_unit: str) -> float:
        require_non_negative(amount, "amount")
        factor = _INPUT_UNIT_TO_KG.get(str(input_unit).strip().lower())
        if factor is None:
            raise InvalidInput(
                message=f"Gas amounts must be in kg or tonnes, got '{input_unit}'",
                field="input_unit",
                value=input_unit,
            )
        return amount * factor


__all__ = ["GAS_ALIASES", "normalize_gas_key", "GWPConverter"]
