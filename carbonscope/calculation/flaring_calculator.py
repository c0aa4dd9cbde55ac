# -*- coding: utf-8 -*-
"""
Flaring Emissions Calculator - 40 CFR 98.253

Two methods for gas routed to a flare:

1. Default method (Equation Y-2): flare volume x HHV x default CO2 factor
   x combustion efficiency. CH4 comes from the carbon that was not
   combusted; N2O from a fixed per-MMBtu factor.
2. Gas composition method (Equation Y-1): carbon-atom weighted sum over
   the measured gas components.

Example:
    >>> calc = FlaringCalculator()
    >>> result = calc.calculate_default(10, "AR5")
    >>> round(result.co2_kg)
    578200

All constants (default factor, HHV, efficiency, uncombusted-carbon CH4
fraction, molar volume) come from ``flaring.yaml``.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from carbonscope.calculation.gwp_conversion import GWPConverter
from carbonscope.calculation.models import (
    EmissionsVector,
    GasComponentEntry,
    SourceKind,
    SourceResult,
)
from carbonscope.calculation.reference_data import ReferenceData, get_reference_data
from carbonscope.calculation.unit_converter import UnitConverter, require_non_negative
from carbonscope.exceptions import InvalidInput, UnknownComponentType

logger = logging.getLogger(__name__)

DEFAULT_METHODOLOGY = "40 CFR § 98.253 (Default Method - Equation Y-2)"
COMPOSITION_METHODOLOGY = "40 CFR § 98.253 (Composition Method - Equation Y-1)"

# Molar mass ratios
C_PER_CO2 = 12 / 44
CO2_PER_C = 44 / 12
CH4_PER_C = 16 / 12

GasComposition = Union[Mapping[str, float], Iterable[Any]]


class FlaringCalculator:
    """Flare CO2, CH4 and N2O by the default or gas-composition method."""

    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        unit_converter: Optional[UnitConverter] = None,
        gwp_converter: Optional[GWPConverter] = None,
    ):
        self.reference = reference or get_reference_data()
        self.unit_converter = unit_converter or UnitConverter(self.reference)
        self.gwp = gwp_converter or GWPConverter(self.reference)
        self.defaults = self.reference.flaring

    # ------------------------------------------------------------------
    # Default method
    # ------------------------------------------------------------------

    def calculate_default(
        self,
        volume_mmscf: float,
        gwp_version: str,
        hhv: Optional[float] = None,
        combustion_efficiency: Optional[float] = None,
    ) -> SourceResult:
        """
        Flaring emissions by Equation Y-2.

        Args:
            volume_mmscf: Flared gas volume in MMscf
            gwp_version: GWP table to apply
            hhv: Higher heating value in MMBtu/MMscf (default from reference)
            combustion_efficiency: Fraction combusted, 0-1 (default 0.98)

        Raises:
            InvalidInput: If volume is negative, HHV is not positive or
                efficiency is outside [0, 1]
        """
        hhv = self.defaults.default_hhv if hhv is None else hhv
        efficiency = self._efficiency(combustion_efficiency)
        require_non_negative(volume_mmscf, "volume_mmscf")
        if not math.isfinite(hhv) or hhv <= 0:
            raise InvalidInput(
                message=f"HHV must be positive, got {hhv}", field="hhv", value=hhv,
            )

        total_energy_mmbtu = volume_mmscf * hhv
        co2_kg = total_energy_mmbtu * self.defaults.default_co2_factor * efficiency
        uncombusted_carbon_kg = self._uncombusted_carbon(
            co2_kg, efficiency, total_energy_mmbtu * self.defaults.default_co2_factor,
        )
        ch4_kg = uncombusted_carbon_kg * self.defaults.uncombusted_carbon_ch4_fraction * CH4_PER_C
        n2o_kg = total_energy_mmbtu * self.defaults.n2o_factor

        return self.gwp.build_source_result(
            SourceKind.FLARING.value,
            EmissionsVector(co2_kg=co2_kg, ch4_kg=ch4_kg, n2o_kg=n2o_kg),
            gwp_version,
            DEFAULT_METHODOLOGY,
            details={
                "method": "default",
                "volume_mmscf": volume_mmscf,
                "hhv_mmbtu_per_mmscf": hhv,
                "combustion_efficiency": efficiency,
                "total_energy_mmbtu": total_energy_mmbtu,
                "emission_factor_kg_co2_per_mmbtu": self.defaults.default_co2_factor,
                "uncombusted_carbon_kg": uncombusted_carbon_kg,
            },
        )

    # ------------------------------------------------------------------
    # Gas composition method
    # ------------------------------------------------------------------

    def calculate_with_composition(
        self,
        volume_scf: float,
        gas_composition: GasComposition,
        gwp_version: str,
        combustion_efficiency: Optional[float] = None,
    ) -> SourceResult:
        """
        Flaring emissions by Equation Y-1.

        Args:
            volume_scf: Flared gas volume in scf
            gas_composition: Either ``{component: mole_fraction}`` or a list
                of mappings with ``mole_fraction`` plus a catalogue
                ``component`` key and/or explicit ``molecular_weight`` and
                ``carbon_atoms``
            gwp_version: GWP table to apply
            combustion_efficiency: Fraction combusted, 0-1 (default 0.98)

        Raises:
            InvalidInput: On negative volume, bad efficiency or a malformed
                component record
            UnknownComponentType: If a component is neither in the catalogue
                nor given explicit properties
        """
        efficiency = self._efficiency(combustion_efficiency)
        require_non_negative(volume_scf, "volume_scf")
        components = self._resolve_components(gas_composition)

        warnings: List[str] = []
        fraction_sum = sum(c["mole_fraction"] for c in components)
        if abs(fraction_sum - 1.0) > self.defaults.mole_fraction_tolerance:
            message = f"Mole fractions sum to {fraction_sum:.4f}, expected 1.0"
            logger.warning("Flaring gas composition: %s", message)
            warnings.append(message)

        mvc = self.defaults.molar_volume_conversion
        co2_kg = 0.0
        energy_btu = 0.0
        component_results = []
        for comp in components:
            component_volume = volume_scf * comp["mole_fraction"]
            component_co2 = (
                efficiency * 0.001 * component_volume
                * (comp["molecular_weight"] / mvc)
                * comp["carbon_atoms"] * CO2_PER_C
            )
            co2_kg += component_co2
            energy_btu += component_volume * comp["hhv_btu_scf"]
            component_results.append({
                "component": comp["component"],
                "mole_fraction": comp["mole_fraction"],
                "volume_scf": component_volume,
                "molecular_weight": comp["molecular_weight"],
                "carbon_atoms": comp["carbon_atoms"],
                "co2_kg": component_co2,
            })

        potential_co2_kg = co2_kg / efficiency if efficiency > 0 else self._potential_co2(
            volume_scf, components,
        )
        uncombusted_carbon_kg = self._uncombusted_carbon(co2_kg, efficiency, potential_co2_kg)
        ch4_kg = uncombusted_carbon_kg * self.defaults.uncombusted_carbon_ch4_fraction * CH4_PER_C

        return self.gwp.build_source_result(
            SourceKind.FLARING.value,
            EmissionsVector(co2_kg=co2_kg, ch4_kg=ch4_kg, n2o_kg=0.0),
            gwp_version,
            COMPOSITION_METHODOLOGY,
            details={
                "method": "composition",
                "volume_scf": volume_scf,
                "combustion_efficiency": efficiency,
                "mole_fraction_sum": fraction_sum,
                "total_energy_mmbtu": energy_btu / 1_000_000,
                "uncombusted_carbon_kg": uncombusted_carbon_kg,
                "component_results": component_results,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def convert_volume(self, volume: float, from_unit: str, to_unit: str) -> float:
        """Convert a flare volume between scf, Mcf, MMscf and m3."""
        return self.unit_converter.convert(volume, from_unit, to_unit, category="volume")

    def default_gas_composition(self) -> List[Dict[str, Any]]:
        """Typical associated-gas composition from the reference tables."""
        return [
            {"component": name, "mole_fraction": fraction}
            for name, fraction in self.defaults.default_composition.items()
        ]

    def _efficiency(self, combustion_efficiency: Optional[float]) -> float:
        if combustion_efficiency is None:
            return self.defaults.default_combustion_efficiency
        if not 0 <= combustion_efficiency <= 1:
            raise InvalidInput(
                message=f"Combustion efficiency must be between 0 and 1, got {combustion_efficiency}",
                field="combustion_efficiency",
                value=combustion_efficiency,
            )
        return combustion_efficiency

    @staticmethod
    def _uncombusted_carbon(co2_kg: float, efficiency: float, potential_co2_kg: float) -> float:
        # At zero efficiency nothing burns, so all potential carbon is uncombusted
        if efficiency > 0:
            return (co2_kg * 12 / 44 / efficiency) * (1 - efficiency)
        return potential_co2_kg * C_PER_CO2

    def _potential_co2(self, volume_scf: float, components: List[Dict[str, Any]]) -> float:
        mvc = self.defaults.molar_volume_conversion
        return sum(
            0.001 * volume_scf * c["mole_fraction"] * (c["molecular_weight"] / mvc)
            * c["carbon_atoms"] * CO2_PER_C
            for c in components
        )

    def _resolve_components(self, gas_composition: GasComposition) -> List[Dict[str, Any]]:
        if isinstance(gas_composition, Mapping):
            raw_items: List[Any] = [
                {"component": k, "mole_fraction": v} for k, v in gas_composition.items()
            ]
        else:
            raw_items = list(gas_composition)
        if not raw_items:
            raise InvalidInput(
                message="Gas composition must contain at least one component",
                field="gas_composition",
                value=[],
            )

        catalogue = self.defaults.components
        resolved = []
        for index, raw in enumerate(raw_items):
            try:
                entry = GasComponentEntry.model_validate(raw)
            except ValidationError as exc:
                raise InvalidInput(
                    message=f"Invalid gas component at position {index}: {exc.errors()[0]['msg']}",
                    field="gas_composition",
                    value=raw,
                ) from exc

            known = catalogue.get(entry.component) if entry.component else None
            molecular_weight = entry.molecular_weight
            carbon_atoms = entry.carbon_atoms
            if known is not None:
                molecular_weight = molecular_weight if molecular_weight is not None else known.molecular_weight
                carbon_atoms = carbon_atoms if carbon_atoms is not None else known.carbon_atoms
            if molecular_weight is None or carbon_atoms is None:
                raise UnknownComponentType(
                    message=f"Unknown gas component: {entry.component}",
                    key=entry.component,
                    available=catalogue.keys(),
                )
            resolved.append({
                "component": entry.component or f"component_{index}",
                "mole_fraction": entry.mole_fraction,
                "molecular_weight": molecular_weight,
                "carbon_atoms": carbon_atoms,
                "hhv_btu_scf": known.hhv_btu_scf if known is not None else 0.0,
            })
        return resolved


__all__ = ["FlaringCalculator", "DEFAULT_METHODOLOGY", "COMPOSITION_METHODOLOGY"]
