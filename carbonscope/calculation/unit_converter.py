# -*- coding: utf-8 -*-
"""
Unit Conversion Engine

All conversions are deterministic Decimal arithmetic over fixed ratios.
Fail loudly on unknown units.

Supports:
- Energy: MMBtu, therm, Btu, kWh, MWh, GWh, GJ, MJ
- Volume: liters, gallons (US), barrels, m3, scf, ccf, Mcf, MMscf
- Mass: g, kg, tonnes, short tons, lbs
- Distance: km, miles

Fuel-aware energy conversion (quantity x heating value) uses the fuel
heating values from the reference tables, so natural gas Mcf -> MMBtu
uses natural gas's own HHV rather than a generic constant.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from carbonscope.exceptions import IncompatibleUnits, InvalidInput, UnknownUnit

if TYPE_CHECKING:
    from carbonscope.calculation.reference_data import ReferenceData

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]


def require_non_negative(value: Number, field: str = "quantity") -> None:
    """Raise InvalidInput unless value is a finite number >= 0."""
    if value is None or not math.isfinite(value) or value < 0:
        raise InvalidInput(
            message=f"{field} must be a finite non-negative number, got {value}",
            field=field,
            value=value,
        )


class UnitConverter:
    """
    Deterministic unit converter with validation.

    GUARANTEES:
    - Same input -> Same output (bit-perfect)
    - Identity conversions return the input unchanged
    - Unknown units -> UnknownUnit; cross-category -> IncompatibleUnits
    - Negative quantities -> InvalidInput
    """

    # Energy conversions (to MMBtu as base unit)
    ENERGY_TO_MMBTU: Dict[str, Decimal] = {
        'mmbtu': Decimal('1'),
        'therm': Decimal('0.1'),
        'btu': Decimal('0.000001'),
        'kwh': Decimal('0.003412142'),  # 1 kWh = 3412.142 Btu
        'mwh': Decimal('3.412142'),
        'gwh': Decimal('3412.142'),
        'gj': Decimal('0.947817'),  # 1 GJ = 0.947817 MMBtu
        'mj': Decimal('0.000947817'),
    }

    # Volume conversions (to liters as base unit)
    VOLUME_TO_LITERS: Dict[str, Decimal] = {
        'liter': Decimal('1'),
        'gallon': Decimal('3.78541'),  # US gallon
        'barrel': Decimal('158.987'),  # 42 US gallons
        'm3': Decimal('1000'),
        'scf': Decimal('28.3168'),  # Standard cubic foot
        'ccf': Decimal('2831.68'),  # 100 cubic feet
        'mcf': Decimal('28316.8'),  # 1000 cubic feet
        'mmscf': Decimal('28316800'),  # 1,000,000 cubic feet
    }

    # Mass conversions (to kg as base unit)
    MASS_TO_KG: Dict[str, Decimal] = {
        'g': Decimal('0.001'),
        'kg': Decimal('1'),
        'tonne': Decimal('1000'),  # Metric ton
        'short_ton': Decimal('907.185'),  # US ton
        'lb': Decimal('0.453592'),
    }

    # Distance conversions (to km as base unit)
    DISTANCE_TO_KM: Dict[str, Decimal] = {
        'km': Decimal('1'),
        'mile': Decimal('1.60934'),
    }

    # Accepted spellings -> canonical key
    ALIASES: Dict[str, str] = {
        # energy
        'mm_btu': 'mmbtu',
        'mmbtus': 'mmbtu',
        'therms': 'therm',
        'kilowatt_hour': 'kwh',
        'kilowatt_hours': 'kwh',
        'megawatt_hour': 'mwh',
        'megawatt_hours': 'mwh',
        'gigajoule': 'gj',
        'gigajoules': 'gj',
        'megajoule': 'mj',
        'megajoules': 'mj',
        # volume
        'l': 'liter',
        'liters': 'liter',
        'litre': 'liter',
        'litres': 'liter',
        'gal': 'gallon',
        'gallons': 'gallon',
        'bbl': 'barrel',
        'barrels': 'barrel',
        'm³': 'm3',
        'cubic_meter': 'm3',
        'cubic_meters': 'm3',
        'cf': 'scf',
        'ft3': 'scf',
        'cubic_feet': 'scf',
        'mscf': 'mcf',
        'mmcf': 'mmscf',
        # mass
        'grams': 'g',
        'kilogram': 'kg',
        'kilograms': 'kg',
        'kgs': 'kg',
        't': 'tonne',
        'tonnes': 'tonne',
        'metric_ton': 'tonne',
        'metric_tons': 'tonne',
        'ton': 'short_ton',
        'tons': 'short_ton',
        'short_tons': 'short_ton',
        'lbs': 'lb',
        'pound': 'lb',
        'pounds': 'lb',
        # distance
        'kilometer': 'km',
        'kilometers': 'km',
        'miles': 'mile',
        'mi': 'mile',
    }

    CONVERSION_TABLES: Dict[str, Dict[str, Decimal]] = {
        'energy': ENERGY_TO_MMBTU,
        'volume': VOLUME_TO_LITERS,
        'mass': MASS_TO_KG,
        'distance': DISTANCE_TO_KM,
    }

    def __init__(self, reference: Optional[ReferenceData] = None):
        """
        Initialize converter.

        Args:
            reference: Reference tables supplying fuel heating values.
                Defaults to the packaged tables.
        """
        if reference is None:
            from carbonscope.calculation.reference_data import get_reference_data
            reference = get_reference_data()
        self.reference = reference

    # ------------------------------------------------------------------
    # Unit lookup
    # ------------------------------------------------------------------

    @classmethod
    def normalize_unit(cls, unit: str) -> str:
        """
        Return the canonical key for a unit spelling.

        Case-insensitive; whitespace and hyphens are treated as underscores.
        Unknown spellings are returned normalised but unchanged.
        """
        key = str(unit).strip().lower().replace(' ', '_').replace('-', '_')
        return cls.ALIASES.get(key, key)

    @classmethod
    def get_unit_category(cls, unit: str) -> Optional[str]:
        """
        Get the physical category of a unit.

        Returns:
            'energy', 'volume', 'mass', 'distance' or None if unknown
        """
        key = cls.normalize_unit(unit)
        for category, table in cls.CONVERSION_TABLES.items():
            if key in table:
                return category
        return None

    @classmethod
    def is_compatible(cls, unit1: str, unit2: str) -> bool:
        """Check if two units can be converted into each other."""
        cat1 = cls.get_unit_category(unit1)
        cat2 = cls.get_unit_category(unit2)
        return cat1 is not None and cat1 == cat2

    @classmethod
    def list_supported_units(cls, category: Optional[str] = None) -> Dict[str, List[str]]:
        """
        List canonical unit keys.

        Args:
            category: Optional category filter

        Returns:
            Dictionary of category -> sorted unit keys
        """
        if category:
            table = cls.CONVERSION_TABLES.get(category, {})
            return {category: sorted(table.keys())}
        return {cat: sorted(table.keys()) for cat, table in cls.CONVERSION_TABLES.items()}

    def _resolve(self, unit: str, category: Optional[str] = None) -> tuple:
        key = self.normalize_unit(unit)
        unit_category = self.get_unit_category(key)
        if unit_category is None:
            raise UnknownUnit(
                message=f"Unknown unit: {unit}",
                key=unit,
                context={"category": category},
            )
        if category is not None and unit_category != category:
            raise UnknownUnit(
                message=f"Unit '{unit}' is not a {category} unit",
                key=unit,
                available=self.CONVERSION_TABLES.get(category, {}).keys(),
                context={"category": category, "unit_category": unit_category},
            )
        return key, unit_category

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def convert(
        self,
        value: Number,
        from_unit: str,
        to_unit: str,
        category: Optional[str] = None,
    ) -> float:
        """
        Convert value from one unit to another within a category.

        Args:
            value: Non-negative quantity to convert
            from_unit: Source unit (e.g., 'gallon', 'Mcf')
            to_unit: Target unit (e.g., 'liter', 'scf')
            category: Optional category both units must belong to
                ('energy', 'volume', 'mass', 'distance')

        Returns:
            Converted value as float

        Raises:
            InvalidInput: If value is negative or not finite
            UnknownUnit: If either unit is unknown or outside ``category``
            IncompatibleUnits: If the units belong to different categories
        """
        require_non_negative(value)
        from_key, from_category = self._resolve(from_unit, category)
        to_key, to_category = self._resolve(to_unit, category)

        if from_category != to_category:
            raise IncompatibleUnits(
                message=(
                    f"Cannot convert between different unit types: "
                    f"{from_unit} ({from_category}) -> {to_unit} ({to_category})"
                ),
                key=from_unit,
                context={"to_unit": to_unit},
            )

        # Identity conversion introduces no rounding
        if from_key == to_key:
            return float(value)

        if not isinstance(value, Decimal):
            value = Decimal(str(value))

        table = self.CONVERSION_TABLES[from_category]
        base_value = value * table[from_key]
        return float(base_value / table[to_key])

    def to_canonical_energy(self, quantity: Number, unit: str, fuel_type: str) -> float:
        """
        Convert a fuel quantity to MMBtu.

        Energy units convert directly. Volume and mass units are converted
        to the fuel's native heating-value unit and multiplied by that
        fuel's higher heating value.

        Args:
            quantity: Non-negative fuel quantity
            unit: Unit of ``quantity``
            fuel_type: Fuel key in the heating-value table

        Returns:
            Energy content in MMBtu

        Raises:
            InvalidInput: If quantity is negative or not finite
            UnknownUnit: If the unit is unknown, or the fuel has no heating
                value for a non-energy unit
        """
        require_non_negative(quantity)
        key, category = self._resolve(unit)

        if category == 'energy':
            return self.convert(quantity, key, 'mmbtu')

        heating_value = self.reference.heating_values.get(fuel_type)
        if heating_value is None:
            raise UnknownUnit(
                message=f"No heating value for fuel '{fuel_type}' to convert {unit} to MMBtu",
                key=unit,
                available=self.reference.heating_values.keys(),
                context={"fuel_type": fuel_type},
            )

        native_category = self.get_unit_category(heating_value.unit)
        if category != native_category:
            raise IncompatibleUnits(
                message=(
                    f"Cannot convert {unit} ({category}) for {fuel_type}; "
                    f"heating value is per {heating_value.unit} ({native_category})"
                ),
                key=unit,
                context={"fuel_type": fuel_type},
            )

        native_quantity = self.convert(quantity, key, heating_value.unit)
        return native_quantity * heating_value.hhv

    def to_unit(
        self,
        quantity: Number,
        unit: str,
        target_unit: str,
        fuel_type: Optional[str] = None,
    ) -> float:
        """
        Convert ``quantity`` to ``target_unit``, crossing into energy via a fuel HHV.

        Same-category conversions go through convert(). When the target is
        an energy unit and the source is not, the fuel heating value is used
        (e.g. natural gas Mcf -> MMBtu).

        Raises:
            UnknownUnit / IncompatibleUnits: If no conversion path exists
        """
        target_category = self.get_unit_category(target_unit)
        source_category = self.get_unit_category(unit)
        if (
            fuel_type is not None
            and target_category == 'energy'
            and source_category not in (None, 'energy')
        ):
            mmbtu = self.to_canonical_energy(quantity, unit, fuel_type)
            return self.convert(mmbtu, 'mmbtu', target_unit)
        return self.convert(quantity, unit, target_unit)


__all__ = ["UnitConverter", "require_non_negative"]
