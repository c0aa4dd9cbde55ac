# -*- coding: utf-8 -*-
"""CarbonScope Exception Hierarchy.

Typed errors raised by the calculation engine. Every exception carries rich
context so callers (UI layers, exporters, batch runners) can render or log
the failure without parsing message strings.

Exception Hierarchy:
    CarbonScopeException (base)
    ├── CalculationException
    │   ├── InvalidInput
    │   └── ReferenceLookupError
    │       ├── UnknownUnit
    │       │   └── IncompatibleUnits
    │       ├── UnknownFuelType
    │       ├── UnknownVehicleType
    │       ├── UnknownFacilityType
    │       ├── UnknownComponentType
    │       ├── UnknownProductType
    │       ├── UnknownGWPVersion
    │       ├── UnknownGasType
    │       └── GridFactorNotFound
    └── ReferenceDataError

All exceptions include:
- error_code: Unique error identifier (derived from the class name)
- context: Dictionary with error-specific details
- timestamp: When the error occurred

Example:
    >>> from carbonscope.exceptions import UnknownFuelType
    >>> raise UnknownFuelType(
    ...     message="Unknown fuel type: unobtainium",
    ...     context={"fuel_type": "unobtainium"},
    ... )
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class CarbonScopeException(Exception):
    """Base exception for all CarbonScope errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "CS_CALC_UNKNOWN_FUEL_TYPE")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "CS"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()

    def _generate_error_code(self) -> str:
        """Generate error code from the exception class name.

        Returns:
            Error code like "CS_CALC_INVALID_INPUT"
        """
        # CamelCase to SCREAMING_SNAKE_CASE, keeping acronyms (GWP) together
        error_type = re.sub(
            r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])",
            "_",
            self.__class__.__name__,
        ).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Calculation Exceptions
# ==============================================================================

class CalculationException(CarbonScopeException):
    """Base exception for errors raised while computing emissions."""
    ERROR_PREFIX = "CS_CALC"


class InvalidInput(CalculationException, ValueError):
    """An activity-data value is out of range.

    Raised for negative quantities, combustion efficiencies outside [0, 1],
    methane fractions outside [0, 1] and unsupported method options.

    Example:
        >>> raise InvalidInput(
        ...     message="Quantity must be non-negative",
        ...     field="quantity",
        ...     value=-5,
        ... )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if field is not None:
            context["field"] = field
            context["value"] = value
        super().__init__(message, context=context)


class ReferenceLookupError(CalculationException, LookupError):
    """A key was not found in a reference table.

    Subclasses name the table that missed. ``key`` is the value that was
    looked up and ``available`` lists the keys the table does contain.
    """

    def __init__(
        self,
        message: str,
        key: Any = None,
        available: Optional[list] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if key is not None:
            context["key"] = key
        if available is not None:
            context["available"] = sorted(str(a) for a in available)
        super().__init__(message, context=context)


class UnknownUnit(ReferenceLookupError):
    """Unit is not in the conversion table for the requested category."""


class IncompatibleUnits(UnknownUnit):
    """Units belong to different physical categories (e.g. volume vs mass)."""


class UnknownFuelType(ReferenceLookupError):
    """Fuel type has no combustion factor."""


class UnknownVehicleType(ReferenceLookupError):
    """Vehicle/fuel combination has no mobile combustion factor."""


class UnknownFacilityType(ReferenceLookupError):
    """Facility type has no average fugitive emission factor."""


class UnknownComponentType(ReferenceLookupError):
    """Equipment component type has no leak-rate factor."""


class UnknownProductType(ReferenceLookupError):
    """Product, energy or transport key has no Scope 3 factor."""


class UnknownGWPVersion(ReferenceLookupError):
    """GWP version is not one of the loaded assessment reports."""


class UnknownGasType(ReferenceLookupError):
    """Gas key is not mapped in the selected GWP table."""


class GridFactorNotFound(ReferenceLookupError):
    """Neither the subregion nor the region resolves to a grid factor."""


# ==============================================================================
# Reference Data Exceptions
# ==============================================================================

class ReferenceDataError(CarbonScopeException):
    """A reference table is missing or malformed.

    Raised at load time so that a broken table fails at startup rather
    than producing empty lookups deep inside a calculation.

    Example:
        >>> raise ReferenceDataError(
        ...     message="GWP table AR5 must define CO2 = 1",
        ...     source_file="gwp_values.yaml",
        ... )
    """
    ERROR_PREFIX = "CS_DATA"

    def __init__(
        self,
        message: str,
        source_file: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if source_file:
            context["source_file"] = source_file
        super().__init__(message, context=context)


# ==============================================================================
# Utility Functions
# ==============================================================================

def format_exception_chain(exc: Exception) -> str:
    """Format exception chain for logging.

    Args:
        exc: Exception to format

    Returns:
        Formatted exception chain string
    """
    lines = []
    current: Optional[BaseException] = exc
    level = 0

    while current:
        indent = "  " * level
        if isinstance(current, CarbonScopeException):
            lines.append(f"{indent}{current.__class__.__name__}: {current.message}")
            if current.context:
                lines.append(f"{indent}  Context: {current.context}")
        else:
            lines.append(f"{indent}{current.__class__.__name__}: {str(current)}")

        current = current.__cause__ or current.__context__
        level += 1

    return "\n".join(lines)


__all__ = [
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
    "format_exception_chain",
]
