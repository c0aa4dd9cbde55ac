# -*- coding: utf-8 -*-
"""
CarbonScope Configuration

Centralized configuration for the CarbonScope calculation engine covering:
- Logging level
- Default GWP version (AR5) and default grid region (US)
- Reference data directory (packaged YAML tables by default)
- Prometheus metrics export toggle
- Facility batch thread pool sizing

All settings can be overridden via environment variables with the
``CARBONSCOPE_`` prefix (e.g. ``CARBONSCOPE_DEFAULT_GWP_VERSION``).

Environment Variable Reference (CARBONSCOPE_ prefix):
    CARBONSCOPE_LOG_LEVEL               - Logging level
    CARBONSCOPE_DEFAULT_GWP_VERSION     - Default GWP version (AR4/AR5/AR6)
    CARBONSCOPE_DEFAULT_REGION          - Default grid region code
    CARBONSCOPE_REFERENCE_DATA_DIR      - Directory holding reference YAML
    CARBONSCOPE_ENABLE_METRICS          - Enable Prometheus metrics export
    CARBONSCOPE_MAX_BATCH_WORKERS       - Worker threads for facility batches

The configuration is only read at the boundary. Calculators never call
``get_config()``; callers turn it into explicit settings with
``CalculationSettings.from_config()`` and pass those into every run.

Example:
    >>> from carbonscope.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.default_gwp_version, cfg.default_region)
    AR5 US

    >>> # Override for testing
    >>> from carbonscope.config import set_config, reset_config
    >>> from carbonscope.config import CarbonScopeConfig
    >>> set_config(CarbonScopeConfig(default_gwp_version="AR6"))
    >>> reset_config()  # teardown
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "CARBONSCOPE_"

# ---------------------------------------------------------------------------
# Valid enumeration values for configuration validation
# ---------------------------------------------------------------------------

_VALID_LOG_LEVELS = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
)

_VALID_GWP_VERSIONS = frozenset({"AR4", "AR5", "AR6"})

#: Reference tables shipped with the package
DEFAULT_REFERENCE_DATA_DIR = str(Path(__file__).parent / "data")


# ---------------------------------------------------------------------------
# CarbonScopeConfig
# ---------------------------------------------------------------------------


@dataclass
class CarbonScopeConfig:
    """Complete configuration for the CarbonScope calculation engine.

    Attributes:
        log_level: Logging verbosity for the ``carbonscope`` logger.
        default_gwp_version: GWP table used when the caller does not pick one.
        default_region: Grid region code used when the caller does not pick one.
        reference_data_dir: Directory containing the reference YAML tables.
        enable_metrics: Whether runs record Prometheus metrics.
        max_batch_workers: Thread pool size for facility batch runs.
    """

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Calculation defaults ------------------------------------------------
    default_gwp_version: str = "AR5"
    default_region: str = "US"

    # -- Reference data ------------------------------------------------------
    reference_data_dir: str = DEFAULT_REFERENCE_DATA_DIR

    # -- Metrics export ------------------------------------------------------
    enable_metrics: bool = True

    # -- Batch execution -----------------------------------------------------
    max_batch_workers: int = 4

    # ------------------------------------------------------------------
    # Post-init validation
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        """Validate configuration constraints after initialisation.

        Collects all validation errors before raising a single ValueError.

        Raises:
            ValueError: If any configuration value is outside its valid
                range or violates a constraint.
        """
        errors: list[str] = []

        # -- Logging ---------------------------------------------------------
        normalised_log = self.log_level.upper()
        if normalised_log not in _VALID_LOG_LEVELS:
            errors.append(
                f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}, "
                f"got '{self.log_level}'"
            )
        else:
            self.log_level = normalised_log

        # -- GWP version -----------------------------------------------------
        normalised_gwp = self.default_gwp_version.upper()
        if normalised_gwp not in _VALID_GWP_VERSIONS:
            errors.append(
                f"default_gwp_version must be one of "
                f"{sorted(_VALID_GWP_VERSIONS)}, "
                f"got '{self.default_gwp_version}'"
            )
        else:
            self.default_gwp_version = normalised_gwp

        # -- Region ----------------------------------------------------------
        if not self.default_region.strip():
            errors.append("default_region must not be empty")
        else:
            self.default_region = self.default_region.strip().upper()

        # -- Reference data --------------------------------------------------
        if not self.reference_data_dir:
            errors.append("reference_data_dir must not be empty")

        # -- Batch workers ---------------------------------------------------
        if self.max_batch_workers <= 0:
            errors.append(
                f"max_batch_workers must be > 0, got {self.max_batch_workers}"
            )

        if errors:
            raise ValueError(
                "CarbonScopeConfig validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

        logger.debug(
            "CarbonScopeConfig validated successfully: "
            "gwp_version=%s, region=%s, metrics=%s, batch_workers=%d",
            self.default_gwp_version,
            self.default_region,
            self.enable_metrics,
            self.max_batch_workers,
        )

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> CarbonScopeConfig:
        """Build a CarbonScopeConfig from environment variables.

        Every field can be overridden via ``CARBONSCOPE_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Malformed integers fall back to the class-level default and emit
        a WARNING log.

        Returns:
            Populated CarbonScopeConfig instance, validated via ``__post_init__``.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.strip().lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val.strip())
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%r, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val.strip()

        config = cls(
            log_level=_str("LOG_LEVEL", cls.log_level),
            default_gwp_version=_str(
                "DEFAULT_GWP_VERSION", cls.default_gwp_version,
            ),
            default_region=_str("DEFAULT_REGION", cls.default_region),
            reference_data_dir=_str(
                "REFERENCE_DATA_DIR", cls.reference_data_dir,
            ),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            max_batch_workers=_int(
                "MAX_BATCH_WORKERS", cls.max_batch_workers,
            ),
        )

        logger.info(
            "CarbonScopeConfig loaded from environment: "
            "gwp_version=%s, region=%s, reference_data_dir=%s, "
            "metrics=%s, batch_workers=%d",
            config.default_gwp_version,
            config.default_region,
            config.reference_data_dir,
            config.enable_metrics,
            config.max_batch_workers,
        )
        return config

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the configuration to a plain Python dictionary."""
        return {
            "log_level": self.log_level,
            "default_gwp_version": self.default_gwp_version,
            "default_region": self.default_region,
            "reference_data_dir": self.reference_data_dir,
            "enable_metrics": self.enable_metrics,
            "max_batch_workers": self.max_batch_workers,
        }

    def __repr__(self) -> str:
        d = self.to_dict()
        pairs = ", ".join(f"{k}={v!r}" for k, v in d.items())
        return f"CarbonScopeConfig({pairs})"


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[CarbonScopeConfig] = None
_config_lock = threading.Lock()


def get_config() -> CarbonScopeConfig:
    """Return the singleton CarbonScopeConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.

    Returns:
        CarbonScopeConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = CarbonScopeConfig.from_env()
                configure_logging(_config_instance)
    return _config_instance


def set_config(config: CarbonScopeConfig) -> None:
    """Replace the singleton CarbonScopeConfig.

    Primarily intended for testing and dependency injection.

    Args:
        config: New CarbonScopeConfig to install as the singleton.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    configure_logging(config)
    logger.info(
        "CarbonScopeConfig replaced programmatically: "
        "gwp_version=%s, region=%s, metrics=%s",
        config.default_gwp_version,
        config.default_region,
        config.enable_metrics,
    )


def configure_logging(config: Optional[CarbonScopeConfig] = None) -> None:
    """Apply ``log_level`` to the ``carbonscope`` logger.

    Handlers are left to the application; only the level is set.
    Called whenever the singleton is created or replaced.
    """
    config = config or get_config()
    logging.getLogger("carbonscope").setLevel(
        getattr(logging, config.log_level, logging.INFO)
    )


def reset_config() -> None:
    """Reset the singleton so the next get_config() re-reads the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None
    logger.debug("CarbonScopeConfig singleton reset")


# ---------------------------------------------------------------------------
# Public surface
# ---------------------------------------------------------------------------

__all__ = [
    "CarbonScopeConfig",
    "DEFAULT_REFERENCE_DATA_DIR",
    "get_config",
    "set_config",
    "reset_config",
    "configure_logging",
]
