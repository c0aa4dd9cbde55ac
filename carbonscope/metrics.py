# -*- coding: utf-8 -*-
"""
Prometheus Metrics - CarbonScope Calculation Engine

Prometheus metrics recorded at the orchestration boundary (engine runs and
facility batches). Individual calculators never touch these counters, so
they stay pure functions of their inputs.

All metric names use the ``cs_`` prefix (CarbonScope).

Metrics:
    1. cs_calculation_runs_total          (Counter,   labels: gwp_version, status)
    2. cs_emissions_tonnes_co2e_total     (Counter,   labels: scope)
    3. cs_skipped_entries_total           (Counter,   labels: source_kind)
    4. cs_run_duration_seconds            (Histogram, labels: operation)
    5. cs_batch_facilities                (Histogram)

Label Values Reference:
    status:
        completed, failed.
    scope:
        scope1, scope2, scope3.
    source_kind:
        stationary_combustion, mobile_combustion, fugitive, venting,
        category_3, category_4, category_9, category_10, category_11, ...
    operation:
        engine_run, facility_batch.

Example:
    >>> from carbonscope.metrics import record_run, record_emissions
    >>> record_run("AR5", "completed")
    >>> record_emissions("scope1", 1250.0)
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Engine runs by GWP version and completion status
cs_calculation_runs_total = Counter(
    "cs_calculation_runs_total",
    "Total emission calculation runs performed",
    labelnames=["gwp_version", "status"],
)

# 2. Cumulative calculated emissions by scope
cs_emissions_tonnes_co2e_total = Counter(
    "cs_emissions_tonnes_co2e_total",
    "Cumulative calculated emissions in tonnes CO2e by scope",
    labelnames=["scope"],
)

# 3. Batch entries skipped under the partial-failure policy
cs_skipped_entries_total = Counter(
    "cs_skipped_entries_total",
    "Total activity entries skipped as malformed or unrecognised",
    labelnames=["source_kind"],
)

# 4. Run duration by operation
cs_run_duration_seconds = Histogram(
    "cs_run_duration_seconds",
    "Duration of calculation operations in seconds",
    labelnames=["operation"],
    buckets=(
        0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1,
        0.25, 0.5, 1.0, 2.5, 5.0,
    ),
)

# 5. Facilities per batch request
cs_batch_facilities = Histogram(
    "cs_batch_facilities",
    "Number of facilities in batch calculation requests",
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 500),
)


# ---------------------------------------------------------------------------
# MetricsCollector class
# ---------------------------------------------------------------------------


class MetricsCollector:
    """Facade for recording CarbonScope Prometheus metrics.

    Example:
        >>> collector = MetricsCollector()
        >>> collector.record_run("AR6", "completed")
        >>> collector.observe_duration("engine_run", 0.004)
    """

    @staticmethod
    def record_run(gwp_version: str, status: str) -> None:
        """Record one engine run.

        Args:
            gwp_version: GWP table used by the run.
            status: Completion status (completed, failed).
        """
        cs_calculation_runs_total.labels(
            gwp_version=gwp_version,
            status=status,
        ).inc()

    @staticmethod
    def record_emissions(scope: str, tonnes_co2e: float) -> None:
        """Add calculated emissions to the per-scope counter.

        Args:
            scope: scope1, scope2 or scope3.
            tonnes_co2e: Emissions in tonnes CO2e (negative values ignored).
        """
        if tonnes_co2e <= 0:
            return
        cs_emissions_tonnes_co2e_total.labels(scope=scope).inc(tonnes_co2e)

    @staticmethod
    def record_skipped(source_kind: str, count: int = 1) -> None:
        """Record entries skipped by an aggregate calculator.

        Args:
            source_kind: Source the entries belonged to.
            count: Number of skipped entries.
        """
        if count <= 0:
            return
        cs_skipped_entries_total.labels(source_kind=source_kind).inc(count)

    @staticmethod
    def observe_duration(operation: str, seconds: float) -> None:
        """Record the duration of an operation.

        Args:
            operation: engine_run or facility_batch.
            seconds: Wall-clock duration in seconds.
        """
        cs_run_duration_seconds.labels(operation=operation).observe(seconds)

    @staticmethod
    def observe_batch_size(size: int) -> None:
        """Record the number of facilities in a batch request."""
        cs_batch_facilities.observe(size)


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

_collector = MetricsCollector()


def record_run(gwp_version: str, status: str) -> None:
    """Record one engine run (see MetricsCollector.record_run)."""
    _collector.record_run(gwp_version, status)


def record_emissions(scope: str, tonnes_co2e: float) -> None:
    """Record emissions for a scope (see MetricsCollector.record_emissions)."""
    _collector.record_emissions(scope, tonnes_co2e)


def record_skipped(source_kind: str, count: int = 1) -> None:
    """Record skipped entries (see MetricsCollector.record_skipped)."""
    _collector.record_skipped(source_kind, count)


def observe_duration(operation: str, seconds: float) -> None:
    """Record operation duration (see MetricsCollector.observe_duration)."""
    _collector.observe_duration(operation, seconds)


def observe_batch_size(size: int) -> None:
    """Record batch size (see MetricsCollector.observe_batch_size)."""
    _collector.observe_batch_size(size)


__all__ = [
    "MetricsCollector",
    "record_run",
    "record_emissions",
    "record_skipped",
    "observe_duration",
    "observe_batch_size",
]
