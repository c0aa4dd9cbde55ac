# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import logging
from datetime import datetime, timezone

import pytest

from carbonscope.calculation.engine import CalculationEngine
from carbonscope.calculation.models import CalculationSettings
from carbonscope.calculation.reference_data import ReferenceData, reset_reference_data
from carbonscope.calculation.unit_converter import UnitConverter
from carbonscope.config import reset_config


@pytest.fixture(scope="session")
def reference():
    """Packaged reference tables, loaded once per session."""
    return ReferenceData.load()


@pytest.fixture(scope="session")
def converter(reference):
    """Unit converter bound to the packaged tables."""
    return UnitConverter(reference)


@pytest.fixture
def settings():
    """AR5 / US settings with metrics disabled."""
    return CalculationSettings(gwp_version="AR5", region="US", enable_metrics=False)


@pytest.fixture
def engine(reference):
    """Calculation engine over the packaged tables."""
    return CalculationEngine(reference)


@pytest.fixture
def fixed_time():
    """A fixed timestamp so runs are reproducible."""
    return datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset singletons and the package log level between tests."""
    reset_config()
    reset_reference_data()
    yield
    reset_config()
    reset_reference_data()
    logging.getLogger("carbonscope").setLevel(logging.NOTSET)
