# -*- coding: utf-8 -*-
"""CarbonScope version."""

__version__ = "1.0.0"
