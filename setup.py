#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for CarbonScope

This file is kept for legacy compatibility and pip editable installs.
The main package configuration is in pyproject.toml.
"""

from setuptools import setup

# Version is also set in pyproject.toml and carbonscope/_version.py
VERSION = "1.0.0"

# Main setup configuration is in pyproject.toml
setup(
    version=VERSION,
)
