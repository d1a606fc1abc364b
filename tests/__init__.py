# Hurdle Test Suite
# Copyright 2024 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Hurdle test suite.

This package contains tests for the core primitives and the waterfall engine,
organized into unit and integration test categories.
"""
