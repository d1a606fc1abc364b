# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Hurdle Core Framework

Foundational building blocks for the waterfall engine: primitives, the
exception hierarchy, the IRR solver and the cash-flow schedule.
"""

from . import primitives
from .calculations import (
    FinancialCalculations,
    equity_multiple,
    npv,
    npv_derivative,
    payback_time,
    solve_irr,
)
from .errors import (
    CashFlowError,
    ConfigurationError,
    InsufficientCashFlows,
    IRRError,
    NoConvergence,
    UndefinedIRR,
    WaterfallError,
)
from .primitives import EngineSettings, Model
from .schedule import (
    CashFlowEvent,
    CashFlowSchedule,
    sequence_to_schedule,
    validate_monthly_period_index,
)

__all__ = [
    "primitives",
    # Base
    "Model",
    "EngineSettings",
    # Calculations
    "FinancialCalculations",
    "equity_multiple",
    "npv",
    "npv_derivative",
    "payback_time",
    "solve_irr",
    # Schedule
    "CashFlowEvent",
    "CashFlowSchedule",
    "sequence_to_schedule",
    "validate_monthly_period_index",
    # Errors
    "WaterfallError",
    "ConfigurationError",
    "CashFlowError",
    "InsufficientCashFlows",
    "IRRError",
    "NoConvergence",
    "UndefinedIRR",
]
