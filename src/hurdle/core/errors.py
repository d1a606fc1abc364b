# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Exception hierarchy for the waterfall engine.

Every error is deterministic for a given input: nothing here is transient and
nothing is retried. Callers fix the configuration or the cash-flow data and
re-invoke.

Configuration and cash-flow errors deliberately do not derive from ValueError:
they are raised from inside pydantic validators and must reach the caller
as-is rather than being folded into a ValidationError.
"""

from __future__ import annotations


class WaterfallError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(WaterfallError):
    """Malformed waterfall configuration (tier ordering, percentages, hurdle fields)."""


class CashFlowError(WaterfallError):
    """Malformed cash-flow schedule."""


class InsufficientCashFlows(CashFlowError):
    """Fewer than two signed cash flows, or all flows share one sign."""


class IRRError(WaterfallError, ArithmeticError):
    """Base class for rate-of-return solver failures."""


class NoConvergence(IRRError):
    """The IRR solver hit its iteration cap without meeting the NPV tolerance."""


class UndefinedIRR(NoConvergence):
    """NPV has no sign change inside the bounded search domain."""


__all__ = [
    "CashFlowError",
    "ConfigurationError",
    "InsufficientCashFlows",
    "IRRError",
    "NoConvergence",
    "UndefinedIRR",
    "WaterfallError",
]
