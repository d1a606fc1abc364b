# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Hurdle - LP/GP Distribution Waterfall Engine for Real Estate Investments

Computes how cash proceeds from a real estate investment are split between
Limited Partner investors and a General Partner sponsor across return of
capital, preferred return, GP catch-up, hurdle-based promote tiers and
clawback true-up.

Key Entry Points:
- hurdle.waterfall.analyze() - Run the waterfall for one configuration and schedule
- hurdle.waterfall.ScenarioRunner - Downside / base / upside runs with failure isolation
- hurdle.waterfall.WaterfallConfigurationBuilder - Assemble a validated configuration
- hurdle.core.calculations - IRR solver, NPV and equity multiple

Example Usage:
    ```python
    from hurdle.core import CashFlowSchedule
    from hurdle.waterfall import WaterfallConfigurationBuilder, analyze

    configuration = (
        WaterfallConfigurationBuilder()
        .capital(lp_equity_percent=90, gp_equity_percent=10)
        .preferred_return(lp_rate=0.08)
        .add_tier(lp_share=0.80, gp_share=0.20)
        .build()
    )
    schedule = CashFlowSchedule.from_flows(
        [(0.0, -900.0, "LP"), (0.0, -100.0, "GP"), (5.0, 1_400.0)]
    )
    result = analyze(configuration, schedule)
    print(f"LP IRR: {result.final_results.lp.irr:.2%}")
    ```
"""

import importlib
import logging

# Libraries leave handler configuration to the application.
logging.getLogger(__name__).addHandler(logging.NullHandler())


# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "core",
    "waterfall",
]


_LAZY_MODULES = {
    "core": "hurdle.core",
    "waterfall": "hurdle.waterfall",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'hurdle' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
