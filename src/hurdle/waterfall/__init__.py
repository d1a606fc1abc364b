# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Hurdle Waterfall Models
Public API for the hurdle.waterfall subpackage.

This module contains the distribution waterfall: configuration and its
builder, the preferred return ledger, catch-up, promote tier cascade,
clawback true-up, management fees, the engine that composes them per
distribution event, and the scenario runner.
"""

from .accrual import PreferredReturnLedger, allocate_return_of_capital
from .builder import WaterfallConfigurationBuilder
from .catch_up import CatchUpAllocation, CatchUpAllocator
from .clawback import ClawbackCalculator, ClawbackResult, ClawbackTrueUp, true_up_indices
from .configuration import (
    CapitalStructure,
    ClawbackTerms,
    ManagementFees,
    PreferredReturnTerms,
    PromoteTier,
    WaterfallConfiguration,
)
from .constructs import (
    create_irr_tier_waterfall,
    create_multiple_tier_waterfall,
    create_standard_waterfall,
)
from .engine import WaterfallEngine, analyze
from .fees import (
    FeeBasis,
    FeeEstimate,
    FeeLedger,
    FeeSummary,
    ManagementFeeCalculator,
    calculate_management_fees,
)
from .results import (
    EventAllocation,
    FinalResults,
    PoolMetrics,
    StepAmounts,
    TierResult,
    WaterfallResult,
)
from .scenarios import (
    DEFAULT_SCENARIO_ADJUSTMENTS,
    ScenarioFailure,
    ScenarioOutcome,
    ScenarioRunner,
    scenario_frame,
    summarize_scenarios,
)
from .tiers import TierAllocation, TierCascadeEvaluator, TierState

__all__ = [
    # Configuration
    "CapitalStructure",
    "ClawbackTerms",
    "ManagementFees",
    "PreferredReturnTerms",
    "PromoteTier",
    "WaterfallConfiguration",
    "WaterfallConfigurationBuilder",
    # Constructs
    "create_irr_tier_waterfall",
    "create_multiple_tier_waterfall",
    "create_standard_waterfall",
    # Engine
    "WaterfallEngine",
    "analyze",
    # Components
    "PreferredReturnLedger",
    "allocate_return_of_capital",
    "CatchUpAllocation",
    "CatchUpAllocator",
    "TierAllocation",
    "TierCascadeEvaluator",
    "TierState",
    "ClawbackCalculator",
    "ClawbackResult",
    "ClawbackTrueUp",
    "true_up_indices",
    "FeeBasis",
    "FeeEstimate",
    "FeeLedger",
    "FeeSummary",
    "ManagementFeeCalculator",
    "calculate_management_fees",
    # Results
    "EventAllocation",
    "FinalResults",
    "PoolMetrics",
    "StepAmounts",
    "TierResult",
    "WaterfallResult",
    # Scenarios
    "DEFAULT_SCENARIO_ADJUSTMENTS",
    "ScenarioFailure",
    "ScenarioOutcome",
    "ScenarioRunner",
    "scenario_frame",
    "summarize_scenarios",
]
