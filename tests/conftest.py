# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for waterfall testing.

This module provides convenient utilities for creating configurations and
schedules without spelling out every section in each test.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import pytest

from hurdle.core import CashFlowSchedule, EngineSettings
from hurdle.waterfall import (
    CapitalStructure,
    PreferredReturnTerms,
    PromoteTier,
    WaterfallConfiguration,
    WaterfallConfigurationBuilder,
)


# Configuration Utilities
def create_simple_configuration(
    lp_equity_percent: float = 90.0,
    gp_equity_percent: float = 10.0,
    pref_rate: float = 0.08,
    gp_share: float = 0.20,
    catch_up_target_share: Optional[float] = None,
) -> WaterfallConfiguration:
    """
    Create a preferred return plus single split configuration for testing.

    Example:
        >>> configuration = create_simple_configuration(gp_share=0.30)
        >>> configuration.final_tier.gp_share
        0.3
    """
    builder = (
        WaterfallConfigurationBuilder()
        .capital(lp_equity_percent, gp_equity_percent)
        .preferred_return(lp_rate=pref_rate)
    )
    if catch_up_target_share is not None:
        builder.catch_up(target_share=catch_up_target_share)
    return builder.add_tier(lp_share=1.0 - gp_share, gp_share=gp_share).build()


def create_lp_only_configuration(
    tiers: Sequence[PromoteTier], pref_rate: float = 0.08
) -> WaterfallConfiguration:
    """All equity from the LP, so tier cash is measured against LP flows only."""
    return WaterfallConfiguration(
        capital_structure=CapitalStructure(lp_equity_percent=100, gp_equity_percent=0),
        preferred_return=PreferredReturnTerms(lp_rate=pref_rate),
        promote_tiers=list(tiers),
    )


# Schedule Utilities
def create_schedule(
    flows: Sequence[Tuple], construction_end: float = 0.0, **kwargs
) -> CashFlowSchedule:
    """Create a schedule from (time, amount[, pool]) tuples."""
    return CashFlowSchedule.from_flows(flows, construction_end=construction_end, **kwargs)


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def standard_configuration() -> WaterfallConfiguration:
    """90/10 equity, 8% cumulative LP pref, 80/20 split thereafter."""
    return create_simple_configuration()


@pytest.fixture
def standard_schedule() -> CashFlowSchedule:
    """900 LP and 100 GP in at t=0, 1,400 distributed at t=5."""
    return create_schedule([(0.0, -900.0, "LP"), (0.0, -100.0, "GP"), (5.0, 1_400.0)])


@pytest.fixture
def irr_tier_configuration() -> WaterfallConfiguration:
    """LP-only equity, 8% pref, 80/20 to a 12% LP IRR, 50/50 thereafter."""
    return create_lp_only_configuration(
        [
            PromoteTier(
                tier_number=1, hurdle_type="irr", irr_hurdle=0.12, lp_share=0.80, gp_share=0.20
            ),
            PromoteTier(tier_number=2, lp_share=0.50, gp_share=0.50),
        ]
    )


@pytest.fixture
def multi_event_schedule() -> CashFlowSchedule:
    """Staged capital calls with interim and exit distributions."""
    return create_schedule(
        [
            (0.0, -600.0),
            (0.5, -400.0),
            (1.0, 50.0),
            (2.0, 80.0),
            (3.0, 120.0),
            (4.0, 1_500.0),
        ]
    )
