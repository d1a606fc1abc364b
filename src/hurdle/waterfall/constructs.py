# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Waterfall Constructs - Preset Configuration Builders

Constructs compose the configuration primitives into the structures sponsors
use most often. Each returns an ordinary, fully validated
`WaterfallConfiguration` that can be inspected or copied with changes.

## Available Constructs

#### `create_standard_waterfall()`
Capital split, preferred return, optional catch-up and a single unbounded
profit split. The simplest institutional structure.

#### `create_irr_tier_waterfall()`
Preferred return followed by IRR-bounded promote tiers. Defaults to the
common 80/20 to 12%, 70/30 to 18%, 60/40 to 25%, 50/50 thereafter ladder.

#### `create_multiple_tier_waterfall()`
Preferred return followed by equity-multiple-bounded tiers. Defaults to
80/20 to 1.5x, 70/30 to 2.0x, 60/40 thereafter.

Example:
    ```python
    from hurdle.waterfall.constructs import create_irr_tier_waterfall

    configuration = create_irr_tier_waterfall(
        lp_equity_percent=95,
        gp_equity_percent=5,
        pref_rate=0.09,
        tiers=[(0.15, 0.20), (0.20, 0.35)],
        final_gp_share=0.50,
    )
    ```
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .builder import WaterfallConfigurationBuilder
from .configuration import WaterfallConfiguration

# (hurdle, gp_share) ladders
DEFAULT_IRR_TIERS: List[Tuple[float, float]] = [(0.12, 0.20), (0.18, 0.30), (0.25, 0.40)]
DEFAULT_MULTIPLE_TIERS: List[Tuple[float, float]] = [(1.5, 0.20), (2.0, 0.30)]


def create_standard_waterfall(
    lp_equity_percent: float = 90.0,
    gp_equity_percent: float = 10.0,
    pref_rate: float = 0.08,
    gp_share: float = 0.20,
    catch_up_target_share: Optional[float] = None,
    structure_type: str = "american",
) -> WaterfallConfiguration:
    """
    Creates a preferred return plus single profit split waterfall.

    Args:
        lp_equity_percent: LP equity share (0-100)
        gp_equity_percent: GP equity share (0-100)
        pref_rate: LP preferred return as a fraction
        gp_share: GP share of profit above the preferred return
        catch_up_target_share: Enables a full GP catch-up to this profit share
        structure_type: american, european or hybrid

    Returns:
        WaterfallConfiguration: Validated configuration
    """
    builder = (
        WaterfallConfigurationBuilder()
        .structure(structure_type)
        .capital(lp_equity_percent, gp_equity_percent)
        .preferred_return(lp_rate=pref_rate)
    )
    if catch_up_target_share is not None:
        builder.catch_up(target_share=catch_up_target_share)
    return builder.add_tier(lp_share=1.0 - gp_share, gp_share=gp_share).build()


def create_irr_tier_waterfall(
    lp_equity_percent: float = 90.0,
    gp_equity_percent: float = 10.0,
    pref_rate: float = 0.08,
    tiers: Sequence[Tuple[float, float]] = DEFAULT_IRR_TIERS,
    final_gp_share: float = 0.50,
    structure_type: str = "european",
) -> WaterfallConfiguration:
    """
    Creates a waterfall with IRR-bounded promote tiers.

    Args:
        tiers: (irr_hurdle, gp_share) pairs in ascending hurdle order. Each
            hurdle is the LP IRR at which that tier ends.
        final_gp_share: GP share above the last hurdle

    Raises:
        ConfigurationError: If hurdles are not strictly increasing or shares are invalid
    """
    builder = (
        WaterfallConfigurationBuilder()
        .structure(structure_type)
        .capital(lp_equity_percent, gp_equity_percent)
        .preferred_return(lp_rate=pref_rate)
    )
    for hurdle, share in tiers:
        builder.add_tier(lp_share=1.0 - share, gp_share=share, irr_hurdle=hurdle)
    return builder.add_tier(lp_share=1.0 - final_gp_share, gp_share=final_gp_share).build()


def create_multiple_tier_waterfall(
    lp_equity_percent: float = 90.0,
    gp_equity_percent: float = 10.0,
    pref_rate: float = 0.08,
    tiers: Sequence[Tuple[float, float]] = DEFAULT_MULTIPLE_TIERS,
    final_gp_share: float = 0.40,
    structure_type: str = "european",
) -> WaterfallConfiguration:
    """Creates a waterfall with equity-multiple-bounded tiers ((multiple, gp_share) pairs)."""
    builder = (
        WaterfallConfigurationBuilder()
        .structure(structure_type)
        .capital(lp_equity_percent, gp_equity_percent)
        .preferred_return(lp_rate=pref_rate)
    )
    for hurdle, share in tiers:
        builder.add_tier(lp_share=1.0 - share, gp_share=share, multiple_hurdle=hurdle)
    return builder.add_tier(lp_share=1.0 - final_gp_share, gp_share=final_gp_share).build()


__all__ = [
    "DEFAULT_IRR_TIERS",
    "DEFAULT_MULTIPLE_TIERS",
    "create_irr_tier_waterfall",
    "create_multiple_tier_waterfall",
    "create_standard_waterfall",
]
