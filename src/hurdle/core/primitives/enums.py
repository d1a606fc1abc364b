# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum
from typing import Optional


class StructureTypeEnum(str, Enum):
    """
    Waterfall structure family as authored in the configuration editor.

    Options:
        AMERICAN: Deal-by-deal, distributions as earned
        EUROPEAN: Whole-fund, return of capital first
        HYBRID:   Mix of the two
    """

    AMERICAN = "american"
    EUROPEAN = "european"
    HYBRID = "hybrid"


class AccrualTypeEnum(str, Enum):
    """
    How the preferred return accrues on outstanding capital.

    Options:
        CUMULATIVE:     Simple accrual on unreturned capital; unpaid amounts carry forward
        NON_CUMULATIVE: Unpaid preferred is forfeited at the end of each payment period
        COMPOUNDING:    Accrual on unreturned capital plus unpaid preferred
    """

    CUMULATIVE = "cumulative"
    NON_CUMULATIVE = "non_cumulative"
    COMPOUNDING = "compounding"


class PaymentFrequencyEnum(str, Enum):
    """
    Preferred return payment period.

    Drives forfeiture boundaries for non-cumulative accrual and compounding
    steps for compounding accrual.
    """

    AT_EXIT = "at_exit"
    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"

    @property
    def period_years(self) -> Optional[float]:
        """Length of one payment period in years (None for at-exit)."""
        return _PERIOD_YEARS[self]


class TrueUpFrequencyEnum(str, Enum):
    """How often the clawback true-up is evaluated."""

    AT_EXIT = "at_exit"
    ANNUAL = "annual"
    QUARTERLY = "quarterly"

    @property
    def period_years(self) -> Optional[float]:
        """Length of one true-up period in years (None for at-exit)."""
        return _PERIOD_YEARS[self]


_PERIOD_YEARS = {
    PaymentFrequencyEnum.AT_EXIT: None,
    PaymentFrequencyEnum.ANNUAL: 1.0,
    PaymentFrequencyEnum.QUARTERLY: 0.25,
    PaymentFrequencyEnum.MONTHLY: 1.0 / 12.0,
    TrueUpFrequencyEnum.AT_EXIT: None,
    TrueUpFrequencyEnum.ANNUAL: 1.0,
    TrueUpFrequencyEnum.QUARTERLY: 0.25,
}


class HurdleTypeEnum(str, Enum):
    """
    Metric that bounds a promote tier.

    Options:
        NONE:            Unbounded tier; absorbs all remaining cash (must be last)
        IRR:             Bounded by an LP IRR hurdle
        EQUITY_MULTIPLE: Bounded by an LP equity multiple hurdle
        BOTH:            Bounded by IRR and multiple, combined by HurdleLogicEnum
    """

    NONE = "none"
    IRR = "irr"
    EQUITY_MULTIPLE = "equity_multiple"
    BOTH = "both"


class HurdleLogicEnum(str, Enum):
    """Combination rule for tiers with both IRR and multiple hurdles."""

    AND = "and"
    OR = "or"


class PoolEnum(str, Enum):
    """Capital pool a contribution or distribution belongs to."""

    LP = "LP"
    GP = "GP"


class WaterfallStepEnum(str, Enum):
    """Ordered steps of the per-event distribution state machine."""

    MANAGEMENT_FEES = "Management Fees"
    RETURN_OF_CAPITAL = "Return of Capital"
    PREFERRED_RETURN_LP = "Preferred Return (LP)"
    PREFERRED_RETURN_GP = "Preferred Return (GP)"
    CATCH_UP = "GP Catch-Up"
    PROMOTE_TIER = "Promote Tier"
    CLAWBACK = "Clawback True-Up"


class FeeTypeEnum(str, Enum):
    """
    Management fees deducted from gross cash before the waterfall.

    Listed in payment priority order.
    """

    ACQUISITION = "acquisition"
    CONSTRUCTION_MANAGEMENT = "construction_management"
    ASSET_MANAGEMENT = "asset_management"
    DISPOSITION = "disposition"
