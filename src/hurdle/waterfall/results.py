# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Waterfall result models.

`WaterfallResult` is the immutable output of one engine run. Chart consumers
read `final_results.lp.irr`, `.equity_multiple` and
`tier_results[].lp_distribution / gp_distribution / gp_promote_in_tier`; the
export subsystem serializes `to_dict()`, which carries the originating
configuration verbatim. `events` is the per-event audit trail, including the
LP and GP preferred return ledgers as of each distribution.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import Field

from ..core.primitives import Model, NonNegativeFloat, StructureTypeEnum, WaterfallStepEnum
from .accrual import PreferredReturnLedger
from .clawback import ClawbackResult
from .configuration import WaterfallConfiguration
from .fees import FeeSummary
from .tiers import TierAllocation


class PoolMetrics(Model):
    """
    Realized returns for one pool (LP, GP or the whole project).

    `total_distributed` is net of clawback: clawback received counts for the
    LP and clawback returned counts against the GP.
    """

    irr: Optional[float] = None
    equity_multiple: Optional[float] = None
    total_contributed: float = 0.0
    total_distributed: float = 0.0
    profit: float = 0.0
    return_of_capital: float = 0.0
    preferred_return: float = 0.0
    catch_up: float = 0.0
    tier_distributions: float = 0.0
    promote: float = 0.0
    clawback: float = 0.0
    payback_time: Optional[float] = Field(
        default=None, description="Years until cumulative flows turn non-negative"
    )
    cash_on_cash_avg: Optional[float] = Field(
        default=None,
        description="Average annual distributions over contributed capital across the hold",
    )
    profit_share_received: float = Field(
        default=0.0, description="Distributions beyond capital and preferred return"
    )
    co_invest_return: float = Field(
        default=0.0, description="Distributions excluding promote (pro-rata equity share)"
    )
    return_on_capital: Optional[float] = Field(
        default=None, description="Profit over contributed capital"
    )


class FinalResults(Model):
    lp: PoolMetrics
    gp: PoolMetrics
    project: PoolMetrics


class TierResult(Model):
    """
    Distributions through one cascade step over the whole run.

    The cumulative and at-tier fields run over the steps in cascade order up
    to and including this one; they exclude clawback transfers.
    `lp_irr_at_tier` is None when the LP flows through this step have no
    solvable IRR.
    """

    tier_name: str
    step: WaterfallStepEnum
    tier_number: Optional[int] = None
    distributable_amount: float = Field(default=0.0, description="Cash this step took")
    lp_distribution: float = 0.0
    gp_distribution: float = 0.0
    gp_promote_in_tier: float = 0.0
    cumulative_lp_distribution: float = 0.0
    cumulative_gp_distribution: float = 0.0
    lp_multiple_at_tier: Optional[float] = None
    lp_irr_at_tier: Optional[float] = None

    @property
    def total_distribution(self) -> float:
        return self.lp_distribution + self.gp_distribution


class StepAmounts(Model):
    """LP and GP cash from one step of one event."""

    lp: NonNegativeFloat = 0.0
    gp: NonNegativeFloat = 0.0

    @property
    def total(self) -> float:
        return self.lp + self.gp


class EventAllocation(Model):
    """How one distribution event's cash moved through the cascade."""

    time: float
    gross_cash: float
    fees_paid: float = 0.0
    distributable: float
    return_of_capital: StepAmounts = Field(default_factory=StepAmounts)
    preferred_return: StepAmounts = Field(
        default_factory=StepAmounts, description="LP and GP preferred return steps"
    )
    catch_up: StepAmounts = Field(default_factory=StepAmounts)
    tiers: List[TierAllocation] = Field(default_factory=list)
    clawback: Optional[float] = Field(
        default=None, description="GP to LP transfer when this event is a true-up"
    )
    lp_ledger: PreferredReturnLedger
    gp_ledger: PreferredReturnLedger

    @property
    def tier_total(self) -> float:
        return sum(tier.amount for tier in self.tiers)

    @property
    def allocated(self) -> float:
        """Cash allocated by the cascade (equals `distributable`)."""
        return (
            self.return_of_capital.total
            + self.preferred_return.total
            + self.catch_up.total
            + self.tier_total
        )

    @property
    def lp_total(self) -> float:
        """LP cash from this event, including any clawback received."""
        return (
            self.return_of_capital.lp
            + self.preferred_return.lp
            + self.catch_up.lp
            + sum(tier.lp for tier in self.tiers)
            + (self.clawback or 0.0)
        )

    @property
    def gp_total(self) -> float:
        """GP cash from this event, net of any clawback returned."""
        return (
            self.return_of_capital.gp
            + self.preferred_return.gp
            + self.catch_up.gp
            + sum(tier.gp for tier in self.tiers)
            - (self.clawback or 0.0)
        )


class WaterfallResult(Model):
    """
    Complete output of one waterfall engine run.

    `clawback` is None when clawback is disabled; the true-up never ran, so
    there is no amount (not even zero) to report.
    """

    configuration: WaterfallConfiguration
    structure_type: StructureTypeEnum
    final_results: FinalResults
    tier_results: List[TierResult]
    events: List[EventAllocation]
    fees: FeeSummary
    clawback: Optional[ClawbackResult] = None
    lp_cash_flows: List[Tuple[float, float]] = Field(
        default_factory=list, description="LP realized (time, amount) flows"
    )
    gp_cash_flows: List[Tuple[float, float]] = Field(
        default_factory=list, description="GP realized (time, amount) flows"
    )

    @property
    def clawback_amount(self) -> Optional[float]:
        return None if self.clawback is None else self.clawback.clawback_amount

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict for export, with the configuration echoed verbatim."""
        data = self.model_dump(mode="json")
        if self.clawback is None:
            data.pop("clawback")
        else:
            data["clawback"]["clawback_amount"] = self.clawback.clawback_amount
        return data

    def tier_frame(self) -> pd.DataFrame:
        """One row per cascade step with LP, GP and promote totals."""
        return pd.DataFrame(
            [
                {
                    "tier_name": tier.tier_name,
                    "step": tier.step.value,
                    "tier_number": tier.tier_number,
                    "lp_distribution": tier.lp_distribution,
                    "gp_distribution": tier.gp_distribution,
                    "gp_promote_in_tier": tier.gp_promote_in_tier,
                    "total_distribution": tier.total_distribution,
                    "cumulative_lp_distribution": tier.cumulative_lp_distribution,
                    "cumulative_gp_distribution": tier.cumulative_gp_distribution,
                    "lp_multiple_at_tier": tier.lp_multiple_at_tier,
                    "lp_irr_at_tier": tier.lp_irr_at_tier,
                }
                for tier in self.tier_results
            ]
        )

    def event_frame(self) -> pd.DataFrame:
        """One row per distribution event, indexed by time."""
        rows = []
        for event in self.events:
            rows.append({
                "time": event.time,
                "gross_cash": event.gross_cash,
                "fees_paid": event.fees_paid,
                "distributable": event.distributable,
                "return_of_capital_lp": event.return_of_capital.lp,
                "return_of_capital_gp": event.return_of_capital.gp,
                "preferred_return_lp": event.preferred_return.lp,
                "preferred_return_gp": event.preferred_return.gp,
                "catch_up_lp": event.catch_up.lp,
                "catch_up_gp": event.catch_up.gp,
                "tiers_lp": sum(tier.lp for tier in event.tiers),
                "tiers_gp": sum(tier.gp for tier in event.tiers),
                "clawback": event.clawback,
                "lp_total": event.lp_total,
                "gp_total": event.gp_total,
                "lp_unpaid_preferred": event.lp_ledger.unpaid,
            })
        return pd.DataFrame(rows).set_index("time")

    def summary_frame(self) -> pd.DataFrame:
        """Formatted LP / GP / project summary for display."""
        rows = []
        for label, metrics in (
            ("LP", self.final_results.lp),
            ("GP", self.final_results.gp),
            ("TOTAL", self.final_results.project),
        ):
            rows.append({
                "Pool": label,
                "Contributed": f"${metrics.total_contributed:,.0f}",
                "Distributed": f"${metrics.total_distributed:,.0f}",
                "Profit": f"${metrics.profit:,.0f}",
                "Equity Multiple": f"{metrics.equity_multiple:.2f}x"
                if metrics.equity_multiple is not None
                else "N/A",
                "IRR": f"{metrics.irr:.1%}" if metrics.irr is not None else "N/A",
            })
        return pd.DataFrame(rows)


__all__ = [
    "EventAllocation",
    "FinalResults",
    "PoolMetrics",
    "StepAmounts",
    "TierResult",
    "WaterfallResult",
]
