# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Promote tier cascade evaluation.

Each bounded tier ends at a hurdle measured on the LP's realized cash flows:
LP contributions and everything the LP has received to date, including what
earlier steps of the current event already paid it. For every distribution
event the evaluator walks the tiers from the first with the cash left after
catch-up:

1. A tier whose hurdle already holds takes nothing.
2. A tier whose hurdle cannot be reached even with all remaining cash takes
   all of it.
3. Otherwise the tier takes exactly the cash at which the hurdle is crossed
   and the excess flows to the next tier.

The crossing point is found by bisection over the tier amount, probing the
LP IRR with the IRR solver (LP IRR rises monotonically with cash distributed
at a fixed time). Equity multiple crossings are solved directly. Tiers with
both hurdles combine the two crossing points with `max` ("and") or `min`
("or"). The final, unbounded tier absorbs whatever is left.

Within a tier cash splits `lp_share` / `gp_share`. The GP's promote in a tier
is what it receives above its pro-rata equity share of the tier amount.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..core.calculations import npv, solve_irr
from ..core.errors import InsufficientCashFlows, UndefinedIRR
from ..core.primitives import EngineSettings, HurdleLogicEnum, Model, NonNegativeFloat
from .configuration import PromoteTier

logger = logging.getLogger(__name__)

HURDLE_TOLERANCE = 1e-9

TimedFlows = Sequence[Tuple[float, float]]


class TierState(Model):
    """Cumulative distributions through one tier, as of the last evaluated event."""

    tier_number: int
    lp_distributed: NonNegativeFloat = 0.0
    gp_distributed: NonNegativeFloat = 0.0
    gp_promote: NonNegativeFloat = 0.0
    hurdle_met: Optional[bool] = None

    @property
    def total_distributed(self) -> float:
        return self.lp_distributed + self.gp_distributed


class TierAllocation(Model):
    """Cash one tier took in one distribution event."""

    tier_number: int
    tier_name: str
    amount: NonNegativeFloat = 0.0
    lp: NonNegativeFloat = 0.0
    gp: NonNegativeFloat = 0.0
    gp_promote: NonNegativeFloat = 0.0
    hurdle_met: Optional[bool] = None


@dataclass
class TierCascadeEvaluator:
    """
    Walks promote tiers for each distribution event.

    Args:
        tiers: Validated promote tiers in cascade order
        gp_fraction: GP equity fraction (0-1) used to measure promote
        settings: Boundary search cap and tolerances
    """

    tiers: Sequence[PromoteTier]
    gp_fraction: float
    settings: EngineSettings

    def initial_states(self) -> Tuple[TierState, ...]:
        return tuple(TierState(tier_number=tier.tier_number) for tier in self.tiers)

    def evaluate(
        self,
        available: float,
        time: float,
        lp_flows: TimedFlows,
        states: Sequence[TierState],
    ) -> Tuple[List[TierAllocation], Tuple[TierState, ...]]:
        """
        Allocate `available` cash at `time` through the tiers.

        Args:
            available: Cash left after return of capital, preferred return and catch-up
            time: Event time in years
            lp_flows: LP realized `(time, amount)` flows to date, including this
                event's earlier LP amounts (contributions negative)
            states: Tier states after the previous event

        Returns:
            Tuple of (allocations per tier, updated tier states)
        """
        remaining = max(available, 0.0)
        lp_paid_in_tiers = 0.0
        allocations: List[TierAllocation] = []
        new_states: List[TierState] = []

        for tier, state in zip(self.tiers, states):
            hurdle_met: Optional[bool] = None
            if not tier.is_bounded:
                amount = remaining
            elif remaining <= self.settings.amount_tolerance:
                amount = 0.0
                hurdle_met = state.hurdle_met
            else:
                boundary = self._boundary(tier, remaining, time, lp_flows, lp_paid_in_tiers)
                hurdle_met = boundary is not None
                amount = remaining if boundary is None else min(boundary, remaining)

            lp = amount * tier.lp_share
            gp = amount - lp
            promote = max(0.0, gp - amount * self.gp_fraction)
            remaining -= amount
            lp_paid_in_tiers += lp

            if amount > 0:
                logger.debug(
                    f"{tier.display_name} at t={time:g}: {amount:,.2f} "
                    f"(LP {lp:,.2f}, GP {gp:,.2f}, promote {promote:,.2f})"
                )

            allocations.append(
                TierAllocation(
                    tier_number=tier.tier_number,
                    tier_name=tier.display_name,
                    amount=amount,
                    lp=lp,
                    gp=gp,
                    gp_promote=promote,
                    hurdle_met=hurdle_met,
                )
            )
            new_states.append(
                state.model_copy(
                    update={
                        "lp_distributed": state.lp_distributed + lp,
                        "gp_distributed": state.gp_distributed + gp,
                        "gp_promote": state.gp_promote + promote,
                        "hurdle_met": hurdle_met,
                    }
                )
            )

        return allocations, tuple(new_states)

    # -------------------------------------------------------------------------
    # Boundary search
    # -------------------------------------------------------------------------

    def _boundary(
        self,
        tier: PromoteTier,
        remaining: float,
        time: float,
        lp_flows: TimedFlows,
        lp_paid_in_tiers: float,
    ) -> Optional[float]:
        """Tier cash at which its hurdle is crossed, or None if unreachable with `remaining`."""
        if tier.lp_share <= 0:
            # LP receives nothing from the tier, so its hurdle can never move
            met = self._hurdles_met(tier, time, lp_flows, lp_paid_in_tiers)
            return 0.0 if met else None

        boundaries = []
        if tier.has_irr_hurdle:
            boundaries.append(
                self._irr_boundary(tier, remaining, time, lp_flows, lp_paid_in_tiers)
            )
        if tier.has_multiple_hurdle:
            boundaries.append(
                self._multiple_boundary(tier, remaining, lp_flows, lp_paid_in_tiers)
            )

        if tier.hurdle_logic == HurdleLogicEnum.OR:
            reachable = [b for b in boundaries if b is not None]
            return min(reachable) if reachable else None
        if any(b is None for b in boundaries):
            return None
        return max(boundaries)

    def _hurdles_met(
        self, tier: PromoteTier, time: float, lp_flows: TimedFlows, lp_paid_in_tiers: float
    ) -> bool:
        checks = []
        if tier.has_irr_hurdle:
            flows = _with_tier_cash(lp_flows, time, lp_paid_in_tiers)
            checks.append(self._irr_met(tier.irr_hurdle, flows))
        if tier.has_multiple_hurdle:
            contributed, distributed = _totals(lp_flows)
            checks.append(
                contributed <= 0
                or (distributed + lp_paid_in_tiers) / contributed
                >= tier.multiple_hurdle - HURDLE_TOLERANCE
            )
        if tier.hurdle_logic == HurdleLogicEnum.OR:
            return any(checks)
        return all(checks)

    def _irr_boundary(
        self,
        tier: PromoteTier,
        remaining: float,
        time: float,
        lp_flows: TimedFlows,
        lp_paid_in_tiers: float,
    ) -> Optional[float]:
        hurdle = tier.irr_hurdle

        def met(amount: float) -> bool:
            extra = lp_paid_in_tiers + amount * tier.lp_share
            return self._irr_met(hurdle, _with_tier_cash(lp_flows, time, extra))

        if met(0.0):
            return 0.0
        if not met(remaining):
            return None

        lo, hi = 0.0, remaining
        for _ in range(self.settings.boundary_search_iterations):
            if hi - lo <= self.settings.amount_tolerance:
                break
            mid = 0.5 * (lo + hi)
            if met(mid):
                hi = mid
            else:
                lo = mid
        logger.debug(f"{tier.display_name} IRR hurdle {hurdle:.2%} crossed at {hi:,.4f}")
        return hi

    def _multiple_boundary(
        self,
        tier: PromoteTier,
        remaining: float,
        lp_flows: TimedFlows,
        lp_paid_in_tiers: float,
    ) -> Optional[float]:
        contributed, distributed = _totals(lp_flows)
        if contributed <= 0:
            return 0.0
        needed = tier.multiple_hurdle * contributed - (distributed + lp_paid_in_tiers)
        amount = max(0.0, needed / tier.lp_share)
        if amount > remaining:
            return None
        return amount

    def _irr_met(self, hurdle: float, flows: TimedFlows) -> bool:
        """Check if LP flows achieve an IRR of at least `hurdle`."""
        if not any(amount < 0 for _, amount in flows):
            return True
        if not any(amount > 0 for _, amount in flows):
            return False
        try:
            rate = solve_irr(flows, self.settings)
        except (InsufficientCashFlows, UndefinedIRR):
            # Rate lies outside the search domain; NPV at the hurdle decides
            return npv(hurdle, flows) >= 0
        return rate >= hurdle - HURDLE_TOLERANCE


def _with_tier_cash(
    lp_flows: TimedFlows, time: float, extra: float
) -> List[Tuple[float, float]]:
    flows = list(lp_flows)
    if extra > 0:
        flows.append((time, extra))
    return flows


def _totals(lp_flows: TimedFlows) -> Tuple[float, float]:
    contributed = -sum(amount for _, amount in lp_flows if amount < 0)
    distributed = sum(amount for _, amount in lp_flows if amount > 0)
    return contributed, distributed


__all__ = [
    "HURDLE_TOLERANCE",
    "TierAllocation",
    "TierCascadeEvaluator",
    "TierState",
]
