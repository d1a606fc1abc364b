# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
GP clawback true-up.

At each true-up event the promote the GP has been paid so far (catch-up plus
promote above its pro-rata share in the tiers) is compared with the promote
justified by realized results: the promote the same configuration produces
when the realized history to date is replayed with every contribution and net
distribution at its actual time, and cash that would have paid promote ahead
of a later capital call funds that call instead. Any excess is owed back to
the LP, capped at the escrow held:

    amount = max(0, promote_paid - already_returned - justified)
    cap    = escrow_percent * promote_paid - already_returned

The transfer moves cash from GP to LP at the true-up time; it does not draw on
the event's distributable cash.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

from pydantic import Field

from ..core.primitives import Model, NonNegativeFloat, TrueUpFrequencyEnum
from ..core.schedule import CashFlowEvent
from .configuration import ClawbackTerms

logger = logging.getLogger(__name__)

_TIME_EPSILON = 1e-9


class ClawbackTrueUp(Model):
    """Outcome of one true-up evaluation."""

    time: NonNegativeFloat
    promote_paid: NonNegativeFloat = Field(..., description="Cumulative GP promote paid to date")
    justified_promote: NonNegativeFloat = Field(
        ..., description="Promote supported by realized results to date"
    )
    previously_returned: NonNegativeFloat = 0.0
    escrow_cap: NonNegativeFloat = Field(
        ..., description="Escrow still available to fund a clawback"
    )
    amount: NonNegativeFloat = Field(..., description="Clawback transferred from GP to LP")

    @property
    def excess_promote(self) -> float:
        return max(0.0, self.promote_paid - self.previously_returned - self.justified_promote)


class ClawbackResult(Model):
    """All true-ups of one engine run."""

    escrow_percent: float
    true_up_frequency: TrueUpFrequencyEnum
    true_ups: List[ClawbackTrueUp] = Field(default_factory=list)

    @property
    def clawback_amount(self) -> float:
        """Total clawback transferred from GP to LP."""
        return sum(true_up.amount for true_up in self.true_ups)


def true_up_indices(
    distribution_times: Sequence[float], frequency: TrueUpFrequencyEnum
) -> List[int]:
    """
    Indices of the distribution events at which a true-up runs.

    The exit (last distribution) always trues up. Annual and quarterly
    frequencies add the first distribution at or after each period end.
    """
    if not distribution_times:
        return []
    exit_index = len(distribution_times) - 1
    indices = {exit_index}

    step = frequency.period_years
    if step is not None:
        exit_time = distribution_times[exit_index]
        k = 1
        while k * step <= exit_time + _TIME_EPSILON:
            period_end = k * step
            for index, time in enumerate(distribution_times):
                if time >= period_end - _TIME_EPSILON:
                    indices.add(index)
                    break
            k += 1
    return sorted(indices)


@dataclass
class ClawbackCalculator:
    """
    Evaluates true-ups for one engine run.

    Args:
        terms: Clawback terms (must be enabled)
        justified_promote: Callable of the realized history to date (contributions
            and net distributions) returning the promote it justifies
    """

    terms: ClawbackTerms
    justified_promote: Callable[[Sequence[CashFlowEvent]], float]

    def true_up(
        self,
        time: float,
        promote_paid: float,
        previously_returned: float,
        history: Sequence[CashFlowEvent],
    ) -> ClawbackTrueUp:
        justified = max(0.0, self.justified_promote(history))
        excess = max(0.0, promote_paid - previously_returned - justified)
        cap = max(0.0, self.terms.escrow_percent * promote_paid - previously_returned)
        amount = min(excess, cap)

        if amount > 0:
            logger.debug(
                f"Clawback at t={time:g}: {amount:,.2f} "
                f"(paid {promote_paid:,.2f}, justified {justified:,.2f}, cap {cap:,.2f})"
            )
        return ClawbackTrueUp(
            time=time,
            promote_paid=promote_paid,
            justified_promote=justified,
            previously_returned=previously_returned,
            escrow_cap=cap,
            amount=amount,
        )


__all__ = [
    "ClawbackCalculator",
    "ClawbackResult",
    "ClawbackTrueUp",
    "true_up_indices",
]
