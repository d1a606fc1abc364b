# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Preferred return accrual tracking.

A `PreferredReturnLedger` is an immutable per-pool snapshot of capital and
preferred return balances. Every operation returns a new snapshot, so the
engine can keep the ledger as of every event for audit.

Accrual Types:
- cumulative: `unreturned_capital * rate * dt`; unpaid amounts carry forward
- compounding: `(unreturned_capital + capitalized unpaid) * rate * dt`, where
  unpaid preferred is capitalized at each payment-period boundary (yearly when
  paid at exit)
- non_cumulative: as cumulative, but unpaid preferred is forfeited at the end
  of each payment period (never before exit when paid at exit)

When `accrues_during_construction` is false, time before the schedule's
`construction_end` accrues nothing.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

from pydantic import Field

from ..core.primitives import AccrualTypeEnum, Model, NonNegativeFloat, PoolEnum
from .configuration import PreferredReturnTerms

logger = logging.getLogger(__name__)

_TIME_EPSILON = 1e-9


class PreferredReturnLedger(Model):
    """
    Capital and preferred return balances for one pool as of a point in time.

    `accrued`, `paid` and `forfeited` are cumulative and never decrease;
    `unpaid` is what is outstanding now and is never negative.
    """

    pool: PoolEnum
    rate: NonNegativeFloat = Field(..., description="Annual preferred rate (fraction)")
    as_of: NonNegativeFloat = Field(default=0.0, description="Time of the snapshot (years)")
    contributed_capital: NonNegativeFloat = 0.0
    unreturned_capital: NonNegativeFloat = 0.0
    accrued: NonNegativeFloat = 0.0
    paid: NonNegativeFloat = 0.0
    forfeited: NonNegativeFloat = 0.0
    capitalized: NonNegativeFloat = Field(
        default=0.0, description="Portion of unpaid preferred that itself earns the rate"
    )

    @classmethod
    def open(cls, pool: PoolEnum, rate: float, as_of: float = 0.0) -> "PreferredReturnLedger":
        return cls(pool=pool, rate=rate, as_of=as_of)

    @property
    def unpaid(self) -> float:
        """Outstanding preferred return."""
        return max(0.0, self.accrued - self.paid - self.forfeited)

    @property
    def returned_capital(self) -> float:
        return self.contributed_capital - self.unreturned_capital

    def contribute(self, amount: float) -> "PreferredReturnLedger":
        """Record a capital contribution (positive amount)."""
        return self.model_copy(
            update={
                "contributed_capital": self.contributed_capital + amount,
                "unreturned_capital": self.unreturned_capital + amount,
            }
        )

    def return_capital(self, available: float) -> Tuple["PreferredReturnLedger", float]:
        """Return up to `available` of unreturned capital; returns (ledger, amount returned)."""
        amount = min(max(available, 0.0), self.unreturned_capital)
        if amount <= 0:
            return self, 0.0
        return (
            self.model_copy(update={"unreturned_capital": self.unreturned_capital - amount}),
            amount,
        )

    def pay(self, available: float) -> Tuple["PreferredReturnLedger", float]:
        """
        Pay preferred return from `available` cash.

        The payment is capped at the unpaid balance and never touches capital;
        the caller passes any excess on to the next step.
        """
        amount = min(max(available, 0.0), self.unpaid)
        if amount <= 0:
            return self, 0.0
        ledger = self.model_copy(update={"paid": self.paid + amount})
        ledger = ledger.model_copy(update={"capitalized": min(self.capitalized, ledger.unpaid)})
        return ledger, amount

    def accrue(
        self,
        to_time: float,
        terms: PreferredReturnTerms,
        construction_end: float = 0.0,
    ) -> "PreferredReturnLedger":
        """
        Accrue preferred return from `as_of` to `to_time`.

        The interval is split at payment-period boundaries and at
        `construction_end`; each segment accrues on the balance in effect at
        its start.
        """
        start, end = self.as_of, to_time
        if end <= start + _TIME_EPSILON or self.rate <= 0:
            return self.model_copy(update={"as_of": max(start, end)})

        accrual_type = terms.accrual_type
        step = terms.payment_frequency.period_years
        if step is None and accrual_type == AccrualTypeEnum.COMPOUNDING:
            step = 1.0
        forfeits = accrual_type == AccrualTypeEnum.NON_CUMULATIVE and step is not None

        accrued = self.accrued
        forfeited = self.forfeited
        capitalized = self.capitalized

        # A boundary exactly at the snapshot time closes the prior period
        if step is not None and start > 0 and _on_boundary(start, step):
            if forfeits:
                forfeited += max(0.0, accrued - self.paid - forfeited)
                capitalized = 0.0
            elif accrual_type == AccrualTypeEnum.COMPOUNDING:
                capitalized = max(0.0, accrued - self.paid - forfeited)

        boundaries = _period_boundaries(start, end, step)
        breakpoints = sorted(
            set(boundaries)
            | ({construction_end} if start < construction_end < end else set())
            | {end}
        )

        segment_start = start
        for point in breakpoints:
            in_construction = point <= construction_end + _TIME_EPSILON
            if not (in_construction and not terms.accrues_during_construction):
                base = self.unreturned_capital
                if accrual_type == AccrualTypeEnum.COMPOUNDING:
                    base += capitalized
                accrued += base * self.rate * (point - segment_start)
            segment_start = point

            if point in boundaries:
                unpaid = max(0.0, accrued - self.paid - forfeited)
                if forfeits:
                    forfeited += unpaid
                    capitalized = 0.0
                elif accrual_type == AccrualTypeEnum.COMPOUNDING:
                    capitalized = unpaid

        logger.debug(
            f"{self.pool.value} preferred accrued {accrued - self.accrued:,.2f} "
            f"from t={start:g} to t={end:g}"
        )
        return self.model_copy(
            update={
                "as_of": end,
                "accrued": accrued,
                "forfeited": forfeited,
                "capitalized": capitalized,
            }
        )


def _on_boundary(time: float, step: float) -> bool:
    periods = time / step
    return abs(periods - round(periods)) <= _TIME_EPSILON


def _period_boundaries(start: float, end: float, step: Optional[float]) -> List[float]:
    """Payment-period boundaries strictly inside (start, end)."""
    if step is None:
        return []
    boundaries = []
    k = math.floor(start / step + _TIME_EPSILON) + 1
    while True:
        point = k * step
        if point >= end - _TIME_EPSILON:
            break
        if point > start + _TIME_EPSILON:
            boundaries.append(point)
        k += 1
    return boundaries


def allocate_return_of_capital(
    lp: PreferredReturnLedger, gp: PreferredReturnLedger, available: float
) -> Tuple[PreferredReturnLedger, PreferredReturnLedger, float, float]:
    """
    Return capital to both pools pro-rata to their unreturned balances.

    Returns:
        (lp_ledger, gp_ledger, lp_amount, gp_amount)
    """
    outstanding = lp.unreturned_capital + gp.unreturned_capital
    if outstanding <= 0 or available <= 0:
        return lp, gp, 0.0, 0.0

    total = min(available, outstanding)
    if total >= outstanding:
        lp_target, gp_target = lp.unreturned_capital, gp.unreturned_capital
    else:
        lp_target = total * lp.unreturned_capital / outstanding
        gp_target = total - lp_target

    lp, lp_amount = lp.return_capital(lp_target)
    gp, gp_amount = gp.return_capital(gp_target)
    return lp, gp, lp_amount, gp_amount


__all__ = [
    "PreferredReturnLedger",
    "allocate_return_of_capital",
]
