# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
GP catch-up allocation.

After the LP preferred return is fully current, the catch-up pays the GP
until it holds `catch_up_target_share` of the profit distributed so far as
preferred return plus catch-up:

    required = target / (1 - target) * lp_preferred_paid - gp_catch_up_paid

With a partial catch-up (`catch_up_percent < 1`) each dollar consumed pays
`catch_up_percent` to the GP and the rest to the LP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.primitives import Model, NonNegativeFloat
from .accrual import PreferredReturnLedger
from .configuration import PreferredReturnTerms

logger = logging.getLogger(__name__)


class CatchUpAllocation(Model):
    """Cash allocated by the catch-up step of one event."""

    lp: NonNegativeFloat = 0.0
    gp: NonNegativeFloat = 0.0
    required: float = 0.0

    @property
    def consumed(self) -> float:
        return self.lp + self.gp


NO_CATCH_UP = CatchUpAllocation()


@dataclass
class CatchUpAllocator:
    """Computes the GP catch-up for a distribution event."""

    terms: PreferredReturnTerms
    amount_tolerance: float = 1e-9

    def required(self, lp_preferred_paid: float, gp_catch_up_paid: float) -> float:
        """GP catch-up still owed to reach the target share."""
        target = self.terms.catch_up_target_share
        return target / (1.0 - target) * lp_preferred_paid - gp_catch_up_paid

    def allocate(
        self,
        available: float,
        lp_ledger: PreferredReturnLedger,
        gp_catch_up_paid: float,
    ) -> CatchUpAllocation:
        """
        Allocate catch-up cash from what remains after preferred return.

        Args:
            available: Cash remaining in the event
            lp_ledger: LP ledger after this event's preferred payment
            gp_catch_up_paid: Cumulative GP catch-up before this event

        Returns:
            CatchUpAllocation (all zero when disabled, when the LP preferred is
            not current, or when nothing is owed)
        """
        if not self.terms.catch_up_enabled or available <= self.amount_tolerance:
            return NO_CATCH_UP
        if lp_ledger.unpaid > self.amount_tolerance:
            return NO_CATCH_UP

        required = self.required(lp_ledger.paid, gp_catch_up_paid)
        if required <= self.amount_tolerance:
            return CatchUpAllocation(required=required)

        percent = self.terms.catch_up_percent
        gp = min(required, available * percent, available)
        consumed = min(gp / percent, available)
        lp = consumed - gp

        logger.debug(f"Catch-up: GP {gp:,.2f}, LP {lp:,.2f} (required {required:,.2f})")
        return CatchUpAllocation(lp=lp, gp=gp, required=required)


__all__ = [
    "CatchUpAllocation",
    "CatchUpAllocator",
    "NO_CATCH_UP",
]
