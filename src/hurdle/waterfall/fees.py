# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Management fees deducted from gross cash before the waterfall.

Fees are pure percentage-of-basis charges and are not part of the cascade:

- Acquisition: `total_project_cost * acquisition_fee_percent`, due at the
  first distribution event
- Construction management: `hard_costs * construction_management_fee_percent`,
  due at the first distribution event
- Asset management: `contributed_equity * asset_management_fee_percent` per
  year, accrued between events
- Disposition: `gross_exit_cash * disposition_fee_percent`, due at exit

Each distribution event pays outstanding fees in `FeeTypeEnum` order out of
gross cash; whatever cannot be paid carries forward as arrears.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

from pydantic import Field

from ..core.primitives import FeeTypeEnum, Model, NonNegativeFloat
from .configuration import ManagementFees

logger = logging.getLogger(__name__)


def _zero_by_type() -> Dict[FeeTypeEnum, float]:
    return {fee_type: 0.0 for fee_type in FeeTypeEnum}


class FeeLedger(Model):
    """Cumulative fee charges and payments as of a point in time."""

    as_of: NonNegativeFloat = 0.0
    charged: Dict[FeeTypeEnum, float] = Field(default_factory=_zero_by_type)
    paid: Dict[FeeTypeEnum, float] = Field(default_factory=_zero_by_type)

    def outstanding(self, fee_type: FeeTypeEnum) -> float:
        return max(0.0, self.charged[fee_type] - self.paid[fee_type])

    @property
    def total_charged(self) -> float:
        return sum(self.charged.values())

    @property
    def total_paid(self) -> float:
        return sum(self.paid.values())

    @property
    def total_outstanding(self) -> float:
        return sum(self.outstanding(fee_type) for fee_type in FeeTypeEnum)

    def charge(self, fee_type: FeeTypeEnum, amount: float) -> "FeeLedger":
        if amount <= 0:
            return self
        charged = dict(self.charged)
        charged[fee_type] += amount
        return self.model_copy(update={"charged": charged})

    def pay(self, available: float) -> Tuple["FeeLedger", Dict[FeeTypeEnum, float]]:
        """
        Pay outstanding fees in priority order from `available` cash.

        Returns:
            (updated ledger, amount paid now per fee type)
        """
        remaining = max(available, 0.0)
        paid = dict(self.paid)
        paid_now = _zero_by_type()
        for fee_type in FeeTypeEnum:
            amount = min(remaining, self.outstanding(fee_type))
            if amount > 0:
                paid[fee_type] += amount
                paid_now[fee_type] = amount
                remaining -= amount
        return self.model_copy(update={"paid": paid}), paid_now


class FeeSummary(Model):
    """Fees charged, paid and left unpaid over an engine run, by type."""

    charged: Dict[FeeTypeEnum, float] = Field(default_factory=_zero_by_type)
    paid: Dict[FeeTypeEnum, float] = Field(default_factory=_zero_by_type)
    unpaid: Dict[FeeTypeEnum, float] = Field(default_factory=_zero_by_type)

    @classmethod
    def from_ledger(cls, ledger: FeeLedger) -> "FeeSummary":
        return cls(
            charged=dict(ledger.charged),
            paid=dict(ledger.paid),
            unpaid={fee_type: ledger.outstanding(fee_type) for fee_type in FeeTypeEnum},
        )

    @property
    def total_paid(self) -> float:
        return sum(self.paid.values())

    @property
    def total_unpaid(self) -> float:
        return sum(self.unpaid.values())


@dataclass
class ManagementFeeCalculator:
    """
    Charges and settles management fees across the events of one run.

    Args:
        fees: Fee percentages (fractions)
        total_project_cost: Acquisition fee basis
        hard_costs: Construction management fee basis
    """

    fees: ManagementFees
    total_project_cost: float = 0.0
    hard_costs: float = 0.0

    def accrue(self, ledger: FeeLedger, to_time: float, contributed_equity: float) -> FeeLedger:
        """Accrue the asset management fee on contributed equity up to `to_time`."""
        dt = to_time - ledger.as_of
        if dt <= 0:
            return ledger
        amount = contributed_equity * self.fees.asset_management_fee_percent * dt
        return ledger.charge(FeeTypeEnum.ASSET_MANAGEMENT, amount).model_copy(
            update={"as_of": to_time}
        )

    def charge_distribution(
        self, ledger: FeeLedger, gross_cash: float, is_first: bool, is_exit: bool
    ) -> FeeLedger:
        """Charge the one-time fees that fall due at a distribution event."""
        if is_first:
            ledger = ledger.charge(
                FeeTypeEnum.ACQUISITION,
                self.total_project_cost * self.fees.acquisition_fee_percent,
            )
            ledger = ledger.charge(
                FeeTypeEnum.CONSTRUCTION_MANAGEMENT,
                self.hard_costs * self.fees.construction_management_fee_percent,
            )
        if is_exit:
            ledger = ledger.charge(
                FeeTypeEnum.DISPOSITION, gross_cash * self.fees.disposition_fee_percent
            )
        return ledger

    def settle(
        self, ledger: FeeLedger, gross_cash: float
    ) -> Tuple[FeeLedger, float, Dict[FeeTypeEnum, float]]:
        """
        Pay what gross cash allows.

        Returns:
            (updated ledger, total paid now, paid now by type)
        """
        ledger, paid_now = ledger.pay(gross_cash)
        total = sum(paid_now.values())
        if ledger.total_outstanding > 0:
            logger.debug(f"Fee arrears carried forward: {ledger.total_outstanding:,.2f}")
        return ledger, total, paid_now


class FeeBasis(Model):
    """Project figures for a standalone fee estimate."""

    total_project_cost: NonNegativeFloat = 0.0
    hard_costs: NonNegativeFloat = 0.0
    total_equity: NonNegativeFloat = 0.0
    net_revenue: NonNegativeFloat = Field(default=0.0, description="Gross disposition proceeds")
    hold_period_years: NonNegativeFloat = 1.0


class FeeEstimate(Model):
    acquisition_fee: float
    construction_management_fee: float
    asset_management_fee: float
    disposition_fee: float

    @property
    def total_fees(self) -> float:
        return (
            self.acquisition_fee
            + self.construction_management_fee
            + self.asset_management_fee
            + self.disposition_fee
        )


def calculate_management_fees(fees: ManagementFees, basis: FeeBasis) -> FeeEstimate:
    """
    Estimate total management fees for a project without running the waterfall.

    Example:
        ```python
        estimate = calculate_management_fees(
            ManagementFees(asset_management_fee_percent=0.02),
            FeeBasis(total_equity=10_000_000, hold_period_years=5),
        )
        print(estimate.total_fees)  # 1000000.0
        ```
    """
    return FeeEstimate(
        acquisition_fee=basis.total_project_cost * fees.acquisition_fee_percent,
        construction_management_fee=basis.hard_costs * fees.construction_management_fee_percent,
        asset_management_fee=basis.total_equity
        * fees.asset_management_fee_percent
        * basis.hold_period_years,
        disposition_fee=basis.net_revenue * fees.disposition_fee_percent,
    )


__all__ = [
    "FeeBasis",
    "FeeEstimate",
    "FeeLedger",
    "FeeSummary",
    "ManagementFeeCalculator",
    "calculate_management_fees",
]
