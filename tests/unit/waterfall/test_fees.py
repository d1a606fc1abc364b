# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import pytest

from hurdle.core.primitives import FeeTypeEnum
from hurdle.waterfall import (
    FeeBasis,
    FeeLedger,
    FeeSummary,
    ManagementFeeCalculator,
    ManagementFees,
    calculate_management_fees,
)


@pytest.fixture
def fees() -> ManagementFees:
    return ManagementFees(
        acquisition_fee_percent=0.01,
        asset_management_fee_percent=0.02,
        construction_management_fee_percent=0.03,
        disposition_fee_percent=0.005,
    )


def test_calculate_management_fees(fees):
    estimate = calculate_management_fees(
        fees,
        FeeBasis(
            total_project_cost=10_000_000,
            hard_costs=6_000_000,
            total_equity=4_000_000,
            net_revenue=14_000_000,
            hold_period_years=5,
        ),
    )
    assert estimate.acquisition_fee == pytest.approx(100_000)
    assert estimate.construction_management_fee == pytest.approx(180_000)
    assert estimate.asset_management_fee == pytest.approx(400_000)
    assert estimate.disposition_fee == pytest.approx(70_000)
    assert estimate.total_fees == pytest.approx(750_000)


def test_no_fees_by_default():
    estimate = calculate_management_fees(ManagementFees(), FeeBasis(total_equity=1_000_000))
    assert estimate.total_fees == 0.0


class TestManagementFeeCalculator:
    """Charging and settling fees across events."""

    def test_asset_management_accrues_on_contributed_equity(self, fees):
        calculator = ManagementFeeCalculator(fees)
        ledger = calculator.accrue(FeeLedger(), 2.5, contributed_equity=1_000.0)

        assert ledger.charged[FeeTypeEnum.ASSET_MANAGEMENT] == pytest.approx(50.0)
        assert ledger.as_of == 2.5

    def test_one_time_fees_charged_at_first_and_exit(self, fees):
        calculator = ManagementFeeCalculator(fees, total_project_cost=2_000.0, hard_costs=1_000.0)
        ledger = calculator.charge_distribution(FeeLedger(), 400.0, is_first=True, is_exit=False)
        ledger = calculator.charge_distribution(ledger, 1_200.0, is_first=False, is_exit=True)

        assert ledger.charged[FeeTypeEnum.ACQUISITION] == pytest.approx(20.0)
        assert ledger.charged[FeeTypeEnum.CONSTRUCTION_MANAGEMENT] == pytest.approx(30.0)
        assert ledger.charged[FeeTypeEnum.DISPOSITION] == pytest.approx(6.0)

    def test_settle_pays_in_priority_order(self, fees):
        calculator = ManagementFeeCalculator(fees)
        ledger = (
            FeeLedger()
            .charge(FeeTypeEnum.DISPOSITION, 10.0)
            .charge(FeeTypeEnum.ACQUISITION, 20.0)
            .charge(FeeTypeEnum.ASSET_MANAGEMENT, 15.0)
        )
        ledger, total, by_type = calculator.settle(ledger, 30.0)

        assert total == pytest.approx(30.0)
        assert by_type[FeeTypeEnum.ACQUISITION] == pytest.approx(20.0)
        assert by_type[FeeTypeEnum.ASSET_MANAGEMENT] == pytest.approx(10.0)
        assert by_type[FeeTypeEnum.DISPOSITION] == 0.0
        assert ledger.total_outstanding == pytest.approx(15.0)

    def test_arrears_carry_to_summary(self, fees):
        ledger = FeeLedger().charge(FeeTypeEnum.ACQUISITION, 20.0)
        ledger, _ = ledger.pay(5.0)
        summary = FeeSummary.from_ledger(ledger)

        assert summary.total_paid == pytest.approx(5.0)
        assert summary.unpaid[FeeTypeEnum.ACQUISITION] == pytest.approx(15.0)
        assert summary.total_unpaid == pytest.approx(15.0)
