# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import pytest

from hurdle.core.primitives import TrueUpFrequencyEnum
from hurdle.waterfall import ClawbackCalculator, ClawbackResult, ClawbackTerms, true_up_indices


class TestTrueUpIndices:
    """Which distribution events run a true-up."""

    def test_at_exit_only(self):
        assert true_up_indices([1.0, 2.0, 3.0], TrueUpFrequencyEnum.AT_EXIT) == [2]

    def test_annual_uses_first_distribution_after_each_year(self):
        times = [0.5, 1.0, 1.5, 2.25, 4.0]
        # Years 1, 2, 3 and 4 map to t=1.0, 2.25, 4.0, 4.0
        assert true_up_indices(times, TrueUpFrequencyEnum.ANNUAL) == [1, 3, 4]

    def test_quarterly(self):
        times = [0.25, 0.3, 0.75, 1.0]
        assert true_up_indices(times, TrueUpFrequencyEnum.QUARTERLY) == [0, 2, 3]

    def test_no_distributions(self):
        assert true_up_indices([], TrueUpFrequencyEnum.ANNUAL) == []


class TestClawbackCalculator:
    """Excess promote is returned up to the escrow cap."""

    def _calculator(self, escrow_percent, justified):
        return ClawbackCalculator(
            terms=ClawbackTerms(enabled=True, escrow_percent=escrow_percent),
            justified_promote=lambda history: justified,
        )

    def test_excess_within_escrow(self):
        true_up = self._calculator(1.0, 5.6).true_up(
            2.0, promote_paid=12.8, previously_returned=0.0, history=[]
        )
        assert true_up.amount == pytest.approx(7.2)
        assert true_up.excess_promote == pytest.approx(7.2)

    def test_excess_capped_by_escrow(self):
        true_up = self._calculator(0.10, 5.6).true_up(
            2.0, promote_paid=12.8, previously_returned=0.0, history=[]
        )
        assert true_up.escrow_cap == pytest.approx(1.28)
        assert true_up.amount == pytest.approx(1.28)

    def test_previous_returns_reduce_excess_and_cap(self):
        true_up = self._calculator(0.50, 5.6).true_up(
            3.0, promote_paid=12.8, previously_returned=4.0, history=[]
        )
        assert true_up.escrow_cap == pytest.approx(2.4)
        assert true_up.amount == pytest.approx(2.4)

    def test_justified_promote_means_no_clawback(self):
        true_up = self._calculator(1.0, 20.0).true_up(
            2.0, promote_paid=12.8, previously_returned=0.0, history=[]
        )
        assert true_up.amount == 0.0

    def test_result_totals_true_ups(self):
        calculator = self._calculator(1.0, 5.6)
        first = calculator.true_up(1.0, 10.0, 0.0, [])
        second = calculator.true_up(2.0, 12.8, first.amount, [])
        result = ClawbackResult(
            escrow_percent=1.0,
            true_up_frequency=TrueUpFrequencyEnum.ANNUAL,
            true_ups=[first, second],
        )
        assert result.clawback_amount == pytest.approx(7.2)
