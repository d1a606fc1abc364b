# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the promote tier cascade.

LP flows in these tests: 1,000 contributed at t=0 and 1,080 (capital plus an
8% preferred return) already received at t=1, so a 12% IRR hurdle needs 40
more LP dollars and a 1.2x multiple hurdle needs 120.
"""

from __future__ import annotations

import pytest

from hurdle.core import EngineSettings
from hurdle.waterfall import PromoteTier, TierCascadeEvaluator

LP_FLOWS = [(0.0, -1_000.0), (1.0, 1_080.0)]


def _evaluator(tiers, gp_fraction=0.0):
    return TierCascadeEvaluator(tiers=tiers, gp_fraction=gp_fraction, settings=EngineSettings())


def _final(number, lp_share=0.50):
    return PromoteTier(tier_number=number, lp_share=lp_share, gp_share=1.0 - lp_share)


@pytest.fixture
def irr_tiers():
    return [
        PromoteTier(
            tier_number=1, hurdle_type="irr", irr_hurdle=0.12, lp_share=0.80, gp_share=0.20
        ),
        _final(2),
    ]


class TestIRRBoundary:
    """Tier cash stops exactly where the LP IRR crosses the hurdle."""

    def test_cash_crosses_hurdle(self, irr_tiers):
        evaluator = _evaluator(irr_tiers)
        allocations, states = evaluator.evaluate(
            220.0, 1.0, LP_FLOWS, evaluator.initial_states()
        )

        first, final = allocations
        assert first.amount == pytest.approx(50.0, abs=1e-4)
        assert first.lp == pytest.approx(40.0, abs=1e-4)
        assert first.gp == pytest.approx(10.0, abs=1e-4)
        assert first.hurdle_met is True
        assert final.amount == pytest.approx(170.0, abs=1e-4)
        assert final.lp == pytest.approx(final.gp)
        assert states[0].lp_distributed == pytest.approx(40.0, abs=1e-4)

    def test_allocates_exactly_available_cash(self, irr_tiers):
        evaluator = _evaluator(irr_tiers)
        allocations, _ = evaluator.evaluate(220.0, 1.0, LP_FLOWS, evaluator.initial_states())
        assert sum(a.amount for a in allocations) == pytest.approx(220.0, abs=1e-9)

    def test_unreachable_hurdle_takes_everything(self, irr_tiers):
        evaluator = _evaluator(irr_tiers)
        allocations, states = evaluator.evaluate(
            20.0, 1.0, LP_FLOWS, evaluator.initial_states()
        )

        assert allocations[0].amount == pytest.approx(20.0)
        assert allocations[0].hurdle_met is False
        assert allocations[1].amount == 0.0
        assert states[0].hurdle_met is False

    def test_hurdle_already_met_skips_tier(self, irr_tiers):
        evaluator = _evaluator(irr_tiers)
        allocations, _ = evaluator.evaluate(
            100.0, 1.0, [(0.0, -1_000.0), (1.0, 1_200.0)], evaluator.initial_states()
        )
        assert allocations[0].amount == 0.0
        assert allocations[0].hurdle_met is True
        assert allocations[1].amount == pytest.approx(100.0)

    def test_states_accumulate_across_events(self, irr_tiers):
        evaluator = _evaluator(irr_tiers)
        _, states = evaluator.evaluate(20.0, 1.0, LP_FLOWS, evaluator.initial_states())
        flows = LP_FLOWS + [(1.0, 16.0)]
        _, states = evaluator.evaluate(10.0, 1.0, flows, states)

        assert states[0].lp_distributed == pytest.approx(24.0)
        assert states[0].total_distributed == pytest.approx(30.0)


class TestMultipleBoundary:
    """Equity multiple hurdles are solved directly."""

    def test_cash_crosses_multiple(self):
        tiers = [
            PromoteTier(
                tier_number=1,
                hurdle_type="equity_multiple",
                multiple_hurdle=1.2,
                lp_share=0.80,
                gp_share=0.20,
            ),
            _final(2, lp_share=0.60),
        ]
        evaluator = _evaluator(tiers)
        allocations, _ = evaluator.evaluate(320.0, 1.0, LP_FLOWS, evaluator.initial_states())

        assert allocations[0].amount == pytest.approx(150.0)
        assert allocations[0].lp == pytest.approx(120.0)
        assert allocations[1].lp == pytest.approx(102.0)
        assert allocations[1].gp == pytest.approx(68.0)


class TestCombinedHurdles:
    """IRR and multiple hurdles combined with and / or."""

    @pytest.mark.parametrize("logic, expected", [("or", 50.0), ("and", 525.0)])
    def test_logic(self, logic, expected):
        tiers = [
            PromoteTier(
                tier_number=1,
                hurdle_type="both",
                hurdle_logic=logic,
                irr_hurdle=0.12,
                multiple_hurdle=1.5,
                lp_share=0.80,
                gp_share=0.20,
            ),
            _final(2),
        ]
        evaluator = _evaluator(tiers)
        allocations, _ = evaluator.evaluate(1_000.0, 1.0, LP_FLOWS, evaluator.initial_states())
        assert allocations[0].amount == pytest.approx(expected, abs=1e-4)


def test_promote_is_gp_cash_above_pro_rata_share(irr_tiers):
    """With 10% GP equity, a 20% GP tier share is half promote."""
    evaluator = _evaluator(irr_tiers, gp_fraction=0.10)
    allocations, states = evaluator.evaluate(20.0, 1.0, LP_FLOWS, evaluator.initial_states())

    assert allocations[0].gp == pytest.approx(4.0)
    assert allocations[0].gp_promote == pytest.approx(2.0)
    assert states[0].gp_promote == pytest.approx(2.0)
