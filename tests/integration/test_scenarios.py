# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Scenario runner integration tests.

Runs one configuration across several schedules, sequentially and on a thread
pool, including a scenario whose LP IRR cannot be solved.
"""

from __future__ import annotations

import pytest

from hurdle.waterfall import (
    ScenarioRunner,
    create_irr_tier_waterfall,
    scenario_frame,
    summarize_scenarios,
)
from tests.conftest import create_schedule


@pytest.fixture
def configuration():
    return create_irr_tier_waterfall()


@pytest.fixture
def base_schedule():
    return create_schedule([(0.0, -600.0), (0.5, -400.0), (2.0, 90.0), (5.0, 1_900.0)])


@pytest.fixture
def schedules(base_schedule):
    return {
        "downside": base_schedule.scale_distributions(0.7),
        "base": base_schedule,
        # Near-total loss puts the LP IRR below the -99% search floor
        "wipeout": create_schedule([(0.0, -1_000.0), (5.0, 1e-8)]),
        "upside": base_schedule.scale_distributions(1.4),
    }


def test_failed_scenario_is_isolated(configuration, schedules):
    outcomes = ScenarioRunner(configuration).run(schedules)

    assert list(outcomes) == ["downside", "base", "wipeout", "upside"]
    assert not outcomes["wipeout"].ok
    assert outcomes["wipeout"].result is None
    assert outcomes["wipeout"].failure.error_type == "UndefinedIRR"
    for name in ("downside", "base", "upside"):
        assert outcomes[name].ok
        assert outcomes[name].result.final_results.lp.irr is not None


def test_threaded_run_matches_sequential(configuration, schedules):
    runner = ScenarioRunner(configuration)
    sequential = runner.run(schedules)
    threaded = runner.run(schedules, max_workers=4)

    assert list(threaded) == list(sequential)
    for name, outcome in sequential.items():
        assert threaded[name] == outcome


def test_run_adjusted(configuration, base_schedule):
    outcomes = ScenarioRunner(configuration).run_adjusted(base_schedule, max_workers=3)

    assert list(outcomes) == ["downside", "base", "upside"]
    irrs = [outcomes[name].result.final_results.lp.irr for name in outcomes]
    assert irrs == sorted(irrs)

    base = outcomes["base"].result
    direct = ScenarioRunner(configuration).run({"base": base_schedule})["base"].result
    assert base == direct


def test_summarize_scenarios(configuration, schedules):
    outcomes = ScenarioRunner(configuration).run(schedules)
    summary = summarize_scenarios(outcomes)

    irr = summary["lp_irr_range"]
    assert irr["low"] <= irr["base"] <= irr["high"]
    assert irr["low"] == outcomes["downside"].result.final_results.lp.irr
    assert irr["high"] == outcomes["upside"].result.final_results.lp.irr

    promote = summary["gp_promote_range"]
    assert promote["low"] <= promote["base"] <= promote["high"]
    assert set(summary) == {"lp_irr_range", "lp_multiple_range", "gp_promote_range"}


def test_summary_without_base(configuration, schedules):
    schedules.pop("base")
    summary = summarize_scenarios(ScenarioRunner(configuration).run(schedules))
    assert summary["lp_multiple_range"]["base"] is None
    assert summary["lp_multiple_range"]["low"] is not None


def test_scenario_frame(configuration, schedules):
    frame = scenario_frame(ScenarioRunner(configuration).run(schedules))

    assert list(frame.index) == ["downside", "base", "wipeout", "upside"]
    assert frame.loc["wipeout", "error"].startswith("UndefinedIRR")
    assert frame.loc["base", "error"] is None
