# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import pandas as pd
import pytest

from hurdle.core import (
    CashFlowError,
    CashFlowEvent,
    CashFlowSchedule,
    InsufficientCashFlows,
    sequence_to_schedule,
    validate_monthly_period_index,
)
from hurdle.core.primitives import PoolEnum


def test_events_sorted_with_contributions_first():
    """Events are ordered by time, with capital calls ahead of distributions at a tie."""
    schedule = CashFlowSchedule.from_flows(
        [(2.0, 500.0), (1.0, 0.0), (1.0, -300.0), (0.0, -700.0)]
    )
    assert [(e.time, e.amount) for e in schedule.events] == [
        (0.0, -700.0),
        (1.0, -300.0),
        (1.0, 0.0),
        (2.0, 500.0),
    ]


def test_schedule_requires_contribution():
    with pytest.raises(InsufficientCashFlows, match="no contribution"):
        CashFlowSchedule.from_flows([(1.0, 100.0)])


def test_schedule_requires_distribution():
    with pytest.raises(InsufficientCashFlows, match="no distribution"):
        CashFlowSchedule.from_flows([(0.0, -100.0), (1.0, -50.0)])


def test_only_contributions_carry_pool_tag():
    with pytest.raises(CashFlowError):
        CashFlowEvent(time=1.0, amount=100.0, pool="LP")


def test_negative_time_rejected():
    with pytest.raises(ValueError):
        CashFlowEvent(time=-1.0, amount=-100.0)


def test_tagged_contributions():
    schedule = CashFlowSchedule.from_flows(
        [(0.0, -900.0, "LP"), (0.0, -100.0, "GP"), (5.0, 1_400.0)]
    )
    pools = [event.pool for event in schedule.contributions]
    assert pools == [PoolEnum.LP, PoolEnum.GP]
    assert schedule.distributions[0].pool is None


def test_schedule_totals():
    schedule = CashFlowSchedule.from_flows(
        [(0.0, -600.0), (0.5, -400.0), (1.0, 50.0), (4.0, 1_500.0)]
    )
    assert schedule.total_contributions == 1_000.0
    assert schedule.total_distributions == 1_550.0
    assert schedule.exit_time == 4.0


def test_scale_distributions():
    schedule = CashFlowSchedule.from_flows(
        [(0.0, -1_000.0), (1.0, 100.0), (3.0, 1_200.0)], construction_end=0.5
    )
    scaled = schedule.scale_distributions(0.8)

    assert [e.amount for e in scaled.distributions] == pytest.approx([80.0, 960.0])
    assert scaled.total_contributions == 1_000.0
    assert scaled.construction_end == 0.5
    # Original is untouched
    assert schedule.total_distributions == 1_300.0


def test_scale_distributions_rejects_negative_factor():
    schedule = CashFlowSchedule.from_flows([(0.0, -1_000.0), (1.0, 1_100.0)])
    with pytest.raises(CashFlowError):
        schedule.scale_distributions(-0.5)


def test_schedule_is_immutable():
    schedule = CashFlowSchedule.from_flows([(0.0, -1_000.0), (1.0, 1_100.0)])
    with pytest.raises(ValueError):
        schedule.construction_end = 1.0


class TestFromSeries:
    """Tests for building schedules from monthly levered cash flow series."""

    def test_monthly_offsets(self):
        series = pd.Series(
            [-1_000_000.0, 0.0, 0.0, 50_000.0, 0.0, 0.0, 1_200_000.0],
            index=pd.period_range("2024-01", periods=7, freq="M"),
        )
        schedule = CashFlowSchedule.from_series(series, construction_end=0.25)

        assert [e.time for e in schedule.events] == pytest.approx([0.0, 0.25, 0.5])
        assert [e.amount for e in schedule.events] == [-1_000_000.0, 50_000.0, 1_200_000.0]
        assert schedule.events[0].label == "2024-01"
        assert schedule.construction_end == 0.25

    def test_pool_tag_applies_to_contributions_only(self):
        series = pd.Series(
            [-500.0, 700.0], index=pd.period_range("2024-01", periods=2, freq="M")
        )
        schedule = CashFlowSchedule.from_series(series, pool="LP")
        assert schedule.events[0].pool == PoolEnum.LP
        assert schedule.events[1].pool is None

    def test_requires_period_index(self):
        series = pd.Series([-500.0, 700.0], index=[0, 1])
        with pytest.raises(CashFlowError, match="PeriodIndex"):
            CashFlowSchedule.from_series(series)

    def test_requires_monthly_frequency(self):
        series = pd.Series(
            [-500.0, 700.0], index=pd.period_range("2024", periods=2, freq="Y")
        )
        with pytest.raises(CashFlowError, match="monthly"):
            validate_monthly_period_index(series, "levered_cash_flows")


def test_sequence_to_schedule():
    schedule = sequence_to_schedule([-1_000.0, 0.0, 100.0, 1_100.0], period_years=0.5)
    assert [(e.time, e.amount) for e in schedule.events] == [
        (0.0, -1_000.0),
        (1.0, 100.0),
        (1.5, 1_100.0),
    ]


def test_to_frame():
    schedule = CashFlowSchedule.from_flows([(0.0, -900.0, "LP"), (5.0, 1_400.0)])
    frame = schedule.to_frame()
    assert list(frame.columns) == ["time", "amount", "pool", "label"]
    assert frame["pool"].tolist() == ["LP", None]
