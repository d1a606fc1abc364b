# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Cash-flow schedule models.

A schedule is the timeline of capital calls and distributable cash that the
waterfall engine consumes. It is produced by an upstream pro-forma projection
and handed to the engine as plain values; the engine never mutates it.

Sign Convention (investor perspective):
- Contributions (capital calls): NEGATIVE, optionally tagged LP or GP
- Distributions (available cash): POSITIVE or zero, never tagged

Times are offsets in years from the first capital event (t=0).
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd
from pydantic import Field, field_validator, model_validator

from .errors import CashFlowError, InsufficientCashFlows
from .primitives import Model, NonNegativeFloat, PoolEnum

FlowTuple = Union[Tuple[float, float], Tuple[float, float, Optional[str]]]


class CashFlowEvent(Model):
    """
    A single capital call or distribution on the schedule.

    Untagged contributions are split between pools by the configuration's
    capital structure; tagged contributions belong to one pool only.
    """

    time: NonNegativeFloat = Field(..., description="Offset in years from t=0")
    amount: float = Field(
        ..., description="Negative = contribution, positive or zero = distributable cash"
    )
    pool: Optional[PoolEnum] = Field(
        default=None, description="LP or GP for tagged contributions"
    )
    label: Optional[str] = Field(default=None, description="Free-form description")

    @model_validator(mode="after")
    def _check_pool_tag(self) -> "CashFlowEvent":
        if self.pool is not None and self.amount >= 0:
            raise CashFlowError(
                f"Only contributions may be tagged with a pool; got {self.amount:,.2f} "
                f"tagged {self.pool.value} at t={self.time:g}"
            )
        return self

    @property
    def is_contribution(self) -> bool:
        """Check if this event is a capital call."""
        return self.amount < 0

    @property
    def is_distribution(self) -> bool:
        """Check if this event carries distributable cash."""
        return self.amount >= 0

    def __str__(self) -> str:
        kind = "contribution" if self.is_contribution else "distribution"
        tag = f" ({self.pool.value})" if self.pool else ""
        return f"t={self.time:g}y {kind}{tag}: {self.amount:,.2f}"


def _event_order(event: CashFlowEvent) -> Tuple[float, int]:
    # Capital called at a date is in place before cash is distributed on it
    return (event.time, 0 if event.is_contribution else 1)


class CashFlowSchedule(Model):
    """
    Ordered timeline of contributions and distributions for one engine run.

    Events are stably sorted by time with contributions ahead of
    distributions at equal times. A schedule must hold at least one
    contribution and one distribution event.

    Example:
        ```python
        schedule = CashFlowSchedule.from_flows(
            [(0.0, -900.0, "LP"), (0.0, -100.0, "GP"), (5.0, 1_400.0)]
        )
        ```
    """

    events: List[CashFlowEvent] = Field(..., description="Capital calls and distributions")
    construction_end: NonNegativeFloat = Field(
        default=0.0,
        description="Offset in years at which construction ends; earlier periods are construction periods",
    )
    total_project_cost: NonNegativeFloat = Field(
        default=0.0, description="Fee basis for the acquisition fee"
    )
    hard_costs: NonNegativeFloat = Field(
        default=0.0, description="Fee basis for the construction management fee"
    )

    @field_validator("events")
    @classmethod
    def _order_and_check_events(cls, v: List[CashFlowEvent]) -> List[CashFlowEvent]:
        ordered = sorted(v, key=_event_order)
        if not any(event.is_contribution for event in ordered):
            raise InsufficientCashFlows("Schedule has no contribution (negative) events")
        if not any(event.is_distribution for event in ordered):
            raise InsufficientCashFlows("Schedule has no distribution events")
        return ordered

    @classmethod
    def from_flows(cls, flows: Iterable[FlowTuple], **kwargs) -> "CashFlowSchedule":
        """
        Build a schedule from `(time, amount)` or `(time, amount, pool)` tuples.

        Args:
            flows: Tuples with time in years, signed amount and optional "LP"/"GP" tag
            **kwargs: Other schedule fields (construction_end, fee basis)
        """
        events = []
        for flow in flows:
            time, amount = flow[0], flow[1]
            pool = flow[2] if len(flow) > 2 else None
            events.append(CashFlowEvent(time=time, amount=amount, pool=pool))
        return cls(events=events, **kwargs)

    @classmethod
    def from_series(
        cls, series: pd.Series, pool: Optional[str] = None, **kwargs
    ) -> "CashFlowSchedule":
        """
        Build a schedule from a monthly PeriodIndex Series of levered cash flows.

        The first period is t=0 and every following month adds 1/12 year.
        Zero-valued months are skipped.

        Args:
            series: Levered equity cash flows with a monthly PeriodIndex
            pool: Optional pool tag applied to every negative flow
            **kwargs: Other schedule fields (construction_end, fee basis)

        Example:
            ```python
            flows = pd.Series(
                [-1_000_000, 0, 0, 1_250_000],
                index=pd.period_range("2024-01", periods=4, freq="M"),
            )
            schedule = CashFlowSchedule.from_series(flows)
            ```
        """
        validate_monthly_period_index(series, "series")
        if series.empty:
            raise InsufficientCashFlows("Cash flow series is empty")

        first_period = series.index[0]
        events = []
        for period, amount in series.items():
            if amount == 0:
                continue
            months = (period - first_period).n
            events.append(
                CashFlowEvent(
                    time=months / 12.0,
                    amount=float(amount),
                    pool=pool if amount < 0 else None,
                    label=str(period),
                )
            )
        return cls(events=events, **kwargs)

    @property
    def contributions(self) -> List[CashFlowEvent]:
        """All capital call events in order."""
        return [event for event in self.events if event.is_contribution]

    @property
    def distributions(self) -> List[CashFlowEvent]:
        """All distribution events in order."""
        return [event for event in self.events if event.is_distribution]

    @property
    def exit_time(self) -> float:
        """Time of the final distribution event."""
        return self.distributions[-1].time

    @property
    def total_contributions(self) -> float:
        """Total capital called (positive number)."""
        return -sum(event.amount for event in self.contributions)

    @property
    def total_distributions(self) -> float:
        """Total gross distributable cash."""
        return sum(event.amount for event in self.distributions)

    def scale_distributions(self, factor: float) -> "CashFlowSchedule":
        """
        Return a new schedule with every distribution multiplied by `factor`.

        Contributions, timing and fee basis are unchanged.
        """
        if factor < 0:
            raise CashFlowError(f"Distribution scale factor must be >= 0, got {factor}")
        scaled = [
            event.model_copy(update={"amount": event.amount * factor})
            if event.is_distribution
            else event
            for event in self.events
        ]
        return self.model_copy(update={"events": scaled})

    def to_frame(self) -> pd.DataFrame:
        """Schedule as a DataFrame with time, amount, pool and label columns."""
        return pd.DataFrame(
            [
                {
                    "time": event.time,
                    "amount": event.amount,
                    "pool": event.pool.value if event.pool else None,
                    "label": event.label,
                }
                for event in self.events
            ],
            columns=["time", "amount", "pool", "label"],
        )


def validate_monthly_period_index(series: pd.Series, field_name: str = "series") -> pd.Series:
    """
    Validate that a pandas Series has a monthly PeriodIndex.

    Args:
        series: The pandas Series to validate
        field_name: Name of the field for error messages

    Returns:
        The validated series (unchanged)

    Raises:
        CashFlowError: If the series is not a Series or doesn't have a monthly PeriodIndex
    """
    if not isinstance(series, pd.Series):
        raise CashFlowError(
            f"{field_name} must be a pandas Series, got {type(series).__name__}"
        )

    if not isinstance(series.index, pd.PeriodIndex):
        raise CashFlowError(
            f"{field_name} must have a PeriodIndex, got {type(series.index).__name__}. "
            "Consider using series.index = series.index.to_period('M')"
        )

    if series.index.freqstr != "M":
        raise CashFlowError(
            f"{field_name} must have monthly frequency ('M'), got '{series.index.freqstr}'. "
            "Please resample or convert your data to monthly frequency first."
        )

    return series


def sequence_to_schedule(
    amounts: Sequence[float], period_years: float = 1.0, **kwargs
) -> CashFlowSchedule:
    """Build a schedule from evenly spaced amounts (index i is at i * period_years)."""
    return CashFlowSchedule.from_flows(
        [(index * period_years, amount) for index, amount in enumerate(amounts) if amount != 0],
        **kwargs,
    )


__all__ = [
    "CashFlowEvent",
    "CashFlowSchedule",
    "sequence_to_schedule",
    "validate_monthly_period_index",
]
