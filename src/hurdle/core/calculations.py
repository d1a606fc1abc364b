# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Financial calculation functions.

Contains the internal rate of return solver and the other core financial
metrics. These functions are pure (math-only) and independent of the waterfall;
other modules delegate to them to keep a single source of truth for return
calculations.

Cash flows are ordered `(time_offset_years, signed_amount)` pairs: negative
amounts are contributions, positive amounts are distributions.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import InsufficientCashFlows, NoConvergence, UndefinedIRR
from .primitives.settings import EngineSettings

logger = logging.getLogger(__name__)

CashFlowPairs = Sequence[Tuple[float, float]]

_DEFAULT_SETTINGS = EngineSettings()


def _as_arrays(cash_flows: CashFlowPairs) -> Tuple[np.ndarray, np.ndarray]:
    times = np.array([float(t) for t, _ in cash_flows], dtype=float)
    amounts = np.array([float(a) for _, a in cash_flows], dtype=float)
    return times, amounts


def _npv(rate: float, times: np.ndarray, amounts: np.ndarray) -> float:
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(amounts / np.power(1.0 + rate, times)))


def _npv_derivative(rate: float, times: np.ndarray, amounts: np.ndarray) -> float:
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(-times * amounts / np.power(1.0 + rate, times + 1.0)))


def npv(rate: float, cash_flows: CashFlowPairs) -> float:
    """
    Net present value of timed cash flows at an annual rate.

    Args:
        rate: Annual discount rate as decimal (e.g., 0.10 for 10%)
        cash_flows: `(time_offset_years, amount)` pairs

    Returns:
        Sum of `amount / (1 + rate) ** time`
    """
    times, amounts = _as_arrays(cash_flows)
    return _npv(rate, times, amounts)


def npv_derivative(rate: float, cash_flows: CashFlowPairs) -> float:
    """Derivative of NPV with respect to rate (for Newton-Raphson)."""
    times, amounts = _as_arrays(cash_flows)
    return _npv_derivative(rate, times, amounts)


def solve_irr(
    cash_flows: CashFlowPairs, settings: Optional[EngineSettings] = None
) -> float:
    """
    Solve for the internal rate of return of timed cash flows.

    Newton-Raphson starting from `settings.irr_initial_guess`, safeguarded by a
    sign-change bracket over `[irr_lower_bound, irr_upper_bound]`: any Newton
    step that leaves the bracket (or a vanishing derivative) is replaced by a
    bisection step. The loop is capped at `settings.irr_max_iterations` and
    uses no randomness, so identical inputs always give identical rates.

    Args:
        cash_flows: `(time_offset_years, amount)` pairs, at least one negative
            and one positive amount
        settings: Tolerances and bounds (defaults to EngineSettings())

    Returns:
        Annual IRR as decimal (e.g., 0.15 for 15%)

    Raises:
        InsufficientCashFlows: Fewer than two flows, or all flows share one sign
        UndefinedIRR: NPV does not change sign inside the search domain
        NoConvergence: Iteration cap reached before the NPV tolerance was met

    Example:
        ```python
        # 1,000 in at t=0, 1,500 back at t=5 -> (1.5) ** (1/5) - 1
        rate = solve_irr([(0.0, -1_000.0), (5.0, 1_500.0)])
        print(f"IRR: {rate:.4%}")  # IRR: 8.4472%
        ```
    """
    settings = settings or _DEFAULT_SETTINGS

    if len(cash_flows) < 2:
        raise InsufficientCashFlows(
            f"At least 2 cash flows required, got {len(cash_flows)}"
        )

    times, amounts = _as_arrays(cash_flows)
    if not (amounts < 0).any() or not (amounts > 0).any():
        raise InsufficientCashFlows(
            "Cash flows must contain both negative and positive values"
        )

    # NPV tolerance scales with the gross size of the flows
    tolerance = settings.irr_tolerance * max(1.0, float(np.abs(amounts).sum()))
    lower, upper = settings.irr_lower_bound, settings.irr_upper_bound
    f_lower = _npv(lower, times, amounts)
    f_upper = _npv(upper, times, amounts)

    if abs(f_lower) <= tolerance:
        return lower
    if abs(f_upper) <= tolerance:
        return upper
    if (
        not math.isfinite(f_lower)
        or not math.isfinite(f_upper)
        or np.sign(f_lower) == np.sign(f_upper)
    ):
        # More than one sign change (e.g. a late repayment); bracket the root
        # nearest the initial guess
        bracket = _scan_bracket(times, amounts, lower, upper, settings.irr_initial_guess)
        if bracket is None:
            raise UndefinedIRR(
                f"NPV has no sign change between {lower:.0%} and {upper:.0%}"
            )
        lower, f_lower, upper, f_upper = bracket

    rate = settings.irr_initial_guess
    if not lower < rate < upper:
        rate = 0.5 * (lower + upper)
    for iteration in range(1, settings.irr_max_iterations + 1):
        value = _npv(rate, times, amounts)

        if abs(value) <= tolerance:
            logger.debug(f"IRR converged to {rate:.10f} after {iteration} iterations")
            return _polish(rate, value, lower, upper, times, amounts)

        # Shrink the bracket around the root
        if np.sign(value) == np.sign(f_lower):
            lower, f_lower = rate, value
        else:
            upper, f_upper = rate, value

        # Bracket collapsed to machine precision; the root is located
        if upper - lower <= 4.0 * np.finfo(float).eps * max(1.0, abs(rate)):
            return rate

        slope = _npv_derivative(rate, times, amounts)
        candidate = rate - value / slope if slope != 0.0 and math.isfinite(slope) else math.nan
        if not lower < candidate < upper:
            candidate = 0.5 * (lower + upper)

        if candidate == rate:
            return rate
        rate = candidate

    raise NoConvergence(
        f"IRR did not converge within {settings.irr_max_iterations} iterations "
        f"(last rate {rate:.6f})"
    )


_SCAN_POINTS = 400


def _scan_bracket(
    times: np.ndarray,
    amounts: np.ndarray,
    lower: float,
    upper: float,
    guess: float,
) -> Optional[Tuple[float, float, float, float]]:
    """Sign-change interval of NPV on a fixed grid, closest to `guess`."""
    # Dense below 100%, where realistic rates live
    pivot = min(max(1.0, lower), upper)
    grid = np.unique(
        np.concatenate(
            [
                np.linspace(lower, pivot, _SCAN_POINTS),
                np.linspace(pivot, upper, _SCAN_POINTS // 4),
            ]
        )
    )
    values = np.array([_npv(rate, times, amounts) for rate in grid])

    best = None
    for i in range(len(grid) - 1):
        a, b = values[i], values[i + 1]
        if not (math.isfinite(a) and math.isfinite(b)) or np.sign(a) == np.sign(b):
            continue
        distance = 0.0 if grid[i] <= guess <= grid[i + 1] else min(
            abs(grid[i] - guess), abs(grid[i + 1] - guess)
        )
        if best is None or distance < best[0]:
            best = (distance, i)

    if best is None:
        return None
    i = best[1]
    return float(grid[i]), float(values[i]), float(grid[i + 1]), float(values[i + 1])


def _polish(
    rate: float,
    value: float,
    lower: float,
    upper: float,
    times: np.ndarray,
    amounts: np.ndarray,
) -> float:
    # One extra Newton step tightens the accepted rate well below tolerance.
    slope = _npv_derivative(rate, times, amounts)
    if slope == 0.0 or not math.isfinite(slope):
        return rate
    refined = rate - value / slope
    if not lower <= refined <= upper:
        return rate
    if abs(_npv(refined, times, amounts)) <= abs(value):
        return refined
    return rate


def equity_multiple(total_contributed: float, total_distributed: float) -> Optional[float]:
    """Distributions over contributions, or None when nothing was contributed."""
    if total_contributed <= 0:
        return None
    return total_distributed / total_contributed


def payback_time(cash_flows: CashFlowPairs) -> Optional[float]:
    """
    Earliest time at which cumulative flows recover all contributions.

    Returns:
        Time offset in years, or None if contributions are never recovered
    """
    aggregated = {}
    for time, amount in cash_flows:
        aggregated[time] = aggregated.get(time, 0.0) + amount

    cumulative = 0.0
    invested = False
    for time in sorted(aggregated):
        cumulative += aggregated[time]
        if cumulative < 0:
            invested = True
        elif invested:
            return time
    return None


class FinancialCalculations:
    """
    Pure mathematical functions for financial calculations.

    Static methods for core financial metrics, independent of waterfall
    structure or business logic.
    """

    @staticmethod
    def calculate_irr(
        cash_flows: CashFlowPairs, settings: Optional[EngineSettings] = None
    ) -> Optional[float]:
        """
        Calculate Internal Rate of Return, or None when it is not defined.

        Edge Cases Handled:
            - Empty or single flow → None
            - All negative flows → None (nothing returned yet)
            - All positive flows → None (no investment to measure against)

        Solver failures (UndefinedIRR, NoConvergence) propagate to the caller.

        Example:
            ```python
            irr = FinancialCalculations.calculate_irr([(0.0, -100.0), (1.0, 110.0)])
            print(f"IRR: {irr:.2%}")  # IRR: 10.00%
            ```
        """
        try:
            return solve_irr(cash_flows, settings)
        except InsufficientCashFlows:
            return None

    @staticmethod
    def calculate_equity_multiple(cash_flows: CashFlowPairs) -> Optional[float]:
        """
        Calculate equity multiple (total returns / total investment).

        Returns:
            Multiple as float (e.g., 2.5 for 2.5x return) or None if nothing was invested
        """
        invested = -sum(amount for _, amount in cash_flows if amount < 0)
        returned = sum(amount for _, amount in cash_flows if amount > 0)
        return equity_multiple(invested, returned)

    @staticmethod
    def calculate_npv(cash_flows: CashFlowPairs, discount_rate: float) -> float:
        """Calculate Net Present Value at an annual discount rate."""
        return npv(discount_rate, cash_flows)

    @staticmethod
    def calculate_payback_time(cash_flows: CashFlowPairs) -> Optional[float]:
        """Years until cumulative flows turn non-negative (None if never)."""
        return payback_time(cash_flows)


__all__ = [
    "CashFlowPairs",
    "FinancialCalculations",
    "equity_multiple",
    "npv",
    "npv_derivative",
    "payback_time",
    "solve_irr",
]
