# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Scenario runner: one configuration, several independent cash-flow schedules.

Each scenario runs its own engine pass against the shared, immutable
configuration. A scenario that fails with a WaterfallError (for example an
IRR that cannot be solved) records the failure in its outcome; the other
scenarios are unaffected. Scenarios can run in any order, sequentially or on
a thread pool.

Example:
    ```python
    runner = ScenarioRunner(configuration)
    outcomes = runner.run_adjusted(base_schedule)  # downside / base / upside
    summary = summarize_scenarios(outcomes)
    print(summary["lp_irr_range"])
    ```
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import pandas as pd

from ..core.errors import WaterfallError
from ..core.primitives import EngineSettings, Model
from ..core.schedule import CashFlowSchedule
from .configuration import WaterfallConfiguration
from .engine import WaterfallEngine
from .results import WaterfallResult

logger = logging.getLogger(__name__)

# Distribution scaling per scenario (fractional change to every distribution)
DEFAULT_SCENARIO_ADJUSTMENTS: Dict[str, float] = {
    "downside": -0.20,
    "base": 0.0,
    "upside": 0.20,
}


class ScenarioFailure(Model):
    """Failure marker carried in place of a result."""

    error_type: str
    message: str


class ScenarioOutcome(Model):
    """Result of one scenario: either a WaterfallResult or a ScenarioFailure."""

    name: str
    result: Optional[WaterfallResult] = None
    failure: Optional[ScenarioFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class ScenarioRunner:
    """
    Runs the waterfall engine for several named schedules.

    Args:
        configuration: Configuration shared by every scenario
        settings: Engine settings shared by every scenario
    """

    configuration: WaterfallConfiguration
    settings: EngineSettings = field(default_factory=EngineSettings)

    def run(
        self,
        schedules: Mapping[str, CashFlowSchedule],
        max_workers: Optional[int] = None,
    ) -> Dict[str, ScenarioOutcome]:
        """
        Run every schedule and return outcomes keyed by scenario name.

        Args:
            schedules: Scenario name to schedule
            max_workers: Run on a thread pool of this size; sequential when None

        Returns:
            Outcomes in the order of `schedules`
        """
        engine = WaterfallEngine(self.configuration, self.settings)

        if max_workers is None:
            return {name: _run_one(engine, name, schedule) for name, schedule in schedules.items()}

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {
                name: pool.submit(_run_one, engine, name, schedule)
                for name, schedule in schedules.items()
            }
            return {name: future.result() for name, future in futures.items()}

    def run_adjusted(
        self,
        base_schedule: CashFlowSchedule,
        adjustments: Optional[Mapping[str, float]] = None,
        max_workers: Optional[int] = None,
    ) -> Dict[str, ScenarioOutcome]:
        """
        Run scenarios derived from one schedule by scaling its distributions.

        Args:
            base_schedule: Base-case schedule
            adjustments: Scenario name to fractional change in distributions
                (defaults to -20% / 0% / +20%)
        """
        adjustments = DEFAULT_SCENARIO_ADJUSTMENTS if adjustments is None else adjustments
        schedules = {
            name: base_schedule.scale_distributions(1.0 + change)
            for name, change in adjustments.items()
        }
        return self.run(schedules, max_workers=max_workers)


def _run_one(engine: WaterfallEngine, name: str, schedule: CashFlowSchedule) -> ScenarioOutcome:
    try:
        result = engine.run(schedule)
    except WaterfallError as e:
        logger.warning(f"Scenario '{name}' failed: {type(e).__name__}: {e}")
        return ScenarioOutcome(
            name=name,
            failure=ScenarioFailure(error_type=type(e).__name__, message=str(e)),
        )
    return ScenarioOutcome(name=name, result=result)


def summarize_scenarios(outcomes: Mapping[str, ScenarioOutcome]) -> Dict[str, Dict[str, Optional[float]]]:
    """
    Low / base / high ranges of LP IRR, LP multiple and GP promote.

    Low and high are taken over the successful scenarios; `base` is the value
    from the scenario named "base" (None if it is missing or failed).
    """
    successful = [outcome for outcome in outcomes.values() if outcome.ok]
    base = outcomes.get("base")
    base_result = base.result if base is not None and base.ok else None

    def metric_range(getter) -> Dict[str, Optional[float]]:
        values = [v for v in (getter(outcome.result) for outcome in successful) if v is not None]
        return {
            "low": min(values) if values else None,
            "base": getter(base_result) if base_result is not None else None,
            "high": max(values) if values else None,
        }

    return {
        "lp_irr_range": metric_range(lambda r: r.final_results.lp.irr),
        "lp_multiple_range": metric_range(lambda r: r.final_results.lp.equity_multiple),
        "gp_promote_range": metric_range(lambda r: r.final_results.gp.promote),
    }


def scenario_frame(outcomes: Mapping[str, ScenarioOutcome]) -> pd.DataFrame:
    """Key metrics per scenario, indexed by scenario name."""
    rows = []
    for name, outcome in outcomes.items():
        if outcome.ok:
            final = outcome.result.final_results
            rows.append({
                "scenario": name,
                "lp_irr": final.lp.irr,
                "lp_equity_multiple": final.lp.equity_multiple,
                "gp_irr": final.gp.irr,
                "gp_equity_multiple": final.gp.equity_multiple,
                "gp_promote": final.gp.promote,
                "error": None,
            })
        else:
            rows.append({
                "scenario": name,
                "lp_irr": None,
                "lp_equity_multiple": None,
                "gp_irr": None,
                "gp_equity_multiple": None,
                "gp_promote": None,
                "error": f"{outcome.failure.error_type}: {outcome.failure.message}",
            })
    return pd.DataFrame(rows).set_index("scenario")


__all__ = [
    "DEFAULT_SCENARIO_ADJUSTMENTS",
    "ScenarioFailure",
    "ScenarioOutcome",
    "ScenarioRunner",
    "scenario_frame",
    "summarize_scenarios",
]
