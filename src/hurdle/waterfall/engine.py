# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Waterfall Engine - distribution orchestrator.

Processes a cash-flow schedule event by event. Before each event both pools'
preferred return accrues up to the event time. Contributions add capital;
each distribution runs a strict, ordered state machine in which every step
executes and is recorded, even at zero:

    ManagementFees -> ReturnOfCapital -> PreferredReturn(LP) ->
    PreferredReturn(GP) -> CatchUp -> PromoteTiers -> ClawbackTrueUp

Management fees come out of gross cash first; the remaining distributable
cash is consumed step by step and the final tier absorbs whatever is left, so
each event allocates exactly its distributable cash. Clawback true-ups move
cash from GP to LP without consuming distributable cash. The justified promote
at a true-up comes from replaying the realized history to date with any later
capital calls funded from cash that would otherwise have paid promote.

The engine is a pure function of (configuration, schedule, settings): it
keeps its running state in a per-run context and returns an immutable
`WaterfallResult`.

Example:
    ```python
    engine = WaterfallEngine(configuration)
    result = engine.run(schedule)
    print(f"LP IRR: {result.final_results.lp.irr:.2%}")
    ```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..core.calculations import FinancialCalculations, equity_multiple, payback_time
from ..core.errors import IRRError
from ..core.primitives import EngineSettings, PoolEnum, WaterfallStepEnum
from ..core.schedule import CashFlowEvent, CashFlowSchedule
from .accrual import PreferredReturnLedger, allocate_return_of_capital
from .catch_up import CatchUpAllocator
from .clawback import ClawbackCalculator, ClawbackResult, ClawbackTrueUp, true_up_indices
from .configuration import WaterfallConfiguration
from .fees import FeeLedger, FeeSummary, ManagementFeeCalculator
from .results import (
    EventAllocation,
    FinalResults,
    PoolMetrics,
    StepAmounts,
    TierResult,
    WaterfallResult,
)
from .tiers import TierCascadeEvaluator, TierState

logger = logging.getLogger(__name__)


@dataclass
class WaterfallContext:
    """
    Mutable state of one engine run.

    Created fresh for every run (and for every clawback replay) and never
    shared, so concurrent runs need no locking.
    """

    lp_ledger: PreferredReturnLedger
    gp_ledger: PreferredReturnLedger
    tier_states: Tuple[TierState, ...]
    fee_ledger: FeeLedger = field(default_factory=FeeLedger)

    lp_flows: List[Tuple[float, float]] = field(default_factory=list)
    gp_flows: List[Tuple[float, float]] = field(default_factory=list)
    events: List[EventAllocation] = field(default_factory=list)
    true_ups: List[ClawbackTrueUp] = field(default_factory=list)

    # Contributions as called and distributions net of fees, in run order
    history: List[CashFlowEvent] = field(default_factory=list)

    # Clawback replay only: capital still to be called, and cash held to fund it
    uncalled_capital: float = 0.0
    call_reserve: float = 0.0

    # Cumulative step totals
    step_totals: Dict[WaterfallStepEnum, StepAmounts] = field(default_factory=dict)
    gp_catch_up_paid: float = 0.0
    promote_paid: float = 0.0
    clawback_returned: float = 0.0
    distribution_count: int = 0

    def add_step(self, step: WaterfallStepEnum, lp: float, gp: float) -> None:
        current = self.step_totals.get(step, StepAmounts())
        self.step_totals[step] = StepAmounts(lp=current.lp + lp, gp=current.gp + gp)

    def step_total(self, step: WaterfallStepEnum) -> StepAmounts:
        return self.step_totals.get(step, StepAmounts())


@dataclass
class WaterfallEngine:
    """
    Runs a validated WaterfallConfiguration against cash-flow schedules.

    The engine holds only immutable inputs; `run()` can be called any number
    of times, from any number of threads.
    """

    configuration: WaterfallConfiguration
    settings: EngineSettings = field(default_factory=EngineSettings)

    def __post_init__(self):
        config = self.configuration
        self._catch_up = CatchUpAllocator(
            config.preferred_return, amount_tolerance=self.settings.amount_tolerance
        )
        self._tiers = TierCascadeEvaluator(
            tiers=config.promote_tiers,
            gp_fraction=config.capital_structure.gp_fraction,
            settings=self.settings,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def run(self, schedule: CashFlowSchedule) -> WaterfallResult:
        """
        Distribute a schedule's cash through the waterfall.

        Args:
            schedule: Validated cash-flow schedule

        Returns:
            WaterfallResult with final metrics, tier totals and per-event audit trail

        Raises:
            NoConvergence: If a pool's IRR cannot be solved
            UndefinedIRR: If a pool's IRR lies outside the search domain
        """
        config = self.configuration
        logger.debug(
            f"Running {config.structure_type.value} waterfall over {len(schedule.events)} "
            f"events ({len(config.promote_tiers)} tiers, clawback "
            f"{'on' if config.clawback.enabled else 'off'})"
        )

        fee_calculator = ManagementFeeCalculator(
            fees=config.management_fees,
            total_project_cost=schedule.total_project_cost,
            hard_costs=schedule.hard_costs,
        )
        clawback: Optional[ClawbackCalculator] = None
        if config.clawback.enabled:
            clawback = ClawbackCalculator(
                terms=config.clawback,
                justified_promote=lambda history: self._justified_promote(
                    history, schedule.construction_end
                ),
            )

        context = self._execute(
            schedule.events,
            construction_end=schedule.construction_end,
            fee_calculator=fee_calculator,
            clawback=clawback,
        )
        return self._build_result(context, clawback is not None)

    # -------------------------------------------------------------------------
    # Event loop
    # -------------------------------------------------------------------------

    def _execute(
        self,
        events: Sequence[CashFlowEvent],
        construction_end: float,
        fee_calculator: Optional[ManagementFeeCalculator] = None,
        clawback: Optional[ClawbackCalculator] = None,
        fund_later_calls: bool = False,
    ) -> WaterfallContext:
        terms = self.configuration.preferred_return
        context = WaterfallContext(
            lp_ledger=PreferredReturnLedger.open(PoolEnum.LP, terms.rate_for(PoolEnum.LP)),
            gp_ledger=PreferredReturnLedger.open(PoolEnum.GP, terms.rate_for(PoolEnum.GP)),
            tier_states=self._tiers.initial_states(),
        )
        if fund_later_calls:
            context.uncalled_capital = sum(-e.amount for e in events if e.is_contribution)

        distribution_times = [event.time for event in events if event.is_distribution]
        exit_index = len(distribution_times) - 1
        true_ups: Set[int] = set()
        if clawback is not None:
            true_ups = set(
                true_up_indices(distribution_times, self.configuration.clawback.true_up_frequency)
            )

        for event in events:
            context.lp_ledger = context.lp_ledger.accrue(event.time, terms, construction_end)
            context.gp_ledger = context.gp_ledger.accrue(event.time, terms, construction_end)
            if fee_calculator is not None:
                contributed = (
                    context.lp_ledger.contributed_capital + context.gp_ledger.contributed_capital
                )
                context.fee_ledger = fee_calculator.accrue(
                    context.fee_ledger, event.time, contributed
                )

            if event.is_contribution:
                self._contribute(context, event)
                continue

            index = context.distribution_count
            self._distribute(
                context,
                event,
                fee_calculator=fee_calculator,
                is_first=index == 0,
                is_exit=index == exit_index,
                clawback=clawback if index in true_ups else None,
            )
            context.distribution_count += 1

        return context

    def _contribute(self, context: WaterfallContext, event: CashFlowEvent) -> None:
        context.history.append(event)
        called = -event.amount
        context.uncalled_capital = max(0.0, context.uncalled_capital - called)
        # Cash held back in a clawback replay funds the call before new money does
        funded = min(called, context.call_reserve)
        context.call_reserve -= funded
        amount = called - funded

        if event.pool == PoolEnum.LP:
            lp_amount, gp_amount = amount, 0.0
        elif event.pool == PoolEnum.GP:
            lp_amount, gp_amount = 0.0, amount
        else:
            capital = self.configuration.capital_structure
            lp_amount = amount * capital.lp_fraction
            gp_amount = amount - lp_amount

        if lp_amount > 0:
            context.lp_ledger = context.lp_ledger.contribute(lp_amount)
            context.lp_flows.append((event.time, -lp_amount))
        if gp_amount > 0:
            context.gp_ledger = context.gp_ledger.contribute(gp_amount)
            context.gp_flows.append((event.time, -gp_amount))

    def _distribute(
        self,
        context: WaterfallContext,
        event: CashFlowEvent,
        fee_calculator: Optional[ManagementFeeCalculator],
        is_first: bool,
        is_exit: bool,
        clawback: Optional[ClawbackCalculator],
    ) -> None:
        time = event.time
        gross = event.amount

        # Management fees
        fees_paid = 0.0
        if fee_calculator is not None:
            context.fee_ledger = fee_calculator.charge_distribution(
                context.fee_ledger, gross, is_first, is_exit
            )
            context.fee_ledger, fees_paid, _ = fee_calculator.settle(context.fee_ledger, gross)
        distributable = gross - fees_paid
        remaining = distributable

        # Return of capital
        context.lp_ledger, context.gp_ledger, roc_lp, roc_gp = allocate_return_of_capital(
            context.lp_ledger, context.gp_ledger, remaining
        )
        remaining -= roc_lp + roc_gp

        # Preferred return, LP then GP
        context.lp_ledger, pref_lp = context.lp_ledger.pay(remaining)
        remaining -= pref_lp
        context.gp_ledger, pref_gp = context.gp_ledger.pay(remaining)
        remaining -= pref_gp

        # Clawback replay: no promote until capital called through the true-up is covered
        held = min(remaining, max(0.0, context.uncalled_capital - context.call_reserve))
        if held > 0:
            context.call_reserve += held
            remaining -= held

        # Catch-up
        catch_up = self._catch_up.allocate(remaining, context.lp_ledger, context.gp_catch_up_paid)
        remaining -= catch_up.consumed
        context.gp_catch_up_paid += catch_up.gp

        # Promote tiers, tested on LP flows including this event's earlier steps
        lp_before_tiers = roc_lp + pref_lp + catch_up.lp
        hurdle_flows = list(context.lp_flows)
        if lp_before_tiers > 0:
            hurdle_flows.append((time, lp_before_tiers))
        allocations, context.tier_states = self._tiers.evaluate(
            remaining, time, hurdle_flows, context.tier_states
        )

        tier_lp = sum(allocation.lp for allocation in allocations)
        tier_gp = sum(allocation.gp for allocation in allocations)
        context.promote_paid += catch_up.gp + sum(a.gp_promote for a in allocations)
        context.history.append(CashFlowEvent(time=time, amount=max(0.0, distributable)))

        context.add_step(WaterfallStepEnum.RETURN_OF_CAPITAL, roc_lp, roc_gp)
        context.add_step(WaterfallStepEnum.PREFERRED_RETURN_LP, pref_lp, 0.0)
        context.add_step(WaterfallStepEnum.PREFERRED_RETURN_GP, 0.0, pref_gp)
        context.add_step(WaterfallStepEnum.CATCH_UP, catch_up.lp, catch_up.gp)
        context.add_step(WaterfallStepEnum.PROMOTE_TIER, tier_lp, tier_gp)

        # Clawback true-up
        clawback_amount: Optional[float] = None
        if clawback is not None:
            true_up = clawback.true_up(
                time,
                promote_paid=context.promote_paid,
                previously_returned=context.clawback_returned,
                history=context.history,
            )
            context.true_ups.append(true_up)
            context.clawback_returned += true_up.amount
            clawback_amount = true_up.amount

        lp_total = lp_before_tiers + tier_lp + (clawback_amount or 0.0)
        gp_total = roc_gp + pref_gp + catch_up.gp + tier_gp - (clawback_amount or 0.0)
        if lp_total != 0:
            context.lp_flows.append((time, lp_total))
        if gp_total != 0:
            context.gp_flows.append((time, gp_total))

        context.events.append(
            EventAllocation(
                time=time,
                gross_cash=gross,
                fees_paid=fees_paid,
                distributable=distributable,
                return_of_capital=StepAmounts(lp=roc_lp, gp=roc_gp),
                preferred_return=StepAmounts(lp=pref_lp, gp=pref_gp),
                catch_up=StepAmounts(lp=catch_up.lp, gp=catch_up.gp),
                tiers=allocations,
                clawback=clawback_amount,
                lp_ledger=context.lp_ledger,
                gp_ledger=context.gp_ledger,
            )
        )
        logger.debug(
            f"t={time:g}: distributable {distributable:,.2f} -> "
            f"ROC {roc_lp + roc_gp:,.2f}, pref {pref_lp + pref_gp:,.2f}, "
            f"catch-up {catch_up.consumed:,.2f}, tiers {tier_lp + tier_gp:,.2f}"
        )

    def _justified_promote(
        self, history: Sequence[CashFlowEvent], construction_end: float
    ) -> float:
        """
        Promote supported by the realized history up to a true-up.

        Every contribution and net distribution keeps its actual time. Cash
        that would have paid promote before a later capital call is instead
        held to fund that call, so promote is only justified once all capital
        called through the true-up has been returned with its preferred return.
        A history with no capital called after a distribution replays exactly
        as it ran.
        """
        replay = self._execute(
            list(history), construction_end=construction_end, fund_later_calls=True
        )
        return replay.promote_paid

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def _build_result(self, context: WaterfallContext, clawback_enabled: bool) -> WaterfallResult:
        config = self.configuration
        roc = context.step_total(WaterfallStepEnum.RETURN_OF_CAPITAL)
        pref_lp = context.step_total(WaterfallStepEnum.PREFERRED_RETURN_LP)
        pref_gp = context.step_total(WaterfallStepEnum.PREFERRED_RETURN_GP)
        catch_up = context.step_total(WaterfallStepEnum.CATCH_UP)
        tiers = context.step_total(WaterfallStepEnum.PROMOTE_TIER)

        lp_contributed = context.lp_ledger.contributed_capital
        gp_contributed = context.gp_ledger.contributed_capital

        lp_metrics = self._pool_metrics(
            context.lp_flows,
            contributed=lp_contributed,
            return_of_capital=roc.lp,
            preferred_return=pref_lp.lp,
            catch_up=catch_up.lp,
            tier_distributions=tiers.lp,
            promote=0.0,
            clawback=context.clawback_returned,
        )
        gp_metrics = self._pool_metrics(
            context.gp_flows,
            contributed=gp_contributed,
            return_of_capital=roc.gp,
            preferred_return=pref_gp.gp,
            catch_up=catch_up.gp,
            tier_distributions=tiers.gp,
            promote=context.promote_paid,
            clawback=-context.clawback_returned,
        )
        project_metrics = self._pool_metrics(
            sorted(context.lp_flows + context.gp_flows, key=lambda flow: flow[0]),
            contributed=lp_contributed + gp_contributed,
            return_of_capital=roc.lp + roc.gp,
            preferred_return=pref_lp.lp + pref_gp.gp,
            catch_up=catch_up.lp + catch_up.gp,
            tier_distributions=tiers.lp + tiers.gp,
            promote=context.promote_paid,
            clawback=0.0,
        )

        # (name, step, tier number, lp, gp, promote) in cascade order
        steps = [
            (WaterfallStepEnum.RETURN_OF_CAPITAL.value, WaterfallStepEnum.RETURN_OF_CAPITAL,
             None, roc.lp, roc.gp, 0.0),
            (WaterfallStepEnum.PREFERRED_RETURN_LP.value, WaterfallStepEnum.PREFERRED_RETURN_LP,
             None, pref_lp.lp, 0.0, 0.0),
            (WaterfallStepEnum.PREFERRED_RETURN_GP.value, WaterfallStepEnum.PREFERRED_RETURN_GP,
             None, 0.0, pref_gp.gp, 0.0),
            (WaterfallStepEnum.CATCH_UP.value, WaterfallStepEnum.CATCH_UP,
             None, catch_up.lp, catch_up.gp, catch_up.gp),
        ]
        for tier, state in zip(config.promote_tiers, context.tier_states):
            steps.append((
                tier.display_name, WaterfallStepEnum.PROMOTE_TIER, tier.tier_number,
                state.lp_distributed, state.gp_distributed, state.gp_promote,
            ))

        lp_contributions = [flow for flow in context.lp_flows if flow[1] < 0]
        lp_by_event = [self._lp_step_amounts(event) for event in context.events]
        tier_results = []
        cumulative_lp = cumulative_gp = 0.0
        for index, (name, step, number, lp, gp, promote) in enumerate(steps):
            cumulative_lp += lp
            cumulative_gp += gp
            lp_through_step = [
                (event.time, sum(amounts[: index + 1]))
                for event, amounts in zip(context.events, lp_by_event)
            ]
            tier_results.append(
                TierResult(
                    tier_name=name,
                    step=step,
                    tier_number=number,
                    distributable_amount=lp + gp,
                    lp_distribution=lp,
                    gp_distribution=gp,
                    gp_promote_in_tier=promote,
                    cumulative_lp_distribution=cumulative_lp,
                    cumulative_gp_distribution=cumulative_gp,
                    lp_multiple_at_tier=equity_multiple(lp_contributed, cumulative_lp),
                    lp_irr_at_tier=self._irr_through_step(lp_contributions, lp_through_step),
                )
            )

        clawback_result = None
        if clawback_enabled:
            clawback_result = ClawbackResult(
                escrow_percent=config.clawback.escrow_percent,
                true_up_frequency=config.clawback.true_up_frequency,
                true_ups=context.true_ups,
            )

        return WaterfallResult(
            configuration=config,
            structure_type=config.structure_type,
            final_results=FinalResults(lp=lp_metrics, gp=gp_metrics, project=project_metrics),
            tier_results=tier_results,
            events=context.events,
            fees=FeeSummary.from_ledger(context.fee_ledger),
            clawback=clawback_result,
            lp_cash_flows=context.lp_flows,
            gp_cash_flows=context.gp_flows,
        )

    def _pool_metrics(
        self, flows: List[Tuple[float, float]], contributed: float, **components: float
    ) -> PoolMetrics:
        # Net of clawback; a clawback repayment is not a contribution
        distributed = (
            components["return_of_capital"]
            + components["preferred_return"]
            + components["catch_up"]
            + components["tier_distributions"]
            + components["clawback"]
        )
        profit = distributed - contributed
        hold_years = flows[-1][0] - flows[0][0] if flows else 0.0
        cash_on_cash = None
        if contributed > 0 and hold_years > 0:
            received = sum(amount for _, amount in flows if amount > 0)
            cash_on_cash = received / hold_years / contributed

        return PoolMetrics(
            irr=FinancialCalculations.calculate_irr(flows, self.settings),
            equity_multiple=equity_multiple(contributed, distributed),
            total_contributed=contributed,
            total_distributed=distributed,
            profit=profit,
            payback_time=payback_time(flows),
            cash_on_cash_avg=cash_on_cash,
            profit_share_received=max(0.0, profit - components["preferred_return"]),
            co_invest_return=distributed - components["promote"],
            return_on_capital=profit / contributed if contributed > 0 else None,
            **components,
        )

    def _lp_step_amounts(self, event: EventAllocation) -> List[float]:
        """LP cash from one event per cascade step, in cascade order."""
        by_tier = {allocation.tier_number: allocation.lp for allocation in event.tiers}
        return [
            event.return_of_capital.lp,
            event.preferred_return.lp,
            0.0,
            event.catch_up.lp,
        ] + [by_tier.get(tier.tier_number, 0.0) for tier in self.configuration.promote_tiers]

    def _irr_through_step(
        self,
        contributions: List[Tuple[float, float]],
        distributions: List[Tuple[float, float]],
    ) -> Optional[float]:
        flows = sorted(
            contributions + [flow for flow in distributions if flow[1] > 0],
            key=lambda flow: flow[0],
        )
        try:
            return FinancialCalculations.calculate_irr(flows, self.settings)
        except IRRError as e:
            # Early steps can return too little to solve; the pool IRR still raises
            logger.debug(f"LP IRR through step not solvable: {e}")
            return None


def analyze(
    configuration: WaterfallConfiguration,
    schedule: CashFlowSchedule,
    settings: Optional[EngineSettings] = None,
) -> WaterfallResult:
    """
    Run the waterfall for one configuration and schedule.

    Args:
        configuration: Validated waterfall configuration
        schedule: Cash-flow schedule
        settings: Optional engine settings; defaults are used if not provided

    Returns:
        WaterfallResult
    """
    engine = WaterfallEngine(configuration, settings or EngineSettings())
    return engine.run(schedule)


__all__ = [
    "WaterfallContext",
    "WaterfallEngine",
    "analyze",
]
