"""Orchestrators that turn a strategy's target into account withdrawals."""

from __future__ import annotations

from decimal import Decimal
import logging

from .accounts import AccountSnapshot
from .context import SpendingContext
from .errors import require
from .money import ZERO, TWELVE, cents, fmt_money
from .plan import SpendingPlan
from .rmd import RmdCalculator
from .sequencers import AccountSequencer, RmdFirstSequencer, TaxEfficientSequencer
from .strategies import SpendingStrategy
from .withdrawals import withdraw_in_order

logger = logging.getLogger(__name__)


class DefaultSpendingOrchestrator:
    """Strategy decides how much, sequencer decides the order, accounts are drawn greedily."""

    def __init__(self, rmd_calculator: RmdCalculator | None = None) -> None:
        self.rmd_calculator = rmd_calculator if rmd_calculator is not None else RmdCalculator()

    def execute(
        self,
        strategy: SpendingStrategy,
        context: SpendingContext,
        sequencer: AccountSequencer | None = None,
    ) -> SpendingPlan:
        require(strategy, "strategy")
        require(context, "context")

        strategy_plan = strategy.calculate_withdrawal(context)
        target = strategy_plan.target_withdrawal
        if target <= ZERO:
            return SpendingPlan.no_withdrawal_needed(strategy.name)

        if sequencer is None:
            sequencer = self.select_default_sequencer(context)

        result = withdraw_in_order(target, sequencer.sequence(context))
        metadata = dict(strategy_plan.metadata)
        metadata["sequencer"] = sequencer.name
        metadata["accountsUsed"] = str(len(result.withdrawals))

        plan = SpendingPlan(
            target_withdrawal=target,
            adjusted_withdrawal=result.total_withdrawn,
            account_withdrawals=result.withdrawals,
            strategy_used=strategy.name,
            metadata=metadata,
        )
        if not plan.meets_target:
            logger.warning("%s target %s not met; shortfall %s", strategy.name, target, plan.shortfall)
        return plan

    def select_default_sequencer(self, context: SpendingContext) -> AccountSequencer:
        if self.rmd_calculator.is_rmd_required(context.age, context.birth_year):
            logger.debug("age %s subject to RMD; using RMD-first sequencing", context.age)
            return RmdFirstSequencer(self.rmd_calculator)
        return TaxEfficientSequencer()


class RmdAwareOrchestrator:
    """Raises the strategy's target to the monthly RMD when the RMD is larger.

    Wraps a default orchestrator, which handles every period in which no
    RMD is due. When one is due the effective target is
    ``max(strategy_target, monthly_rmd)`` and the executed withdrawals are
    split into RMD and discretionary portions in the plan metadata.
    """

    def __init__(
        self,
        rmd_calculator: RmdCalculator | None = None,
        delegate: DefaultSpendingOrchestrator | None = None,
    ) -> None:
        self.rmd_calculator = rmd_calculator if rmd_calculator is not None else RmdCalculator()
        self.delegate = delegate if delegate is not None else DefaultSpendingOrchestrator(self.rmd_calculator)

    def execute(
        self,
        strategy: SpendingStrategy,
        context: SpendingContext,
        sequencer: AccountSequencer | None = None,
    ) -> SpendingPlan:
        require(strategy, "strategy")
        require(context, "context")

        if not self.rmd_calculator.is_rmd_required(context.age, context.birth_year):
            return self.delegate.execute(strategy, context, sequencer)

        strategy_plan = strategy.calculate_withdrawal(context)
        strategy_target = max(ZERO, strategy_plan.target_withdrawal)
        rmd_required = self.monthly_rmd(context)
        effective_target = max(strategy_target, rmd_required)
        rmd_forced = rmd_required > strategy_target

        if sequencer is None:
            sequencer = self.select_default_sequencer(context)

        metadata = dict(strategy_plan.metadata)
        metadata["sequencer"] = sequencer.name
        metadata["rmdRequired"] = fmt_money(rmd_required)
        metadata["strategyTarget"] = fmt_money(strategy_target)
        metadata["rmdForced"] = str(rmd_forced).lower()

        if effective_target <= ZERO:
            metadata["reason"] = "no withdrawal needed"
            metadata["rmdWithdrawn"] = fmt_money(ZERO)
            metadata["discretionaryWithdrawn"] = fmt_money(ZERO)
            return SpendingPlan(strategy_used=strategy.name, metadata=metadata)

        result = withdraw_in_order(effective_target, sequencer.sequence(context))
        rmd_account_ids = {a.account_id for a in self._rmd_accounts(context)}
        from_rmd_accounts = sum(
            (w.amount for w in result.withdrawals if w.account_id in rmd_account_ids),
            ZERO,
        )
        rmd_withdrawn = min(from_rmd_accounts, rmd_required)
        total = result.total_withdrawn
        metadata["accountsUsed"] = str(len(result.withdrawals))
        metadata["rmdWithdrawn"] = fmt_money(rmd_withdrawn)
        metadata["discretionaryWithdrawn"] = fmt_money(total - rmd_withdrawn)

        plan = SpendingPlan(
            target_withdrawal=effective_target,
            adjusted_withdrawal=total,
            account_withdrawals=result.withdrawals,
            strategy_used=strategy.name,
            metadata=metadata,
        )
        if rmd_forced:
            logger.debug("RMD %s exceeds strategy target %s; forcing RMD", rmd_required, strategy_target)
        if rmd_withdrawn < rmd_required:
            logger.warning("RMD of %s only partly satisfied (%s withdrawn)", rmd_required, rmd_withdrawn)
        if not plan.meets_target:
            logger.warning("%s target %s not met; shortfall %s", strategy.name, effective_target, plan.shortfall)
        return plan

    def monthly_rmd(self, context: SpendingContext) -> Decimal:
        """Monthly share of the annual RMD across all RMD-subject accounts."""
        annual = sum(
            (
                self.rmd_calculator.calculate_rmd(account.balance, context.age)
                for account in self._rmd_accounts(context)
                if account.has_balance
            ),
            ZERO,
        )
        return cents(annual / TWELVE)

    def _rmd_accounts(self, context: SpendingContext) -> list[AccountSnapshot]:
        # The snapshot's own flag wins over the account type (e.g. inherited accounts).
        return [a for a in context.simulation.account_snapshots() if a.subject_to_rmd]

    def select_default_sequencer(self, context: SpendingContext) -> AccountSequencer:
        if self.rmd_calculator.is_rmd_required(context.age, context.birth_year):
            return RmdFirstSequencer(self.rmd_calculator)
        return self.delegate.select_default_sequencer(context)
