import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from coach.ai_client import AIClient
from coach.analyzer import (
    category_breakdown,
    compute_totals,
    fallback_analysis,
    fallback_investment_advice,
    fallback_saving_tips,
    generate_insights,
    monthly_trends,
    suggest_budget,
    top_category,
)
from coach.config import Settings
from coach.domain import AIAnalysis, ChainResult, Goal, Transaction
from coach.events import (
    ANALYSIS_COMPLETED,
    GOAL_UPDATED,
    TRANSACTION_ADDED,
    TRANSACTION_DELETED,
    EventBus,
)
from coach.functional import Either
from coach.goals import GoalTracker
from coach.normalizer import (
    normalize_analysis,
    normalize_budget,
    normalize_investment_advice,
    normalize_saving_tips,
)
from coach.prompts import build_investment_prompt, build_prompt
from coach.storage import Storage, TransactionStore

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Awaitable[Either[dict, str]]]

LOCAL = "local"


class AnalysisChain:
    """Try remote strategies in order, ending with a local answer that cannot fail.

    strategies: async callables taking a prompt and returning Right(text) or Left(error dict)
    fallback: zero-argument callable producing the local result
    """

    def __init__(self, strategies: Sequence[Strategy], fallback: Callable[[], Any]):
        self.strategies = strategies
        self.fallback = fallback

    async def run(self, prompt: str, normalize: Callable[[str], Either[dict, Any]]) -> ChainResult:
        failures = []
        for strategy in self.strategies:
            name = getattr(strategy, "name", getattr(strategy, "__name__", str(strategy)))
            outcome = (await strategy(prompt)).bind(normalize)
            if outcome.is_right():
                return ChainResult(value=outcome.get_or_else(None), source=name, failures=tuple(failures))
            error = dict(outcome.get_error())
            error.setdefault("source", name)
            failures.append(error)

        if failures:
            logger.info("All %d AI strategies failed, using local analysis", len(failures))
        return ChainResult(value=self.fallback(), source=LOCAL, failures=tuple(failures))


class FinanceAssistant:
    """Facade the presentation layer talks to. Owns all mutable state."""

    def __init__(
        self,
        storage: Storage,
        ai_client: AIClient,
        settings: Optional[Settings] = None,
        bus: Optional[EventBus] = None,
    ):
        self.storage = storage
        self.ai_client = ai_client
        self.settings = settings or ai_client.settings
        self.bus = bus or EventBus()
        self.store = TransactionStore(storage)
        self.goal_tracker = GoalTracker(storage)
        self.ai_client.configure(storage.get_ai_settings())

        self.is_analyzing = False
        self.ai_analysis: Optional[AIAnalysis] = None
        self.last_result: Optional[ChainResult] = None

    @property
    def config(self):
        return self.settings.analysis

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self.store.transactions

    @property
    def goals(self) -> tuple[Goal, ...]:
        return self.goal_tracker.goals

    # transactions

    def add_transaction(self, tx_type: str, amount, category: str, description: str = "",
                        ts: Optional[str] = None) -> Either[dict, Transaction]:
        result = self.store.append(tx_type, amount, category, description, ts)
        if result.is_left():
            self.bus.notify(result.get_error()["message"], "error")
            return result

        tx = result.get_or_else(None)
        self.bus.publish(TRANSACTION_ADDED, {"transaction": tx})
        for goal in self.goal_tracker.apply_income(tx):
            self.bus.publish(GOAL_UPDATED, {"goal": goal})
        self.bus.notify("Transaction added successfully!")

        if self.storage.get_user_preferences().auto_backup:
            self.create_backup()
        return result

    def delete_transaction(self, tid: int) -> bool:
        if not self.store.delete(tid):
            self.bus.notify("Failed to delete transaction", "error")
            return False
        self.bus.publish(TRANSACTION_DELETED, {"id": tid})
        self.bus.notify("Transaction deleted")
        return True

    def clear_all_data(self) -> bool:
        if not self.storage.clear_all_data():
            self.bus.notify("Failed to clear data", "error")
            return False
        self.store.reload()
        self.goal_tracker.reload()
        self.ai_analysis = None
        self.last_result = None
        self.bus.notify("All data cleared successfully!")
        return True

    def wants_auto_analysis(self) -> bool:
        return (
            self.ai_client.ai_settings.auto_analysis
            and len(self.transactions) >= self.settings.auto_analysis_min_transactions
            and not self.is_analyzing
        )

    # goals

    def add_goal(self, name: str, target, deadline: str = "", category: str = "savings") -> Either[dict, Goal]:
        result = self.goal_tracker.add_goal(name, target, deadline, category)
        if result.is_left():
            self.bus.notify(result.get_error()["message"], "error")
        else:
            self.bus.notify("Goal added successfully!")
        return result

    def contribute_to_goal(self, goal_id, amount) -> Either[dict, Goal]:
        result = self.goal_tracker.contribute(goal_id, amount)
        if result.is_left():
            self.bus.notify(result.get_error()["message"], "error")
            return result
        self.bus.publish(GOAL_UPDATED, {"goal": result.get_or_else(None)})
        self.bus.notify("Goal progress updated!")
        return result

    def delete_goal(self, goal_id) -> bool:
        ok = self.goal_tracker.delete_goal(goal_id)
        if ok:
            self.bus.notify("Goal deleted")
        return ok

    # local analysis

    def dashboard(self) -> Dict[str, Any]:
        snapshot = self.transactions
        return {
            "totals": compute_totals(snapshot),
            "breakdown": category_breakdown(snapshot),
            "top_category": top_category(snapshot),
            "insights": generate_insights(snapshot, self.config),
            "budget": suggest_budget(snapshot, self.config),
            "trends": monthly_trends(snapshot),
        }

    # AI

    def _chain(self, fallback: Callable[[], Any]) -> AnalysisChain:
        return AnalysisChain(self.ai_client.strategies(), fallback)

    def _has_enough_data(self) -> bool:
        if len(self.transactions) < self.settings.min_transactions_for_ai:
            self.bus.notify(
                f"Add at least {self.settings.min_transactions_for_ai} transactions to get AI analysis", "error")
            return False
        return True

    async def perform_ai_analysis(self) -> Optional[ChainResult]:
        """Run the full analysis unless one is already in flight."""
        if self.is_analyzing:
            logger.debug("Analysis already running, skipping")
            return None
        if not self._has_enough_data():
            return None

        self.is_analyzing = True
        try:
            snapshot = self.transactions
            prompt = build_prompt(snapshot, "full", self.config)
            result = await self._chain(lambda: fallback_analysis(snapshot, self.config)).run(
                prompt, normalize_analysis)
        finally:
            self.is_analyzing = False

        self.ai_analysis = result.value
        self.last_result = result
        self.bus.publish(ANALYSIS_COMPLETED, {"result": result})
        if result.used_fallback:
            self.bus.notify("AI unavailable, showing local insights", "info")
        else:
            self.bus.notify("AI analysis complete!")
        return result

    async def budget_suggestion(self) -> ChainResult:
        snapshot = self.transactions

        def local():
            return suggest_budget(snapshot, self.config)

        if compute_totals(snapshot).income <= 0:
            self.bus.notify("Add some income transactions first!", "error")
            return ChainResult(value=local(), source=LOCAL)
        return await self._chain(local).run(build_prompt(snapshot, "budget", self.config), normalize_budget)

    async def saving_tips(self) -> ChainResult:
        snapshot = self.transactions
        return await self._chain(lambda: fallback_saving_tips(snapshot, self.config)).run(
            build_prompt(snapshot, "tips", self.config), normalize_saving_tips)

    async def investment_advice(self) -> ChainResult:
        totals = compute_totals(self.transactions)
        return await self._chain(fallback_investment_advice).run(
            build_investment_prompt(totals, self.config), normalize_investment_advice)

    async def handle_ai_action(self, action: str) -> Optional[ChainResult]:
        actions = {
            "analyze": self.perform_ai_analysis,
            "budget": self.budget_suggestion,
            "tips": self.saving_tips,
            "investment": self.investment_advice,
        }
        if action not in actions:
            raise ValueError(f"Unknown AI action {action!r}")
        if action != "analyze" and not self._has_enough_data():
            return None
        return await actions[action]()

    def api_status(self):
        return self.ai_client.api_status()

    async def test_connection(self):
        return await self.ai_client.test_connection()

    def update_ai_settings(self, **changes) -> bool:
        if not self.storage.save_ai_settings(**changes):
            self.bus.notify("Failed to save AI settings", "error")
            return False
        self.ai_client.configure(self.storage.get_ai_settings())
        self.bus.notify("AI settings saved")
        return True

    # background

    async def periodic_tick(self, foreground: bool) -> bool:
        """One timer tick. Returns True when an analysis actually ran."""
        if not foreground or self.is_analyzing:
            return False
        if len(self.transactions) < self.settings.auto_analysis_min_transactions:
            return False
        return await self.perform_ai_analysis() is not None

    def periodic_due(self, last_run: float, now: float) -> bool:
        """True once ``analysis_interval`` seconds have passed since ``last_run``."""
        return now - last_run >= self.settings.analysis_interval

    # data

    def export_data(self) -> dict:
        return self.storage.export_data()

    def import_data(self, data: dict) -> bool:
        ok = self.storage.import_data(data)
        self.store.reload()
        self.goal_tracker.reload()
        self.ai_client.configure(self.storage.get_ai_settings())
        if ok:
            self.bus.notify("Data imported successfully!")
        else:
            self.bus.notify("Failed to import data", "error")
        return ok

    def create_backup(self) -> bool:
        ok = self.storage.create_backup()
        if not ok:
            self.bus.notify("Failed to create backup", "error")
        return ok

    def restore_backup(self, index: int) -> bool:
        ok = self.storage.restore_backup(index)
        self.store.reload()
        self.goal_tracker.reload()
        self.ai_client.configure(self.storage.get_ai_settings())
        self.bus.notify("Backup restored" if ok else "Failed to restore backup", "success" if ok else "error")
        return ok
