import logging
import time
from dataclasses import replace
from datetime import date
from typing import Optional, Tuple

from coach.domain import INCOME, Goal, Transaction
from coach.functional import Either, Left, Maybe, Nothing, Right, Some, validate_goal
from coach.storage import Storage, now_iso
from coach.transforms import update_goal

logger = logging.getLogger(__name__)

SAVINGS_CATEGORY = "savings"
INCOME_SHARE = 0.1  # part of each income transaction routed to savings goals

REACHED = "reached"
OVERDUE = "overdue"
ACTIVE = "active"


def remaining(goal: Goal) -> float:
    return max(goal.target - goal.current_amount, 0.0)


def progress_percent(goal: Goal) -> float:
    if goal.target <= 0:
        return 0.0
    return min(goal.current_amount / goal.target * 100, 100.0)


def goal_status(goal: Goal, today: Optional[date] = None) -> str:
    """Display state of a goal. Never changes the goal itself."""
    if goal.current_amount >= goal.target:
        return REACHED
    today = today or date.today()
    try:
        deadline = date.fromisoformat(goal.deadline[:10]) if goal.deadline else None
    except ValueError:
        deadline = None
    if deadline is not None and deadline < today:
        return OVERDUE
    return ACTIVE


class GoalTracker:
    def __init__(self, storage: Storage, clock=time.time):
        self.storage = storage
        self._clock = clock
        self._goals: Tuple[Goal, ...] = storage.get_goals()

    @property
    def goals(self) -> Tuple[Goal, ...]:
        return self._goals

    def find(self, goal_id) -> Maybe[Goal]:
        for goal in self._goals:
            if goal.id == goal_id:
                return Some(goal)
        return Nothing()

    def _commit(self, goals: Tuple[Goal, ...]) -> bool:
        if not self.storage.save_goals(goals):
            return False
        self._goals = goals
        return True

    def _next_id(self) -> int:
        last = max((g.id for g in self._goals if isinstance(g.id, int)), default=0)
        return max(int(self._clock() * 1000), last + 1)

    def add_goal(self, name: str, target, deadline: str = "", category: str = SAVINGS_CATEGORY) -> Either[dict, Goal]:
        checked = validate_goal(name, target)
        if checked.is_left():
            return checked

        goal = Goal(
            id=self._next_id(),
            name=name.strip(),
            target=checked.get_or_else(0.0),
            deadline=deadline or "",
            category=category or SAVINGS_CATEGORY,
            current_amount=0.0,
            created_at=now_iso(),
        )
        if not self._commit(self._goals + (goal,)):
            return Left({"error": "persistence_failed", "message": "Failed to save goal"})
        return Right(goal)

    def contribute(self, goal_id, amount) -> Either[dict, Goal]:
        """Add progress to a goal, never going past its target."""
        try:
            value = float(amount)
        except (TypeError, ValueError):
            value = float("nan")
        if not value > 0:
            return Left({"error": "invalid_amount", "message": "Contribution must be positive", "amount": amount})

        found = self.find(goal_id)
        if found.is_none():
            return Left({"error": "goal_not_found", "message": f"Goal {goal_id} does not exist"})

        goal = found.get_or_else(None)
        updated = replace(goal, current_amount=min(goal.current_amount + value, goal.target))
        if not self._commit(update_goal(self._goals, updated)):
            return Left({"error": "persistence_failed", "message": "Failed to save goal"})
        return Right(updated)

    def delete_goal(self, goal_id) -> bool:
        remaining_goals = tuple(g for g in self._goals if g.id != goal_id)
        if len(remaining_goals) == len(self._goals):
            return False
        return self._commit(remaining_goals)

    def apply_income(self, transaction: Transaction) -> Tuple[Goal, ...]:
        """Route a share of new income into unfinished savings goals."""
        if transaction.type != INCOME:
            return ()

        touched = []
        for goal in self._goals:
            if goal.category != SAVINGS_CATEGORY or goal.current_amount >= goal.target:
                continue
            share = min(transaction.amount * INCOME_SHARE, remaining(goal))
            result = self.contribute(goal.id, share)
            if result.is_right():
                touched.append(result.get_or_else(goal))
            else:
                logger.warning("Could not update goal %s: %s", goal.id, result.get_error()["message"])
        return tuple(touched)

    def reload(self) -> None:
        self._goals = self.storage.get_goals()
