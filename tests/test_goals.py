from datetime import date

from coach.domain import Goal, Transaction
from coach.goals import (
    ACTIVE,
    OVERDUE,
    REACHED,
    GoalTracker,
    goal_status,
    progress_percent,
    remaining,
)
from coach.storage import MemoryStore, Storage


class Clock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_goal(current=0.0, target=10000.0, deadline="2030-01-01", category="savings"):
    return Goal(id=1, name="Emergency fund", target=target, deadline=deadline, category=category,
                current_amount=current)


def income(amount):
    return Transaction(id=99, ts="2025-09-01T10:00:00", type="income", amount=amount, category="income")


def test_contributions_clamp_at_target():
    tracker = GoalTracker(Storage(), clock=Clock())
    goal = tracker.add_goal("Emergency fund", 10000).get_or_else(None)

    for amount in (1000, 5000, 6000):
        assert tracker.contribute(goal.id, amount).is_right()

    updated = tracker.find(goal.id).get_or_else(None)
    assert updated.current_amount == 10000
    assert progress_percent(updated) == 100
    assert remaining(updated) == 0
    assert goal_status(updated) == REACHED


def test_add_goal_validation():
    tracker = GoalTracker(Storage())
    assert tracker.add_goal("", 100).get_error()["error"] == "missing_name"
    assert tracker.add_goal("Car", -1).get_error()["error"] == "invalid_amount"
    assert tracker.goals == ()


def test_add_goal_persists():
    storage = Storage()
    goal = GoalTracker(storage, clock=Clock()).add_goal("  Laptop  ", "60000", "2026-03-01").get_or_else(None)
    assert goal.name == "Laptop"
    assert goal.target == 60000.0
    assert goal.category == "savings"
    assert GoalTracker(storage).goals == (goal,)


def test_contribute_errors():
    tracker = GoalTracker(Storage(), clock=Clock())
    goal = tracker.add_goal("Trip", 5000).get_or_else(None)
    assert tracker.contribute(goal.id, 0).get_error()["error"] == "invalid_amount"
    assert tracker.contribute(goal.id, "x").get_error()["error"] == "invalid_amount"
    assert tracker.contribute(12345, 10).get_error()["error"] == "goal_not_found"


def test_contribute_failed_save_keeps_progress():
    storage = Storage()
    tracker = GoalTracker(storage, clock=Clock())
    goal = tracker.add_goal("Trip", 5000).get_or_else(None)

    class Broken(MemoryStore):
        def set(self, key, value):
            raise OSError("read-only")

    storage.backend = Broken()
    assert tracker.contribute(goal.id, 100).get_error()["error"] == "persistence_failed"
    assert tracker.find(goal.id).get_or_else(None).current_amount == 0


def test_goal_status():
    today = date(2025, 9, 1)
    assert goal_status(make_goal(deadline="2025-12-31"), today) == ACTIVE
    assert goal_status(make_goal(deadline="2025-08-31"), today) == OVERDUE
    assert goal_status(make_goal(deadline=""), today) == ACTIVE
    assert goal_status(make_goal(deadline="soon"), today) == ACTIVE
    assert goal_status(make_goal(current=10000, deadline="2020-01-01"), today) == REACHED


def test_progress_of_zero_target():
    assert progress_percent(make_goal(target=0)) == 0


def test_income_feeds_savings_goals():
    tracker = GoalTracker(Storage(), clock=Clock())
    savings = tracker.add_goal("Rainy day", 1000).get_or_else(None)
    tracker._clock.now += 1
    purchase = tracker.add_goal("Phone", 1000, category="purchase").get_or_else(None)

    touched = tracker.apply_income(income(5000))

    assert [g.id for g in touched] == [savings.id]
    assert tracker.find(savings.id).get_or_else(None).current_amount == 500
    assert tracker.find(purchase.id).get_or_else(None).current_amount == 0


def test_income_share_capped_by_remaining():
    tracker = GoalTracker(Storage(), clock=Clock())
    goal = tracker.add_goal("Small", 100).get_or_else(None)
    tracker.apply_income(income(5000))
    assert tracker.find(goal.id).get_or_else(None).current_amount == 100
    assert tracker.apply_income(income(5000)) == ()


def test_expenses_do_not_touch_goals():
    tracker = GoalTracker(Storage(), clock=Clock())
    tracker.add_goal("Rainy day", 1000)
    expense = Transaction(id=1, ts="", type="expense", amount=500, category="food")
    assert tracker.apply_income(expense) == ()


def test_delete_goal():
    tracker = GoalTracker(Storage(), clock=Clock())
    goal = tracker.add_goal("Trip", 5000).get_or_else(None)
    assert tracker.delete_goal(goal.id)
    assert tracker.delete_goal(goal.id) is False
    assert tracker.goals == ()
