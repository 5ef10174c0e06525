from datetime import datetime
from functools import reduce
from typing import Optional, Tuple

from coach.domain import EXPENSE, INCOME, Goal, Transaction


def add_transaction(
    trans: Tuple[Transaction, ...], t: Transaction
) -> Tuple[Transaction, ...]:
    # newest first
    return (t,) + trans


def remove_transaction(
    trans: Tuple[Transaction, ...], tid: int
) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.id != tid, trans))


def update_goal(goals: Tuple[Goal, ...], updated: Goal) -> Tuple[Goal, ...]:
    return tuple(updated if g.id == updated.id else g for g in goals)


def income_transactions(trans: Tuple[Transaction, ...]) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.type == INCOME, trans))


def expense_transactions(trans: Tuple[Transaction, ...]) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.type == EXPENSE, trans))


def total_amount(trans: Tuple[Transaction, ...]) -> float:
    return reduce(lambda acc, t: acc + t.amount, trans, 0.0)


def most_recent(trans: Tuple[Transaction, ...], limit: int) -> Tuple[Transaction, ...]:
    ordered = sorted(trans, key=lambda t: (t.ts, t.id), reverse=True)
    return tuple(ordered[: max(0, limit)])


def parse_ts(ts: str) -> Optional[datetime]:
    if not ts:
        return None
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None


def month_key(ts: str) -> Optional[str]:
    parsed = parse_ts(ts)
    return parsed.strftime("%Y-%m") if parsed else None
