"""Rule-based spending analysis.

Every function here is a pure function of a transaction snapshot. None of them
raise on empty or degenerate input: the same code backs the dashboard and the
offline fallback for the AI coach, so it must always return something that can
be rendered.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from coach.categories import get_category_info
from coach.domain import (
    EXPENSE,
    INCOME,
    AIAnalysis,
    Alert,
    BudgetSuggestion,
    CategoryBreakdown,
    InsightBundle,
    InvestmentOption,
    MonthlyTrend,
    SavingTips,
    Totals,
    Transaction,
)
from coach.transforms import expense_transactions, income_transactions, month_key, total_amount


@dataclass(frozen=True)
class AnalysisConfig:
    recommendation_threshold: float = 30.0  # % of expenses before a category gets a tip
    alert_threshold: float = 40.0           # % of expenses before a category raises a warning
    low_savings_ratio: float = 0.10
    critical_savings_ratio: float = 0.05
    focus_categories: int = 2
    max_recommendations: int = 3
    currency_symbol: str = "₹"


DEFAULT_CONFIG = AnalysisConfig()

GET_STARTED = InsightBundle(
    summary="No expenses recorded yet. Start tracking to get insights!",
    recommendations=(
        "Begin by adding your daily expenses",
        "Set up a monthly budget",
        "Track both income and expenses",
    ),
    alerts=(),
)

GET_STARTED_ANALYSIS = AIAnalysis(
    story="Start tracking your expenses to get personalized AI insights about your spending habits!",
    tips=(
        "Set up a monthly budget to track your income and expenses",
        "Use the 50/30/20 rule: 50% needs, 30% wants, 20% savings",
        "Review your spending weekly to stay on track",
    ),
    insight="Regular expense tracking is the foundation of good financial health.",
    motivation="Every financial expert started with their first tracked expense. You're on the right path!",
)

FILLER_TIPS = (
    "Set up automatic savings transfers to build your emergency fund",
    "Review and cancel unused subscriptions to free up extra money",
)

GENERIC_SAVING_TIPS = (
    "Track every expense for a week to identify spending patterns",
    "Use the 24-hour rule before making non-essential purchases",
    "Set up automatic transfers to savings account",
    "Review and cancel unused subscriptions monthly",
    "Cook at home more often to reduce food expenses",
)

INVESTMENT_OPTIONS = (
    InvestmentOption(
        title="Emergency Fund",
        description="Build an emergency fund covering 6 months of expenses before investing. "
                    "Keep it in a high-yield savings account or liquid funds.",
    ),
    InvestmentOption(
        title="SIP in Mutual Funds",
        description="Start a Systematic Investment Plan (SIP) in diversified equity mutual funds. "
                    "Begin with ₹1000-2000 monthly for long-term wealth creation.",
    ),
    InvestmentOption(
        title="PPF (Public Provident Fund)",
        description="Invest up to ₹1.5 lakh annually in PPF for tax benefits and guaranteed returns. "
                    "15-year lock-in period makes it ideal for retirement planning.",
    ),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def money(amount: float, symbol: str = DEFAULT_CONFIG.currency_symbol) -> str:
    return f"{symbol}{round_half_up(amount)}"


def percent_of(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100


def compute_totals(transactions: Iterable[Transaction]) -> Totals:
    trans = tuple(transactions)
    income = total_amount(income_transactions(trans))
    expenses = total_amount(expense_transactions(trans))
    balance = income - expenses
    return Totals(income=income, expenses=expenses, balance=balance, is_positive=balance >= 0)


def savings_rate(totals: Totals) -> float:
    return percent_of(totals.balance, totals.income)


def category_breakdown(transactions: Iterable[Transaction]) -> Tuple[CategoryBreakdown, ...]:
    expenses = expense_transactions(tuple(transactions))
    by_category: dict[str, float] = {}
    for t in expenses:
        by_category[t.category] = by_category.get(t.category, 0.0) + t.amount

    total = total_amount(expenses)
    entries = [
        CategoryBreakdown(
            category=category,
            amount=amount,
            percentage=percent_of(amount, total),
            info=get_category_info(category),
        )
        for category, amount in by_category.items()
    ]
    # sorted() is stable, so ties keep first-encounter order
    return tuple(sorted(entries, key=lambda e: e.amount, reverse=True))


def top_category(transactions: Iterable[Transaction]) -> Optional[CategoryBreakdown]:
    breakdown = category_breakdown(transactions)
    return breakdown[0] if breakdown else None


def generate_insights(
    transactions: Iterable[Transaction], config: AnalysisConfig = DEFAULT_CONFIG
) -> InsightBundle:
    trans = tuple(transactions)
    if not expense_transactions(trans):
        return GET_STARTED

    totals = compute_totals(trans)
    breakdown = category_breakdown(trans)
    return InsightBundle(
        summary=_summary(totals, breakdown[0], config),
        recommendations=_recommendations(breakdown, totals, config),
        alerts=_alerts(breakdown, totals, config),
    )


def _summary(totals: Totals, top: CategoryBreakdown, config: AnalysisConfig) -> str:
    sym = config.currency_symbol
    balance_text = "surplus" if totals.is_positive else "deficit"
    return (
        f"You've spent {money(totals.expenses, sym)} this period, with {top.info.name} "
        f"being your largest expense ({money(top.amount, sym)}). "
        f"Your current balance shows a {balance_text} of {money(abs(totals.balance), sym)}."
    )


def _recommendations(
    breakdown: Tuple[CategoryBreakdown, ...], totals: Totals, config: AnalysisConfig
) -> Tuple[str, ...]:
    recommendations = []

    for entry in breakdown[: config.focus_categories]:
        if entry.percentage > config.recommendation_threshold:
            tip = entry.info.saving_tips[0] if entry.info.saving_tips else "Review and optimize this category"
            recommendations.append(
                f"{entry.info.name} takes up {entry.percentage:.1f}% of your budget. Try: {tip}"
            )

    if totals.balance < 0:
        recommendations.append(
            f"Your expenses exceed income. Focus on reducing the top {config.focus_categories} spending categories."
        )
    elif totals.balance < totals.income * config.low_savings_ratio:
        recommendations.append("Your savings rate is low. Aim to save at least 10-20% of your income.")

    if not recommendations:
        recommendations.append("Great job tracking your expenses! Consider setting up automatic savings.")
        recommendations.append("Review your spending weekly to stay on track with your goals.")

    return tuple(recommendations[: config.max_recommendations])


def _alerts(
    breakdown: Tuple[CategoryBreakdown, ...], totals: Totals, config: AnalysisConfig
) -> Tuple[Alert, ...]:
    alerts = [
        Alert(
            severity="warning",
            message=f"{entry.info.name} represents {entry.percentage:.1f}% of your spending "
                    f"- consider reducing this category.",
        )
        for entry in breakdown
        if entry.percentage > config.alert_threshold
    ]

    if totals.balance < 0:
        alerts.append(Alert(
            severity="danger",
            message=f"You're spending {money(abs(totals.balance), config.currency_symbol)} more than you earn. "
                    f"Review your budget immediately.",
        ))

    if 0 < totals.balance < totals.income * config.critical_savings_ratio:
        alerts.append(Alert(
            severity="info",
            message="Your savings rate is below 5%. Consider increasing it to build financial security.",
        ))

    return tuple(alerts)


def suggest_budget(
    transactions: Iterable[Transaction], config: AnalysisConfig = DEFAULT_CONFIG
) -> BudgetSuggestion:
    """Split income 50/30/20 into needs, wants and savings."""
    totals = compute_totals(transactions)
    sym = config.currency_symbol

    if totals.income <= 0:
        return BudgetSuggestion(
            needs=0, wants=0, savings=0,
            explanation="Add income transactions to get budget suggestions.",
        )

    needs = round_half_up(totals.income * 0.5)
    wants = round_half_up(totals.income * 0.3)
    savings = round_half_up(totals.income * 0.2)

    if totals.expenses > totals.income:
        explanation = (
            f"Your current expenses ({money(totals.expenses, sym)}) exceed income. "
            f"Focus on reducing expenses first."
        )
    elif totals.expenses > needs + wants:
        explanation = (
            f"You're overspending on wants. Try to limit total expenses to {sym}{needs + wants}."
        )
    else:
        explanation = f"Based on the 50/30/20 rule for your income of {money(totals.income, sym)}."

    return BudgetSuggestion(needs=needs, wants=wants, savings=savings, explanation=explanation)


def monthly_trends(transactions: Iterable[Transaction]) -> Tuple[MonthlyTrend, ...]:
    """Per calendar month income/expense totals, oldest month first.

    Transactions whose timestamp cannot be parsed are left out.
    """
    months: dict[str, dict] = {}
    for t in transactions:
        key = month_key(t.ts)
        if key is None:
            continue
        bucket = months.setdefault(key, {"income": 0.0, "expenses": 0.0, "count": 0})
        if t.type == INCOME:
            bucket["income"] += t.amount
        elif t.type == EXPENSE:
            bucket["expenses"] += t.amount
        bucket["count"] += 1

    return tuple(
        MonthlyTrend(
            period=period,
            income=data["income"],
            expenses=data["expenses"],
            transaction_count=data["count"],
            balance=data["income"] - data["expenses"],
        )
        for period, data in sorted(months.items())
    )


def fallback_analysis(
    transactions: Iterable[Transaction], config: AnalysisConfig = DEFAULT_CONFIG
) -> AIAnalysis:
    """The AI coach's answer when no provider could be reached."""
    trans = tuple(transactions)
    top = top_category(trans)
    if top is None:
        return GET_STARTED_ANALYSIS

    insights = generate_insights(trans, config)
    tips = list(insights.recommendations)
    for filler in FILLER_TIPS:
        if len(tips) >= 3:
            break
        if filler not in tips:
            tips.append(filler)

    return AIAnalysis(
        story=insights.summary,
        tips=tuple(tips[:3]),
        insight=f"Your top spending category ({top.info.name}) represents "
                f"{top.percentage:.1f}% of your total expenses.",
        motivation="You're building great financial awareness by tracking your expenses. Keep it up!",
    )


def fallback_saving_tips(
    transactions: Iterable[Transaction], config: AnalysisConfig = DEFAULT_CONFIG
) -> SavingTips:
    top = top_category(transactions)
    tips = list(GENERIC_SAVING_TIPS)
    if top is None:
        return SavingTips(tips=tuple(tips))

    tips[0] = (
        f"Focus on reducing {top.info.name} expenses by 15% to save "
        f"{money(top.amount * 0.15, config.currency_symbol)} monthly"
    )
    return SavingTips(tips=tuple(tips), focus_area=top.info.name)


def fallback_investment_advice() -> Tuple[InvestmentOption, ...]:
    return INVESTMENT_OPTIONS
