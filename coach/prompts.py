"""Prompt text sent to the language-model providers.

Prompts are built only from the transactions passed in, so the same input and
mode always give byte-identical text.
"""

from typing import Iterable, Tuple

from coach.analyzer import DEFAULT_CONFIG, AnalysisConfig, category_breakdown, compute_totals, savings_rate
from coach.domain import Totals, Transaction
from coach.transforms import most_recent

RECENT_LIMIT = 8

MODES = ("full", "budget", "tips", "insights")

SYSTEM_PROMPT = (
    "You are a professional financial advisor. Provide practical, actionable advice in a friendly tone. "
    "Always use Indian Rupees (₹) for currency. Respond in JSON format only."
)

CONNECTION_TEST_PROMPT = "Respond with just: 'Connection successful!'"

_INSTRUCTIONS = {
    "full": """Please analyze this financial data and provide:
1. A 2-3 sentence engaging financial story/summary
2. Top 3 personalized money-saving tips based on spending patterns
3. One key insight about spending behavior
4. A motivational message to encourage better financial habits

Format as JSON:
{
  "story": "Your financial story...",
  "tips": ["Tip 1", "Tip 2", "Tip 3"],
  "insight": "Key spending insight...",
  "motivation": "Motivational message..."
}""",
    "budget": """Based on this financial data, suggest an optimal budget allocation. Consider:
- Current spending patterns
- Income level
- Potential areas for optimization

Provide specific amounts for needs, wants, and savings with explanation.

Format as JSON:
{
  "needs": amount_for_needs,
  "wants": amount_for_wants,
  "savings": amount_for_savings,
  "explanation": "Brief explanation of the allocation strategy"
}""",
    "tips": """Focus on the spending patterns and provide 5 specific, actionable money-saving tips tailored to this person's expenses. Be practical and specific.

Format as JSON:
{
  "tips": ["Specific tip 1", "Specific tip 2", "Specific tip 3", "Specific tip 4", "Specific tip 5"],
  "focus_area": "Main category to focus on for savings"
}""",
    "insights": """Analyze the spending patterns and provide:
1. Key behavioral insights
2. Spending trends
3. Areas of concern
4. Positive financial habits observed

Format as JSON:
{
  "behavioral_insights": ["Insight 1", "Insight 2"],
  "trends": "Observed spending trends",
  "concerns": ["Concern 1", "Concern 2"],
  "positive_habits": ["Good habit 1", "Good habit 2"]
}""",
}


def fmt_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def financial_overview(
    transactions: Iterable[Transaction],
    config: AnalysisConfig = DEFAULT_CONFIG,
    recent_limit: int = RECENT_LIMIT,
) -> str:
    trans = tuple(transactions)
    sym = config.currency_symbol
    totals = compute_totals(trans)

    lines = [
        "FINANCIAL OVERVIEW:",
        f"- Income: {sym}{fmt_amount(totals.income)}",
        f"- Total Expenses: {sym}{fmt_amount(totals.expenses)}",
        f"- Net Balance: {sym}{fmt_amount(totals.balance)}",
        f"- Savings Rate: {savings_rate(totals):.1f}%",
        f"- Number of Transactions: {len(trans)}",
        "",
        "EXPENSES BY CATEGORY:",
    ]
    breakdown = category_breakdown(trans)
    if breakdown:
        lines.extend(
            f"- {entry.info.name}: {sym}{fmt_amount(entry.amount)} ({entry.percentage:.1f}%)"
            for entry in breakdown
        )
    else:
        lines.append("- none recorded")

    lines.extend(["", "RECENT TRANSACTIONS:"])
    recent = most_recent(trans, recent_limit)
    if recent:
        lines.extend(
            f"- {t.type}: {sym}{fmt_amount(t.amount)} - {t.category} ({t.description})"
            for t in recent
        )
    else:
        lines.append("- none recorded")

    return "\n".join(lines)


def build_prompt(
    transactions: Iterable[Transaction],
    mode: str = "full",
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> str:
    if mode not in _INSTRUCTIONS:
        raise ValueError(f"Unknown prompt mode {mode!r}, expected one of {', '.join(MODES)}")
    return f"{financial_overview(transactions, config)}\n\n{_INSTRUCTIONS[mode]}\n"


def build_investment_prompt(totals: Totals, config: AnalysisConfig = DEFAULT_CONFIG) -> str:
    sym = config.currency_symbol
    available = totals.balance if totals.balance > 0 else 0
    rate = available / totals.income * 100 if totals.income > 0 else 0
    return f"""Provide investment recommendations for someone with:
- Monthly Income: {sym}{fmt_amount(totals.income)}
- Available Savings: {sym}{fmt_amount(available)}
- Savings Rate: {rate:.1f}%

Focus on Indian investment options suitable for beginners.

Format as JSON:
{{
  "recommendations": [
    {{"title": "Investment Option 1", "description": "Detailed explanation and why it's suitable"}},
    {{"title": "Investment Option 2", "description": "Detailed explanation and why it's suitable"}},
    {{"title": "Investment Option 3", "description": "Detailed explanation and why it's suitable"}}
  ]
}}
"""


def build_scenario_prompt(scenario: str, transactions: Iterable[Transaction] = (),
                          config: AnalysisConfig = DEFAULT_CONFIG) -> str:
    """Short prompts for situations the dashboard detects on its own."""
    trans = tuple(transactions)
    sym = config.currency_symbol
    totals = compute_totals(trans)

    if scenario == "overspending":
        return (
            f"The user is spending {sym}{fmt_amount(totals.expenses)} against an income of "
            f"{sym}{fmt_amount(totals.income)}. They're overspending by "
            f"{sym}{fmt_amount(totals.expenses - totals.income)}. "
            f"Provide urgent, actionable advice to get back on track."
        )
    if scenario == "first_time":
        return (
            "This is a new user with their first few transactions. Provide encouraging, "
            "educational content about expense tracking and budgeting basics."
        )
    if scenario == "good_saver":
        return (
            f"The user has a healthy savings rate of {savings_rate(totals):.1f}%. "
            f"Provide advanced tips for investment and wealth building."
        )
    if scenario == "category_heavy":
        breakdown = category_breakdown(trans)
        if breakdown:
            top = breakdown[0]
            return (
                f"The user spends {top.percentage:.1f}% of their budget on {top.info.name}. "
                f"Provide specific tips for optimizing this category."
            )
    return build_prompt(trans, "full", config)


def detect_scenarios(transactions: Iterable[Transaction],
                     config: AnalysisConfig = DEFAULT_CONFIG) -> Tuple[str, ...]:
    trans = tuple(transactions)
    totals = compute_totals(trans)
    found = []
    if len(trans) < 3:
        found.append("first_time")
    if totals.expenses > totals.income:
        found.append("overspending")
    elif savings_rate(totals) >= 20:
        found.append("good_saver")
    breakdown = category_breakdown(trans)
    if breakdown and breakdown[0].percentage > config.alert_threshold:
        found.append("category_heavy")
    return tuple(found)
