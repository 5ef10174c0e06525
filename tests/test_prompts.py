import pytest

from coach.domain import Transaction
from coach.prompts import (
    MODES,
    build_investment_prompt,
    build_prompt,
    build_scenario_prompt,
    detect_scenarios,
    financial_overview,
)
from coach.analyzer import compute_totals


def make_tx(id, tx_type, amount, category, ts="2025-09-01T10:00:00", description=""):
    return Transaction(id=id, ts=ts, type=tx_type, amount=amount, category=category, description=description)


def sample():
    return (
        make_tx(1, "expense", 1000, "food", ts="2025-09-02T10:00:00", description="Groceries"),
        make_tx(2, "expense", 500, "transport", ts="2025-09-03T10:00:00", description="Metro card"),
        make_tx(3, "income", 3000, "income", ts="2025-09-01T10:00:00", description="Salary"),
    )


def test_overview_sections():
    text = financial_overview(sample())
    assert "- Income: ₹3000" in text
    assert "- Total Expenses: ₹1500" in text
    assert "- Net Balance: ₹1500" in text
    assert "- Savings Rate: 50.0%" in text
    assert "- Number of Transactions: 3" in text
    assert "- Food & Dining: ₹1000 (66.7%)" in text
    assert "- Transportation: ₹500 (33.3%)" in text


def test_overview_recent_transactions_newest_first():
    text = financial_overview(sample())
    recent = text.split("RECENT TRANSACTIONS:")[1]
    assert recent.index("Metro card") < recent.index("Groceries") < recent.index("Salary")
    assert "- expense: ₹500 - transport (Metro card)" in recent


def test_overview_limits_recent_transactions():
    trans = tuple(make_tx(i, "expense", 10, "food", ts=f"2025-09-{i:02d}T10:00:00",
                          description=f"meal {i}") for i in range(1, 13))
    recent = financial_overview(trans, recent_limit=8).split("RECENT TRANSACTIONS:")[1]
    assert "meal 12" in recent
    assert "(meal 5)" in recent
    assert "(meal 4)" not in recent
    assert recent.count("- expense:") == 8


def test_overview_empty():
    text = financial_overview(())
    assert "- Income: ₹0" in text
    assert "- Savings Rate: 0.0%" in text
    assert text.count("- none recorded") == 2


def test_build_prompt_is_deterministic():
    assert build_prompt(sample(), "full") == build_prompt(sample(), "full")


@pytest.mark.parametrize("mode", MODES)
def test_build_prompt_modes(mode):
    prompt = build_prompt(sample(), mode)
    assert prompt.startswith("FINANCIAL OVERVIEW:")
    assert "Format as JSON" in prompt


def test_build_prompt_mode_instructions():
    assert '"story"' in build_prompt(sample(), "full")
    assert '"needs"' in build_prompt(sample(), "budget")
    assert '"focus_area"' in build_prompt(sample(), "tips")
    assert '"behavioral_insights"' in build_prompt(sample(), "insights")


def test_build_prompt_unknown_mode():
    with pytest.raises(ValueError):
        build_prompt(sample(), "poetry")


def test_investment_prompt():
    prompt = build_investment_prompt(compute_totals(sample()))
    assert "Monthly Income: ₹3000" in prompt
    assert "Available Savings: ₹1500" in prompt
    assert "Savings Rate: 50.0%" in prompt


def test_investment_prompt_with_deficit():
    totals = compute_totals([make_tx(1, "expense", 500, "food"), make_tx(2, "income", 100, "income")])
    prompt = build_investment_prompt(totals)
    assert "Available Savings: ₹0" in prompt


def test_scenario_prompts():
    overspent = (make_tx(1, "expense", 1500, "shopping"), make_tx(2, "income", 1000, "income"))
    assert "overspending by ₹500" in build_scenario_prompt("overspending", overspent)
    assert "new user" in build_scenario_prompt("first_time")
    assert "50.0%" in build_scenario_prompt("good_saver", sample())
    assert "66.7% of their budget on Food & Dining" in build_scenario_prompt("category_heavy", sample())
    assert build_scenario_prompt("something_else", sample()) == build_prompt(sample(), "full")


def test_detect_scenarios():
    assert detect_scenarios(()) == ("first_time",)
    assert detect_scenarios(sample()) == ("good_saver", "category_heavy")

    overspent = (
        make_tx(1, "expense", 600, "shopping"),
        make_tx(2, "expense", 600, "food"),
        make_tx(3, "income", 1000, "income"),
    )
    assert detect_scenarios(overspent) == ("overspending", "category_heavy")
