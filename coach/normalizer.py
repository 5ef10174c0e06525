"""Turn whatever a language model sent back into the shapes the app renders.

Precedence for the main analysis:

1. an embedded ``{...}`` JSON payload (``parse_structured``)
2. labeled lines such as ``Insight: ...`` and numbered tips (``parse_labeled``)
3. fixed generic text (``DEFAULT_ANALYSIS``)

Each stage is a plain function so callers and tests can use any of them alone.
"""

import json
import logging
import re
from typing import Callable, Optional

from coach.domain import AIAnalysis, BudgetSuggestion, InvestmentOption, SavingTips
from coach.functional import Either, Left, Maybe, Nothing, Right, Some

logger = logging.getLogger(__name__)

MAX_TIPS = 3
MIN_TIP_LENGTH = 10

DEFAULT_ANALYSIS = AIAnalysis(
    story="Your financial journey is unique and every step counts!",
    tips=(
        "Track your expenses regularly to spot patterns early",
        "Set aside a fixed amount for savings as soon as income arrives",
        "Review your biggest spending category once a week",
    ),
    insight="Track your expenses regularly to build better money habits.",
    motivation="You're taking control of your finances - keep it up!",
)

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

_SECTION_PATTERNS = {
    "story": re.compile(r"(?:story|summary)[:\s]*(.*?)(?:\n|$)", re.IGNORECASE),
    "insight": re.compile(r"(?:insight|pattern)[:\s]*(.*?)(?:\n|$)", re.IGNORECASE),
    "motivation": re.compile(r"(?:motivation|message)[:\s]*(.*?)(?:\n|$)", re.IGNORECASE),
}

_TIP_PATTERNS = (
    re.compile(r"(?:tip\s*\d+|•|\d+\.)\s*(.*?)(?:\n|$)", re.IGNORECASE),
    re.compile(r"(?:suggestion|recommend)[:\s]*(.*?)(?:\n|$)", re.IGNORECASE),
)


def parse_structured(content: str) -> Maybe[dict]:
    """Find the outermost curly-brace block and decode it."""
    if not content:
        return Nothing()
    match = _JSON_BLOCK.search(content)
    if not match:
        return Nothing()
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse AI JSON response: %s", e)
        return Nothing()
    return Some(data) if isinstance(data, dict) else Nothing()


def extract_section(content: str, section: str) -> Optional[str]:
    match = _SECTION_PATTERNS[section].search(content or "")
    if not match:
        return None
    return match.group(1).strip() or None


def extract_tips(content: str) -> tuple[str, ...]:
    tips = []
    for pattern in _TIP_PATTERNS:
        for match in pattern.finditer(content or ""):
            tip = match.group(1).strip()
            if len(tip) > MIN_TIP_LENGTH:
                tips.append(tip)
        if len(tips) >= MAX_TIPS:
            break
    return tuple(tips[:MAX_TIPS])


def parse_labeled(content: str) -> dict:
    """Best-effort field extraction from free text. Missing fields are None."""
    return {
        "story": extract_section(content, "story"),
        "tips": extract_tips(content) or None,
        "insight": extract_section(content, "insight"),
        "motivation": extract_section(content, "motivation"),
    }


def _text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _text_list(value, limit: int) -> Optional[tuple[str, ...]]:
    if not isinstance(value, (list, tuple)):
        return None
    items = tuple(t for t in (_text(v) for v in value) if t)
    return items[:limit] or None


def analysis_from_fields(fields: dict, defaults: AIAnalysis = DEFAULT_ANALYSIS) -> AIAnalysis:
    return AIAnalysis(
        story=_text(fields.get("story")) or defaults.story,
        tips=_text_list(fields.get("tips"), MAX_TIPS) or defaults.tips,
        insight=_text(fields.get("insight")) or defaults.insight,
        motivation=_text(fields.get("motivation")) or defaults.motivation,
    )


def normalize_analysis(
    content: str,
    structured: Callable[[str], Maybe[dict]] = parse_structured,
    labeled: Callable[[str], dict] = parse_labeled,
    defaults: AIAnalysis = DEFAULT_ANALYSIS,
) -> Either[dict, AIAnalysis]:
    """Always succeeds; a reply with nothing usable becomes the defaults."""
    parsed = structured(content)
    if parsed.is_some():
        return Right(analysis_from_fields(parsed.get_or_else({}), defaults))

    logger.info("AI reply had no JSON payload, falling back to text heuristics")
    return Right(analysis_from_fields(labeled(content), defaults))


def _number(value) -> Maybe[float]:
    if isinstance(value, bool):
        return Nothing()
    if isinstance(value, (int, float)):
        return Some(float(value))
    if isinstance(value, str):
        cleaned = re.sub(r"[^\d.\-]", "", value)
        try:
            return Some(float(cleaned))
        except ValueError:
            return Nothing()
    return Nothing()


def normalize_budget(content: str) -> Either[dict, BudgetSuggestion]:
    data = parse_structured(content).get_or_else(None)
    if data is None:
        return Left({"error": "unparsable_response", "message": "Budget reply had no JSON payload"})

    amounts = {key: _number(data.get(key)) for key in ("needs", "wants", "savings")}
    missing = [key for key, value in amounts.items() if value.is_none()]
    if missing:
        return Left({
            "error": "incomplete_response",
            "message": f"Budget reply is missing {', '.join(missing)}",
        })

    return Right(BudgetSuggestion(
        needs=amounts["needs"].get_or_else(0.0),
        wants=amounts["wants"].get_or_else(0.0),
        savings=amounts["savings"].get_or_else(0.0),
        explanation=_text(data.get("explanation")) or "",
    ))


def normalize_saving_tips(content: str, limit: int = 5) -> Either[dict, SavingTips]:
    parsed = parse_structured(content)
    tips = parsed.map(lambda d: _text_list(d.get("tips"), limit)).get_or_else(None)
    if not tips:
        return Left({"error": "unparsable_response", "message": "Tips reply had no usable tips"})
    focus = parsed.map(lambda d: _text(d.get("focus_area"))).get_or_else(None)
    return Right(SavingTips(tips=tips, focus_area=focus))


def normalize_investment_advice(content: str) -> Either[dict, tuple[InvestmentOption, ...]]:
    data = parse_structured(content).get_or_else({})
    items = data.get("recommendations")
    if not isinstance(items, list):
        return Left({"error": "unparsable_response", "message": "Investment reply had no recommendations"})

    options = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title, description = _text(item.get("title")), _text(item.get("description"))
        if title and description:
            options.append(InvestmentOption(title=title, description=description))
    if not options:
        return Left({"error": "unparsable_response", "message": "Investment reply had no recommendations"})
    return Right(tuple(options))


def normalize_connection_test(content: str) -> Either[dict, str]:
    return Right(_text(content) or "")
