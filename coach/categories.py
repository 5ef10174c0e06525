from types import MappingProxyType

from coach.domain import INCOME, CategoryInfo

FALLBACK_CATEGORY = "other"

CATEGORIES = MappingProxyType({
    "food": CategoryInfo(
        key="food",
        name="Food & Dining",
        icon="🍽️",
        saving_tips=("Cook at home more often", "Plan meals weekly", "Use grocery lists"),
    ),
    "transport": CategoryInfo(
        key="transport",
        name="Transportation",
        icon="🚗",
        saving_tips=("Use public transport", "Carpool when possible", "Walk or bike for short distances"),
    ),
    "shopping": CategoryInfo(
        key="shopping",
        name="Shopping",
        icon="🛍️",
        saving_tips=("Wait 24 hours before buying", "Compare prices online", "Use shopping lists"),
    ),
    "entertainment": CategoryInfo(
        key="entertainment",
        name="Entertainment",
        icon="🎬",
        saving_tips=("Look for free events", "Use streaming instead of cinema", "Take advantage of happy hours"),
    ),
    "utilities": CategoryInfo(
        key="utilities",
        name="Utilities",
        icon="💡",
        saving_tips=("Switch to LED bulbs", "Unplug devices when not in use", "Use energy-efficient appliances"),
    ),
    "healthcare": CategoryInfo(
        key="healthcare",
        name="Healthcare",
        icon="🏥",
        saving_tips=("Use generic medicines", "Regular health checkups", "Compare healthcare providers"),
    ),
    "education": CategoryInfo(
        key="education",
        name="Education",
        icon="📚",
        saving_tips=("Use free online courses", "Buy used textbooks", "Apply for scholarships"),
    ),
    "other": CategoryInfo(
        key="other",
        name="Other",
        icon="📦",
        saving_tips=("Track miscellaneous expenses", "Set spending limits", "Review monthly"),
    ),
    "income": CategoryInfo(
        key="income",
        name="Income",
        icon="💰",
        saving_tips=("Diversify income sources", "Negotiate salary increases", "Consider side hustles"),
    ),
})


def get_category_info(key: str) -> CategoryInfo:
    """Look up a category, falling back to "other" for unknown keys."""
    return CATEGORIES.get(key) or CATEGORIES[FALLBACK_CATEGORY]


def category_options(tx_type: str) -> list[tuple[str, str]]:
    """(key, label) pairs selectable for a transaction type."""
    if tx_type == INCOME:
        info = CATEGORIES[INCOME]
        return [(info.key, f"{info.icon} {info.name}")]

    return [
        (key, f"{info.icon} {info.name}")
        for key, info in CATEGORIES.items()
        if key != INCOME
    ]
