from dataclasses import dataclass, field
from typing import Optional

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)


@dataclass(frozen=True)
class CategoryInfo:
    key: str
    name: str
    icon: str
    saving_tips: tuple[str, ...] = ()


@dataclass(frozen=True)
class Transaction:
    id: int
    ts: str          # ISO timestamp, e.g. "2025-09-01T10:00:00"
    type: str        # "income" or "expense"
    amount: float    # always >= 0, the type carries the sign
    category: str
    description: str = ""


@dataclass(frozen=True)
class Totals:
    income: float
    expenses: float
    balance: float
    is_positive: bool


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str
    amount: float
    percentage: float
    info: CategoryInfo


@dataclass(frozen=True)
class Alert:
    severity: str  # info | warning | danger
    message: str


@dataclass(frozen=True)
class InsightBundle:
    summary: str
    recommendations: tuple[str, ...]
    alerts: tuple[Alert, ...]


@dataclass(frozen=True)
class AIAnalysis:
    story: str
    tips: tuple[str, ...]
    insight: str
    motivation: str


@dataclass(frozen=True)
class BudgetSuggestion:
    needs: float
    wants: float
    savings: float
    explanation: str


@dataclass(frozen=True)
class SavingTips:
    tips: tuple[str, ...]
    focus_area: Optional[str] = None


@dataclass(frozen=True)
class InvestmentOption:
    title: str
    description: str


@dataclass(frozen=True)
class MonthlyTrend:
    period: str  # "YYYY-MM"
    income: float
    expenses: float
    transaction_count: int
    balance: float


@dataclass(frozen=True)
class Goal:
    id: int
    name: str
    target: float
    deadline: str     # "YYYY-MM-DD", may be empty
    category: str
    current_amount: float = 0.0
    created_at: str = ""


@dataclass(frozen=True)
class AISettings:
    provider: str = "groq"
    api_key: str = ""
    enabled: bool = True
    auto_analysis: bool = True


@dataclass(frozen=True)
class UserPreferences:
    currency: str = "INR"
    date_format: str = "DD/MM/YYYY"
    theme: str = "light"
    notifications: bool = True
    auto_backup: bool = False


@dataclass(frozen=True)
class ApiStatus:
    type: str  # environment | user | fallback
    provider: str
    status: str
    message: str


@dataclass(frozen=True)
class StorageStats:
    transactions: int
    goals: int
    backups: int
    total_size: int


@dataclass(frozen=True)
class ChainResult:
    """Outcome of running the remote strategies with a local fallback."""

    value: object
    source: str
    failures: tuple[dict, ...] = field(default_factory=tuple)

    @property
    def used_fallback(self) -> bool:
        return self.source == "local"
