from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator


# --- Enums ---
class Category(str, Enum):
    RESTAURANTS = "Restaurantes"
    DELIVERY = "Delivery"
    MARKET = "Mercado"
    PUBLIC_TRANSPORT = "Transporte Público"
    RIDE_HAILING = "Apps de Transporte"
    FUEL = "Combustível"
    LEISURE = "Lazer"
    INVESTMENT = "Investimentos"
    HOUSING = "Moradia"
    EDUCATION = "Educação"
    HEALTH = "Saúde"
    SUBSCRIPTIONS = "Assinaturas"
    SALARY = "Salário"
    OTHERS = "Outros"

    @classmethod
    def parse(cls, name: "str | Category | None") -> "Category":
        """Accepts display values or member names; anything else is OTHERS."""
        if isinstance(name, cls):
            return name
        if not name:
            return cls.OTHERS

        cleaned = str(name).strip()
        for member in cls:
            if cleaned.lower() in (member.value.lower(), member.name.lower()):
                return member
        return cls.OTHERS


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"
    ALERT = "alert"
    SUCCESS = "success"


class PatternSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PatternType(str, Enum):
    CONSECUTIVE = "consecutive"
    LARGE_PURCHASE = "large-purchase"
    HIGH_FREQUENCY = "high-frequency"
    IMPULSE = "impulse"


class Stage(str, Enum):
    BEGINNER = "iniciante"
    SAVER = "poupador"
    INVESTOR = "investidor"
    MASTER = "mestre"


class MissionType(str, Enum):
    SAVINGS = "savings"
    REDUCTION = "reduction"
    TRACKING = "tracking"
    REVIEW = "review"


class MissionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


# --- Transaction Models ---
class Transaction(BaseModel):
    id: str
    description: str = ""
    vendor: str | None = None
    amount: float
    date: datetime
    category: Category = Category.OTHERS
    type: TransactionType

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value):
        # Amounts are magnitudes; direction comes from `type`
        if isinstance(value, (Decimal, str)):
            value = float(value)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("amount must be a number")
        return abs(value)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return Category.parse(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        if isinstance(value, str):
            return value.upper()
        return value


# --- Summary Models ---
class TopCategory(BaseModel):
    category: Category
    amount: float
    percent: float


class FinanceSummary(BaseModel):
    income_month: float = 0.0
    expense_month: float = 0.0
    savings_month: float = 0.0
    balance: float = 0.0
    expense_by_category: dict[Category, float] = Field(default_factory=dict)
    percent_by_category: dict[Category, float] = Field(default_factory=dict)
    transaction_count: int = 0
    average_expense: float = 0.0
    top_categories: list[TopCategory] = Field(default_factory=list)


class MonthComparison(BaseModel):
    current: FinanceSummary
    previous: FinanceSummary
    changes: dict[str, float]


class SpendingPattern(BaseModel):
    type: PatternType
    category: Category | None = None
    description: str
    severity: PatternSeverity
    transactions: list[Transaction] = Field(default_factory=list)


class GoalProgress(BaseModel):
    percent: float
    remaining: float
    stage: Stage


# --- Mentor Output Models ---
class MentorMessage(BaseModel):
    id: str
    title: str
    body: str
    severity: Severity
    icon: str | None = None


class MentorFeedback(BaseModel):
    stage: Stage
    message: str
    challenge: str
    insights: list[MentorMessage]


class FinancialTip(BaseModel):
    title: str
    content: str
    severity: PatternSeverity


class QuickAnswer(BaseModel):
    text: str
    sources: list[str] = Field(default_factory=list)


class MentorSummary(BaseModel):
    comparison: MonthComparison
    patterns: list[SpendingPattern]
    goal: GoalProgress


class RuleInfo(BaseModel):
    id: str
    name: str
    description: str
    severity: Severity
    priority: int
    enabled: bool


# --- Mission Models ---
class Mission(BaseModel):
    id: str
    title: str
    description: str
    type: MissionType
    target_value: float | None = None
    current_value: float | None = None
    progress: int = 0
    status: MissionStatus = MissionStatus.ACTIVE
    start_date: datetime
    end_date: datetime
    category: Category | None = None


# --- Config Models ---
class BudgetCategory(BaseModel):
    category: Category
    monthly_limit: float | None = Field(default=None, ge=0)
    percent_limit: float | None = Field(default=None, ge=0, le=100)


class MentorConfig(BaseModel):
    budget_limits: list[BudgetCategory] = Field(default_factory=list)
    savings_goal_percent: float = Field(default=10.0, ge=0, le=100)
    notifications_enabled: bool = True


# --- Request Models ---
class QuestionRequest(BaseModel):
    question: str = Field(min_length=1, max_length=500)


class MissionUpdate(BaseModel):
    current_value: float


class EnabledRulesUpdate(BaseModel):
    enabled_ids: list[str]


class GoalUpdate(BaseModel):
    goal: Decimal = Field(gt=0)
