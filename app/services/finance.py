import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from app.models.schemas import (
    Category,
    FinanceSummary,
    GoalProgress,
    MonthComparison,
    PatternSeverity,
    PatternType,
    SpendingPattern,
    Stage,
    TopCategory,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

PATTERN_WINDOW = timedelta(days=7)
CONSECUTIVE_DAYS = 7
LARGE_PURCHASE_SHARE = 0.2
HIGH_FREQUENCY_COUNT = 15
IMPULSE_COUNT = 5

DINING_CATEGORIES = (Category.RESTAURANTS, Category.DELIVERY)


def is_night_hour(moment: datetime) -> bool:
    """22:00-02:59 counts as night-time (impulse window)."""
    return moment.hour >= 22 or moment.hour <= 2


def is_expense(tx: Transaction) -> bool:
    return tx.type == TransactionType.EXPENSE


def in_month(moment: datetime, year: int, month: int) -> bool:
    return moment.year == year and moment.month == month


def _summarize(month_txs: list[Transaction], balance: float) -> FinanceSummary:
    income = sum(t.amount for t in month_txs if t.type == TransactionType.INCOME)
    expense = sum(t.amount for t in month_txs if is_expense(t))

    expense_by_category: dict[Category, float] = {}
    for tx in month_txs:
        if is_expense(tx):
            expense_by_category[tx.category] = expense_by_category.get(tx.category, 0.0) + tx.amount

    percent_by_category = {
        cat: (amount / income) * 100 if income > 0 else 0.0 for cat, amount in expense_by_category.items()
    }

    # sorted() is stable: equal amounts keep first-seen order
    ranked = sorted(expense_by_category.items(), key=lambda item: item[1], reverse=True)
    top_categories = [
        TopCategory(category=cat, amount=amount, percent=percent_by_category[cat]) for cat, amount in ranked[:3]
    ]

    count = len(month_txs)
    return FinanceSummary(
        income_month=income,
        expense_month=expense,
        savings_month=income - expense,
        balance=balance,
        expense_by_category=expense_by_category,
        percent_by_category=percent_by_category,
        transaction_count=count,
        average_expense=expense / count if count > 0 else 0.0,
        top_categories=top_categories,
    )


def running_balance(transactions: Iterable[Transaction]) -> float:
    return sum(t.amount if t.type == TransactionType.INCOME else -t.amount for t in transactions)


def summarize_month(transactions: list[Transaction], reference_date: datetime | None = None) -> FinanceSummary:
    """
    Monthly aggregate for the calendar month of `reference_date`.

    `balance` covers the whole history, not just the month.
    """
    ref = reference_date or datetime.now()
    month_txs = [t for t in transactions if in_month(t.date, ref.year, ref.month)]
    return _summarize(month_txs, running_balance(transactions))


def compare_with_previous_month(
    transactions: list[Transaction], reference_date: datetime | None = None
) -> MonthComparison:
    ref = reference_date or datetime.now()
    prev_year, prev_month = (ref.year - 1, 12) if ref.month == 1 else (ref.year, ref.month - 1)

    current = summarize_month(transactions, ref)
    previous = _summarize([t for t in transactions if in_month(t.date, prev_year, prev_month)], 0.0)

    return MonthComparison(
        current=current,
        previous=previous,
        changes={
            "income": current.income_month - previous.income_month,
            "expense": current.expense_month - previous.expense_month,
            "savings": current.savings_month - previous.savings_month,
        },
    )


def detect_patterns(transactions: list[Transaction], reference_date: datetime | None = None) -> list[SpendingPattern]:
    """
    Scans the trailing 7 days for problematic spending habits.
    The four checks are independent; any number of patterns may be returned.
    """
    ref = reference_date or datetime.now()
    cutoff = ref - PATTERN_WINDOW
    recent = [t for t in transactions if t.date >= cutoff]
    recent_expenses = [t for t in recent if is_expense(t)]

    patterns: list[SpendingPattern] = []

    # 1. Same category on 7+ distinct days
    category_days: dict[Category, set] = {}
    for tx in recent_expenses:
        category_days.setdefault(tx.category, set()).add(tx.date.date())

    for category, days in category_days.items():
        if len(days) >= CONSECUTIVE_DAYS:
            patterns.append(
                SpendingPattern(
                    type=PatternType.CONSECUTIVE,
                    category=category,
                    description=f"Gastos diários em {category.value} por {len(days)} dias consecutivos",
                    severity=PatternSeverity.HIGH,
                    transactions=[t for t in recent_expenses if t.category == category],
                )
            )

    # 2. Single expense above 20% of the month's income
    income = summarize_month(transactions, ref).income_month
    threshold = income * LARGE_PURCHASE_SHARE
    for tx in recent_expenses:
        if tx.amount > threshold:
            share = f"{tx.amount / income * 100:.1f}% da renda" if income > 0 else "sem renda registrada no mês"
            patterns.append(
                SpendingPattern(
                    type=PatternType.LARGE_PURCHASE,
                    category=tx.category,
                    description=f"Compra grande: {tx.description} ({share})",
                    severity=PatternSeverity.MEDIUM,
                    transactions=[tx],
                )
            )

    # 3. Restaurants/delivery at 15+ per week
    dining = [t for t in recent_expenses if t.category in DINING_CATEGORIES]
    if len(dining) >= HIGH_FREQUENCY_COUNT:
        patterns.append(
            SpendingPattern(
                type=PatternType.HIGH_FREQUENCY,
                category=Category.RESTAURANTS,
                description=f"{len(dining)} transações em restaurantes/delivery em 7 dias",
                severity=PatternSeverity.HIGH,
                transactions=dining,
            )
        )

    # 4. Night-time spending
    night = [t for t in recent_expenses if is_night_hour(t.date)]
    if len(night) >= IMPULSE_COUNT:
        patterns.append(
            SpendingPattern(
                type=PatternType.IMPULSE,
                description=f"{len(night)} gastos noturnos detectados (possível compra por impulso)",
                severity=PatternSeverity.MEDIUM,
                transactions=night,
            )
        )

    if patterns:
        logger.debug(f"Detected {len(patterns)} spending patterns")
    return patterns


def goal_progress(balance: float, goal: float) -> GoalProgress:
    """
    Progress towards the savings goal, clamped to [0, 100].

    `goal` must be positive; a zero or negative goal is a caller error and
    is not guarded here.
    """
    percent = max(0.0, min(balance / goal * 100, 100.0))
    remaining = max(0.0, goal - balance)

    if percent < 5:
        stage = Stage.BEGINNER
    elif percent < 25:
        stage = Stage.SAVER
    elif percent < 75:
        stage = Stage.INVESTOR
    else:
        stage = Stage.MASTER

    return GoalProgress(percent=percent, remaining=remaining, stage=stage)
