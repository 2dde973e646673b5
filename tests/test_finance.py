from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from app.models.schemas import Category, PatternType, Stage, Transaction, TransactionType
from app.services.finance import compare_with_previous_month, detect_patterns, goal_progress, summarize_month

NOW = datetime(2024, 3, 15, 12, 0)

INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE


def test_summary_splits_income_and_expense(make_tx):
    txs = [
        make_tx(3000, Category.SALARY, INCOME),
        make_tx(500, Category.MARKET),
        make_tx(250, Category.DELIVERY),
    ]

    summary = summarize_month(txs, NOW)

    assert summary.income_month == 3000
    assert summary.expense_month == 750
    assert summary.savings_month == summary.income_month - summary.expense_month
    assert summary.transaction_count == 3
    assert summary.average_expense == 250
    assert summary.percent_by_category[Category.MARKET] == pytest.approx(500 / 3000 * 100)


def test_negative_amounts_are_coerced(make_tx):
    txs = [make_tx(-100, Category.MARKET), make_tx(-50, Category.SALARY, INCOME)]

    summary = summarize_month(txs, NOW)

    assert summary.income_month == 50
    assert summary.expense_month == 100
    assert summary.income_month >= 0 and summary.expense_month >= 0


def test_zero_income_gives_zero_percentages(make_tx):
    txs = [make_tx(80, Category.LEISURE), make_tx(20, Category.DELIVERY)]

    summary = summarize_month(txs, NOW)

    assert summary.income_month == 0
    assert summary.percent_by_category == {Category.LEISURE: 0.0, Category.DELIVERY: 0.0}
    assert all(top.percent == 0.0 for top in summary.top_categories)


def test_balance_covers_all_history(make_tx):
    last_year = NOW - timedelta(days=400)
    txs = [
        make_tx(1000, Category.SALARY, INCOME, date=last_year),
        make_tx(200, Category.MARKET, date=last_year),
        make_tx(100, Category.MARKET),
    ]

    summary = summarize_month(txs, NOW)

    assert summary.expense_month == 100
    assert summary.income_month == 0
    assert summary.balance == 700


def test_top_categories_keep_first_seen_order_on_ties(make_tx):
    txs = [
        make_tx(100, Category.LEISURE),
        make_tx(100, Category.MARKET),
        make_tx(300, Category.HOUSING),
        make_tx(100, Category.HEALTH),
    ]

    top = summarize_month(txs, NOW).top_categories

    assert [t.category for t in top] == [Category.HOUSING, Category.LEISURE, Category.MARKET]


def test_compare_with_previous_month(make_tx):
    february = datetime(2024, 2, 10, 12, 0)
    txs = [
        make_tx(2000, Category.SALARY, INCOME, date=february),
        make_tx(500, Category.MARKET, date=february),
        make_tx(2500, Category.SALARY, INCOME),
        make_tx(700, Category.MARKET),
    ]

    comparison = compare_with_previous_month(txs, NOW)

    assert comparison.previous.income_month == 2000
    assert comparison.previous.balance == 0
    assert comparison.changes == {"income": 500, "expense": 200, "savings": 300}


def test_compare_wraps_to_december(make_tx):
    december = datetime(2023, 12, 5, 12, 0)
    txs = [make_tx(100, Category.MARKET, date=december)]

    comparison = compare_with_previous_month(txs, datetime(2024, 1, 10, 12, 0))

    assert comparison.previous.expense_month == 100


def test_consecutive_pattern(make_tx):
    txs = [make_tx(10, Category.MARKET, date=NOW - timedelta(days=d)) for d in range(7)]
    txs.append(make_tx(10000, Category.SALARY, INCOME))

    patterns = detect_patterns(txs, NOW)

    assert [p.type for p in patterns] == [PatternType.CONSECUTIVE]
    assert patterns[0].category == Category.MARKET
    assert len(patterns[0].transactions) == 7


def test_large_purchase_pattern(make_tx):
    txs = [
        make_tx(1000, Category.SALARY, INCOME),
        make_tx(250, Category.LEISURE, description="Show"),
        make_tx(150, Category.LEISURE),
    ]

    patterns = detect_patterns(txs, NOW)

    assert len(patterns) == 1
    assert patterns[0].type == PatternType.LARGE_PURCHASE
    assert "Show" in patterns[0].description
    assert "25.0%" in patterns[0].description


def test_high_frequency_and_impulse_patterns(make_tx):
    night = NOW.replace(hour=23)
    txs = [make_tx(1, Category.DELIVERY, date=night - timedelta(days=d % 3)) for d in range(15)]
    txs.append(make_tx(5000, Category.SALARY, INCOME))

    types = {p.type for p in detect_patterns(txs, NOW)}

    assert types == {PatternType.HIGH_FREQUENCY, PatternType.IMPULSE}


def test_old_transactions_ignored_by_patterns(make_tx):
    old = NOW - timedelta(days=10)
    txs = [make_tx(10, Category.MARKET, date=old - timedelta(days=d)) for d in range(10)]

    assert detect_patterns(txs, NOW) == []


@pytest.mark.parametrize(
    "balance, stage",
    [(-500, Stage.BEGINNER), (4000, Stage.BEGINNER), (5000, Stage.SAVER), (30000, Stage.INVESTOR), (90000, Stage.MASTER)],
)
def test_goal_progress_stages(balance, stage):
    assert goal_progress(balance, 100000).stage == stage


@pytest.mark.parametrize("balance", [-1e9, -1, 0, 1, 50000, 1e12])
def test_goal_progress_percent_is_clamped(balance):
    progress = goal_progress(balance, 100000)

    assert 0 <= progress.percent <= 100
    assert progress.remaining >= 0


def test_transaction_model_coercion():
    tx = Transaction(id=7, amount="-12.5", date=NOW, category="delivery", type="expense")

    assert tx.id == "7"
    assert tx.amount == 12.5
    assert tx.category == Category.DELIVERY
    assert tx.type == TransactionType.EXPENSE
    assert Category.parse("Something else") == Category.OTHERS


@pytest.mark.parametrize("amount", [None, "abc", [10]])
def test_non_numeric_amount_is_a_validation_error(amount):
    with pytest.raises(ValidationError):
        Transaction(id=1, amount=amount, date=NOW, type="EXPENSE")


# --- Pattern thresholds ---
RICH = 100000


@pytest.mark.parametrize("amount, fires", [(200, False), (200.1, True)])
def test_large_purchase_threshold(make_tx, amount, fires):
    txs = [make_tx(1000, Category.SALARY, INCOME), make_tx(amount, Category.LEISURE)]

    types = [p.type for p in detect_patterns(txs, NOW)]

    assert types == ([PatternType.LARGE_PURCHASE] if fires else [])


@pytest.mark.parametrize("count, fires", [(14, False), (15, True)])
def test_high_frequency_threshold(make_tx, count, fires):
    txs = [
        make_tx(1, Category.RESTAURANTS if i % 2 else Category.DELIVERY, date=NOW - timedelta(days=i % 3))
        for i in range(count)
    ]
    txs.append(make_tx(RICH, Category.SALARY, INCOME))

    types = [p.type for p in detect_patterns(txs, NOW)]

    assert types == ([PatternType.HIGH_FREQUENCY] if fires else [])


@pytest.mark.parametrize("count, fires", [(4, False), (5, True)])
def test_night_spending_count_threshold(make_tx, count, fires):
    night = NOW.replace(hour=23)
    txs = [make_tx(5, Category.MARKET, date=night - timedelta(days=i)) for i in range(count)]
    txs.append(make_tx(RICH, Category.SALARY, INCOME))

    types = [p.type for p in detect_patterns(txs, NOW)]

    assert types == ([PatternType.IMPULSE] if fires else [])


@pytest.mark.parametrize("hour, minute, fires", [(2, 59, True), (3, 0, False), (22, 0, True), (21, 59, False)])
def test_night_hour_edges(make_tx, hour, minute, fires):
    moment = NOW.replace(hour=hour, minute=minute)
    txs = [make_tx(5, Category.MARKET, date=moment - timedelta(days=i)) for i in range(5)]
    txs.append(make_tx(RICH, Category.SALARY, INCOME))

    types = [p.type for p in detect_patterns(txs, NOW)]

    assert types == ([PatternType.IMPULSE] if fires else [])


@pytest.mark.parametrize("days, fires", [(6, False), (7, True)])
def test_consecutive_days_threshold(make_tx, days, fires):
    txs = [make_tx(10, Category.MARKET, date=NOW - timedelta(days=d)) for d in range(days)]
    txs.append(make_tx(RICH, Category.SALARY, INCOME))

    types = [p.type for p in detect_patterns(txs, NOW)]

    assert types == ([PatternType.CONSECUTIVE] if fires else [])
