import math
import re

from app.models.schemas import FinanceSummary, QuickAnswer
from app.services.templates import format_currency, format_percent
from constants import FAQ_ANSWERS

AMOUNT_RE = re.compile(r"(\d+(?:[.,]\d+)?)")
DEFAULT_PURCHASE_AMOUNT = 100.0

PURCHASE_KEYWORDS = ("comprar", "posso", "compra")
SAVINGS_KEYWORDS = ("economizar", "poupar", "guardar")
GOAL_KEYWORDS = ("quando", "meta", "atingir")
INVEST_KEYWORDS = ("investir", "investimento", "aplicar")


def extract_amount(question: str) -> float:
    match = AMOUNT_RE.search(question)
    if not match:
        return DEFAULT_PURCHASE_AMOUNT
    return float(match.group(1).replace(",", "."))


def can_i_buy(amount: float, balance: float, monthly_expense: float) -> str:
    days = math.ceil(amount / (monthly_expense / 30)) if monthly_expense > 0 else 0

    if balance <= 0:
        return FAQ_ANSWERS["can_i_buy_no_balance"].format(amount=format_currency(amount), days=days)

    impact = amount / balance * 100
    if impact > 20:
        key = "can_i_buy_high"
    elif impact > 10:
        key = "can_i_buy_medium"
    else:
        key = "can_i_buy_low"
    return FAQ_ANSWERS[key].format(amount=format_currency(amount), impact=format_percent(impact), days=days)


def how_to_save(income: float, expense: float) -> str:
    rate = (income - expense) / income * 100 if income > 0 else 0.0
    return FAQ_ANSWERS["how_to_save"].format(rate=format_percent(rate))


def when_goal(balance: float, goal: float, monthly_savings: float) -> str:
    remaining = goal - balance
    months = math.ceil(remaining / monthly_savings) if monthly_savings > 0 else math.inf

    if months == math.inf or months > 120:
        return FAQ_ANSWERS["when_goal_never"]
    if months > 12:
        return FAQ_ANSWERS["when_goal_years"].format(
            remaining=format_currency(remaining),
            savings=format_currency(monthly_savings),
            months=months,
            years=months // 12,
        )
    return FAQ_ANSWERS["when_goal_soon"].format(remaining=format_currency(remaining), months=months)


def how_to_invest(balance: float) -> str:
    if balance < 1000:
        key = "invest_starter"
    elif balance < 10000:
        key = "invest_growing"
    else:
        key = "invest_diversify"
    return FAQ_ANSWERS[key].format(balance=format_currency(balance))


def quick_answer(question: str, balance: float, summary: FinanceSummary, goal: float) -> QuickAnswer:
    """Matches the question against a few intents; the first match wins."""
    lowered = question.lower()

    if any(k in lowered for k in PURCHASE_KEYWORDS):
        text = can_i_buy(extract_amount(question), balance, summary.expense_month)
    elif any(k in lowered for k in SAVINGS_KEYWORDS):
        text = how_to_save(summary.income_month, summary.expense_month)
    elif any(k in lowered for k in GOAL_KEYWORDS):
        text = when_goal(balance, goal, summary.savings_month)
    elif any(k in lowered for k in INVEST_KEYWORDS):
        text = how_to_invest(balance)
    else:
        text = FAQ_ANSWERS["fallback"]

    return QuickAnswer(text=text, sources=[])
