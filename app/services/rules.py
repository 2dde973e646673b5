import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from app.models.schemas import (
    Category,
    FinanceSummary,
    MentorMessage,
    PatternType,
    Severity,
    Transaction,
)
from app.services.finance import PATTERN_WINDOW, detect_patterns
from app.services.templates import render
from constants import MESSAGE_TEMPLATES

logger = logging.getLogger(__name__)

MAX_MESSAGES = 5

Condition = Callable[[FinanceSummary, list[Transaction], float, datetime], bool]

SEVERITY_ICONS = {
    Severity.ALERT: "🚨",
    Severity.WARN: "⚠️",
    Severity.SUCCESS: "✅",
    Severity.INFO: "ℹ️",
}


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    description: str
    condition: Condition
    template: str
    severity: Severity
    priority: int
    enabled: bool = True


# --- Helpers ---
def _category_pct(summary: FinanceSummary, category: Category) -> float:
    return summary.percent_by_category.get(category, 0.0)


def _expense_pct(summary: FinanceSummary) -> float:
    return summary.expense_month / summary.income_month * 100 if summary.income_month > 0 else 0.0


def _savings_pct(summary: FinanceSummary) -> float:
    return summary.savings_month / summary.income_month * 100 if summary.income_month > 0 else 0.0


def _goal_pct(summary: FinanceSummary, goal: float) -> float:
    return summary.balance / goal * 100


def _monthly_progress_pct(summary: FinanceSummary, goal: float) -> float:
    return summary.savings_month / goal * 100


def _has_pattern(transactions: list[Transaction], now: datetime, pattern_type: PatternType) -> bool:
    return any(p.type == pattern_type for p in detect_patterns(transactions, now))


# --- Conditions: deficit ---
def deficit_critical(summary, transactions, goal, now) -> bool:
    return summary.expense_month > summary.income_month and summary.income_month > 0


def deficit_warning(summary, transactions, goal, now) -> bool:
    return 90 < _expense_pct(summary) <= 100


def negative_balance(summary, transactions, goal, now) -> bool:
    return summary.balance < 0


# --- Conditions: categories ---
def leisure_high(summary, transactions, goal, now) -> bool:
    return _category_pct(summary, Category.LEISURE) > 30


def food_out_high(summary, transactions, goal, now) -> bool:
    return _category_pct(summary, Category.RESTAURANTS) > 15


def subscriptions_high(summary, transactions, goal, now) -> bool:
    return _category_pct(summary, Category.SUBSCRIPTIONS) > 10


def transport_high(summary, transactions, goal, now) -> bool:
    total = (
        _category_pct(summary, Category.PUBLIC_TRANSPORT)
        + _category_pct(summary, Category.RIDE_HAILING)
        + _category_pct(summary, Category.FUEL)
    )
    return total > 20


def delivery_high(summary, transactions, goal, now) -> bool:
    return _category_pct(summary, Category.DELIVERY) > 10


def ride_hailing_high(summary, transactions, goal, now) -> bool:
    return _category_pct(summary, Category.RIDE_HAILING) > 15


# --- Conditions: savings ---
def low_savings(summary, transactions, goal, now) -> bool:
    return 0 <= _savings_pct(summary) < 10


def no_investments(summary, transactions, goal, now) -> bool:
    return summary.expense_by_category.get(Category.INVESTMENT, 0.0) == 0


def excellent_savings(summary, transactions, goal, now) -> bool:
    return _savings_pct(summary) > 30


# --- Conditions: goal ---
def slow_progress(summary, transactions, goal, now) -> bool:
    return 0 < _monthly_progress_pct(summary, goal) < 5


def good_progress(summary, transactions, goal, now) -> bool:
    return _monthly_progress_pct(summary, goal) > 10


def milestone_50(summary, transactions, goal, now) -> bool:
    return 50 <= _goal_pct(summary, goal) < 55


def milestone_75(summary, transactions, goal, now) -> bool:
    return 75 <= _goal_pct(summary, goal) < 80


def milestone_90(summary, transactions, goal, now) -> bool:
    return 90 <= _goal_pct(summary, goal) < 100


def goal_achieved(summary, transactions, goal, now) -> bool:
    return summary.balance >= goal


# --- Conditions: other ---
def no_transactions(summary, transactions, goal, now) -> bool:
    cutoff = now - PATTERN_WINDOW
    return not any(t.date >= cutoff for t in transactions)


def uncategorized_high(summary, transactions, goal, now) -> bool:
    return _category_pct(summary, Category.OTHERS) > 20


def good_balance(summary, transactions, goal, now) -> bool:
    return summary.balance > 0 and summary.savings_month > 0


def consistent_tracking(summary, transactions, goal, now) -> bool:
    return summary.transaction_count >= 10


# --- Conditions: behaviour ---
def consecutive_spending(summary, transactions, goal, now) -> bool:
    return _has_pattern(transactions, now, PatternType.CONSECUTIVE)


def large_purchase(summary, transactions, goal, now) -> bool:
    return _has_pattern(transactions, now, PatternType.LARGE_PURCHASE)


def high_frequency(summary, transactions, goal, now) -> bool:
    return _has_pattern(transactions, now, PatternType.HIGH_FREQUENCY)


def night_spending(summary, transactions, goal, now) -> bool:
    return _has_pattern(transactions, now, PatternType.IMPULSE)


# fmt: off
ALL_RULES: tuple[Rule, ...] = (
    Rule(
        "deficit-critical", "Déficit Crítico", "Gasto total maior que a renda",
        deficit_critical, MESSAGE_TEMPLATES["DEFICIT_CRITICAL"], Severity.ALERT, 10,
    ),
    Rule(
        "deficit-warning", "Atenção ao Limite", "Gasto total > 90% da renda",
        deficit_warning, MESSAGE_TEMPLATES["DEFICIT_WARNING"], Severity.WARN, 9,
    ),
    Rule(
        "negative-balance", "Saldo Negativo", "Saldo total negativo",
        negative_balance, MESSAGE_TEMPLATES["NEGATIVE_BALANCE"], Severity.ALERT, 10,
    ),
    Rule(
        "leisure-high", "Lazer Alto", "Lazer > 30% da renda",
        leisure_high, MESSAGE_TEMPLATES["LEISURE_HIGH"], Severity.WARN, 6,
    ),
    Rule(
        "food-out-high", "Alimentação Fora Alta", "Restaurantes > 15% da renda",
        food_out_high, MESSAGE_TEMPLATES["FOOD_OUT_HIGH"], Severity.WARN, 7,
    ),
    Rule(
        "subscriptions-high", "Assinaturas Altas", "Assinaturas > 10% da renda",
        subscriptions_high, MESSAGE_TEMPLATES["SUBSCRIPTIONS_HIGH"], Severity.WARN, 6,
    ),
    Rule(
        "transport-high", "Transporte Alto", "Transporte > 20% da renda",
        transport_high, MESSAGE_TEMPLATES["TRANSPORT_HIGH"], Severity.WARN, 6,
    ),
    Rule(
        "delivery-high", "Delivery Alto", "Delivery > 10% da renda",
        delivery_high, MESSAGE_TEMPLATES["DELIVERY_HIGH"], Severity.WARN, 7,
    ),
    Rule(
        "ride-hailing-high", "Apps de Transporte Alto", "Apps de transporte > 15% da renda",
        ride_hailing_high, MESSAGE_TEMPLATES["RIDE_HAILING_HIGH"], Severity.WARN, 6,
    ),
    Rule(
        "low-savings", "Poupança Baixa", "Poupança < 10% da renda",
        low_savings, MESSAGE_TEMPLATES["LOW_SAVINGS"], Severity.WARN, 7,
    ),
    Rule(
        "no-investments", "Sem Investimentos", "Nenhum investimento no mês",
        no_investments, MESSAGE_TEMPLATES["NO_INVESTMENTS"], Severity.INFO, 5,
    ),
    Rule(
        "excellent-savings", "Poupança Excelente", "Poupança > 30% da renda",
        excellent_savings, MESSAGE_TEMPLATES["EXCELLENT_SAVINGS"], Severity.SUCCESS, 8,
    ),
    Rule(
        "slow-progress", "Progresso Lento", "Progresso < 5% em 30 dias",
        slow_progress, MESSAGE_TEMPLATES["SLOW_PROGRESS"], Severity.WARN, 6,
    ),
    Rule(
        "good-progress", "Bom Progresso", "Progresso > 10% em 30 dias",
        good_progress, MESSAGE_TEMPLATES["GOOD_PROGRESS"], Severity.SUCCESS, 7,
    ),
    Rule(
        "milestone-50", "Metade da Meta", "50% da meta atingida",
        milestone_50, MESSAGE_TEMPLATES["MILESTONE_50"], Severity.SUCCESS, 8,
    ),
    Rule(
        "milestone-75", "75% da Meta", "75% da meta atingida",
        milestone_75, MESSAGE_TEMPLATES["MILESTONE_75"], Severity.SUCCESS, 9,
    ),
    Rule(
        "milestone-90", "90% da Meta", "90% da meta atingida",
        milestone_90, MESSAGE_TEMPLATES["MILESTONE_90"], Severity.SUCCESS, 9,
    ),
    Rule(
        "goal-achieved", "Meta Conquistada", "Meta 100% atingida",
        goal_achieved, MESSAGE_TEMPLATES["GOAL_ACHIEVED"], Severity.SUCCESS, 10,
    ),
    Rule(
        "no-transactions", "Sem Transações", "Nenhuma transação em 7 dias",
        no_transactions, MESSAGE_TEMPLATES["NO_TRANSACTIONS"], Severity.INFO, 4,
    ),
    Rule(
        "uncategorized-high", 'Muitos "Outros"', 'Categoria "Outros" > 20%',
        uncategorized_high, MESSAGE_TEMPLATES["UNCATEGORIZED_HIGH"], Severity.INFO, 5,
    ),
    Rule(
        "good-balance", "Saldo Positivo", "Saldo > 0 e crescendo",
        good_balance, MESSAGE_TEMPLATES["GOOD_BALANCE"], Severity.SUCCESS, 6,
    ),
    Rule(
        "consistent-tracking", "Controle Consistente", "10+ transações no mês",
        consistent_tracking, MESSAGE_TEMPLATES["CONSISTENT_TRACKING"], Severity.SUCCESS, 5,
    ),
    Rule(
        "consecutive-spending", "Gastos Consecutivos", "7+ dias consecutivos na mesma categoria",
        consecutive_spending, MESSAGE_TEMPLATES["CONSECUTIVE_SPENDING"], Severity.WARN, 7,
    ),
    Rule(
        "large-purchase", "Compra Grande", "Gasto único > 20% da renda",
        large_purchase, MESSAGE_TEMPLATES["LARGE_PURCHASE"], Severity.WARN, 7,
    ),
    Rule(
        "high-frequency", "Alta Frequência", "15+ transações em restaurantes/delivery em 7 dias",
        high_frequency, MESSAGE_TEMPLATES["HIGH_FREQUENCY"], Severity.WARN, 7,
    ),
    Rule(
        "night-spending", "Gastos Noturnos", "Gastos frequentes entre 22h-2h",
        night_spending, MESSAGE_TEMPLATES["NIGHT_SPENDING"], Severity.WARN, 6,
    ),
)
# fmt: on

RULES_BY_ID = {rule.id: rule for rule in ALL_RULES}

RULE_GROUPS = {
    "Alertas": ("deficit", "negative"),
    "Categorias": ("high",),
    "Poupança": ("savings", "investment"),
    "Meta": ("progress", "milestone", "goal"),
    "Comportamento": ("spending", "purchase", "frequency", "night"),
    "Outros": ("transactions", "uncategorized", "balance", "tracking"),
}


def get_rule(rule_id: str) -> Rule | None:
    return RULES_BY_ID.get(rule_id)


def rules_by_group() -> dict[str, list[Rule]]:
    """Groups the catalog by keywords in the rule ids. A rule may appear in more than one group."""
    groups = {}
    for group, keywords in RULE_GROUPS.items():
        matched = [r for r in ALL_RULES if any(k in r.id for k in keywords)]
        if group == "Categorias":
            matched = [r for r in matched if "frequency" not in r.id]
        groups[group] = matched
    return groups


def build_variables(summary: FinanceSummary, goal: float) -> dict:
    variables = {
        "balance": summary.balance,
        "incomeAmount": summary.income_month,
        "expenseAmount": summary.expense_month,
        "savingsAmount": summary.savings_month,
        "savingsPercent": _savings_pct(summary),
        "expensePercent": _expense_pct(summary),
        "deficitAmount": summary.expense_month - summary.income_month,
        "goal": goal,
        "remaining": max(0.0, goal - summary.balance),
        "progressPercent": summary.balance / goal * 100,
        "count": summary.transaction_count,
    }

    if summary.top_categories:
        top = summary.top_categories[0]
        variables["category"] = top.category.value
        variables["amount"] = top.amount
        variables["percent"] = top.percent

    return variables


def select_rules(enabled_ids: Iterable[str] | None = None) -> list[Rule]:
    rules = [r for r in ALL_RULES if r.enabled]
    if enabled_ids is not None:
        allowed = set(enabled_ids)
        rules = [r for r in rules if r.id in allowed]
    return rules


def evaluate(
    summary: FinanceSummary,
    transactions: list[Transaction],
    goal: float,
    enabled_ids: Iterable[str] | None = None,
    now: datetime | None = None,
) -> list[MentorMessage]:
    """
    Runs the rule catalog and returns the top messages by priority.

    A rule that raises is logged and treated as not firing.
    """
    now = now or datetime.now()
    fired: list[tuple[Rule, MentorMessage]] = []

    for rule in select_rules(enabled_ids):
        try:
            if not rule.condition(summary, transactions, goal, now):
                continue

            body = render(rule.template, build_variables(summary, goal))
            message = MentorMessage(
                id=rule.id,
                title=rule.name,
                body=body,
                severity=rule.severity,
                icon=SEVERITY_ICONS.get(rule.severity),
            )
            fired.append((rule, message))
        except Exception:
            logger.exception(f"Error evaluating rule {rule.id}")

    # Stable sort: equal priorities keep catalog order
    fired.sort(key=lambda item: item[0].priority, reverse=True)
    return [message for _, message in fired[:MAX_MESSAGES]]
