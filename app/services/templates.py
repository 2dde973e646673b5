import re
from datetime import date, datetime
from decimal import Decimal

PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")

PERCENT_HINTS = ("percent", "pct")
CURRENCY_HINTS = (
    "amount",
    "value",
    "gasto",
    "renda",
    "income",
    "expense",
    "balance",
    "saldo",
    "goal",
    "meta",
    "remaining",
)


def format_currency(value: float) -> str:
    """pt-BR money: R$ 1.234,50"""
    grouped = f"{float(value):,.2f}"
    return "R$ " + grouped.replace(",", "_").replace(".", ",").replace("_", ".")


def format_percent(value: float, decimals: int = 1) -> str:
    return f"{float(value):.{decimals}f}%"


def format_date(value: str | date | datetime) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value.strftime("%d/%m/%Y")


def format_value(key: str, value) -> str:
    """Picks a format for `value` from the wording of its placeholder name."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return str(value)

    lowered = key.lower()
    if any(hint in lowered for hint in PERCENT_HINTS):
        return format_percent(value)
    if any(hint in lowered for hint in CURRENCY_HINTS):
        return format_currency(value)
    return f"{float(value):.2f}"


def render(template: str, variables: dict) -> str:
    """
    Replaces every `{key}` token with its formatted value.

    Tokens are matched whole, so `{amount}` never touches `{amountTotal}`.
    Tokens without a variable are left as they are.
    """
    table = {key: format_value(key, value) for key, value in variables.items()}

    def _substitute(match: re.Match) -> str:
        return table.get(match.group(1), match.group(0))

    return PLACEHOLDER_RE.sub(_substitute, template)
