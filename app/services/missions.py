import logging
import math
from datetime import date, datetime, timedelta

from app.models.schemas import (
    Category,
    FinanceSummary,
    Mission,
    MissionStatus,
    MissionType,
    Transaction,
    TransactionType,
)
from app.services.finance import is_expense, is_night_hour

logger = logging.getLogger(__name__)

MISSION_DURATION = timedelta(days=7)
MAX_ACTIVE_MISSIONS = 4

# Fallback targets when a stored mission has none
DEFAULT_TARGETS = {
    "reduce-delivery": 3,
    "save-amount": 50,
    "review-subscriptions": 2,
    "track-expenses": 7,
    "public-transport": 5,
    "no-impulse": 7,
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mission(mission_id: str, title: str, description: str, type_: MissionType, target: float, now: datetime, **extra):
    return Mission(
        id=mission_id,
        title=title,
        description=description,
        type=type_,
        target_value=target,
        current_value=0,
        progress=0,
        status=MissionStatus.ACTIVE,
        start_date=now,
        end_date=now + MISSION_DURATION,
        **extra,
    )


def generate_weekly_missions(
    summary: FinanceSummary, transactions: list[Transaction], now: datetime | None = None
) -> list[Mission]:
    """
    Builds this week's challenges from the monthly profile.
    Candidates keep a fixed order and only the first four are returned.
    """
    now = now or datetime.now()
    pct = summary.percent_by_category
    missions: list[Mission] = []

    if pct.get(Category.DELIVERY, 0) > 10:
        missions.append(
            _mission(
                "reduce-delivery",
                "3 Dias Sem Delivery",
                "Fique 3 dias consecutivos sem pedir delivery. Cozinhe em casa!",
                MissionType.REDUCTION,
                3,
                now,
                category=Category.DELIVERY,
            )
        )

    savings_goal = max(50.0, summary.income_month * 0.05)
    missions.append(
        _mission(
            "save-amount",
            f"Economizar R$ {savings_goal:.0f}",
            f"Poupe R$ {savings_goal:.0f} esta semana reduzindo gastos supérfluos.",
            MissionType.SAVINGS,
            savings_goal,
            now,
        )
    )

    if pct.get(Category.SUBSCRIPTIONS, 0) > 8:
        missions.append(
            _mission(
                "review-subscriptions",
                "Revisar Assinaturas",
                "Cancele pelo menos 2 assinaturas que você não usa regularmente.",
                MissionType.REVIEW,
                2,
                now,
                category=Category.SUBSCRIPTIONS,
            )
        )

    if summary.transaction_count < 10:
        missions.append(
            _mission(
                "track-expenses",
                "Registrar Todos os Gastos",
                "Registre pelo menos 7 transações esta semana. Controle é poder!",
                MissionType.TRACKING,
                7,
                now,
            )
        )

    if pct.get(Category.LEISURE, 0) > 25:
        target_reduction = summary.expense_by_category.get(Category.LEISURE, 0) * 0.2
        missions.append(
            _mission(
                "reduce-leisure",
                "Reduzir Lazer em 20%",
                f"Economize R$ {target_reduction:.0f} em lazer esta semana.",
                MissionType.REDUCTION,
                target_reduction,
                now,
                category=Category.LEISURE,
            )
        )

    if pct.get(Category.RIDE_HAILING, 0) > 12:
        missions.append(
            _mission(
                "public-transport",
                "5 Dias de Transporte Público",
                "Use transporte público ou carona por 5 dias esta semana.",
                MissionType.REDUCTION,
                5,
                now,
                category=Category.RIDE_HAILING,
            )
        )

    night_expenses = [t for t in transactions if is_expense(t) and is_night_hour(t.date)]
    if len(night_expenses) >= 3:
        missions.append(
            _mission(
                "no-impulse",
                "Zero Compras Noturnas",
                "Evite compras entre 22h e 2h por 7 dias. Regra das 24 horas!",
                MissionType.REDUCTION,
                7,
                now,
            )
        )

    logger.info(f"Generated {len(missions)} mission candidates, keeping {min(len(missions), MAX_ACTIVE_MISSIONS)}")
    return missions[:MAX_ACTIVE_MISSIONS]


# --- Progress helpers ---
def longest_run_without(transactions: list[Transaction], category: Category) -> int:
    """Longest streak of recorded days without an expense in `category`."""
    days: set[date] = set()
    hit_days: set[date] = set()
    for tx in transactions:
        day = tx.date.date()
        days.add(day)
        if is_expense(tx) and tx.category == category:
            hit_days.add(day)

    streak = best = 0
    for day in sorted(days):
        if day in hit_days:
            streak = 0
        else:
            streak += 1
            best = max(best, streak)
    return best


def days_with_category(transactions: list[Transaction], category: Category) -> int:
    return len({t.date.date() for t in transactions if t.category == category})


def days_without_night_purchases(transactions: list[Transaction]) -> int:
    all_days = {t.date.date() for t in transactions}
    night_days = {t.date.date() for t in transactions if is_expense(t) and is_night_hour(t.date)}
    return len(all_days - night_days)


def _capped(current: float, target: float) -> float:
    return min(current / target * 100, 100.0)


def recompute_progress(mission: Mission, transactions: list[Transaction], now: datetime | None = None) -> Mission:
    """
    Re-derives `current_value`, `progress` and `status` from the transactions
    inside the mission window. Completed and failed missions are returned as-is.
    """
    if mission.status != MissionStatus.ACTIVE:
        return mission

    now = now or datetime.now()
    window = [t for t in transactions if mission.start_date <= t.date <= mission.end_date]
    target = mission.target_value or DEFAULT_TARGETS.get(mission.id, 0)

    if mission.id == "reduce-delivery":
        current = longest_run_without(window, Category.DELIVERY)
        progress = _capped(current, target)

    elif mission.id == "save-amount":
        income = sum(t.amount for t in window if t.type == TransactionType.INCOME)
        expense = sum(t.amount for t in window if is_expense(t))
        current = income - expense
        progress = _capped(current, target)

    elif mission.id == "review-subscriptions":
        # Updated by the user only
        current = mission.current_value or 0
        progress = _capped(current, target)

    elif mission.id == "track-expenses":
        current = sum(1 for t in window if is_expense(t))
        progress = _capped(current, target)

    elif mission.id == "reduce-leisure":
        current = sum(t.amount for t in window if is_expense(t) and t.category == Category.LEISURE)
        if current <= target:
            progress = 100.0
        elif target <= 0:
            progress = 0.0
        else:
            progress = max(0.0, 100 - (current - target) / target * 100)

    elif mission.id == "public-transport":
        current = days_with_category(window, Category.PUBLIC_TRANSPORT)
        progress = _capped(current, target)

    elif mission.id == "no-impulse":
        current = days_without_night_purchases(window)
        progress = _capped(current, target)

    else:
        current = mission.current_value or 0
        progress = mission.progress

    # Status uses the unrounded value: 99.5% is stored as 100 but stays active
    if progress >= 100:
        status = MissionStatus.COMPLETED
    elif now > mission.end_date:
        status = MissionStatus.FAILED
    else:
        status = MissionStatus.ACTIVE

    return mission.model_copy(update={"current_value": current, "progress": round_half_up(progress), "status": status})


def apply_manual_value(mission: Mission, current_value: float) -> Mission:
    progress = _capped(current_value, mission.target_value) if mission.target_value else 0.0
    status = MissionStatus.COMPLETED if progress >= 100 else mission.status
    return mission.model_copy(
        update={"current_value": current_value, "progress": round_half_up(progress), "status": status}
    )


def is_mission_complete(mission: Mission) -> bool:
    return mission.progress >= 100 or mission.status == MissionStatus.COMPLETED
