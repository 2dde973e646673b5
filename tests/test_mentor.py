from datetime import datetime, timedelta

import pytest

from app.models.schemas import (
    BudgetCategory,
    Category,
    MentorConfig,
    MissionStatus,
    PatternSeverity,
    Stage,
    TransactionType,
)
from app.services.finance import summarize_month
from app.services.mentor import DEFAULT_GOAL, MentorService
from constants import STAGE_CHALLENGES

NOW = datetime(2024, 3, 15, 12, 0)
INCOME = TransactionType.INCOME


@pytest.fixture
def mentor(store):
    return MentorService(store, clock=lambda: NOW)


def test_default_goal():
    assert DEFAULT_GOAL == 100000


def test_feedback(mentor, make_tx):
    txs = [make_tx(1000, Category.SALARY, INCOME), make_tx(1200, Category.MARKET)]

    feedback = mentor.get_mentor_feedback(txs, -200, "Ana")

    assert feedback.stage == Stage.BEGINNER
    assert "Ana" in feedback.message
    assert feedback.challenge == STAGE_CHALLENGES["iniciante"]
    assert feedback.insights[0].id == "deficit-critical"


def test_feedback_uses_callers_balance_for_stage(mentor, make_tx):
    feedback = mentor.get_mentor_feedback([make_tx(10, Category.MARKET)], 77000, "Ana", goal=100000)

    assert feedback.stage == Stage.MASTER
    assert "milestone-75" in [i.id for i in feedback.insights]


def test_feedback_respects_enabled_rules(mentor, make_tx):
    mentor.set_enabled_rules(["no-investments"])

    feedback = mentor.get_mentor_feedback([make_tx(50, Category.MARKET)], -50, "Ana")

    assert [i.id for i in feedback.insights] == ["no-investments"]


def test_unknown_rule_ids_rejected(mentor):
    with pytest.raises(ValueError, match="bogus"):
        mentor.set_enabled_rules(["deficit-critical", "bogus"])


def test_get_rules_reflects_enabled_set(mentor):
    assert all(r.enabled for r in mentor.get_rules())

    mentor.set_enabled_rules(["goal-achieved"])
    rules = mentor.get_rules()

    assert len(rules) == 26
    assert [r.id for r in rules if r.enabled] == ["goal-achieved"]


def test_tips_for_heavy_category(mentor, make_tx):
    txs = [make_tx(1000, Category.SALARY, INCOME), make_tx(400, Category.LEISURE)]

    tips = mentor.get_financial_tips(txs, 600)

    assert [t.title for t in tips] == ["Reduza Lazer", "Parabéns pela Disciplina!", "Acelere Seus Aportes"]
    assert "40.0%" in tips[0].content
    assert "R$ 80,00" in tips[0].content
    assert tips[0].severity == PatternSeverity.HIGH


def test_tips_fill_with_fixed_costs_review(mentor):
    tips = mentor.get_financial_tips([], 0)

    assert [t.title for t in tips] == ["Aumente sua Poupança", "Acelere Seus Aportes", "Revise Gastos Fixos"]


def test_tips_near_goal(mentor, make_tx):
    txs = [make_tx(1000, Category.SALARY, INCOME), make_tx(150, Category.MARKET)]

    tips = mentor.get_financial_tips(txs, 80000)

    assert [t.title for t in tips] == ["Parabéns pela Disciplina!", "Reta Final!", "Revise Gastos Fixos"]
    assert "20.0%" in tips[1].content


def test_quick_answer(mentor, make_tx):
    txs = [make_tx(3000, Category.MARKET)]
    summary = summarize_month(txs, NOW)

    answer = mentor.get_quick_answer("Posso comprar algo de R$ 300?", 1000, summary)

    assert "30.0%" in answer.text
    assert "impacto significativo" in answer.text


def test_weekly_missions_are_idempotent(mentor, make_tx):
    txs = [make_tx(10, Category.MARKET)]

    first = mentor.get_weekly_missions(txs)
    second = mentor.get_weekly_missions(txs)

    assert [m.id for m in first] == [m.id for m in second]
    assert [m.start_date for m in first] == [m.start_date for m in second]


def test_weekly_missions_recompute_stored_set(store, make_tx):
    first = MentorService(store, clock=lambda: NOW).get_weekly_missions([])
    assert [m.id for m in first] == ["save-amount", "track-expenses"]

    later = NOW + timedelta(hours=2)
    txs = [make_tx(200, Category.SALARY, INCOME, date=NOW + timedelta(hours=1))]
    missions = MentorService(store, clock=lambda: later).get_weekly_missions(txs)

    by_id = {m.id: m for m in missions}
    assert by_id["save-amount"].status == MissionStatus.COMPLETED
    assert by_id["save-amount"].start_date == NOW
    assert by_id["track-expenses"].status == MissionStatus.ACTIVE


def test_forced_regeneration(store):
    MentorService(store, clock=lambda: NOW).get_weekly_missions([])

    later = NOW + timedelta(days=1)
    missions = MentorService(store, clock=lambda: later).get_weekly_missions([], force_regenerate=True)

    assert all(m.start_date == later for m in missions)


def test_expired_missions_are_replaced(store):
    MentorService(store, clock=lambda: NOW).get_weekly_missions([])

    next_week = NOW + timedelta(days=8)
    missions = MentorService(store, clock=lambda: next_week).get_weekly_missions([])

    assert all(m.start_date == next_week for m in missions)


def test_manual_mission_update(mentor):
    mentor.get_weekly_missions([])

    updated = mentor.update_mission_manually("save-amount", 25)

    assert updated.progress == 50
    assert mentor.update_mission_manually("missing", 1) is None


def test_summary(mentor, make_tx):
    txs = [
        make_tx(1000, Category.SALARY, INCOME),
        make_tx(300, Category.MARKET),
        make_tx(100, Category.MARKET, date=datetime(2024, 2, 10, 12, 0)),
    ]

    summary = mentor.get_summary(txs, goal=1200)

    assert summary.comparison.current.balance == 600
    assert summary.comparison.changes["expense"] == 200
    assert summary.goal.percent == pytest.approx(50.0)
    assert summary.goal.stage == Stage.INVESTOR


def test_config_round_trip_and_reset(mentor, store):
    assert mentor.get_config() == MentorConfig()

    config = MentorConfig(
        budget_limits=[BudgetCategory(category=Category.DELIVERY, percent_limit=10)],
        savings_goal_percent=15,
    )
    mentor.save_config(config)
    assert mentor.get_config() == config

    mentor.reset()
    assert mentor.get_config() == MentorConfig()
    assert store.items() == {}
