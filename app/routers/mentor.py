import logging
from datetime import datetime, tzinfo

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_session, get_user_timezone, verify_telegram_authentication
from app.models.schemas import (
    EnabledRulesUpdate,
    FinancialTip,
    MentorConfig,
    MentorFeedback,
    MentorSummary,
    Mission,
    MissionUpdate,
    QuestionRequest,
    QuickAnswer,
)
from app.services.analytics import AnalyticsService
from app.services.finance import running_balance, summarize_month
from app.services.mentor import MentorService
from app.services.rules import rules_by_group
from app.services.storage import MemoryStore, load_store, persist_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["mentor"])


# --- Helpers ---
async def _open_mentor(user_id: str, session: AsyncSession, tz: tzinfo) -> tuple[MentorService, MemoryStore]:
    store = await load_store(session, user_id)
    return MentorService(store, clock=lambda: datetime.now(tz)), store


async def _save_state(session: AsyncSession, user_id: str, store: MemoryStore) -> None:
    try:
        await persist_store(session, user_id, store)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception(f"Failed to persist mentor state for user {user_id}")
        raise HTTPException(status_code=500, detail="Could not save mentor state")


# --- Insights ---
@router.get("/mentor/feedback", response_model=MentorFeedback)
async def get_feedback(
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    analytics = AnalyticsService(session)
    transactions = await analytics.get_user_transactions(user_id, tz)
    goal = await analytics.get_goal(user_id)

    mentor, _ = await _open_mentor(user_id, session, tz)
    return mentor.get_mentor_feedback(transactions, running_balance(transactions), user.get("first_name", ""), goal)


@router.get("/mentor/tips", response_model=list[FinancialTip])
async def get_tips(
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    analytics = AnalyticsService(session)
    transactions = await analytics.get_user_transactions(user_id, tz)
    goal = await analytics.get_goal(user_id)

    mentor, _ = await _open_mentor(user_id, session, tz)
    return mentor.get_financial_tips(transactions, running_balance(transactions), goal)


@router.post("/mentor/ask", response_model=QuickAnswer)
async def ask_mentor(
    request: QuestionRequest,
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    analytics = AnalyticsService(session)
    transactions = await analytics.get_user_transactions(user_id, tz)
    goal = await analytics.get_goal(user_id)

    mentor, _ = await _open_mentor(user_id, session, tz)
    summary = summarize_month(transactions, mentor.clock())
    return mentor.get_quick_answer(request.question, summary.balance, summary, goal)


@router.get("/mentor/summary", response_model=MentorSummary)
async def get_summary(
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    analytics = AnalyticsService(session)
    transactions = await analytics.get_user_transactions(user_id, tz)
    goal = await analytics.get_goal(user_id)

    mentor, _ = await _open_mentor(user_id, session, tz)
    return mentor.get_summary(transactions, goal)


# --- Missions ---
@router.get("/mentor/missions", response_model=list[Mission])
async def get_missions(
    force: bool = False,
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    transactions = await AnalyticsService(session).get_user_transactions(user_id, tz)

    mentor, store = await _open_mentor(user_id, session, tz)
    missions = mentor.get_weekly_missions(transactions, force_regenerate=force)
    await _save_state(session, user_id, store)
    return missions


@router.patch("/mentor/missions/{mission_id}", response_model=Mission)
async def update_mission(
    mission_id: str,
    update: MissionUpdate,
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    mentor, store = await _open_mentor(user_id, session, tz)

    mission = mentor.update_mission_manually(mission_id, update.current_value)
    if mission is None:
        raise HTTPException(status_code=404, detail="Mission not found")

    await _save_state(session, user_id, store)
    return mission


# --- Preferences ---
@router.get("/mentor/rules")
async def get_rules(
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    mentor, _ = await _open_mentor(user["id"], session, tz)
    groups = {name: [rule.id for rule in rules] for name, rules in rules_by_group().items()}
    return {"rules": mentor.get_rules(), "groups": groups}


@router.put("/mentor/rules")
async def set_rules(
    update: EnabledRulesUpdate,
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    mentor, store = await _open_mentor(user_id, session, tz)

    try:
        mentor.set_enabled_rules(update.enabled_ids)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    await _save_state(session, user_id, store)
    return {"status": "updated", "enabled_ids": update.enabled_ids}


@router.get("/mentor/config", response_model=MentorConfig)
async def get_config(
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    mentor, _ = await _open_mentor(user["id"], session, tz)
    return mentor.get_config()


@router.put("/mentor/config", response_model=MentorConfig)
async def save_config(
    config: MentorConfig,
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    mentor, store = await _open_mentor(user_id, session, tz)
    mentor.save_config(config)
    await _save_state(session, user_id, store)
    return config


@router.delete("/mentor/state")
async def reset_state(
    user=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
    tz: tzinfo = Depends(get_user_timezone),
):
    user_id = user["id"]
    mentor, store = await _open_mentor(user_id, session, tz)
    mentor.reset()
    await _save_state(session, user_id, store)
    return {"status": "reset"}
