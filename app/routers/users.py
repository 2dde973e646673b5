import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_session, verify_telegram_authentication
from app.models.schemas import GoalUpdate
from app.models.sql import UserDB
from app.services.analytics import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.post("/users/me/settings/goal")
async def update_goal(
    settings: GoalUpdate,
    user_data=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
):
    """
    Stores the savings goal the mentor measures progress against.
    """
    user_id = user_data["id"]

    stmt = select(UserDB).where(UserDB.id == user_id)
    result = await session.execute(stmt)
    user_db = result.scalar_one_or_none()

    if not user_db:
        user_db = UserDB(id=user_id)
        session.add(user_db)

    user_db.goal = settings.goal

    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception(f"Failed to save goal for user {user_id}")
        raise HTTPException(status_code=500, detail="Database error") from e

    return {"status": "updated", "goal": float(settings.goal)}


@router.get("/users/me")
async def get_user_profile(
    user_data=Depends(verify_telegram_authentication),
    session: AsyncSession = Depends(get_session),
):
    user_id = user_data["id"]
    analytics = AnalyticsService(session)

    return {
        "id": user_id,
        "goal": await analytics.get_goal(user_id),
        "balance": await analytics.get_balance(user_id),
    }
