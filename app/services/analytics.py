from datetime import UTC, datetime, tzinfo

from sqlalchemy import case, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import MENTOR_DEFAULT_GOAL
from app.models.schemas import Transaction, TransactionType
from app.models.sql import CategoryDB, TransactionDB, UserDB


def _to_local(moment: datetime, tz: tzinfo) -> datetime:
    # SQLite drops tzinfo; stored values are UTC
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(tz)


class AnalyticsService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_transactions(self, user_id: str, tz: tzinfo = UTC) -> list[Transaction]:
        """
        Loads the user's full history as mentor transactions, with dates in
        the user's timezone so day and hour bucketing match what they see.
        """
        stmt = (
            select(
                TransactionDB.id,
                TransactionDB.amount,
                TransactionDB.date,
                TransactionDB.note,
                TransactionDB.vendor,
                CategoryDB.name.label("category"),
                CategoryDB.type,
            )
            .join(CategoryDB, TransactionDB.category_id == CategoryDB.id)
            .where(TransactionDB.user_id == user_id)
            .order_by(desc(TransactionDB.date), desc(TransactionDB.id))
        )

        result = await self.session.execute(stmt)

        return [
            Transaction(
                id=row.id,
                description=row.note or row.category,
                vendor=row.vendor,
                amount=row.amount,
                date=_to_local(row.date, tz),
                category=row.category,
                type=TransactionType.INCOME if row.type == "income" else TransactionType.EXPENSE,
            )
            for row in result.all()
        ]

    async def get_balance(self, user_id: str) -> float:
        """All-time income minus expenses."""
        stmt = (
            select(func.sum(case((CategoryDB.type == "income", TransactionDB.amount), else_=-TransactionDB.amount)))
            .join(CategoryDB, TransactionDB.category_id == CategoryDB.id)
            .where(TransactionDB.user_id == user_id)
        )
        result = await self.session.execute(stmt)
        return float(result.scalar() or 0)

    async def get_goal(self, user_id: str) -> float:
        """The user's savings goal, or the configured default when unset."""
        result = await self.session.execute(select(UserDB.goal).where(UserDB.id == user_id))
        goal = result.scalar_one_or_none()
        return float(goal) if goal else MENTOR_DEFAULT_GOAL
