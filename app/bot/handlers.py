import logging
from datetime import UTC, datetime

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update, WebAppInfo
from telegram.ext import ContextTypes

from app.config import WEB_APP_URL
from app.database import async_session_maker
from app.models.schemas import MentorFeedback
from app.services.analytics import AnalyticsService
from app.services.finance import running_balance
from app.services.mentor import MentorService
from app.services.storage import load_store

logger = logging.getLogger(__name__)

MAX_CHAT_INSIGHTS = 3


def format_feedback(feedback: MentorFeedback) -> str:
    lines = [feedback.message, "", f"🎯 {feedback.challenge}"]
    for insight in feedback.insights[:MAX_CHAT_INSIGHTS]:
        lines += ["", f"{insight.icon or '•'} {insight.title}", insight.body]
    return "\n".join(lines)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    user_name = update.effective_user.first_name
    welcome_text = f"Olá, {user_name}! 🚀\nSou o seu mentor financeiro. Use /mentor para ver como você está indo."

    keyboard = [[InlineKeyboardButton("✨ Abrir Mentor", web_app=WebAppInfo(url=WEB_APP_URL))]]
    await update.message.reply_text(welcome_text, reply_markup=InlineKeyboardMarkup(keyboard))


async def mentor_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    user = update.effective_user
    user_id = str(user.id)

    async with async_session_maker() as session:
        analytics = AnalyticsService(session)
        transactions = await analytics.get_user_transactions(user_id)
        goal = await analytics.get_goal(user_id)
        store = await load_store(session, user_id)

    mentor = MentorService(store, clock=lambda: datetime.now(UTC))
    feedback = mentor.get_mentor_feedback(transactions, running_balance(transactions), user.first_name, goal)
    logger.info(f"Sending mentor feedback to {user_id} ({len(feedback.insights)} insights)")

    await update.message.reply_text(format_feedback(feedback))
