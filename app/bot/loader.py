from telegram.ext import Application
from app.config import BOT_TOKEN


def build_application(token: str | None) -> Application | None:
    """PTB application for webhook mode; None when the bot is not configured."""
    if not token:
        return None
    return Application.builder().token(token).updater(None).build()


ptb_app = build_application(BOT_TOKEN)
