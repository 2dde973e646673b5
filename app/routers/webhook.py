import logging

from fastapi import APIRouter, Request
from telegram import Update
from telegram.error import TelegramError

from app.bot.loader import ptb_app

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook")
async def telegram_webhook(request: Request):
    if not ptb_app:
        return {"error": "Bot not initialized"}
    try:
        data = await request.json()
        update = Update.de_json(data, ptb_app.bot)
        await ptb_app.process_update(update)
        return {"status": "ok"}
    except (TelegramError, ValueError) as e:
        logger.error(f"Webhook error: {e}")
        return {"status": "error"}
