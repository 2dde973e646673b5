import hmac
import hashlib
import json
import logging
import urllib.parse
from datetime import UTC, timedelta, timezone, tzinfo
from typing import AsyncGenerator
from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import BOT_TOKEN
from app.database import async_session_maker

logger = logging.getLogger(__name__)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


def check_init_data(init_data: str, bot_token: str) -> dict:
    """
    Validates Telegram Web App init data and returns the embedded user.
    Raises HTTPException on any integrity problem.
    """
    parsed_data = dict(urllib.parse.parse_qsl(init_data))
    received_hash = parsed_data.pop("hash", None)
    if not received_hash:
        raise HTTPException(status_code=401, detail="No hash provided")

    # Telegram data-check-string requires alphabetical sorting of keys
    data_check_string = "\n".join(f"{k}={v}" for k, v in sorted(parsed_data.items()))

    secret_key = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    calculated_hash = hmac.new(secret_key, data_check_string.encode(), hashlib.sha256).hexdigest()

    if not hmac.compare_digest(calculated_hash, received_hash):
        logger.warning("Init data hash mismatch")
        raise HTTPException(status_code=403, detail="Data integrity check failed")

    user_data = json.loads(parsed_data.get("user", "{}"))
    user_data["id"] = str(user_data["id"])
    return user_data


async def verify_telegram_authentication(x_telegram_init_data: str = Header(None, alias="X-Telegram-Init-Data")):
    if not x_telegram_init_data:
        raise HTTPException(status_code=401, detail="Missing auth header")

    if not BOT_TOKEN:
        logger.error("BOT_TOKEN is missing on server")
        raise HTTPException(status_code=500, detail="Server config error")

    try:
        return check_init_data(x_telegram_init_data, BOT_TOKEN)
    except HTTPException:
        raise
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Invalid init data: {e}")
        raise HTTPException(status_code=401, detail="Invalid authentication data")


async def get_user_timezone(x_timezone_offset: str | None = Header(None, alias="X-Timezone-Offset")) -> tzinfo:
    """
    Offset in minutes as reported by JS `getTimezoneOffset()` (UTC-3 is "180").
    Missing or garbled values fall back to UTC.
    """
    if not x_timezone_offset or not x_timezone_offset.lstrip("-").isdigit():
        return UTC

    offset_minutes = int(x_timezone_offset)
    if abs(offset_minutes) >= 24 * 60:
        return UTC
    return timezone(-timedelta(minutes=offset_minutes))
