import os
import sys
from dotenv import load_dotenv

load_dotenv()

BOT_TOKEN = os.getenv("BOT_TOKEN")
WEB_APP_URL = os.getenv("WEB_APP_URL")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Savings goal for users who never set one
MENTOR_DEFAULT_GOAL = float(os.getenv("MENTOR_DEFAULT_GOAL", "100000"))

if MENTOR_DEFAULT_GOAL <= 0:
    print("❌ CRITICAL ERROR: MENTOR_DEFAULT_GOAL must be positive!")
    sys.exit(1)

DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    print("❌ CRITICAL ERROR: DATABASE_URL is missing!")
    sys.exit(1)

# Ensure async driver usage for SQLAlchemy compatibility
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

if not BOT_TOKEN:
    print("⚠️ WARNING: BOT_TOKEN is missing. Bot functionality will be disabled.")
