import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.bot.lifecycle import start_bot, stop_bot
from app.config import LOG_LEVEL
from app.routers import mentor, users, webhook

logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=LOG_LEVEL)
logger = logging.getLogger(__name__)


# --- Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    await start_bot()
    logger.info("Mentor API ready")

    yield

    await stop_bot()


# --- FastAPI Initialization ---
app = FastAPI(title="Mentor Financeiro API", lifespan=lifespan)

# --- CORS ---
origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- API Routers ---
app.include_router(mentor.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(webhook.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
