import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Response

load_dotenv()

from suvix.api.checkout import router as checkout_router  # noqa: E402
from suvix.bot.main import run_bot_background  # noqa: E402
from suvix.config import settings  # noqa: E402
from suvix.db import init_db  # noqa: E402

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.LOG_LEVEL,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    bot_task = None
    if settings.BOT_TOKEN:
        bot_task = asyncio.create_task(run_bot_background())
        logger.info("Bot background task scheduled.")
    else:
        logger.warning("BOT_TOKEN not set: bot NOT started.")
    yield
    if bot_task is not None:
        bot_task.cancel()
        try:
            await bot_task
        except asyncio.CancelledError:
            pass


fastapi_app = FastAPI(lifespan=lifespan)
fastapi_app.include_router(checkout_router, tags=["checkout"])


@fastapi_app.get("/health")
def health_get():
    return {"status": "ok"}


@fastapi_app.head("/health")
def health_head():
    return Response(status_code=200)
