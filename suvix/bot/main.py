import asyncio
import logging

from telegram.ext import Application, Defaults

from suvix.bot import flows, handlers
from suvix.bot.session import close_sessions
from suvix.config import settings

logger = logging.getLogger(__name__)


async def _post_shutdown(app: Application) -> None:
    await close_sessions(app.bot_data)


def create_bot_app(token: str | None = None) -> Application:
    app = (
        Application.builder()
        .token(token or settings.BOT_TOKEN)
        .defaults(Defaults(parse_mode=None))
        .post_shutdown(_post_shutdown)
        .build()
    )
    app.add_handler(handlers.start_handler)
    app.add_handler(handlers.help_handler)
    app.add_handler(handlers.login_handler)
    app.add_handler(handlers.logout_handler)
    app.add_handler(handlers.lang_handler)
    app.add_handler(handlers.notifications_handler)
    app.add_handler(handlers.notifications_read_handler)
    app.add_handler(handlers.notification_read_one_handler)
    app.add_handler(handlers.respond_handler)
    app.add_handler(handlers.stats_handler)

    app.add_handler(flows.pay_handler)
    app.add_handler(flows.pay_retry_handler)
    app.add_handler(flows.pay_start_handler)
    app.add_handler(flows.rate_handler)
    app.add_handler(flows.rate_score_handler)
    app.add_handler(flows.rate_review_handler)
    app.add_handler(flows.rate_submit_handler)
    app.add_handler(flows.download_handler)
    app.add_handler(flows.download_agree_handler)
    app.add_handler(flows.download_proceed_handler)
    app.add_handler(flows.download_cancel_handler)
    app.add_handler(flows.text_handler)
    return app


async def run_bot_background():
    app = create_bot_app()
    await app.initialize()
    await app.start()
    logger.info("telegram bot polling")
    try:
        await app.updater.start_polling()
        while True:
            await asyncio.sleep(3600)
    finally:
        await app.updater.stop()
        await app.stop()
        await app.shutdown()
