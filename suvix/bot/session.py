import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from telegram.ext import ContextTypes

from suvix.api.client import BackendClient
from suvix.db import SessionLocal
from suvix.i18n import t
from suvix.services import user_service
from suvix.services.notifications import NotificationChannel
from suvix.state import AppStore

logger = logging.getLogger(__name__)


@dataclass
class UserSession:
    """Everything the bot keeps for one Telegram user between updates."""

    tg_id: str
    store: AppStore
    client: BackendClient
    channel: Optional[NotificationChannel] = None
    lang: str = "en"
    flows: Dict[str, Any] = field(default_factory=dict)

    def _(self, key: str, **kwargs) -> str:
        return t(key, self.lang, **kwargs)

    @property
    def is_authenticated(self) -> bool:
        return self.store.state.is_authenticated


def client_factory(store: AppStore) -> BackendClient:
    return BackendClient(lambda: store.state.token)


def channel_factory(store: AppStore) -> NotificationChannel:
    return NotificationChannel(store)


async def get_session(update, context: ContextTypes.DEFAULT_TYPE) -> UserSession:
    tg_user = update.effective_user
    tg_id = str(tg_user.id)
    sessions = context.bot_data.setdefault("sessions", {})
    session = sessions.get(tg_id)
    if session is not None:
        return session

    db = SessionLocal()
    try:
        row = user_service.get_or_create_user(db, tg_id, tg_user.username)
        lang = row.lang
    finally:
        db.close()

    store = user_service.restore_store(tg_id, session_factory=SessionLocal)
    session = UserSession(tg_id=tg_id, store=store, client=client_factory(store), lang=lang)
    session.channel = channel_factory(store)
    chat_id = update.effective_chat.id if update.effective_chat else tg_user.id

    async def forward(notification):
        await context.bot.send_message(
            chat_id=chat_id,
            text=session._("notifications.new", title=notification.title, message=notification.message),
        )

    session.channel.add_listener(forward)
    if store.state.is_authenticated:
        await session.channel.refresh()
    sessions[tg_id] = session
    logger.info("session ready for %s (authenticated=%s)", tg_id, session.is_authenticated)
    return session


async def close_sessions(bot_data: Dict[str, Any]) -> None:
    for session in bot_data.pop("sessions", {}).values():
        if session.channel is not None:
            await session.channel.close()
        await session.client.aclose()
