import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import socketio
from pydantic import ValidationError

from suvix.api.client import BackendClient
from suvix.config import settings
from suvix.errors import SuviXError
from suvix.schemas import Notification
from suvix.state import AppState, AppStore
from suvix.utils import maybe_await

logger = logging.getLogger(__name__)

NEW_NOTIFICATION = "notification:new"
NOTIFICATIONS_READ = "notifications:read"


def default_socket_factory() -> socketio.AsyncClient:
    return socketio.AsyncClient(
        reconnection=True,
        reconnection_attempts=0,
        reconnection_delay=2,
        reconnection_delay_max=30,
        randomization_factor=0.5,
    )


class NotificationChannel:
    """Live notification list and unread counter for the signed-in user.

    Follows the store: whenever the identity (user id + token) changes, the old
    socket is disconnected first, then the list is fetched once over REST and a
    new socket is opened. Pushed notifications are prepended and bump the
    unread counter by one each. Nothing is acknowledged, and events missed
    while disconnected are only picked up by the next full fetch.
    """

    def __init__(
        self,
        store: AppStore,
        *,
        client_factory: Callable[[str], BackendClient] = BackendClient,
        socket_factory: Callable[[], Any] = default_socket_factory,
        socket_url: Optional[str] = None,
    ):
        self.store = store
        self.notifications: List[Notification] = []
        self.unread = 0
        self._client_factory = client_factory
        self._socket_factory = socket_factory
        self._socket_url = (socket_url or settings.BACKEND_URL).rstrip("/")
        self._socket = None
        self._identity: Optional[Tuple[str, str]] = None
        self._lock = asyncio.Lock()
        self._listeners: List[Callable[[Notification], Any]] = []
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe = store.subscribe(self._on_state_change)

    @property
    def connected(self) -> bool:
        return self._socket is not None

    def add_listener(self, listener: Callable[[Notification], Any]) -> None:
        self._listeners.append(listener)

    def _on_state_change(self, new: AppState, old: AppState) -> None:
        if new.identity == old.identity:
            return
        self._task = asyncio.get_running_loop().create_task(self.refresh())

    async def wait_idle(self) -> None:
        if self._task is not None:
            await self._task

    async def refresh(self) -> None:
        """Bind to whoever is signed in now, reconnecting if that changed."""
        async with self._lock:
            identity = self.store.state.identity
            if identity == self._identity and (identity is None or self._socket is not None):
                return
            await self._teardown()
            self._identity = identity
            self.notifications = []
            self.unread = 0
            if identity is None:
                return
            user_id, token = identity
            await self._fetch(token)
            await self._connect(user_id, token)

    async def _fetch(self, token: str) -> None:
        client = self._client_factory(token)
        try:
            res = await client.list_notifications()
        except SuviXError as e:
            logger.warning("failed to load notifications: %s", e.message)
            return
        finally:
            await client.aclose()
        self.notifications = list(res.notifications)
        if res.unread_count is not None:
            self.unread = res.unread_count
        else:
            self.unread = sum(1 for n in self.notifications if not n.read)

    async def _connect(self, user_id: str, token: str) -> None:
        sio = self._socket_factory()
        sio.on(NEW_NOTIFICATION, self._on_notification)
        try:
            await sio.connect(
                f"{self._socket_url}?userId={user_id}",
                auth={"token": token},
                transports=["polling", "websocket"],
            )
        except socketio.exceptions.ConnectionError as e:
            logger.warning("notification socket for %s failed to connect: %s", user_id, e)
            return
        self._socket = sio
        logger.info("notification socket connected for %s", user_id)

    async def _teardown(self) -> None:
        sio, self._socket = self._socket, None
        if sio is not None:
            await sio.disconnect()
            logger.info("notification socket disconnected")

    async def _on_notification(self, data: Dict[str, Any]) -> None:
        try:
            notification = Notification.model_validate(data)
        except ValidationError as e:
            logger.warning("dropping malformed notification: %s", e)
            return
        self.notifications.insert(0, notification)
        self.unread += 1
        for listener in list(self._listeners):
            await maybe_await(listener(notification))

    async def mark_all_read(self) -> None:
        self.unread = 0
        self.notifications = [n.model_copy(update={"read": True}) for n in self.notifications]
        identity = self._identity
        if identity is None:
            return
        user_id, token = identity
        client = self._client_factory(token)
        try:
            await client.mark_all_notifications_read()
        except SuviXError as e:
            logger.warning("failed to mark notifications read: %s", e.message)
        finally:
            await client.aclose()
        if self._socket is not None:
            await self._socket.emit(NOTIFICATIONS_READ, {"userId": user_id})

    async def mark_read(self, notification_id: str) -> bool:
        """Mark one notification read; returns False if it was not unread here."""
        for i, n in enumerate(self.notifications):
            if n.id == notification_id and not n.read:
                self.notifications[i] = n.model_copy(update={"read": True})
                self.unread = max(self.unread - 1, 0)
                break
        else:
            return False
        identity = self._identity
        if identity is not None:
            client = self._client_factory(identity[1])
            try:
                await client.mark_notification_read(notification_id)
            except SuviXError as e:
                logger.warning("failed to mark notification %s read: %s", notification_id, e.message)
            finally:
                await client.aclose()
        return True

    async def close(self) -> None:
        self._unsubscribe()
        async with self._lock:
            await self._teardown()
            self._identity = None
