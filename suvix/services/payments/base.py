import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from suvix.schemas import GatewayResponse
from suvix.utils import maybe_await

logger = logging.getLogger(__name__)

Callback = Callable[..., Union[Awaitable[Any], Any]]

PAYMENT_FAILED = "payment.failed"


@dataclass
class CheckoutOptions:
    key: str
    amount: int
    currency: str
    name: str
    description: str
    order_id: str
    prefill: Dict[str, str] = field(default_factory=dict)
    theme: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CheckoutSession:
    """One opened checkout. Fires at most one terminal callback.

    ``handler`` receives the gateway's payment fields, ``ondismiss`` fires when
    the user closes the checkout, and listeners registered with
    ``on("payment.failed", ...)`` receive the gateway error dict.
    """

    def __init__(
        self,
        options: CheckoutOptions,
        handler: Callback,
        ondismiss: Optional[Callback] = None,
        url: str | None = None,
    ):
        self.options = options
        self.url = url
        self.finished = False
        # the hosted page must echo this back on every event it posts
        self.nonce = secrets.token_urlsafe(16)
        self._handler = handler
        self._ondismiss = ondismiss
        self._listeners: Dict[str, List[Callback]] = {}
        self._on_finish: List[Callable[["CheckoutSession"], None]] = []

    @property
    def order_id(self) -> str:
        return self.options.order_id

    def on(self, event: str, callback: Callback) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def _finish(self) -> bool:
        if self.finished:
            logger.info("checkout %s already finished, ignoring callback", self.order_id)
            return False
        self.finished = True
        for cb in self._on_finish:
            cb(self)
        return True

    def cancel(self) -> bool:
        """Retire a session nobody will wait for; its callbacks never fire."""
        if self._finish():
            logger.info("checkout %s cancelled", self.order_id)
            return True
        return False

    async def complete(self, response: GatewayResponse) -> None:
        if self._finish():
            await maybe_await(self._handler(response))

    async def dismiss(self) -> None:
        if self._finish() and self._ondismiss is not None:
            await maybe_await(self._ondismiss())

    async def fail(self, error: Dict[str, Any]) -> None:
        if not self._finish():
            return
        for cb in self._listeners.get(PAYMENT_FAILED, []):
            await maybe_await(cb(error))


class BaseGateway(ABC):
    """Owns the checkout SDK and every open checkout session."""

    def __init__(self) -> None:
        self._loading: Optional[asyncio.Future] = None
        self.sessions: Dict[str, CheckoutSession] = {}

    async def ensure_loaded(self) -> bool:
        """Load the checkout SDK once; concurrent callers share one load.

        A failed load is not cached, so the next user-initiated attempt tries
        again.
        """
        task = self._loading
        if task is None:
            task = self._loading = asyncio.ensure_future(self._load_sdk())
        ok = await task
        if not ok and self._loading is task:
            self._loading = None
        return ok

    @property
    def loaded(self) -> bool:
        task = self._loading
        return task is not None and task.done() and task.result() is True

    def open(
        self,
        options: CheckoutOptions,
        handler: Callback,
        ondismiss: Optional[Callback] = None,
    ) -> CheckoutSession:
        session = CheckoutSession(
            options, handler, ondismiss, url=self.session_url(options.order_id)
        )
        previous = self.sessions.get(options.order_id)
        if previous is not None:
            previous.cancel()
        self.sessions[options.order_id] = session
        session._on_finish.append(self._discard)
        logger.info("checkout opened for gateway order %s", options.order_id)
        return session

    def get_session(self, gateway_order_id: str) -> Optional[CheckoutSession]:
        return self.sessions.get(gateway_order_id)

    def _discard(self, session: CheckoutSession) -> None:
        if self.sessions.get(session.order_id) is session:
            del self.sessions[session.order_id]

    @abstractmethod
    async def _load_sdk(self) -> bool:
        """Make the checkout SDK available; return False if it cannot be loaded."""

    @abstractmethod
    def session_url(self, gateway_order_id: str) -> str:
        """Where the user completes the checkout for ``gateway_order_id``."""
