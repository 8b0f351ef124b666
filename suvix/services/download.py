import logging
from enum import Enum
from typing import Callable, Optional

from suvix.api.client import BackendClient
from suvix.errors import ApiError, SuviXError
from suvix.utils import maybe_await

logger = logging.getLogger(__name__)

CONFIRM_WORD = "CONFIRM"


class DownloadState(str, Enum):
    CLOSED = "closed"
    CHECKING_RATING = "checking_rating"
    RATING = "rating"
    CONFIRMING = "confirming"


class DownloadConfirmation:
    """Gate in front of the irreversible final-file download.

    Opening checks whether the order is already rated. No token, or any error
    while checking, counts as "not rated" and the rating form is required.
    ``on_confirm(confirm_text)`` runs only when the typed word is CONFIRM (any
    case), the acknowledgement is ticked and the order is rated. Closing
    forgets everything; the next ``open()`` checks the rating again.
    """

    def __init__(
        self,
        client: BackendClient,
        order_id: str,
        *,
        on_confirm: Callable[[str], object],
        on_close: Optional[Callable] = None,
        on_change: Optional[Callable] = None,
    ):
        self.client = client
        self.order_id = order_id
        self.on_confirm = on_confirm
        self.on_close = on_close
        self.on_change = on_change
        self.is_open = False
        self.loading = False
        self._generation = 0
        self._reset()

    def _reset(self) -> None:
        self.confirm_text = ""
        self.agreed = False
        self.is_rated: Optional[bool] = None
        self.show_rating_modal = False
        self.checking_rating = False

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.state)

    @property
    def state(self) -> DownloadState:
        if not self.is_open:
            return DownloadState.CLOSED
        if self.checking_rating:
            return DownloadState.CHECKING_RATING
        if self.show_rating_modal:
            return DownloadState.RATING
        return DownloadState.CONFIRMING

    @property
    def is_confirm_valid(self) -> bool:
        return self.confirm_text.strip().upper() == CONFIRM_WORD

    @property
    def can_proceed(self) -> bool:
        return self.is_confirm_valid and self.agreed is True and self.is_rated is True

    @property
    def proceed_enabled(self) -> bool:
        return self.can_proceed and not self.loading and not self.checking_rating

    async def open(self) -> DownloadState:
        self._generation += 1
        gen = self._generation
        self._reset()
        self.is_open = True
        self.checking_rating = True
        self._changed()

        is_rated = False
        if self.client.token:
            try:
                res = await self.client.check_rating(self.order_id)
                is_rated = res.is_rated
            except SuviXError as e:
                logger.warning("rating check for %s failed: %s", self.order_id, e.message)
        else:
            logger.info("no token, rating required before download of %s", self.order_id)

        if gen != self._generation:
            return self.state
        self.checking_rating = False
        self.is_rated = is_rated
        self.show_rating_modal = not is_rated
        self._changed()
        return self.state

    def on_rating_success(self) -> None:
        if not self.is_open:
            return
        self.is_rated = True
        self.show_rating_modal = False
        self._changed()

    def set_confirm_text(self, text: str) -> None:
        self.confirm_text = text
        self._changed()

    def set_agreed(self, agreed: bool) -> None:
        self.agreed = bool(agreed)
        self._changed()

    async def confirm(self) -> bool:
        if not self.is_open or not self.proceed_enabled:
            return False
        await maybe_await(self.on_confirm(self.confirm_text))
        return True

    async def close(self) -> None:
        self._generation += 1
        was_open = self.is_open
        self._reset()
        self.is_open = False
        self.loading = False
        self._changed()
        if was_open and self.on_close is not None:
            await maybe_await(self.on_close())


class DownloadService:
    """Performs the confirmed download: releases escrow and returns the file URL."""

    def __init__(self, client: BackendClient):
        self.client = client

    async def confirm_and_get_url(self, order_id: str, confirm_text: str = CONFIRM_WORD) -> str:
        status = await self.client.get_delivery_status(order_id)
        delivery = status.delivery
        token = delivery.effective_token if delivery else None
        if not token:
            raise ApiError("Download token not found")
        res = await self.client.confirm_download(order_id, token, confirm_text.strip().upper())
        if not res.url:
            raise ApiError(res.message or "Download URL not available")
        logger.info("download confirmed for order %s", order_id)
        return res.url
