import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, Optional

from suvix.api.client import BackendClient
from suvix.config import settings
from suvix.errors import NotAuthenticated, RatingValidationError, SuviXError
from suvix.schemas import RATING_CATEGORIES, REVIEW_MAX_LENGTH, RatingSubmitResponse
from suvix.utils import maybe_await

logger = logging.getLogger(__name__)


class RatingState(str, Enum):
    COLLECTING = "collecting"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    CLOSED = "closed"


class RatingForm:
    """Client-side rating of an editor after delivery.

    All four categories must be scored 1-5 before anything is sent. A
    successful submit is the only way the download gate learns that the order
    is rated: ``on_success`` fires after a short thank-you pause, then the form
    closes. Errors go to ``alert`` and the form returns to collecting.
    """

    def __init__(
        self,
        client: BackendClient,
        order_id: str,
        *,
        on_success: Optional[Callable] = None,
        on_close: Optional[Callable] = None,
        alert: Optional[Callable[[str], object]] = None,
        on_change: Optional[Callable] = None,
    ):
        self.client = client
        self.order_id = order_id
        self.on_success = on_success
        self.on_close = on_close
        self.alert = alert
        self.on_change = on_change
        self.scores: Dict[str, int] = {category: 0 for category in RATING_CATEGORIES}
        self.review = ""
        self.state = RatingState.COLLECTING

    def _set_state(self, state: RatingState) -> None:
        self.state = state
        if self.on_change is not None:
            self.on_change(state)

    async def _alert(self, message: str) -> None:
        logger.info("rating for %s: %s", self.order_id, message)
        if self.alert is not None:
            await maybe_await(self.alert(message))

    def set_score(self, category: str, value: int) -> None:
        if category not in self.scores:
            raise ValueError(f"unknown rating category: {category}")
        if not 1 <= value <= 5:
            raise ValueError("rating must be between 1 and 5")
        self.scores[category] = value

    def set_review(self, text: str) -> None:
        if len(text) > REVIEW_MAX_LENGTH:
            raise RatingValidationError(
                f"Review must be at most {REVIEW_MAX_LENGTH} characters"
            )
        self.review = text

    @property
    def all_rated(self) -> bool:
        return all(score >= 1 for score in self.scores.values())

    def validate(self) -> None:
        if not self.all_rated:
            raise RatingValidationError()

    async def submit(self) -> bool:
        if self.state is not RatingState.COLLECTING:
            return False
        try:
            self.validate()
        except RatingValidationError as e:
            await self._alert(e.message)
            return False
        if not self.client.token:
            await self._alert(NotAuthenticated().message)
            return False

        self._set_state(RatingState.SUBMITTING)
        try:
            await self.client.submit_rating(self.order_id, dict(self.scores), self.review.strip())
        except SuviXError as e:
            self._set_state(RatingState.COLLECTING)
            await self._alert(e.message or "Failed to submit rating")
            return False

        self._set_state(RatingState.SUBMITTED)
        await asyncio.sleep(settings.RATING_SUCCESS_DELAY)
        if self.on_success is not None:
            await maybe_await(self.on_success())
        await self.close()
        return True

    async def close(self) -> None:
        if self.state in (RatingState.SUBMITTING, RatingState.CLOSED):
            return
        self._set_state(RatingState.CLOSED)
        if self.on_close is not None:
            await maybe_await(self.on_close())


async def respond_to_rating(
    client: BackendClient, rating_id: str, text: str
) -> RatingSubmitResponse:
    """Attach the editor's one-time public response to a rating."""
    text = text.strip()
    if not text:
        raise RatingValidationError("Response cannot be empty")
    if len(text) > REVIEW_MAX_LENGTH:
        raise RatingValidationError(
            f"Response must be at most {REVIEW_MAX_LENGTH} characters"
        )
    return await client.respond_to_rating(rating_id, text)
