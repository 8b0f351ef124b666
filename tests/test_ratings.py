from unittest.mock import AsyncMock, MagicMock

import pytest

from suvix.errors import ApiError, RatingValidationError
from suvix.schemas import RatingSubmitResponse
from suvix.services.ratings import RatingForm, RatingState, respond_to_rating


@pytest.fixture
def form(client):
    client.submit_rating.return_value = RatingSubmitResponse(success=True)
    return RatingForm(client, "O1", on_success=AsyncMock(), on_close=MagicMock(), alert=AsyncMock())


def _rate_all(form, overall=5, quality=5, communication=4, delivery=5):
    form.set_score("overall", overall)
    form.set_score("quality", quality)
    form.set_score("communication", communication)
    form.set_score("deliverySpeed", delivery)


@pytest.mark.asyncio
async def test_incomplete_rating_never_reaches_server(form, client):
    form.set_score("overall", 5)
    form.set_score("quality", 4)

    assert await form.submit() is False

    client.submit_rating.assert_not_called()
    form.alert.assert_awaited_once_with("Please rate all categories before submitting")
    assert form.state is RatingState.COLLECTING


@pytest.mark.asyncio
async def test_successful_submit_calls_on_success_then_closes(form, client):
    _rate_all(form)
    form.set_review("  Great pacing  ")

    assert await form.submit() is True

    client.submit_rating.assert_awaited_once_with(
        "O1",
        {"overall": 5, "quality": 5, "communication": 4, "deliverySpeed": 5},
        "Great pacing",
    )
    form.on_success.assert_awaited_once()
    form.on_close.assert_called_once()
    assert form.state is RatingState.CLOSED


@pytest.mark.asyncio
async def test_server_error_returns_to_collecting(form, client):
    client.submit_rating.side_effect = ApiError("You have already rated this order", status_code=400)
    _rate_all(form)

    assert await form.submit() is False

    assert form.state is RatingState.COLLECTING
    form.alert.assert_awaited_once_with("You have already rated this order")
    form.on_success.assert_not_called()


@pytest.mark.asyncio
async def test_missing_token_alerts_without_request(form, client):
    client.token = None
    _rate_all(form)

    assert await form.submit() is False

    client.submit_rating.assert_not_called()
    form.alert.assert_awaited_once_with("Authentication error. Please login again.")


@pytest.mark.asyncio
async def test_submit_ignored_unless_collecting(form, client):
    _rate_all(form)
    form.state = RatingState.SUBMITTING
    assert await form.submit() is False
    client.submit_rating.assert_not_called()


@pytest.mark.asyncio
async def test_close_ignored_while_submitting(form):
    form.state = RatingState.SUBMITTING
    await form.close()
    form.on_close.assert_not_called()


def test_score_bounds(form):
    with pytest.raises(ValueError):
        form.set_score("overall", 0)
    with pytest.raises(ValueError):
        form.set_score("overall", 6)
    with pytest.raises(ValueError):
        form.set_score("vibes", 3)
    assert not form.all_rated


def test_review_length_limit(form):
    form.set_review("x" * 1000)
    with pytest.raises(RatingValidationError):
        form.set_review("x" * 1001)
    assert len(form.review) == 1000


@pytest.mark.asyncio
async def test_editor_response(client):
    client.respond_to_rating.return_value = RatingSubmitResponse(success=True)
    await respond_to_rating(client, "r1", "  Thanks for the kind words!  ")
    client.respond_to_rating.assert_awaited_once_with("r1", "Thanks for the kind words!")

    with pytest.raises(RatingValidationError):
        await respond_to_rating(client, "r1", "   ")
