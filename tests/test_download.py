import asyncio
import itertools
from unittest.mock import AsyncMock, MagicMock

import pytest

from suvix.errors import ApiError
from suvix.schemas import (
    DeliveryStatusResponse,
    DownloadConfirmResponse,
    RatingCheckResponse,
    RatingSubmitResponse,
)
from suvix.services.download import DownloadConfirmation, DownloadService, DownloadState
from suvix.services.ratings import RatingForm


@pytest.fixture
def confirmation(client):
    client.check_rating.return_value = RatingCheckResponse(is_rated=True)
    return DownloadConfirmation(client, "O1", on_confirm=AsyncMock(), on_close=MagicMock())


@pytest.mark.asyncio
async def test_rated_order_goes_straight_to_confirming(confirmation, client):
    assert await confirmation.open() is DownloadState.CONFIRMING
    client.check_rating.assert_awaited_once_with("O1")
    assert confirmation.is_rated is True
    assert confirmation.show_rating_modal is False


@pytest.mark.asyncio
async def test_check_error_fails_closed(confirmation, client):
    client.check_rating.side_effect = ApiError("Network error. Please check your connection.")
    assert await confirmation.open() is DownloadState.RATING
    assert confirmation.is_rated is False


@pytest.mark.asyncio
async def test_no_token_requires_rating_without_request(confirmation, client):
    client.token = None
    assert await confirmation.open() is DownloadState.RATING
    client.check_rating.assert_not_called()


@pytest.mark.asyncio
async def test_lowercase_confirm_enables_proceed(confirmation):
    await confirmation.open()
    confirmation.set_confirm_text("confirm")
    confirmation.set_agreed(True)

    assert confirmation.is_confirm_valid
    assert confirmation.proceed_enabled
    assert await confirmation.confirm() is True
    confirmation.on_confirm.assert_awaited_once_with("confirm")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text,agreed,rated",
    list(itertools.product([" CONFIRM ", "confirmed", ""], [True, False], [True, False])),
)
async def test_on_confirm_iff_guard_holds(client, text, agreed, rated):
    client.check_rating.return_value = RatingCheckResponse(is_rated=rated)
    on_confirm = AsyncMock()
    dc = DownloadConfirmation(client, "O1", on_confirm=on_confirm)
    await dc.open()
    dc.set_confirm_text(text)
    dc.set_agreed(agreed)

    await dc.confirm()

    expected = text.strip().upper() == "CONFIRM" and agreed and rated
    assert on_confirm.called is expected


@pytest.mark.asyncio
async def test_disabled_while_loading(confirmation):
    await confirmation.open()
    confirmation.set_confirm_text("CONFIRM")
    confirmation.set_agreed(True)
    confirmation.loading = True
    assert confirmation.can_proceed
    assert not confirmation.proceed_enabled
    assert await confirmation.confirm() is False


@pytest.mark.asyncio
async def test_close_and_reopen_resets_everything(confirmation, client):
    await confirmation.open()
    confirmation.set_confirm_text("CONFIRM")
    confirmation.set_agreed(True)

    await confirmation.close()
    confirmation.on_close.assert_called_once()
    assert confirmation.state is DownloadState.CLOSED
    assert confirmation.confirm_text == ""
    assert confirmation.agreed is False
    assert confirmation.is_rated is None

    client.check_rating.return_value = RatingCheckResponse(is_rated=False)
    assert await confirmation.open() is DownloadState.RATING
    assert client.check_rating.await_count == 2


@pytest.mark.asyncio
async def test_check_result_after_close_is_dropped(client):
    release = asyncio.Event()

    async def slow_check(order_id):
        await release.wait()
        return RatingCheckResponse(is_rated=True)

    client.check_rating.side_effect = slow_check
    dc = DownloadConfirmation(client, "O1", on_confirm=AsyncMock())
    task = asyncio.create_task(dc.open())
    await asyncio.sleep(0)
    assert dc.state is DownloadState.CHECKING_RATING

    await dc.close()
    release.set()
    await task

    assert dc.state is DownloadState.CLOSED
    assert dc.is_rated is None


@pytest.mark.asyncio
async def test_rating_gate_scenario(client):
    client.check_rating.return_value = RatingCheckResponse(is_rated=False)
    client.submit_rating.return_value = RatingSubmitResponse(success=True)
    dc = DownloadConfirmation(client, "O1", on_confirm=AsyncMock())

    assert await dc.open() is DownloadState.RATING

    form = RatingForm(client, "O1", on_success=dc.on_rating_success)
    form.set_score("overall", 5)
    form.set_score("quality", 5)
    form.set_score("communication", 4)
    form.set_score("deliverySpeed", 5)
    assert await form.submit() is True

    assert dc.state is DownloadState.CONFIRMING
    assert dc.is_rated is True


@pytest.mark.asyncio
async def test_download_service_returns_url(client):
    client.get_delivery_status.return_value = DeliveryStatusResponse.model_validate(
        {"delivery": {"orderId": "O1", "downloadToken": "dl-token", "fileName": "final.mp4"}}
    )
    client.confirm_download.return_value = DownloadConfirmResponse.model_validate(
        {"success": True, "downloadUrl": "https://cdn.test/final.mp4"}
    )

    url = await DownloadService(client).confirm_and_get_url("O1", " confirm ")

    assert url == "https://cdn.test/final.mp4"
    client.confirm_download.assert_awaited_once_with("O1", "dl-token", "CONFIRM")


@pytest.mark.asyncio
async def test_download_service_without_token(client):
    client.get_delivery_status.return_value = DeliveryStatusResponse(delivery=None)
    with pytest.raises(ApiError) as exc:
        await DownloadService(client).confirm_and_get_url("O1")
    assert exc.value.message == "Download token not found"
    client.confirm_download.assert_not_called()
