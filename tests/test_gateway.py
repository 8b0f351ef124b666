import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from suvix.schemas import GatewayResponse
from suvix.services.payments.base import PAYMENT_FAILED, CheckoutOptions
from suvix.services.payments.mock import MockGateway
from suvix.services.payments.razorpay import RazorpayGateway


def _options(order_id="order_X"):
    return CheckoutOptions(key="rzp_test", amount=50000, currency="INR", name="SuviX",
                           description="Order: Reel", order_id=order_id)


def _response(order_id="order_X"):
    return GatewayResponse(razorpay_order_id=order_id, razorpay_payment_id="pay_1", razorpay_signature="sig")


class SlowGateway(MockGateway):
    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def _load_sdk(self):
        self.load_calls += 1
        await self.release.wait()
        return self.available


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_attempt():
    gw = SlowGateway()
    waiters = [asyncio.create_task(gw.ensure_loaded()) for _ in range(3)]
    await asyncio.sleep(0)
    gw.release.set()
    assert await asyncio.gather(*waiters) == [True, True, True]
    assert gw.load_calls == 1
    assert gw.loaded
    assert await gw.ensure_loaded() is True
    assert gw.load_calls == 1


@pytest.mark.asyncio
async def test_failed_load_is_retried_next_time():
    gw = MockGateway(available=False)
    assert await gw.ensure_loaded() is False
    assert not gw.loaded
    gw.available = True
    assert await gw.ensure_loaded() is True
    assert gw.load_calls == 2


@pytest.mark.asyncio
async def test_session_fires_only_one_terminal_callback():
    gw = MockGateway()
    handler, ondismiss, failed = AsyncMock(), AsyncMock(), AsyncMock()
    session = gw.open(_options(), handler=handler, ondismiss=ondismiss)
    session.on(PAYMENT_FAILED, failed)
    assert gw.get_session("order_X") is session
    assert session.url == "https://mock/checkout/order_X"

    await session.dismiss()
    await session.complete(_response())
    await session.fail({"description": "late"})

    ondismiss.assert_awaited_once()
    handler.assert_not_called()
    failed.assert_not_called()
    assert gw.get_session("order_X") is None


@pytest.mark.asyncio
async def test_failed_event_reaches_listeners():
    gw = MockGateway()
    failed = AsyncMock()
    session = gw.open(_options(), handler=AsyncMock())
    session.on(PAYMENT_FAILED, failed)
    await session.fail({"description": "Card declined"})
    failed.assert_awaited_once_with({"description": "Card declined"})


def test_reopening_replaces_session():
    gw = MockGateway()
    first = gw.open(_options(), handler=AsyncMock())
    second = gw.open(_options(), handler=AsyncMock())
    assert first is not second
    assert gw.get_session("order_X") is second


@pytest.mark.asyncio
async def test_razorpay_load_checks_script(monkeypatch):
    monkeypatch.setattr("suvix.config.settings.RAZORPAY_CHECKOUT_URL", "https://cdn.test/checkout.js")
    monkeypatch.setattr("suvix.config.settings.APP_BASE_URL", "https://pay.suvix.test/")
    hits = []

    def handler(request):
        hits.append(str(request.url))
        return httpx.Response(200, text="/* checkout */")

    gw = RazorpayGateway(transport=httpx.MockTransport(handler))
    assert await gw.ensure_loaded() is True
    assert await gw.ensure_loaded() is True
    assert hits == ["https://cdn.test/checkout.js"]
    assert gw.session_url("order_X") == "https://pay.suvix.test/checkout/order_X"


@pytest.mark.asyncio
async def test_razorpay_load_failure_returns_false():
    gw = RazorpayGateway(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    assert await gw.ensure_loaded() is False
    assert not gw.loaded


@pytest.mark.asyncio
async def test_cancelled_session_fires_nothing():
    gw = MockGateway()
    handler, ondismiss = AsyncMock(), AsyncMock()
    session = gw.open(_options(), handler=handler, ondismiss=ondismiss)

    assert session.cancel() is True
    assert session.cancel() is False
    await session.complete(_response())
    await session.dismiss()

    handler.assert_not_called()
    ondismiss.assert_not_called()
    assert gw.get_session("order_X") is None


def test_reopening_cancels_previous_session():
    gw = MockGateway()
    first = gw.open(_options(), handler=AsyncMock())
    gw.open(_options(), handler=AsyncMock())
    assert first.finished
