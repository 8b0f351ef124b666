from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from suvix.app import fastapi_app
from suvix.services.payments import get_gateway
from suvix.services.payments.base import CheckoutOptions
from suvix.services.payments.mock import MockGateway


@pytest.fixture
def gateway():
    gw = MockGateway()
    fastapi_app.dependency_overrides[get_gateway] = lambda: gw
    yield gw
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def http():
    with TestClient(fastapi_app) as c:
        yield c


def _open(gw, handler=None, ondismiss=None, name="Asha"):
    opts = CheckoutOptions(key="rzp_test_key", amount=50000, currency="INR", name="SuviX",
                           description="Order: Reel", order_id="order_X",
                           prefill={"name": name, "email": "asha@example.com"})
    return gw.open(opts, handler=handler or AsyncMock(), ondismiss=ondismiss or AsyncMock())


def _fields(order_id="order_X"):
    return {"razorpay_order_id": order_id, "razorpay_payment_id": "pay_1", "razorpay_signature": "sig"}


def _nonce(session):
    return {"X-Checkout-Nonce": session.nonce}


def test_app_startup_without_bot(http):
    r = http.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert http.head("/health").status_code == 200


def test_checkout_page_renders_options(http, gateway):
    session = _open(gateway)
    r = http.get("/checkout/order_X")
    assert r.status_code == 200
    assert "checkout.razorpay.com" in r.text
    assert '"order_id": "order_X"' in r.text
    assert '"key": "rzp_test_key"' in r.text
    assert session.nonce in r.text


def test_checkout_page_escapes_prefill(http, gateway):
    _open(gateway, name="</script><script>alert(1)</script>")
    r = http.get("/checkout/order_X")
    assert r.status_code == 200
    assert "<script>alert(1)</script>" not in r.text
    assert "\\u003c/script\\u003e" in r.text


def test_unknown_session_is_404(http, gateway):
    assert http.get("/checkout/nope").status_code == 404
    r = http.post("/checkout/nope/callback", json=_fields("nope"), headers={"X-Checkout-Nonce": "x"})
    assert r.status_code == 404


def test_callback_dispatches_to_handler_once(http, gateway):
    handler = AsyncMock()
    session = _open(gateway, handler=handler)

    r = http.post("/checkout/order_X/callback", json=_fields(), headers=_nonce(session))
    assert r.status_code == 200
    handler.assert_awaited_once()
    assert handler.await_args.args[0].razorpay_payment_id == "pay_1"

    # session is finished and gone
    r = http.post("/checkout/order_X/callback", json=_fields(), headers=_nonce(session))
    assert r.status_code == 404


def test_events_without_nonce_are_rejected(http, gateway):
    handler, ondismiss = AsyncMock(), AsyncMock()
    session = _open(gateway, handler=handler, ondismiss=ondismiss)

    assert http.post("/checkout/order_X/dismiss").status_code == 403
    assert http.post("/checkout/order_X/dismiss", headers={"X-Checkout-Nonce": "guess"}).status_code == 403
    r = http.post("/checkout/order_X/failed", json={"error": {}})
    assert r.status_code == 403
    assert http.post("/checkout/order_X/callback", json=_fields()).status_code == 403

    ondismiss.assert_not_called()
    handler.assert_not_called()
    assert not session.finished


def test_cancelled_session_link_is_gone(http, gateway):
    session = _open(gateway)
    session.cancel()
    assert http.get("/checkout/order_X").status_code == 404
    r = http.post("/checkout/order_X/callback", json=_fields(), headers=_nonce(session))
    assert r.status_code == 404


def test_callback_rejects_mismatched_order(http, gateway):
    handler = AsyncMock()
    session = _open(gateway, handler=handler)
    r = http.post("/checkout/order_X/callback", json=_fields("order_Y"), headers=_nonce(session))
    assert r.status_code == 400
    handler.assert_not_called()


def test_callback_requires_all_gateway_fields(http, gateway):
    session = _open(gateway)
    r = http.post("/checkout/order_X/callback", json={"razorpay_order_id": "order_X"},
                  headers=_nonce(session))
    assert r.status_code == 422


def test_dismiss(http, gateway):
    ondismiss = AsyncMock()
    session = _open(gateway, ondismiss=ondismiss)
    assert http.post("/checkout/order_X/dismiss", headers=_nonce(session)).status_code == 200
    ondismiss.assert_awaited_once()


def test_failed_event(http, gateway):
    failed = AsyncMock()
    session = _open(gateway)
    session.on("payment.failed", failed)
    r = http.post("/checkout/order_X/failed", json={"error": {"description": "Card declined"}},
                  headers=_nonce(session))
    assert r.status_code == 200
    failed.assert_awaited_once_with({"description": "Card declined"})
