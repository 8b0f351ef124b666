import logging
import secrets
from pathlib import Path
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from suvix.config import settings
from suvix.schemas import GatewayResponse
from suvix.services.payments import get_gateway
from suvix.services.payments.base import BaseGateway, CheckoutSession

logger = logging.getLogger(__name__)

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


class PaymentFailedPayload(BaseModel):
    error: Dict[str, Any] = Field(default_factory=dict)


def _session(gateway_order_id: str, gateway: BaseGateway) -> CheckoutSession:
    session = gateway.get_session(gateway_order_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Checkout session not found")
    return session


def _posted_session(gateway_order_id: str, gateway: BaseGateway, nonce: str | None) -> CheckoutSession:
    session = _session(gateway_order_id, gateway)
    if not nonce or not secrets.compare_digest(nonce, session.nonce):
        logger.warning("rejected checkout event for %s: bad nonce", gateway_order_id)
        raise HTTPException(status_code=403, detail="Invalid checkout nonce")
    return session


@router.get("/checkout/{gateway_order_id}", response_class=HTMLResponse)
async def checkout_page(
    request: Request, gateway_order_id: str, gateway: BaseGateway = Depends(get_gateway)
):
    session = _session(gateway_order_id, gateway)
    return templates.TemplateResponse(
        request,
        "checkout.html",
        {
            "script_url": settings.RAZORPAY_CHECKOUT_URL,
            "options": session.options.to_dict(),
            "nonce": session.nonce,
            "gateway_order_id": gateway_order_id,
            "brand": settings.BRAND_NAME,
        },
    )


@router.post("/checkout/{gateway_order_id}/callback")
async def checkout_callback(
    gateway_order_id: str,
    payload: GatewayResponse,
    background: BackgroundTasks,
    gateway: BaseGateway = Depends(get_gateway),
    x_checkout_nonce: str | None = Header(None),
):
    session = _posted_session(gateway_order_id, gateway, x_checkout_nonce)
    if payload.razorpay_order_id != gateway_order_id:
        raise HTTPException(status_code=400, detail="Order id mismatch")
    logger.info("gateway handler fired for %s", gateway_order_id)
    background.add_task(session.complete, payload)
    return {"ok": True}


@router.post("/checkout/{gateway_order_id}/dismiss")
async def checkout_dismiss(
    gateway_order_id: str,
    background: BackgroundTasks,
    gateway: BaseGateway = Depends(get_gateway),
    x_checkout_nonce: str | None = Header(None),
):
    session = _posted_session(gateway_order_id, gateway, x_checkout_nonce)
    background.add_task(session.dismiss)
    return {"ok": True}


@router.post("/checkout/{gateway_order_id}/failed")
async def checkout_failed(
    gateway_order_id: str,
    payload: PaymentFailedPayload,
    background: BackgroundTasks,
    gateway: BaseGateway = Depends(get_gateway),
    x_checkout_nonce: str | None = Header(None),
):
    session = _posted_session(gateway_order_id, gateway, x_checkout_nonce)
    background.add_task(session.fail, payload.error)
    return {"ok": True}
