import logging

import httpx

from suvix.config import settings
from suvix.services.payments.base import BaseGateway

logger = logging.getLogger(__name__)


class RazorpayGateway(BaseGateway):
    """Razorpay Standard Checkout, hosted on our own checkout page.

    The SDK itself runs in the user's browser; loading it here means checking
    once that ``checkout.js`` is reachable before sending anyone to the page.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__()
        self._transport = transport

    async def _load_sdk(self) -> bool:
        url = settings.RAZORPAY_CHECKOUT_URL
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=settings.HTTP_TIMEOUT
            ) as c:
                r = await c.get(url)
                r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("could not load checkout script %s: %s", url, e)
            return False
        logger.info("checkout script available at %s", url)
        return True

    def session_url(self, gateway_order_id: str) -> str:
        return f"{settings.APP_BASE_URL.rstrip('/')}/checkout/{gateway_order_id}"
