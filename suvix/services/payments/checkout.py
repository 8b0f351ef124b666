import asyncio
import logging
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Optional

from suvix.api.client import BackendClient
from suvix.config import settings
from suvix.errors import GatewayLoadError, PaymentError, SuviXError
from suvix.schemas import CreateOrderResponse, FeeBreakdown, GatewayResponse, PaymentConfig
from suvix.services.payments import get_gateway
from suvix.services.payments.base import (
    PAYMENT_FAILED,
    BaseGateway,
    CheckoutOptions,
    CheckoutSession,
)
from suvix.state import AuthUser
from suvix.utils import maybe_await

logger = logging.getLogger(__name__)


class CheckoutStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class PaymentOrchestrator:
    """Runs one platform order through gateway checkout and server verification.

    Each attempt gets a generation number. Gateway callbacks and backend
    responses that belong to an older generation (after "Try Again" or a new
    attempt) are dropped, so a late answer can never overwrite newer state.
    The gateway ``handler`` alone never marks the payment successful; only a
    verification response with ``success: true`` does.
    """

    def __init__(
        self,
        client: BackendClient,
        order_id: str,
        *,
        gateway: Optional[BaseGateway] = None,
        user: Optional[AuthUser] = None,
        title: Optional[str] = None,
        on_open: Optional[Callable] = None,
        on_success: Optional[Callable] = None,
        on_failure: Optional[Callable] = None,
        on_close: Optional[Callable] = None,
        on_change: Optional[Callable] = None,
    ):
        self.client = client
        self.order_id = order_id
        self.gateway = gateway or get_gateway()
        self.user = user
        self.title = title
        self.on_open = on_open
        self.on_success = on_success
        self.on_failure = on_failure
        self.on_close = on_close
        self.on_change = on_change

        self.status = CheckoutStatus.IDLE
        self.error: Optional[str] = None
        self.loading = False
        self.processing = False
        self.config: Optional[PaymentConfig] = None
        self.fee_breakdown: Optional[FeeBreakdown] = None
        self.session: Optional[CheckoutSession] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _set_status(self, status: CheckoutStatus) -> None:
        self.status = status
        if self.on_change is not None:
            self.on_change(status)

    async def load_config(self) -> Optional[PaymentConfig]:
        try:
            res = await self.client.get_payment_config()
        except SuviXError as e:
            logger.warning("failed to fetch payment config: %s", e.message)
            return None
        self.config = res.config
        return self.config

    async def initiate_payment(self) -> None:
        if self.loading or self.processing:
            logger.debug("payment for %s already in progress", self.order_id)
            return
        self._generation += 1
        gen = self._generation
        self._retire_session()
        self.loading = True
        self.error = None
        self._set_status(CheckoutStatus.LOADING)
        try:
            if self.config is None:
                await self.load_config()
            if self.config is not None and not self.config.supported:
                raise PaymentError(
                    self.config.message or "Payments are not available in your region yet."
                )
            if not await self.gateway.ensure_loaded():
                raise GatewayLoadError()
            res = await self.client.create_payment_order(self.order_id)
            if not res.success or res.order is None or not res.key_id:
                raise PaymentError(res.message or "Failed to create payment order")
            if gen != self._generation:
                return
            self.fee_breakdown = res.fee_breakdown
            session = self.gateway.open(
                self._build_options(res),
                handler=partial(self._on_handler, gen),
                ondismiss=partial(self._on_dismiss, gen),
            )
            session.on(PAYMENT_FAILED, partial(self._on_payment_failed, gen))
            self.session = session
            self.loading = False
            if self.on_open is not None:
                await maybe_await(self.on_open(session))
        except SuviXError as e:
            if gen == self._generation:
                logger.warning("payment initiation for %s failed: %s", self.order_id, e.message)
                await self._fail(e)
        except Exception:
            logger.exception("payment initiation for %s crashed", self.order_id)
            if gen == self._generation:
                await self._fail(PaymentError("Failed to initiate payment"))

    def _build_options(self, res: CreateOrderResponse) -> CheckoutOptions:
        prefill = res.prefill
        name = prefill.name or (self.user.name if self.user else "")
        email = prefill.email or (self.user.email if self.user else "")
        return CheckoutOptions(
            key=res.key_id,
            amount=res.order.amount,
            currency=res.order.currency,
            name=settings.BRAND_NAME,
            description=f"Order: {self.title or self.order_id}",
            order_id=res.order.id,
            prefill={"name": name, "email": email},
            theme={"color": settings.THEME_COLOR},
        )

    async def _on_handler(self, gen: int, response: GatewayResponse) -> None:
        if gen != self._generation:
            logger.info("dropping gateway callback from superseded attempt %s", gen)
            return
        self.processing = True
        self._set_status(CheckoutStatus.PROCESSING)
        try:
            res = await self.client.verify_payment(self.order_id, response)
            if gen != self._generation:
                return
            if not res.success:
                raise PaymentError(res.message or "Payment verification failed")
        except SuviXError as e:
            if gen == self._generation:
                logger.warning("verification for %s failed: %s", self.order_id, e.message)
                self.processing = False
                await self._fail(e)
            return
        self.processing = False
        self._set_status(CheckoutStatus.SUCCESS)
        logger.info("payment for order %s verified", self.order_id)
        await asyncio.sleep(settings.PAYMENT_SUCCESS_DELAY)
        if self.on_success is not None:
            await maybe_await(self.on_success(res))

    async def _on_dismiss(self, gen: int) -> None:
        if gen != self._generation:
            return
        logger.info("checkout for %s dismissed", self.order_id)
        self.loading = False
        self.session = None
        self._set_status(CheckoutStatus.IDLE)
        if self.on_close is not None:
            await maybe_await(self.on_close())

    async def _on_payment_failed(self, gen: int, error: Dict[str, Any]) -> None:
        if gen != self._generation:
            return
        description = (error or {}).get("description") or "Payment failed"
        await self._fail(PaymentError(description))

    async def _fail(self, error: SuviXError) -> None:
        self.loading = False
        self.error = error.message
        self._set_status(CheckoutStatus.ERROR)
        if self.on_failure is not None:
            await maybe_await(self.on_failure(error))

    def retry(self) -> None:
        """The "Try Again" action: back to idle without touching the backend."""
        if self.status is not CheckoutStatus.ERROR:
            return
        self._generation += 1
        self.error = None
        self.loading = False
        self.processing = False
        self._retire_session()
        self._set_status(CheckoutStatus.IDLE)

    def cancel(self) -> None:
        """Abandon this orchestrator; an open checkout link stops working."""
        self._generation += 1
        self._retire_session()
        self.loading = False
        self.processing = False

    def _retire_session(self) -> None:
        session, self.session = self.session, None
        if session is not None and session.cancel():
            logger.info("superseded checkout %s for order %s", session.order_id, self.order_id)
