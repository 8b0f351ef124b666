import logging
from typing import Any, Callable, Dict, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from suvix.config import settings
from suvix.errors import ApiError, NotAuthenticated, SchemaError
from suvix.schemas import (
    CreateOrderResponse,
    DeliveryStatusResponse,
    DownloadConfirmResponse,
    EditorStatsResponse,
    GatewayResponse,
    NotificationListResponse,
    Order,
    PaymentConfigResponse,
    RatingCheckResponse,
    RatingSubmitResponse,
    StatusResponse,
    UserResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
TokenSource = Union[str, Callable[[], Union[str, None]], None]


class BackendClient:
    """Async client for the SuviX REST backend.

    Every response is validated against a pydantic schema before it reaches a
    workflow; a payload of the wrong shape raises ``SchemaError`` instead of
    leaking half-parsed dicts. Non-2xx answers raise ``ApiError`` carrying the
    server's ``message`` when it sent one.

    ``token`` may be a bearer token string or a zero-argument callable that
    returns the current token (e.g. bound to an ``AppStore``).
    """

    def __init__(
        self,
        token: TokenSource = None,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.BACKEND_URL).rstrip("/"),
            transport=transport,
            timeout=timeout if timeout is not None else settings.HTTP_TIMEOUT,
        )

    @property
    def token(self) -> str | None:
        if callable(self._token):
            return self._token()
        return self._token

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self, auth: bool) -> Dict[str, str]:
        if not auth:
            return {}
        token = self.token
        if not token:
            raise NotAuthenticated()
        return {"Authorization": f"Bearer {token}"}

    async def _send(self, method: str, path: str, *, auth: bool = True, **kwargs) -> Any:
        headers = self._headers(auth)
        try:
            r = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError("Network error. Please check your connection.") from e
        try:
            data = r.json()
        except ValueError:
            data = None
        if r.is_error:
            message = data.get("message") if isinstance(data, dict) else None
            logger.info("%s %s -> %s %s", method, path, r.status_code, message or "")
            raise ApiError(
                message or f"Request failed with status {r.status_code}",
                status_code=r.status_code,
            )
        return data

    def _parse(self, schema: Type[M], data: Any, path: str) -> M:
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            logger.warning("unexpected payload from %s: %s", path, e)
            raise SchemaError() from e

    async def _request(self, method: str, path: str, schema: Type[M], **kwargs) -> M:
        data = await self._send(method, path, **kwargs)
        return self._parse(schema, data, path)

    # --- payments

    async def get_payment_config(self) -> PaymentConfigResponse:
        return await self._request("GET", "/api/payment-gateway/config", PaymentConfigResponse)

    async def create_payment_order(self, order_id: str) -> CreateOrderResponse:
        return await self._request(
            "POST",
            "/api/payment-gateway/create-order",
            CreateOrderResponse,
            json={"orderId": order_id},
        )

    async def verify_payment(self, order_id: str, response: GatewayResponse) -> VerifyResponse:
        payload = response.model_dump()
        payload["orderId"] = order_id
        return await self._request(
            "POST", "/api/payment-gateway/verify", VerifyResponse, json=payload
        )

    # --- orders & delivery

    async def get_order(self, order_id: str) -> Order:
        data = await self._send("GET", f"/api/orders/{order_id}")
        if isinstance(data, dict) and isinstance(data.get("order"), dict):
            data = data["order"]
        return self._parse(Order, data, f"/api/orders/{order_id}")

    async def get_delivery_status(self, order_id: str) -> DeliveryStatusResponse:
        return await self._request(
            "GET", f"/api/delivery/{order_id}/status", DeliveryStatusResponse
        )

    async def confirm_download(
        self, order_id: str, download_token: str, confirm_text: str = "CONFIRM"
    ) -> DownloadConfirmResponse:
        return await self._request(
            "POST",
            f"/api/delivery/{order_id}/confirm",
            DownloadConfirmResponse,
            json={"confirmText": confirm_text, "token": download_token},
        )

    # --- ratings

    async def check_rating(self, order_id: str) -> RatingCheckResponse:
        return await self._request("GET", f"/api/ratings/check/{order_id}", RatingCheckResponse)

    async def submit_rating(
        self, order_id: str, scores: Dict[str, int], review: str = ""
    ) -> RatingSubmitResponse:
        return await self._request(
            "POST",
            f"/api/ratings/{order_id}",
            RatingSubmitResponse,
            json={**scores, "review": review},
        )

    async def respond_to_rating(self, rating_id: str, response: str) -> RatingSubmitResponse:
        return await self._request(
            "POST",
            f"/api/ratings/{rating_id}/respond",
            RatingSubmitResponse,
            json={"response": response},
        )

    async def get_editor_stats(self, editor_id: str) -> EditorStatsResponse:
        return await self._request(
            "GET", f"/api/ratings/stats/{editor_id}", EditorStatsResponse, auth=False
        )

    # --- notifications

    async def list_notifications(self, limit: int | None = None) -> NotificationListResponse:
        return await self._request(
            "GET",
            "/api/notifications",
            NotificationListResponse,
            params={"limit": limit or settings.NOTIFICATIONS_LIMIT},
        )

    async def mark_notification_read(self, notification_id: str) -> StatusResponse:
        return await self._request(
            "PUT", f"/api/notifications/read/{notification_id}", StatusResponse
        )

    async def mark_all_notifications_read(self) -> StatusResponse:
        return await self._request("PUT", "/api/notifications/read/all", StatusResponse)

    # --- users

    async def get_me(self) -> UserResponse:
        return await self._request("GET", "/api/auth/me", UserResponse)
