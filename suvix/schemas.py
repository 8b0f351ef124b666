from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

OrderStatus = Literal["new", "accepted", "in_progress", "submitted", "completed"]
PaymentStatus = Literal["unpaid", "escrow", "released", "refunded"]

RATING_CATEGORIES = ("overall", "quality", "communication", "deliverySpeed")
REVIEW_MAX_LENGTH = 1000


class ApiModel(BaseModel):
    # Backend payloads carry Mongo-style keys (_id, camelCase) and extra fields.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PartyRef(ApiModel):
    id: str = Field(alias="_id")
    name: str = ""


class Order(ApiModel):
    id: str = Field(alias="_id")
    title: str = ""
    amount: float = 0
    deadline: datetime | None = None
    status: OrderStatus = "new"
    payment_status: PaymentStatus = Field("unpaid", alias="paymentStatus")
    client: PartyRef | str | None = None
    editor: PartyRef | str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status == "completed" or self.payment_status == "refunded"


class Prefill(ApiModel):
    name: str = ""
    email: str = ""


class GatewayOrder(ApiModel):
    id: str
    amount: int
    currency: str = "INR"


class FeeBreakdown(ApiModel):
    total_amount: float | None = Field(None, alias="totalAmount")
    platform_fee_percent: float | None = Field(None, alias="platformFeePercent")
    platform_fee: float | None = Field(None, alias="platformFee")
    editor_amount: float | None = Field(None, alias="editorAmount")


class CreateOrderResponse(ApiModel):
    success: bool
    message: str | None = None
    order: GatewayOrder | None = None
    key_id: str | None = Field(None, alias="keyId")
    prefill: Prefill = Field(default_factory=Prefill)
    fee_breakdown: FeeBreakdown | None = Field(None, alias="feeBreakdown")


class PaymentConfig(ApiModel):
    supported: bool = True
    message: str | None = None
    gateway: str | None = None
    razorpay_key_id: str | None = Field(None, alias="razorpayKeyId")


class PaymentConfigResponse(ApiModel):
    success: bool = True
    config: PaymentConfig


class GatewayResponse(ApiModel):
    """Fields the gateway hands to the checkout ``handler`` callback."""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class VerifyResponse(ApiModel):
    success: bool
    message: str | None = None


class Rating(ApiModel):
    id: str | None = Field(None, alias="_id")
    order: str | None = None
    overall: int = Field(ge=1, le=5)
    quality: int = Field(ge=1, le=5)
    communication: int = Field(ge=1, le=5)
    delivery_speed: int = Field(alias="deliverySpeed", ge=1, le=5)
    review: str = Field("", max_length=REVIEW_MAX_LENGTH)
    editor_response: str | None = Field(None, alias="editorResponse")


class RatingCheckResponse(ApiModel):
    is_rated: bool = Field(alias="isRated")
    rating: Rating | None = None


class RatingSubmitResponse(ApiModel):
    success: bool = True
    message: str | None = None
    rating: Rating | None = None


class EditorStats(ApiModel):
    average_rating: float = Field(0, alias="averageRating")
    total_reviews: int = Field(0, alias="totalReviews")
    quality_avg: float = Field(0, alias="qualityAvg")
    communication_avg: float = Field(0, alias="communicationAvg")
    speed_avg: float = Field(0, alias="speedAvg")


class EditorStatsResponse(ApiModel):
    stats: EditorStats


class Delivery(ApiModel):
    order_id: str | None = Field(None, alias="orderId")
    download_token: str | None = Field(None, alias="downloadToken")
    token: str | None = None
    file_name: str | None = Field(None, alias="fileName")
    expires_at: datetime | None = Field(None, alias="expiresAt")

    @property
    def effective_token(self) -> str | None:
        return self.download_token or self.token


class DeliveryStatusResponse(ApiModel):
    delivery: Delivery | None = None


class DownloadConfirmResponse(ApiModel):
    success: bool = True
    message: str | None = None
    download_url: str | None = Field(None, alias="downloadUrl")
    original_url: str | None = Field(None, alias="originalUrl")

    @property
    def url(self) -> str | None:
        return self.download_url or self.original_url


class Notification(ApiModel):
    id: str = Field(alias="_id")
    type: str = "info"
    title: str = ""
    message: str = ""
    link: str | None = None
    read: bool = Field(False, alias="isRead")
    created_at: datetime | None = Field(None, alias="createdAt")


class NotificationListResponse(ApiModel):
    notifications: list[Notification] = Field(default_factory=list)
    unread_count: int | None = Field(None, alias="unreadCount")


class UserProfile(ApiModel):
    id: str = Field(alias="_id")
    name: str = ""
    email: str = ""
    role: str = "client"


class UserResponse(ApiModel):
    user: UserProfile


class StatusResponse(ApiModel):
    success: bool = True
    message: str | None = None
