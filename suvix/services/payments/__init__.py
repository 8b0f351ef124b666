from functools import lru_cache

from suvix.config import settings
from suvix.services.payments.base import BaseGateway
from suvix.services.payments.mock import MockGateway
from suvix.services.payments.razorpay import RazorpayGateway


@lru_cache()
def get_gateway() -> BaseGateway:
    provider = settings.PAYMENTS_PROVIDER.lower()
    if provider == "razorpay":
        return RazorpayGateway()
    if provider == "mock":
        return MockGateway()
    raise ValueError(f"unknown payments provider: {provider}")
