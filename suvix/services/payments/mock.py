from suvix.services.payments.base import BaseGateway


class MockGateway(BaseGateway):
    def __init__(self, available: bool = True):
        super().__init__()
        self.available = available
        self.load_calls = 0

    async def _load_sdk(self) -> bool:
        self.load_calls += 1
        return self.available

    def session_url(self, gateway_order_id: str) -> str:
        return f"https://mock/checkout/{gateway_order_id}"
