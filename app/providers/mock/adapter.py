from decimal import Decimal
from urllib.parse import urlencode

from ...schemas.pay import PaymentSessionRequest, PaymentSessionResult, Provider
from ...settings import Settings


def format_amount(amount: Decimal) -> str:
    """100 -> "100", 100.50 -> "100.5" (без хвостовых нулей и экспоненты)."""
    return format(amount.normalize(), "f")


class MockAdapter:
    """
    Sandbox: детерминированный URL на PSP_PAYMENT_BASE_URL,
    поля запроса уходят в query. Никаких внешних вызовов.
    """

    name = Provider.MOCK

    def __init__(self, settings: Settings):
        self.base_url = settings.PSP_PAYMENT_BASE_URL

    def build_url(self, order_id: str, request: PaymentSessionRequest) -> str:
        params = {
            "order_id": order_id,
            "amount": format_amount(request.amount),
            "currency": request.currency,
            "client_id": request.client_id,
        }
        if request.return_url:
            params["return_url"] = request.return_url
        return f"{self.base_url}?{urlencode(params)}"

    async def create_session(self, order_id: str, request: PaymentSessionRequest) -> PaymentSessionResult:
        return PaymentSessionResult(
            payment_url=self.build_url(order_id, request),
            order_id=order_id,
            provider=self.name,
        )
