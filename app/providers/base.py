from typing import Protocol

from ..schemas.pay import PaymentSessionRequest, PaymentSessionResult, Provider


class SessionProvider(Protocol):
    name: Provider

    async def create_session(self, order_id: str, request: PaymentSessionRequest) -> PaymentSessionResult:
        """Создать платёжную сессию; при ошибке провайдера raise UpstreamError."""
        ...
