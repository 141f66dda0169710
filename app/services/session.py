import logging
import uuid
from typing import Any, Optional

from ..errors import InternalError, Outcome, Reply, UpstreamError
from ..providers.base import SessionProvider
from ..schemas.pay import PaymentSessionRequest, PaymentSessionResult
from ..settings import Settings
from ..utils.logging import PAYMENT_LOGGER, Timer, sanitize
from ..utils.validators import parse_amount, validate_crm_pay_token, validate_session_request


class PaymentSessionInitiator:
    """
    POST /api/pay/url: токен -> валидация -> order_id -> провайдер.
    Провайдер (mock | live) выбран один раз при старте процесса.
    """

    def __init__(self, settings: Settings, provider: SessionProvider, logger: Optional[logging.Logger] = None):
        self.expected_token = settings.CRM_PAY_TOKEN
        self.provider = provider
        self.log = logger or logging.getLogger(PAYMENT_LOGGER)

    async def initiate(self, request: PaymentSessionRequest) -> Outcome[PaymentSessionResult]:
        # order_id генерируем до вызова провайдера: он попадает в логи даже при ошибке
        order_id = str(uuid.uuid4())
        self.log.info(
            "Creating payment URL",
            extra={
                "order_id": order_id,
                "client_id": request.client_id,
                "amount": str(request.amount),
                "currency": request.currency,
                "return_url": request.return_url,
                "metadata": sanitize(request.metadata),
                "provider": self.provider.name.value,
            },
        )
        try:
            result = await self.provider.create_session(order_id, request)
        except UpstreamError as e:
            self.log.error(
                "Payment provider failed",
                extra={"order_id": order_id, "kind": e.kind, "error": e.error, "detail": e.detail},
            )
            return Outcome.failure(e)
        return Outcome.success(result)

    async def create_payment_url(self, body: Any, token: Optional[str]) -> Reply:
        timer = Timer()
        try:
            auth = validate_crm_pay_token(token, self.expected_token)
            if not auth.is_valid:
                self.log.warning(
                    "Invalid crm-pay-token",
                    extra={"reason": auth.reason, "token_state": "provided" if token else "missing"},
                )
                return auth.as_error().to_reply()

            validation = validate_session_request(body)
            if not validation.is_valid:
                self.log.warning("Validation failed", extra={"reason": validation.reason, "error": validation.error})
                return validation.as_error().to_reply()

            request = PaymentSessionRequest(
                amount=parse_amount(body["amount"]),
                currency=body["currency"],
                client_id=body["client_id"],
                return_url=body.get("return_url") or None,
                metadata=body.get("metadata") or {},
            )
            outcome = await self.initiate(request)
            if not outcome.ok:
                return outcome.error.to_reply()

            result = outcome.value
            self.log.info(
                "Payment URL generated successfully",
                extra={
                    "order_id": result.order_id,
                    "provider": result.provider.value,
                    "provider_reference": result.provider_reference,
                    "duration_ms": timer.elapsed_ms(),
                },
            )
            return Reply(200, result.public())
        except Exception:
            self.log.exception("Error generating payment url", extra={"duration_ms": timer.elapsed_ms()})
            return InternalError().to_reply()

