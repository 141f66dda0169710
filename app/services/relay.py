import logging
from typing import Any, Mapping, Optional

from ..callbacks.crm_client import CRMCallbackClient
from ..errors import AuthError, InternalError, Reply
from ..providers.coinsbuy.mapping import normalize_webhook
from ..utils.logging import WEBHOOK_LOGGER, Timer, sanitize
from ..utils.security import verify_psp_signature
from ..utils.validators import validate_callback_request


class WebhookRelay:
    """
    POST /api/pay/callback, по шагам до первой ошибки:
      1. тело: JSON-объект             (иначе 400)
      2. подпись PSP                   (иначе 401)
      3. нормализация в схему CRM      (не падает)
      4. форвард в CRM                 (502 при отказе/недоступности)
    Без CRM_CALLBACK_URL шаг 4 симулируется.
    """

    def __init__(self, crm: CRMCallbackClient, logger: Optional[logging.Logger] = None):
        self.crm = crm
        self.log = logger or logging.getLogger(WEBHOOK_LOGGER)

    async def relay(self, body: Any, headers: Mapping[str, str]) -> Reply:
        timer = Timer()
        try:
            return await self._relay(body, headers, timer)
        except Exception:
            self.log.exception("Error handling PSP callback", extra={"duration_ms": timer.elapsed_ms()})
            return InternalError().to_reply()

    async def _relay(self, body: Any, headers: Mapping[str, str], timer: Timer) -> Reply:
        validation = validate_callback_request(body)
        if not validation.is_valid:
            self.log.warning("Validation failed", extra={"reason": validation.reason, "error": validation.error})
            return validation.as_error().to_reply()

        if not verify_psp_signature(headers):
            self.log.warning("Invalid PSP signature")
            return AuthError("Invalid PSP signature.").to_reply()

        self.log.info("Received PSP webhook", extra={"payload": sanitize(body)})

        callback = normalize_webhook(body)
        payload = callback.to_payload()
        self.log.info("Mapped to CRM format", extra={"crm_payload": sanitize(payload)})

        if not self.crm.configured:
            self.log.info(
                "CRM_CALLBACK_URL not configured - simulating successful callback",
                extra={"order_id": callback.merchant_reference},
            )
            return Reply(200, {
                "status": "success",
                "order_id": callback.merchant_reference,
                "message": "CRM callback URL not configured - simulated success",
            })

        self.log.info("Notifying CRM", extra={"endpoint": self.crm.endpoint, "order_id": callback.merchant_reference})
        outcome = await self.crm.send_callback(callback)
        if not outcome.ok:
            return outcome.error.to_reply()

        self.log.info(
            "Callback processed successfully",
            extra={"order_id": callback.merchant_reference, "duration_ms": timer.elapsed_ms()},
        )
        return Reply(200, {
            "status": "success",
            "order_id": callback.merchant_reference,
            "crm_response": outcome.value,
        })
