import json
import logging
from typing import Any, Dict

import httpx

from ..errors import Outcome, UpstreamRejection, UpstreamUnreachable
from ..schemas.pay import CanonicalCallback
from ..settings import Settings
from ..utils.http import HttpFactory, client, response_body
from ..utils.logging import WEBHOOK_LOGGER, Timer

logger = logging.getLogger(WEBHOOK_LOGGER)


class CRMCallbackClient:
    """
    Отправляет нормализованный статус в CRM:
      POST {CRM_CALLBACK_URL}/pay/callback
      заголовок crm-pay-token, таймаут CRM_CALLBACK_TIMEOUT_SEC.
    Без ретраев: ошибка возвращается как Outcome с UpstreamRejection
    (CRM ответила не-2xx) или UpstreamUnreachable (сеть/таймаут).
    """

    def __init__(self, settings: Settings, http: HttpFactory = client):
        self.base_url = settings.CRM_CALLBACK_URL.rstrip("/")
        self.token = settings.CRM_PAY_TOKEN
        self.timeout = settings.CRM_CALLBACK_TIMEOUT_SEC
        self._http = http

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/pay/callback"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["crm-pay-token"] = self.token
        return headers

    async def send_callback(self, callback: CanonicalCallback) -> Outcome[Any]:
        body = json.dumps(callback.to_payload(), ensure_ascii=False).encode("utf-8")
        timer = Timer()
        try:
            async with self._http(timeout_sec=self.timeout) as c:
                resp = await c.post(self.endpoint, content=body, headers=self._headers())
        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            logger.error(
                "CRM callback network error",
                extra={"endpoint": self.endpoint, "error": message, "duration_ms": timer.elapsed_ms()},
            )
            return Outcome.failure(UpstreamUnreachable("Failed to notify CRM - network error", detail=message))

        data = response_body(resp)
        if not resp.is_success:
            logger.error(
                "CRM callback failed",
                extra={
                    "endpoint": self.endpoint,
                    "status": resp.status_code,
                    "response": data,
                    "duration_ms": timer.elapsed_ms(),
                },
            )
            return Outcome.failure(
                UpstreamRejection("Failed to notify CRM", detail=data, upstream_status=resp.status_code)
            )

        logger.info(
            "Successfully notified CRM",
            extra={
                "order_id": callback.merchant_reference,
                "crm_status": resp.status_code,
                "duration_ms": timer.elapsed_ms(),
            },
        )
        return Outcome.success(data)
