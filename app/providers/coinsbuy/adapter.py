import json
import logging
from typing import Any, Dict, Optional

import httpx

from ...errors import UpstreamRejection, UpstreamUnreachable
from ...schemas.pay import PaymentSessionRequest, PaymentSessionResult, Provider
from ...settings import Settings
from ...utils.http import HttpFactory, client, response_body
from ...utils.logging import PAYMENT_LOGGER, sanitize
from ..mock.adapter import format_amount

logger = logging.getLogger(PAYMENT_LOGGER)

INVOICE_LABEL = "BROCTAGON_CRM_DEPOSIT"
CONFIRMATIONS_NEEDED = 2
BUTTON_TEXT = "Back to dashboard"
ERROR_MESSAGE = "Failed to create payment session"


class CoinsbuyAdapter:
    """
    Coinsbuy (live):
      - POST /deposit/   (JSON:API, создать депозит-инвойс)
    В ответе: data.id, data.attributes.payment_url, data.attributes.status.
    Вебхук провайдера приходит на {BASE_URL}/api/pay/callback.
    """

    name = Provider.LIVE

    def __init__(self, settings: Settings, http: HttpFactory = client):
        self.base_url = settings.COINSBUY_URL.rstrip("/")
        self.token = settings.COINSBUY_AUTH_TOKEN
        self.wallet_id = int(settings.COINSBUY_WALLET_ID)
        self.callback_url = f"{settings.BASE_URL.rstrip('/')}/api/pay/callback"
        self.dashboard_url = settings.DASHBOARD_URL
        self.timeout = settings.PSP_TIMEOUT_SEC
        self._http = http

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/vnd.api+json"}

    def build_invoice(self, order_id: str, request: PaymentSessionRequest) -> Dict[str, Any]:
        return {
            "data": {
                "type": "deposit",
                "attributes": {
                    "label": INVOICE_LABEL,
                    "tracking_id": order_id,
                    "target_amount_requested": format_amount(request.amount),
                    "confirmations_needed": CONFIRMATIONS_NEEDED,
                    "callback_url": self.callback_url,
                    "payment_page_redirect_url": request.return_url or self.dashboard_url,
                    "payment_page_button_text": BUTTON_TEXT,
                },
                "relationships": {
                    "wallet": {"data": {"type": "wallet", "id": self.wallet_id}},
                },
            }
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        async with self._http(timeout_sec=self.timeout) as c:
            return await c.post(f"{self.base_url}{path}", content=json.dumps(payload), headers=self._headers())

    @staticmethod
    def _error_detail(body: Any, fallback: str) -> Any:
        if isinstance(body, dict):
            data = body.get("data") if isinstance(body.get("data"), dict) else body
            return data.get("message") or body.get("message") or body
        return body or fallback

    async def create_session(self, order_id: str, request: PaymentSessionRequest) -> PaymentSessionResult:
        invoice = self.build_invoice(order_id, request)
        logger.info("Creating Coinsbuy deposit invoice", extra={"order_id": order_id, "invoice": sanitize(invoice)})

        try:
            resp = await self._post("/deposit/", invoice)
        except httpx.HTTPError as e:
            logger.error("Coinsbuy unreachable", extra={"order_id": order_id, "error": str(e)})
            raise UpstreamUnreachable(ERROR_MESSAGE, detail=f"Coinsbuy API error: {e}") from e

        body = response_body(resp)
        if not resp.is_success:
            detail = self._error_detail(body, resp.reason_phrase)
            logger.error(
                "Coinsbuy rejected invoice",
                extra={"order_id": order_id, "status": resp.status_code, "response": sanitize(body)},
            )
            raise UpstreamRejection(ERROR_MESSAGE, detail=detail, upstream_status=resp.status_code)

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            data = {}
        attributes = data.get("attributes") if isinstance(data.get("attributes"), dict) else {}
        payment_url: Optional[str] = attributes.get("payment_url")
        if not payment_url:
            logger.error("Coinsbuy response without payment_url", extra={"order_id": order_id, "response": sanitize(body)})
            raise UpstreamRejection(ERROR_MESSAGE, detail="Malformed Coinsbuy response", upstream_status=resp.status_code)

        reference = data.get("id")
        return PaymentSessionResult(
            payment_url=payment_url,
            order_id=order_id,
            provider=self.name,
            provider_reference=str(reference) if reference is not None else None,
            provider_status=str(attributes["status"]) if attributes.get("status") is not None else None,
        )
