# Общие фикстуры: настройки без .env и фейковый апстрим на httpx.MockTransport

import httpx
import pytest

from app.settings import Settings


class FakeUpstream:
    """Записывает исходящие запросы и отвечает заданным handler'ом."""

    def __init__(self, handler=None):
        self.requests = []
        self.timeouts = []
        self.handler = handler or (lambda request: httpx.Response(200, json={"ok": True}))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def factory(self, timeout_sec: float = 15) -> httpx.AsyncClient:
        self.timeouts.append(timeout_sec)
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle), timeout=timeout_sec)


@pytest.fixture
def make_settings():
    def _make(**overrides):
        values = {
            "CRM_PAY_TOKEN": "crm-secret",
            "CRM_CALLBACK_URL": "",
            "PSP_SANDBOX_MODE": True,
            "PSP_PAYMENT_BASE_URL": "https://mock-psp.pay/url/",
            "COINSBUY_URL": "https://coinsbuy.test/api/v3",
            "COINSBUY_AUTH_TOKEN": "cb-token",
            "COINSBUY_WALLET_ID": 42,
            "BASE_URL": "https://relay.example.com",
            "DASHBOARD_URL": "https://dashboard.example.com",
            "LOG_DIR": None,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def sample_webhook():
    """Вебхук Coinsbuy о подтверждённом депозите"""
    return {
        "data": {
            "id": "d1",
            "type": "deposit",
            "attributes": {
                "status": "confirmed",
                "target_amount_requested": "100",
                "currency": "USD",
                "tracking_id": "order-1",
                "client_id": "c1",
            },
        }
    }


@pytest.fixture
def session_body():
    return {
        "amount": 100,
        "currency": "USD",
        "client_id": "client-7",
        "return_url": "https://crm.example.com/return",
        "metadata": {"campaign": "spring", "api_key": "should-not-log"},
    }
