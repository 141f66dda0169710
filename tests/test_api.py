# HTTP-поверхность коннектора

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app

HEADERS = {"crm-pay-token": "crm-secret"}


@pytest.fixture
def make_client(make_settings, upstream):
    def _make(**overrides):
        return TestClient(create_app(make_settings(**overrides), http=upstream.factory))
    return _make


class TestHealth:

    def test_health(self, make_client):
        response = make_client().get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert "timestamp" in data
        assert response.headers["X-Request-ID"].startswith("req_")

    def test_unknown_route(self, make_client):
        response = make_client().get("/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Endpoint not found"}

    def test_wrong_method(self, make_client):
        assert make_client().get("/api/pay/url").status_code == 405


class TestPayUrl:

    def test_sandbox_payment_url(self, make_client, session_body):
        response = make_client().post("/api/pay/url", json=session_body, headers=HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"payment_url", "order_id", "provider"}
        assert data["provider"] == "mock"
        query = parse_qs(urlparse(data["payment_url"]).query)
        assert query["order_id"] == [data["order_id"]]
        assert query["amount"] == ["100"]
        assert query["client_id"] == ["client-7"]

    @pytest.mark.parametrize("headers", [{}, {"crm-pay-token": "wrong"}])
    def test_bad_token_is_401_and_psp_untouched(self, make_client, upstream, session_body, headers):
        client = make_client(PSP_SANDBOX_MODE=False)
        response = client.post("/api/pay/url", json=session_body, headers=headers)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized: Invalid token."}
        assert upstream.requests == []

    def test_unconfigured_token_fails_closed(self, make_client, session_body):
        response = make_client(CRM_PAY_TOKEN="").post("/api/pay/url", json=session_body, headers=HEADERS)
        assert response.status_code == 401

    def test_missing_amount(self, make_client, session_body):
        del session_body["amount"]
        response = make_client().post("/api/pay/url", json=session_body, headers=HEADERS)
        assert response.status_code == 400
        assert "amount" in response.json()["error"]

    @pytest.mark.parametrize("amount", ["1e5000", "1_000"])
    def test_amount_not_plain_or_out_of_range(self, make_client, upstream, session_body, amount):
        session_body["amount"] = amount
        response = make_client().post("/api/pay/url", json=session_body, headers=HEADERS)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid amount: must be a positive number"}
        assert upstream.requests == []

    def test_lowercase_currency(self, make_client, session_body):
        session_body["currency"] = "us"
        response = make_client().post("/api/pay/url", json=session_body, headers=HEADERS)
        assert response.status_code == 400

    def test_invalid_json(self, make_client):
        response = make_client().post(
            "/api/pay/url", content=b"{not json", headers={**HEADERS, "Content-Type": "application/json"}
        )
        assert response.status_code == 400

    def test_live_provider(self, make_client, upstream, session_body):
        upstream.handler = lambda request: httpx.Response(200, json={
            "data": {"id": "inv-1", "attributes": {"payment_url": "https://pay.coinsbuy.test/inv-1"}}
        })
        response = make_client(PSP_SANDBOX_MODE=False).post("/api/pay/url", json=session_body, headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["payment_url"] == "https://pay.coinsbuy.test/inv-1"
        assert response.json()["provider"] == "live"

    def test_live_provider_failure_is_502(self, make_client, upstream, session_body):
        upstream.handler = lambda request: httpx.Response(401, json={"message": "Bad token"})
        response = make_client(PSP_SANDBOX_MODE=False).post("/api/pay/url", json=session_body, headers=HEADERS)
        assert response.status_code == 502
        assert response.json() == {"error": "Failed to create payment session", "detail": "Bad token", "status": 401}


class TestPayCallback:

    def test_non_object_body(self, make_client):
        response = make_client().post("/api/pay/callback", json="not-json")
        assert response.status_code == 400

    def test_simulated_success(self, make_client, upstream, sample_webhook):
        response = make_client().post("/api/pay/callback", json=sample_webhook)
        assert response.status_code == 200
        assert response.json()["order_id"] == "order-1"
        assert "simulated" in response.json()["message"]
        assert upstream.requests == []

    def test_forward_to_crm(self, make_client, upstream, sample_webhook):
        upstream.handler = lambda request: httpx.Response(200, json={"ok": 1})
        client = make_client(CRM_CALLBACK_URL="https://crm.example.com")
        response = client.post("/api/pay/callback", json=sample_webhook, headers={"x-coinsbuy-signature": "s"})
        assert response.status_code == 200
        assert response.json() == {"status": "success", "order_id": "order-1", "crm_response": {"ok": 1}}

    def test_crm_timeout_is_502(self, make_client, upstream, sample_webhook):
        def slow(request):
            raise httpx.ConnectTimeout("connect timed out", request=request)

        upstream.handler = slow
        response = make_client(CRM_CALLBACK_URL="https://crm.example.com").post("/api/pay/callback", json=sample_webhook)
        assert response.status_code == 502
        assert "network error" in response.json()["error"]

    def test_cors_preflight(self, make_client):
        response = make_client().options(
            "/api/pay/callback",
            headers={"Origin": "https://crm.example.com", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
