from typing import Any

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse

from ..errors import Reply

router = APIRouter()


async def _read_json(request: Request) -> Any:
    # невалидный JSON дальше считается «не объектом» -> 400 в валидаторе
    try:
        return await request.json()
    except ValueError:
        return None


def _respond(reply: Reply) -> JSONResponse:
    return JSONResponse(status_code=reply.status_code, content=reply.body)


@router.post("/api/pay/url")
async def pay_url(request: Request, crm_pay_token: str | None = Header(default=None)):
    """Платёжная ссылка для депозита CRM: {payment_url, order_id, provider}."""
    body = await _read_json(request)
    reply = await request.app.state.initiator.create_payment_url(body, crm_pay_token)
    return _respond(reply)


@router.post("/api/pay/callback")
async def pay_callback(request: Request):
    """Вебхук PSP -> каноническая схема -> CRM."""
    body = await _read_json(request)
    reply = await request.app.state.relay.relay(body, request.headers)
    return _respond(reply)
