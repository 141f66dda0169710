from typing import Callable
import httpx

HttpFactory = Callable[..., httpx.AsyncClient]


def client(timeout_sec: float = 15) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout_sec)


def response_body(resp: httpx.Response):
    """JSON-тело ответа апстрима, либо сырой текст."""
    try:
        return resp.json()
    except ValueError:
        return resp.text or ""
