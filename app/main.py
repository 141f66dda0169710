import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .callbacks.crm_client import CRMCallbackClient
from .providers.registry import get_session_provider
from .routers import pay
from .services.relay import WebhookRelay
from .services.session import PaymentSessionInitiator
from .settings import Settings, settings as default_settings
from .utils.http import HttpFactory, client
from .utils.logging import HTTP_LOGGER, Timer, configure_logging, new_request_id, request_id_ctx, sanitize

logger = logging.getLogger(HTTP_LOGGER)

CORS_HEADERS = ["Content-Type", "Authorization", "crm-pay-token", "x-coinsbuy-signature"]


def create_app(settings: Optional[Settings] = None, http: Optional[HttpFactory] = None) -> FastAPI:
    settings = settings or default_settings
    http = http or client
    configure_logging(settings)

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)
    app.state.settings = settings
    app.state.initiator = PaymentSessionInitiator(settings, get_session_provider(settings, http=http))
    app.state.relay = WebhookRelay(CRMCallbackClient(settings, http=http))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=CORS_HEADERS,
    )

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        request_id = new_request_id()
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        timer = Timer()
        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "headers": sanitize(dict(request.headers)),
                "query": sanitize(dict(request.query_params)),
            },
        )
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "Request completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": timer.elapsed_ms(),
                },
            )
            return response
        finally:
            request_id_ctx.reset(token)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        error = "Endpoint not found" if exc.status_code == 404 else exc.detail
        return JSONResponse(status_code=exc.status_code, content={"error": error}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"method": request.method, "path": request.url.path})
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "request_id": getattr(request.state, "request_id", None)},
        )

    app.include_router(pay.router, tags=["Payments"])

    @app.get("/health", tags=["Ops"])
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.APP_VERSION,
            "environment": settings.APP_ENV,
        }

    logger.info(
        "Application configured",
        extra={"environment": settings.APP_ENV, "sandbox_mode": settings.PSP_SANDBOX_MODE,
               "crm_forwarding": bool(settings.CRM_CALLBACK_URL)},
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=default_settings.PORT)
