"""
Таксономия ошибок коннектора и явный тип результата.

Ошибки это исключения, но по конвейеру они передаются как значения
(Outcome.error), без raise: первая ошибка останавливает обработку.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Reply:
    """То, что HTTP-граница отдаёт клиенту."""
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


class RelayError(Exception):
    status_code = 500
    kind = "internal_error"

    def __init__(self, error: str, detail: Any = None):
        super().__init__(error)
        self.error = error
        self.detail = detail

    def to_reply(self) -> Reply:
        body: Dict[str, Any] = {"error": self.error}
        if self.detail is not None:
            body["detail"] = self.detail
        return Reply(self.status_code, body)


class ValidationError(RelayError):
    status_code = 400
    kind = "validation_error"


class AuthError(RelayError):
    status_code = 401
    kind = "auth_error"


class UpstreamError(RelayError):
    status_code = 502
    kind = "upstream_error"


class UpstreamRejection(UpstreamError):
    """Апстрим ответил не-2xx: статус и тело пробрасываем вызывающему."""
    kind = "upstream_rejection"

    def __init__(self, error: str, detail: Any = None, upstream_status: Optional[int] = None):
        super().__init__(error, detail)
        self.upstream_status = upstream_status

    def to_reply(self) -> Reply:
        reply = super().to_reply()
        if self.upstream_status is not None:
            reply.body["status"] = self.upstream_status
        return reply


class UpstreamUnreachable(UpstreamError):
    kind = "upstream_unreachable"


class InternalError(RelayError):
    # detail наружу не отдаём никогда
    def __init__(self, error: str = "Internal Server Error."):
        super().__init__(error)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[RelayError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: RelayError) -> "Outcome[T]":
        return cls(error=error)
