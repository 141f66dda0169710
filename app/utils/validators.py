"""
Проверки входящих запросов.

Каждая проверка возвращает ValidationResult: машиночитаемую причину,
человекочитаемую ошибку и HTTP-статус, который нужно отдать.
"""

import hmac
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..errors import AuthError, RelayError, ValidationError

logger = logging.getLogger(__name__)

CURRENCY_RE = re.compile(r"^[A-Z]{3,4}$")
CLIENT_ID_MAX_LEN = 100
# 10^18: с запасом для любой суммы и курса
AMOUNT_MAX_ORDER = 18
SESSION_REQUIRED_FIELDS = ("amount", "currency", "client_id")

_url_adapter = TypeAdapter(AnyUrl)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    reason: Optional[str] = None
    error: Optional[str] = None
    status_code: int = 200

    @classmethod
    def passed(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def failed(cls, reason: str, error: str, status_code: int = 400) -> "ValidationResult":
        return cls(False, reason, error, status_code)

    def as_error(self) -> RelayError:
        if self.status_code == 401:
            return AuthError(self.error)
        return ValidationError(self.error)


def missing_fields(body: dict, required) -> List[str]:
    return [f for f in required if body.get(f) is None or body.get(f) == ""]


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Decimal для конечного числа или числовой строки, иначе None.
    Порядок величины ограничен AMOUNT_MAX_ORDER в обе стороны:
    "1e5000" не должен превращаться в int на тысячи цифр.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return None
    text = str(value).strip()
    if "_" in text:
        # Decimal("1_000") валиден, но это не простая числовая строка
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    if not amount:
        # у нуля экспонента может быть любой: "0e9999"
        return Decimal(0)
    if not -AMOUNT_MAX_ORDER <= amount.adjusted() <= AMOUNT_MAX_ORDER:
        return None
    return amount


def is_valid_amount(value: Any) -> bool:
    amount = parse_amount(value)
    return amount is not None and amount > 0


def is_valid_currency(value: Any) -> bool:
    return isinstance(value, str) and CURRENCY_RE.fullmatch(value) is not None


def is_valid_client_id(value: Any) -> bool:
    return isinstance(value, str) and 0 < len(value) <= CLIENT_ID_MAX_LEN


def is_valid_url(value: Any) -> bool:
    if not value:
        return True  # необязательное поле
    if not isinstance(value, str):
        return False
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def validate_session_request(body: Any) -> ValidationResult:
    if not isinstance(body, dict):
        return ValidationResult.failed("invalid_payload", "Invalid payload: must be a JSON object")

    missing = missing_fields(body, SESSION_REQUIRED_FIELDS)
    if missing:
        return ValidationResult.failed(
            "missing_required_fields", f"Missing required fields: {', '.join(missing)}"
        )

    if not is_valid_amount(body["amount"]):
        return ValidationResult.failed("invalid_amount", "Invalid amount: must be a positive number")
    if not is_valid_currency(body["currency"]):
        return ValidationResult.failed(
            "invalid_currency", "Invalid currency: must be a 3-4 character uppercase code"
        )
    if not is_valid_client_id(body["client_id"]):
        return ValidationResult.failed(
            "invalid_client_id", "Invalid client_id: must be a non-empty string (max 100 characters)"
        )
    if not is_valid_url(body.get("return_url")):
        return ValidationResult.failed("invalid_return_url", "Invalid return_url: must be a valid URL")

    metadata = body.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        return ValidationResult.failed("invalid_metadata", "Invalid metadata: must be a JSON object")

    return ValidationResult.passed()


def validate_callback_request(body: Any) -> ValidationResult:
    # формат PSP мы не контролируем, требуем только JSON-объект
    if not isinstance(body, dict):
        return ValidationResult.failed("invalid_payload", "Invalid payload: must be a JSON object")
    return ValidationResult.passed()


def validate_crm_pay_token(token: Optional[str], expected: Optional[str]) -> ValidationResult:
    if not expected:
        logger.warning("CRM_PAY_TOKEN is not configured, rejecting request")
        return ValidationResult.failed("auth_not_configured", "Unauthorized: Invalid token.", 401)
    if token is None or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        return ValidationResult.failed("invalid_token", "Unauthorized: Invalid token.", 401)
    return ValidationResult.passed()
