from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, Optional, Union

from pydantic import BaseModel, Field, PlainSerializer

# дальше этого порядка целое в JSON уходит как float, а не int на сотни цифр
_INT_MAX_ORDER = 18


def _json_number(v: Any):
    # как число в JSON: 100 -> 100, 100.5 -> 100.5; не-Decimal отдаём как есть
    if not isinstance(v, Decimal):
        return v
    if v == v.to_integral_value() and v.adjusted() <= _INT_MAX_ORDER:
        return int(v)
    return float(v)


JsonDecimal = Annotated[Decimal, PlainSerializer(_json_number, when_used="json")]
# курс от провайдера: число, если распарсилось, иначе исходная строка
JsonRate = Annotated[Union[Decimal, str], PlainSerializer(_json_number, when_used="json")]


class CanonicalStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Provider(str, Enum):
    MOCK = "mock"
    LIVE = "live"


# ====== ВХОД ОТ CRM ======

class PaymentSessionRequest(BaseModel):
    # строится уже после validate_session_request
    amount: Decimal
    currency: str
    client_id: str
    return_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ====== ВЫХОД К CRM ======

class PaymentSessionResult(BaseModel):
    payment_url: str
    order_id: str
    provider: Provider
    provider_reference: Optional[str] = None
    provider_status: Optional[str] = None

    def public(self) -> Dict[str, Any]:
        """Тело ответа /api/pay/url."""
        return {"payment_url": self.payment_url, "order_id": self.order_id, "provider": self.provider.value}


class CanonicalCallback(BaseModel):
    amount: JsonDecimal
    currency: str
    status: CanonicalStatus
    merchant_reference: Optional[str] = None
    transaction_id: Optional[str] = None
    client_id: str
    exchange_rate: Optional[JsonRate] = None

    def to_payload(self) -> Dict[str, Any]:
        # пустые поля провайдера в CRM не отправляем
        return self.model_dump(mode="json", exclude_none=True)
