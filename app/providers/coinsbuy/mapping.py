"""Перевод вебхука Coinsbuy в каноническую схему CRM."""

from decimal import Decimal
from typing import Any, Dict, Optional, Union

from ...schemas.pay import CanonicalCallback, CanonicalStatus
from ...utils.validators import parse_amount

# точное совпадение, регистр важен
STATUS_MAP: Dict[str, CanonicalStatus] = {
    "pending": CanonicalStatus.PENDING,
    "confirmed": CanonicalStatus.SUCCESS,
    "completed": CanonicalStatus.SUCCESS,
    "failed": CanonicalStatus.FAILED,
    "cancelled": CanonicalStatus.FAILED,
    "expired": CanonicalStatus.FAILED,
}


def map_status(provider_status: Any) -> CanonicalStatus:
    """Неизвестный или пустой статус -> pending: ни ложного success, ни ошибки."""
    if not isinstance(provider_status, str):
        return CanonicalStatus.PENDING
    return STATUS_MAP.get(provider_status, CanonicalStatus.PENDING)


def _first(*values: Any) -> Any:
    # первое непустое значение: None, "" и 0 пропускаем
    for v in values:
        if v:
            return v
    return None


def _as_str(v: Any) -> Optional[str]:
    return None if v is None else str(v)


def _exchange_rate(raw: Any) -> Optional[Union[Decimal, str]]:
    # пустое значение (0, "") не отправляем
    if not raw:
        return None
    rate = parse_amount(raw)
    if rate is None and isinstance(raw, str):
        # нечисловую строку провайдера пробрасываем как есть
        return raw
    return rate


def normalize_webhook(envelope: Dict[str, Any]) -> CanonicalCallback:
    data = envelope.get("data") if isinstance(envelope.get("data"), dict) else envelope
    attributes = data.get("attributes") if isinstance(data.get("attributes"), dict) else {}

    amount = parse_amount(_first(attributes.get("target_amount_requested"), attributes.get("amount"), 0))

    return CanonicalCallback(
        amount=amount if amount is not None else Decimal(0),
        currency=_as_str(_first(attributes.get("currency"), "USD")),
        status=map_status(attributes.get("status")),
        merchant_reference=_as_str(_first(attributes.get("tracking_id"), data.get("id"))),
        transaction_id=_as_str(data.get("id")),
        client_id=_as_str(_first(attributes.get("client_id"), "unknown")),
        exchange_rate=_exchange_rate(attributes.get("exchange_rate")),
    )
