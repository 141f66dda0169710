import logging
from typing import Mapping, Optional

from .logging import WEBHOOK_LOGGER

logger = logging.getLogger(WEBHOOK_LOGGER)

SIGNATURE_HEADERS = ("x-coinsbuy-signature", "x-psp-signature")


def psp_signature(headers: Mapping[str, str]) -> Optional[str]:
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in SIGNATURE_HEADERS:
        if lowered.get(name):
            return lowered[name]
    return None


def verify_psp_signature(headers: Mapping[str, str]) -> bool:
    """
    Гейт подписи вебхука PSP. Сейчас пропускает всё:
    без заголовка с предупреждением, с заголовком без проверки.
    Открытая проблема безопасности, см. DESIGN.md.
    """
    signature = psp_signature(headers)
    if not signature:
        logger.warning("No signature found in webhook headers")
        return True
    # TODO: HMAC-проверка тела по секрету Coinsbuy, когда провайдер опубликует схему подписи
    return True
