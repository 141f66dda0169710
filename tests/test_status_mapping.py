# Маппинг статусов Coinsbuy -> CRM

import pytest

from app.providers.coinsbuy.mapping import STATUS_MAP, map_status
from app.schemas.pay import CanonicalStatus


@pytest.mark.parametrize(
    "provider_status, expected",
    [
        ("pending", CanonicalStatus.PENDING),
        ("confirmed", CanonicalStatus.SUCCESS),
        ("completed", CanonicalStatus.SUCCESS),
        ("failed", CanonicalStatus.FAILED),
        ("cancelled", CanonicalStatus.FAILED),
        ("expired", CanonicalStatus.FAILED),
    ],
)
def test_known_statuses(provider_status, expected):
    assert map_status(provider_status) == expected


def test_table_is_closed():
    assert set(STATUS_MAP) == {"pending", "confirmed", "completed", "failed", "cancelled", "expired"}


@pytest.mark.parametrize("provider_status", ["refunded", "CONFIRMED", "Confirmed", " confirmed", "", "paid"])
def test_unknown_defaults_to_pending(provider_status):
    """Неизвестный статус никогда не становится success."""
    assert map_status(provider_status) == CanonicalStatus.PENDING


@pytest.mark.parametrize("provider_status", [None, 1, ["confirmed"], {"status": "confirmed"}])
def test_non_string_defaults_to_pending(provider_status):
    assert map_status(provider_status) == CanonicalStatus.PENDING
