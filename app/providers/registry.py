from ..settings import Settings
from ..utils.http import HttpFactory, client
from .base import SessionProvider
from .coinsbuy.adapter import CoinsbuyAdapter
from .mock.adapter import MockAdapter


def get_session_provider(settings: Settings, http: HttpFactory = client) -> SessionProvider:
    # выбор на процесс, а не на запрос
    if settings.PSP_SANDBOX_MODE:
        return MockAdapter(settings)
    return CoinsbuyAdapter(settings, http=http)
