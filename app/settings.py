from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # frozen: конфигурация читается один раз при старте процесса
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True)

    APP_NAME: str = "CRMPayRelay"
    APP_ENV: str = "development"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    PORT: int = 3000

    # CRM: общий секрет (входящий crm-pay-token и исходящий callback)
    CRM_PAY_TOKEN: str = ""
    # пусто: форвард в CRM симулируется
    CRM_CALLBACK_URL: str = ""
    CRM_CALLBACK_TIMEOUT_SEC: float = 10

    # --- Coinsbuy (live) ---
    COINSBUY_URL: str = ""
    COINSBUY_AUTH_TOKEN: str = ""
    COINSBUY_WALLET_ID: int = 1
    PSP_TIMEOUT_SEC: float = 15

    # --- Sandbox ---
    PSP_SANDBOX_MODE: bool = False
    PSP_PAYMENT_BASE_URL: str = "https://mock-psp.pay/url/"

    # Публичный адрес коннектора (для callback_url у PSP)
    BASE_URL: str = "http://localhost:3000"
    DASHBOARD_URL: str = "https://my.itrader.global/dashboard"

    ALLOWED_ORIGINS: str = "*"

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


settings = Settings()
