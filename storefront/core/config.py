from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOKEN_SIGNING_SECRET = "storefront-dev-token-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SF_", extra="ignore")

    app_name: str = "Storefront Orders"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./storefront.db"

    auth_enabled: bool = True
    token_signing_secret: str = DEFAULT_TOKEN_SIGNING_SECRET
    access_token_ttl_seconds: int = 7 * 24 * 3600
    # Principal used for every request when auth is disabled.
    dev_principal_id: str = "customer-dev-001"
    dev_principal_role: str = "customer"

    tax_rate: Decimal = Field(default=Decimal("0.10"), description="VAT applied to the subtotal")
    free_shipping_threshold: Decimal = Decimal("1000000")
    standard_shipping_fee: Decimal = Decimal("50000")

    orders_page_size: int = 10
    admin_orders_page_size: int = 20
    max_page_size: int = 100

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return

        if self.token_signing_secret == DEFAULT_TOKEN_SIGNING_SECRET:
            raise ValueError(
                "insecure default secrets are not allowed outside dev mode; set env vars: "
                "SF_TOKEN_SIGNING_SECRET"
            )

    @property
    def is_dev(self) -> bool:
        return self.env.lower() == "dev"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
