from __future__ import annotations
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings

_CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£", "GEL": "₾"}


class Settings(BaseSettings):
    # Optional JSON fee schedule; the built-in tables are used when unset.
    schedule_path: str | None = Field(default=None, alias="SERVICE_COST_SCHEDULE_PATH")
    strict_labels: bool = Field(default=False, alias="SERVICE_COST_STRICT_LABELS")
    currency: str = Field(default="EUR", alias="SERVICE_COST_CURRENCY")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    allowed_origins: str = Field(default="*", alias="ALLOWED_ORIGINS")

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @property
    def currency_symbol(self) -> str:
        code = self.currency.upper()
        return _CURRENCY_SYMBOLS.get(code, code + " ")

    @property
    def origins(self) -> List[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return origins or ["*"]


settings = Settings()
