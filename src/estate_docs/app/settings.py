from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .env import pick


class BackOfficeSettings(BaseSettings):
    """
    Back-office client settings.

    Env support (ESTATE_DOCS_ prefix):
      ESTATE_DOCS_BASE_URL, ESTATE_DOCS_TOKEN, ESTATE_DOCS_TIMEOUT_SECONDS,
      ESTATE_DOCS_TIER_LIMIT, ESTATE_DOCS_PROPERTY_LIMIT, ESTATE_DOCS_PAGE_SIZE,
      ESTATE_DOCS_DROP_SUPERSEDED
    """

    base_url: str = Field(default="http://localhost:5000/api")
    token: Optional[str] = Field(default=None)
    timeout_seconds: float = Field(default_factory=lambda: pick(prod=60.0, nonprod=60.0, test=5.0))

    # page sizes used by the tiered lookups and the document list
    tier_limit: int = Field(default=50, ge=1)
    property_limit: int = Field(default=200, ge=1)
    page_size: int = Field(default=12, ge=1)

    # discard bulk-load writes that finish after the cache was cleared
    drop_superseded: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="ESTATE_DOCS_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings(**kwargs) -> BackOfficeSettings:
    # Only include kwargs that are not None, so defaults in BackOfficeSettings are used
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    return BackOfficeSettings(**filtered)
