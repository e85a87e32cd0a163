from __future__ import annotations

import os
from typing import Any, Optional

import httpx

from .app.settings import get_settings


def get_default_timeout_seconds(default: Optional[float] = None) -> float:
    """HTTP_CLIENT_TIMEOUT_SECONDS wins, then ``default``, then the settings value."""
    raw = os.getenv("HTTP_CLIENT_TIMEOUT_SECONDS")
    if raw:
        try:
            return float(raw)
        except ValueError:
            pass
    if default is not None:
        return float(default)
    return float(get_settings().timeout_seconds)


def new_async_httpx_client(
    *,
    base_url: str = "",
    token: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
    headers: Optional[dict[str, str]] = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    timeout = httpx.Timeout(get_default_timeout_seconds(timeout_seconds))
    merged = {"Accept": "application/json", **(headers or {})}
    if token:
        merged["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=merged, **kwargs)
