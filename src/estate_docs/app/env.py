"""Deployment environment of the documents client.

``ESTATE_DOCS_ENV`` (falling back to ``APP_ENV``) selects per-environment
defaults: the back-office timeout in settings and the log level/format.
"""

from __future__ import annotations

import os
import warnings
from enum import StrEnum
from functools import cache


class Env(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    TEST = "test"
    PROD = "prod"


_ALIASES: dict[str, Env] = {
    "development": Env.DEV,
    "testing": Env.TEST,
    "ci": Env.TEST,
    "staging": Env.TEST,
    "production": Env.PROD,
}


@cache
def get_env() -> Env:
    raw = os.getenv("ESTATE_DOCS_ENV") or os.getenv("APP_ENV") or ""
    name = raw.strip().lower()
    if not name:
        return Env.LOCAL
    if name in {e.value for e in Env}:
        return Env(name)
    if name in _ALIASES:
        return _ALIASES[name]
    warnings.warn(f"Unrecognized environment '{raw}', using 'local'", RuntimeWarning, stacklevel=2)
    return Env.LOCAL


def pick(*, prod, nonprod, test=None):
    """``prod`` in production, ``test`` (when given) under tests, else ``nonprod``."""
    env = get_env()
    if env is Env.PROD:
        return prod
    if env is Env.TEST and test is not None:
        return test
    return nonprod
