from .env import Env, get_env, pick
from .logging import setup_logging
from .settings import BackOfficeSettings, get_settings

__all__ = [
    "Env",
    "get_env",
    "pick",
    "setup_logging",
    "BackOfficeSettings",
    "get_settings",
]
