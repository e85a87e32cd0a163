from .base import BackOffice
from .http import HttpBackOffice
from .memory import InMemoryBackOffice

__all__ = ["BackOffice", "HttpBackOffice", "InMemoryBackOffice"]
