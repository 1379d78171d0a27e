from __future__ import annotations

from typing import Optional


class KicktippError(Exception):
    """Basisklasse aller Fehler dieses Pakets."""


class TransportError(KicktippError):
    """Netzwerkfehler oder HTTP-Status außerhalb von 2xx/404."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url


class OperationCancelled(KicktippError):
    pass


class LoginError(KicktippError):
    pass


class ConfigError(KicktippError):
    pass
