"""Scraping- und Formular-Client für Kicktipp-Tipprunden."""

from .cache import ResponseCache
from .client import KicktippClient
from .config import ClientSettings, load_settings
from .errors import ConfigError, KicktippError, LoginError, OperationCancelled, TransportError
from .markup import DEFAULT_MARKERS, Markers
from .models import (
    AFTER_EXTRA_TIME,
    AFTER_PENALTIES,
    BonusAnswer,
    BonusOption,
    BonusQuestion,
    Fixture,
    FixtureWithHistory,
    HistoricalResult,
    Prediction,
    TeamStanding,
)
from .session import login, new_session

__version__ = "0.1.0"

__all__ = [
    "AFTER_EXTRA_TIME",
    "AFTER_PENALTIES",
    "BonusAnswer",
    "BonusOption",
    "BonusQuestion",
    "ClientSettings",
    "ConfigError",
    "DEFAULT_MARKERS",
    "Fixture",
    "FixtureWithHistory",
    "HistoricalResult",
    "KicktippClient",
    "KicktippError",
    "LoginError",
    "Markers",
    "OperationCancelled",
    "Prediction",
    "ResponseCache",
    "TeamStanding",
    "TransportError",
    "load_settings",
    "login",
    "new_session",
]
