"""Konfiguration: CLI → ENV → config.ini → Default."""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from .errors import ConfigError
from .fetcher import BASE_URL
from .navigator import MAX_DETAIL_PAGES
from .session import mask_secret

log = logging.getLogger(__name__)

INI_SECTIONS = ("DEFAULT", "auth", "kicktipp", "pool", "run", "settings")
TRUE_VALUES = {"1", "true", "t", "yes", "y", "on", "ja"}


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


class SettingsSource:
    """Ein Wert wird in der Reihenfolge CLI-Argument → Umgebungsvariable → config.ini → Default gesucht.

    Ein Wert, der sich nicht umwandeln lässt, gilt als nicht gesetzt: bei CLI und ini
    greift der Default, bei ENV wird in der ini weitergesucht.
    """

    def __init__(self, args: Any = None, cfg: Optional[configparser.ConfigParser] = None,
                 sections: Sequence[str] = INI_SECTIONS):
        self.args = args
        self.cfg = cfg
        self.sections = sections

    @classmethod
    def load(cls, args: Any = None, path: Optional[str] = None) -> "SettingsSource":
        p = Path(path or getattr(args, "config", None) or "config.ini")
        if not p.exists():
            log.info(f"Kein config.ini gefunden unter: {p.resolve()}")
            return cls(args)
        cfg = configparser.ConfigParser()
        cfg.read(p, encoding="utf-8")
        log.info(f"Config geladen: {p.resolve()}")
        return cls(args, cfg)

    def ini(self, keys: Sequence[str]) -> Optional[str]:
        if self.cfg is None:
            return None
        for sec in self.sections:
            if not (sec == "DEFAULT" or self.cfg.has_section(sec)):
                continue
            for k in keys:
                raw = self.cfg[sec].get(k, "").strip()
                if raw:
                    return raw
        return None

    def get(self, arg: str, env_keys: Sequence[str], ini_keys: Sequence[str],
            cast: Callable[[Any], Any] = str, default: Any = None) -> Any:
        cli_val = getattr(self.args, arg, None) if self.args is not None else None
        if cli_val is not None:
            try:
                return cast(cli_val)
            except (TypeError, ValueError):
                log.warning(f"--{arg.replace('_', '-')}: ungültiger Wert {cli_val!r}, nutze Default")
                return default
        for env in env_keys:
            raw = os.environ.get(env, "").strip()
            if raw:
                try:
                    return cast(raw)
                except (TypeError, ValueError):
                    log.warning(f"{env}: ungültiger Wert {raw!r}")
                    break
        raw = self.ini(ini_keys)
        if raw is None:
            return default
        try:
            return cast(raw)
        except (TypeError, ValueError):
            log.warning(f"config.ini {ini_keys[0]}: ungültiger Wert {raw!r}, nutze Default")
            return default


@dataclass(frozen=True)
class ClientSettings:
    base_url: str = BASE_URL
    community: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 25
    proxy: Optional[str] = None
    max_detail_pages: int = MAX_DETAIL_PAGES
    max_workers: int = 4

    def require_community(self) -> str:
        if not self.community:
            raise ConfigError("community (Tipprunde) fehlt (config.ini/ENV/CLI)")
        return self.community

    def describe(self) -> str:
        return (f"community={self.community} | base={self.base_url} | user={self.username} | "
                f"password={mask_secret(self.password)} | timeout={self.timeout}s | "
                f"proxy={self.proxy or '-'} | workers={self.max_workers}")


def load_settings(args: Any = None, config_path: Optional[str] = None,
                  source: Optional[SettingsSource] = None) -> ClientSettings:
    """``args`` ist ein argparse-Namespace (oder None); fehlende Attribute zählen als nicht gesetzt."""
    src = source if source is not None else SettingsSource.load(args, config_path)
    return ClientSettings(
        base_url=src.get("base_url", ["KICKTIPP_BASE_URL"], ["base_url", "url"], str, BASE_URL),
        community=src.get("community", ["KICKTIPP_COMMUNITY", "KICKTIPP_POOL_SLUG", "POOL_SLUG"],
                          ["community", "pool_slug", "pool", "runde", "group_slug"]),
        username=src.get("username", ["KICKTIPP_USERNAME", "KICKTIPP_USER"],
                         ["username", "user", "kennung", "login", "email"]),
        password=src.get("password", ["KICKTIPP_PASSWORD", "KICKTIPP_PASS"], ["password", "passwort", "pwd"]),
        timeout=src.get("timeout", ["KICKTIPP_TIMEOUT"], ["timeout", "http_timeout"], float, 25.0),
        proxy=src.get("proxy", ["HTTPS_PROXY", "HTTP_PROXY"], ["proxy", "https_proxy", "http_proxy"]),
        max_detail_pages=src.get("max_detail_pages", ["KICKTIPP_MAX_DETAIL_PAGES"], ["max_detail_pages"],
                                 int, MAX_DETAIL_PAGES),
        max_workers=src.get("max_workers", ["KICKTIPP_MAX_WORKERS"], ["max_workers", "workers"], int, 4),
    )
