from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union
from urllib.parse import parse_qsl, urlparse

import requests

from .errors import OperationCancelled, TransportError

log = logging.getLogger(__name__)

BASE_URL = "https://www.kicktipp.de"

Params = Optional[Mapping[str, Union[str, int]]]
FormBody = Union[Mapping[str, str], Sequence[Tuple[str, str]]]


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


def check_cancelled(cancel: Optional[CancelToken], what: str = "") -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled(f"Abgebrochen vor {what or 'Netzwerkaufruf'}")


@dataclass(frozen=True)
class PageResult:
    """Ergebnis eines GET: entweder HTML oder 'nicht gefunden' (404)."""

    url: str
    content: Optional[str] = None
    status: int = 200

    @property
    def found(self) -> bool:
        return self.content is not None

    @classmethod
    def not_found(cls, url: str) -> "PageResult":
        return cls(url=url, content=None, status=404)


def split_link(href: str) -> Tuple[str, Dict[str, str]]:
    """'/community/spielinfo?tippspielId=2' → ('community/spielinfo', {'tippspielId': '2'})."""
    parsed = urlparse(href)
    return parsed.path.strip("/"), dict(parse_qsl(parsed.query, keep_blank_values=True))


class PageFetcher:
    """Authentifizierte GET/POST-Aufrufe gegen die Tipprunde. Kein Parsing, keine Retries."""

    def __init__(self, session: requests.Session, base_url: str = BASE_URL, timeout: float = 25):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        if urlparse(path).scheme:
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def fetch(self, path: str, params: Params = None,
              cancel: Optional[CancelToken] = None) -> PageResult:
        check_cancelled(cancel, f"GET {path}")
        url = self.url_for(path)
        log.debug(f"GET {url} params={dict(params or {})}")
        try:
            r = self.session.get(url, params=dict(params or {}), timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"GET {url} fehlgeschlagen: {e}", url=url) from e
        final_url = getattr(r, "url", None) or url
        if r.status_code == 404:
            log.info(f"GET {url} → 404")
            return PageResult.not_found(final_url)
        if not 200 <= r.status_code < 300:
            raise TransportError(f"GET {url} → Status {r.status_code}", status=r.status_code, url=url)
        return PageResult(url=final_url, content=r.text, status=r.status_code)

    def post_form(self, url: str, data: FormBody, referer: Optional[str] = None,
                  cancel: Optional[CancelToken] = None) -> int:
        """POST (x-www-form-urlencoded); liefert den Statuscode, wirft nur bei Netzwerkfehlern."""
        check_cancelled(cancel, f"POST {url}")
        url = self.url_for(url)
        headers = {"Referer": referer} if referer else {}
        payload: List[Tuple[str, str]] = list(data.items()) if isinstance(data, Mapping) else list(data)
        log.info(f"POST {url} ({len(payload)} Felder)")
        try:
            r = self.session.post(url, data=payload, headers=headers, timeout=self.timeout,
                                  allow_redirects=True)
        except requests.RequestException as e:
            raise TransportError(f"POST {url} fehlgeschlagen: {e}", url=url) from e
        return r.status_code
