from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests

from .errors import LoginError, TransportError
from .fetcher import BASE_URL
from .forms import read_current_fields, set_field
from .markup import make_soup

log = logging.getLogger(__name__)

LOGIN_PATH = "/info/profil/login"
LOGIN_ACTION_PATH = "/info/profil/loginaction"

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) kicktipp-client"


def new_session(proxy: Optional[str] = None) -> requests.Session:
    s = requests.Session()
    s.headers.update({
        "User-Agent": USER_AGENT,
        "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
    })
    if proxy:
        s.proxies.update({"http": proxy, "https": proxy})
    return s


def mask_secret(s: Optional[str], keep: int = 3) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return s[:keep] + "…" + "*" * 6


def login(session: requests.Session, username: Optional[str], password: Optional[str],
          base_url: str = BASE_URL, timeout: float = 15) -> None:
    """Normales Login über das Formular; wirft LoginError, wenn die Seite danach noch das Loginformular zeigt."""
    if not username or not password:
        raise LoginError("Benutzername und Passwort werden benötigt")

    base = base_url.rstrip("/")
    login_url = f"{base}{LOGIN_PATH}"
    try:
        r = session.get(login_url, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"GET {login_url} fehlgeschlagen: {e}", url=login_url) from e
    if not 200 <= r.status_code < 300:
        raise TransportError(f"GET {login_url} → Status {r.status_code}", status=r.status_code, url=login_url)

    soup = make_soup(r.text)
    form = soup.select_one("form#loginFormular")
    if form is not None:
        payload = read_current_fields(form)
        action = urljoin(login_url, (form.get("action") or "").strip() or LOGIN_ACTION_PATH)
    else:
        payload = []
        action = f"{base}{LOGIN_ACTION_PATH}"
    payload = set_field(set_field(payload, "kennung", username), "passwort", password)

    log.info(f"POST Login als {mask_secret(username)}")
    try:
        r2 = session.post(action, data=payload, timeout=timeout, allow_redirects=True)
    except requests.RequestException as e:
        raise TransportError(f"POST {action} fehlgeschlagen: {e}", url=action) from e

    final_path = urlparse(getattr(r2, "url", "") or "").path.rstrip("/")
    still_login = make_soup(r2.text).select_one("form#loginFormular") is not None
    if not 200 <= r2.status_code < 300 or still_login or final_path.endswith("/profil/login"):
        raise LoginError(f"Login fehlgeschlagen (Status {r2.status_code})")
    log.info("Login erfolgreich.")
