"""Spielinfo-Navigation: von der ersten Spielinfo-Seite per "weiter"-Link bis zum gesuchten Spiel.

Die Seite kennt keinen direkten Zugriff per Spiel-ID; jede Spielinfo-Seite verlinkt
nur auf die nächste. Die Suche ist eine begrenzte Schleife über
``inspect_detail_page(html) -> (treffer, nächster_link)``.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Set, Tuple
from urllib.parse import urlencode

from .fetcher import PageResult, split_link
from .markup import cells_of, make_soup, text_of

log = logging.getLogger(__name__)

# ansicht-Parameter der Spielinfo-Seite
RESULTS = 1
HOME_AWAY = 2
HEAD_TO_HEAD = 3

# Eine Spielinfo-Seite pro Spiel; großzügig über der Spielanzahl eines Spieltags
MAX_DETAIL_PAGES = 50

FetchFn = Callable[[str, dict], PageResult]


def with_view_mode(href: str, mode: Optional[int]) -> Tuple[str, dict]:
    """Zerlegt einen Link in (Pfad, Parameter) und setzt ansicht=mode (None = weglassen)."""
    path, params = split_link(href)
    params.pop("ansicht", None)
    if mode is not None:
        params["ansicht"] = str(mode)
    return path, params


def link_for(path: str, params: dict) -> str:
    return f"/{path}?{urlencode(params)}" if params else f"/{path}"


def next_link(html: str) -> Optional[str]:
    soup = make_soup(html)
    a = soup.select_one(".prevnextNext a")
    if a is None:
        return None
    parent = a.parent
    if parent is not None and "disabled" in (parent.get("class") or []):
        return None
    href = (a.get("href") or "").strip()
    return href or None


def inspect_detail_page(html: str, home_team: str, away_team: str) -> Tuple[bool, Optional[str]]:
    """Schrittfunktion: (passt die Seite auf home/away?, Link zur nächsten Seite oder None)."""
    soup = make_soup(html)
    for tr in soup.select("table.tippabgabe tbody tr"):
        cells = cells_of(tr)
        if len(cells) < 3:
            continue
        if text_of(cells[1]) == home_team and text_of(cells[2]) == away_team:
            return True, None
    return False, next_link(html)


def find_detail_page(fetch: FetchFn, start_href: str, home_team: str, away_team: str,
                     view_mode: Optional[int] = HOME_AWAY,
                     max_pages: int = MAX_DETAIL_PAGES) -> Optional[PageResult]:
    """Läuft die Spielinfo-Kette ab; liefert die passende Seite oder None.

    ``fetch(path, params)`` wird typischerweise über den ResponseCache der laufenden
    Operation geleitet. Transport-/Abbruchfehler werden nicht abgefangen.
    """
    href: Optional[str] = start_href
    seen: Set[Tuple[str, Tuple[Tuple[str, str], ...]]] = set()

    for step in range(max_pages):
        if not href:
            break
        path, params = with_view_mode(href, view_mode)
        key = (path, tuple(sorted(params.items())))
        if key in seen:
            log.warning(f"Spielinfo-Kette zyklisch bei {link_for(path, params)}, Abbruch")
            return None
        seen.add(key)

        page = fetch(path, params)
        if not page.found:
            log.info(f"Spielinfo-Seite {link_for(path, params)} nicht gefunden")
            return None

        matched, href = inspect_detail_page(page.content, home_team, away_team)
        if matched:
            log.debug(f"Spielinfo für {home_team} – {away_team} nach {step + 1} Seite(n) gefunden")
            return page
    else:
        log.warning(f"Spielinfo-Suche nach {max_pages} Seiten abgebrochen ({home_team} – {away_team})")
        return None

    log.warning(f"Keine Spielinfo-Seite für {home_team} – {away_team} gefunden")
    return None
