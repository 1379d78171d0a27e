from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .markup import (
    DEFAULT_MARKERS,
    SENTINEL_KICKOFF,
    Markers,
    cells_of,
    home_away_inputs,
    make_soup,
    parse_int,
    parse_kickoff,
    parse_kickoff_time,
    row_is_cancelled,
    text_of,
)
from .models import Fixture, Prediction, TeamStanding, parse_prediction

log = logging.getLogger(__name__)

FIXTURE_TABLE_SELECTORS = ("#tippabgabeSpiele tbody", "#tippabgabeSpiele", "table.tippabgabe tbody")
MATCHDAY_PATTERNS = (
    re.compile(r"(\d+)\.\s*Spieltag", re.IGNORECASE),
    re.compile(r"Spieltag\s+(\d+)", re.IGNORECASE),
    re.compile(r"Matchday\s+(\d+)", re.IGNORECASE),
)


# -----------------------------------------------------------------------------
# Tippabgabe-Zeilen
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class FixtureRow:
    """Eine geparste Tippzeile inkl. der Feldnamen, unter denen sie gepostet wird."""

    fixture: Fixture
    home_field: Optional[str]
    away_field: Optional[str]
    home_value: str
    away_value: str

    @property
    def prediction(self) -> Optional[Prediction]:
        return parse_prediction(self.home_value, self.away_value)


def find_fixture_table(soup: BeautifulSoup) -> Optional[Tag]:
    for sel in FIXTURE_TABLE_SELECTORS:
        table = soup.select_one(sel)
        if table is not None:
            return table
    return None


def extract_matchday(soup: BeautifulSoup) -> int:
    """Titel ('5. Spieltag') vor verstecktem Feld spieltagIndex, sonst 1."""
    titles = soup.select(".prevnextTitle") + soup.select("title, h1, h2")
    for el in titles:
        txt = text_of(el)
        for pat in MATCHDAY_PATTERNS:
            m = pat.search(txt)
            if m:
                return int(m.group(1))
    hid = soup.select_one('input[name="spieltagIndex"]')
    if hid is not None:
        value = parse_int(hid.get("value"))
        if value is not None and value > 0:
            return value
    return 1


def parse_fixture_rows(html: str, markers: Markers = DEFAULT_MARKERS) -> List[FixtureRow]:
    soup = make_soup(html)
    table = find_fixture_table(soup)
    if table is None:
        log.warning("Tippabgabe-Tabelle nicht gefunden")
        return []

    matchday = extract_matchday(soup)
    rows: List[FixtureRow] = []
    last_kickoff: Optional[datetime] = None

    for tr in table.find_all("tr"):
        try:
            cells = cells_of(tr)
            if len(cells) < 3:
                continue
            time_text = text_of(cells[0])
            kickoff = parse_kickoff(time_text) or parse_kickoff_time(time_text, last_kickoff)
            if kickoff is not None:
                last_kickoff = kickoff
            else:
                kickoff = last_kickoff or SENTINEL_KICKOFF
                log.debug(f"Anstoß geerbt für Zeile '{text_of(tr)[:60]}': {kickoff}")

            home_team, away_team = text_of(cells[1]), text_of(cells[2])
            inputs = home_away_inputs(tr)
            if not home_team or not away_team or inputs is None:
                log.debug(f"Zeile ohne Tippfelder übersprungen: {home_team!r} – {away_team!r}")
                continue

            home_inp, away_inp = inputs
            fixture = Fixture(home_team, away_team, kickoff, matchday,
                              cancelled=row_is_cancelled(tr, markers))
            if fixture.cancelled:
                log.info(f"{fixture} ist abgesagt (Anstoß {kickoff:%d.%m.%y %H:%M})")
            rows.append(FixtureRow(
                fixture=fixture,
                home_field=home_inp.get("name"), away_field=away_inp.get("name"),
                home_value=(home_inp.get("value") or "").strip(),
                away_value=(away_inp.get("value") or "").strip(),
            ))
        except Exception as exc:
            log.warning(f"Fehler beim Parsen einer Tippzeile: {exc}")
            continue

    log.debug(f"{len(rows)} Tippzeilen erkannt (Spieltag {matchday})")
    return rows


def parse_fixtures(html: str, markers: Markers = DEFAULT_MARKERS) -> List[Fixture]:
    return [r.fixture for r in parse_fixture_rows(html, markers)]


def parse_placed_predictions(html: str,
                             markers: Markers = DEFAULT_MARKERS) -> Dict[Fixture, Optional[Prediction]]:
    placed: Dict[Fixture, Optional[Prediction]] = {}
    for row in parse_fixture_rows(html, markers):
        if (row.home_value or row.away_value) and row.prediction is None:
            log.warning(f"Tipp für {row.fixture} nicht lesbar: '{row.home_value}':'{row.away_value}'")
        placed[row.fixture] = row.prediction
    return placed


def find_detail_link(html: str) -> Optional[str]:
    """Link 'Tippabgabe mit Spielinfos' (führt zur Spielinfo des ersten Spiels)."""
    soup = make_soup(html)
    link = soup.select_one("a[href*='spielinfo']")
    href = link.get("href") if link is not None else None
    return href.strip() if href and href.strip() else None


# -----------------------------------------------------------------------------
# Tabelle
# -----------------------------------------------------------------------------
def parse_standings(html: str) -> List[TeamStanding]:
    soup = make_soup(html)
    body = soup.select_one("table.sporttabelle tbody")
    if body is None:
        log.warning("Tabelle (sporttabelle) nicht gefunden")
        return []

    standings: List[TeamStanding] = []
    for tr in body.find_all("tr"):
        cells = cells_of(tr)
        if len(cells) < 9:
            continue
        name_el = cells[1].find("div") or cells[1]
        numbers = [parse_int(text_of(c)) for c in (cells[0], cells[2], cells[3], cells[5], cells[6], cells[7], cells[8])]
        if any(n is None for n in numbers):
            log.warning(f"Tabellenzeile nicht lesbar: {text_of(tr)[:80]}")
            continue
        goals_for, goals_against = _split_goals(text_of(cells[4]))
        position, played, points, diff, wins, draws, losses = numbers
        standings.append(TeamStanding(
            position=position, team_name=text_of(name_el), games_played=played, points=points,
            goals_for=goals_for, goals_against=goals_against, goal_difference=diff,
            wins=wins, draws=draws, losses=losses,
        ))
    log.info(f"{len(standings)} Tabellenplätze gelesen")
    return standings


def _split_goals(text: str) -> Tuple[int, int]:
    parts = text.split(":")
    if len(parts) != 2:
        return 0, 0
    return parse_int(parts[0]) or 0, parse_int(parts[1]) or 0
