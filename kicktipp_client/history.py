from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .markup import DEFAULT_MARKERS, Markers, cells_of, classes_of, make_soup, parse_int, text_of
from .models import DRAW, LOSS, WIN, Fixture, FixtureWithHistory, HistoricalResult

log = logging.getLogger(__name__)

HOME_TABLE = "spielinfoHeim"
AWAY_TABLE = "spielinfoGast"
HEAD_TO_HEAD_SELECTORS = ("table.spielinfoDirekt tbody", "table.spielinfoDirekt")

OUTCOME_CLASSES = {"sieg": WIN, "remis": DRAW, "niederlage": LOSS}


class _SkipRow(Exception):
    pass


# -----------------------------------------------------------------------------
# Zeilen-Parsing (gemeinsam für Heim/Gast- und Direktvergleich-Tabellen)
# -----------------------------------------------------------------------------
def _result_index(cells: List[Tag]) -> Optional[int]:
    for i, c in enumerate(cells):
        if c.select_one(".kicktipp-ergebnis, .kicktipp-heim") is not None:
            return i
    return None


def _score(result_cell: Tag) -> Tuple[Optional[int], Optional[int]]:
    """(heim, gast) des Endstands; (None, None) ohne Ergebnis. Unlesbare Ziffern → _SkipRow."""
    section = result_cell.select_one(".kicktipp-abpfiff") or result_cell
    home_el = section.select_one(".kicktipp-heim")
    away_el = section.select_one(".kicktipp-gast")
    if home_el is None or away_el is None:
        return None, None
    home_txt, away_txt = text_of(home_el), text_of(away_el)
    if home_txt in {"", "-"} or away_txt in {"", "-"}:
        return None, None
    home, away = parse_int(home_txt), parse_int(away_txt)
    if home is None or away is None or home < 0 or away < 0:
        raise _SkipRow(f"Ergebnis nicht lesbar: '{home_txt}:{away_txt}'")
    return home, away


def _annotation(row: Tag, cells: List[Tag], idx: int, markers: Markers) -> Optional[str]:
    el = row.select_one(".kicktipp-zusatz, .zusatz")
    if el is not None:
        return markers.canonical_annotation(text_of(el))
    trailing = " ".join(text_of(c) for c in cells[idx + 1:]).strip()
    return markers.canonical_annotation(trailing) if trailing else None


def _outcome(home_cell: Tag, away_cell: Tag, home_goals: Optional[int], away_goals: Optional[int],
             team: Optional[str]) -> Optional[str]:
    if home_goals is None or away_goals is None:
        return None
    # die Zelle der betrachteten Mannschaft trägt sieg/remis/niederlage
    for cell in (home_cell, away_cell):
        for cls in classes_of(cell):
            if cls in OUTCOME_CLASSES:
                return OUTCOME_CLASSES[cls]
    if team:
        if text_of(home_cell) == team:
            return WIN if home_goals > away_goals else LOSS if home_goals < away_goals else DRAW
        if text_of(away_cell) == team:
            return WIN if away_goals > home_goals else LOSS if away_goals < home_goals else DRAW
    return None


def parse_history_row(row: Tag, team: Optional[str] = None,
                      markers: Markers = DEFAULT_MARKERS) -> Optional[HistoricalResult]:
    cells = cells_of(row)
    idx = _result_index(cells)
    if idx is None or idx < 2:
        return None
    leading = [text_of(c) for c in cells[:idx - 2]]
    home_cell, away_cell = cells[idx - 2], cells[idx - 1]
    home_team, away_team = text_of(home_cell), text_of(away_cell)
    if not home_team or not away_team:
        return None

    home_goals, away_goals = _score(cells[idx])
    return HistoricalResult(
        home_team=home_team,
        away_team=away_team,
        home_goals=home_goals,
        away_goals=away_goals,
        competition=leading[0] if leading else "",
        annotation=_annotation(row, cells, idx, markers),
        outcome=_outcome(home_cell, away_cell, home_goals, away_goals, team),
        round_label=leading[1] if len(leading) > 1 and leading[1] else None,
        played_at=leading[2] if len(leading) > 2 and leading[2] else None,
    )


def _parse_rows(body: Tag, team: Optional[str], markers: Markers) -> List[HistoricalResult]:
    results: List[HistoricalResult] = []
    for tr in body.find_all("tr"):
        try:
            res = parse_history_row(tr, team, markers)
        except _SkipRow as e:
            log.debug(f"Historienzeile übersprungen: {e}")
            continue
        except Exception as e:
            log.warning(f"Fehler beim Parsen einer Historienzeile: {e}")
            continue
        if res is not None:
            results.append(res)
    return results


# -----------------------------------------------------------------------------
# Öffentliche Extraktoren
# -----------------------------------------------------------------------------
def extract_team_history(html: str, table_class: str, team: Optional[str] = None,
                         markers: Markers = DEFAULT_MARKERS) -> List[HistoricalResult]:
    soup = make_soup(html)
    body = soup.select_one(f"table.{table_class} tbody") or soup.select_one(f"table.{table_class}")
    if body is None:
        log.debug(f"Historientabelle '{table_class}' nicht gefunden")
        return []
    return _parse_rows(body, team, markers)


def extract_home_away(html: str, home_team: str, away_team: str,
                      markers: Markers = DEFAULT_MARKERS) -> Tuple[List[HistoricalResult], List[HistoricalResult]]:
    """Zwei unabhängige Tabellen: bisherige Spiele der Heim- bzw. der Gastmannschaft."""
    return (extract_team_history(html, HOME_TABLE, home_team, markers),
            extract_team_history(html, AWAY_TABLE, away_team, markers))


def _is_pairing(result: HistoricalResult, home_team: str, away_team: str) -> bool:
    return {result.home_team, result.away_team} == {home_team, away_team}


def _head_to_head_candidates(soup: BeautifulSoup) -> List[Tag]:
    for sel in HEAD_TO_HEAD_SELECTORS:
        table = soup.select_one(sel)
        if table is not None:
            return [table]
    # Fallback: Ergebnistabellen, die weder Tippzeile noch Heim/Gast-Historie sind
    candidates = []
    for table in soup.find_all("table"):
        cls = set(classes_of(table))
        if cls & {"tippabgabe", HOME_TABLE.lower(), AWAY_TABLE.lower()}:
            continue
        if table.select_one(".kicktipp-ergebnis, .kicktipp-heim") is not None:
            candidates.append(table)
    return candidates


def extract_head_to_head(html: str, home_team: str, away_team: str,
                         markers: Markers = DEFAULT_MARKERS) -> List[HistoricalResult]:
    """Direktvergleich in Seitenreihenfolge, nur Spiele zwischen genau diesen beiden Teams.

    ``outcome`` aus Sicht von ``home_team``. Ohne ``spielinfoDirekt`` gilt die erste
    Ergebnistabelle, die die Paarung überhaupt enthält.
    """
    soup = make_soup(html)
    for table in _head_to_head_candidates(soup):
        rows = _parse_rows(table, home_team, markers)
        pairing = [r for r in rows if _is_pairing(r, home_team, away_team)]
        if len(pairing) < len(rows):
            log.debug(f"{len(rows) - len(pairing)} fremde Zeile(n) im Direktvergleich verworfen")
        if pairing:
            return pairing
    log.debug(f"Kein Direktvergleich für {home_team} – {away_team} gefunden")
    return []


def build_fixture_with_history(fixture: Fixture, html: Optional[str],
                               markers: Markers = DEFAULT_MARKERS) -> FixtureWithHistory:
    if not html:
        return FixtureWithHistory(fixture)
    home, away = extract_home_away(html, fixture.home_team, fixture.away_team, markers)
    return FixtureWithHistory(fixture, tuple(home), tuple(away))
