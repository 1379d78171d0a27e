"""Öffentliche Client-Fassade: Lesen (Spiele, Tipps, Bonus, Tabelle, Historie) und Schreiben (Tipps, Bonus).

Jede öffentliche Operation bekommt einen eigenen ResponseCache (oder den des Aufrufers)
und prüft ein optionales Abbruch-Signal vor jedem Netzwerkaufruf.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import requests

from .bonus import EMPTY_OPTION_VALUES, BonusRow, parse_bonus_rows, parse_placed_bonus_answers
from .cache import ResponseCache, make_cache_key
from .config import ClientSettings
from .fetcher import BASE_URL, CancelToken, PageFetcher, PageResult, check_cancelled
from .fixtures import (
    find_detail_link,
    parse_fixture_rows,
    parse_placed_predictions,
    parse_standings,
)
from .forms import (
    FieldUpdate,
    build_body,
    find_form,
    form_action,
    is_blank,
    merge_overlay,
    read_current_fields,
    submit_field,
)
from .history import build_fixture_with_history, extract_head_to_head, extract_home_away
from .markup import DEFAULT_MARKERS, Markers, make_soup
from .models import (
    BonusAnswer,
    BonusQuestion,
    Fixture,
    FixtureWithHistory,
    HistoricalResult,
    Prediction,
    TeamStanding,
)
from .navigator import HEAD_TO_HEAD, HOME_AWAY, MAX_DETAIL_PAGES, RESULTS, find_detail_page
from .session import login, new_session

log = logging.getLogger(__name__)

UpdateBuilder = Callable[[str], Tuple[List[FieldUpdate], List[str]]]


def _bonus_blank(value: str) -> bool:
    return (value or "").strip() in EMPTY_OPTION_VALUES


def _own(cache: Optional[ResponseCache]) -> ResponseCache:
    # ein leerer Cache ist falsy (__len__), daher explizit auf None prüfen
    return cache if cache is not None else ResponseCache()


class KicktippClient:
    def __init__(self, session: requests.Session, base_url: str = BASE_URL, timeout: float = 25,
                 markers: Markers = DEFAULT_MARKERS, max_detail_pages: int = MAX_DETAIL_PAGES,
                 max_workers: int = 4):
        self.fetcher = PageFetcher(session, base_url=base_url, timeout=timeout)
        self.markers = markers
        self.max_detail_pages = max_detail_pages
        self.max_workers = max(1, max_workers)

    @classmethod
    def from_settings(cls, settings: ClientSettings, session: Optional[requests.Session] = None,
                      markers: Markers = DEFAULT_MARKERS) -> "KicktippClient":
        """Ohne übergebene Session wird eine neue erstellt und eingeloggt."""
        if session is None:
            session = new_session(proxy=settings.proxy)
            login(session, settings.username, settings.password, base_url=settings.base_url)
        return cls(session, base_url=settings.base_url, timeout=settings.timeout, markers=markers,
                   max_detail_pages=settings.max_detail_pages, max_workers=settings.max_workers)

    # -------------------------------------------------------------------------
    # Intern: gecachte Abrufe
    # -------------------------------------------------------------------------
    def _get(self, cache: ResponseCache, path: str, params: Optional[Mapping[str, str]] = None,
             cancel: Optional[CancelToken] = None) -> PageResult:
        check_cancelled(cancel, f"GET {path}")
        params = dict(params or {})
        return cache.get_or_fetch(make_cache_key(path, params),
                                  lambda: self.fetcher.fetch(path, params, cancel))

    @staticmethod
    def _tippabgabe(community: str, matchday: Optional[int] = None, bonus: bool = False) -> Tuple[str, Dict[str, str]]:
        params: Dict[str, str] = {}
        if matchday is not None:
            params["spieltagIndex"] = str(matchday)
        if bonus:
            params["bonus"] = "true"
        return f"{community}/tippabgabe", params

    def _predictions_page(self, cache: ResponseCache, community: str, matchday: Optional[int],
                          cancel: Optional[CancelToken], bonus: bool = False) -> Optional[str]:
        path, params = self._tippabgabe(community, matchday, bonus)
        page = self._get(cache, path, params, cancel)
        if not page.found:
            log.warning(f"Tippabgabe-Seite für '{community}' nicht gefunden (404)")
            return None
        return page.content

    def _locate_detail(self, cache: ResponseCache, community: str, home_team: str, away_team: str,
                       view_mode: int, cancel: Optional[CancelToken],
                       start_href: Optional[str] = None) -> Optional[str]:
        if start_href is None:
            html = self._predictions_page(cache, community, None, cancel)
            start_href = find_detail_link(html) if html else None
        if not start_href:
            log.warning("Kein Spielinfo-Link auf der Tippabgabe-Seite")
            return None
        page = find_detail_page(lambda path, params: self._get(cache, path, params, cancel),
                                start_href, home_team, away_team, view_mode=view_mode,
                                max_pages=self.max_detail_pages)
        return page.content if page is not None else None

    # -------------------------------------------------------------------------
    # Lesen
    # -------------------------------------------------------------------------
    def get_open_predictions(self, community: str, matchday: Optional[int] = None,
                             cancel: Optional[CancelToken] = None,
                             cache: Optional[ResponseCache] = None) -> List[Fixture]:
        """Spiele des (aktuellen oder angegebenen) Spieltags in Seitenreihenfolge."""
        html = self._predictions_page(_own(cache), community, matchday, cancel)
        if html is None:
            return []
        fixtures = [r.fixture for r in parse_fixture_rows(html, self.markers)]
        log.info(f"{len(fixtures)} Spiele gelesen ({community})")
        return fixtures

    def get_placed_predictions(self, community: str, matchday: Optional[int] = None,
                               cancel: Optional[CancelToken] = None,
                               cache: Optional[ResponseCache] = None) -> Dict[Fixture, Optional[Prediction]]:
        html = self._predictions_page(_own(cache), community, matchday, cancel)
        if html is None:
            return {}
        placed = parse_placed_predictions(html, self.markers)
        log.info(f"{sum(1 for p in placed.values() if p is not None)}/{len(placed)} Tipps bereits abgegeben")
        return placed

    def get_open_bonus_questions(self, community: str, cancel: Optional[CancelToken] = None,
                                 cache: Optional[ResponseCache] = None) -> List[BonusQuestion]:
        html = self._predictions_page(_own(cache), community, None, cancel, bonus=True)
        if html is None:
            return []
        questions = [r.question for r in parse_bonus_rows(html)]
        log.info(f"{len(questions)} offene Bonusfragen ({community})")
        return questions

    def get_placed_bonus_answers(self, community: str, cancel: Optional[CancelToken] = None,
                                 cache: Optional[ResponseCache] = None) -> Dict[str, Optional[BonusAnswer]]:
        html = self._predictions_page(_own(cache), community, None, cancel, bonus=True)
        if html is None:
            return {}
        return parse_placed_bonus_answers(html)

    def get_standings(self, community: str, cancel: Optional[CancelToken] = None,
                      cache: Optional[ResponseCache] = None) -> List[TeamStanding]:
        page = self._get(_own(cache), f"{community}/tabellen", None, cancel)
        if not page.found:
            log.warning(f"Tabelle für '{community}' nicht gefunden (404)")
            return []
        return parse_standings(page.content)

    def get_home_away_history(self, community: str, home_team: str, away_team: str,
                              cancel: Optional[CancelToken] = None,
                              cache: Optional[ResponseCache] = None
                              ) -> Tuple[List[HistoricalResult], List[HistoricalResult]]:
        """(bisherige Spiele der Heimmannschaft, bisherige Spiele der Gastmannschaft); leer, wenn nicht auffindbar."""
        html = self._locate_detail(_own(cache), community, home_team, away_team, HOME_AWAY, cancel)
        if html is None:
            return [], []
        return extract_home_away(html, home_team, away_team, self.markers)

    def get_head_to_head_history(self, community: str, home_team: str, away_team: str,
                                 cancel: Optional[CancelToken] = None,
                                 cache: Optional[ResponseCache] = None) -> List[HistoricalResult]:
        html = self._locate_detail(_own(cache), community, home_team, away_team, HEAD_TO_HEAD, cancel)
        if html is None:
            return []
        return extract_head_to_head(html, home_team, away_team, self.markers)

    def get_matches_with_history(self, community: str, cancel: Optional[CancelToken] = None,
                                 cache: Optional[ResponseCache] = None) -> List[FixtureWithHistory]:
        """Alle Spiele des Spieltags mit Heim/Gast-Historie; Suchen laufen parallel über einen gemeinsamen Cache."""
        cache = _own(cache)
        html = self._predictions_page(cache, community, None, cancel)
        if html is None:
            return []
        fixtures = [r.fixture for r in parse_fixture_rows(html, self.markers)]
        start_href = find_detail_link(html)
        if not fixtures:
            return []
        if not start_href:
            log.warning("Kein Spielinfo-Link, Historie bleibt leer")
            return [FixtureWithHistory(f) for f in fixtures]

        def one(fixture: Fixture) -> FixtureWithHistory:
            detail = self._locate_detail(cache, community, fixture.home_team, fixture.away_team,
                                         RESULTS, cancel, start_href=start_href)
            if detail is None:
                log.warning(f"Keine Historie für {fixture}")
            return build_fixture_with_history(fixture, detail, self.markers)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(fixtures))) as pool:
            result = list(pool.map(one, fixtures))
        log.info(f"{len(result)} Spiele mit Historie ({cache.fetch_count} Seitenabrufe)")
        return result

    # -------------------------------------------------------------------------
    # Schreiben
    # -------------------------------------------------------------------------
    def _submit_form(self, path: str, params: Mapping[str, str], make_updates: UpdateBuilder,
                     override: bool, cancel: Optional[CancelToken],
                     blank: Callable[[str], bool] = is_blank) -> bool:
        page = self.fetcher.fetch(path, params, cancel)
        if not page.found:
            log.error(f"Formularseite {path} nicht gefunden (404)")
            return False
        form = find_form(make_soup(page.content))
        if form is None:
            log.error(f"Kein Formular auf {page.url}")
            return False

        updates, missing = make_updates(page.content)
        for label in missing:
            log.warning(f"{label}: nicht im Formular gefunden")
        merged = merge_overlay(read_current_fields(form), updates, override, blank)
        log.info(f"Zusammenfassung: {len(merged.applied)} zu setzen, {len(merged.skipped)} übersprungen, "
                 f"{len(missing)} nicht gefunden")
        if not merged.applied:
            log.info("Nichts zu senden.")
            return not missing

        body = build_body(merged.fields, submit_field(form))
        status = self.fetcher.post_form(form_action(form, page.url), body, referer=page.url, cancel=cancel)
        if 200 <= status < 300:
            log.info(f"✓ {len(merged.applied)} Einträge gespeichert.")
            return True
        log.error(f"✗ Speichern fehlgeschlagen. Status: {status}")
        return False

    def place_bets(self, community: str, bets: Mapping[Fixture, Prediction], override: bool = False,
                   cancel: Optional[CancelToken] = None) -> bool:
        """Setzt Tipps; vorhandene Tipps bleiben ohne ``override`` unangetastet. Zuordnung über die Teamnamen."""
        if not bets:
            return True

        def updates(html: str) -> Tuple[List[FieldUpdate], List[str]]:
            rows = {(r.fixture.home_team, r.fixture.away_team): r for r in parse_fixture_rows(html, self.markers)}
            found: List[FieldUpdate] = []
            missing: List[str] = []
            for fixture, pred in bets.items():
                row = rows.get((fixture.home_team, fixture.away_team))
                if row is None or not row.home_field or not row.away_field:
                    missing.append(str(fixture))
                    continue
                found.append(FieldUpdate(str(fixture), ((row.home_field, str(pred.home_goals)),
                                                        (row.away_field, str(pred.away_goals)))))
            return found, missing

        path, params = self._tippabgabe(community)
        return self._submit_form(path, params, updates, override, cancel)

    def place_bet(self, community: str, fixture: Fixture, prediction: Prediction, override: bool = False,
                  cancel: Optional[CancelToken] = None) -> bool:
        return self.place_bets(community, {fixture: prediction}, override=override, cancel=cancel)

    def place_bonus_answers(self, community: str, answers: Mapping[str, BonusAnswer], override: bool = False,
                            cancel: Optional[CancelToken] = None) -> bool:
        """``answers`` ist nach BonusQuestion.form_field_name geschlüsselt."""
        if not answers:
            return True

        def updates(html: str) -> Tuple[List[FieldUpdate], List[str]]:
            rows = {r.question.form_field_name: r for r in parse_bonus_rows(html)}
            found: List[FieldUpdate] = []
            missing: List[str] = []
            for field_name, answer in answers.items():
                row = rows.get(field_name)
                if row is None:
                    missing.append(field_name)
                    continue
                found.append(FieldUpdate(field_name, _bonus_values(row, answer)))
            return found, missing

        path, params = self._tippabgabe(community, bonus=True)
        return self._submit_form(path, params, updates, override, cancel, blank=_bonus_blank)


def _bonus_values(row: BonusRow, answer: BonusAnswer) -> Tuple[Tuple[str, str], ...]:
    """Verteilt die Auswahl in Optionsreihenfolge auf die Auswahllisten der Frage; Rest wird geleert."""
    order = {opt.id: i for i, opt in enumerate(row.question.options)}
    ids = sorted(answer.selected_option_ids, key=lambda i: (order.get(i, len(order)), i))
    unknown = [i for i in ids if i not in order]
    if unknown:
        log.warning(f"{row.question.form_field_name}: unbekannte Option(en) {unknown}")
    if len(ids) > len(row.select_names):
        log.warning(f"{row.question.form_field_name}: {len(ids)} Antworten, aber nur "
                    f"{len(row.select_names)} Auswahlfelder; überzählige werden verworfen")
    return tuple((name, ids[i] if i < len(ids) else "") for i, name in enumerate(row.select_names))
