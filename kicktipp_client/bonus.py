from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .markup import cells_of, make_soup, parse_kickoff, text_of
from .models import BonusAnswer, BonusOption, BonusQuestion

log = logging.getLogger(__name__)

BONUS_TABLE_SELECTORS = ("#tippabgabeFragen tbody", "#tippabgabeFragen", "table.zusatzfragen tbody")

# Platzhalter-Optionen ("bitte wählen")
EMPTY_OPTION_VALUES = {"", "-1"}


@dataclass(frozen=True)
class BonusRow:
    question: BonusQuestion
    select_names: Tuple[str, ...]
    current: Tuple[str, ...]

    @property
    def answer(self) -> Optional[BonusAnswer]:
        chosen = [v for v in self.current if v not in EMPTY_OPTION_VALUES]
        return BonusAnswer(frozenset(chosen)) if chosen else None


def find_bonus_table(soup: BeautifulSoup) -> Optional[Tag]:
    for sel in BONUS_TABLE_SELECTORS:
        table = soup.select_one(sel)
        if table is not None:
            return table
    return None


def selected_value(select: Tag) -> str:
    opt = select.find("option", selected=True)
    return (opt.get("value") or "").strip() if opt is not None else ""


def _question_text(row: Tag, cells: List[Tag]) -> str:
    el = row.select_one(".frage, .question")
    if el is not None and text_of(el):
        return text_of(el)
    for c in cells:
        txt = text_of(c)
        if c.find("select") is None and txt and parse_kickoff(txt) is None:
            return txt
    return ""


def _options(select: Tag) -> Tuple[BonusOption, ...]:
    opts = []
    for opt in select.find_all("option"):
        value = (opt.get("value") or "").strip()
        if value in EMPTY_OPTION_VALUES:
            continue
        opts.append(BonusOption(id=value, label=text_of(opt)))
    return tuple(opts)


def parse_bonus_rows(html: str) -> List[BonusRow]:
    soup = make_soup(html)
    table = find_bonus_table(soup)
    if table is None:
        log.warning("Bonusfragen-Tabelle nicht gefunden")
        return []

    rows: List[BonusRow] = []
    for tr in table.find_all("tr"):
        try:
            selects = [s for s in tr.find_all("select") if s.get("name") and not s.has_attr("disabled")]
            if not selects:
                # gesperrte / entschiedene Frage: nur statischer Text
                continue
            cells = cells_of(tr)
            text = _question_text(tr, cells)
            if not text:
                log.debug("Bonuszeile ohne Fragetext übersprungen")
                continue
            deadline = parse_kickoff(text_of(cells[0])) if cells else None
            first = selects[0]
            question = BonusQuestion(
                id=first.get("id") or first["name"],
                text=text,
                options=_options(first),
                form_field_name=first["name"],
                multi_select=len(selects) > 1,
                max_selections=len(selects),
                deadline=deadline,
            )
            rows.append(BonusRow(
                question=question,
                select_names=tuple(s["name"] for s in selects),
                current=tuple(selected_value(s) for s in selects),
            ))
        except Exception as exc:
            log.warning(f"Fehler beim Parsen einer Bonusfrage: {exc}")
            continue

    log.debug(f"{len(rows)} offene Bonusfragen erkannt")
    return rows


def parse_bonus_questions(html: str) -> List[BonusQuestion]:
    return [r.question for r in parse_bonus_rows(html)]


def parse_placed_bonus_answers(html: str) -> Dict[str, Optional[BonusAnswer]]:
    """Schlüssel ist der Formularfeldname der (ersten) Auswahlliste einer Frage."""
    return {r.question.form_field_name: r.answer for r in parse_bonus_rows(html)}
