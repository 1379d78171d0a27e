"""Gemeinsame HTML-Helfer für alle Seitentypen (tippabgabe, spielinfo, tabellen)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup, Tag

from .models import AFTER_EXTRA_TIME, AFTER_PENALTIES

log = logging.getLogger(__name__)

BERLIN = ZoneInfo("Europe/Berlin")

# Erste Zeile ohne Datum und ohne Vorgänger
SENTINEL_KICKOFF = datetime(1970, 1, 1, tzinfo=timezone.utc)

KICKOFF_FORMATS = ("%d.%m.%y %H:%M", "%d.%m.%Y %H:%M")
CLOCK_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")

ANNOTATION_PRECEDENCE = (AFTER_PENALTIES, AFTER_EXTRA_TIME)


# -----------------------------------------------------------------------------
# Locale-Marker
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Markers:
    cancelled: Tuple[str, ...] = ("abgesagt", "cancelled", "canceled")
    annotations: Dict[str, str] = field(default_factory=lambda: {
        "nach verlängerung": AFTER_EXTRA_TIME,
        "n.v.": AFTER_EXTRA_TIME,
        "after extra time": AFTER_EXTRA_TIME,
        "a.e.t.": AFTER_EXTRA_TIME,
        "nach elfmeterschießen": AFTER_PENALTIES,
        "i.e.": AFTER_PENALTIES,
        "n.e.": AFTER_PENALTIES,
        "after penalties": AFTER_PENALTIES,
        "pen.": AFTER_PENALTIES,
    })

    def is_cancelled_text(self, text: str) -> bool:
        low = text.lower()
        return any(m in low for m in self.cancelled)

    def canonical_annotation(self, text: str) -> Optional[str]:
        cleaned = text.strip().strip("()").strip()
        if not cleaned:
            return None
        low = cleaned.lower()
        if low in self.annotations:
            return self.annotations[low]
        tokens = low.split()
        found = [canonical for phrase, canonical in self.annotations.items()
                 if phrase in tokens or (len(phrase) > 4 and phrase in low)]
        # "n.V. i.E.": Elfmeterschießen schließt die Verlängerung ein
        for canonical in ANNOTATION_PRECEDENCE:
            if canonical in found:
                return canonical
        return found[0] if found else cleaned


DEFAULT_MARKERS = Markers()


# -----------------------------------------------------------------------------
# Parsing-Utils
# -----------------------------------------------------------------------------
def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def text_of(el: Optional[Tag]) -> str:
    if el is None:
        return ""
    return " ".join(el.get_text(" ", strip=True).split())


def cells_of(row: Tag) -> List[Tag]:
    return row.find_all("td", recursive=False) or row.find_all("td")


def classes_of(el: Tag) -> List[str]:
    return [c.lower() for c in (el.get("class") or [])]


def parse_int(s: Optional[str]) -> Optional[int]:
    if s is None:
        return None
    s = s.strip().rstrip(".")
    if not re.fullmatch(r"[+-]?\d+", s):
        return None
    return int(s)


def parse_kickoff(text: str) -> Optional[datetime]:
    """'22.08.25 20:30' → aware datetime (Europe/Berlin); sonst None."""
    m = re.search(r"\d{1,2}\.\d{1,2}\.\d{2,4}\s+\d{1,2}:\d{2}", text or "")
    if not m:
        return None
    raw = " ".join(m.group(0).split())
    for fmt in KICKOFF_FORMATS:
        try:
            return datetime.strptime(raw, fmt).replace(tzinfo=BERLIN)
        except ValueError:
            continue
    return None


def parse_kickoff_time(text: str, previous: Optional[datetime] = None) -> Optional[datetime]:
    """Zelle nur mit Uhrzeit ('15:30'): Datum vom vorherigen Anstoß, ohne Vorgänger vom Sentinel."""
    m = CLOCK_PATTERN.fullmatch((text or "").strip())
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    if previous is None:
        return datetime.combine(SENTINEL_KICKOFF.date(), time(hour, minute), tzinfo=BERLIN)
    return previous.astimezone(BERLIN).replace(hour=hour, minute=minute)


def row_is_cancelled(row: Tag, markers: Markers) -> bool:
    if markers.is_cancelled_text(text_of(row)):
        return True
    for el in [row] + row.find_all(True):
        if any(markers.is_cancelled_text(c) for c in classes_of(el)):
            return True
    return False


def betting_inputs(el: Tag) -> List[Tag]:
    """Sichtbare Tipp-Eingabefelder (Text/Zahl) einer Zeile."""
    found = []
    for inp in el.find_all("input"):
        typ = (inp.get("type") or "text").lower()
        if typ in {"text", "number", "tel"}:
            found.append(inp)
    return found


def home_away_inputs(row: Tag) -> Optional[Tuple[Tag, Tag]]:
    inputs = betting_inputs(row)
    home = next((i for i in inputs if _ends_with(i, "heimtipp")), None)
    away = next((i for i in inputs if _ends_with(i, "gasttipp")), None)
    if home is not None and away is not None:
        return home, away
    if len(inputs) >= 2:
        return inputs[0], inputs[1]
    return None


def _ends_with(inp: Tag, suffix: str) -> bool:
    ident = (inp.get("id") or "").lower()
    name = (inp.get("name") or "").lower()
    return ident.endswith(suffix) or name.endswith(suffix)
