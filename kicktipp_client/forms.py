"""Formular-Synthese: aktuelle Felder lesen → Änderungen überlagern → POST-Body bauen.

``merge_overlay`` ist rein (kein Netzwerk) und entscheidet pro Einheit (ein Spiel
bzw. eine Bonusfrage), ob ein bereits vorhandener Wert überschrieben werden darf.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

log = logging.getLogger(__name__)

FALLBACK_SUBMIT = ("submitbutton", "Submit")

Fields = List[Tuple[str, str]]


# -----------------------------------------------------------------------------
# 1) Formular lesen
# -----------------------------------------------------------------------------
def find_form(soup: BeautifulSoup) -> Optional[Tag]:
    form = soup.select_one("form#tippabgabeForm")
    if form is not None:
        return form
    for f in soup.find_all("form"):
        if f.find("input", attrs={"name": "tippsaisonId"}) or f.find("input", attrs={"name": "spieltagIndex"}):
            return f
    return soup.find("form")


def read_current_fields(form: Tag) -> Fields:
    """Alle absendbaren Felder als (Name, Wert)-Paare in Dokumentreihenfolge; doppelte Namen bleiben erhalten."""
    data: Fields = []
    for el in form.find_all(["input", "select", "textarea"]):
        name = el.get("name")
        if not name or el.has_attr("disabled"):
            continue
        if el.name == "input":
            typ = (el.get("type") or "text").lower()
            if typ in {"submit", "button", "image", "reset"}:
                continue
            if typ in {"checkbox", "radio"}:
                if el.has_attr("checked"):
                    data.append((name, el.get("value", "on")))
                continue
            data.append((name, el.get("value", "")))
        elif el.name == "select":
            chosen = el.find_all("option", selected=True)
            if el.has_attr("multiple"):
                data.extend((name, opt.get("value", opt.get_text(strip=True))) for opt in chosen)
                continue
            opt = chosen[0] if chosen else el.find("option")
            data.append((name, opt.get("value", opt.get_text(strip=True)) if opt is not None else ""))
        else:
            data.append((name, el.get_text() or ""))
    return data


def field_value(fields: Sequence[Tuple[str, str]], name: str, default: str = "") -> str:
    return next((v for n, v in fields if n == name), default)


def set_field(fields: Sequence[Tuple[str, str]], name: str, value: str) -> Fields:
    """Ersetzt das erste Vorkommen von ``name`` (weitere entfallen) oder hängt das Feld an."""
    out: Fields = []
    done = False
    for n, v in fields:
        if n != name:
            out.append((n, v))
        elif not done:
            out.append((n, value))
            done = True
    if not done:
        out.append((name, value))
    return out


def submit_field(form: Tag) -> Tuple[str, str]:
    btn = form.select_one('input[type="submit"][name], button[type="submit"][name]')
    if btn is not None and btn.get("name"):
        return btn["name"], btn.get("value", "Speichern")
    return FALLBACK_SUBMIT


def form_action(form: Tag, page_url: str) -> str:
    """Das action-Attribut ist maßgeblich, nicht der Pfad, unter dem das Formular geladen wurde."""
    return urljoin(page_url, (form.get("action") or "").strip() or page_url)


# -----------------------------------------------------------------------------
# 2) Überlagern (rein)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class FieldUpdate:
    """Neue Werte für eine zusammengehörige Feldgruppe (z. B. heimTipp + gastTipp eines Spiels)."""

    label: str
    values: Tuple[Tuple[str, str], ...]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(n for n, _ in self.values)


@dataclass
class MergeResult:
    fields: Fields
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def is_blank(value: str) -> bool:
    return not (value or "").strip()


def merge_overlay(current: Sequence[Tuple[str, str]],
                  updates: Sequence[FieldUpdate],
                  override: Union[bool, Callable[[FieldUpdate], bool]] = False,
                  blank: Callable[[str], bool] = is_blank) -> MergeResult:
    """Überlagert ``updates`` auf eine Kopie von ``current``.

    Eine Einheit gilt als belegt, sobald eines ihrer Felder einen Wert hat. Belegte
    Einheiten werden nur überschrieben, wenn ``override`` (bzw. das Prädikat) zustimmt;
    nicht erwähnte Felder bleiben unverändert und behalten ihre Reihenfolge.
    """
    should_override = override if callable(override) else (lambda _u: bool(override))
    result = MergeResult(fields=list(current))
    for upd in updates:
        occupied = any(not blank(field_value(current, n)) for n in upd.names)
        if occupied and not should_override(upd):
            log.debug(f"{upd.label}: vorhandener Wert bleibt (kein override)")
            result.skipped.append(upd.label)
            continue
        for name, value in upd.values:
            result.fields = set_field(result.fields, name, value)
        result.applied.append(upd.label)
    return result


# -----------------------------------------------------------------------------
# 3) Body
# -----------------------------------------------------------------------------
def build_body(fields: Sequence[Tuple[str, str]], submit: Tuple[str, str]) -> Fields:
    body = list(fields)
    if all(name != submit[0] for name, _ in body):
        body.append(submit)
    return body
