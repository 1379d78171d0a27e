"""Diagnose-CLI: liest Seiten der Tipprunde und gibt sie als JSON aus; ``submit`` schreibt Tipps."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .client import KicktippClient
from .config import SettingsSource, as_bool, load_settings
from .errors import ConfigError, KicktippError
from .markup import SENTINEL_KICKOFF
from .models import Fixture, Prediction

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# JSON
# -----------------------------------------------------------------------------
def to_jsonable(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (frozenset, set)):
        return sorted(to_jsonable(x) for x in obj)
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    return obj


def emit(data: Any, out: Optional[str]) -> None:
    text = json.dumps(to_jsonable(data), ensure_ascii=False, indent=2)
    if not out:
        print(text)
        return
    path = Path(out)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")
    log.info(f"JSON geschrieben: {path.resolve()}")


def load_bets(path: Path) -> Dict[Fixture, Prediction]:
    """JSON-Liste von {home_team, away_team, home_goals, away_goals}; Anstoß spielt für die Zuordnung keine Rolle."""
    with path.open("r", encoding="utf-8") as f:
        items = json.load(f)
    bets: Dict[Fixture, Prediction] = {}
    for it in items:
        fixture = Fixture(str(it["home_team"]), str(it["away_team"]), SENTINEL_KICKOFF,
                          int(it.get("matchday", 0)))
        bets[fixture] = Prediction(int(it["home_goals"]), int(it["away_goals"]))
    return bets


# -----------------------------------------------------------------------------
# Argumente
# -----------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="kicktipp-client", description="Kicktipp-Seiten lesen und Tipps abgeben")
    ap.add_argument("--config", default="config.ini")
    ap.add_argument("--username", default=None)
    ap.add_argument("--password", default=None)
    ap.add_argument("--community", default=None)
    ap.add_argument("--base-url", default=None)
    ap.add_argument("--timeout", type=float, default=None)
    ap.add_argument("--proxy", default=None)
    ap.add_argument("--max-detail-pages", type=int, default=None)
    ap.add_argument("--max-workers", type=int, default=None)
    ap.add_argument("--out", default=None, help="JSON in Datei statt auf stdout")
    ap.add_argument("-v", "--verbose", action="store_true")

    sub = ap.add_subparsers(dest="command", required=True)
    fx = sub.add_parser("fixtures", help="Spiele des Spieltags")
    fx.add_argument("--matchday", type=int, default=None)
    pl = sub.add_parser("placed", help="bereits abgegebene Tipps")
    pl.add_argument("--matchday", type=int, default=None)
    sub.add_parser("bonus", help="offene Bonusfragen inkl. gesetzter Antworten")
    sub.add_parser("standings", help="Tabelle")
    sub.add_parser("matches", help="alle Spiele mit Heim/Gast-Historie")
    for name, help_text in (("history", "Heim/Gast-Historie eines Spiels"), ("h2h", "Direktvergleich eines Spiels")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("home")
        p.add_argument("away")
    sm = sub.add_parser("submit", help="Tipps aus JSON-Datei abgeben")
    sm.add_argument("file")
    sm.add_argument("--override", action="store_true", default=None)
    return ap


def run(args: argparse.Namespace, client: KicktippClient, community: str,
        source: Optional[SettingsSource] = None) -> Any:
    cmd = args.command
    if cmd == "fixtures":
        return client.get_open_predictions(community, matchday=args.matchday)
    if cmd == "placed":
        placed = client.get_placed_predictions(community, matchday=args.matchday)
        return [{"fixture": f, "prediction": p} for f, p in placed.items()]
    if cmd == "bonus":
        answers = client.get_placed_bonus_answers(community)
        return [{"question": q, "answer": answers.get(q.form_field_name)}
                for q in client.get_open_bonus_questions(community)]
    if cmd == "standings":
        return client.get_standings(community)
    if cmd == "matches":
        return client.get_matches_with_history(community)
    if cmd == "history":
        home, away = client.get_home_away_history(community, args.home, args.away)
        return {"home_team_history": home, "away_team_history": away}
    if cmd == "h2h":
        return client.get_head_to_head_history(community, args.home, args.away)
    if cmd == "submit":
        source = source if source is not None else SettingsSource(args)
        override = source.get("override", ["KICKTIPP_OVERRIDE"], ["override", "override_bets"], as_bool, False)
        ok = client.place_bets(community, load_bets(Path(args.file)), override=override)
        return {"success": ok}
    raise ConfigError(f"Unbekanntes Kommando: {cmd}")


def main(argv: Optional[List[str]] = None, client: Optional[KicktippClient] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        source = SettingsSource.load(args)
        settings = load_settings(source=source)
        community = settings.require_community()
        log.info(settings.describe())
        if client is None:
            client = KicktippClient.from_settings(settings)
        result = run(args, client, community, source)
    except KicktippError as e:
        print(f"Fehler: {e}", file=sys.stderr)
        return 1 if not isinstance(e, ConfigError) else 2

    emit(result, args.out)
    if isinstance(result, dict) and result.get("success") is False:
        return 1
    return 0
