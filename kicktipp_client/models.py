from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional, Tuple


# -----------------------------------------------------------------------------
# Spieltag & Tipps
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Fixture:
    home_team: str
    away_team: str
    kickoff: datetime
    matchday: int
    cancelled: bool = field(default=False, compare=False)

    def __str__(self) -> str:
        return f"{self.home_team} vs {self.away_team}"


@dataclass(frozen=True)
class Prediction:
    home_goals: int
    away_goals: int

    def __post_init__(self) -> None:
        if self.home_goals < 0 or self.away_goals < 0:
            raise ValueError(f"Negative Tore nicht erlaubt: {self.home_goals}:{self.away_goals}")

    def __str__(self) -> str:
        return f"{self.home_goals}:{self.away_goals}"


def parse_prediction(home_value: Optional[str], away_value: Optional[str]) -> Optional[Prediction]:
    """Beide Felder müssen als nicht-negative Ganzzahl lesbar sein, sonst kein Tipp."""
    home = (home_value or "").strip()
    away = (away_value or "").strip()
    if not home.isdecimal() or not away.isdecimal():
        return None
    return Prediction(int(home), int(away))


# -----------------------------------------------------------------------------
# Bonusfragen
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class BonusOption:
    id: str
    label: str


@dataclass(frozen=True)
class BonusQuestion:
    id: str
    text: str
    options: Tuple[BonusOption, ...]
    form_field_name: str
    multi_select: bool = False
    max_selections: int = 1
    deadline: Optional[datetime] = None


@dataclass(frozen=True)
class BonusAnswer:
    selected_option_ids: FrozenSet[str]

    @classmethod
    def of(cls, *option_ids: str) -> "BonusAnswer":
        return cls(frozenset(option_ids))


# -----------------------------------------------------------------------------
# Spielinfo / Historie
# -----------------------------------------------------------------------------
AFTER_EXTRA_TIME = "after extra time"
AFTER_PENALTIES = "after penalties"

WIN = "win"
DRAW = "draw"
LOSS = "loss"


@dataclass(frozen=True)
class HistoricalResult:
    home_team: str
    away_team: str
    home_goals: Optional[int]
    away_goals: Optional[int]
    competition: str
    annotation: Optional[str] = None
    outcome: Optional[str] = None
    round_label: Optional[str] = None
    played_at: Optional[str] = None

    @property
    def has_score(self) -> bool:
        return self.home_goals is not None and self.away_goals is not None


@dataclass(frozen=True)
class FixtureWithHistory:
    fixture: Fixture
    home_team_history: Tuple[HistoricalResult, ...] = ()
    away_team_history: Tuple[HistoricalResult, ...] = ()


@dataclass(frozen=True)
class TeamStanding:
    position: int
    team_name: str
    games_played: int
    points: int
    goals_for: int
    goals_against: int
    goal_difference: int
    wins: int
    draws: int
    losses: int

    @property
    def goals_formatted(self) -> str:
        return f"{self.goals_for}:{self.goals_against}"
