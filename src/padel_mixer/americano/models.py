import json
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple, Union

from padel_mixer.exceptions import ScoreError, ValidationError


def generate_id():
    import uuid
    return str(uuid.uuid4())[:8]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TournamentFormat(str, Enum):
    AMERICANO = "americano"
    MIXED_AMERICANO = "mixed_americano"
    TEAM_AMERICANO = "team_americano"
    MEXICANO = "mexicano"
    TEAM_MEXICANO = "team_mexicano"


AMERICANO_FORMATS = (
    TournamentFormat.AMERICANO,
    TournamentFormat.MIXED_AMERICANO,
    TournamentFormat.TEAM_AMERICANO,
)
ADAPTIVE_FORMATS = (TournamentFormat.MEXICANO, TournamentFormat.TEAM_MEXICANO)
TEAM_FORMATS = (TournamentFormat.TEAM_AMERICANO, TournamentFormat.TEAM_MEXICANO)


class ScoringSystem(str, Enum):
    POINTS = "points"  # rally points, e.g. 24 per match
    GAMES = "games"


class RankingStrategy(str, Enum):
    POINTS = "points"
    WINS = "wins"
    AVERAGE = "average"


class MatchStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TournamentStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


MALE = "M"
FEMALE = "F"


@dataclass(frozen=True)
class FixedRounds:
    """Round count decided up front; ``total`` of None keeps the natural schedule length."""
    total: Optional[int] = None
    mode: ClassVar[str] = "fixed"

    def __post_init__(self):
        if self.total is not None and (
            isinstance(self.total, bool) or not isinstance(self.total, int) or self.total < 1
        ):
            raise ValidationError("total rounds must be at least 1", field="total_rounds")


@dataclass(frozen=True)
class UnlimitedRounds:
    """Rounds are generated one at a time until the tournament is finished."""
    mode: ClassVar[str] = "unlimited"


RoundMode = Union[FixedRounds, UnlimitedRounds]


def round_mode_from(mode: str, total_rounds: Optional[int] = None) -> RoundMode:
    if mode == UnlimitedRounds.mode:
        return UnlimitedRounds()
    if mode == FixedRounds.mode:
        return FixedRounds(total=total_rounds)
    raise ValidationError(f"unknown round mode {mode!r}", field="round_mode")


@dataclass
class Player:
    id: str
    name: str
    sex: Optional[str] = None  # M | F, only used by mixed americano
    linked_user_id: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Player":
        return cls(
            id=data["id"],
            name=data["name"],
            sex=data.get("sex"),
            linked_user_id=data.get("linked_user_id"),
        )


@dataclass
class Team:
    id: str
    player_ids: Tuple[str, str]
    name: Optional[str] = None

    def __post_init__(self):
        self.player_ids = tuple(self.player_ids)
        if len(self.player_ids) != 2 or self.player_ids[0] == self.player_ids[1]:
            raise ValidationError(
                f"team {self.id} must have exactly 2 distinct players", field="teams"
            )

    @property
    def members(self) -> frozenset:
        return frozenset(self.player_ids)

    def as_dict(self) -> dict:
        return {"id": self.id, "player_ids": list(self.player_ids), "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(id=data["id"], player_ids=tuple(data["player_ids"]), name=data.get("name"))


@dataclass
class Match:
    id: str
    round: int
    court: int
    team1: List[str]  # player ids
    team2: List[str]  # player ids
    score1: Optional[int] = None
    score2: Optional[int] = None
    status: MatchStatus = MatchStatus.PENDING

    @property
    def completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    @property
    def player_ids(self) -> List[str]:
        return list(self.team1) + list(self.team2)

    def record_score(self, score1: int, score2: int) -> None:
        """Set both scores and mark the match completed.

        A completed match may be corrected but never goes back to pending.
        """
        for name, value in (("score1", score1), ("score2", score2)):
            if value is None or isinstance(value, bool) or not isinstance(value, int):
                raise ScoreError(f"match {self.id}: score must be an integer", field=name)
            if value < 0:
                raise ScoreError(f"match {self.id}: score can not be negative", field=name)
        self.score1 = score1
        self.score2 = score2
        self.status = MatchStatus.COMPLETED

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "round": self.round,
            "court": self.court,
            "team1": list(self.team1),
            "team2": list(self.team2),
            "score1": self.score1,
            "score2": self.score2,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        return cls(
            id=data["id"],
            round=data["round"],
            court=data["court"],
            team1=list(data["team1"]),
            team2=list(data["team2"]),
            score1=data.get("score1"),
            score2=data.get("score2"),
            status=MatchStatus(data.get("status", MatchStatus.PENDING)),
        )


def match_id(round_number: int, court: int) -> str:
    return f"r{round_number}m{court}"


@dataclass
class Round:
    number: int
    matches: List[Match]
    resting: List[str] = field(default_factory=list)
    final: bool = False

    @property
    def completed(self) -> bool:
        return all(m.completed for m in self.matches)

    def renumbered(self, number: int) -> "Round":
        """Copy of the round placed at ``number``, match ids and round fields included."""
        matches = [
            replace(m, id=match_id(number, m.court), round=number,
                    team1=list(m.team1), team2=list(m.team2))
            for m in self.matches
        ]
        return Round(number=number, matches=matches, resting=list(self.resting), final=self.final)

    def as_dict(self) -> dict:
        return {
            "number": self.number,
            "matches": [m.as_dict() for m in self.matches],
            "resting": list(self.resting),
            "final": self.final,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Round":
        return cls(
            number=data["number"],
            matches=[Match.from_dict(m) for m in data["matches"]],
            resting=list(data.get("resting", [])),
            final=data.get("final", False),
        )


@dataclass
class Tournament:
    id: str
    name: str
    format: TournamentFormat
    courts: int
    players: List[Player] = field(default_factory=list)
    teams: List[Team] = field(default_factory=list)
    rounds: List[Round] = field(default_factory=list)
    scoring_system: ScoringSystem = ScoringSystem.POINTS
    current_round: int = 1
    round_mode: str = FixedRounds.mode
    total_rounds: Optional[int] = None
    ranking_strategy: RankingStrategy = RankingStrategy.POINTS
    status: TournamentStatus = TournamentStatus.ACTIVE
    is_official: bool = False
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @property
    def schedule(self) -> RoundMode:
        return round_mode_from(self.round_mode, self.total_rounds)

    @property
    def finished(self) -> bool:
        return self.status == TournamentStatus.FINISHED

    @property
    def player_map(self) -> Dict[str, Player]:
        return {p.id: p for p in self.players}

    def current(self) -> Optional[Round]:
        if 1 <= self.current_round <= len(self.rounds):
            return self.rounds[self.current_round - 1]
        return None

    def find_match(self, mid: str) -> Optional[Match]:
        return next((m for r in self.rounds for m in r.matches if m.id == mid), None)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "format": self.format.value,
            "courts": self.courts,
            "players": [p.as_dict() for p in self.players],
            "teams": [t.as_dict() for t in self.teams],
            "rounds": [r.as_dict() for r in self.rounds],
            "scoring_system": self.scoring_system.value,
            "current_round": self.current_round,
            "round_mode": self.round_mode,
            "total_rounds": self.total_rounds,
            "ranking_strategy": self.ranking_strategy.value,
            "status": self.status.value,
            "is_official": self.is_official,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tournament":
        return cls(
            id=data["id"],
            name=data["name"],
            format=TournamentFormat(data["format"]),
            courts=data["courts"],
            players=[Player.from_dict(p) for p in data.get("players", [])],
            teams=[Team.from_dict(t) for t in data.get("teams", [])],
            rounds=[Round.from_dict(r) for r in data.get("rounds", [])],
            scoring_system=ScoringSystem(data.get("scoring_system", ScoringSystem.POINTS)),
            current_round=data.get("current_round", 1),
            round_mode=data.get("round_mode", FixedRounds.mode),
            total_rounds=data.get("total_rounds"),
            ranking_strategy=RankingStrategy(data.get("ranking_strategy", RankingStrategy.POINTS)),
            status=TournamentStatus(data.get("status", TournamentStatus.ACTIVE)),
            is_official=data.get("is_official", False),
            created_at=data.get("created_at") or utc_now(),
            updated_at=data.get("updated_at") or utc_now(),
        )

    def to_json(self) -> str:
        return json.dumps(self.as_dict())

    @classmethod
    def from_json(cls, raw: str) -> "Tournament":
        return cls.from_dict(json.loads(raw))
