from typing import List, Optional, Tuple

from pydantic import BaseModel, field_validator

from padel_mixer.americano.models import (
    FEMALE, MALE, TEAM_FORMATS, FixedRounds, Player, RankingStrategy, RoundMode, ScoringSystem,
    Team, Tournament, TournamentFormat, generate_id, round_mode_from,
)
from padel_mixer.engine import standings, team_standings
from padel_mixer.exceptions import ValidationError


class PlayerIn(BaseModel):
    name: str
    sex: Optional[str] = None
    linked_user_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("player name can not be blank")
        return v

    @field_validator("sex")
    @classmethod
    def known_sex(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.upper()
        if v not in (MALE, FEMALE):
            raise ValueError("sex must be M or F")
        return v


class CreateTournamentIn(BaseModel):
    name: str
    format: TournamentFormat = TournamentFormat.AMERICANO
    players: List[PlayerIn]
    teams: List[Tuple[int, int]] = []  # positions in ``players``
    courts: int = 1
    round_mode: str = FixedRounds.mode
    total_rounds: Optional[int] = None
    scoring_system: Optional[ScoringSystem] = None
    ranking_strategy: Optional[RankingStrategy] = None
    is_official: bool = False

    def build_players(self) -> List[Player]:
        return [
            Player(id=generate_id(), name=p.name, sex=p.sex, linked_user_id=p.linked_user_id)
            for p in self.players
        ]

    def build_teams(self, players: List[Player]) -> List[Team]:
        teams = []
        for i, (a, b) in enumerate(self.teams, start=1):
            if not (0 <= a < len(players) and 0 <= b < len(players)):
                raise ValidationError(f"team {i} refers to a player that is not listed", field="teams")
            teams.append(Team(id=generate_id(), player_ids=(players[a].id, players[b].id)))
        return teams

    def build_round_mode(self) -> RoundMode:
        return round_mode_from(self.round_mode, self.total_rounds)


class ScoreIn(BaseModel):
    match_id: str
    score1: int
    score2: int


def tournament_view(tournament: Tournament) -> dict:
    """Tournament document plus its live tables, as the routers return it."""
    current = tournament.current()
    view = {
        "tournament": tournament.as_dict(),
        "standings": [s.as_dict() for s in standings(tournament)],
        "current_matches": [m.as_dict() for m in current.matches] if current else [],
        "total_rounds": tournament.total_rounds or len(tournament.rounds),
    }
    if tournament.format in TEAM_FORMATS:
        view["team_standings"] = [s.as_dict() for s in team_standings(tournament)]
    return view
