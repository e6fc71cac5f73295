"""
Standings calculator.

Standings are always recomputed from the full round history: only completed
matches count, a drawn score is a loss for both sides, and ranking is points,
then wins, then point difference, with remaining ties left in roster order.
"""
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from padel_mixer.americano.models import (
    Match, Player, RankingStrategy, Team, Tournament,
)

logger = logging.getLogger(__name__)


@dataclass
class PlayerStanding:
    player_id: str
    player_name: str
    linked_user_id: Optional[str] = None
    total_points: int = 0
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    point_difference: int = 0
    rank: int = 0

    @property
    def id(self) -> str:
        return self.player_id

    @property
    def average_points(self) -> float:
        if not self.matches_played:
            return 0.0
        return self.total_points / self.matches_played

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class TeamStanding:
    team_id: str
    team_name: str
    player_ids: Tuple[str, str] = field(default_factory=tuple)
    total_points: int = 0
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    point_difference: int = 0
    rank: int = 0

    @property
    def id(self) -> str:
        return self.team_id

    @property
    def average_points(self) -> float:
        if not self.matches_played:
            return 0.0
        return self.total_points / self.matches_played

    def as_dict(self) -> dict:
        data = asdict(self)
        data["player_ids"] = list(self.player_ids)
        return data


def _apply(row, score_for: int, score_against: int) -> None:
    row.matches_played += 1
    row.total_points += score_for
    row.point_difference += score_for - score_against
    if score_for > score_against:
        row.matches_won += 1
    else:
        row.matches_lost += 1


def _scored(tournament: Tournament) -> Iterable[Match]:
    for rnd in tournament.rounds:
        for match in rnd.matches:
            if match.completed and match.score1 is not None and match.score2 is not None:
                yield match


def standing_key(row) -> tuple:
    return (-row.total_points, -row.matches_won, -row.point_difference)


def _ranked(rows: List) -> List:
    ordered = sorted(rows, key=standing_key)
    for i, row in enumerate(ordered):
        row.rank = i + 1
    return ordered


def calculate_standings(tournament: Tournament) -> List[PlayerStanding]:
    rows: Dict[str, PlayerStanding] = {
        p.id: PlayerStanding(player_id=p.id, player_name=p.name, linked_user_id=p.linked_user_id)
        for p in tournament.players
    }
    for match in _scored(tournament):
        for side, score_for, score_against in (
            (match.team1, match.score1, match.score2),
            (match.team2, match.score2, match.score1),
        ):
            for pid in side:
                row = rows.get(pid)
                if row is None:
                    logger.warning("Match %s references unknown player %s", match.id, pid)
                    continue
                _apply(row, score_for, score_against)
    return _ranked(list(rows.values()))


def _team_name(team: Team, players: Dict[str, Player]) -> str:
    if team.name:
        return team.name
    return " / ".join(players[pid].name if pid in players else pid for pid in team.player_ids)


def calculate_team_standings(tournament: Tournament) -> List[TeamStanding]:
    players = tournament.player_map
    rows: Dict[str, TeamStanding] = {}
    by_members: Dict[frozenset, TeamStanding] = {}
    for team in tournament.teams:
        row = TeamStanding(team_id=team.id, team_name=_team_name(team, players),
                           player_ids=team.player_ids)
        rows[team.id] = row
        by_members[team.members] = row

    for match in _scored(tournament):
        for side, score_for, score_against in (
            (match.team1, match.score1, match.score2),
            (match.team2, match.score2, match.score1),
        ):
            row = by_members.get(frozenset(side))
            if row is None:
                logger.debug("Match %s side %s is not a registered team", match.id, side)
                continue
            _apply(row, score_for, score_against)
    return _ranked(list(rows.values()))


def ranking_key(row, strategy: RankingStrategy) -> tuple:
    strategy = RankingStrategy(strategy)
    if strategy == RankingStrategy.WINS:
        return (-row.matches_won, -row.total_points, -row.point_difference)
    if strategy == RankingStrategy.AVERAGE:
        return (-row.average_points, -row.matches_won, -row.point_difference)
    return standing_key(row)


T = TypeVar("T", Player, Team)


def rank_by_standings(
    entries: Sequence[T],
    standings: Sequence,
    strategy: RankingStrategy = RankingStrategy.POINTS,
) -> List[T]:
    """Order players or teams by their standing under ``strategy``.

    Entries without a standing are treated as having no results yet, and any
    tie keeps the input order, so empty standings return ``entries`` as given.
    """
    if not standings:
        return list(entries)
    by_id = {s.id: s for s in standings}
    known = {e.id for e in entries}
    stray = [s.id for s in standings if s.id not in known]
    if stray:
        logger.warning("Ignoring standings for unknown entries: %s", ", ".join(stray))

    def key(entry):
        row = by_id.get(entry.id)
        if row is None:
            return (0, 0, 0)
        return ranking_key(row, strategy)

    return sorted(entries, key=key)
