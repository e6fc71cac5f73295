import logging
from typing import Sequence

from padel_mixer.americano.functions import (
    playing_courts, validate_courts, validate_mixed, validate_roster, validate_teams,
)
from padel_mixer.americano.models import (
    FEMALE, MALE, Match, Player, RankingStrategy, Round, Team, match_id,
)
from padel_mixer.scoring import PlayerStanding, TeamStanding, rank_by_standings

logger = logging.getLogger(__name__)


def _seeded_round(ranked: Sequence[str], courts: int, number: int, final: bool = False) -> Round:
    """Bands of four by rank: 1st and 4th partner against 2nd and 3rd."""
    used = playing_courts(len(ranked), courts)
    playing, resting = ranked[:used * 4], list(ranked[used * 4:])
    matches = []
    for court in range(1, used + 1):
        r1, r2, r3, r4 = playing[(court - 1) * 4:court * 4]
        matches.append(Match(
            id=match_id(number, court),
            round=number,
            court=court,
            team1=[r1, r4],
            team2=[r2, r3],
        ))
    return Round(number=number, matches=matches, resting=resting, final=final)


def _seeded_team_round(
    ranked: Sequence[Team], players: Sequence[Player], courts: int, number: int, final: bool = False
) -> Round:
    """Bands of two teams by rank: 1st plays 2nd, 3rd plays 4th, ..."""
    used = playing_courts(len(ranked), courts, per_court=2)
    matches = []
    for court in range(1, used + 1):
        home, away = ranked[(court - 1) * 2], ranked[(court - 1) * 2 + 1]
        matches.append(Match(
            id=match_id(number, court),
            round=number,
            court=court,
            team1=list(home.player_ids),
            team2=list(away.player_ids),
        ))
    playing = {pid for m in matches for pid in m.player_ids}
    resting = [p.id for p in players if p.id not in playing]
    return Round(number=number, matches=matches, resting=resting, final=final)


def generate_mexicano_round(
    players: Sequence[Player],
    standings: Sequence[PlayerStanding],
    num_round: int,
    courts: int,
    strategy: RankingStrategy = RankingStrategy.POINTS,
) -> Round:
    """
    Generate a Mexicano round: players sorted by current standing,
    rank 1 & 4 partner together vs rank 2 & 3, etc.
    Before any result exists the input order is used; the lowest
    ranked players beyond full courts rest.
    """
    validate_courts(courts)
    validate_roster(players)
    ranked = rank_by_standings(players, standings, strategy)
    rnd = _seeded_round([p.id for p in ranked], courts, num_round)
    logger.info("Mexicano round %d: %d matches, %d resting", num_round, len(rnd.matches), len(rnd.resting))
    return rnd


def generate_team_mexicano_round(
    teams: Sequence[Team],
    players: Sequence[Player],
    team_standings: Sequence[TeamStanding],
    num_round: int,
    courts: int,
    strategy: RankingStrategy = RankingStrategy.POINTS,
) -> Round:
    validate_teams(teams, players, courts)
    ranked = rank_by_standings(teams, team_standings, strategy)
    rnd = _seeded_team_round(ranked, players, courts, num_round)
    logger.info("Team mexicano round %d: %d matches", num_round, len(rnd.matches))
    return rnd


def generate_final_round(
    players: Sequence[Player],
    standings: Sequence[PlayerStanding],
    courts: int,
    strategy: RankingStrategy = RankingStrategy.POINTS,
) -> Round:
    """
    Closing round seeded from the standings: the top four contest court 1
    (1st and 4th against 2nd and 3rd), the next four court 2, and so on.

    The round comes back with number 0; the caller places it with
    ``Round.renumbered``.
    """
    validate_courts(courts)
    validate_roster(players)
    ranked = rank_by_standings(players, standings, strategy)
    return _seeded_round([p.id for p in ranked], courts, 0, final=True)


def generate_final_team_round(
    teams: Sequence[Team],
    players: Sequence[Player],
    team_standings: Sequence[TeamStanding],
    courts: int,
    strategy: RankingStrategy = RankingStrategy.POINTS,
) -> Round:
    validate_teams(teams, players, courts)
    ranked = rank_by_standings(teams, team_standings, strategy)
    return _seeded_team_round(ranked, players, courts, 0, final=True)


def _seeded_mixed_round(ranked: Sequence[Player], courts: int, number: int, final: bool = False) -> Round:
    """Bands of two men and two women by rank: top man with second woman
    against second man with top woman, so each side stays mixed."""
    men = [p.id for p in ranked if p.sex == MALE]
    women = [p.id for p in ranked if p.sex == FEMALE]
    used = min(playing_courts(len(ranked), courts), len(men) // 2, len(women) // 2)
    matches = []
    for court in range(1, used + 1):
        m1, m2 = men[(court - 1) * 2:court * 2]
        w1, w2 = women[(court - 1) * 2:court * 2]
        matches.append(Match(
            id=match_id(number, court),
            round=number,
            court=court,
            team1=[m1, w2],
            team2=[m2, w1],
        ))
    playing = {pid for m in matches for pid in m.player_ids}
    resting = [p.id for p in ranked if p.id not in playing]
    return Round(number=number, matches=matches, resting=resting, final=final)


def generate_mixed_final_round(
    players: Sequence[Player],
    standings: Sequence[PlayerStanding],
    courts: int,
    strategy: RankingStrategy = RankingStrategy.POINTS,
) -> Round:
    """Final round for mixed play: men and women are ranked apart and each
    court takes the next two of both."""
    validate_mixed(players, courts)
    ranked = rank_by_standings(players, standings, strategy)
    return _seeded_mixed_round(ranked, courts, 0, final=True)
