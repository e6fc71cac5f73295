"""
Entry points used by the tournament orchestrator.

Every function here is pure: it reads the records it is given and returns new
rounds or standings, leaving persistence and access control to the caller.
"""
import logging
from typing import List, Optional, Sequence

from padel_mixer import config
from padel_mixer.americano.functions import (
    PairingRule,
    fit_to_total,
    generate_americano_next_round,
    generate_americano_rounds,
    generate_mixed_americano_rounds,
    generate_team_americano_rounds,
    mixed_rule,
    open_rule,
    team_rule,
    validate_americano,
    validate_mixed,
    validate_teams,
)
from padel_mixer.americano.models import (
    ADAPTIVE_FORMATS, AMERICANO_FORMATS, TEAM_FORMATS,
    FixedRounds, Player, RankingStrategy, Round, RoundMode, ScoringSystem, Team,
    Tournament, TournamentFormat, UnlimitedRounds, generate_id,
)
from padel_mixer.exceptions import TournamentStateError, ValidationError
from padel_mixer.mexicano.functions import (
    generate_final_round,
    generate_final_team_round,
    generate_mixed_final_round,
    generate_mexicano_round,
    generate_team_mexicano_round,
)
from padel_mixer.scoring import (
    PlayerStanding, TeamStanding, calculate_standings, calculate_team_standings,
)

logger = logging.getLogger(__name__)


def _format(value) -> TournamentFormat:
    try:
        return TournamentFormat(value)
    except ValueError:
        raise ValidationError(f"unknown tournament format {value!r}", field="format") from None


def _strategy(value) -> RankingStrategy:
    try:
        return RankingStrategy(value or config.RANKING_STRATEGY)
    except ValueError:
        raise ValidationError(f"unknown ranking strategy {value!r}", field="ranking_strategy") from None


def _rule_for(fmt: TournamentFormat, players: Sequence[Player], teams: Sequence[Team], courts: int) -> PairingRule:
    """Validate the roster for an americano-family format and return its pairing rule."""
    if fmt == TournamentFormat.MIXED_AMERICANO:
        validate_mixed(players, courts)
        return mixed_rule(players)
    if fmt == TournamentFormat.TEAM_AMERICANO:
        validate_teams(teams, players, courts)
        return team_rule(teams)
    validate_americano(players, courts)
    return open_rule()


def build_initial_rounds(
    format,
    players: Sequence[Player],
    teams: Sequence[Team] = (),
    courts: int = 1,
    round_mode: RoundMode = FixedRounds(),
    ranking_strategy: RankingStrategy = None,
) -> List[Round]:
    """Rounds a tournament starts with.

    Americano formats in fixed mode get their whole schedule (cut or extended
    to ``round_mode.total`` when given); unlimited mode and the Mexicano
    formats get only the first round.
    """
    fmt = _format(format)
    teams = list(teams or ())
    if fmt in ADAPTIVE_FORMATS:
        return [next_adaptive_round(fmt, players, teams, [], 1, courts, ranking_strategy)]

    rule = _rule_for(fmt, players, teams, courts)
    if isinstance(round_mode, UnlimitedRounds):
        return [generate_americano_next_round(players, [], courts, rule)]

    if fmt == TournamentFormat.MIXED_AMERICANO:
        rounds = generate_mixed_americano_rounds(players, courts)
    elif fmt == TournamentFormat.TEAM_AMERICANO:
        rounds = generate_team_americano_rounds(teams, players, courts)
    else:
        rounds = generate_americano_rounds(players, courts)
    if round_mode.total is not None:
        rounds = fit_to_total(rounds, players, courts, round_mode.total, rule)
    return rounds


def next_adaptive_round(
    format,
    players: Sequence[Player],
    teams: Sequence[Team],
    standings: Sequence,
    round_number: int,
    courts: int,
    ranking_strategy: RankingStrategy = None,
) -> Round:
    fmt = _format(format)
    strategy = _strategy(ranking_strategy)
    if fmt == TournamentFormat.MEXICANO:
        return generate_mexicano_round(players, standings, round_number, courts, strategy)
    if fmt == TournamentFormat.TEAM_MEXICANO:
        return generate_team_mexicano_round(teams, players, standings, round_number, courts, strategy)
    raise ValidationError(f"{fmt.value} rounds are not seeded from standings", field="format")


def next_incremental_round(
    players: Sequence[Player],
    prior_rounds: Sequence[Round],
    courts: int,
    format=TournamentFormat.AMERICANO,
    teams: Sequence[Team] = (),
) -> Round:
    fmt = _format(format)
    if fmt not in AMERICANO_FORMATS:
        raise ValidationError(f"{fmt.value} has no unlimited schedule", field="format")
    rule = _rule_for(fmt, players, list(teams or ()), courts)
    return generate_americano_next_round(players, prior_rounds, courts, rule)


def final_round(
    players: Sequence[Player],
    standings: Sequence[PlayerStanding],
    courts: int,
    ranking_strategy: RankingStrategy = None,
    format=TournamentFormat.AMERICANO,
) -> Round:
    strategy = _strategy(ranking_strategy)
    if _format(format) == TournamentFormat.MIXED_AMERICANO:
        return generate_mixed_final_round(players, standings, courts, strategy)
    return generate_final_round(players, standings, courts, strategy)


def final_team_round(
    teams: Sequence[Team],
    players: Sequence[Player],
    team_standings: Sequence[TeamStanding],
    courts: int,
    ranking_strategy: RankingStrategy = None,
) -> Round:
    return generate_final_team_round(teams, players, team_standings, courts, _strategy(ranking_strategy))


def standings(tournament: Tournament) -> List[PlayerStanding]:
    return calculate_standings(tournament)


def team_standings(tournament: Tournament) -> List[TeamStanding]:
    return calculate_team_standings(tournament)


def create_tournament(
    name: str,
    format,
    players: Sequence[Player],
    courts: int,
    teams: Sequence[Team] = (),
    round_mode: RoundMode = FixedRounds(),
    scoring_system: ScoringSystem = None,
    ranking_strategy: RankingStrategy = None,
    tournament_id: str = None,
    is_official: bool = False,
) -> Tournament:
    fmt = _format(format)
    strategy = _strategy(ranking_strategy)
    rounds = build_initial_rounds(fmt, players, teams, courts, round_mode, strategy)
    tournament = Tournament(
        id=tournament_id or generate_id(),
        name=name,
        format=fmt,
        courts=courts,
        players=list(players),
        teams=list(teams or ()),
        rounds=rounds,
        scoring_system=ScoringSystem(scoring_system or config.SCORING_SYSTEM),
        round_mode=round_mode.mode,
        total_rounds=getattr(round_mode, "total", None),
        ranking_strategy=strategy,
        is_official=is_official,
    )
    logger.info("Created %s tournament %s with %d rounds", fmt.value, tournament.id, len(rounds))
    return tournament


def next_round(tournament: Tournament) -> Optional[Round]:
    """The round that follows ``current_round``, or None when the schedule is over.

    Pre-built rounds are returned as stored; adaptive and unlimited
    tournaments get a freshly generated round that the caller appends.
    """
    if tournament.finished:
        raise TournamentStateError(f"tournament {tournament.id} is finished")
    if tournament.current_round < len(tournament.rounds):
        return tournament.rounds[tournament.current_round]
    if tournament.rounds and tournament.rounds[-1].final:
        return None

    number = len(tournament.rounds) + 1
    if tournament.total_rounds is not None and number > tournament.total_rounds:
        return None
    if tournament.format == TournamentFormat.MEXICANO:
        return next_adaptive_round(
            tournament.format, tournament.players, tournament.teams, standings(tournament),
            number, tournament.courts, tournament.ranking_strategy,
        )
    if tournament.format == TournamentFormat.TEAM_MEXICANO:
        return next_adaptive_round(
            tournament.format, tournament.players, tournament.teams, team_standings(tournament),
            number, tournament.courts, tournament.ranking_strategy,
        )
    if isinstance(tournament.schedule, UnlimitedRounds):
        return next_incremental_round(
            tournament.players, tournament.rounds, tournament.courts,
            tournament.format, tournament.teams,
        )
    return None


def final_round_for(tournament: Tournament) -> Round:
    """Final round seeded from the current standings, numbered after the last round."""
    if tournament.finished:
        raise TournamentStateError(f"tournament {tournament.id} is finished")
    if any(r.final for r in tournament.rounds):
        raise TournamentStateError(f"tournament {tournament.id} already has a final round")
    if tournament.format in TEAM_FORMATS:
        rnd = final_team_round(
            tournament.teams, tournament.players, team_standings(tournament),
            tournament.courts, tournament.ranking_strategy,
        )
    else:
        rnd = final_round(
            tournament.players, standings(tournament), tournament.courts,
            tournament.ranking_strategy, tournament.format,
        )
    return rnd.renumbered(len(tournament.rounds) + 1)
