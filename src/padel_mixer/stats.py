"""
Cross-tournament aggregates: the leaderboard and a player's profile.

Both are rebuilt from finished tournaments by re-running the standings
calculator, the same way a single tournament's table is produced.
"""
import logging
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from padel_mixer.americano.models import Tournament
from padel_mixer.exceptions import ValidationError
from padel_mixer.scoring import calculate_standings, standing_key

logger = logging.getLogger(__name__)

PERIODS = ("overall", "monthly", "weekly", "daily")
RECENT_LIMIT = 10
PARTNER_LIMIT = 5


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _percent(part: int, whole: int) -> int:
    return int(_round_half_up(part / whole * 100)) if whole else 0


def _parse_time(value: str) -> datetime:
    stamp = datetime.fromisoformat(value)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def period_start(period: str, now: datetime) -> Optional[datetime]:
    """First instant of the current day, week (from Monday) or month."""
    if period not in PERIODS:
        raise ValidationError(f"unknown period {period!r}", field="period")
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "daily":
        return today
    if period == "weekly":
        return today - timedelta(days=today.weekday())
    if period == "monthly":
        return today.replace(day=1)
    return None


@dataclass
class LeaderboardEntry:
    player_name: str
    linked_user_id: Optional[str] = None
    total_points: int = 0
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    point_difference: int = 0
    tournaments_played: int = 0
    win_rate: int = 0
    rank: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def build_leaderboard(
    tournaments: Iterable[Tournament],
    period: str = "overall",
    official_only: bool = False,
    now: datetime = None,
) -> List[LeaderboardEntry]:
    now = now or datetime.now(timezone.utc)
    since = period_start(period, now)
    entries: Dict[str, LeaderboardEntry] = {}
    counted = 0
    for tournament in tournaments:
        if not tournament.finished:
            continue
        if official_only and not tournament.is_official:
            continue
        if since is not None and _parse_time(tournament.updated_at) < since:
            continue
        counted += 1
        for row in calculate_standings(tournament):
            key = row.linked_user_id or f"guest_{row.player_name}"
            entry = entries.setdefault(
                key, LeaderboardEntry(player_name=row.player_name, linked_user_id=row.linked_user_id)
            )
            entry.total_points += row.total_points
            entry.matches_played += row.matches_played
            entry.matches_won += row.matches_won
            entry.matches_lost += row.matches_lost
            entry.point_difference += row.point_difference
            entry.tournaments_played += 1
            # latest name wins
            entry.player_name = row.player_name

    ranked = sorted(entries.values(), key=standing_key)
    for i, entry in enumerate(ranked):
        entry.rank = i + 1
        entry.win_rate = _percent(entry.matches_won, entry.matches_played)
    logger.debug("Leaderboard %s over %d tournaments: %d players", period, counted, len(ranked))
    return ranked


@dataclass
class TournamentResult:
    tournament_id: str
    tournament_name: str
    format: str
    placement: int
    total_players: int
    points: int
    matches_played: int
    matches_won: int
    matches_lost: int
    point_difference: int
    finished_at: str


@dataclass
class PartnerStat:
    partner_name: str
    shared_matches: int = 0
    shared_wins: int = 0


@dataclass
class PlayerProfile:
    user_id: str
    tournaments_played: int = 0
    tournaments_won: int = 0
    total_matches_played: int = 0
    total_matches_won: int = 0
    total_matches_lost: int = 0
    total_points: int = 0
    total_point_difference: int = 0
    win_rate: int = 0
    avg_points_per_match: float = 0.0
    recent_tournaments: List[TournamentResult] = field(default_factory=list)
    best_partners: List[PartnerStat] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def player_profile(tournaments: Iterable[Tournament], user_id: str) -> PlayerProfile:
    """Career totals for the account ``user_id`` over its finished tournaments."""
    profile = PlayerProfile(user_id=user_id)
    partners: Dict[str, PartnerStat] = {}
    finished = sorted(
        (t for t in tournaments if t.finished),
        key=lambda t: _parse_time(t.updated_at),
        reverse=True,
    )
    for tournament in finished:
        me = next((p for p in tournament.players if p.linked_user_id == user_id), None)
        if me is None:
            continue
        table = calculate_standings(tournament)
        row = next(s for s in table if s.player_id == me.id)

        profile.tournaments_played += 1
        if row.rank == 1:
            profile.tournaments_won += 1
        profile.total_matches_played += row.matches_played
        profile.total_matches_won += row.matches_won
        profile.total_matches_lost += row.matches_lost
        profile.total_points += row.total_points
        profile.total_point_difference += row.point_difference
        profile.recent_tournaments.append(TournamentResult(
            tournament_id=tournament.id,
            tournament_name=tournament.name,
            format=tournament.format.value,
            placement=row.rank,
            total_players=len(tournament.players),
            points=row.total_points,
            matches_played=row.matches_played,
            matches_won=row.matches_won,
            matches_lost=row.matches_lost,
            point_difference=row.point_difference,
            finished_at=tournament.updated_at,
        ))

        names = tournament.player_map
        for rnd in tournament.rounds:
            for match in rnd.matches:
                if not match.completed or match.score1 is None or match.score2 is None:
                    continue
                if me.id in match.team1:
                    side, won = match.team1, match.score1 > match.score2
                elif me.id in match.team2:
                    side, won = match.team2, match.score2 > match.score1
                else:
                    continue
                for pid in side:
                    if pid == me.id:
                        continue
                    name = names[pid].name if pid in names else pid
                    stat = partners.setdefault(name, PartnerStat(partner_name=name))
                    stat.shared_matches += 1
                    if won:
                        stat.shared_wins += 1

    played = profile.total_matches_played
    profile.win_rate = _percent(profile.total_matches_won, played)
    profile.avg_points_per_match = _round_half_up(profile.total_points / played, 1) if played else 0.0
    profile.recent_tournaments = profile.recent_tournaments[:RECENT_LIMIT]
    profile.best_partners = sorted(
        partners.values(), key=lambda p: (-p.shared_wins, -p.shared_matches)
    )[:PARTNER_LIMIT]
    return profile
