"""
Tournament lifecycle: scores, advancing rounds, the final round, finishing.

Unlike the engine these helpers change the tournament they are given. The
caller owns that copy and saves it back in one piece afterwards.
"""
import logging
from typing import Optional

from padel_mixer.americano.models import (
    Match, Round, Tournament, TournamentStatus, utc_now,
)
from padel_mixer.engine import final_round_for, next_round
from padel_mixer.exceptions import TournamentStateError, ValidationError

logger = logging.getLogger(__name__)


def _ensure_active(tournament: Tournament) -> None:
    if tournament.finished:
        raise TournamentStateError(f"tournament {tournament.id} is finished")


def _ensure_round_done(tournament: Tournament) -> None:
    current = tournament.current()
    if current is not None and not current.completed:
        raise TournamentStateError(f"round {current.number} still has matches without a score")


def submit_score(tournament: Tournament, mid: str, score1: int, score2: int) -> Match:
    """Score a pending match of the current round."""
    _ensure_active(tournament)
    current = tournament.current()
    if current is None:
        raise TournamentStateError(f"tournament {tournament.id} has no round in progress")
    match = next((m for m in current.matches if m.id == mid), None)
    if match is None:
        raise ValidationError(f"match {mid} is not part of round {current.number}", field="match_id")
    if match.completed:
        raise TournamentStateError(f"match {mid} already has a score, edit it instead")
    match.record_score(score1, score2)
    tournament.updated_at = utc_now()
    logger.debug("Tournament %s match %s: %d-%d", tournament.id, mid, score1, score2)
    return match


def edit_score(tournament: Tournament, mid: str, score1: int, score2: int) -> Match:
    """Correct the score of a completed match in any round."""
    _ensure_active(tournament)
    match = tournament.find_match(mid)
    if match is None:
        raise ValidationError(f"unknown match {mid}", field="match_id")
    if not match.completed:
        raise TournamentStateError(f"match {mid} has no score yet")
    match.record_score(score1, score2)
    tournament.updated_at = utc_now()
    return match


def advance_round(tournament: Tournament) -> Optional[Round]:
    """Move to the next round once the current one is fully scored.

    Generated rounds are appended. When the schedule has no further round
    the tournament is finished and None is returned.
    """
    _ensure_active(tournament)
    _ensure_round_done(tournament)
    rnd = next_round(tournament)
    if rnd is None:
        finish_tournament(tournament)
        return None
    if rnd.number > len(tournament.rounds):
        tournament.rounds.append(rnd)
    tournament.current_round = rnd.number
    tournament.updated_at = utc_now()
    logger.info("Tournament %s moved to round %d", tournament.id, rnd.number)
    return rnd


def add_final_round(tournament: Tournament) -> Round:
    """Append the final round seeded from the standings and make it current.

    Pre-built rounds that were not reached yet are dropped so the final
    follows the last round played.
    """
    _ensure_active(tournament)
    _ensure_round_done(tournament)
    played = tournament.rounds[:tournament.current_round]
    rnd = final_round_for(tournament).renumbered(len(played) + 1)
    if len(played) < len(tournament.rounds):
        logger.info("Tournament %s drops %d unplayed rounds for the final",
                    tournament.id, len(tournament.rounds) - len(played))
    tournament.rounds = played + [rnd]
    tournament.current_round = rnd.number
    tournament.updated_at = utc_now()
    logger.info("Tournament %s final round %d", tournament.id, rnd.number)
    return rnd


def finish_tournament(tournament: Tournament) -> Tournament:
    _ensure_active(tournament)
    _ensure_round_done(tournament)
    tournament.status = TournamentStatus.FINISHED
    tournament.updated_at = utc_now()
    logger.info("Tournament %s finished", tournament.id)
    return tournament
