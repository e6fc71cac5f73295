"""
Pytest configuration and fixtures for the padel-mixer tests.
"""
from collections import Counter
from itertools import combinations

import pytest

from padel_mixer.americano.models import (
    Match, Player, Round, Team, Tournament, TournamentFormat, TournamentStatus, match_id,
)


def build_players(count, prefix="p"):
    return [Player(id=f"{prefix}{i}", name=f"Player {i}") for i in range(1, count + 1)]


def build_match(number, court, team1, team2, score=None):
    match = Match(id=match_id(number, court), round=number, court=court,
                  team1=list(team1), team2=list(team2))
    if score is not None:
        match.record_score(*score)
    return match


def partner_counts(rounds):
    counts = Counter()
    for rnd in rounds:
        for m in rnd.matches:
            for side in (m.team1, m.team2):
                counts[frozenset(side)] += 1
    return counts


def opponent_counts(rounds):
    counts = Counter()
    for rnd in rounds:
        for m in rnd.matches:
            for a in m.team1:
                for b in m.team2:
                    counts[frozenset((a, b))] += 1
    return counts


def assert_no_double_booking(rounds):
    for rnd in rounds:
        seen = [pid for m in rnd.matches for pid in m.player_ids]
        assert len(seen) == len(set(seen)), f"round {rnd.number} seats a player twice"
        assert not set(seen) & set(rnd.resting)


@pytest.fixture
def players_factory():
    """Build ``n`` players with ids p1..pn."""
    return build_players


@pytest.fixture
def eight_players():
    return build_players(8)


@pytest.fixture
def mixed_players():
    """Four men and four women, alternating in the roster."""
    return [
        Player(id=f"p{i}", name=f"Player {i}", sex="M" if i % 2 else "F")
        for i in range(1, 9)
    ]


@pytest.fixture
def four_teams(eight_players):
    return [
        Team(id=f"t{i + 1}", player_ids=(eight_players[2 * i].id, eight_players[2 * i + 1].id))
        for i in range(4)
    ]


@pytest.fixture
def scored_tournament():
    """Four players, two completed rounds and one pending round.

    Round 1: a+b beat c+d 16-8. Round 2: a+c draw b+d 12-12.
    """
    players = [Player(id=pid, name=pid.upper()) for pid in ("a", "b", "c", "d")]
    rounds = [
        Round(number=1, matches=[build_match(1, 1, ["a", "b"], ["c", "d"], (16, 8))]),
        Round(number=2, matches=[build_match(2, 1, ["a", "c"], ["b", "d"], (12, 12))]),
        Round(number=3, matches=[build_match(3, 1, ["a", "d"], ["b", "c"])]),
    ]
    return Tournament(
        id="t-scored",
        name="Scored",
        format=TournamentFormat.AMERICANO,
        courts=1,
        players=players,
        rounds=rounds,
        current_round=3,
    )
