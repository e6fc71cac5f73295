"""
Unit tests for the Americano family of schedules: fixed round robins,
mixed doubles, fixed teams and the one-round-at-a-time generator.
"""
import math
from collections import Counter
from itertools import combinations

import pytest

from padel_mixer.americano.functions import (
    PairHistory,
    _balance_opponents,
    _count_opponents,
    _even_out,
    fit_to_total,
    generate_americano_next_round,
    generate_americano_rounds,
    generate_mixed_americano_rounds,
    generate_team_americano_rounds,
    mixed_rule,
    team_rule,
    validate_teams,
)
from padel_mixer.americano.models import Player, Round, Team
from padel_mixer.exceptions import ValidationError

from conftest import (
    assert_no_double_booking, build_match, build_players, opponent_counts, partner_counts,
)


def rest_counts(rounds, players):
    counts = Counter({p.id: 0 for p in players})
    for rnd in rounds:
        counts.update(rnd.resting)
    return counts


class TestAmericanoRounds:
    """Tests for generate_americano_rounds."""

    def test_eight_players_two_courts(self, eight_players):
        rounds = generate_americano_rounds(eight_players, 2)
        assert len(rounds) == 7
        assert all(len(r.matches) == 2 and not r.resting for r in rounds)
        counts = partner_counts(rounds)
        assert len(counts) == 28
        assert set(counts.values()) == {1}

    @pytest.mark.parametrize("count", [4, 8, 12, 16, 20])
    def test_partner_counts_balanced(self, count):
        players = build_players(count)
        rounds = generate_americano_rounds(players, count // 4)
        counts = partner_counts(rounds)
        every_pair = [counts[frozenset((a.id, b.id))] for a, b in combinations(players, 2)]
        assert max(every_pair) - min(every_pair) <= 1
        assert_no_double_booking(rounds)

    def test_opponents_spread(self):
        players = build_players(8)
        rounds = generate_americano_rounds(players, 2)
        counts = opponent_counts(rounds)
        assert sum(counts.values()) == 7 * 2 * 4
        assert max(counts.values()) <= 4
        for player in players:
            faced = sum(n for pair, n in counts.items() if player.id in pair)
            assert faced == 14

    def test_balance_opponents_never_worsens_seating(self):
        sides = [[("a", "b"), ("c", "d"), ("e", "f"), ("g", "h")],
                 [("a", "c"), ("b", "d"), ("e", "g"), ("f", "h")],
                 [("a", "d"), ("b", "c"), ("e", "h"), ("f", "g")]]
        greedy = [[(s[0], s[1]), (s[2], s[3])] for s in sides]
        before = Counter()
        _count_opponents(before, [m for seating in greedy for m in seating], 1)
        after = Counter()
        _count_opponents(after, [m for seating in _balance_opponents(greedy) for m in seating], 1)
        assert max(after.values()) <= max(before.values())
        assert sum(after.values()) == sum(before.values())

    def test_rounds_numbered_and_courts_in_order(self, eight_players):
        rounds = generate_americano_rounds(eight_players, 2)
        assert [r.number for r in rounds] == list(range(1, 8))
        for rnd in rounds:
            assert [m.court for m in rnd.matches] == [1, 2]
            assert [m.id for m in rnd.matches] == [f"r{rnd.number}m1", f"r{rnd.number}m2"]
            assert all(m.round == rnd.number for m in rnd.matches)

    def test_reproducible(self, eight_players):
        first = [r.as_dict() for r in generate_americano_rounds(eight_players, 2)]
        second = [r.as_dict() for r in generate_americano_rounds(eight_players, 2)]
        assert first == second

    def test_does_not_mutate_players(self, eight_players):
        before = [p.as_dict() for p in eight_players]
        generate_americano_rounds(eight_players, 2)
        assert [p.as_dict() for p in eight_players] == before

    def test_extra_courts_stay_empty(self, eight_players):
        rounds = generate_americano_rounds(eight_players, 5)
        assert len(rounds) == 7
        assert all(len(r.matches) == 2 for r in rounds)

    def test_resting_rotates_when_courts_are_short(self):
        players = build_players(12)
        rounds = generate_americano_rounds(players, 2)
        assert_no_double_booking(rounds)
        assert all(len(r.matches) == 2 and len(r.resting) == 4 for r in rounds)
        counts = partner_counts(rounds)
        assert all(counts[frozenset((a.id, b.id))] >= 1 for a, b in combinations(players, 2))
        rests = rest_counts(rounds, players).values()
        assert max(rests) - min(rests) <= 1

    @pytest.mark.parametrize("count, courts", [(8, 1), (12, 1), (16, 1), (20, 2), (12, 2), (16, 3)])
    def test_surplus_players_still_partner_everyone(self, count, courts):
        players = build_players(count)
        rounds = generate_americano_rounds(players, courts)
        assert len(rounds) == math.ceil(count * (count - 1) / 2 / (2 * courts))
        assert_no_double_booking(rounds)
        assert all(len(r.matches) == courts and len(r.resting) == count - 4 * courts for r in rounds)
        counts = partner_counts(rounds)
        every_pair = [counts[frozenset((a.id, b.id))] for a, b in combinations(players, 2)]
        assert min(every_pair) == 1
        assert max(every_pair) - min(every_pair) <= 1
        rests = rest_counts(rounds, players).values()
        assert max(rests) - min(rests) <= 1

    def test_even_out_keeps_rounds_disjoint(self):
        matchings = [[("a", "b"), ("c", "d"), ("e", "f"), ("g", "h")],
                     [("a", "c"), ("b", "d"), ("e", "g"), ("f", "h")]]
        rounds = _even_out(matchings, 2)
        assert [len(r) for r in rounds] == [2, 2, 2, 2]
        assert sorted(p for r in rounds for p in r) == sorted(p for m in matchings for p in m)
        for pairs in rounds:
            seated = [pid for pair in pairs for pid in pair]
            assert len(set(seated)) == len(seated)

    @pytest.mark.parametrize("count, courts", [(5, 1), (6, 2), (3, 1), (10, 2)])
    def test_rejects_player_counts(self, count, courts):
        with pytest.raises(ValidationError) as exc:
            generate_americano_rounds(build_players(count), courts)
        assert exc.value.field == "players"

    @pytest.mark.parametrize("courts", [0, -1, None, True])
    def test_rejects_courts(self, eight_players, courts):
        with pytest.raises(ValidationError) as exc:
            generate_americano_rounds(eight_players, courts)
        assert exc.value.field == "courts"

    def test_rejects_duplicate_ids(self):
        players = build_players(3) + [Player(id="p1", name="Again")]
        with pytest.raises(ValidationError):
            generate_americano_rounds(players, 1)


class TestMixedAmericanoRounds:
    """Tests for generate_mixed_americano_rounds."""

    def test_every_side_is_mixed(self, mixed_players):
        sex = {p.id: p.sex for p in mixed_players}
        rounds = generate_mixed_americano_rounds(mixed_players, 2)
        for rnd in rounds:
            for m in rnd.matches:
                assert sorted(sex[pid] for pid in m.team1) == ["F", "M"]
                assert sorted(sex[pid] for pid in m.team2) == ["F", "M"]

    def test_every_man_partners_every_woman_once(self, mixed_players):
        rounds = generate_mixed_americano_rounds(mixed_players, 2)
        assert len(rounds) == 4
        counts = partner_counts(rounds)
        men = [p.id for p in mixed_players if p.sex == "M"]
        women = [p.id for p in mixed_players if p.sex == "F"]
        assert all(counts[frozenset((m, w))] == 1 for m in men for w in women)

    def test_resting_keeps_sides_mixed(self):
        players = [Player(id=f"p{i}", name=f"P{i}", sex="M" if i <= 6 else "F") for i in range(1, 13)]
        sex = {p.id: p.sex for p in players}
        rounds = generate_mixed_americano_rounds(players, 2)
        assert_no_double_booking(rounds)
        for rnd in rounds:
            assert sorted(sex[pid] for pid in rnd.resting) == ["F", "F", "M", "M"]
            for m in rnd.matches:
                assert {sex[m.team1[0]], sex[m.team1[1]]} == {"M", "F"}
                assert {sex[m.team2[0]], sex[m.team2[1]]} == {"M", "F"}

    @pytest.mark.parametrize("count, courts", [(12, 1), (16, 2)])
    def test_short_courts_still_cover_every_couple(self, count, courts):
        players = [
            Player(id=f"p{i}", name=f"P{i}", sex="M" if i <= count // 2 else "F")
            for i in range(1, count + 1)
        ]
        sex = {p.id: p.sex for p in players}
        rounds = generate_mixed_americano_rounds(players, courts)
        assert_no_double_booking(rounds)
        counts = partner_counts(rounds)
        men = [p.id for p in players if p.sex == "M"]
        women = [p.id for p in players if p.sex == "F"]
        assert all(counts[frozenset((m, w))] == 1 for m in men for w in women)
        assert sum(counts.values()) == len(men) * len(women)
        for rnd in rounds:
            for m in rnd.matches:
                assert {sex[m.team1[0]], sex[m.team1[1]]} == {"M", "F"}
                assert {sex[m.team2[0]], sex[m.team2[1]]} == {"M", "F"}

    def test_unbalanced_genders_rejected(self):
        players = [Player(id=f"p{i}", name=f"P{i}", sex="M" if i < 6 else "F") for i in range(1, 9)]
        with pytest.raises(ValidationError, match="as many men as women"):
            generate_mixed_americano_rounds(players, 2)

    def test_missing_gender_rejected(self, mixed_players):
        mixed_players[0].sex = None
        with pytest.raises(ValidationError, match="without a gender"):
            generate_mixed_americano_rounds(mixed_players, 2)


class TestTeamAmericanoRounds:
    """Tests for generate_team_americano_rounds."""

    def test_every_team_meets_every_team_once(self, eight_players, four_teams):
        rounds = generate_team_americano_rounds(four_teams, eight_players, 2)
        assert len(rounds) == 3
        members = {t.members: t.id for t in four_teams}
        meetings = Counter()
        for rnd in rounds:
            for m in rnd.matches:
                meetings[frozenset((members[frozenset(m.team1)], members[frozenset(m.team2)]))] += 1
        assert len(meetings) == 6
        assert set(meetings.values()) == {1}

    def test_more_matchups_than_courts(self):
        players = build_players(12)
        teams = [Team(id=f"t{i}", player_ids=(players[2 * i].id, players[2 * i + 1].id)) for i in range(6)]
        rounds = generate_team_americano_rounds(teams, players, 2)
        assert_no_double_booking(rounds)
        assert all(1 <= len(r.matches) <= 2 for r in rounds)
        members = {t.members: t.id for t in teams}
        meetings = Counter(
            frozenset((members[frozenset(m.team1)], members[frozenset(m.team2)]))
            for rnd in rounds for m in rnd.matches
        )
        assert len(meetings) == 15
        assert set(meetings.values()) == {1}

    def test_odd_team_count_gets_a_bye(self):
        players = build_players(6)
        teams = [Team(id=f"t{i}", player_ids=(players[2 * i].id, players[2 * i + 1].id)) for i in range(3)]
        rounds = generate_team_americano_rounds(teams, players, 1)
        assert len(rounds) == 3
        assert all(len(r.matches) == 1 and len(r.resting) == 2 for r in rounds)

    def test_player_in_two_teams_rejected(self, eight_players):
        teams = [Team(id="t1", player_ids=("p1", "p2")), Team(id="t2", player_ids=("p2", "p3"))]
        with pytest.raises(ValidationError, match="both team"):
            validate_teams(teams, eight_players, 1)

    def test_player_without_team_rejected(self, eight_players, four_teams):
        with pytest.raises(ValidationError, match="without a team"):
            generate_team_americano_rounds(four_teams[:3], eight_players, 2)

    def test_unknown_team_player_rejected(self, eight_players, four_teams):
        four_teams[0] = Team(id="t1", player_ids=("p1", "stranger"))
        with pytest.raises(ValidationError, match="unknown player"):
            generate_team_americano_rounds(four_teams, eight_players, 2)


class TestNextRound:
    """Tests for generate_americano_next_round."""

    def test_first_round_without_history(self, eight_players):
        rnd = generate_americano_next_round(eight_players, [], 2)
        assert rnd.number == 1
        assert len(rnd.matches) == 2
        assert_no_double_booking([rnd])

    def test_avoids_repeating_a_partnership(self):
        players = [Player(id=pid, name=pid) for pid in "ABCDEFGH"]
        history = [
            Round(number=1, matches=[build_match(1, 1, "AB", "CD", (10, 6)), build_match(1, 2, "EF", "GH", (8, 8))]),
            Round(number=2, matches=[build_match(2, 1, "AC", "EG", (7, 9)), build_match(2, 2, "BD", "FH", (12, 4))]),
            Round(number=3, matches=[build_match(3, 1, "AB", "EH", (11, 5)), build_match(3, 2, "CF", "DG", (6, 10))]),
            Round(number=4, matches=[build_match(4, 1, "AD", "BF", (9, 9)), build_match(4, 2, "CE", "GH", (13, 3))]),
        ]
        rnd = generate_americano_next_round(players, history, 2)
        assert rnd.number == 5
        partners = {frozenset(side) for m in rnd.matches for side in (m.team1, m.team2)}
        assert frozenset("AB") not in partners
        # nobody is paired with someone they already partnered if it can be avoided
        before = partner_counts(history)
        assert all(before[pair] == 0 for pair in partners)

    def test_resting_rotates(self):
        players = build_players(10)
        rounds = []
        for _ in range(5):
            rounds.append(generate_americano_next_round(players, rounds, 2))
        assert_no_double_booking(rounds)
        rests = rest_counts(rounds, players)
        assert set(rests.values()) == {1}

    def test_open_ended_run_covers_every_partnership(self):
        players = build_players(8)
        rounds = []
        for _ in range(14):
            rounds.append(generate_americano_next_round(players, rounds, 1))
        counts = partner_counts(rounds)
        assert all(counts[frozenset((a.id, b.id))] == 1 for a, b in combinations(players, 2))
        assert set(rest_counts(rounds, players).values()) == {7}

    def test_team_rule_keeps_teams_together(self, eight_players, four_teams):
        rule = team_rule(four_teams)
        rounds = []
        for _ in range(4):
            rounds.append(generate_americano_next_round(eight_players, rounds, 2, rule))
        allowed = {t.members for t in four_teams}
        for rnd in rounds:
            for m in rnd.matches:
                assert frozenset(m.team1) in allowed
                assert frozenset(m.team2) in allowed

    def test_mixed_rule(self, mixed_players):
        sex = {p.id: p.sex for p in mixed_players}
        rnd = generate_americano_next_round(mixed_players, [], 2, mixed_rule(mixed_players))
        for m in rnd.matches:
            assert {sex[pid] for pid in m.team1} == {"M", "F"}

    def test_history_counts(self):
        rounds = [Round(number=1, matches=[build_match(1, 1, "AB", "CD")])]
        history = PairHistory.from_rounds(list("ABCDE"), rounds)
        assert history.partners[frozenset("AB")] == 1
        assert history.opponents[frozenset("AC")] == 1
        assert history.rested["E"] == 1
        assert history.played["A"] == 1


class TestFitToTotal:
    """Tests for fit_to_total."""

    def test_cuts_long_schedule(self, eight_players):
        rounds = fit_to_total(generate_americano_rounds(eight_players, 2), eight_players, 2, 3)
        assert [r.number for r in rounds] == [1, 2, 3]

    def test_extends_short_schedule(self, eight_players):
        rounds = fit_to_total(generate_americano_rounds(eight_players, 2), eight_players, 2, 10)
        assert [r.number for r in rounds] == list(range(1, 11))
        assert_no_double_booking(rounds)

    def test_rejects_zero(self, eight_players):
        with pytest.raises(ValidationError):
            fit_to_total([], eight_players, 2, 0)
