import logging
from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from padel_mixer import config
from padel_mixer.americano.models import (
    FEMALE, MALE, Match, Player, Round, Team, match_id,
)
from padel_mixer.exceptions import ValidationError

logger = logging.getLogger(__name__)

Side = Tuple[str, str]
# (cost, side1, side2) for one court
Group = Tuple[tuple, Side, Side]

# Rounds with more matches than this keep their greedy seating
MAX_RESEAT_COURTS = 5


# -- Validation ----------------------------------------------------------------

def validate_courts(courts: int) -> None:
    if isinstance(courts, bool) or not isinstance(courts, int) or courts < 1:
        raise ValidationError("at least one court is required", field="courts")


def validate_roster(players: Sequence[Player]) -> None:
    if len(players) < 4:
        raise ValidationError(
            f"at least 4 players are required, got {len(players)}", field="players"
        )
    ids = [p.id for p in players]
    if len(set(ids)) != len(ids):
        dupes = sorted(pid for pid, n in Counter(ids).items() if n > 1)
        raise ValidationError(f"duplicate player ids: {', '.join(dupes)}", field="players")


def validate_americano(players: Sequence[Player], courts: int) -> None:
    validate_courts(courts)
    validate_roster(players)
    if len(players) % 4:
        raise ValidationError(
            f"player count must be a multiple of 4, got {len(players)}", field="players"
        )


def validate_mixed(players: Sequence[Player], courts: int) -> None:
    validate_americano(players, courts)
    unknown = [p.name for p in players if p.sex not in (MALE, FEMALE)]
    if unknown:
        raise ValidationError(
            f"players without a gender for mixed play: {', '.join(unknown)}", field="players"
        )
    men = sum(1 for p in players if p.sex == MALE)
    women = len(players) - men
    if men != women:
        raise ValidationError(
            f"mixed play needs as many men as women, got {men} M and {women} F",
            field="players",
        )


def validate_teams(teams: Sequence[Team], players: Sequence[Player], courts: int) -> None:
    validate_courts(courts)
    validate_roster(players)
    if len(teams) < 2:
        raise ValidationError(f"at least 2 teams are required, got {len(teams)}", field="teams")
    roster = {p.id for p in players}
    owner: Dict[str, str] = {}
    team_ids = set()
    for team in teams:
        if team.id in team_ids:
            raise ValidationError(f"duplicate team id {team.id}", field="teams")
        team_ids.add(team.id)
        for pid in team.player_ids:
            if pid not in roster:
                raise ValidationError(f"team {team.id} has unknown player {pid}", field="teams")
            if pid in owner:
                raise ValidationError(
                    f"player {pid} is in both team {owner[pid]} and team {team.id}",
                    field="teams",
                )
            owner[pid] = team.id
    loose = [p.name for p in players if p.id not in owner]
    if loose:
        raise ValidationError(f"players without a team: {', '.join(loose)}", field="teams")


def playing_courts(units: int, courts: int, per_court: int = 4) -> int:
    """Courts that can actually be filled with ``units`` players (or teams)."""
    used = min(courts, units // per_court)
    if used < courts:
        logger.debug("Only %d of %d courts can be filled", used, courts)
    return used


# -- Round robins ----------------------------------------------------------------

def _circle_pairs(ids: Sequence) -> List[List[tuple]]:
    """Polygon round robin: every id meets every other id exactly once."""
    fixed, rest = ids[0], list(ids[1:])
    n = len(ids)
    rounds = []
    for r in range(n - 1):
        line = [fixed] + rest[r:] + rest[:r]
        rounds.append([(line[i], line[n - 1 - i]) for i in range(n // 2)])
    return rounds


def _round_robin_pairs(ids: Sequence) -> List[List[tuple]]:
    """Circle rounds for any count; with an odd count one id sits out each round."""
    padded = list(ids) + [None] * (len(ids) % 2)
    return [[pair for pair in rnd if None not in pair] for rnd in _circle_pairs(padded)]


def _latin_pairs(men: Sequence[str], women: Sequence[str]) -> List[List[Side]]:
    """Every man with every woman, one rotation per round."""
    if not men or len(men) != len(women):
        return []
    m = len(men)
    return [[(men[i], women[(i + r) % m]) for i in range(m)] for r in range(m)]


# -- Pairing rules ---------------------------------------------------------------

@dataclass(frozen=True)
class PairingRule:
    """Who may share a side, which players rest together, and which
    partnerships a full cycle has to cover (as rounds of disjoint pairs)."""
    can_partner: Callable[[str, str], bool] = lambda a, b: a != b
    quota_key: Callable[[str], Optional[str]] = lambda pid: None
    bound: Callable[[str], Tuple[str, ...]] = lambda pid: (pid,)
    matchings: Callable[[Sequence[str]], List[List[Side]]] = lambda ids: _round_robin_pairs(ids)


def open_rule() -> PairingRule:
    return PairingRule()


def mixed_rule(players: Sequence[Player]) -> PairingRule:
    sex = {p.id: p.sex for p in players}
    men = [p.id for p in players if p.sex == MALE]
    women = [p.id for p in players if p.sex == FEMALE]
    return PairingRule(
        can_partner=lambda a, b: sex[a] != sex[b],
        quota_key=lambda pid: sex[pid],
        matchings=lambda ids: _latin_pairs(men, women),
    )


def team_rule(teams: Sequence[Team]) -> PairingRule:
    members = {pid: team.player_ids for team in teams for pid in team.player_ids}
    return PairingRule(
        can_partner=lambda a, b: a != b and b in members[a],
        bound=lambda pid: members[pid],
        matchings=lambda ids: [],
    )


# -- History -----------------------------------------------------------------------

@dataclass
class PairHistory:
    """How often each pair partnered or faced each other, and who rested."""
    player_ids: List[str]
    partners: Counter = field(default_factory=Counter)
    opponents: Counter = field(default_factory=Counter)
    played: Counter = field(default_factory=Counter)
    rested: Counter = field(default_factory=Counter)

    @classmethod
    def from_rounds(cls, player_ids: Sequence[str], rounds: Iterable[Round]) -> "PairHistory":
        history = cls(list(player_ids))
        for rnd in rounds:
            history.add_round(rnd)
        return history

    def add_round(self, rnd: Round) -> None:
        playing = set()
        for m in rnd.matches:
            for side in (m.team1, m.team2):
                for a, b in combinations(side, 2):
                    self.partners[frozenset((a, b))] += 1
                playing.update(side)
            for a in m.team1:
                for b in m.team2:
                    self.opponents[frozenset((a, b))] += 1
        self.note_playing(playing)

    def note_playing(self, playing: Set[str]) -> None:
        for pid in self.player_ids:
            if pid in playing:
                self.played[pid] += 1
            else:
                self.rested[pid] += 1


def _rest_key(history: PairHistory, playing: Set[str]) -> list:
    """(rests, -matches) of everyone sitting out, largest first. Lower is fairer."""
    return sorted(
        ((history.rested[pid], -history.played[pid])
         for pid in history.player_ids if pid not in playing),
        reverse=True,
    )


def _match_cost(history: PairHistory, side1: Side, side2: Side) -> tuple:
    partner = [history.partners[frozenset(side1)], history.partners[frozenset(side2)]]
    opp = [history.opponents[frozenset((a, b))] for a in side1 for b in side2]
    return (max(partner), sum(partner), max(opp), sum(opp))


def _round_cost(costs: Sequence[tuple]) -> tuple:
    if not costs:
        return (0, 0, 0, 0)
    return (
        max(c[0] for c in costs),
        sum(c[1] for c in costs),
        max(c[2] for c in costs),
        sum(c[3] for c in costs),
    )


# -- Incremental core ----------------------------------------------------------------

def _pick_active(
    ids: Sequence[str], history: PairHistory, slots: int, rule: PairingRule
) -> Tuple[List[str], List[str]]:
    """Choose who plays: most rested first, then fewest matches, then roster order."""
    order = sorted(
        range(len(ids)),
        key=lambda i: (-history.rested[ids[i]], history.played[ids[i]], i),
    )
    limit = slots // max(1, len({rule.quota_key(pid) for pid in ids}))
    taken: Set[str] = set()
    per_key: Counter = Counter()
    for i in order:
        pid = ids[i]
        if pid in taken:
            continue
        unit = rule.bound(pid)
        if len(taken) + len(unit) > slots:
            continue
        keys = Counter(rule.quota_key(u) for u in unit)
        if any(per_key[k] + n > limit for k, n in keys.items()):
            continue
        taken.update(unit)
        per_key.update(keys)
        if len(taken) == slots:
            break
    active = [pid for pid in ids if pid in taken]
    resting = [pid for pid in ids if pid not in taken]
    return active, resting


def _splits(group: Sequence[str]) -> List[Tuple[Side, Side]]:
    a, b, c, d = group
    return [((a, b), (c, d)), ((a, c), (b, d)), ((a, d), (b, c))]


def _best_split(group: Sequence[str], history: PairHistory, rule: PairingRule) -> Optional[Group]:
    best = None
    for side1, side2 in _splits(group):
        if not (rule.can_partner(*side1) and rule.can_partner(*side2)):
            continue
        cost = _match_cost(history, side1, side2)
        if best is None or cost < best[0]:
            best = (cost, side1, side2)
    return best


def _greedy_groups(active: Sequence[str], history: PairHistory, rule: PairingRule) -> List[Group]:
    pool = list(active)
    groups: List[Group] = []
    while pool:
        anchor, rest = pool[0], pool[1:]
        best = None
        for trio in combinations(rest, 3):
            found = _best_split((anchor,) + trio, history, rule)
            if found is not None and (best is None or found[0] < best[0]):
                best = found
        if best is None:
            raise ValidationError("players can not be grouped into valid matches", field="players")
        groups.append(best)
        seated = set(best[1]) | set(best[2])
        pool = [pid for pid in pool if pid not in seated]
    return groups


def _improve(groups: List[Group], history: PairHistory, rule: PairingRule) -> List[Group]:
    """Swap players between courts while the round cost keeps dropping."""
    for _ in range(config.IMPROVEMENT_PASSES):
        current = _round_cost([g[0] for g in groups])
        better = None
        for i, j in combinations(range(len(groups)), 2):
            left = groups[i][1] + groups[i][2]
            right = groups[j][1] + groups[j][2]
            for a in range(4):
                for b in range(4):
                    g1, g2 = list(left), list(right)
                    g1[a], g2[b] = right[b], left[a]
                    s1 = _best_split(g1, history, rule)
                    s2 = _best_split(g2, history, rule)
                    if s1 is None or s2 is None:
                        continue
                    trial = list(groups)
                    trial[i], trial[j] = s1, s2
                    if _round_cost([g[0] for g in trial]) < current:
                        better = trial
                        break
                if better:
                    break
            if better:
                break
        if better is None:
            break
        groups = better
    return groups


def _round_key(history: PairHistory, rnd: Round, planned: bool) -> tuple:
    playing = {pid for m in rnd.matches for pid in m.player_ids}
    pmax, psum, omax, osum = _round_cost(
        [_match_cost(history, tuple(m.team1), tuple(m.team2)) for m in rnd.matches]
    )
    return (_rest_key(history, playing), pmax, psum, not planned, omax, osum)


def _next_round(
    ids: Sequence[str],
    history: PairHistory,
    courts: int,
    rule: PairingRule,
    number: int,
    plan: Sequence[Round] = (),
) -> Round:
    """Best of a freshly grouped round and the rounds of the full cycle.

    A planned round wins ties on resting and partnerships, so a history
    that follows the cycle keeps following it.
    """
    used = playing_courts(len(ids), courts)
    active, resting = _pick_active(ids, history, used * 4, rule)
    groups = _improve(_greedy_groups(active, history, rule), history, rule)
    matches = [
        Match(id=match_id(number, court), round=number, court=court,
              team1=list(side1), team2=list(side2))
        for court, (_, side1, side2) in enumerate(groups, start=1)
    ]
    best = Round(number=number, matches=matches, resting=resting)
    best_key = _round_key(history, best, planned=False)
    for rnd in plan:
        key = _round_key(history, rnd, planned=True)
        if key < best_key:
            best, best_key = rnd.renumbered(number), key
    logger.debug(
        "Round %d cost %s, resting: %s",
        number, best_key[1:], ", ".join(best.resting) or "-",
    )
    return best


def generate_americano_next_round(
    players: Sequence[Player],
    prior_rounds: Sequence[Round],
    courts: int,
    rule: PairingRule = None,
) -> Round:
    """Generate just the next round from the history of all previous rounds.

    Players who rested most (then played least) get the courts; groups are
    built to repeat partnerships as little as possible, then oppositions.
    Rounds of the full cycle for this roster compete with the fresh grouping,
    so an open-ended run still covers every partnership.
    """
    validate_courts(courts)
    validate_roster(players)
    rule = rule or open_rule()
    ids = [p.id for p in players]
    history = PairHistory.from_rounds(ids, prior_rounds)
    plan = _planned_rounds(ids, courts, rule)
    return _next_round(ids, history, courts, rule, len(prior_rounds) + 1, plan)


# -- Full schedules -------------------------------------------------------------------

def _alternating_path(longer: List[Side], shorter: List[Side]) -> List[Side]:
    """Pairs of a path alternating between two matchings, first and last from ``longer``."""
    at = (
        {pid: pair for pair in longer for pid in pair},
        {pid: pair for pair in shorter for pid in pair},
    )
    for start in longer:
        for pid in start:
            if pid in at[1]:
                continue
            path: List[Side] = []
            while pid in at[len(path) % 2]:
                pair = at[len(path) % 2][pid]
                path.append(pair)
                pid = pair[1] if pair[0] == pid else pair[0]
            if len(path) % 2:
                return path
    raise ValueError("matchings are already balanced")


def _even_out(matchings: List[List[Side]], size: int) -> List[List[Side]]:
    """Regroup disjoint-pair rounds into rounds of exactly ``size`` pairs.

    The pair total must be a multiple of ``size``. Two matchings of unequal
    length always share a path that starts and ends in the longer one;
    swapping sides along it moves one pair across and keeps both disjoint.
    """
    classes = [list(m) for m in matchings]
    total = sum(len(c) for c in classes)
    classes += [[] for _ in range(total // size - len(classes))]
    while True:
        big = max(range(len(classes)), key=lambda i: (len(classes[i]), -i))
        if len(classes[big]) <= size:
            return classes
        small = min(range(len(classes)), key=lambda i: (len(classes[i]), i))
        for n, pair in enumerate(_alternating_path(classes[big], classes[small])):
            src, dst = (big, small) if n % 2 == 0 else (small, big)
            classes[src].remove(pair)
            classes[dst].append(pair)


def _planned_rounds(ids: Sequence[str], courts: int, rule: PairingRule) -> List[Round]:
    """One cycle covering every partnership ``rule`` asks for, courts always full.

    When the pair count does not fill the last round, pairs of the first
    rotation come up a second time, so no pair partners more than one time
    above any other. Rounds are ordered so that whoever rested most plays next.
    """
    matchings = [m for m in rule.matchings(ids) if m]
    size = playing_courts(len(ids), courts) * 2
    if not matchings or not size:
        return []
    spare = -sum(len(m) for m in matchings) % size
    if spare:
        matchings.append(list(matchings[0][:spare]))
    remaining = _even_out(matchings, size)

    history = PairHistory(list(ids))
    ordered = []
    while remaining:
        k = min(
            range(len(remaining)),
            key=lambda i: (_rest_key(history, {pid for pair in remaining[i] for pid in pair}), i),
        )
        pairs = remaining.pop(k)
        history.note_playing({pid for pair in pairs for pid in pair})
        ordered.append(pairs)
    return _rounds_from_pairs(ordered, ids)


def _pairings(sides: Sequence[Side]) -> Iterable[List[Tuple[Side, Side]]]:
    """Every way of matching ``sides`` up against each other."""
    if not sides:
        yield []
        return
    first, rest = sides[0], list(sides[1:])
    for i, second in enumerate(rest):
        for tail in _pairings(rest[:i] + rest[i + 1:]):
            yield [(first, second)] + tail


def _seating_cost(opponents: Counter, seating: Sequence[Tuple[Side, Side]]) -> tuple:
    met = [opponents[frozenset((a, b))] for side1, side2 in seating for a in side1 for b in side2]
    return (max(met), sum(met))


def _count_opponents(opponents: Counter, seating: Sequence[Tuple[Side, Side]], delta: int) -> None:
    for side1, side2 in seating:
        for a in side1:
            for b in side2:
                opponents[frozenset((a, b))] += delta


def _balance_opponents(seatings: List[List[Tuple[Side, Side]]]) -> List[List[Tuple[Side, Side]]]:
    """Re-seat rounds one at a time so pairs face each other as evenly as possible.

    Partnerships are untouched. A round is only re-seated when its own
    (most met, total met) cost drops, so the worst opposition count of the
    whole schedule never grows.
    """
    opponents: Counter = Counter()
    for seating in seatings:
        _count_opponents(opponents, seating, 1)
    seatings = [list(s) for s in seatings]
    for _ in range(config.IMPROVEMENT_PASSES):
        changed = False
        for idx, seating in enumerate(seatings):
            if len(seating) > MAX_RESEAT_COURTS:
                continue
            _count_opponents(opponents, seating, -1)
            best, best_cost = seating, _seating_cost(opponents, seating)
            for candidate in _pairings([side for match in seating for side in match]):
                cost = _seating_cost(opponents, candidate)
                if cost < best_cost:
                    best, best_cost = candidate, cost
            if best is not seating:
                seatings[idx] = best
                changed = True
            _count_opponents(opponents, best, 1)
        if not changed:
            break
    return seatings


def _rounds_from_pairs(pair_rounds: Sequence[Sequence[Side]], ids: Sequence[str]) -> List[Round]:
    """Seat each round's partnerships on courts, facing the least-met pairs."""
    history = PairHistory(list(ids))
    seatings = []
    for pairs in pair_rounds:
        remaining = list(pairs)
        seating = []
        while remaining:
            first = remaining.pop(0)
            k = min(
                range(len(remaining)),
                key=lambda i: (_match_cost(history, first, remaining[i])[2:], i),
            )
            seating.append((first, remaining.pop(k)))
        _count_opponents(history.opponents, seating, 1)
        seatings.append(seating)

    rounds = []
    for number, seating in enumerate(_balance_opponents(seatings), start=1):
        matches = [
            Match(id=match_id(number, court), round=number, court=court,
                  team1=list(side1), team2=list(side2))
            for court, (side1, side2) in enumerate(seating, start=1)
        ]
        playing = {pid for side1, side2 in seating for pid in side1 + side2}
        resting = [pid for pid in ids if pid not in playing]
        rounds.append(Round(number=number, matches=matches, resting=resting))
    return rounds


def generate_americano_rounds(players: Sequence[Player], courts: int) -> List[Round]:
    """Generate Americano rounds where partners and opponents rotate.

    Every pair partners once; when courts are short the surplus rests in
    turn and a few pairs of the first rotation get a second round together.
    """
    validate_americano(players, courts)
    ids = [p.id for p in players]
    rounds = _planned_rounds(ids, courts, open_rule())
    logger.info("Americano: %d players, %d courts, %d rounds", len(ids), courts, len(rounds))
    return rounds


def generate_mixed_americano_rounds(players: Sequence[Player], courts: int) -> List[Round]:
    """Every man partners every woman once; each side is one M and one F."""
    validate_mixed(players, courts)
    ids = [p.id for p in players]
    rounds = _planned_rounds(ids, courts, mixed_rule(players))
    logger.info("Mixed americano: %d players, %d courts, %d rounds", len(ids), courts, len(rounds))
    return rounds


def _pack_matchups(pair_rounds: List[List[tuple]], courts: int) -> List[List[tuple]]:
    """Fit team matchups onto ``courts``, letting teams that rested play first."""
    if all(len(r) <= courts for r in pair_rounds):
        return pair_rounds
    pool = [m for r in pair_rounds for m in r]
    teams = {t for m in pool for t in m}
    rested: Counter = Counter()
    packed = []
    while pool:
        busy: Set[str] = set()
        chosen: List[int] = []
        for idx in sorted(range(len(pool)), key=lambda i: (-(rested[pool[i][0]] + rested[pool[i][1]]), i)):
            a, b = pool[idx]
            if a in busy or b in busy:
                continue
            chosen.append(idx)
            busy.update((a, b))
            if len(chosen) == courts:
                break
        packed.append([pool[i] for i in sorted(chosen)])
        for team in teams - busy:
            rested[team] += 1
        pool = [m for i, m in enumerate(pool) if i not in chosen]
    return packed


def generate_team_americano_rounds(
    teams: Sequence[Team], players: Sequence[Player], courts: int
) -> List[Round]:
    """Round robin among fixed teams; every team meets every other team once."""
    validate_teams(teams, players, courts)
    by_id = {t.id: t for t in teams}
    pair_rounds = _round_robin_pairs([t.id for t in teams])
    rounds = []
    for number, matchups in enumerate(_pack_matchups(pair_rounds, courts), start=1):
        matches = [
            Match(id=match_id(number, court), round=number, court=court,
                  team1=list(by_id[a].player_ids), team2=list(by_id[b].player_ids))
            for court, (a, b) in enumerate(matchups, start=1)
        ]
        playing = {pid for m in matches for pid in m.player_ids}
        resting = [p.id for p in players if p.id not in playing]
        rounds.append(Round(number=number, matches=matches, resting=resting))
    logger.info("Team americano: %d teams, %d courts, %d rounds", len(teams), courts, len(rounds))
    return rounds


def fit_to_total(
    rounds: List[Round],
    players: Sequence[Player],
    courts: int,
    total: int,
    rule: PairingRule = None,
) -> List[Round]:
    """Cut a schedule to ``total`` rounds, or extend it one round at a time."""
    if total < 1:
        raise ValidationError("total rounds must be at least 1", field="total_rounds")
    if len(rounds) >= total:
        return list(rounds[:total])
    rounds = list(rounds)
    ids = [p.id for p in players]
    history = PairHistory.from_rounds(ids, rounds)
    rule = rule or open_rule()
    plan = _planned_rounds(ids, courts, rule)
    while len(rounds) < total:
        rnd = _next_round(ids, history, courts, rule, len(rounds) + 1, plan)
        history.add_round(rnd)
        rounds.append(rnd)
    return rounds
