"""Round generation and standings for social padel tournaments."""
from padel_mixer.americano.models import (
    FixedRounds,
    Match,
    MatchStatus,
    Player,
    RankingStrategy,
    Round,
    ScoringSystem,
    Team,
    Tournament,
    TournamentFormat,
    TournamentStatus,
    UnlimitedRounds,
)
from padel_mixer.engine import (
    build_initial_rounds,
    create_tournament,
    final_round,
    final_round_for,
    final_team_round,
    next_adaptive_round,
    next_incremental_round,
    next_round,
    standings,
    team_standings,
)
from padel_mixer.exceptions import (
    PadelMixerError,
    ScoreError,
    TournamentStateError,
    ValidationError,
)
from padel_mixer.lifecycle import (
    add_final_round,
    advance_round,
    edit_score,
    finish_tournament,
    submit_score,
)

__version__ = "0.1.0"
