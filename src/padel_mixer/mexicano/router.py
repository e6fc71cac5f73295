from fastapi import APIRouter, Depends, HTTPException, Response

from padel_mixer.americano.models import ADAPTIVE_FORMATS, Tournament, TournamentFormat
from padel_mixer.database import TournamentStore, get_store
from padel_mixer.engine import create_tournament
from padel_mixer.exceptions import ValidationError
from padel_mixer.lifecycle import (
    add_final_round, advance_round, edit_score, finish_tournament, submit_score,
)
from padel_mixer.schemas import CreateTournamentIn, ScoreIn, tournament_view

router = APIRouter(prefix='/mexicano', tags=['Mexicano'])

# -- Helpers -------------------------------------------------------------------

def _get_tournament(tid: str, store: TournamentStore) -> Tournament:
    result = store.get(tid)
    if not result or result.format not in ADAPTIVE_FORMATS:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return result


# Routes

@router.post("/create", status_code=201)
async def create_mexicano(body: CreateTournamentIn, store: TournamentStore = Depends(get_store)):
    # americano is the schema default, a plain mexicano is meant here
    fmt = TournamentFormat.MEXICANO if body.format == TournamentFormat.AMERICANO else body.format
    if fmt not in ADAPTIVE_FORMATS:
        raise ValidationError(f"{fmt.value} is not a mexicano format", field="format")
    players = body.build_players()
    t = create_tournament(
        body.name, fmt, players, body.courts,
        teams=body.build_teams(players),
        round_mode=body.build_round_mode(),
        scoring_system=body.scoring_system,
        ranking_strategy=body.ranking_strategy,
        is_official=body.is_official,
    )
    store.save(t)
    return tournament_view(t)


@router.head("/{tid}")
async def mexicano_head(tid: str, store: TournamentStore = Depends(get_store)):
    _get_tournament(tid, store)
    return Response(status_code=200)


@router.get("/{tid}")
async def mexicano_view(tid: str, store: TournamentStore = Depends(get_store)):
    return tournament_view(_get_tournament(tid, store))


@router.post("/{tid}/score")
async def mexicano_score(tid: str, body: ScoreIn, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    submit_score(t, body.match_id, body.score1, body.score2)
    store.save(t)
    return tournament_view(t)


@router.post("/{tid}/next-round")
async def mexicano_next_round(tid: str, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    # standings are recomputed from the stored matches inside advance_round
    advance_round(t)
    store.save(t)
    return tournament_view(t)


@router.post("/{tid}/final")
async def mexicano_final(tid: str, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    add_final_round(t)
    store.save(t)
    return tournament_view(t)


@router.post("/{tid}/finish")
async def mexicano_finish(tid: str, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    finish_tournament(t)
    store.save(t)
    return tournament_view(t)


@router.post("/{tid}/delete")
async def mexicano_delete(tid: str, store: TournamentStore = Depends(get_store)):
    _get_tournament(tid, store)
    store.delete(tid)
    return {"success": True}


@router.post("/{tid}/edit-score")
async def mexicano_edit_score(tid: str, body: ScoreIn, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    edit_score(t, body.match_id, body.score1, body.score2)
    store.save(t)
    return tournament_view(t)
