from fastapi import APIRouter, Depends, HTTPException, Response

from padel_mixer.americano.models import AMERICANO_FORMATS, Tournament
from padel_mixer.database import TournamentStore, get_store
from padel_mixer.engine import create_tournament
from padel_mixer.exceptions import ValidationError
from padel_mixer.lifecycle import (
    add_final_round, advance_round, edit_score, finish_tournament, submit_score,
)
from padel_mixer.schemas import CreateTournamentIn, ScoreIn, tournament_view

router = APIRouter(prefix='/americano', tags=['Americano'])


def _get_tournament(tid: str, store: TournamentStore) -> Tournament:
    result = store.get(tid)
    if not result or result.format not in AMERICANO_FORMATS:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return result


# Routes

@router.post("/tournament/create", status_code=201)
async def create_americano(body: CreateTournamentIn, store: TournamentStore = Depends(get_store)):
    if body.format not in AMERICANO_FORMATS:
        raise ValidationError(f"{body.format.value} is not an americano format", field="format")
    players = body.build_players()
    t = create_tournament(
        body.name, body.format, players, body.courts,
        teams=body.build_teams(players),
        round_mode=body.build_round_mode(),
        scoring_system=body.scoring_system,
        ranking_strategy=body.ranking_strategy,
        is_official=body.is_official,
    )
    store.save(t)
    return tournament_view(t)


@router.head("/tournament/{tid}")
async def americano_head(tid: str, store: TournamentStore = Depends(get_store)):
    _get_tournament(tid, store)
    return Response(status_code=200)


@router.get("/tournament/{tid}")
async def americano_view(tid: str, store: TournamentStore = Depends(get_store)):
    return tournament_view(_get_tournament(tid, store))


@router.post("/tournament/{tid}/score")
async def americano_score(tid: str, body: ScoreIn, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    submit_score(t, body.match_id, body.score1, body.score2)
    store.save(t)
    return tournament_view(t)


@router.post("/tournament/{tid}/edit-score")
async def americano_edit_score(tid: str, body: ScoreIn, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    edit_score(t, body.match_id, body.score1, body.score2)
    store.save(t)
    return tournament_view(t)


@router.post("/tournament/{tid}/next-round")
async def americano_next_round(tid: str, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    advance_round(t)
    store.save(t)
    return tournament_view(t)


@router.post("/tournament/{tid}/final")
async def americano_final(tid: str, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    add_final_round(t)
    store.save(t)
    return tournament_view(t)


@router.post("/tournament/{tid}/finish")
async def americano_finish(tid: str, store: TournamentStore = Depends(get_store)):
    t = _get_tournament(tid, store)
    finish_tournament(t)
    store.save(t)
    return tournament_view(t)


@router.post("/tournament/{tid}/delete")
async def americano_delete(tid: str, store: TournamentStore = Depends(get_store)):
    _get_tournament(tid, store)
    store.delete(tid)
    return {"success": True}
