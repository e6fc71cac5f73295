import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from padel_mixer import config
from padel_mixer.americano.router import router as americano_router
from padel_mixer.database import TournamentStore, get_store
from padel_mixer.exceptions import TournamentStateError, ValidationError
from padel_mixer.mexicano.router import router as mexicano_router
from padel_mixer.stats import build_leaderboard, player_profile

logger = logging.getLogger(__name__)

config.configure_logging()

app = FastAPI(title="Padel Mixer")
app.include_router(americano_router)
app.include_router(mexicano_router)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(TournamentStateError)
async def state_error_handler(request: Request, exc: TournamentStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# Routes

@app.get("/tournaments")
async def list_tournaments(store: TournamentStore = Depends(get_store)):
    rows = sorted(store.all(), key=lambda t: t.updated_at, reverse=True)
    return [
        {"id": t.id, "name": t.name, "format": t.format.value, "status": t.status.value,
         "current_round": t.current_round, "updated_at": t.updated_at}
        for t in rows
    ]


@app.get("/leaderboard")
async def leaderboard(
    period: str = "overall",
    official: bool = False,
    store: TournamentStore = Depends(get_store),
):
    return [entry.as_dict() for entry in build_leaderboard(store.all(), period, official)]


@app.get("/player/{user_id}")
async def player(user_id: str, store: TournamentStore = Depends(get_store)):
    return player_profile(store.all(), user_id).as_dict()
