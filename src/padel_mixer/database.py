"""
In-memory tournament store behind the HTTP routers.

Tournaments are kept as JSON documents and every save replaces the whole
document, so a request always works on its own copy of the tournament.
"""
import logging
from typing import Dict, List, Optional

from padel_mixer.americano.models import Tournament

logger = logging.getLogger(__name__)


class TournamentStore:
    def __init__(self):
        self._documents: Dict[str, str] = {}

    def get(self, tid: str) -> Optional[Tournament]:
        raw = self._documents.get(tid)
        if raw is None:
            return None
        return Tournament.from_json(raw)

    def save(self, tournament: Tournament) -> None:
        self._documents[tournament.id] = tournament.to_json()
        logger.debug("Saved tournament %s", tournament.id)

    def delete(self, tid: str) -> bool:
        return self._documents.pop(tid, None) is not None

    def all(self) -> List[Tournament]:
        return [Tournament.from_json(raw) for raw in self._documents.values()]

    def __contains__(self, tid: str) -> bool:
        return tid in self._documents

    def __len__(self) -> int:
        return len(self._documents)


tournaments_db = TournamentStore()


def get_store() -> TournamentStore:
    return tournaments_db
