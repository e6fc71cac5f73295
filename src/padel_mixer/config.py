import logging
import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("PADEL_LOG_LEVEL", "WARNING")
RANKING_STRATEGY = os.getenv("PADEL_RANKING_STRATEGY", "points")
SCORING_SYSTEM = os.getenv("PADEL_SCORING_SYSTEM", "points")

# Upper bound on swap passes when polishing a generated round
IMPROVEMENT_PASSES = int(os.getenv("PADEL_IMPROVEMENT_PASSES", "50"))

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = None) -> None:
    """Attach a stream handler to the package logger at ``PADEL_LOG_LEVEL``."""
    logger = logging.getLogger("padel_mixer")
    logger.setLevel((level or LOG_LEVEL).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
