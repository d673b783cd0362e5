# poseai/config.py

import os
import logging

import dotenv
dotenv.load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


BACKEND_URL = os.getenv("POSEAI_BACKEND_URL", "http://127.0.0.1:8000")
UPLOAD_TIMEOUT = float(os.getenv("POSEAI_UPLOAD_TIMEOUT", "2.0"))
SESSION_TIMEOUT = int(os.getenv("POSEAI_SESSION_TIMEOUT", "3600"))  # idle backend sessions

CAMERA_INDEX = int(os.getenv("POSEAI_CAMERA_INDEX", "0"))
COUNTDOWN_SECONDS = int(os.getenv("POSEAI_COUNTDOWN_SECONDS", "5"))

TTS_RATE = int(os.getenv("POSEAI_TTS_RATE", "165"))
VOICE_FEEDBACK = _env_bool("POSEAI_VOICE_FEEDBACK", True)

LOG_LEVEL = os.getenv("POSEAI_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Entry points call this once; library modules only get loggers."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
