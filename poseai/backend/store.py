# backend/store.py
import logging
import math
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from poseai import config
from poseai.backend.models import Pagination, WorkoutIn, WorkoutOut, WorkoutStats
from poseai.client.session import WorkoutSession

logger = logging.getLogger(__name__)

PERIODS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkoutStore:
    """In-memory workout documents, newest first on read."""

    def __init__(self):
        self._lock = threading.Lock()
        self._workouts: List[WorkoutOut] = []

    def add(self, workout: WorkoutIn, date: Optional[datetime] = None) -> WorkoutOut:
        saved = WorkoutOut(
            **workout.model_dump(),
            id=uuid.uuid4().hex,
            date=date or utcnow(),
        )
        with self._lock:
            self._workouts.append(saved)
        return saved

    def page(self, page: int = 1, limit: int = 10) -> Tuple[List[WorkoutOut], Pagination]:
        with self._lock:
            ordered = sorted(self._workouts, key=lambda w: w.date, reverse=True)
        total = len(ordered)
        skip = (page - 1) * limit
        return ordered[skip:skip + limit], Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit),
        )

    def stats(self, period: str = "week", now: Optional[datetime] = None) -> WorkoutStats:
        if period not in PERIODS:
            raise ValueError(f"unknown period {period!r}")
        since = (now or utcnow()) - PERIODS[period]
        with self._lock:
            recent = [w for w in self._workouts if w.date >= since]
        if not recent:
            return WorkoutStats()
        return WorkoutStats(
            total_workouts=len(recent),
            total_duration=sum(w.duration for w in recent),
            total_reps=sum(w.reps for w in recent),
            total_calories=sum(w.calories for w in recent),
            avg_form_score=sum(w.avg_form_score for w in recent) / len(recent),
        )


class SessionRegistry:
    """
    Live WorkoutSessions by id.

    A session untouched for `timeout` seconds is dropped, frame log and all,
    on the next registry access.
    """

    def __init__(self, timeout: float = config.SESSION_TIMEOUT,
                 clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self.clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, WorkoutSession] = {}
        self._last_seen: Dict[str, float] = {}

    def __len__(self) -> int:
        with self._lock:
            self._prune()
            return len(self._sessions)

    def add(self, session: WorkoutSession) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._prune()
            self._sessions[session_id] = session
            self._last_seen[session_id] = self.clock()
        return session_id

    def get(self, session_id: str) -> Optional[WorkoutSession]:
        with self._lock:
            self._prune()
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_seen[session_id] = self.clock()
            return session

    def pop(self, session_id: str) -> Optional[WorkoutSession]:
        with self._lock:
            self._last_seen.pop(session_id, None)
            return self._sessions.pop(session_id, None)

    def _prune(self) -> None:
        cutoff = self.clock() - self.timeout
        for session_id, seen in list(self._last_seen.items()):
            if seen < cutoff:
                del self._last_seen[session_id]
                del self._sessions[session_id]
                logger.info("Session %s expired", session_id)
