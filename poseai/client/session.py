# client/session.py

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import numpy as np

from poseai.client.feedback import FeedbackEmitter
from poseai.client.keypoints import Frame
from poseai.client.pose_utils import (
    INITIAL_ANGLES,
    AngleSample,
    elbow_above_nose,
    extract_angles,
)
from poseai.client.rep_logic import (
    FeedbackEvent,
    FeedbackKind,
    PostureState,
    RepState,
    step,
)

logger = logging.getLogger(__name__)


class ExerciseKind(str, Enum):
    PUSHUPS = "pushups"
    SQUATS = "squats"
    JUMPING_JACKS = "jumping-jacks"
    PLANK = "plank"


# ----------------- Per-exercise coaching text -----------------
# Only pushups look at the angles; everything else gets a fixed line.
EXERCISE_COACHING: Dict[ExerciseKind, str] = {
    ExerciseKind.SQUATS: "Maintain good squat form",
    ExerciseKind.JUMPING_JACKS: "Keep jumping rhythm",
    ExerciseKind.PLANK: "Hold that plank position",
}

CALORIES_PER_SECOND = 0.1
BAD_BACK_PENALTY = 20.0
UP_POSITION_BONUS = 10.0


@dataclass
class FrameResult:
    rep_state: RepState
    posture_state: PostureState
    events: List[FeedbackEvent]
    angles: AngleSample
    form_score: float
    coaching: Optional[str] = None


def form_score(frame: Frame, angles: AngleSample, posture: PostureState,
               exercise: ExerciseKind) -> float:
    score = frame.avg_score * 100.0
    if exercise is ExerciseKind.PUSHUPS:
        if not posture.is_back_straight:
            score -= BAD_BACK_PENALTY
        if 160 < angles.elbow_angle < 200:
            score += UP_POSITION_BONUS
    return max(0.0, min(100.0, score))


def coaching_text(angles: AngleSample, posture: PostureState,
                  exercise: ExerciseKind) -> Optional[str]:
    if exercise is not ExerciseKind.PUSHUPS:
        return EXERCISE_COACHING.get(exercise)

    lines = []
    if not posture.is_back_straight:
        lines.append("Keep your back straight")
    if 160 < angles.elbow_angle < 200:
        lines.append("Good up position")
    return ". ".join(lines) or None


class WorkoutSession:
    """
    One active workout: owns rep/posture state and the frame/feedback logs.

    All state changes go through process_frame, reset_session and
    select_exercise, called from a single loop.
    """

    def __init__(
        self,
        exercise: str = ExerciseKind.PUSHUPS.value,
        emitter: Optional[FeedbackEmitter] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.exercise = ExerciseKind(exercise)
        self.emitter = emitter or FeedbackEmitter(speech_sink=None)
        self.clock = clock
        self.started_at = clock()

        self.frames: List[Frame] = []
        self.feedback: List[str] = []

        self._frames_processed = 0
        self._straight_frames = 0
        self._posture_alerts = 0
        self._elbow_angles: List[float] = []
        self._form_scores: List[float] = []

        self.reset_session()

    # ---------- state ----------

    def reset_session(self) -> None:
        self.rep_state = RepState()
        self.posture_state = PostureState()
        self.angles = INITIAL_ANGLES

    def select_exercise(self, kind: str) -> None:
        self.exercise = ExerciseKind(kind)
        self.reset_session()
        logger.info("Exercise selected: %s", self.exercise.value)

    def set_voice_feedback(self, enabled: bool) -> None:
        self.emitter.voice_enabled = enabled

    @property
    def voice_feedback_enabled(self) -> bool:
        return self.emitter.voice_enabled

    # ---------- per-frame ----------

    def process_frame(self, frame: Frame) -> FrameResult:
        self.frames.append(frame)

        angles = extract_angles(frame, self.angles)
        rep, posture, events = step(
            self.rep_state, self.posture_state, angles, elbow_above_nose(frame)
        )
        self.angles, self.rep_state, self.posture_state = angles, rep, posture

        self.emitter.emit(events)
        self._record(angles, posture, events)

        score = form_score(frame, angles, posture, self.exercise)
        self._form_scores.append(score)

        logger.debug(
            "phase=%s reps=%d elbow=%.1f back=%.1f",
            rep.phase.value, rep.rep_count, angles.elbow_angle, angles.back_angle,
        )
        return FrameResult(
            rep_state=rep,
            posture_state=posture,
            events=events,
            angles=angles,
            form_score=score,
            coaching=coaching_text(angles, posture, self.exercise),
        )

    def process_poses(self, poses: Sequence[Frame]) -> Optional[FrameResult]:
        """First pose only. No pose means the tick is skipped entirely."""
        if not poses:
            return None
        return self.process_frame(poses[0])

    def _record(self, angles: AngleSample, posture: PostureState,
                events: List[FeedbackEvent]) -> None:
        self._frames_processed += 1
        if posture.is_back_straight:
            self._straight_frames += 1
        if angles.confident_elbow:
            self._elbow_angles.append(angles.elbow_angle)
        for event in events:
            if event.kind is FeedbackKind.GOOD:
                continue
            if event.kind is FeedbackKind.WARNING:
                self._posture_alerts += 1
            self.feedback.append(event.message)

    # ---------- summary ----------

    @property
    def elapsed_seconds(self) -> int:
        return int(self.clock() - self.started_at)

    def to_record(self, completed: bool = True) -> Dict[str, Any]:
        """Workout document in the shape the backend stores."""
        duration = self.elapsed_seconds
        processed = self._frames_processed
        return {
            "exercise_type": self.exercise.value,
            "duration": duration,
            "reps": self.rep_state.rep_count,
            "calories": round(duration * CALORIES_PER_SECOND),
            "avg_form_score": float(np.mean(self._form_scores)) if self._form_scores else 0.0,
            "poses": [frame.to_record() for frame in self.frames],
            "feedback": list(self.feedback),
            "form_quality": {
                "back_straightness": 100.0 * self._straight_frames / processed if processed else 0.0,
                "elbow_angle": float(np.mean(self._elbow_angles)) if self._elbow_angles else 0.0,
                "posture_alerts": self._posture_alerts,
                "voice_feedback_enabled": self.voice_feedback_enabled,
            },
            "completed": completed,
        }


# -------------------------------------------------------------
# Frame loop
# -------------------------------------------------------------

class PoseEstimator(Protocol):
    def estimate(self, image: Any) -> List[Frame]:
        ...


class TickLoop:
    """
    Self-paced frame loop: read, await estimation, process, repeat.

    Estimation runs off the event loop thread, so slow inference simply
    slows the tick rate. After stop(), a late estimation result is dropped.
    """

    def __init__(
        self,
        session: WorkoutSession,
        estimator: PoseEstimator,
        read_image: Callable[[], Any],
        on_result: Optional[Callable[[Optional[FrameResult]], None]] = None,
    ):
        self.session = session
        self.estimator = estimator
        self.read_image = read_image
        self.on_result = on_result
        self.ticks = 0
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        self._stopped = True

    async def tick(self) -> bool:
        """One frame. Returns False when the loop should end."""
        if self._stopped:
            return False

        image = self.read_image()
        if image is None:
            logger.info("Frame source exhausted")
            self.stop()
            return False

        poses = await asyncio.to_thread(self.estimator.estimate, image)
        if self._stopped:
            return False

        result = self.session.process_poses(poses)
        self.ticks += 1
        if self.on_result is not None:
            self.on_result(result)
        return True

    async def run(self) -> None:
        while await self.tick():
            await asyncio.sleep(0)
