# backend/analysis.py   replays uploaded poses through the rep pipeline

import logging
from typing import Dict, List, Sequence

from poseai.client.feedback import FeedbackEmitter
from poseai.client.keypoints import Frame
from poseai.client.session import ExerciseKind, WorkoutSession

logger = logging.getLogger(__name__)

EXERCISE_FEEDBACK: Dict[ExerciseKind, List[str]] = {
    ExerciseKind.SQUATS: ["Keep your back straight", "Go deeper for better form"],
    ExerciseKind.PUSHUPS: ["Maintain proper alignment", "Full range of motion"],
}

SUGGESTIONS = [
    "Focus on breathing",
    "Maintain steady pace",
    "Rest between sets if needed",
]


def analyze_poses(frames: Sequence[Frame], exercise_type: str) -> Dict:
    """
    Form score and coaching for a recorded set of poses.

    The score is the mean per-frame form score; feedback adds the session's
    own warnings/rep calls to the exercise's standing advice.
    """
    session = WorkoutSession(
        exercise_type,
        emitter=FeedbackEmitter(speech_sink=None, voice_enabled=False),
    )
    scores = [session.process_frame(frame).form_score for frame in frames]

    feedback = list(EXERCISE_FEEDBACK.get(session.exercise, []))
    for message in session.feedback:
        if message not in feedback:
            feedback.append(message)

    form_score = sum(scores) / len(scores) if scores else 0.0
    logger.info(
        "Analyzed %d poses for %s: score=%.1f reps=%d",
        len(frames), session.exercise.value, form_score, session.rep_state.rep_count,
    )
    return {
        "form_score": form_score,
        "feedback": feedback,
        "suggestions": list(SUGGESTIONS),
        "corrected": False,
    }
