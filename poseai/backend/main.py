# backend/main.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from poseai import __version__, config
from poseai.backend.analysis import analyze_poses
from poseai.backend.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    ExerciseSelect,
    FeedbackEventOut,
    FrameResultOut,
    FramesIn,
    PoseIn,
    SessionCreate,
    SessionState,
    WorkoutIn,
    WorkoutOut,
    WorkoutPage,
    WorkoutStats,
)
from poseai.backend.store import SessionRegistry, WorkoutStore
from poseai.client.feedback import FeedbackEmitter
from poseai.client.keypoints import Frame, InvalidFrameError
from poseai.client.session import FrameResult, WorkoutSession

logger = logging.getLogger(__name__)

app = FastAPI(title="PoseAI Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

workouts = WorkoutStore()

# sync routes run in a threadpool; the registry locks internally
sessions = SessionRegistry(config.SESSION_TIMEOUT)


def _get_session(session_id: str) -> WorkoutSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _to_frame(pose: PoseIn) -> Frame:
    try:
        return Frame.from_dicts(
            [kp.model_dump() for kp in pose.keypoints], pose.timestamp
        )
    except InvalidFrameError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _to_frames(poses: List[PoseIn]) -> List[Frame]:
    return [_to_frame(pose) for pose in poses]


def _session_state(session_id: str, session: WorkoutSession) -> SessionState:
    return SessionState(
        session_id=session_id,
        exercise_type=session.exercise.value,
        phase=session.rep_state.phase.value,
        rep_count=session.rep_state.rep_count,
        is_back_straight=session.posture_state.is_back_straight,
        warning_already_given=session.posture_state.warning_already_given,
        voice_feedback_enabled=session.voice_feedback_enabled,
        frames=len(session.frames),
    )


def _frame_result(session: WorkoutSession, result: Optional[FrameResult] = None) -> FrameResultOut:
    if result is None:
        return FrameResultOut(
            skipped=True,
            phase=session.rep_state.phase.value,
            rep_count=session.rep_state.rep_count,
            is_back_straight=session.posture_state.is_back_straight,
            warning_already_given=session.posture_state.warning_already_given,
        )
    return FrameResultOut(
        phase=result.rep_state.phase.value,
        rep_count=result.rep_state.rep_count,
        is_back_straight=result.posture_state.is_back_straight,
        warning_already_given=result.posture_state.warning_already_given,
        elbow_angle=result.angles.elbow_angle,
        back_angle=result.angles.back_angle,
        form_score=result.form_score,
        coaching=result.coaching,
        events=[
            FeedbackEventOut(message=e.message, kind=e.kind.value, spoken=e.spoken)
            for e in result.events
        ],
    )


@app.get("/api/health")
def health_check():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }


# ---------- Sessions ----------

@app.post("/api/sessions", response_model=SessionState, status_code=201)
def create_session(body: SessionCreate):
    try:
        session = WorkoutSession(
            body.exercise_type,
            emitter=FeedbackEmitter(speech_sink=None, voice_enabled=body.voice_feedback),
        )
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown exercise: {body.exercise_type}")

    session_id = sessions.add(session)
    logger.info("Session %s started (%s)", session_id, session.exercise.value)
    return _session_state(session_id, session)


@app.get("/api/sessions/{session_id}", response_model=SessionState)
def get_session(session_id: str):
    return _session_state(session_id, _get_session(session_id))


@app.post("/api/sessions/{session_id}/frames", response_model=FrameResultOut)
def process_frames(session_id: str, body: FramesIn):
    session = _get_session(session_id)
    frames = _to_frames(body.poses[:1])
    result = session.process_poses(frames)
    return _frame_result(session, result)


@app.post("/api/sessions/{session_id}/reset", response_model=SessionState)
def reset_session(session_id: str):
    session = _get_session(session_id)
    session.reset_session()
    return _session_state(session_id, session)


@app.put("/api/sessions/{session_id}/exercise", response_model=SessionState)
def select_exercise(session_id: str, body: ExerciseSelect):
    session = _get_session(session_id)
    try:
        session.select_exercise(body.exercise_type)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown exercise: {body.exercise_type}")
    return _session_state(session_id, session)


@app.post("/api/sessions/{session_id}/finish", response_model=WorkoutOut, status_code=201)
def finish_session(session_id: str):
    session = _get_session(session_id)
    sessions.pop(session_id)
    saved = workouts.add(WorkoutIn(**session.to_record()))
    logger.info("Session %s finished: %d reps", session_id, saved.reps)
    return saved


@app.delete("/api/sessions/{session_id}", status_code=204)
def delete_session(session_id: str):
    _get_session(session_id)
    sessions.pop(session_id)


# ---------- Workouts ----------

@app.post("/api/workouts", response_model=WorkoutOut, status_code=201)
def save_workout(workout: WorkoutIn):
    return workouts.add(workout)


@app.get("/api/workouts", response_model=WorkoutPage)
def list_workouts(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    items, pagination = workouts.page(page, limit)
    return WorkoutPage(workouts=items, pagination=pagination)


@app.get("/api/workouts/stats", response_model=WorkoutStats)
def workout_stats(period: str = Query("week", pattern="^(week|month|year)$")):
    return workouts.stats(period)


# ---------- Analysis ----------

@app.post("/api/ai/analyze", response_model=AnalyzeResponse)
def analyze(body: AnalyzeRequest):
    frames = _to_frames(body.poses)
    try:
        result = analyze_poses(frames, body.exercise_type)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown exercise: {body.exercise_type}")
    return AnalyzeResponse(**result)


if __name__ == "__main__":
    import uvicorn

    config.configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
