# backend/models.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class KeypointIn(BaseModel):
    # coordinates and scores must be finite
    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float
    score: float = Field(0.0, ge=0.0, le=1.0)
    name: Optional[str] = None


class PoseIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    keypoints: List[KeypointIn]
    timestamp: Optional[float] = None


# ---------- Sessions ----------

class SessionCreate(BaseModel):
    exercise_type: str = "pushups"
    voice_feedback: bool = True


class ExerciseSelect(BaseModel):
    exercise_type: str


class FramesIn(BaseModel):
    poses: List[PoseIn] = []  # zero or more; only the first is used


class SessionState(BaseModel):
    session_id: str
    exercise_type: str
    phase: str
    rep_count: int
    is_back_straight: bool
    warning_already_given: bool
    voice_feedback_enabled: bool
    frames: int


class FeedbackEventOut(BaseModel):
    message: str
    kind: str
    spoken: bool


class FrameResultOut(BaseModel):
    skipped: bool = False
    phase: str
    rep_count: int
    is_back_straight: bool
    warning_already_given: bool
    elbow_angle: Optional[float] = None
    back_angle: Optional[float] = None
    form_score: Optional[float] = None
    coaching: Optional[str] = None
    events: List[FeedbackEventOut] = []


# ---------- Workouts ----------

class FormQuality(BaseModel):
    back_straightness: float = 0.0
    elbow_angle: float = 0.0
    posture_alerts: int = 0
    voice_feedback_enabled: bool = True


class WorkoutIn(BaseModel):
    exercise_type: str
    duration: int = Field(..., ge=0)  # seconds
    reps: int = 0
    calories: int = 0
    avg_form_score: float = 0.0
    poses: List[PoseIn] = []
    feedback: List[str] = []
    form_quality: FormQuality = FormQuality()
    completed: bool = False


class WorkoutOut(WorkoutIn):
    id: str
    date: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class WorkoutPage(BaseModel):
    workouts: List[WorkoutOut]
    pagination: Pagination


class WorkoutStats(BaseModel):
    total_workouts: int = 0
    total_duration: int = 0
    total_reps: int = 0
    total_calories: int = 0
    avg_form_score: float = 0.0


# ---------- Analysis ----------

class AnalyzeRequest(BaseModel):
    poses: List[PoseIn]
    exercise_type: str = "pushups"


class AnalyzeResponse(BaseModel):
    form_score: float
    feedback: List[str]
    suggestions: List[str]
    corrected: bool = False
