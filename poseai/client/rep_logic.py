# client/rep_logic.py

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from poseai.client.pose_utils import AngleSample


class Phase(str, Enum):
    NEUTRAL = "neutral"
    UP = "up"
    DOWN = "down"


class FeedbackKind(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class FeedbackEvent:
    message: str
    kind: FeedbackKind
    spoken: bool = False


@dataclass(frozen=True)
class PostureState:
    is_back_straight: bool = True
    warning_already_given: bool = False


@dataclass(frozen=True)
class RepState:
    phase: Phase = Phase.NEUTRAL
    rep_count: int = 0


# ----------------- Thresholds -----------------
STRAIGHT_BACK_MAX = 20.0      # back angle below this is straight
STRAIGHT_BACK_MIN = 160.0     # ... or above this
UP_WINDOW = (170.0, 200.0)    # raw elbow angle, arm extended
DOWN_WINDOW = (70.0, 100.0)   # |elbow angle|, arm bent

GOOD_POSTURE_MESSAGE = "Good posture!"
BACK_WARNING_MESSAGE = "Keep your back straight"
DOWN_REACHED_MESSAGE = "Up"


def is_back_straight(back_angle: float) -> bool:
    return back_angle < STRAIGHT_BACK_MAX or back_angle > STRAIGHT_BACK_MIN


def in_up_position(elbow_angle: float) -> bool:
    low, high = UP_WINDOW
    return low < elbow_angle < high


def in_down_position(elbow_angle: float) -> bool:
    low, high = DOWN_WINDOW
    return low < abs(elbow_angle) < high


# -------------------------------------------------------------
# Posture
# -------------------------------------------------------------

def evaluate_posture(
    sample: AngleSample,
    previous: PostureState,
) -> Tuple[PostureState, Optional[FeedbackEvent]]:
    """
    Classify the back and decide on posture feedback.

    "Good posture!" goes out on every straight frame. The spoken warning is
    edge-triggered: once per run of bad frames, re-armed by a straight frame.
    """
    if is_back_straight(sample.back_angle):
        return (
            PostureState(is_back_straight=True, warning_already_given=False),
            FeedbackEvent(GOOD_POSTURE_MESSAGE, FeedbackKind.GOOD),
        )

    if previous.warning_already_given:
        return PostureState(is_back_straight=False, warning_already_given=True), None

    return (
        PostureState(is_back_straight=False, warning_already_given=True),
        FeedbackEvent(BACK_WARNING_MESSAGE, FeedbackKind.WARNING, spoken=True),
    )


# -------------------------------------------------------------
# Rep counting
# -------------------------------------------------------------

def update_rep_state(
    state: RepState,
    elbow_angle: float,
    back_straight: bool,
    elbow_above_nose: bool,
) -> Tuple[RepState, List[FeedbackEvent]]:
    """
    Two-position hysteresis: a rep counts only on the Down -> Up edge.

    Both checks run every frame, up first. When both match, the down check
    runs last and its phase wins.
    """
    events: List[FeedbackEvent] = []

    if in_up_position(elbow_angle):
        if state.phase is Phase.DOWN:
            state = replace(state, rep_count=state.rep_count + 1)
            events.append(FeedbackEvent(str(state.rep_count), FeedbackKind.INFO, spoken=True))
        state = replace(state, phase=Phase.UP)

    if back_straight and elbow_above_nose and in_down_position(elbow_angle):
        if state.phase is Phase.UP:
            # announced when the bottom is reached, telling the user to push up
            events.append(FeedbackEvent(DOWN_REACHED_MESSAGE, FeedbackKind.INFO, spoken=True))
        state = replace(state, phase=Phase.DOWN)

    return state, events


def step(
    rep: RepState,
    posture: PostureState,
    sample: AngleSample,
    elbow_above_nose: bool,
) -> Tuple[RepState, PostureState, List[FeedbackEvent]]:
    """One frame of posture evaluation followed by rep counting."""
    posture, posture_event = evaluate_posture(sample, posture)
    events: List[FeedbackEvent] = [posture_event] if posture_event else []

    rep, rep_events = update_rep_state(
        rep, sample.elbow_angle, posture.is_back_straight, elbow_above_nose
    )
    events.extend(rep_events)
    return rep, posture, events
