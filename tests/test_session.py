import asyncio

import pytest

from poseai.client.feedback import FeedbackEmitter
from poseai.client.keypoints import BodyPoint
from poseai.client.pose_utils import INITIAL_ANGLES
from poseai.client.rep_logic import FeedbackKind, Phase, PostureState, RepState
from poseai.client.session import ExerciseKind, TickLoop, WorkoutSession


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def sinks(recorder):
    return recorder(), recorder()


@pytest.fixture
def session(sinks):
    text, speech = sinks
    return WorkoutSession(
        "pushups",
        emitter=FeedbackEmitter(text, speech, voice_enabled=True),
        clock=FakeClock(),
    )


def down(make_frame):
    return make_frame(elbow=85.0, back=10.0, above_nose=True)


def up(make_frame):
    return make_frame(elbow=185.0, back=10.0, above_nose=True)


def test_new_session_is_zeroed(session):
    assert session.rep_state == RepState(Phase.NEUTRAL, 0)
    assert session.posture_state == PostureState(True, False)
    assert session.angles == INITIAL_ANGLES
    assert session.exercise is ExerciseKind.PUSHUPS


def test_pushup_scenario(session, sinks, make_frame):
    text, speech = sinks

    assert session.process_frame(down(make_frame)).rep_state == RepState(Phase.DOWN, 0)
    assert session.process_frame(up(make_frame)).rep_state == RepState(Phase.UP, 1)
    result = session.process_frame(down(make_frame))
    assert result.rep_state == RepState(Phase.DOWN, 1)
    assert session.process_frame(up(make_frame)).rep_state == RepState(Phase.UP, 2)

    assert speech.items == ["1", "Up", "2"]
    assert len(text.items) == 4 + 3  # good posture per frame + rep calls
    assert session.feedback == ["1", "Up", "2"]
    assert len(session.frames) == 4


def test_low_confidence_frames_keep_angles(session, make_frame):
    session.process_frame(make_frame(elbow=120.0, back=90.0))
    before = session.angles
    for _ in range(3):
        result = session.process_frame(make_frame(elbow=185.0, back=10.0, score=0.05))
        assert result.angles.elbow_angle == before.elbow_angle
        assert result.angles.back_angle == before.back_angle


def test_stale_bad_back_keeps_blocking_down(session, make_frame):
    session.process_frame(make_frame(elbow=185.0, back=90.0))
    # knee lost: the back angle stays at 90 even though the pose looks straight
    result = session.process_frame(
        make_frame(elbow=85.0, back=10.0, scores={BodyPoint.LEFT_KNEE: 0.0})
    )
    assert not result.posture_state.is_back_straight
    assert result.rep_state.phase is Phase.UP


def test_warning_logged_once_per_run(session, sinks, make_frame):
    _, speech = sinks
    for _ in range(5):
        session.process_frame(make_frame(back=90.0))
    session.process_frame(make_frame(back=10.0))
    session.process_frame(make_frame(back=90.0))

    assert speech.items == ["Keep your back straight"] * 2
    assert session.to_record()["form_quality"]["posture_alerts"] == 2


def test_reset_is_idempotent(session, make_frame):
    session.process_frame(down(make_frame))
    session.process_frame(up(make_frame))
    session.process_frame(make_frame(back=90.0))

    session.reset_session()
    once = (session.rep_state, session.posture_state, session.angles)
    session.reset_session()
    twice = (session.rep_state, session.posture_state, session.angles)

    assert once == twice == (RepState(), PostureState(), INITIAL_ANGLES)
    # logs are kept for persistence
    assert len(session.frames) == 3


def test_select_exercise_resets(session, make_frame):
    session.process_frame(down(make_frame))
    session.process_frame(up(make_frame))

    session.select_exercise("squats")

    assert session.exercise is ExerciseKind.SQUATS
    assert session.rep_state == RepState()


def test_other_exercises_share_rep_rules(session, make_frame):
    session.select_exercise("plank")
    session.process_frame(down(make_frame))
    result = session.process_frame(up(make_frame))
    assert result.rep_state.rep_count == 1
    assert result.coaching == "Hold that plank position"


def test_unknown_exercise_is_rejected(session):
    with pytest.raises(ValueError):
        session.select_exercise("burpees")
    with pytest.raises(ValueError):
        WorkoutSession("burpees")


def test_voice_toggle(session, sinks, make_frame):
    _, speech = sinks
    session.set_voice_feedback(False)
    session.process_frame(make_frame(back=90.0))
    assert speech.items == []
    assert not session.voice_feedback_enabled


def test_missing_pose_skips_tick(session, make_frame):
    session.process_frame(down(make_frame))
    state = (session.rep_state, session.posture_state, session.angles)

    assert session.process_poses([]) is None
    assert (session.rep_state, session.posture_state, session.angles) == state
    assert len(session.frames) == 1


def test_process_poses_uses_first_pose(session, make_frame):
    session.process_frame(down(make_frame))
    result = session.process_poses([up(make_frame), down(make_frame)])
    assert result.rep_state == RepState(Phase.UP, 1)


def test_form_score_and_coaching(session, make_frame):
    result = session.process_frame(make_frame(elbow=185.0, back=10.0, score=0.8))
    assert result.form_score == pytest.approx(90.0)
    assert result.coaching == "Good up position"

    result = session.process_frame(make_frame(elbow=85.0, back=90.0, score=0.5))
    assert result.form_score == pytest.approx(30.0)
    assert result.coaching == "Keep your back straight"

    result = session.process_frame(make_frame(elbow=185.0, back=10.0, score=1.0))
    assert result.form_score == 100.0


def test_workout_record(session, make_frame):
    session.process_frame(down(make_frame))
    session.process_frame(up(make_frame))
    session.process_frame(make_frame(elbow=185.0, back=90.0))
    session.process_frame(make_frame(elbow=185.0, score=0.0))
    session.clock.now += 130

    record = session.to_record()

    assert record["exercise_type"] == "pushups"
    assert record["duration"] == 130
    assert record["calories"] == 13
    assert record["reps"] == 1
    assert record["completed"] is True
    assert record["feedback"] == ["1", "Keep your back straight"]
    assert len(record["poses"]) == 4
    assert len(record["poses"][0]["keypoints"]) == 17

    quality = record["form_quality"]
    # the last frame's back angle is stale (still bad)
    assert quality["back_straightness"] == pytest.approx(50.0)
    assert quality["elbow_angle"] == pytest.approx((85.0 + 185.0 + 185.0) / 3)
    assert quality["posture_alerts"] == 1
    assert quality["voice_feedback_enabled"] is True


def test_empty_record(session):
    record = session.to_record(completed=False)
    assert record["reps"] == 0
    assert record["avg_form_score"] == 0.0
    assert record["form_quality"]["back_straightness"] == 0.0
    assert record["completed"] is False


def test_events_are_emitted_in_order(session, sinks, make_frame):
    text, _ = sinks
    session.process_frame(down(make_frame))
    session.process_frame(up(make_frame))
    kinds = [e.kind for e in text.items]
    assert kinds == [FeedbackKind.GOOD, FeedbackKind.GOOD, FeedbackKind.INFO]


# ---------- tick loop ----------

class FakeEstimator:
    def __init__(self, script):
        self.script = list(script)
        self.calls = 0

    def estimate(self, image):
        self.calls += 1
        return self.script.pop(0)


def test_tick_loop_runs_until_source_ends(session, make_frame):
    script = [[down(make_frame)], [], [up(make_frame)]]
    estimator = FakeEstimator(script)
    images = iter(["img1", "img2", "img3"])
    results = []

    loop = TickLoop(session, estimator, lambda: next(images, None), on_result=results.append)
    asyncio.run(loop.run())

    assert estimator.calls == 3
    assert loop.ticks == 3
    assert loop.stopped
    assert results[1] is None
    assert session.rep_state == RepState(Phase.UP, 1)


def test_stop_prevents_further_ticks(session, make_frame):
    estimator = FakeEstimator([[down(make_frame)]] * 10)
    loop = TickLoop(session, estimator, lambda: "img")

    def stop_after_first(result):
        loop.stop()

    loop.on_result = stop_after_first
    asyncio.run(loop.run())

    assert estimator.calls == 1
    assert len(session.frames) == 1


def test_result_arriving_after_stop_is_dropped(session, make_frame):
    loop = None

    class StoppingEstimator:
        def estimate(self, image):
            loop.stop()  # stop lands while inference is in flight
            return [down(make_frame)]

    loop = TickLoop(session, StoppingEstimator(), lambda: "img")
    asyncio.run(loop.run())

    assert session.frames == []
    assert session.rep_state == RepState()
    assert loop.ticks == 0
