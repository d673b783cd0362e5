# client/rep_demo.py

import asyncio
import logging
import time
from typing import Optional

import cv2
import requests

from poseai import config
from poseai.client.estimator import MediaPipePoseEstimator, PoseModelUnavailable
from poseai.client.feedback import FeedbackEmitter, LoggingTextSink, Pyttsx3Speaker
from poseai.client.rep_logic import FeedbackEvent
from poseai.client.session import ExerciseKind, FrameResult, TickLoop, WorkoutSession

logger = logging.getLogger(__name__)

WINDOW_NAME = "PoseAI - Rep Counter"

# ---------- Exercise options ----------
EXERCISE_OPTIONS = {
    "1": ExerciseKind.PUSHUPS,
    "2": ExerciseKind.SQUATS,
    "3": ExerciseKind.JUMPING_JACKS,
    "4": ExerciseKind.PLANK,
}


def choose_exercise() -> ExerciseKind:
    print("Select exercise to track:")
    print("  1. Pushups")
    print("  2. Squats")
    print("  3. Jumping Jacks")
    print("  4. Plank")
    choice = input("Enter 1, 2, 3, or 4: ").strip()
    exercise = EXERCISE_OPTIONS.get(choice, ExerciseKind.PUSHUPS)
    print(f"\nYou selected: {exercise.value}\n")
    return exercise


def upload_workout(record: dict) -> bool:
    """POST the finished workout; failures are logged, never raised."""
    try:
        resp = requests.post(
            f"{config.BACKEND_URL}/api/workouts",
            json=record,
            timeout=config.UPLOAD_TIMEOUT,
        )
        if resp.status_code == 201:
            logger.info("Workout saved (%d reps)", record["reps"])
            return True
        logger.warning("Backend error saving workout: %s %s", resp.status_code, resp.text)
    except requests.RequestException as e:
        logger.warning("Could not reach backend: %s", e)
    return False


class Overlay:
    """Latest text shown on the video window."""

    def __init__(self):
        self.message: str = ""
        self.status: str = ""

    def on_event(self, event: FeedbackEvent) -> None:
        self.message = event.message

    def draw(self, image, session: WorkoutSession, result: Optional[FrameResult]):
        cv2.putText(image,
                    f"Exercise: {session.exercise.value}",
                    (20, 30),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.7,
                    (200, 255, 200),
                    2)
        cv2.putText(image,
                    f"Reps: {session.rep_state.rep_count}",
                    (20, 65),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.9,
                    (0, 255, 0),
                    2)
        if result is not None:
            cv2.putText(image,
                        f"Form: {round(result.form_score)}%",
                        (20, 100),
                        cv2.FONT_HERSHEY_SIMPLEX,
                        0.7,
                        (0, 255, 255),
                        2)
        else:
            cv2.putText(image,
                        "Loading, please wait...",
                        (20, 100),
                        cv2.FONT_HERSHEY_SIMPLEX,
                        0.7,
                        (0, 0, 255),
                        2)

        text = self.message or self.status
        if text:
            cv2.putText(image,
                        text,
                        (20, image.shape[0] - 30),
                        cv2.FONT_HERSHEY_SIMPLEX,
                        0.7,
                        (0, 200, 255),
                        2)


def countdown(cap, seconds: int) -> bool:
    """Show a countdown on the live feed. False if the user quit."""
    print(f"Get into position... starting in {seconds} seconds.")
    start = time.time()
    while True:
        ret, frame = cap.read()
        if not ret:
            return False

        remaining = seconds - int(time.time() - start)
        if remaining <= 0:
            print("Go! Tracking reps now.")
            return True

        cv2.putText(frame,
                    f"Get ready: {remaining}",
                    (60, 100),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    1.2,
                    (0, 255, 255),
                    3)
        cv2.imshow(WINDOW_NAME, frame)
        if cv2.waitKey(1) & 0xFF == ord('q'):
            return False


def main():
    config.configure_logging()

    # 1) Choose exercise
    exercise = choose_exercise()

    # 2) Load pose model
    try:
        estimator = MediaPipePoseEstimator()
    except PoseModelUnavailable as e:
        logger.error("AI model loading failed: %s", e)
        print("AI model loading failed. Rep tracking is unavailable.")
        return

    # 3) Start camera
    cap = cv2.VideoCapture(config.CAMERA_INDEX)
    if not cap.isOpened():
        logger.error("Could not open camera %d", config.CAMERA_INDEX)
        print("Camera access denied. Please check camera permissions.")
        estimator.close()
        return

    # 4) Session + feedback sinks
    overlay = Overlay()
    text_sink = LoggingTextSink()

    def show_event(event: FeedbackEvent):
        text_sink(event)
        overlay.on_event(event)

    emitter = FeedbackEmitter(
        text_sink=show_event,
        speech_sink=Pyttsx3Speaker(),
        voice_enabled=config.VOICE_FEEDBACK,
    )
    session = WorkoutSession(exercise.value, emitter=emitter)
    overlay.status = "Camera started! Position yourself in frame and begin exercising."

    latest = {"image": None}

    def read_image():
        ret, image = cap.read()
        if not ret:
            return None
        latest["image"] = image
        return image

    loop = TickLoop(session, estimator, read_image)

    def on_result(result: Optional[FrameResult]):
        display = latest["image"].copy()
        overlay.draw(display, session, result)
        cv2.imshow(WINDOW_NAME, display)

        key = cv2.waitKey(1) & 0xFF
        if key == ord('q'):
            loop.stop()
        elif key == ord('r'):
            session.reset_session()
            overlay.message = "Workout reset. Ready to start!"

    loop.on_result = on_result

    try:
        # 5) Countdown, then track
        if countdown(cap, config.COUNTDOWN_SECONDS):
            session.started_at = session.clock()
            asyncio.run(loop.run())
    finally:
        loop.stop()
        cap.release()
        cv2.destroyAllWindows()
        estimator.close()

    record = session.to_record()
    print(f"Workout finished: {record['reps']} reps in {record['duration']}s")
    if session.frames:
        upload_workout(record)


if __name__ == "__main__":
    main()
