# client/estimator.py

import logging
import os
os.environ['TF_CPP_MIN_LOG_LEVEL'] = '3'

import cv2
from typing import List

from poseai.client.keypoints import Frame, frame_from_landmarks

logger = logging.getLogger(__name__)


class PoseModelUnavailable(RuntimeError):
    """The pose model could not be loaded."""


class MediaPipePoseEstimator:
    """
    Pose collaborator backed by MediaPipe Pose.

    estimate() takes a BGR frame from OpenCV and returns zero or one Frame.
    """

    def __init__(self, model_complexity: int = 1, min_confidence: float = 0.5):
        try:
            import mediapipe as mp
            self.pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=model_complexity,
                enable_segmentation=False,
                min_detection_confidence=min_confidence,
                min_tracking_confidence=min_confidence,
            )
        except Exception as e:
            raise PoseModelUnavailable(f"pose model failed to load: {e}") from e
        logger.info("MediaPipe pose model loaded (complexity=%d)", model_complexity)

    def estimate(self, frame_bgr) -> List[Frame]:
        h, w, _ = frame_bgr.shape
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = self.pose.process(rgb)

        if not results.pose_landmarks:
            return []
        return [frame_from_landmarks(results.pose_landmarks.landmark, w, h)]

    def close(self) -> None:
        self.pose.close()
