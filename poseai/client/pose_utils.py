# client/pose_utils.py

from dataclasses import dataclass

import numpy as np

from poseai.client.keypoints import BodyPoint, Frame, Keypoint

CONFIDENCE_THRESHOLD = 0.3


@dataclass(frozen=True)
class AngleSample:
    elbow_angle: float = 999.0
    back_angle: float = 0.0
    confident_elbow: bool = False
    confident_back: bool = False


INITIAL_ANGLES = AngleSample()


def joint_angle(a: Keypoint, vertex: Keypoint, c: Keypoint) -> float:
    """
    Signed angle (degrees) at `vertex` from the vertex->c ray to the vertex->a ray.

    Raw atan2 difference, so the result lies in (-360, 360).
    """
    angle = (
        np.arctan2(a.y - vertex.y, a.x - vertex.x)
        - np.arctan2(c.y - vertex.y, c.x - vertex.x)
    )
    return float(np.degrees(angle))


def is_confident(*keypoints: Keypoint) -> bool:
    return all(kp.score > CONFIDENCE_THRESHOLD for kp in keypoints)


def elbow_angle(frame: Frame) -> float:
    return joint_angle(
        frame[BodyPoint.LEFT_WRIST],
        frame[BodyPoint.LEFT_ELBOW],
        frame[BodyPoint.LEFT_SHOULDER],
    )


def back_angle(frame: Frame) -> float:
    """Torso-to-thigh angle at the left hip, folded into [0, 180)."""
    angle = joint_angle(
        frame[BodyPoint.LEFT_KNEE],
        frame[BodyPoint.LEFT_HIP],
        frame[BodyPoint.LEFT_SHOULDER],
    )
    return angle % 180.0


def elbow_above_nose(frame: Frame) -> bool:
    # screen y grows downward: true when the nose sits lower than the elbow
    return frame[BodyPoint.NOSE].y > frame[BodyPoint.LEFT_ELBOW].y


def extract_angles(frame: Frame, previous: AngleSample = INITIAL_ANGLES) -> AngleSample:
    """
    Elbow and back angles for this frame, left side only.

    An angle whose three keypoints are not all above CONFIDENCE_THRESHOLD
    keeps the value from `previous`.
    """
    confident_elbow = is_confident(
        frame[BodyPoint.LEFT_WRIST],
        frame[BodyPoint.LEFT_ELBOW],
        frame[BodyPoint.LEFT_SHOULDER],
    )
    confident_back = is_confident(
        frame[BodyPoint.LEFT_KNEE],
        frame[BodyPoint.LEFT_HIP],
        frame[BodyPoint.LEFT_SHOULDER],
    )

    return AngleSample(
        elbow_angle=elbow_angle(frame) if confident_elbow else previous.elbow_angle,
        back_angle=back_angle(frame) if confident_back else previous.back_angle,
        confident_elbow=confident_elbow,
        confident_back=confident_back,
    )
