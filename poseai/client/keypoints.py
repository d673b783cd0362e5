# client/keypoints.py

import math
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


class InvalidFrameError(ValueError):
    """
    Raised when a frame does not carry the 17 keypoint slots in order, or
    a keypoint has a non-finite coordinate or a score outside [0, 1].
    """


class BodyPoint(IntEnum):
    """17-slot anatomical layout used by MoveNet / COCO."""
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16

    @property
    def label(self) -> str:
        return self.name.lower()


FRAME_SIZE = len(BodyPoint)

# MediaPipe Pose (33 landmarks) -> 17 slots
MEDIAPIPE_INDEX: Dict[BodyPoint, int] = {
    BodyPoint.NOSE: 0,
    BodyPoint.LEFT_EYE: 2,
    BodyPoint.RIGHT_EYE: 5,
    BodyPoint.LEFT_EAR: 7,
    BodyPoint.RIGHT_EAR: 8,
    BodyPoint.LEFT_SHOULDER: 11,
    BodyPoint.RIGHT_SHOULDER: 12,
    BodyPoint.LEFT_ELBOW: 13,
    BodyPoint.RIGHT_ELBOW: 14,
    BodyPoint.LEFT_WRIST: 15,
    BodyPoint.RIGHT_WRIST: 16,
    BodyPoint.LEFT_HIP: 23,
    BodyPoint.RIGHT_HIP: 24,
    BodyPoint.LEFT_KNEE: 25,
    BodyPoint.RIGHT_KNEE: 26,
    BodyPoint.LEFT_ANKLE: 27,
    BodyPoint.RIGHT_ANKLE: 28,
}


@dataclass(frozen=True)
class Keypoint:
    name: BodyPoint
    x: float
    y: float
    score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "score": self.score, "name": self.name.label}


@dataclass(frozen=True)
class Frame:
    """
    One pose: exactly 17 keypoints in BodyPoint order.

    Missing detections are still present, with score 0.
    """
    keypoints: Tuple[Keypoint, ...]
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        kps = tuple(self.keypoints)
        if len(kps) != FRAME_SIZE:
            raise InvalidFrameError(
                f"frame needs {FRAME_SIZE} keypoints, got {len(kps)}"
            )
        for slot, kp in enumerate(kps):
            expected = BodyPoint(slot).label
            if not isinstance(kp.name, BodyPoint) or kp.name != slot:
                raise InvalidFrameError(
                    f"slot {slot} holds {kp.name!r}, expected {expected}"
                )
            if not (math.isfinite(kp.x) and math.isfinite(kp.y)):
                raise InvalidFrameError(
                    f"{expected} has non-finite position ({kp.x}, {kp.y})"
                )
            if not 0.0 <= kp.score <= 1.0:  # also rejects NaN
                raise InvalidFrameError(
                    f"{expected} score {kp.score} outside [0, 1]"
                )
        object.__setattr__(self, "keypoints", kps)

    def __getitem__(self, point: BodyPoint) -> Keypoint:
        return self.keypoints[point]

    @property
    def avg_score(self) -> float:
        return sum(kp.score for kp in self.keypoints) / FRAME_SIZE

    # ---------- builders ----------

    @classmethod
    def from_points(
        cls,
        points: Sequence[Tuple[float, float, float]],
        timestamp: Optional[float] = None,
    ) -> "Frame":
        if len(points) != FRAME_SIZE:
            raise InvalidFrameError(
                f"frame needs {FRAME_SIZE} keypoints, got {len(points)}"
            )
        kps = tuple(
            Keypoint(BodyPoint(i), float(x), float(y), float(score))
            for i, (x, y, score) in enumerate(points)
        )
        if timestamp is None:
            return cls(kps)
        return cls(kps, timestamp)

    @classmethod
    def from_dicts(
        cls,
        keypoints: Iterable[Dict[str, Any]],
        timestamp: Optional[float] = None,
    ) -> "Frame":
        """
        MoveNet-style ``{x, y, score, name?}`` dicts, in slot order.

        A ``name``, when present, must match its slot.
        """
        points = []
        for slot, kp in enumerate(keypoints):
            try:
                points.append((float(kp["x"]), float(kp["y"]), float(kp.get("score", 0.0))))
                name = kp.get("name")
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidFrameError(f"malformed keypoint {kp!r}") from e
            if name is not None and slot < FRAME_SIZE and name != BodyPoint(slot).label:
                raise InvalidFrameError(
                    f"slot {slot} holds {name!r}, expected {BodyPoint(slot).label}"
                )
        return cls.from_points(points, timestamp)

    def to_record(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "keypoints": [kp.to_dict() for kp in self.keypoints],
        }


def frame_from_landmarks(landmarks: Sequence[Any], width: int, height: int,
                         timestamp: Optional[float] = None) -> Frame:
    """
    Map MediaPipe's 33 normalized landmarks to a 17-slot Frame in pixels.
    Landmark visibility is used as the score.
    """
    points: List[Tuple[float, float, float]] = []
    for point in BodyPoint:
        lm = landmarks[MEDIAPIPE_INDEX[point]]
        points.append((lm.x * width, lm.y * height, lm.visibility))
    return Frame.from_points(points, timestamp)
