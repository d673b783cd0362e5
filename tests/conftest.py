import math

import pytest

from poseai.client.keypoints import BodyPoint, Frame

ELBOW = (200.0, 200.0)
SHOULDER = (200.0, 100.0)   # straight above the elbow
HIP = (200.0, 300.0)        # straight below the shoulder
LIMB = 100.0


def _polar(origin, degrees, length=LIMB):
    rad = math.radians(degrees)
    return origin[0] + length * math.cos(rad), origin[1] + length * math.sin(rad)


def build_frame(elbow=90.0, back=10.0, above_nose=True, score=0.9, scores=None, timestamp=None):
    """
    Frame whose left-side elbow and back angles come out as requested.

    The shoulder sits at -90 degrees from both the elbow and the hip, so the
    wrist/knee are placed at (angle - 90) degrees around their vertex.
    `scores` overrides individual slots: {BodyPoint: score}.
    """
    points = {point: (0.0, 0.0) for point in BodyPoint}
    points[BodyPoint.LEFT_SHOULDER] = SHOULDER
    points[BodyPoint.LEFT_ELBOW] = ELBOW
    points[BodyPoint.LEFT_WRIST] = _polar(ELBOW, elbow - 90.0)
    points[BodyPoint.LEFT_HIP] = HIP
    points[BodyPoint.LEFT_KNEE] = _polar(HIP, back - 90.0)
    # nose lower on screen than the elbow when above_nose is set
    points[BodyPoint.NOSE] = (200.0, 250.0 if above_nose else 150.0)

    scores = scores or {}
    return Frame.from_points(
        [(x, y, scores.get(point, score)) for point, (x, y) in points.items()],
        timestamp,
    )


@pytest.fixture
def make_frame():
    return build_frame


class Recorder:
    def __init__(self):
        self.items = []

    def __call__(self, item):
        self.items.append(item)


@pytest.fixture
def recorder():
    return Recorder
