from typing import List, Sequence

import pytest

from shoplift_watch.config import BehaviorConfig, PipelineConfig, TrackingConfig
from shoplift_watch.detection import Detection
from shoplift_watch.pose import NUM_KEYPOINTS, Keypoint, PersonPose, PoseKeypoint


def person_at(cx: float, cy: float, w: float = 40, h: float = 100, conf: float = 0.9) -> Detection:
    return Detection(
        class_id=0,
        confidence=conf,
        box=[cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2],
        label="person",
    )


def item_at(cx: float, cy: float, class_id: int = 67, label: str = "cell phone", size: float = 20) -> Detection:
    return Detection(
        class_id=class_id,
        confidence=0.8,
        box=[cx - size / 2, cy - size / 2, cx + size / 2, cy + size / 2],
        label=label,
    )


def make_pose(points: dict, default=(0.0, 0.0), confidence: float = 0.9) -> PersonPose:
    """Pose with every keypoint at ``default`` except those given by Keypoint -> (x, y)."""
    keypoints = [PoseKeypoint(x=default[0], y=default[1], confidence=confidence) for _ in range(NUM_KEYPOINTS)]
    for kp, (x, y) in points.items():
        keypoints[int(kp)] = PoseKeypoint(x=x, y=y, confidence=confidence)
    return PersonPose(keypoints=keypoints, confidence=confidence)


def crouching_pose(wrists_close: bool = True, confidence: float = 0.9) -> PersonPose:
    """Torso 30px tall; wrists 5px from the shoulder center line unless ``wrists_close`` is False."""
    points = {
        Keypoint.LEFT_SHOULDER: (100, 200),
        Keypoint.RIGHT_SHOULDER: (140, 200),
        Keypoint.LEFT_HIP: (100, 230),
        Keypoint.RIGHT_HIP: (140, 230),
    }
    if wrists_close:
        points[Keypoint.LEFT_WRIST] = (115, 220)
        points[Keypoint.RIGHT_WRIST] = (125, 220)
    else:
        points[Keypoint.LEFT_WRIST] = (40, 220)
        points[Keypoint.RIGHT_WRIST] = (200, 220)
    return make_pose(points, default=(120, 150), confidence=confidence)


class ScriptedDetector:
    """Replays a fixed list of per-frame detections."""

    def __init__(self, frames: Sequence[List[Detection]]):
        self.frames = list(frames)
        self.calls = 0

    def detect(self, frame) -> List[Detection]:
        dets = self.frames[self.calls] if self.calls < len(self.frames) else []
        self.calls += 1
        return list(dets)


@pytest.fixture
def tracking_cfg() -> TrackingConfig:
    return TrackingConfig()


@pytest.fixture
def behavior_cfg() -> BehaviorConfig:
    return BehaviorConfig()


@pytest.fixture
def pipeline_cfg(tmp_path) -> PipelineConfig:
    cfg = PipelineConfig()
    cfg.events.log_dir = tmp_path / "logs"
    cfg.events.enable_file_logging = False
    return cfg
