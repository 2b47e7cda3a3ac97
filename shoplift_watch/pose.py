"""Pose records in the 17-point COCO layout."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, List, Optional, Protocol, Sequence

import numpy as np

from .detection import Detection


class Keypoint(IntEnum):
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


NUM_KEYPOINTS = len(Keypoint)

SKELETON = (
    # Arms
    (Keypoint.LEFT_SHOULDER, Keypoint.RIGHT_SHOULDER),
    (Keypoint.LEFT_SHOULDER, Keypoint.LEFT_ELBOW),
    (Keypoint.LEFT_ELBOW, Keypoint.LEFT_WRIST),
    (Keypoint.RIGHT_SHOULDER, Keypoint.RIGHT_ELBOW),
    (Keypoint.RIGHT_ELBOW, Keypoint.RIGHT_WRIST),
    # Torso
    (Keypoint.LEFT_SHOULDER, Keypoint.LEFT_HIP),
    (Keypoint.RIGHT_SHOULDER, Keypoint.RIGHT_HIP),
    (Keypoint.LEFT_HIP, Keypoint.RIGHT_HIP),
    # Legs
    (Keypoint.LEFT_HIP, Keypoint.LEFT_KNEE),
    (Keypoint.LEFT_KNEE, Keypoint.LEFT_ANKLE),
    (Keypoint.RIGHT_HIP, Keypoint.RIGHT_KNEE),
    (Keypoint.RIGHT_KNEE, Keypoint.RIGHT_ANKLE),
    # Head
    (Keypoint.NOSE, Keypoint.LEFT_EYE),
    (Keypoint.NOSE, Keypoint.RIGHT_EYE),
    (Keypoint.LEFT_EYE, Keypoint.LEFT_EAR),
    (Keypoint.RIGHT_EYE, Keypoint.RIGHT_EAR),
)


@dataclass
class PoseKeypoint:
    x: float
    y: float
    confidence: float


@dataclass
class PersonPose:
    keypoints: List[PoseKeypoint] = field(default_factory=list)
    confidence: float = 0.0
    box: Optional[np.ndarray] = None  # xyxy of the person the pose belongs to

    @property
    def is_complete(self) -> bool:
        return len(self.keypoints) >= NUM_KEYPOINTS

    def keypoint(self, kp: Keypoint) -> PoseKeypoint:
        return self.keypoints[int(kp)]

    @classmethod
    def from_array(cls, xy: np.ndarray, conf: np.ndarray, box: Optional[np.ndarray] = None) -> "PersonPose":
        """Build from (17, 2) coordinates and (17,) confidences."""
        keypoints = [
            PoseKeypoint(x=float(x), y=float(y), confidence=float(c))
            for (x, y), c in zip(xy, conf)
        ]
        visible = [kp.confidence for kp in keypoints if kp.confidence > 0.5]
        avg_conf = float(np.mean(visible)) if visible else 0.0
        return cls(keypoints=keypoints, confidence=avg_conf, box=box)


class PoseEstimator(Protocol):
    def estimate(self, frame: Any, people: Sequence[Detection]) -> List[Optional[PersonPose]]:
        """Return one entry per person detection, None where no pose was found."""
        ...
