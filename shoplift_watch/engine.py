"""Per-frame tracking and behavior engine.

One engine instance serves one video stream and is driven synchronously:

1. Detect objects (detector collaborator), optionally poses
2. Split people and valuable items
3. Associate people with tracks
4. Run behavior analyzers over all live tracks
5. Throttle alerts
6. Expire stale tracks
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from loguru import logger

from .behavior import BehaviorAnalyzer, SuspiciousBehavior
from .config import PipelineConfig
from .detection import (
    Detection,
    ObjectDetector,
    ValuableItemCatalog,
    filter_people,
    filter_valuables,
)
from .pose import PersonPose, PoseEstimator
from .throttle import AlertThrottle
from .tracking import TrackStore


@dataclass
class FrameResult:
    detections: List[Detection]
    behaviors: List[SuspiciousBehavior] = field(default_factory=list)

    @property
    def alerts(self) -> List[SuspiciousBehavior]:
        """Behaviors eligible to be logged this cycle."""
        return [b for b in self.behaviors if b.should_log]


class ShopliftingEngine:
    def __init__(
        self,
        cfg: PipelineConfig,
        detector: Optional[ObjectDetector] = None,
        pose_estimator: Optional[PoseEstimator] = None,
    ):
        cfg.validate()
        self.cfg = cfg
        self.detector = detector
        self.pose_estimator = pose_estimator

        self.catalog = ValuableItemCatalog(cfg.detection.valuable_items)
        self.store = TrackStore(cfg.tracking)
        self.analyzer = BehaviorAnalyzer(cfg.behavior)
        self.throttle = AlertThrottle(cfg.alerts)

        self.frame_count = 0
        self.total_alerts = 0
        self.last_poses: List[Optional[PersonPose]] = []
        self._last_pose_frame: Optional[int] = None

        pose_state = "enabled" if pose_estimator is not None else "disabled"
        logger.info(
            f"Engine ready: {len(self.catalog)} valuable classes, pose estimation {pose_state}"
        )

    def process_frame(self, frame: Any, now: Optional[float] = None) -> FrameResult:
        """Run the detector (and pose estimator when due) on a frame, then process it."""
        if self.detector is None:
            raise RuntimeError("No detector configured; use process_detections() instead")

        detections = self.detector.detect(frame)
        people = self._valid_people(detections)

        # Poses are expensive: refresh every N frames, tracks keep their last pose
        poses = None
        if people and self._pose_due():
            self._last_pose_frame = self.frame_count
            try:
                poses = self.pose_estimator.estimate(frame, people)
                self.last_poses = list(poses)
            except Exception:
                # a failed pose pass only costs the posture signal
                logger.exception(f"Pose estimation failed on frame {self.frame_count}")

        return self._process(detections, people, poses, now)

    def _pose_due(self) -> bool:
        if self.pose_estimator is None:
            return False
        if self._last_pose_frame is None:
            return True
        return self.frame_count - self._last_pose_frame >= self.cfg.pose.interval_frames

    def process_detections(
        self,
        detections: Sequence[Detection],
        poses: Optional[Sequence[Optional[PersonPose]]] = None,
        now: Optional[float] = None,
    ) -> FrameResult:
        """Process already-detected objects. ``poses`` is parallel to the person detections."""
        people = self._valid_people(detections)
        return self._process(detections, people, poses, now)

    def _valid_people(self, detections: Sequence[Detection]) -> List[Detection]:
        return filter_people(detections, self.cfg.detection.person_class_id)

    def _process(
        self,
        detections: Sequence[Detection],
        people: List[Detection],
        poses: Optional[Sequence[Optional[PersonPose]]],
        now: Optional[float],
    ) -> FrameResult:
        now = time.time() if now is None else now
        self.frame_count += 1

        valuables = [d for d in filter_valuables(detections, self.catalog) if not d.is_degenerate()]

        self.store.update(people, poses, now)
        behaviors = self.analyzer.analyze(self.store.tracks, valuables, now)
        behaviors = self.throttle.apply(self.store, behaviors, now)
        self.total_alerts += len(behaviors)

        # Expire only after analysis so every behavior refers to a live track
        self.store.expire(now)

        return FrameResult(detections=list(detections), behaviors=behaviors)

    def stats(self) -> dict:
        rate = self.total_alerts / self.frame_count if self.frame_count else 0.0
        return {
            "frames": self.frame_count,
            "tracks": len(self.store),
            "total_alerts": self.total_alerts,
            "alert_rate": round(rate * 100, 2),
        }

    def reset(self) -> None:
        self.store.reset()
        self.last_poses = []
        self._last_pose_frame = None
