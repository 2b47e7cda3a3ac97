"""Centroid tracker for people.

Detections are matched greedily, one at a time in arrival order, to the
track whose last centroid is nearest and closer than the proximity
threshold. This is not a global assignment: two people crossing within the
threshold can swap identities.
"""
from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .config import TrackingConfig
from .detection import Detection
from .pose import PersonPose

Point = Tuple[float, float]


def bbox_center(box: np.ndarray) -> Point:
    """Get center point of a bounding box."""
    x1, y1, x2, y2 = box
    return float((x1 + x2) / 2), float((y1 + y2) / 2)


def distance(p1: Point, p2: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


@dataclass
class TrackedPerson:
    track_id: int
    first_seen: float
    last_seen: float
    positions: Deque[Point]
    poses: Deque[PersonPose]

    # Pose from the latest refresh; None when that refresh found none
    current_pose: Optional[PersonPose] = None

    # Movement alert cooldown
    last_movement_alert: Optional[float] = None

    # Throttle state, keyed by behavior type
    behavior_last_seen: Dict[str, float] = field(default_factory=dict)
    behavior_last_logged: Dict[str, float] = field(default_factory=dict)
    behavior_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def last_position(self) -> Optional[Point]:
        return self.positions[-1] if self.positions else None

    @property
    def last_pose(self) -> Optional[PersonPose]:
        return self.current_pose

    def dwell_time(self, now: float) -> float:
        return now - self.first_seen


class TrackStore:
    """Owns every live TrackedPerson of one video stream."""

    def __init__(self, cfg: TrackingConfig):
        self.cfg = cfg
        self._tracks: Dict[int, TrackedPerson] = {}
        self._next_id = 1
        logger.info(
            f"Track store ready (proximity {cfg.proximity_threshold_px}px, "
            f"timeout {cfg.tracker_timeout_s}s, capacity {cfg.max_tracked_people})"
        )

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[TrackedPerson]:
        return iter(list(self._tracks.values()))

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._tracks

    @property
    def tracks(self) -> List[TrackedPerson]:
        return list(self._tracks.values())

    def get(self, track_id: int) -> Optional[TrackedPerson]:
        return self._tracks.get(track_id)

    def update(
        self,
        people: Sequence[Detection],
        poses: Optional[Sequence[Optional[PersonPose]]] = None,
        now: Optional[float] = None,
    ) -> List[int]:
        """Associate this frame's person detections with tracks.

        ``poses`` is optional and parallel to ``people``. When given, it
        replaces each matched track's current pose (``None`` clears it); when
        omitted, tracks keep the pose from the last refresh. Returns the track
        id each detection was assigned to, skipping detections that were
        dropped.
        """
        now = time.time() if now is None else now
        assigned: List[int] = []

        for idx, det in enumerate(people):
            if det.is_degenerate():
                logger.debug(f"Skipping degenerate person box {det.box.tolist()}")
                continue

            center = det.center
            pose = poses[idx] if poses is not None and idx < len(poses) else None

            track = self._find_nearest(center)
            if track is None:
                track = self._create(now)
                if track is None:
                    continue
            track.positions.append(center)
            track.last_seen = now
            # poses given means a fresh pose pass: an empty slot clears the old pose
            if poses is not None:
                track.current_pose = pose
                if pose is not None:
                    track.poses.append(pose)
            assigned.append(track.track_id)

        return assigned

    def _find_nearest(self, center: Point) -> Optional[TrackedPerson]:
        best: Optional[TrackedPerson] = None
        best_dist = self.cfg.proximity_threshold_px
        for track in self._tracks.values():
            last = track.last_position
            if last is None:
                continue
            dist = distance(center, last)
            # strict: ties keep the earlier track
            if dist < best_dist:
                best_dist = dist
                best = track
        return best

    def _create(self, now: float) -> Optional[TrackedPerson]:
        if len(self._tracks) >= self.cfg.max_tracked_people:
            if self.cfg.capacity_policy == "reject":
                logger.warning(
                    f"Track capacity ({self.cfg.max_tracked_people}) reached, ignoring new person"
                )
                return None
            oldest = min(self._tracks.values(), key=lambda t: t.last_seen)
            del self._tracks[oldest.track_id]
            logger.warning(
                f"Track capacity ({self.cfg.max_tracked_people}) reached, "
                f"evicted track {oldest.track_id}"
            )

        track_id = self._next_id
        self._next_id += 1
        history = self.cfg.max_position_history
        track = TrackedPerson(
            track_id=track_id,
            first_seen=now,
            last_seen=now,
            positions=deque(maxlen=history),
            poses=deque(maxlen=history),
        )
        self._tracks[track_id] = track
        logger.debug(f"New track {track_id}")
        return track

    def expire(self, now: Optional[float] = None) -> List[int]:
        """Remove tracks unseen for longer than the timeout; return their ids."""
        now = time.time() if now is None else now
        stale = [
            tid for tid, track in self._tracks.items()
            if now - track.last_seen > self.cfg.tracker_timeout_s
        ]
        for tid in stale:
            del self._tracks[tid]
        if stale:
            logger.debug(f"Expired tracks {stale}")
        return stale

    def reset(self) -> None:
        """Drop all tracks. Identifiers keep increasing."""
        self._tracks.clear()
