"""Heuristic behavior analyzers.

Each analyzer reads one track's history plus the current frame context and
returns zero or more SuspiciousBehavior records. Only the movement analyzer
writes back to the track (its alert cooldown timestamp).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

import numpy as np
from loguru import logger

from .config import BehaviorConfig
from .detection import Detection
from .pose import Keypoint, PersonPose
from .tracking import Point, TrackedPerson, distance


class BehaviorType(str, Enum):
    LOITERING = "LOITERING"
    VALUABLE_PROXIMITY = "VALUABLE_PROXIMITY"
    SUSPICIOUS_MOVEMENT = "SUSPICIOUS_MOVEMENT"
    SUSPICIOUS_POSE = "SUSPICIOUS_POSE"


@dataclass
class SuspiciousBehavior:
    type: BehaviorType
    confidence: float
    description: str
    detail: str
    track_id: int
    location: Point
    should_log: bool = False  # set by the alert throttle

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "confidence": round(self.confidence, 3),
            "description": self.description,
            "detail": self.detail,
            "track_id": self.track_id,
            "location": [round(self.location[0], 1), round(self.location[1], 1)],
        }


# Loitering

def loitering_confidence(elapsed_s: float, normalization_s: float) -> float:
    return min(max(elapsed_s, 0.0) / normalization_s, 1.0)


def analyze_loitering(track: TrackedPerson, now: float, cfg: BehaviorConfig) -> Optional[SuspiciousBehavior]:
    elapsed = track.dwell_time(now)
    if elapsed <= cfg.loitering_threshold_s or track.last_position is None:
        return None
    return SuspiciousBehavior(
        type=BehaviorType.LOITERING,
        confidence=loitering_confidence(elapsed, cfg.loitering_normalization_s),
        description=f"Person in the area for {elapsed:.1f}s",
        detail=f"dwell={elapsed:.1f}s threshold={cfg.loitering_threshold_s:.0f}s",
        track_id=track.track_id,
        location=track.last_position,
    )


# Valuable proximity

def proximity_confidence(dist: float, threshold: float) -> float:
    return min(max(1.0 - dist / threshold, 0.0), 1.0)


def analyze_proximity(
    track: TrackedPerson,
    valuables: Iterable[Detection],
    cfg: BehaviorConfig,
) -> List[SuspiciousBehavior]:
    position = track.last_position
    if position is None:
        return []

    behaviors = []
    for item in valuables:
        if item.is_degenerate():
            continue
        dist = distance(position, item.center)
        if dist >= cfg.proximity_threshold_px:
            continue
        behaviors.append(
            SuspiciousBehavior(
                type=BehaviorType.VALUABLE_PROXIMITY,
                confidence=proximity_confidence(dist, cfg.proximity_threshold_px),
                description=f"Near {item.label or f'class {item.class_id}'}",
                detail=f"distance={dist:.1f}px item_conf={item.confidence:.2f}",
                track_id=track.track_id,
                location=position,
            )
        )
    return behaviors


# Movement pattern

def movement_score(positions: Sequence[Point], cfg: BehaviorConfig) -> float:
    """Combine erratic-direction, confinement and velocity scores, clamped to [0, 1]."""
    if len(positions) < cfg.movement_min_window:
        return 0.0

    pts = np.asarray(positions, dtype=float)
    steps = np.diff(pts, axis=0)
    step_len = np.linalg.norm(steps, axis=1)
    score = 0.0

    # Direction reversals among steps longer than the jitter threshold
    significant = (step_len[:-1] > cfg.movement_jitter_px) & (step_len[1:] > cfg.movement_jitter_px)
    significant_moves = int(significant.sum())
    if significant_moves > 0:
        dots = np.einsum("ij,ij->i", steps[:-1], steps[1:])
        reversals = int(((dots < 0) & significant).sum())
        change_rate = reversals / significant_moves
        if change_rate > 0.5:
            score += change_rate * cfg.movement_erratic_weight

    # Circling inside a small area
    recent = pts[-cfg.movement_confinement_window:]
    spread = np.linalg.norm(recent - recent.mean(axis=0), axis=1).max()
    if spread < cfg.movement_confinement_radius_px:
        score += cfg.movement_confinement_score

    # Inconsistent speed
    if len(step_len) > 5 and float(np.var(step_len)) > cfg.movement_velocity_variance:
        score += cfg.movement_velocity_score

    return float(min(max(score, 0.0), 1.0))


def analyze_movement(track: TrackedPerson, now: float, cfg: BehaviorConfig) -> Optional[SuspiciousBehavior]:
    if len(track.positions) < cfg.movement_min_history:
        return None
    if (track.last_movement_alert is not None
            and now - track.last_movement_alert <= cfg.movement_alert_cooldown_s):
        return None

    window = list(track.positions)[-cfg.movement_window:]
    score = movement_score(window, cfg)
    if score <= cfg.movement_score_threshold:
        return None

    track.last_movement_alert = now
    return SuspiciousBehavior(
        type=BehaviorType.SUSPICIOUS_MOVEMENT,
        confidence=score,
        description="Highly irregular movement pattern",
        detail=f"score={score:.2f} window={len(window)}",
        track_id=track.track_id,
        location=track.last_position,
    )


# Posture

def pose_score(pose: PersonPose, cfg: BehaviorConfig) -> float:
    if not pose.is_complete:
        return 0.0

    min_conf = cfg.pose_keypoint_confidence
    l_sh = pose.keypoint(Keypoint.LEFT_SHOULDER)
    r_sh = pose.keypoint(Keypoint.RIGHT_SHOULDER)
    l_hip = pose.keypoint(Keypoint.LEFT_HIP)
    r_hip = pose.keypoint(Keypoint.RIGHT_HIP)
    l_wr = pose.keypoint(Keypoint.LEFT_WRIST)
    r_wr = pose.keypoint(Keypoint.RIGHT_WRIST)

    score = 0.0

    # Compressed torso: crouching or hiding
    if all(kp.confidence > min_conf for kp in (l_sh, r_sh, l_hip, r_hip)):
        shoulder_y = (l_sh.y + r_sh.y) / 2
        hip_y = (l_hip.y + r_hip.y) / 2
        if abs(shoulder_y - hip_y) < cfg.crouch_torso_px:
            score += cfg.crouch_score

    # Both wrists held against the torso
    if l_wr.confidence > min_conf and r_wr.confidence > min_conf:
        body_center_x = (l_sh.x + r_sh.x) / 2
        if (abs(l_wr.x - body_center_x) < cfg.concealment_wrist_px
                and abs(r_wr.x - body_center_x) < cfg.concealment_wrist_px):
            score += cfg.concealment_score

    return min(score, 1.0)


def analyze_posture(track: TrackedPerson, cfg: BehaviorConfig) -> Optional[SuspiciousBehavior]:
    pose = track.last_pose
    if pose is None or track.last_position is None:
        return None

    score = pose_score(pose, cfg)
    if score <= cfg.suspicious_pose_threshold:
        return None

    if score >= cfg.hiding_behavior_threshold:
        description = "Possible concealment posture"
    else:
        description = "Suspicious posture"
    return SuspiciousBehavior(
        type=BehaviorType.SUSPICIOUS_POSE,
        confidence=score,
        description=description,
        detail=f"score={score:.2f} pose_conf={pose.confidence:.2f}",
        track_id=track.track_id,
        location=track.last_position,
    )


class BehaviorAnalyzer:
    """Runs every analyzer over every live track."""

    def __init__(self, cfg: BehaviorConfig):
        self.cfg = cfg

    def analyze_track(
        self,
        track: TrackedPerson,
        valuables: Sequence[Detection],
        now: float,
    ) -> List[SuspiciousBehavior]:
        behaviors: List[SuspiciousBehavior] = []

        loitering = analyze_loitering(track, now, self.cfg)
        if loitering:
            behaviors.append(loitering)

        behaviors.extend(analyze_proximity(track, valuables, self.cfg))

        movement = analyze_movement(track, now, self.cfg)
        if movement:
            behaviors.append(movement)

        posture = analyze_posture(track, self.cfg)
        if posture:
            behaviors.append(posture)

        return behaviors

    def analyze(
        self,
        tracks: Iterable[TrackedPerson],
        valuables: Sequence[Detection],
        now: float,
    ) -> List[SuspiciousBehavior]:
        behaviors: List[SuspiciousBehavior] = []
        for track in tracks:
            try:
                behaviors.extend(self.analyze_track(track, valuables, now))
            except Exception:
                # one bad track must not abort the frame
                logger.exception(f"Behavior analysis failed for track {track.track_id}")
        return behaviors
