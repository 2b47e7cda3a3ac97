from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict


class ConfigError(ValueError):
    """Raised once at construction when the configuration is unusable."""


def default_valuable_items() -> Dict[int, str]:
    """COCO class ids treated as monitored items."""
    return {
        # Bags
        24: "backpack",
        26: "handbag",
        28: "suitcase",
        # Drinks
        39: "bottle",
        40: "wine glass",
        # Electronics
        63: "laptop",
        65: "remote",
        67: "cell phone",
        # Misc
        73: "book",
        74: "clock",
        76: "scissors",
    }


@dataclass
class DetectionConfig:
    # Options: "yolo11n.pt" (fast) ... "yolo11x.pt" (accurate)
    model_path: str = "yolo11n.pt"

    conf_threshold: float = 0.25
    iou_threshold: float = 0.4  # NMS
    min_object_size: int = 20  # px, both sides

    imgsz: int = 640
    device: str = "cuda"  # fallback handled at runtime

    # COCO person
    person_class_id: int = 0
    valuable_items: Dict[int, str] = field(default_factory=default_valuable_items)


@dataclass
class TrackingConfig:
    proximity_threshold_px: float = 80.0  # max centroid jump between frames
    max_tracked_people: int = 50
    tracker_timeout_s: float = 5.0  # drop tracks unseen for this long
    max_position_history: int = 30
    # "evict_oldest": drop least recently seen track, "reject": ignore new person
    capacity_policy: str = "evict_oldest"


@dataclass
class BehaviorConfig:
    # Loitering
    loitering_threshold_s: float = 20.0
    loitering_normalization_s: float = 30.0  # confidence reaches 1.0 here

    # Valuable proximity
    proximity_threshold_px: float = 80.0

    # Movement pattern
    movement_alert_cooldown_s: float = 8.0
    movement_min_history: int = 16
    movement_window: int = 12  # most recent positions analysed
    movement_min_window: int = 10
    movement_confinement_window: int = 10
    movement_confinement_radius_px: float = 30.0
    movement_jitter_px: float = 5.0  # ignore steps shorter than this
    movement_score_threshold: float = 0.9
    movement_erratic_weight: float = 0.6
    movement_confinement_score: float = 0.4
    movement_velocity_variance: float = 100.0
    movement_velocity_score: float = 0.3

    # Posture
    suspicious_pose_threshold: float = 0.6
    hiding_behavior_threshold: float = 0.7
    pose_keypoint_confidence: float = 0.3
    crouch_torso_px: float = 50.0
    crouch_score: float = 0.4
    concealment_wrist_px: float = 30.0
    concealment_score: float = 0.3


@dataclass
class AlertConfig:
    log_cooldown_s: float = 1.0  # per track and behavior type


@dataclass
class PoseConfig:
    enabled: bool = False
    model_path: str = "yolo11n-pose.pt"
    interval_frames: int = 10  # run pose model every N frames
    min_pose_confidence: float = 0.3


@dataclass
class EventConfig:
    camera_id: str = "CAM_01"
    log_dir: Path = Path("logs")
    enable_file_logging: bool = True


@dataclass
class PipelineConfig:
    video_source: str | int = 0  # default webcam
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    behavior: BehaviorConfig = field(default_factory=BehaviorConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    pose: PoseConfig = field(default_factory=PoseConfig)
    events: EventConfig = field(default_factory=EventConfig)

    def validate(self) -> None:
        """Raise ConfigError describing the first invalid setting."""
        det, trk, beh = self.detection, self.tracking, self.behavior

        _require(0.0 <= det.conf_threshold <= 1.0, "detection.conf_threshold must be in [0, 1]")
        _require(det.person_class_id >= 0, "detection.person_class_id must be >= 0")
        for class_id, label in det.valuable_items.items():
            _require(isinstance(class_id, int) and class_id >= 0, f"invalid valuable class id: {class_id!r}")
            _require(bool(label), f"valuable class {class_id} has an empty label")
        _require(
            det.person_class_id not in det.valuable_items,
            "detection.person_class_id cannot also be a valuable item",
        )

        _require(trk.proximity_threshold_px > 0, "tracking.proximity_threshold_px must be > 0")
        _require(trk.max_tracked_people > 0, "tracking.max_tracked_people must be > 0")
        _require(trk.tracker_timeout_s > 0, "tracking.tracker_timeout_s must be > 0")
        _require(trk.max_position_history > 0, "tracking.max_position_history must be > 0")
        _require(
            trk.capacity_policy in ("evict_oldest", "reject"),
            f"unknown tracking.capacity_policy: {trk.capacity_policy!r}",
        )

        _require(beh.loitering_threshold_s > 0, "behavior.loitering_threshold_s must be > 0")
        _require(
            beh.loitering_normalization_s > beh.loitering_threshold_s,
            "behavior.loitering_normalization_s must be larger than loitering_threshold_s",
        )
        _require(beh.proximity_threshold_px > 0, "behavior.proximity_threshold_px must be > 0")
        # one distance serves both association and valuable proximity
        _require(
            beh.proximity_threshold_px == trk.proximity_threshold_px,
            "behavior.proximity_threshold_px must equal tracking.proximity_threshold_px",
        )
        _require(beh.movement_alert_cooldown_s >= 0, "behavior.movement_alert_cooldown_s must be >= 0")
        _require(
            beh.movement_window >= beh.movement_min_window >= beh.movement_confinement_window >= 2,
            "behavior movement windows must satisfy window >= min_window >= confinement_window >= 2",
        )
        _require(
            beh.movement_min_history >= beh.movement_window,
            "behavior.movement_min_history must be >= movement_window",
        )
        _require(
            trk.max_position_history >= beh.movement_min_history,
            "tracking.max_position_history must be >= behavior.movement_min_history",
        )
        for name in ("movement_score_threshold", "suspicious_pose_threshold",
                     "hiding_behavior_threshold", "pose_keypoint_confidence"):
            value = getattr(beh, name)
            _require(0.0 <= value <= 1.0, f"behavior.{name} must be in [0, 1]")

        _require(self.alerts.log_cooldown_s >= 0, "alerts.log_cooldown_s must be >= 0")
        _require(self.pose.interval_frames >= 1, "pose.interval_frames must be >= 1")


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def select_device(requested: str) -> str:
    """Pick device string depending on availability.

    Supports:
    - cuda: NVIDIA GPU (Linux/Windows)
    - mps: Apple Silicon GPU (macOS M1/M2/M3/M4)
    - cpu: Fallback for all platforms
    """
    try:
        import torch

        if requested == "cuda" and torch.cuda.is_available():
            return "cuda"
        # Apple Silicon (M1/M2/M3/M4) support via Metal Performance Shaders
        if requested in ("cuda", "mps") and torch.backends.mps.is_available():
            return "mps"
    except Exception:
        return "cpu"
    return "cpu"
