"""
Shoplifting behavior detection package.

Modules:
- config: tunable parameters and validation.
- detection: detection records, detector interface, valuable-item catalog.
- pose: COCO keypoint layout and pose records.
- tracking: centroid track store and lifecycle.
- behavior: loitering, proximity, movement and posture analyzers.
- throttle: per-track alert log throttling.
- engine: per-frame orchestration of the above.
- events: alert logging.
- yolo: ultralytics detector and pose estimator.
- video: video capture helpers.
- overlay: frame annotation.
- runner: pipeline loop and CLI.
"""

__all__ = [
    "config",
    "detection",
    "pose",
    "tracking",
    "behavior",
    "throttle",
    "engine",
    "events",
    "yolo",
    "video",
    "overlay",
    "runner",
]
