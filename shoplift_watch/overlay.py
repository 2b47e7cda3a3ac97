"""Frame annotation: detections, alerts, pose skeletons and a status bar."""
from __future__ import annotations

import colorsys
import time
from typing import Dict, Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from .behavior import SuspiciousBehavior
from .detection import Detection
from .pose import SKELETON, PersonPose

Color = Tuple[int, int, int]  # BGR

ALERT_COLOR: Color = (0, 0, 255)
POSE_COLOR: Color = (255, 255, 0)
OK_COLOR: Color = (0, 255, 0)
TEXT_COLOR: Color = (255, 255, 255)


class OverlayRenderer:
    def __init__(self, keypoint_confidence: float = 0.3):
        self.keypoint_confidence = keypoint_confidence
        self._class_colors: Dict[int, Color] = {}

    def class_color(self, class_id: int) -> Color:
        """Stable color per class, hue spread by the golden angle."""
        color = self._class_colors.get(class_id)
        if color is None:
            hue = (class_id * 137 % 360) / 360.0
            r, g, b = colorsys.hsv_to_rgb(hue, 0.7, 0.9)
            color = (int(b * 255), int(g * 255), int(r * 255))
            self._class_colors[class_id] = color
        return color

    def draw_detections(self, frame: np.ndarray, detections: Iterable[Detection]) -> None:
        for det in detections:
            if det.is_degenerate():
                continue
            x1, y1, x2, y2 = map(int, det.box)
            color = self.class_color(det.class_id)
            cv2.rectangle(frame, (x1, y1), (x2, y2), color, 3)
            cv2.putText(frame, det.label, (x1, y1 - 5), cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2)

    def draw_behaviors(self, frame: np.ndarray, behaviors: Iterable[SuspiciousBehavior]) -> None:
        for behavior in behaviors:
            x, y = map(int, behavior.location)
            cv2.circle(frame, (x, y), 30, ALERT_COLOR, 3)
            text = f"{behavior.type.value} ({behavior.confidence:.0%}) #{behavior.track_id}"
            cv2.putText(frame, text, (x - 50, y - 40), cv2.FONT_HERSHEY_SIMPLEX, 0.6, ALERT_COLOR, 2)
            cv2.putText(frame, behavior.description, (x - 50, y - 20),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.4, ALERT_COLOR, 1)

    def draw_poses(self, frame: np.ndarray, poses: Sequence[Optional[PersonPose]]) -> None:
        min_conf = self.keypoint_confidence
        for pose in poses:
            if pose is None:
                continue
            for idx, kp in enumerate(pose.keypoints):
                if kp.confidence > min_conf:
                    cv2.circle(frame, (int(kp.x), int(kp.y)), 5, POSE_COLOR, -1)
                    cv2.putText(frame, str(idx), (int(kp.x) + 5, int(kp.y) - 5),
                                cv2.FONT_HERSHEY_SIMPLEX, 0.3, POSE_COLOR, 1)
            if not pose.is_complete:
                continue
            for a, b in SKELETON:
                kp1, kp2 = pose.keypoint(a), pose.keypoint(b)
                if kp1.confidence > min_conf and kp2.confidence > min_conf:
                    cv2.line(frame, (int(kp1.x), int(kp1.y)), (int(kp2.x), int(kp2.y)), POSE_COLOR, 2)

    def draw_status(
        self,
        frame: np.ndarray,
        frame_count: int,
        num_detections: int,
        active_alerts: int,
        total_alerts: int,
    ) -> None:
        panel = frame.copy()
        cv2.rectangle(panel, (0, 0), (frame.shape[1], 60), (0, 0, 0), -1)
        cv2.addWeighted(panel, 0.7, frame, 0.3, 0, dst=frame)

        text = (f"Frame: {frame_count} | Detections: {num_detections} | "
                f"Active alerts: {active_alerts} | Total: {total_alerts}")
        cv2.putText(frame, text, (10, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.6, TEXT_COLOR, 2)

        if active_alerts > 0:
            status, color = "ALERT", ALERT_COLOR
        else:
            status, color = "NORMAL", OK_COLOR
        cv2.putText(frame, status, (10, 50), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)

        clock = time.strftime("%H:%M:%S")
        cv2.putText(frame, clock, (frame.shape[1] - 100, 25), cv2.FONT_HERSHEY_SIMPLEX, 0.6, TEXT_COLOR, 2)
