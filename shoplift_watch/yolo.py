"""YOLO-backed detector and pose estimator.

Both wrap ultralytics models and convert their output into the engine's
Detection / PersonPose records.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
import supervision as sv
from loguru import logger
from ultralytics import YOLO

from .config import DetectionConfig, PoseConfig, select_device
from .detection import Detection
from .pose import NUM_KEYPOINTS, PersonPose


class YoloDetector:
    """Object detector returning people and every other class the model knows."""

    def __init__(self, cfg: DetectionConfig):
        device = select_device(cfg.device)
        logger.info(f"Loading YOLO model {cfg.model_path} on {device}")
        self.model = YOLO(cfg.model_path)
        self.model.to(device)
        self.cfg = cfg
        logger.info(
            f"Detection thresholds - conf: {cfg.conf_threshold}, "
            f"iou: {cfg.iou_threshold}, min size: {cfg.min_object_size}px"
        )

    def detect(self, frame: np.ndarray) -> List[Detection]:
        result = self.model.predict(
            frame,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            imgsz=self.cfg.imgsz,
            device=self.model.device,
            verbose=False,
        )[0]

        dets = sv.Detections.from_ultralytics(result)
        if len(dets) == 0:
            return []

        widths = dets.xyxy[:, 2] - dets.xyxy[:, 0]
        heights = dets.xyxy[:, 3] - dets.xyxy[:, 1]
        keep = (widths >= self.cfg.min_object_size) & (heights >= self.cfg.min_object_size)
        dets = dets[keep]

        names = result.names
        return [
            Detection(
                class_id=int(cls),
                confidence=float(conf),
                box=box,
                label=names.get(int(cls), str(int(cls))),
            )
            for box, conf, cls in zip(dets.xyxy, dets.confidence, dets.class_id)
        ]


class YoloPoseEstimator:
    """Pose estimator matching YOLO-pose skeletons to person detections by IoU."""

    def __init__(self, cfg: PoseConfig, device: str = "cuda", match_iou: float = 0.3):
        device = select_device(device)
        logger.info(f"Loading pose model {cfg.model_path} on {device}")
        self.model = YOLO(cfg.model_path)
        self.model.to(device)
        self.cfg = cfg
        self.match_iou = match_iou
        logger.info(f"Pose estimation enabled ({NUM_KEYPOINTS} COCO keypoints)")

    def estimate(self, frame: np.ndarray, people: Sequence[Detection]) -> List[Optional[PersonPose]]:
        poses: List[Optional[PersonPose]] = [None] * len(people)
        if not people:
            return poses

        result = self.model.predict(
            frame,
            conf=self.cfg.min_pose_confidence,
            device=self.model.device,
            verbose=False,
        )[0]
        if result.keypoints is None or len(result.boxes) == 0:
            return poses

        pose_boxes = result.boxes.xyxy.cpu().numpy()
        kp_xy = result.keypoints.xy.cpu().numpy()
        if result.keypoints.conf is not None:
            kp_conf = result.keypoints.conf.cpu().numpy()
        else:
            kp_conf = np.ones(kp_xy.shape[:2])

        person_boxes = np.stack([p.box for p in people])
        ious = sv.box_iou_batch(person_boxes, pose_boxes)

        # Best pose per person, each pose used at most once
        taken = set()
        for person_idx in np.argsort(-ious.max(axis=1)):
            for pose_idx in np.argsort(-ious[person_idx]):
                if pose_idx in taken or ious[person_idx, pose_idx] < self.match_iou:
                    continue
                taken.add(pose_idx)
                pose = PersonPose.from_array(kp_xy[pose_idx], kp_conf[pose_idx], box=people[person_idx].box)
                if pose.confidence >= self.cfg.min_pose_confidence:
                    poses[person_idx] = pose
                break
        return poses
