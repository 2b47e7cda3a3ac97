"""Main pipeline: camera -> detector -> engine -> alerts -> preview window."""
import argparse
import sys
from typing import Optional

import cv2
import numpy as np
from loguru import logger

from .config import PipelineConfig, select_device
from .engine import FrameResult, ShopliftingEngine
from .events import EventSink
from .overlay import OverlayRenderer
from .video import open_video_source, read_frame, release
from .yolo import YoloDetector, YoloPoseEstimator

WINDOW_NAME = "Shoplifting Detector"


class Pipeline:
    """Video processing pipeline around one ShopliftingEngine."""

    def __init__(self, cfg: PipelineConfig):
        cfg.validate()
        cfg.detection.device = select_device(cfg.detection.device)
        self.cfg = cfg

        self.detector = YoloDetector(cfg.detection)
        self.pose_estimator: Optional[YoloPoseEstimator] = None
        if cfg.pose.enabled:
            self.pose_estimator = YoloPoseEstimator(cfg.pose, device=cfg.detection.device)
        else:
            logger.info("Pose estimation disabled; posture analysis skipped")

        self.engine = ShopliftingEngine(cfg, self.detector, self.pose_estimator)
        self.events = EventSink(cfg.events)
        self.renderer = OverlayRenderer(cfg.behavior.pose_keypoint_confidence)
        self.render_enabled: bool = True

        self.cap = open_video_source(cfg.video_source)
        logger.info("Pipeline initialized")

    def process_frame(self, frame: np.ndarray) -> FrameResult:
        result = self.engine.process_frame(frame)
        self.events.emit(result.behaviors)
        if self.render_enabled:
            self._render(frame, result)
        return result

    def _render(self, frame: np.ndarray, result: FrameResult) -> None:
        self.renderer.draw_detections(frame, result.detections)
        self.renderer.draw_behaviors(frame, result.behaviors)
        if result.detections:
            self.renderer.draw_poses(frame, self.engine.last_poses)
        self.renderer.draw_status(
            frame,
            frame_count=self.engine.frame_count,
            num_detections=len(result.detections),
            active_alerts=len(result.behaviors),
            total_alerts=self.engine.total_alerts,
        )
        try:
            cv2.imshow(WINDOW_NAME, frame)
            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):  # q / ESC
                raise KeyboardInterrupt
        except cv2.error as e:
            logger.warning(f"Disabling rendering due to OpenCV GUI error: {e}")
            self.render_enabled = False

    def run(self) -> None:
        logger.info("Shoplifting detector running. Press 'q' or ESC to exit.")
        try:
            while True:
                frame = read_frame(self.cap)
                if frame is None:
                    logger.info("Video source exhausted")
                    break
                self.process_frame(frame)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            release(self.cap)
            if self.render_enabled:
                try:
                    cv2.destroyAllWindows()
                except cv2.error as e:
                    logger.warning(f"cv2.destroyAllWindows failed: {e}")
            self.events.close()
            self.engine.reset()

            stats = self.engine.stats()
            logger.info(
                f"Final stats: {stats['frames']} frames, {stats['total_alerts']} alerts "
                f"({stats['alert_rate']:.2f} per 100 frames)"
            )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Real-time shoplifting behavior detection")
    parser.add_argument("--source", type=str, default="0", help="Video source (index or path)")
    parser.add_argument("--camera-id", type=str, default="CAM_01", help="Camera identifier")
    parser.add_argument("--model", type=str, default=None, help="YOLO detection weights")
    parser.add_argument("--pose-model", type=str, default=None, help="YOLO pose weights (enables posture analysis)")
    parser.add_argument("--conf", type=float, default=None, help="Detection confidence override")
    parser.add_argument("--loitering-threshold", type=float, default=None, help="Seconds before loitering is flagged")
    parser.add_argument("--proximity-threshold", type=float, default=None, help="Pixel distance to valuable items")
    parser.add_argument("--device", type=str, default=None, help="cuda | mps | cpu")
    parser.add_argument("--no-render", action="store_true", help="Disable the preview window")
    parser.add_argument("--no-file-log", action="store_true", help="Do not write the JSON alert log")
    parser.add_argument("--log-level", type=str, default="INFO", help="Console log level")
    return parser.parse_args(argv)


def build_config(args) -> PipelineConfig:
    source: str | int = int(args.source) if args.source.isdigit() else args.source
    cfg = PipelineConfig(video_source=source)
    cfg.events.camera_id = args.camera_id
    cfg.events.enable_file_logging = not args.no_file_log
    if args.model:
        cfg.detection.model_path = args.model
    if args.pose_model:
        cfg.pose.enabled = True
        cfg.pose.model_path = args.pose_model
    if args.conf is not None:
        cfg.detection.conf_threshold = args.conf
    if args.loitering_threshold is not None:
        cfg.behavior.loitering_threshold_s = args.loitering_threshold
        # keep confidence rising past the trigger point
        cfg.behavior.loitering_normalization_s = max(
            cfg.behavior.loitering_normalization_s, args.loitering_threshold * 1.5
        )
    if args.proximity_threshold is not None:
        cfg.tracking.proximity_threshold_px = args.proximity_threshold
        cfg.behavior.proximity_threshold_px = args.proximity_threshold
    if args.device:
        cfg.detection.device = args.device
    return cfg


def main(argv=None):
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    cfg = build_config(args)
    pipeline = Pipeline(cfg)
    pipeline.render_enabled = not args.no_render
    pipeline.run()


if __name__ == "__main__":
    main()
