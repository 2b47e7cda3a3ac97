from typing import Optional

import cv2
import numpy as np
from loguru import logger


def open_video_source(source: str | int) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open video source: {source}")
    logger.info(f"Opened video source {source}")
    return cap


def read_frame(cap: cv2.VideoCapture) -> Optional[np.ndarray]:
    ok, frame = cap.read()
    if not ok:
        return None
    return frame


def release(cap: cv2.VideoCapture) -> None:
    if cap is not None:
        cap.release()
