"""Alert output: console warnings and an optional JSON-lines file."""
from __future__ import annotations

from typing import Iterable, Optional

from loguru import logger

from .behavior import SuspiciousBehavior
from .config import EventConfig


class EventSink:
    def __init__(self, cfg: EventConfig):
        self.cfg = cfg
        self._log = logger.bind(alert=True, camera_id=cfg.camera_id)
        self._file_sink_id: Optional[int] = None
        if cfg.enable_file_logging:
            cfg.log_dir.mkdir(parents=True, exist_ok=True)
            path = cfg.log_dir / f"alerts_{cfg.camera_id}.jsonl"
            self._file_sink_id = logger.add(
                str(path),
                serialize=True,
                filter=lambda record: record["extra"].get("alert", False),
                rotation="10 MB",
            )
            logger.info(f"Alert log file: {path}")

    def emit(self, behaviors: Iterable[SuspiciousBehavior]) -> int:
        """Log the throttle-approved behaviors; return how many were logged."""
        count = 0
        for behavior in behaviors:
            if not behavior.should_log:
                continue
            self._log.bind(**behavior.to_dict()).warning(
                f"ALERT [{self.cfg.camera_id}] {behavior.type.value} "
                f"track={behavior.track_id} ({behavior.confidence:.0%}) - {behavior.description}"
            )
            count += 1
        return count

    def close(self) -> None:
        if self._file_sink_id is not None:
            logger.remove(self._file_sink_id)
            self._file_sink_id = None
