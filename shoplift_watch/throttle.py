"""Per-track, per-behavior log throttling.

Every behavior is still returned to the caller. The throttle only decides
whether an occurrence is eligible to be surfaced (logged / announced) this
cycle, and records every occurrence on the track regardless.
"""
from __future__ import annotations

import time
from typing import Iterable, List, Optional

from .behavior import SuspiciousBehavior
from .config import AlertConfig
from .tracking import TrackedPerson, TrackStore


class AlertThrottle:
    def __init__(self, cfg: AlertConfig):
        self.cfg = cfg

    def evaluate(self, track: TrackedPerson, behavior: SuspiciousBehavior, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        key = behavior.type.value

        track.behavior_last_seen[key] = now
        track.behavior_counts[key] = track.behavior_counts.get(key, 0) + 1

        last_logged = track.behavior_last_logged.get(key)
        should_log = last_logged is None or now - last_logged > self.cfg.log_cooldown_s
        if should_log:
            track.behavior_last_logged[key] = now
        behavior.should_log = should_log
        return should_log

    def apply(
        self,
        store: TrackStore,
        behaviors: Iterable[SuspiciousBehavior],
        now: Optional[float] = None,
    ) -> List[SuspiciousBehavior]:
        """Flag each behavior in place; behaviors of unknown tracks are dropped."""
        now = time.time() if now is None else now
        kept = []
        # Several proximity hits share one (track, type) pair: only the first
        # of them in a frame can be log-eligible.
        for behavior in behaviors:
            track = store.get(behavior.track_id)
            if track is None:
                continue
            self.evaluate(track, behavior, now)
            kept.append(behavior)
        return kept
