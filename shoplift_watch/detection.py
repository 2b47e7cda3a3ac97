"""Per-frame detection records and the detector interface.

The engine never talks to a model directly. Anything exposing
``detect(frame) -> List[Detection]`` can drive it, which keeps the
YOLO adapter (see ``yolo.py``) swappable for scripted fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Protocol, Tuple

import numpy as np


@dataclass
class Detection:
    class_id: int
    confidence: float  # [0, 1]
    box: np.ndarray  # xyxy, pixels
    label: str = ""

    def __post_init__(self):
        self.box = np.asarray(self.box, dtype=float).reshape(-1)

    @property
    def center(self) -> Tuple[float, float]:
        x1, y1, x2, y2 = self.box
        return float((x1 + x2) / 2), float((y1 + y2) / 2)

    @property
    def width(self) -> float:
        return float(self.box[2] - self.box[0])

    @property
    def height(self) -> float:
        return float(self.box[3] - self.box[1])

    def is_degenerate(self) -> bool:
        """True for boxes that cannot be located: wrong shape, NaN/inf or zero area."""
        if self.box.shape != (4,) or not np.all(np.isfinite(self.box)):
            return True
        return self.width <= 0 or self.height <= 0


class ObjectDetector(Protocol):
    def detect(self, frame: Any) -> List[Detection]:
        ...


class ValuableItemCatalog:
    """Read-only class id -> label lookup of monitored items."""

    def __init__(self, items: Mapping[int, str]):
        self._items: Mapping[int, str] = MappingProxyType(dict(items))

    def __contains__(self, class_id: object) -> bool:
        return class_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def label_for(self, class_id: int, default: str | None = None) -> str | None:
        return self._items.get(class_id, default)

    def as_dict(self) -> Dict[int, str]:
        return dict(self._items)


def filter_people(detections: Iterable[Detection], person_class_id: int = 0) -> List[Detection]:
    return [d for d in detections if d.class_id == person_class_id]


def filter_valuables(detections: Iterable[Detection], catalog: ValuableItemCatalog) -> List[Detection]:
    """Keep detections whose class is in the catalog, labelled from the catalog when unlabelled."""
    valuable = []
    for det in detections:
        if det.class_id not in catalog:
            continue
        if not det.label:
            det.label = catalog.label_for(det.class_id, "")
        valuable.append(det)
    return valuable
