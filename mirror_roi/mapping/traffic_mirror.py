"""
Traffic mirror map primitives.

A traffic mirror is stored in the map as a two-point line string along its
bottom edge plus a ``height`` attribute:

    front ----------------- back        (bottom edge, map frame)

The bounding quad used for projection is spanned by two derived corners:

    top_left     = front raised by ``height`` along Z
    bottom_right = back at its own elevation
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

from mirror_roi.geometry.primitives import normalize_radian


SOLID_SUBTYPE = 'solid'

Point3 = Tuple[float, float, float]


@dataclass(frozen=True)
class TrafficMirror:
    """
    Read-only traffic mirror record.

    Attributes:
        id:      Map primitive id.
        front:   First point of the bottom line string (x, y, z).
        back:    Last point of the bottom line string (x, y, z).
        height:  Panel height in meters (0 when the attribute is absent).
        subtype: Map subtype tag; None when the attribute is absent.
    """
    id:      int
    front:   Point3
    back:    Point3
    height:  float = 0.0
    subtype: Optional[str] = None

    @property
    def is_reflective(self) -> bool:
        """
        Only panels with a subtype other than 'solid' are real mirrors;
        untagged line strings are treated as non-mirrors too.
        """
        return self.subtype is not None and self.subtype != SOLID_SUBTYPE

    @property
    def top_left(self) -> np.ndarray:
        x, y, z = self.front
        return np.array([x, y, z + self.height], dtype=np.float64)

    @property
    def bottom_right(self) -> np.ndarray:
        return np.array(self.back, dtype=np.float64)

    @property
    def center(self) -> np.ndarray:
        return (self.top_left + self.bottom_right) / 2.0

    @property
    def yaw(self) -> float:
        """Facing direction: the bottom edge heading rotated by +90°."""
        return normalize_radian(
            math.atan2(self.back[1] - self.front[1], self.back[0] - self.front[0]) + math.pi / 2.0
        )


class TrafficMirrorSet:
    """
    Immutable collection of traffic mirrors, de-duplicated by id.

    When the same id is given more than once the first occurrence wins.
    """

    def __init__(self, mirrors: Iterable[TrafficMirror] = ()):
        by_id: Dict[int, TrafficMirror] = {}
        for mirror in mirrors:
            by_id.setdefault(mirror.id, mirror)
        self._mirrors = by_id

    def __iter__(self) -> Iterator[TrafficMirror]:
        return iter(self._mirrors.values())

    def __len__(self) -> int:
        return len(self._mirrors)

    def __contains__(self, mirror_id: object) -> bool:
        return mirror_id in self._mirrors

    def __repr__(self) -> str:
        return f"TrafficMirrorSet(ids={sorted(self._mirrors)})"

    def get(self, mirror_id: int) -> Optional[TrafficMirror]:
        return self._mirrors.get(mirror_id)

    @property
    def ids(self) -> Tuple[int, ...]:
        return tuple(self._mirrors)
