"""
transform_buffer.py

Time-indexed store of ``map <- frame`` poses answering point-in-time lookups.

Lookups between two stored samples interpolate the translation linearly and
the rotation with spherical linear interpolation. Lookups slightly outside
the stored span snap to the nearest sample when they are within the
requested tolerance; anything else is a failed lookup (None), never an
exception.

Static transforms (e.g. the camera mount on the vehicle) can be registered
once and are chained onto the time-varying parent pose at lookup time.
"""

import bisect
import logging
import numpy as np
from typing import Dict, List, Optional, Tuple
from scipy.spatial.transform import Rotation, Slerp

from mirror_roi.geometry.transform import CameraPose


logger = logging.getLogger(__name__)


class TransformBuffer:
    """
    Args:
        parent_frame: Name of the fixed frame every pose is expressed in.
        cache_time:   Samples older than the newest one by more than this
                      many seconds are discarded.
    """

    def __init__(self, parent_frame: str = 'map', cache_time: float = 10.0):
        self.parent_frame = parent_frame
        self.cache_time = cache_time
        self._stamps: Dict[str, List[float]] = {}
        self._poses: Dict[str, List[CameraPose]] = {}
        self._static: Dict[str, Tuple[str, CameraPose]] = {}

    def set_transform(self, stamp: float, frame_id: str, pose: CameraPose) -> None:
        """Store the ``parent_frame <- frame_id`` pose valid at ``stamp``."""
        stamps = self._stamps.setdefault(frame_id, [])
        poses = self._poses.setdefault(frame_id, [])

        index = bisect.bisect_left(stamps, stamp)
        if index < len(stamps) and stamps[index] == stamp:
            poses[index] = pose
        else:
            stamps.insert(index, stamp)
            poses.insert(index, pose)

        # drop samples that fell out of the cache window
        cutoff = bisect.bisect_left(stamps, stamps[-1] - self.cache_time)
        if cutoff > 0:
            del stamps[:cutoff]
            del poses[:cutoff]

    def set_static_transform(self, parent_frame_id: str, frame_id: str, pose: CameraPose) -> None:
        """Register a fixed ``parent_frame_id <- frame_id`` transform."""
        self._static[frame_id] = (parent_frame_id, pose)

    def frames(self) -> List[str]:
        return sorted(set(self._stamps) | set(self._static))

    def lookup_transform(self, stamp: float, frame_id: str,
                         tolerance: float = 0.2) -> Optional[CameraPose]:
        """
        Pose of ``frame_id`` in the parent frame at ``stamp``.

        Args:
            stamp:     Query time (s).
            frame_id:  Child frame name.
            tolerance: Maximum distance (s) from the stored span for which
                       the nearest sample is still returned.

        Returns:
            CameraPose, or None if the transform is not available.
        """
        if frame_id in self._static:
            parent_frame_id, mount = self._static[frame_id]
            if parent_frame_id == self.parent_frame:
                return mount
            parent_pose = self.lookup_transform(stamp, parent_frame_id, tolerance)
            if parent_pose is None:
                return None
            return parent_pose.compose(mount)

        stamps = self._stamps.get(frame_id)
        if not stamps:
            logger.debug("No transform for frame '%s'", frame_id)
            return None
        poses = self._poses[frame_id]

        if stamp <= stamps[0]:
            return poses[0] if stamps[0] - stamp <= tolerance else None
        if stamp >= stamps[-1]:
            return poses[-1] if stamp - stamps[-1] <= tolerance else None

        index = bisect.bisect_left(stamps, stamp)
        if stamps[index] == stamp:
            return poses[index]
        return self._interpolate(stamps[index - 1], poses[index - 1],
                                 stamps[index], poses[index], stamp)

    @staticmethod
    def _interpolate(t0: float, pose0: CameraPose,
                     t1: float, pose1: CameraPose, stamp: float) -> CameraPose:
        ratio = (stamp - t0) / (t1 - t0)
        translation = (1.0 - ratio) * pose0.translation + ratio * pose1.translation

        key_rotations = Rotation.from_matrix(np.stack([pose0.rotation, pose1.rotation]))
        slerp = Slerp([t0, t1], key_rotations)
        rotation = slerp([stamp])[0]

        return CameraPose(rotation.as_matrix(), translation)
