"""
pose_sampler.py

Candidate camera poses over the timestamp uncertainty window of a frame.

The capture time of a frame is only known up to an offset window
[min_offset, max_offset] around its stamp. Instead of a continuous model,
the camera pose is looked up at a fixed grid of instants inside the window;
downstream code treats every successful lookup as a possible camera pose.

Times are handled in integer nanoseconds so that the grid end point is hit
exactly (0.01 s steps accumulate rounding error in floating point).
"""

import logging
from typing import List, Optional, Protocol, Tuple

from mirror_roi.geometry.transform import CameraPose


logger = logging.getLogger(__name__)

# Fixed sampling interval. The configured timestamp_sample_len is validated
# but does not drive the sampling loop.
SAMPLING_INTERVAL = 0.01

# How far from the buffered poses a lookup may reach (s)
LOOKUP_TOLERANCE = 0.2

_NS_PER_S = 1_000_000_000


class TransformLookup(Protocol):
    """Anything able to resolve the camera pose at a given instant."""

    def lookup_transform(self, stamp: float, frame_id: str,
                         tolerance: float = ...) -> Optional[CameraPose]:
        ...


def _to_nanoseconds(seconds: float) -> int:
    return int(round(seconds * _NS_PER_S))


def sample_camera_poses(
    tf_lookup: TransformLookup,
    stamp: float,
    frame_id: str,
    min_offset: float,
    max_offset: float,
    interval: float = SAMPLING_INTERVAL,
) -> List[CameraPose]:
    """
    Look up the camera pose at every grid instant of the offset window.

    Sample times are ``stamp + min_offset + k * interval`` for k = 0, 1, ...
    while not past ``stamp + max_offset``. Lookups that fail are skipped.

    Args:
        tf_lookup:  Transform provider.
        stamp:      Nominal frame stamp (s).
        frame_id:   Camera frame name.
        min_offset: Window start relative to the stamp (s).
        max_offset: Window end relative to the stamp (s).
        interval:   Grid step (s).

    Returns:
        Successfully looked-up poses in time order (possibly empty).
    """
    stamp_ns = _to_nanoseconds(stamp)
    t1 = stamp_ns + _to_nanoseconds(min_offset)
    t2 = stamp_ns + _to_nanoseconds(max_offset)
    step = _to_nanoseconds(interval)

    poses = []
    t = t1
    while t <= t2:
        pose = tf_lookup.lookup_transform(t / _NS_PER_S, frame_id, LOOKUP_TOLERANCE)
        if pose is not None:
            poses.append(pose)
        t += step
    return poses


def get_candidate_poses(
    tf_lookup: TransformLookup,
    stamp: float,
    frame_id: str,
    min_offset: float,
    max_offset: float,
) -> Optional[Tuple[CameraPose, List[CameraPose]]]:
    """
    Nominal pose plus the candidate poses of the offset window.

    When no window sample could be looked up, the nominal pose is the only
    candidate.

    Returns:
        (nominal_pose, candidate_poses), or None when the pose at the
        nominal stamp itself is not available.
    """
    candidates = sample_camera_poses(tf_lookup, stamp, frame_id, min_offset, max_offset)

    nominal = tf_lookup.lookup_transform(stamp, frame_id, LOOKUP_TOLERANCE)
    if nominal is None:
        return None

    if not candidates:
        candidates = [nominal]
    return nominal, candidates
