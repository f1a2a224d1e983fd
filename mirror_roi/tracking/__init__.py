"""
Tracking module - Camera pose buffering and timestamp-window sampling.
"""

from .transform_buffer import TransformBuffer
from .pose_sampler import (
    SAMPLING_INTERVAL,
    TransformLookup,
    sample_camera_poses,
    get_candidate_poses,
)

__all__ = [
    'TransformBuffer',
    'SAMPLING_INTERVAL',
    'TransformLookup',
    'sample_camera_poses',
    'get_candidate_poses',
]
