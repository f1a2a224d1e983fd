"""
Geometry module - Rigid transforms and projection/gating primitives.
"""

from .primitives import (
    normalize_radian,
    project_to_pixel,
    clamp_to_image,
    is_in_distance_range,
    is_in_angle_range,
    is_in_image_frame,
)
from .transform import CameraPose, camera_rotation_from_yaw

__all__ = [
    'normalize_radian',
    'project_to_pixel',
    'clamp_to_image',
    'is_in_distance_range',
    'is_in_angle_range',
    'is_in_image_frame',
    'CameraPose',
    'camera_rotation_from_yaw',
]
