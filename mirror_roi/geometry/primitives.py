"""
Geometry primitives shared by the visibility filter and the ROI projector.

All functions are pure. 3D points are (x, y, z) arrays; pixels are (u, v)
float tuples in the raw (distorted) image.
"""

import math
import numpy as np
from typing import Sequence, Tuple

from mirror_roi.calibration.load_calibration import PinholeCameraModel


def normalize_radian(angle: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    value = math.fmod(angle, 2.0 * math.pi)
    if value <= -math.pi:
        value += 2.0 * math.pi
    elif value > math.pi:
        value -= 2.0 * math.pi
    return value


def project_to_pixel(camera_model: PinholeCameraModel, point3d: Sequence[float]) -> Tuple[float, float]:
    """
    Project a camera-frame point to a raw image pixel.

    The point is projected onto the rectified image and then unrectified.
    The caller must ensure the point lies in front of the camera (z > 0).

    Args:
        camera_model: Pinhole model of the current frame.
        point3d:      (x, y, z) in the camera optical frame.

    Returns:
        (u, v) raw pixel coordinate, not clamped.
    """
    rectified = camera_model.project3d_to_pixel(point3d)
    return camera_model.unrectify_point(rectified)


def clamp_to_image(camera_model: PinholeCameraModel, pixel: Tuple[float, float]) -> Tuple[float, float]:
    """Clamp a pixel to [0, width - 1] x [0, height - 1]."""
    u = max(min(pixel[0], float(camera_model.width - 1)), 0.0)
    v = max(min(pixel[1], float(camera_model.height - 1)), 0.0)
    return u, v


def is_in_distance_range(p1: Sequence[float], p2: Sequence[float], max_distance_range: float) -> bool:
    """
    Planar distance gate.

    Only x and y are compared; the vertical axis is ignored. A distance
    exactly equal to ``max_distance_range`` is out of range.
    """
    dx = p1[0] - p2[0]
    dy = p1[1] - p2[1]
    return dx * dx + dy * dy < max_distance_range * max_distance_range


def is_in_angle_range(yaw1: float, yaw2: float, max_angle_range: float) -> bool:
    """
    Heading gate.

    The difference is measured as the angle between the two unit heading
    vectors, so it lies in [0, pi] and carries no sign.
    """
    vec1 = np.array([math.cos(yaw1), math.sin(yaw1)])
    vec2 = np.array([math.cos(yaw2), math.sin(yaw2)])
    # rounding can push the dot product of unit vectors past +-1
    diff_angle = math.acos(float(np.clip(vec1.dot(vec2), -1.0, 1.0)))
    return abs(diff_angle) < max_angle_range


def is_in_image_frame(camera_model: PinholeCameraModel, point3d: Sequence[float]) -> bool:
    """
    True if a camera-frame point is in front of the camera and projects
    inside [0, width) x [0, height) of the raw image.
    """
    if point3d[2] <= 0.0:
        return False

    u, v = project_to_pixel(camera_model, point3d)
    return 0 <= u < camera_model.width and 0 <= v < camera_model.height
