"""
visibility_filter.py

Selects the traffic mirrors that the camera can see under at least one
candidate pose.

A mirror is visible under a pose when, in this order:
  1. its center is within the detection range of the camera (planar),
  2. its facing direction is within 40° of the camera heading,
  3. its top-left or bottom-right corner projects inside the image.
"""

import math
from typing import Iterable, List, Sequence

from mirror_roi.calibration.load_calibration import PinholeCameraModel
from mirror_roi.geometry.primitives import (
    is_in_angle_range,
    is_in_distance_range,
    is_in_image_frame,
)
from mirror_roi.geometry.transform import CameraPose
from mirror_roi.mapping.traffic_mirror import TrafficMirror


MAX_ANGLE_RANGE = math.radians(40.0)


def is_visible_from(
    traffic_mirror: TrafficMirror,
    camera_pose: CameraPose,
    camera_model: PinholeCameraModel,
    max_detection_range: float,
) -> bool:
    """Apply the distance, angle and image-frame gates for a single pose."""
    if not is_in_distance_range(traffic_mirror.center, camera_pose.origin, max_detection_range):
        return False

    if not is_in_angle_range(traffic_mirror.yaw, camera_pose.optical_axis_yaw(), MAX_ANGLE_RANGE):
        return False

    map_to_camera = camera_pose.inverse()
    camera_to_top_left = map_to_camera.transform_point(traffic_mirror.top_left)
    camera_to_bottom_right = map_to_camera.transform_point(traffic_mirror.bottom_right)
    return (is_in_image_frame(camera_model, camera_to_top_left)
            or is_in_image_frame(camera_model, camera_to_bottom_right))


def get_visible_traffic_mirrors(
    traffic_mirrors: Iterable[TrafficMirror],
    camera_poses: Sequence[CameraPose],
    camera_model: PinholeCameraModel,
    max_detection_range: float,
) -> List[TrafficMirror]:
    """
    Filter traffic mirrors down to the ones visible under any candidate pose.

    Non-reflective map entries are skipped before any geometry is evaluated.
    Poses are tried in order and the first pose passing every gate accepts
    the mirror.

    Args:
        traffic_mirrors:     Mirrors of the active set.
        camera_poses:        Non-empty sequence of candidate ``map <- camera``
                             poses.
        camera_model:        Pinhole model of the current frame.
        max_detection_range: Planar detection range (m).

    Returns:
        Visible mirrors. Callers must not rely on their order.
    """
    visible = []
    for traffic_mirror in traffic_mirrors:
        if not traffic_mirror.is_reflective:
            continue
        if any(is_visible_from(traffic_mirror, camera_pose, camera_model, max_detection_range)
               for camera_pose in camera_poses):
            visible.append(traffic_mirror)
    return visible
