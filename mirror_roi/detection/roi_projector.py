"""
roi_projector.py

Pixel regions of interest for traffic mirrors.

The single-pose projection enlarges the mirror's bounding quad by the
worst-case mount vibration before projecting it:

    dx = sin(max_yaw / 2)   * z + max_width  / 2
    dy = sin(max_pitch / 2) * z + max_height / 2
    dz = max_depth / 2

where z is the depth of the corner being enlarged. The top-left corner is
moved by (-dx, -dy, -dz) and the bottom-right corner by (+dx, +dy, -dz), so
the box only ever grows. The multi-pose variant unions the single-pose
boxes of every candidate pose.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence

from mirror_roi.calibration.load_calibration import PinholeCameraModel
from mirror_roi.geometry.primitives import clamp_to_image, project_to_pixel
from mirror_roi.geometry.transform import CameraPose
from mirror_roi.mapping.traffic_mirror import TrafficMirror
from mirror_roi.utils.detector_config import VibrationConfig


@dataclass(frozen=True)
class TrafficMirrorRoi:
    """Axis-aligned pixel box of one traffic mirror, inside the image."""
    traffic_mirror_id: int
    x_offset: int
    y_offset: int
    width:    int
    height:   int

    def as_dict(self) -> dict:
        return {
            'traffic_mirror_id': self.traffic_mirror_id,
            'x_offset': self.x_offset,
            'y_offset': self.y_offset,
            'width': self.width,
            'height': self.height,
        }


def _vibration_margin(depth: float, vibration: VibrationConfig) -> np.ndarray:
    """Half extents (dx, dy, dz) of the vibration envelope at a given depth."""
    return np.array([
        math.sin(vibration.max_yaw * 0.5) * depth + vibration.max_width * 0.5,
        math.sin(vibration.max_pitch * 0.5) * depth + vibration.max_height * 0.5,
        vibration.max_depth * 0.5,
    ])


def project_roi(
    camera_pose: CameraPose,
    camera_model: PinholeCameraModel,
    traffic_mirror: TrafficMirror,
    vibration: VibrationConfig,
) -> Optional[TrafficMirrorRoi]:
    """
    ROI of a traffic mirror under one camera pose.

    Args:
        camera_pose:    ``map <- camera`` pose.
        camera_model:   Pinhole model of the current frame.
        traffic_mirror: Mirror to project.
        vibration:      Vibration envelope; all zeros for the expected ROI.

    Returns:
        TrafficMirrorRoi, or None if an enlarged corner is behind the camera
        or the clamped box is less than one pixel wide or high.
    """
    map_to_camera = camera_pose.inverse()

    camera_to_top_left = map_to_camera.transform_point(traffic_mirror.top_left)
    top_left = camera_to_top_left - _vibration_margin(camera_to_top_left[2], vibration)
    if top_left[2] <= 0.0:
        return None
    x1, y1 = clamp_to_image(camera_model, project_to_pixel(camera_model, top_left))
    x_offset, y_offset = int(x1), int(y1)

    camera_to_bottom_right = map_to_camera.transform_point(traffic_mirror.bottom_right)
    dx, dy, dz = _vibration_margin(camera_to_bottom_right[2], vibration)
    bottom_right = camera_to_bottom_right + np.array([dx, dy, -dz])
    if bottom_right[2] <= 0.0:
        return None
    x2, y2 = clamp_to_image(camera_model, project_to_pixel(camera_model, bottom_right))
    width = int(x2) - x_offset
    height = int(y2) - y_offset

    if width < 1 or height < 1:
        return None

    return TrafficMirrorRoi(
        traffic_mirror_id=traffic_mirror.id,
        x_offset=x_offset,
        y_offset=y_offset,
        width=width,
        height=height,
    )


def aggregate_roi(
    camera_poses: Sequence[CameraPose],
    camera_model: PinholeCameraModel,
    traffic_mirror: TrafficMirror,
    vibration: VibrationConfig,
) -> Optional[TrafficMirrorRoi]:
    """
    Smallest box covering the ROIs of the mirror under every candidate pose.

    Poses whose projection fails are ignored.

    Returns:
        The union ROI, or None if the projection failed for every pose.
    """
    rois = [roi for roi in (project_roi(camera_pose, camera_model, traffic_mirror, vibration)
                            for camera_pose in camera_poses)
            if roi is not None]
    if not rois:
        return None

    x1 = min(roi.x_offset for roi in rois)
    y1 = min(roi.y_offset for roi in rois)
    x2 = max(roi.x_offset + roi.width for roi in rois)
    y2 = max(roi.y_offset + roi.height for roi in rois)

    return TrafficMirrorRoi(
        traffic_mirror_id=traffic_mirror.id,
        x_offset=x1,
        y_offset=y1,
        width=x2 - x1,
        height=y2 - y1,
    )


def compute_expected_roi(
    camera_pose: CameraPose,
    camera_model: PinholeCameraModel,
    traffic_mirror: TrafficMirror,
) -> Optional[TrafficMirrorRoi]:
    """ROI under the nominal pose with no vibration margin."""
    return project_roi(camera_pose, camera_model, traffic_mirror, VibrationConfig.zero())
