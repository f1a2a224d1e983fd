"""
Rigid transforms between the map frame and the camera optical frame.

Conventions
-----------
Map frame:            X east, Y north, Z up.
Camera optical frame: X right, Y down, Z forward (optical axis).

A CameraPose is the transform looked up as ``map <- camera``: it maps points
expressed in the camera frame into the map frame,

    p_map = R @ p_cam + t

so ``t`` is the camera origin in the map and ``pose.inverse()`` brings map
points into the camera frame.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Sequence
from scipy.spatial.transform import Rotation

from .primitives import normalize_radian


@dataclass(frozen=True, eq=False)
class CameraPose:
    """
    Immutable rigid transform (rotation + translation).

    Attributes:
        rotation:    3×3 rotation matrix R.
        translation: (3,) translation vector t.
    """
    rotation:    np.ndarray
    translation: np.ndarray

    def __post_init__(self):
        rotation = np.array(self.rotation, dtype=np.float64).reshape(3, 3)
        translation = np.array(self.translation, dtype=np.float64).reshape(3)
        rotation.setflags(write=False)
        translation.setflags(write=False)
        object.__setattr__(self, 'rotation', rotation)
        object.__setattr__(self, 'translation', translation)

    @classmethod
    def identity(cls) -> 'CameraPose':
        return cls(np.eye(3), np.zeros(3))

    @classmethod
    def from_quaternion(cls, translation: Sequence[float], quaternion: Sequence[float]) -> 'CameraPose':
        """
        Build a pose from a translation and a unit quaternion.

        Args:
            translation: (x, y, z).
            quaternion:  (x, y, z, w), scalar-last like geometry_msgs.
        """
        rotation = Rotation.from_quat(quaternion).as_matrix()
        return cls(rotation, np.asarray(translation, dtype=np.float64))

    @classmethod
    def from_rotation(cls, translation: Sequence[float], rotation: Rotation) -> 'CameraPose':
        return cls(rotation.as_matrix(), np.asarray(translation, dtype=np.float64))

    @property
    def origin(self) -> np.ndarray:
        """Position of the child frame origin in the parent frame."""
        return self.translation

    def inverse(self) -> 'CameraPose':
        rotation_t = self.rotation.T
        return CameraPose(rotation_t, -rotation_t @ self.translation)

    def transform_point(self, point: Sequence[float]) -> np.ndarray:
        """Apply the transform to a single 3D point."""
        return self.rotation @ np.asarray(point, dtype=np.float64) + self.translation

    def compose(self, other: 'CameraPose') -> 'CameraPose':
        """Return ``self * other`` (apply ``other`` first)."""
        return CameraPose(self.rotation @ other.rotation,
                          self.rotation @ other.translation + self.translation)

    def optical_axis_yaw(self) -> float:
        """
        Heading of the camera optical (z) axis projected on the map XY plane.

        Returns:
            Yaw in radians, normalized to (-pi, pi].
        """
        z_dir = self.rotation @ np.array([0.0, 0.0, 1.0])
        return normalize_radian(math.atan2(z_dir[1], z_dir[0]))


def camera_rotation_from_yaw(yaw: float, pitch: float = 0.0) -> Rotation:
    """
    Orientation of an upright camera whose optical axis points at ``yaw``.

    The base rotation maps the optical frame onto the map frame for a camera
    looking along +X (optical Z -> map X, optical X -> map -Y,
    optical Y -> map -Z). A positive pitch tilts the optical axis down.

    Args:
        yaw:   Heading of the optical axis in the map frame (radians).
        pitch: Downward tilt (radians).

    Returns:
        scipy Rotation mapping camera-frame vectors to map-frame vectors.
    """
    optical_to_forward = Rotation.from_matrix(np.array([
        [0.0,  0.0, 1.0],
        [-1.0, 0.0, 0.0],
        [0.0, -1.0, 0.0],
    ]))
    heading = Rotation.from_euler('ZY', [yaw, pitch])
    return heading * optical_to_forward
