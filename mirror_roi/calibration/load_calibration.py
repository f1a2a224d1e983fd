"""
load_calibration.py

Pinhole camera model and the loaders that build it.

A PinholeCameraModel mirrors the fields of a ROS CameraInfo message:

    K  – 3×3 intrinsic matrix of the raw (distorted) image.
    D  – distortion coefficients in OpenCV order [k1, k2, p1, p2, k3, ...].
    R  – 3×3 rectification rotation (identity for a monocular camera).
    P  – 3×4 projection matrix of the rectified image.

Supported sources
-----------------
CameraInfo dict  – keys 'width', 'height', 'k', 'd', 'r', 'p' (upper- or
                   lower-case), as published alongside every frame.
camera config    – the ``camera`` section of camera_config.yaml with
                   ``intrinsics``, ``distortion`` and ``resolution``.
.npz archive     – saved with ``np.savez``, keys 'camera_matrix' (or 'mtx')
                   and 'dist_coeffs' (or 'dist').
"""

import logging
import cv2
import numpy as np
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Tuple

from mirror_roi.utils.config_loader import get_nested_value


logger = logging.getLogger(__name__)


# ===========================================================================
# Data container
# ===========================================================================

@dataclass(eq=False)
class PinholeCameraModel:
    """
    Intrinsic projection parameters of one camera for one frame.

    Attributes:
        camera_matrix:         3×3 intrinsic matrix K.
        dist_coeffs:           Distortion coefficients, at least 5 elements
                               in OpenCV order [k1, k2, p1, p2, k3].
        resolution:            (width, height) in pixels.
        rectification_matrix:  3×3 rectification rotation R.
        projection_matrix:     3×4 rectified projection matrix P. Built as
                               [K | 0] when not supplied.
    """
    camera_matrix:        np.ndarray
    dist_coeffs:          np.ndarray
    resolution:           Tuple[int, int]
    rectification_matrix: np.ndarray = field(default_factory=lambda: np.eye(3))
    projection_matrix:    Optional[np.ndarray] = None

    def __post_init__(self):
        """Validate and normalise shapes after construction."""
        self.camera_matrix = np.asarray(self.camera_matrix, dtype=np.float64).reshape(3, 3)
        self.rectification_matrix = np.asarray(
            self.rectification_matrix, dtype=np.float64).reshape(3, 3)

        # cv2.projectPoints accepts 4, 5, 8, 12 or 14 coefficients
        flat = np.asarray(self.dist_coeffs, dtype=np.float64).flatten()
        if len(flat) < 5:
            flat = np.pad(flat, (0, 5 - len(flat)))
        self.dist_coeffs = flat

        if self.projection_matrix is None or not np.any(self.projection_matrix):
            self.projection_matrix = np.hstack([self.camera_matrix, np.zeros((3, 1))])
        self.projection_matrix = np.asarray(
            self.projection_matrix, dtype=np.float64).reshape(3, 4)

        width, height = self.resolution
        if width <= 0 or height <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        self.resolution = (int(width), int(height))

        # Rodrigues vector of R, reused by every unrectify_point call
        self._rectification_rvec, _ = cv2.Rodrigues(self.rectification_matrix)

    # Convenience accessors, read from P like image_geometry does

    @property
    def width(self) -> int:
        return self.resolution[0]

    @property
    def height(self) -> int:
        return self.resolution[1]

    @property
    def fx(self) -> float:
        """Focal length along the x-axis of the rectified image (pixels)."""
        return float(self.projection_matrix[0, 0])

    @property
    def fy(self) -> float:
        """Focal length along the y-axis of the rectified image (pixels)."""
        return float(self.projection_matrix[1, 1])

    @property
    def cx(self) -> float:
        """Principal point x-coordinate of the rectified image (pixels)."""
        return float(self.projection_matrix[0, 2])

    @property
    def cy(self) -> float:
        """Principal point y-coordinate of the rectified image (pixels)."""
        return float(self.projection_matrix[1, 2])

    @property
    def Tx(self) -> float:
        return float(self.projection_matrix[0, 3])

    @property
    def Ty(self) -> float:
        return float(self.projection_matrix[1, 3])

    @property
    def is_distorted(self) -> bool:
        return bool(np.any(self.dist_coeffs))

    @property
    def _is_identity_rectification(self) -> bool:
        """Raw and rectified pixels coincide: no D, R = I and P = [K | 0]."""
        return (not self.is_distorted
                and np.allclose(self.rectification_matrix, np.eye(3))
                and np.allclose(self.projection_matrix[:, :3], self.camera_matrix)
                and self.Tx == 0.0
                and self.Ty == 0.0)

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def project3d_to_pixel(self, point3d: np.ndarray) -> Tuple[float, float]:
        """
        Project a camera-frame 3D point onto the rectified image.

        Args:
            point3d: (x, y, z) in the camera optical frame, z > 0.

        Returns:
            (u, v) rectified pixel coordinate.
        """
        x, y, z = (float(c) for c in point3d)
        u = (self.fx * x + self.Tx) / z + self.cx
        v = (self.fy * y + self.Ty) / z + self.cy
        return u, v

    def unrectify_point(self, uv_rect: Tuple[float, float]) -> Tuple[float, float]:
        """
        Map a rectified pixel to the raw (distorted) image.

        The rectified pixel is turned back into a ray through P, rotated by R
        and re-projected with K and D.

        Args:
            uv_rect: (u, v) in the rectified image.

        Returns:
            (u, v) in the raw image.
        """
        if self._is_identity_rectification:
            return float(uv_rect[0]), float(uv_rect[1])

        ray = np.array([[
            (uv_rect[0] - self.cx - self.Tx) / self.fx,
            (uv_rect[1] - self.cy - self.Ty) / self.fy,
            1.0,
        ]], dtype=np.float64)

        image_points, _ = cv2.projectPoints(
            ray,
            self._rectification_rvec,
            np.zeros(3),
            self.camera_matrix,
            self.dist_coeffs,
        )
        u, v = image_points.reshape(2)
        return float(u), float(v)

    def to_camera_info(self) -> dict:
        """CameraInfo-like dict, the inverse of ``camera_model_from_camera_info``."""
        return {
            'width': self.width,
            'height': self.height,
            'k': self.camera_matrix.flatten().tolist(),
            'd': self.dist_coeffs.tolist(),
            'r': self.rectification_matrix.flatten().tolist(),
            'p': self.projection_matrix.flatten().tolist(),
        }


# ===========================================================================
# CameraInfo loader
# ===========================================================================

def _camera_info_field(camera_info: dict, key: str):
    """Read a CameraInfo field under either its ROS 2 (lower) or ROS 1 (upper) name."""
    if key in camera_info:
        return camera_info[key]
    return camera_info.get(key.upper())


def camera_model_from_camera_info(camera_info: dict) -> PinholeCameraModel:
    """
    Build a PinholeCameraModel from a CameraInfo-like dictionary.

    Args:
        camera_info: Dict with 'width', 'height', 'k' (9 values) and
                     optionally 'd', 'r' (9 values), 'p' (12 values).

    Returns:
        PinholeCameraModel instance.

    Raises:
        ValueError: If the intrinsic matrix is missing.
    """
    k = _camera_info_field(camera_info, 'k')
    if k is None:
        raise ValueError("CameraInfo has no intrinsic matrix 'k'")

    d = _camera_info_field(camera_info, 'd')
    r = _camera_info_field(camera_info, 'r')
    p = _camera_info_field(camera_info, 'p')

    return PinholeCameraModel(
        camera_matrix=np.asarray(k, dtype=np.float64),
        dist_coeffs=np.asarray(d if d is not None else [], dtype=np.float64),
        resolution=(int(camera_info['width']), int(camera_info['height'])),
        rectification_matrix=np.asarray(r, dtype=np.float64) if r is not None and np.any(r) else np.eye(3),
        projection_matrix=np.asarray(p, dtype=np.float64) if p is not None else None,
    )


# ===========================================================================
# Calibration file loader
# ===========================================================================

def load_camera_calibration(
    calibration_path: str,
    resolution: Tuple[int, int],
) -> PinholeCameraModel:
    """
    Load camera intrinsic parameters from a .npz calibration archive.

    Args:
        calibration_path: Path to the calibration file (.npz).
        resolution:       (width, height) of the images the calibration
                          belongs to.

    Returns:
        PinholeCameraModel instance with float64 arrays.

    Raises:
        FileNotFoundError: If the calibration file does not exist.
        ValueError:        If the camera matrix cannot be located.
    """
    calib_file = Path(calibration_path)
    if not calib_file.exists():
        raise FileNotFoundError(f"Calibration file not found: {calibration_path}")

    with np.load(calibration_path) as data:
        if 'camera_matrix' in data.files:
            camera_matrix = data['camera_matrix']
        elif 'mtx' in data.files:
            camera_matrix = data['mtx']
        else:
            raise ValueError(
                f"Could not locate 'camera_matrix' in {calibration_path}. "
                f"Keys found: {data.files}"
            )

        if 'dist_coeffs' in data.files:
            dist_coeffs = data['dist_coeffs']
        elif 'dist' in data.files:
            dist_coeffs = data['dist']
        else:
            logger.warning("Distortion coefficients not found in %s, using zeros",
                           calibration_path)
            dist_coeffs = np.zeros(5)

    return PinholeCameraModel(
        camera_matrix=np.asarray(camera_matrix, dtype=np.float64),
        dist_coeffs=np.asarray(dist_coeffs, dtype=np.float64),
        resolution=resolution,
    )


# ===========================================================================
# Config-driven loader
# ===========================================================================

def load_camera_from_config(config: dict) -> PinholeCameraModel:
    """
    Build a PinholeCameraModel from a configuration dictionary.

    If a calibration file is referenced in the config and exists on disk,
    it is loaded via ``load_camera_calibration``. Otherwise the intrinsic
    matrix is assembled from the individual parameters (fx, fy, cx, cy) and
    distortion coefficients listed in the config.

    Args:
        config: Top-level configuration dict (from camera_config.yaml).

    Returns:
        PinholeCameraModel instance.
    """
    resolution = (get_nested_value(config, 'camera.resolution.width', 640),
                  get_nested_value(config, 'camera.resolution.height', 480))

    calib_file = get_nested_value(config, 'camera.calibration_file')
    if calib_file and Path(calib_file).exists():
        return load_camera_calibration(calib_file, resolution)

    intr = get_nested_value(config, 'camera.intrinsics', {})
    dist = get_nested_value(config, 'camera.distortion', {})

    camera_matrix = np.array([
        [intr.get('fx', 500.0), 0.0,                   intr.get('cx', 320.0)],
        [0.0,                   intr.get('fy', 500.0), intr.get('cy', 240.0)],
        [0.0,                   0.0,                   1.0],
    ], dtype=np.float64)

    dist_coeffs = np.array([
        dist.get('k1', 0.0),
        dist.get('k2', 0.0),
        dist.get('p1', 0.0),
        dist.get('p2', 0.0),
        dist.get('k3', 0.0),
    ], dtype=np.float64)

    return PinholeCameraModel(
        camera_matrix=camera_matrix,
        dist_coeffs=dist_coeffs,
        resolution=resolution,
    )
