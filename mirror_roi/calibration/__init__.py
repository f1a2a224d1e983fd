"""
Calibration module - Pinhole camera model and loaders.
"""

from .load_calibration import (
    PinholeCameraModel,
    camera_model_from_camera_info,
    load_camera_calibration,
    load_camera_from_config,
)


__all__ = [
    'PinholeCameraModel',
    'camera_model_from_camera_info',
    'load_camera_calibration',
    'load_camera_from_config',
]
