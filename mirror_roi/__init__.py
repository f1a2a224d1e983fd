"""
Traffic Mirror ROI Package
Map-based detection of traffic mirror regions of interest in camera frames.
"""

__version__ = "1.0.0"

# Main entry points
from mirror_roi.utils.config_loader import load_config
from mirror_roi.utils.detector_config import DetectorConfig, VibrationConfig
from mirror_roi.calibration.load_calibration import PinholeCameraModel
from mirror_roi.detection.map_based_detector import MapBasedDetector, FrameResult

__all__ = [
    'load_config',
    'DetectorConfig',
    'VibrationConfig',
    'PinholeCameraModel',
    'MapBasedDetector',
    'FrameResult',
]
