"""
Utility functions for configuration, logging and result I/O.
"""

from .config_loader import load_config, load_all_configs, get_nested_value
from .detector_config import DetectorConfig, VibrationConfig
from .data_io import save_frame_results, load_frame_results
from .throttle import ThrottledLogger

__all__ = [
    'load_config',
    'load_all_configs',
    'get_nested_value',
    'DetectorConfig',
    'VibrationConfig',
    'save_frame_results',
    'load_frame_results',
    'ThrottledLogger',
]
