"""
Detection module - Visibility filtering, ROI projection and the per-frame detector.
"""

from .visibility_filter import get_visible_traffic_mirrors, is_visible_from
from .roi_projector import (
    TrafficMirrorRoi,
    project_roi,
    aggregate_roi,
    compute_expected_roi,
)
from .map_based_detector import MapBasedDetector, DetectorState, FrameResult

__all__ = [
    'get_visible_traffic_mirrors',
    'is_visible_from',
    'TrafficMirrorRoi',
    'project_roi',
    'aggregate_roi',
    'compute_expected_roi',
    'MapBasedDetector',
    'DetectorState',
    'FrameResult',
]
