"""
Visualization module - Debug markers and ROI rendering.
"""

from .markers import BeamMarker, build_beam_markers
from .draw_utils import blank_frame, draw_rois, draw_frame_result

__all__ = [
    'BeamMarker',
    'build_beam_markers',
    'blank_frame',
    'draw_rois',
    'draw_frame_result',
]
