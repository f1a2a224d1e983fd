"""
draw_utils.py - Visualization helpers for traffic mirror ROIs.
"""

import cv2
import numpy as np
from typing import Iterable, Tuple

from mirror_roi.detection.roi_projector import TrafficMirrorRoi


ROUGH_ROI_COLOR = (0, 165, 255)      # orange (BGR)
EXPECTED_ROI_COLOR = (0, 255, 0)     # green


def blank_frame(width: int, height: int) -> np.ndarray:
    """Black BGR canvas the size of the camera image."""
    return np.zeros((height, width, 3), dtype=np.uint8)


def draw_rois(frame: np.ndarray,
              rois: Iterable[TrafficMirrorRoi],
              color: Tuple[int, int, int],
              thickness: int = 2,
              label: bool = True) -> None:
    """Draws each ROI rectangle, optionally tagged with its traffic mirror id."""
    for roi in rois:
        top_left = (roi.x_offset, roi.y_offset)
        bottom_right = (roi.x_offset + roi.width, roi.y_offset + roi.height)
        cv2.rectangle(frame, top_left, bottom_right, color, thickness, cv2.LINE_AA)

        if label:
            text_y = roi.y_offset - 6 if roi.y_offset > 16 else roi.y_offset + roi.height + 16
            cv2.putText(frame, str(roi.traffic_mirror_id), (roi.x_offset, text_y),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA)


def draw_frame_result(frame: np.ndarray, result) -> np.ndarray:
    """
    Draws rough (orange) and expected (green) ROIs of one FrameResult plus a
    small info banner. Returns an annotated copy.
    """
    annotated = frame.copy()
    draw_rois(annotated, result.rois, ROUGH_ROI_COLOR, thickness=2)
    draw_rois(annotated, result.expect_rois, EXPECTED_ROI_COLOR, thickness=1, label=False)

    y_offset = 20
    for text in [f"Stamp: {result.stamp:.3f}",
                 f"Frame: {result.frame_id}",
                 f"Mirrors: {len(result.rois)}"]:
        cv2.putText(annotated, text, (10, y_offset),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
        y_offset += 20
    return annotated
