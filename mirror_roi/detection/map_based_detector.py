"""
map_based_detector.py

Per-frame traffic mirror ROI computation from the vector map.

MapBasedDetector plays the role of the detector node: it receives the map,
the route and one CameraInfo per camera frame, and produces for each frame

  rois         – rough ROIs, vibration-inflated and unioned over every
                 candidate pose of the timestamp window;
  expect_rois  – expected ROIs, nominal pose and no vibration;
  markers      – debug beams from the camera to every visible mirror.

Map and route updates never modify the state a frame is working on: they
build a new DetectorState and swap the reference under a lock, so a frame
reads either the old or the new traffic mirror sets, never a mix.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import List, Optional, Protocol

from mirror_roi.calibration.load_calibration import camera_model_from_camera_info
from mirror_roi.detection.roi_projector import (
    TrafficMirrorRoi,
    aggregate_roi,
    compute_expected_roi,
)
from mirror_roi.detection.visibility_filter import get_visible_traffic_mirrors
from mirror_roi.mapping.lanelet_map import LaneletMap, LaneletRoute, MapReferenceError
from mirror_roi.mapping.traffic_mirror import TrafficMirrorSet
from mirror_roi.tracking.pose_sampler import TransformLookup, get_candidate_poses
from mirror_roi.utils.detector_config import DetectorConfig
from mirror_roi.utils.throttle import ThrottledLogger
from mirror_roi.visualization.markers import BeamMarker, build_beam_markers


logger = logging.getLogger(__name__)

NO_TRANSFORM_WARN_PERIOD = 5.0  # s


@dataclass(frozen=True)
class DetectorState:
    """Immutable snapshot of the map-derived data a frame works on."""
    lanelet_map:           Optional[LaneletMap] = None
    all_traffic_mirrors:   Optional[TrafficMirrorSet] = None
    route_traffic_mirrors: Optional[TrafficMirrorSet] = None

    @property
    def active_traffic_mirrors(self) -> Optional[TrafficMirrorSet]:
        """Route mirrors when a route is known, otherwise every map mirror."""
        if self.route_traffic_mirrors is not None:
            return self.route_traffic_mirrors
        return self.all_traffic_mirrors


@dataclass
class FrameResult:
    stamp:       float
    frame_id:    str
    rois:        List[TrafficMirrorRoi] = field(default_factory=list)
    expect_rois: List[TrafficMirrorRoi] = field(default_factory=list)
    markers:     List[BeamMarker] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'stamp': self.stamp,
            'frame_id': self.frame_id,
            'rois': [roi.as_dict() for roi in self.rois],
            'expect_rois': [roi.as_dict() for roi in self.expect_rois],
            'markers': [marker.as_dict() for marker in self.markers],
        }


class FramePublisher(Protocol):
    def publish(self, result: FrameResult) -> None:
        ...


class MapBasedDetector:
    """
    Args:
        config:    Detector parameters; validated (and corrected) here once.
        tf_lookup: Provider of ``map <- camera`` poses.
        publisher: Optional sink receiving every FrameResult.
    """

    def __init__(self, config: DetectorConfig, tf_lookup: TransformLookup,
                 publisher: Optional[FramePublisher] = None):
        self.config = config.validate()
        self.tf_lookup = tf_lookup
        self.publisher = publisher

        self._state = DetectorState()
        self._state_lock = threading.Lock()
        self._throttled = ThrottledLogger(logger, NO_TRANSFORM_WARN_PERIOD)

    @property
    def state(self) -> DetectorState:
        return self._state

    # ------------------------------------------------------------------
    # Map / route input
    # ------------------------------------------------------------------

    def on_map(self, lanelet_map: LaneletMap) -> None:
        """Replace the loaded map and the full traffic mirror set."""
        all_traffic_mirrors = lanelet_map.all_traffic_mirrors()
        with self._state_lock:
            self._state = replace(self._state,
                                  lanelet_map=lanelet_map,
                                  all_traffic_mirrors=all_traffic_mirrors)
        logger.info("Map received: %d traffic mirrors", len(all_traffic_mirrors))

    def on_route(self, route: LaneletRoute) -> bool:
        """
        Restrict detection to the traffic mirrors along a route.

        Returns:
            False if no map is loaded yet or the route refers to lanelets
            absent from the map; the previous sets stay in effect.
        """
        lanelet_map = self._state.lanelet_map
        if lanelet_map is None:
            logger.warning("cannot set traffic mirror in route because don't receive map")
            return False

        try:
            route_traffic_mirrors = lanelet_map.route_traffic_mirrors(route)
        except MapReferenceError as e:
            logger.error("%s", e)
            return False

        with self._state_lock:
            self._state = replace(self._state, route_traffic_mirrors=route_traffic_mirrors)
        logger.info("Route received: %d traffic mirrors on route", len(route_traffic_mirrors))
        return True

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------

    def on_camera_info(self, camera_info: dict) -> Optional[FrameResult]:
        """
        Compute the ROIs of one camera frame.

        Args:
            camera_info: CameraInfo dict with a ``header`` (``stamp`` in
                         seconds, ``frame_id``) and the intrinsics.

        Returns:
            FrameResult, or None when there is no traffic mirror data or no
            camera pose at the frame stamp.
        """
        state = self._state
        traffic_mirrors = state.active_traffic_mirrors
        if traffic_mirrors is None:
            logger.debug("No traffic mirror data available, skipping camera callback")
            return None

        header = camera_info.get('header') or {}
        frame_id = header.get('frame_id', 'camera')

        try:
            stamp = float(header.get('stamp', 0.0))
            camera_model = camera_model_from_camera_info(camera_info)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Invalid camera info for frame %s: %s", frame_id, e)
            return None

        poses = get_candidate_poses(self.tf_lookup, stamp, frame_id,
                                    self.config.min_timestamp_offset,
                                    self.config.max_timestamp_offset)
        if poses is None:
            self._throttled.warning('no_transform',
                                    "cannot get transform from map frame to camera frame")
            return None
        nominal_pose, candidate_poses = poses

        visible_traffic_mirrors = get_visible_traffic_mirrors(
            traffic_mirrors, candidate_poses, camera_model, self.config.max_detection_range)

        result = FrameResult(stamp=stamp, frame_id=frame_id)
        vibration = self.config.vibration
        for traffic_mirror in visible_traffic_mirrors:
            expect_roi = compute_expected_roi(nominal_pose, camera_model, traffic_mirror)
            if expect_roi is None:
                continue
            rough_roi = aggregate_roi(candidate_poses, camera_model, traffic_mirror, vibration)
            if rough_roi is None:
                continue
            result.rois.append(rough_roi)
            result.expect_rois.append(expect_roi)

        result.markers = build_beam_markers(candidate_poses[0], visible_traffic_mirrors)

        if self.publisher is not None:
            self.publisher.publish(result)
        return result
