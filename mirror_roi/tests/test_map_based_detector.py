"""
Tests for MapBasedDetector: map / route handling and per-frame ROIs.
"""

import logging
import math
import pytest
import numpy as np

from mirror_roi.detection.map_based_detector import FrameResult, MapBasedDetector
from mirror_roi.geometry.transform import CameraPose, camera_rotation_from_yaw
from mirror_roi.mapping.lanelet_map import LaneletRoute, load_lanelet_map
from mirror_roi.tracking.transform_buffer import TransformBuffer
from mirror_roi.utils.detector_config import DetectorConfig


FORWARD = np.array([
    [0.0, 0.0, 1.0],
    [-1.0, 0.0, 0.0],
    [0.0, -1.0, 0.0],
])


@pytest.fixture
def lanelet_map():
    """Mirror 1 on lanelet 10 (10 m ahead), mirror 3 on lanelet 11 (20 m ahead)."""
    return load_lanelet_map({
        'traffic_mirrors': [
            {'id': 1, 'points': [[10.0, 1.0, 0.0], [10.0, -1.0, 0.0]], 'height': 1.0,
             'subtype': 'convex'},
            {'id': 2, 'points': [[15.0, 1.0, 0.0], [15.0, -1.0, 0.0]], 'height': 1.0,
             'subtype': 'solid'},
            {'id': 3, 'points': [[20.0, 1.0, 0.0], [20.0, -1.0, 0.0]], 'height': 1.0,
             'subtype': 'convex'},
        ],
        'regulatory_elements': [
            {'id': 100, 'type': 'traffic_mirror', 'traffic_mirrors': [1, 2]},
            {'id': 101, 'type': 'traffic_mirror', 'traffic_mirrors': [3]},
        ],
        'lanelets': [
            {'id': 10, 'regulatory_elements': [100]},
            {'id': 11, 'regulatory_elements': [101]},
        ],
    })


class StaticLookup:
    """Camera standing still at the origin, looking along +X, at any stamp."""

    def __init__(self):
        self.pose = CameraPose(FORWARD, [0.0, 0.0, 0.0])

    def lookup_transform(self, stamp, frame_id, tolerance=0.2):
        return self.pose if frame_id == 'camera' else None


class NominalLooksAwayLookup:
    """Forward-looking camera, except at the nominal stamp where it faces -X."""

    def __init__(self, nominal_stamp):
        self.nominal_stamp = nominal_stamp
        self.forward = CameraPose(FORWARD, [0.0, 0.0, 0.0])
        self.backward = CameraPose.from_rotation([0.0, 0.0, 0.0], camera_rotation_from_yaw(math.pi))

    def lookup_transform(self, stamp, frame_id, tolerance=0.2):
        if abs(stamp - self.nominal_stamp) < 1e-9:
            return self.backward
        return self.forward


@pytest.fixture
def tf_buffer():
    return StaticLookup()


@pytest.fixture
def config():
    return DetectorConfig(max_vibration_width=0.2,
                          min_timestamp_offset=-0.05,
                          max_timestamp_offset=0.0)


@pytest.fixture
def camera_info():
    return {
        'header': {'stamp': 1.0, 'frame_id': 'camera'},
        'width': 640,
        'height': 480,
        'k': [500.0, 0.0, 320.0, 0.0, 500.0, 240.0, 0.0, 0.0, 1.0],
        'd': [0.0, 0.0, 0.0, 0.0, 0.0],
    }


@pytest.fixture
def detector(config, tf_buffer, lanelet_map):
    detector = MapBasedDetector(config, tf_buffer)
    detector.on_map(lanelet_map)
    return detector


def boxes(rois):
    return {roi.traffic_mirror_id: (roi.x_offset, roi.y_offset, roi.width, roi.height)
            for roi in rois}


class RecordingPublisher:
    def __init__(self):
        self.results = []

    def publish(self, result):
        self.results.append(result)


class TestFrameProcessing:
    """Tests for on_camera_info."""

    def test_rois_of_visible_mirrors(self, detector, camera_info):
        result = detector.on_camera_info(camera_info)

        assert isinstance(result, FrameResult)
        assert result.stamp == 1.0
        assert result.frame_id == 'camera'
        assert boxes(result.expect_rois) == {
            1: (270, 190, 100, 50),
            3: (295, 215, 50, 25),
        }
        assert boxes(result.rois) == {
            1: (265, 190, 110, 50),
            3: (292, 215, 55, 25),
        }

    def test_rois_and_expect_rois_are_paired(self, detector, camera_info):
        result = detector.on_camera_info(camera_info)

        assert [roi.traffic_mirror_id for roi in result.rois] == \
            [roi.traffic_mirror_id for roi in result.expect_rois]

    def test_markers(self, detector, camera_info):
        result = detector.on_camera_info(camera_info)

        markers = {marker.id: marker for marker in result.markers}
        assert sorted(markers) == [1, 3]
        assert markers[1].start == (0.0, 0.0, 0.0)
        np.testing.assert_array_almost_equal(markers[1].end, [0.0, -0.5, 10.0])
        assert markers[1].ns == 'beam'

    def test_no_traffic_mirror_data(self, config, tf_buffer, camera_info):
        detector = MapBasedDetector(config, tf_buffer)

        assert detector.on_camera_info(camera_info) is None

    def test_no_camera_pose_warning_is_throttled(self, config, lanelet_map, camera_info, caplog):
        detector = MapBasedDetector(config, TransformBuffer())
        detector.on_map(lanelet_map)

        with caplog.at_level(logging.WARNING):
            assert detector.on_camera_info(camera_info) is None
            assert detector.on_camera_info(camera_info) is None

        warnings = [r for r in caplog.records
                    if 'cannot get transform from map frame to camera frame' in r.getMessage()]
        assert len(warnings) == 1

    def test_invalid_camera_info(self, detector, camera_info):
        del camera_info['k']

        assert detector.on_camera_info(camera_info) is None

    def test_rough_roi_failure_drops_mirror(self, lanelet_map, camera_info):
        """A 50 m depth margin pushes every inflated corner behind the camera."""
        config = DetectorConfig(max_vibration_depth=50.0,
                                min_timestamp_offset=-0.05,
                                max_timestamp_offset=0.0)
        detector = MapBasedDetector(config, StaticLookup())
        detector.on_map(lanelet_map)

        result = detector.on_camera_info(camera_info)

        assert result.rois == []
        assert result.expect_rois == []
        # the mirrors are still visible
        assert sorted(marker.id for marker in result.markers) == [1, 3]

    def test_expected_roi_failure_drops_mirror(self, lanelet_map, camera_info):
        """Nominal pose looks away, every window pose sees the mirrors."""
        detector = MapBasedDetector(
            DetectorConfig(min_timestamp_offset=-0.05, max_timestamp_offset=-0.01),
            NominalLooksAwayLookup(nominal_stamp=1.0))
        detector.on_map(lanelet_map)

        result = detector.on_camera_info(camera_info)

        assert result.rois == []
        assert result.expect_rois == []
        assert sorted(marker.id for marker in result.markers) == [1, 3]

    def test_malformed_stamp(self, detector, camera_info):
        camera_info['header']['stamp'] = 'not-a-stamp'

        assert detector.on_camera_info(camera_info) is None

    def test_with_transform_buffer(self, config, lanelet_map, camera_info):
        buffer = TransformBuffer()
        for stamp in [0.0, 1.0, 2.0]:
            buffer.set_transform(stamp, 'camera', CameraPose(FORWARD, [0.0, 0.0, 0.0]))
        detector = MapBasedDetector(config, buffer)
        detector.on_map(lanelet_map)

        result = detector.on_camera_info(camera_info)

        assert boxes(result.expect_rois)[1] == (270, 190, 100, 50)
        assert sorted(boxes(result.rois)) == [1, 3]

    def test_unknown_camera_frame(self, detector, camera_info):
        camera_info['header']['frame_id'] = 'rear_camera'

        assert detector.on_camera_info(camera_info) is None

    def test_publisher_receives_results(self, config, tf_buffer, lanelet_map, camera_info):
        publisher = RecordingPublisher()
        detector = MapBasedDetector(config, tf_buffer, publisher=publisher)
        detector.on_map(lanelet_map)

        result = detector.on_camera_info(camera_info)

        assert publisher.results == [result]

    def test_as_dict(self, detector, camera_info):
        data = detector.on_camera_info(camera_info).as_dict()

        assert set(data) == {'stamp', 'frame_id', 'rois', 'expect_rois', 'markers'}
        assert len(data['rois']) == 2
        assert data['markers'][0]['points'][0] == [0.0, 0.0, 0.0]


class TestMapAndRoute:
    """Tests for on_map / on_route."""

    def test_config_validated_on_construction(self, tf_buffer):
        detector = MapBasedDetector(DetectorConfig(max_detection_range=-1.0), tf_buffer)

        assert detector.config.max_detection_range == 200.0

    def test_map_sets_all_mirrors(self, detector):
        assert sorted(detector.state.all_traffic_mirrors.ids) == [1, 2, 3]
        assert detector.state.route_traffic_mirrors is None

    def test_route_before_map(self, config, tf_buffer, caplog):
        detector = MapBasedDetector(config, tf_buffer)

        with caplog.at_level(logging.WARNING):
            assert detector.on_route(LaneletRoute(((10,),))) == False

        assert detector.state.route_traffic_mirrors is None
        assert any("don't receive map" in r.getMessage() for r in caplog.records)

    def test_route_restricts_mirrors(self, detector, camera_info):
        assert detector.on_route(LaneletRoute(((10,),))) == True

        result = detector.on_camera_info(camera_info)

        assert sorted(boxes(result.rois)) == [1]

    def test_route_with_unknown_lanelet_keeps_previous(self, detector, camera_info, caplog):
        detector.on_route(LaneletRoute(((11,),)))
        previous = detector.state

        with caplog.at_level(logging.ERROR):
            assert detector.on_route(LaneletRoute(((11, 99),))) == False

        assert detector.state is previous
        assert sorted(boxes(detector.on_camera_info(camera_info).rois)) == [3]
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_new_map_keeps_route_mirrors(self, detector, lanelet_map):
        detector.on_route(LaneletRoute(((11,),)))

        detector.on_map(lanelet_map)

        assert detector.state.route_traffic_mirrors.ids == (3,)
        assert detector.state.active_traffic_mirrors.ids == (3,)
