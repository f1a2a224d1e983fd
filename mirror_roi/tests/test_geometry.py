"""
Tests for the geometry primitives and rigid transforms.
"""

import math
import pytest
import numpy as np

from mirror_roi.calibration.load_calibration import PinholeCameraModel, camera_model_from_camera_info
from mirror_roi.geometry.primitives import (
    normalize_radian,
    project_to_pixel,
    clamp_to_image,
    is_in_distance_range,
    is_in_angle_range,
    is_in_image_frame,
)
from mirror_roi.geometry.transform import CameraPose, camera_rotation_from_yaw


@pytest.fixture
def camera_model():
    """640x480 pinhole camera, f=500, no distortion."""
    camera_matrix = np.array([
        [500.0, 0, 320.0],
        [0, 500.0, 240.0],
        [0, 0, 1]
    ], dtype=np.float64)

    return PinholeCameraModel(
        camera_matrix=camera_matrix,
        dist_coeffs=np.zeros(5),
        resolution=(640, 480),
    )


class TestNormalizeRadian:
    """Tests for normalize_radian."""

    def test_values_in_range_unchanged(self):
        for angle in [0.0, 0.5, -0.5, 3.0, -3.0]:
            assert normalize_radian(angle) == pytest.approx(angle)

    def test_wraps_into_range(self):
        assert normalize_radian(1.5 * math.pi) == pytest.approx(-0.5 * math.pi)
        assert normalize_radian(-1.5 * math.pi) == pytest.approx(0.5 * math.pi)
        assert normalize_radian(5.0 * math.pi / 2.0) == pytest.approx(math.pi / 2.0)

    def test_upper_bound_inclusive(self):
        """(-pi, pi]: pi stays, -pi maps to pi."""
        assert normalize_radian(math.pi) == pytest.approx(math.pi)
        assert normalize_radian(-math.pi) == pytest.approx(math.pi)


class TestProjection:
    """Tests for project_to_pixel and clamp_to_image."""

    def test_optical_axis_hits_principal_point(self, camera_model):
        u, v = project_to_pixel(camera_model, np.array([0.0, 0.0, 5.0]))

        assert u == pytest.approx(320.0)
        assert v == pytest.approx(240.0)

    def test_pinhole_projection(self, camera_model):
        u, v = project_to_pixel(camera_model, np.array([1.0, -1.0, 10.0]))

        assert u == pytest.approx(370.0)
        assert v == pytest.approx(190.0)

    def test_unrectify_applies_distortion(self):
        """With k1 > 0 an off-axis point is pushed outwards in the raw image."""
        model = camera_model_from_camera_info({
            'width': 640,
            'height': 480,
            'k': [500.0, 0.0, 320.0, 0.0, 500.0, 240.0, 0.0, 0.0, 1.0],
            'd': [0.1, 0.0, 0.0, 0.0, 0.0],
        })

        u, v = project_to_pixel(model, np.array([0.2, 0.0, 1.0]))

        # r^2 = 0.04 -> x_d = 0.2 * (1 + 0.1 * 0.04) = 0.2008
        assert u == pytest.approx(320.0 + 500.0 * 0.2008, abs=1e-6)
        assert v == pytest.approx(240.0, abs=1e-6)

    def test_unrectify_keeps_principal_point(self):
        model = camera_model_from_camera_info({
            'width': 640,
            'height': 480,
            'k': [500.0, 0.0, 320.0, 0.0, 500.0, 240.0, 0.0, 0.0, 1.0],
            'd': [-0.3, 0.1, 0.001, 0.001, 0.0],
        })

        u, v = project_to_pixel(model, np.array([0.0, 0.0, 3.0]))

        assert u == pytest.approx(320.0, abs=1e-6)
        assert v == pytest.approx(240.0, abs=1e-6)

    @pytest.mark.parametrize("d", [
        [0.0, 0.0, 0.0, 0.0, 0.0],
        [1e-12, 0.0, 0.0, 0.0, 0.0],
    ])
    def test_rectified_focal_length_differs_from_raw(self, d):
        """P with fx=400 over K with fx=500: raw pixel goes back through K."""
        model = camera_model_from_camera_info({
            'width': 640,
            'height': 480,
            'k': [500.0, 0.0, 320.0, 0.0, 500.0, 240.0, 0.0, 0.0, 1.0],
            'd': d,
            'p': [400.0, 0.0, 320.0, 0.0, 0.0, 400.0, 240.0, 0.0, 0.0, 0.0, 1.0, 0.0],
        })

        assert model.project3d_to_pixel([0.1, 0.0, 1.0])[0] == pytest.approx(360.0)
        u, v = project_to_pixel(model, np.array([0.1, 0.0, 1.0]))

        assert u == pytest.approx(370.0, abs=1e-6)
        assert v == pytest.approx(240.0, abs=1e-6)

    def test_projection_translation_is_removed(self):
        """A stereo baseline term Tx in P does not shift the raw pixel."""
        model = camera_model_from_camera_info({
            'width': 640,
            'height': 480,
            'k': [500.0, 0.0, 320.0, 0.0, 500.0, 240.0, 0.0, 0.0, 1.0],
            'd': [0.0, 0.0, 0.0, 0.0, 0.0],
            'p': [500.0, 0.0, 320.0, -40.0, 0.0, 500.0, 240.0, 0.0, 0.0, 0.0, 1.0, 0.0],
        })

        u, v = project_to_pixel(model, np.array([0.1, 0.2, 1.0]))

        assert u == pytest.approx(370.0, abs=1e-6)
        assert v == pytest.approx(340.0, abs=1e-6)

    def test_clamp_to_image(self, camera_model):
        assert clamp_to_image(camera_model, (-5.0, 700.0)) == (0.0, 479.0)
        assert clamp_to_image(camera_model, (1000.0, -1.0)) == (639.0, 0.0)
        assert clamp_to_image(camera_model, (12.5, 34.5)) == (12.5, 34.5)


class TestGates:
    """Tests for the distance, angle and image-frame predicates."""

    def test_distance_range_ignores_height(self):
        assert is_in_distance_range([3.0, 4.0, 100.0], [0.0, 0.0, -50.0], 5.1) == True

    def test_distance_range_boundary_excluded(self):
        """A distance equal to the range is out of range."""
        assert is_in_distance_range([3.0, 4.0, 0.0], [0.0, 0.0, 0.0], 5.0) == False
        assert is_in_distance_range([3.0, 4.0, 0.0], [0.0, 0.0, 0.0], 5.0001) == True

    @pytest.mark.parametrize("yaw1, yaw2", [
        (0.0, 0.5),
        (0.2, -0.4),
        (3.0, -3.0),
        (-2.5, 1.0),
        (1.2, 1.2 + 2 * math.pi),
    ])
    def test_angle_range_symmetric(self, yaw1, yaw2):
        for max_angle in [0.1, math.radians(40.0), 2.0]:
            assert is_in_angle_range(yaw1, yaw2, max_angle) == is_in_angle_range(yaw2, yaw1, max_angle)

    def test_angle_range_wraps(self):
        """3.0 and -3.0 rad are only ~0.28 rad apart."""
        assert is_in_angle_range(3.0, -3.0, 0.3) == True
        assert is_in_angle_range(3.0, -3.0, 0.25) == False

    def test_angle_range_sign_is_ignored(self):
        assert is_in_angle_range(0.0, 0.5, 0.6) == is_in_angle_range(0.0, -0.5, 0.6) == True

    def test_angle_range_identical_headings(self):
        assert is_in_angle_range(0.7, 0.7, 1e-6) == True

    def test_image_frame_behind_camera(self, camera_model):
        assert is_in_image_frame(camera_model, np.array([0.0, 0.0, 0.0])) == False
        assert is_in_image_frame(camera_model, np.array([0.0, 0.0, -5.0])) == False

    def test_image_frame_inside_and_outside(self, camera_model):
        assert is_in_image_frame(camera_model, np.array([0.0, 0.0, 1.0])) == True
        assert is_in_image_frame(camera_model, np.array([0.6, 0.0, 1.0])) == True
        assert is_in_image_frame(camera_model, np.array([0.7, 0.0, 1.0])) == False
        assert is_in_image_frame(camera_model, np.array([0.0, -0.5, 1.0])) == False


class TestCameraPose:
    """Tests for CameraPose."""

    def test_inverse_round_trip(self):
        pose = CameraPose.from_rotation([1.0, 2.0, 3.0], camera_rotation_from_yaw(0.4, 0.1))
        point = np.array([10.0, -3.0, 2.0])

        back = pose.transform_point(pose.inverse().transform_point(point))

        np.testing.assert_array_almost_equal(back, point)

    def test_forward_camera_axes(self):
        """Camera looking along +X: optical z -> map x, optical x -> map -y."""
        rotation = camera_rotation_from_yaw(0.0).as_matrix()

        np.testing.assert_array_almost_equal(rotation @ [0, 0, 1], [1, 0, 0])
        np.testing.assert_array_almost_equal(rotation @ [1, 0, 0], [0, -1, 0])
        np.testing.assert_array_almost_equal(rotation @ [0, 1, 0], [0, 0, -1])

    def test_positive_pitch_looks_down(self):
        rotation = camera_rotation_from_yaw(0.0, 0.2).as_matrix()

        assert (rotation @ [0, 0, 1])[2] < 0

    @pytest.mark.parametrize("yaw", [0.0, 0.5, -1.2, 3.0])
    def test_optical_axis_yaw(self, yaw):
        pose = CameraPose.from_rotation([5.0, 5.0, 1.0], camera_rotation_from_yaw(yaw, 0.1))

        assert pose.optical_axis_yaw() == pytest.approx(yaw)

    def test_from_quaternion_identity(self):
        pose = CameraPose.from_quaternion([1.0, 2.0, 3.0], [0.0, 0.0, 0.0, 1.0])

        np.testing.assert_array_almost_equal(pose.rotation, np.eye(3))
        np.testing.assert_array_almost_equal(pose.origin, [1.0, 2.0, 3.0])

    def test_pose_is_read_only(self):
        pose = CameraPose.identity()

        with pytest.raises(ValueError):
            pose.translation[0] = 1.0
