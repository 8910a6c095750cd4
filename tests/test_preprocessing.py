"""
Tests for PosePreprocessor: outlier removal, centering and average color.
"""

import numpy as np
import pytest

from grasp_recognition.vision.point_cloud import PointCloud
from grasp_recognition.vision.preprocessing import PosePreprocessor, average_color, remove_outliers


class TestPosePreprocessor:

    def test_empty_cloud_is_reported_not_raised(self, params):
        preprocessor = PosePreprocessor(params)
        assert preprocessor.preprocess(PointCloud.empty("camera")) is None

    def test_centers_on_computed_centroid(self, params, make_box_cloud):
        cloud = make_box_cloud(offset=(0.5, -0.2, 0.8))
        centered, centroid = PosePreprocessor(params).preprocess(cloud)

        assert np.allclose(centered.points.mean(axis=0), 0.0, atol=1e-9)
        assert np.allclose(centroid, [0.5, -0.2, 0.8], atol=5e-3)
        assert centered.frame_id == cloud.frame_id

    def test_uses_precomputed_centroid(self, params, make_box_cloud):
        cloud = make_box_cloud(offset=(1.0, 1.0, 1.0))
        given = np.array([1.0, 1.0, 1.0])

        centered, centroid = PosePreprocessor(params).preprocess(cloud, given)

        assert np.array_equal(centroid, given)
        kept_original = centered.points + given
        assert np.all(np.isin(np.round(kept_original, 9), np.round(cloud.points, 9)))

    def test_input_cloud_is_not_modified(self, params, make_box_cloud):
        cloud = make_box_cloud(offset=(0.3, 0.0, 0.0))
        before = np.array(cloud.points)

        PosePreprocessor(params).preprocess(cloud)

        assert np.array_equal(cloud.points, before)

    def test_far_outlier_is_removed(self, params, make_box_cloud):
        cloud = make_box_cloud(n_points=1000)
        points = np.vstack([cloud.points, [[2.0, 2.0, 2.0]]])
        colors = np.vstack([cloud.colors, [[0.0, 0.0, 0.0]]])
        with_outlier = PointCloud(points, colors, cloud.frame_id)

        filtered = remove_outliers(with_outlier, params.outlier_nb_neighbors, params.outlier_std_ratio)

        assert len(filtered) < len(with_outlier)
        assert not np.any(np.all(np.isclose(filtered.points, [2.0, 2.0, 2.0]), axis=1))

    def test_tiny_cloud_is_kept_as_is(self, params):
        cloud = PointCloud([[0, 0, 0], [1, 0, 0]], [[0, 0, 0], [0, 0, 0]])
        assert remove_outliers(cloud, params.outlier_nb_neighbors, params.outlier_std_ratio) is cloud


class TestAverageColor:

    def test_mean_of_channels(self):
        cloud = PointCloud(np.zeros((3, 3)), [[0, 0, 0], [30, 60, 90], [60, 120, 180]])
        assert average_color(cloud) == pytest.approx((30.0, 60.0, 90.0))

    def test_preprocessor_delegates(self, params, make_box_cloud):
        cloud = make_box_cloud(color=(10, 20, 30), n_points=100)
        assert PosePreprocessor(params).average_color(cloud) == pytest.approx((10.0, 20.0, 30.0))
