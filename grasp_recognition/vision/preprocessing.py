"""
Preprocessing of segmented object clouds before recognition.

Steps:
1. Statistical outlier removal (drops points far from their neighbors)
2. Translation to origin (centroid moves to (0, 0, 0))

The centroid is returned so transferred grasps can later be placed back
into the object's original frame. Candidate model clouds are stored
centered already, so centering replaces an explicit initial pose guess
for ICP.

Reference:
- https://www.open3d.org/docs/release/tutorial/geometry/pointcloud_outlier_removal.html
"""

from typing import Optional, Tuple

import numpy as np

from grasp_recognition.utils.config_utils import RecognitionConfig
from grasp_recognition.utils.logger import ProjectLogger
from grasp_recognition.vision.helpers import to_open3d
from grasp_recognition.vision.point_cloud import PointCloud


def average_color(cloud: PointCloud) -> Tuple[float, float, float]:
    """Mean (r, g, b) of a cloud. O(n), cloud unchanged."""
    return cloud.average_color()


def remove_outliers(cloud: PointCloud, nb_neighbors: int, std_ratio: float) -> PointCloud:
    """
    Statistical outlier removal.

    A point is dropped when its mean distance to its nb_neighbors nearest
    neighbors is more than std_ratio standard deviations above the average.
    """
    # Open3D needs more points than neighbors
    if len(cloud) <= nb_neighbors:
        return cloud

    _, kept = to_open3d(cloud).remove_statistical_outlier(
        nb_neighbors=nb_neighbors, std_ratio=std_ratio)
    return cloud.select(np.asarray(kept, dtype=np.int64))


class PosePreprocessor:
    """
    Recenters observed clouds and removes outliers.

    Usage:
        preprocessor = PosePreprocessor(RecognitionConfig())
        result = preprocessor.preprocess(cloud)
        if result is not None:
            centered, centroid = result
    """

    def __init__(self, params: Optional[RecognitionConfig] = None):
        self.params = params or RecognitionConfig.from_config()
        self.logger = ProjectLogger.get_instance()

    def preprocess(self, cloud: PointCloud,
                   centroid=None) -> Optional[Tuple[PointCloud, np.ndarray]]:
        """
        Filter outliers and move the cloud to the origin.

        Args:
            cloud: Segmented object cloud
            centroid: Precomputed centroid of the object. When None, the mean
                      of the filtered points is used.

        Returns:
            (centered cloud, centroid in the original frame), or None when
            the cloud is empty before or after filtering
        """
        if cloud.is_empty:
            self.logger.warning("Preprocessing skipped: point cloud is empty")
            return None

        filtered = remove_outliers(cloud,
                                   self.params.outlier_nb_neighbors,
                                   self.params.outlier_std_ratio)
        self.logger.debug(f"Outlier removal: {len(cloud)} -> {len(filtered)} pts")

        if filtered.is_empty:
            self.logger.warning("Preprocessing failed: no points left after outlier removal")
            return None

        if centroid is None:
            centroid = filtered.centroid()
        centroid = np.asarray(centroid, dtype=np.float64).reshape(3)

        return filtered.translated(-centroid), centroid

    def average_color(self, cloud: PointCloud) -> Tuple[float, float, float]:
        return average_color(cloud)
