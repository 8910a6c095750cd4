"""
Vision Pipeline Helpers.

Contains shared functions for the recognition pipeline:
- Conversion between PointCloud and Open3D point clouds
- Transform conversion and error computation
- Noise addition
- Point cloud visualization

Reference:
- https://www.open3d.org/docs/release/tutorial/geometry/pointcloud.html
- https://www.open3d.org/docs/release/tutorial/pipelines/icp_registration.html
"""

import math

import numpy as np
import open3d as o3d
from spatialmath import SE3
from spatialmath.base import trnorm

from grasp_recognition.vision.point_cloud import PointCloud


def to_open3d(cloud: PointCloud) -> o3d.geometry.PointCloud:
    """PointCloud -> Open3D cloud (colors rescaled to [0, 1])."""
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(np.array(cloud.points))
    pcd.colors = o3d.utility.Vector3dVector(np.array(cloud.colors) / 255.0)
    return pcd


def from_open3d(pcd: o3d.geometry.PointCloud, frame_id: str = "") -> PointCloud:
    """Open3D cloud -> PointCloud. Clouds without colors get black points."""
    points = np.asarray(pcd.points)
    if pcd.has_colors():
        colors = np.asarray(pcd.colors) * 255.0
    else:
        colors = np.zeros_like(points)
    return PointCloud(points, colors, frame_id)


def add_noise(cloud: PointCloud, mu, sigma, seed=None) -> PointCloud:
    """Add Gaussian noise to point positions."""
    rng = np.random.default_rng(seed)
    points = cloud.points + rng.normal(mu, sigma, size=cloud.points.shape)
    return PointCloud(points, cloud.colors, cloud.frame_id)


def numpyToSE3(transform_np):
    assert(transform_np.shape[0] == 4)
    assert(transform_np.shape[1] == 4)

    transform_se3 = SE3(trnorm(transform_np))

    return transform_se3


def computeError(ground_truth, estimate_pose):
    """
    Rotation error (degrees) and position error (mm) between two poses.

    Both arguments may be 4x4 arrays or SE3.
    """
    gt_se3 = ground_truth if isinstance(ground_truth, SE3) else numpyToSE3(np.asarray(ground_truth))
    ep_se3 = estimate_pose if isinstance(estimate_pose, SE3) else numpyToSE3(np.asarray(estimate_pose))

    error_angle = gt_se3.angdist(ep_se3) * 180.0 / math.pi
    error_pos = np.linalg.norm(gt_se3.t - ep_se3.t, 2) * 1000

    return float(error_angle), float(error_pos)


def show_point_clouds(clouds, title, info=None, debug=True):
    """Open an Open3D window with the given clouds (PointCloud or Open3D)."""
    if not debug:
        return

    print(f"\n[STEP] {title}")
    if info:
        for line in info:
            print(f"  {line}")
    geometries = [to_open3d(c) if isinstance(c, PointCloud) else c for c in clouds]
    o3d.visualization.draw_geometries(geometries, window_name=title)
