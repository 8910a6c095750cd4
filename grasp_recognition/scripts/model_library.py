"""
Read-only, file-backed grasp model library.

The library is a YAML manifest next to the point cloud files it references:

    models:
      - id: 1
        object_name: mug
        point_cloud: clouds/mug.pcd        # relative to the manifest
        grasps:
          - position: [0.0, 0.05, 0.02]
            orientation: [1.0, 0.0, 0.0, 0.0]   # w, x, y, z
            # or: matrix: 4x4 nested list
            robot_fixed_frame_id: base_footprint
            grasp_frame_id: jaco_link_eef
            successes: 4
            attempts: 5
            created: 2015-04-08T10:00:00
    demonstrations:
      - id: 12
        object_name: bowl
        point_cloud: clouds/bowl_demo.pcd
        grasp_pose: {position: [...], orientation: [...], ...}

Demonstrations become single-grasp, untested models. Models are returned
in manifest order (models first), which is the tie-break order used during
recognition. Nothing here ever writes to the library.

Reference:
- https://www.open3d.org/docs/release/tutorial/geometry/file_io.html
"""

import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import open3d as o3d
import yaml

from grasp_recognition.scripts.grasp import (
    Grasp, GraspDemonstration, GraspModel, ObservedObject, Pose
)
from grasp_recognition.utils.config_utils import load_config, get_default_frame_id
from grasp_recognition.utils.logger import ProjectLogger
from grasp_recognition.vision.helpers import from_open3d
from grasp_recognition.vision.point_cloud import PointCloud


def _parse_time(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value)
    return datetime.fromisoformat(str(value))


def parse_pose(entry: Dict[str, Any]) -> Pose:
    """Pose from a manifest entry (matrix, or position + orientation)."""
    fixed = entry.get('robot_fixed_frame_id', '')
    grasp_frame = entry.get('grasp_frame_id', '')

    if 'matrix' in entry:
        return Pose.from_matrix(entry['matrix'], fixed, grasp_frame)
    if 'position' not in entry:
        raise ValueError(f"pose entry needs 'matrix' or 'position': {entry}")
    return Pose.from_position_quaternion(entry['position'],
                                         entry.get('orientation', [1.0, 0.0, 0.0, 0.0]),
                                         fixed, grasp_frame)


def parse_grasp(entry: Dict[str, Any]) -> Grasp:
    return Grasp(pose=parse_pose(entry),
                 successes=int(entry.get('successes', 0)),
                 attempts=int(entry.get('attempts', 0)),
                 created=_parse_time(entry.get('created')),
                 id=int(entry.get('id', 0)))


def read_point_cloud(path: str, frame_id: str = "") -> Optional[PointCloud]:
    """Read a .pcd/.ply cloud. Returns None if the file does not exist."""
    if not os.path.isfile(path):
        return None
    return from_open3d(o3d.io.read_point_cloud(path), frame_id)


class ModelLibrary:
    """
    Loads grasp models from a YAML manifest.

    Usage:
        library = ModelLibrary("models/library.yaml")
        models = library.load()
    """

    def __init__(self, manifest_path: str):
        self.manifest_path = os.path.abspath(manifest_path)
        self.base_dir = os.path.dirname(self.manifest_path)
        self.logger = ProjectLogger.get_instance()

    def _resolve(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        return path if os.path.isabs(path) else os.path.join(self.base_dir, path)

    def _load_cloud(self, path: Optional[str], owner: str) -> Optional[PointCloud]:
        resolved = self._resolve(path)
        if resolved is None:
            self.logger.debug(f"Library: {owner} has no point cloud")
            return None
        cloud = read_point_cloud(resolved)
        if cloud is None:
            self.logger.warning(f"Library: point cloud for {owner} not found: {resolved}")
        return cloud

    def load(self) -> List[GraspModel]:
        """All models of the manifest, in order (FileNotFoundError if missing)."""
        with open(self.manifest_path, 'r') as f:
            manifest = yaml.safe_load(f) or {}

        models = []
        for entry in manifest.get('models', []):
            name = entry['object_name']
            models.append(GraspModel(
                id=int(entry['id']),
                object_name=name,
                point_cloud=self._load_cloud(entry.get('point_cloud'), name),
                grasps=tuple(parse_grasp(g) for g in entry.get('grasps', [])),
                created=_parse_time(entry.get('created')),
            ))

        for entry in manifest.get('demonstrations', []):
            models.append(GraspModel.from_demonstration(self._parse_demonstration(entry)))

        self.logger.info(f"Library: loaded {len(models)} models from {self.manifest_path}")
        return models

    def _parse_demonstration(self, entry: Dict[str, Any]) -> GraspDemonstration:
        name = entry['object_name']
        return GraspDemonstration(
            id=int(entry['id']),
            object_name=name,
            grasp_pose=parse_pose(entry['grasp_pose']),
            point_cloud=self._load_cloud(entry.get('point_cloud'), name),
            created=_parse_time(entry.get('created')),
        )


def load_model_library(path: str) -> List[GraspModel]:
    return ModelLibrary(path).load()


def load_observed_object(path: str, frame_id: Optional[str] = None,
                         centroid=None, config: Optional[Dict] = None) -> ObservedObject:
    """
    Segmented object cloud from a file.

    Args:
        path: .pcd/.ply file
        frame_id: Frame of the cloud (scene.default_frame_id from config when None)
        centroid: Precomputed centroid, if known
    """
    if frame_id is None:
        frame_id = get_default_frame_id(config if config is not None else load_config())

    cloud = read_point_cloud(path, frame_id)
    if cloud is None:
        raise FileNotFoundError(f"Point cloud not found: {path}")
    return ObservedObject(point_cloud=cloud, centroid=centroid)
