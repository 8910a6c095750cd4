"""
Grasp data model shared by the recognition pipeline.

- Pose: one rigid transform type (spatialmath SE3) with a robot-fixed frame
  and an end-effector (grasp) frame. Named constructors cover the external
  representations (4x4 matrix, position + quaternion, SE3).
- Grasp: a pose plus its success/attempt statistics.
- GraspModel / GraspDemonstration: read-only records from the grasp store.
- ObservedObject: the recognition request, filled in on success.
- RankedGrasp: a transferred pose with its success rate.

Reference:
- https://petercorke.github.io/spatialmath-python/func_3d.html
- https://petercorke.github.io/spatialmath-python/func_quat.html
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, List, Tuple

import numpy as np
from spatialmath import SE3, SO3, UnitQuaternion
from spatialmath.base import ishom

from grasp_recognition.vision.point_cloud import PointCloud


IDENTITY_QUATERNION = (1.0, 0.0, 0.0, 0.0)  # [w, x, y, z]


class Pose:
    """
    Rigid pose of an end effector relative to a robot-fixed frame.

    The 4x4 matrix is the canonical form; position and quaternion are
    derived from it, so a pose that is only composed with identities keeps
    its exact values.

    Example:
        pose = Pose.from_position_quaternion([0.1, 0, 0.2], [1, 0, 0, 0],
                                             "base_link", "gripper_link")
        pose.position      # array([0.1, 0. , 0.2])
    """

    __slots__ = ('_transform', 'robot_fixed_frame_id', 'grasp_frame_id')

    def __init__(self, transform: Optional[SE3] = None,
                 robot_fixed_frame_id: str = "", grasp_frame_id: str = ""):
        if transform is None:
            transform = SE3()
        if not isinstance(transform, SE3) or len(transform) != 1:
            raise ValueError("Pose requires a single SE3 transform")
        self._transform = SE3(np.array(transform.A), check=False)
        self.robot_fixed_frame_id = robot_fixed_frame_id
        self.grasp_frame_id = grasp_frame_id

    # =========================================================================
    # CONVERSIONS
    # =========================================================================

    @classmethod
    def from_transform(cls, transform: SE3, robot_fixed_frame_id: str = "",
                       grasp_frame_id: str = "") -> 'Pose':
        return cls(transform, robot_fixed_frame_id, grasp_frame_id)

    @classmethod
    def from_matrix(cls, matrix, robot_fixed_frame_id: str = "",
                    grasp_frame_id: str = "") -> 'Pose':
        """4x4 homogeneous matrix. Raises ValueError if it is not a rigid transform."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4) or not ishom(matrix, check=True):
            raise ValueError(f"not a valid homogeneous transform:\n{matrix}")
        return cls(SE3(matrix, check=False), robot_fixed_frame_id, grasp_frame_id)

    @classmethod
    def from_position_quaternion(cls, position, quaternion, robot_fixed_frame_id: str = "",
                                 grasp_frame_id: str = "") -> 'Pose':
        """
        Position [x, y, z] and quaternion [w, x, y, z] (normalized here).
        """
        position = np.asarray(position, dtype=np.float64)
        quaternion = np.asarray(quaternion, dtype=np.float64)
        if position.shape != (3,) or quaternion.shape != (4,):
            raise ValueError("position must have 3 and quaternion 4 elements")
        if not np.all(np.isfinite(position)) or not np.all(np.isfinite(quaternion)):
            raise ValueError("pose values must be finite")
        if np.linalg.norm(quaternion) < 1e-12:
            raise ValueError("zero-length quaternion")

        rotation = UnitQuaternion(quaternion).R
        return cls(SE3.Rt(rotation, position, check=False), robot_fixed_frame_id, grasp_frame_id)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def transform(self) -> SE3:
        return SE3(np.array(self._transform.A), check=False)

    @property
    def matrix(self) -> np.ndarray:
        return np.array(self._transform.A)

    @property
    def position(self) -> np.ndarray:
        return np.array(self._transform.t)

    @property
    def quaternion(self) -> np.ndarray:
        """Orientation as [w, x, y, z]."""
        return UnitQuaternion(SO3(self._transform.R, check=False)).A

    def with_frame(self, robot_fixed_frame_id: str) -> 'Pose':
        return Pose(self._transform, robot_fixed_frame_id, self.grasp_frame_id)

    def with_transform(self, transform: SE3) -> 'Pose':
        return Pose(transform, self.robot_fixed_frame_id, self.grasp_frame_id)

    def __eq__(self, other):
        if not isinstance(other, Pose):
            return NotImplemented
        return (self.robot_fixed_frame_id == other.robot_fixed_frame_id
                and self.grasp_frame_id == other.grasp_frame_id
                and np.array_equal(self._transform.A, other._transform.A))

    __hash__ = None

    def __repr__(self):
        p = self.position
        return (f"Pose(position=[{p[0]:.4f}, {p[1]:.4f}, {p[2]:.4f}], "
                f"frame='{self.robot_fixed_frame_id}', grasp_frame='{self.grasp_frame_id}')")


@dataclass(frozen=True)
class Grasp:
    """
    A demonstrated grasp with its execution statistics.

    Invariant: 0 <= successes <= attempts.
    """
    pose: Pose
    successes: int = 0
    attempts: int = 0
    created: Optional[datetime] = None
    id: int = 0

    def __post_init__(self):
        if not isinstance(self.pose, Pose):
            raise ValueError("grasp pose must be a Pose")
        if self.successes < 0 or self.attempts < 0:
            raise ValueError("successes and attempts must be non-negative")
        if self.attempts < self.successes:
            raise ValueError(f"attempts ({self.attempts}) < successes ({self.successes})")

    @property
    def success_rate(self) -> float:
        """successes / attempts, 0 for an untested grasp."""
        if self.attempts > 0:
            return self.successes / self.attempts
        return 0.0

    @property
    def is_untested(self) -> bool:
        return self.attempts == 0

    @property
    def has_failed(self) -> bool:
        """Tried at least once and never succeeded."""
        return self.attempts > 0 and self.successes == 0

    def with_pose(self, pose: Pose) -> 'Grasp':
        return replace(self, pose=pose)


@dataclass(frozen=True)
class GraspDemonstration:
    """A single recorded demonstration: one grasp and the cloud it was taken on."""
    id: int
    object_name: str
    grasp_pose: Pose
    point_cloud: Optional[PointCloud] = None
    created: Optional[datetime] = None


@dataclass(frozen=True)
class GraspModel:
    """
    A recognition candidate: representative cloud plus its grasps.

    Attributes:
        id: Model identifier in the grasp store
        object_name: Name reported on recognition
        point_cloud: Centered representative cloud (None when not stored)
        grasps: Grasps expressed in the model's centered frame
    """
    id: int
    object_name: str
    point_cloud: Optional[PointCloud] = None
    grasps: Tuple[Grasp, ...] = ()
    created: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'grasps', tuple(self.grasps))

    @property
    def has_point_cloud(self) -> bool:
        return self.point_cloud is not None and not self.point_cloud.is_empty

    @classmethod
    def from_demonstration(cls, demonstration: GraspDemonstration) -> 'GraspModel':
        """Single-grasp model made from an untested demonstration."""
        grasp = Grasp(pose=demonstration.grasp_pose, created=demonstration.created)
        return cls(id=demonstration.id, object_name=demonstration.object_name,
                   point_cloud=demonstration.point_cloud, grasps=(grasp,),
                   created=demonstration.created)


@dataclass(frozen=True)
class RankedGrasp:
    """Transferred grasp pose and its historical success rate."""
    pose: Pose
    rate: float
    grasp: Optional[Grasp] = None


@dataclass
class ObservedObject:
    """
    Segmented object submitted for recognition.

    The recognition fields (name, model_id, confidence, recognized,
    orientation, grasps) are only written when recognition succeeds.
    """
    point_cloud: PointCloud
    centroid: Optional[np.ndarray] = None
    name: str = ""
    model_id: int = 0
    confidence: float = 0.0
    recognized: bool = False
    orientation: Tuple[float, float, float, float] = IDENTITY_QUATERNION
    grasps: List[RankedGrasp] = field(default_factory=list)
