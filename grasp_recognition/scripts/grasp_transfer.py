"""
Transfer of stored grasps from the matched model into the observed object.

Math:
- T maps the centered observed cloud into the model's frame (ICP result)
- A stored grasp P is expressed in the model's centered frame
- In the observed (centered) frame the grasp is: R = T^-1 * P
- Adding the observed centroid to R's translation puts it back into the
  object's original frame; the rotation is not affected by that shift

Only the pose changes; counts, timestamps and the end-effector frame of
each grasp are kept as they are.

Reference:
- https://petercorke.github.io/spatialmath-python/func_3d.html
"""

from typing import List, Optional, Sequence

import numpy as np
from spatialmath import SE3

from grasp_recognition.scripts.grasp import Grasp, Pose
from grasp_recognition.utils.logger import ProjectLogger


def transfer_pose(alignment_transform: SE3, observed_centroid, pose: Pose) -> Pose:
    """Express one model-frame pose in the observed object's frame."""
    result = alignment_transform.inv() * pose.transform

    T = np.array(result.A)
    T[:3, 3] = T[:3, 3] + np.asarray(observed_centroid, dtype=np.float64).reshape(3)

    return Pose(SE3(T, check=False), pose.robot_fixed_frame_id, pose.grasp_frame_id)


class GraspTransferEngine:
    """
    Maps every grasp of the winning model into the observed object's frame.

    Usage:
        engine = GraspTransferEngine()
        grasps = engine.transfer(selection.transform, centroid, model.grasps)
    """

    def __init__(self):
        self.logger = ProjectLogger.get_instance()

    def transfer(self, alignment_transform: Optional[SE3], observed_centroid,
                 model_grasps: Sequence[Grasp]) -> List[Grasp]:
        """
        Args:
            alignment_transform: ICP transform (observed -> model frame)
            observed_centroid: Centroid removed from the observed cloud
            model_grasps: Grasps of the matched model

        Returns:
            New grasps in the same order, poses in the observed object's frame
        """
        if alignment_transform is None:
            alignment_transform = SE3()
        if observed_centroid is None:
            observed_centroid = np.zeros(3)

        transferred = [
            grasp.with_pose(transfer_pose(alignment_transform, observed_centroid, grasp.pose))
            for grasp in model_grasps
        ]

        self.logger.debug(f"Transferred {len(transferred)} grasps into the observed frame")
        return transferred
