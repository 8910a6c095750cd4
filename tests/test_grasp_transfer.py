"""
Tests for GraspTransferEngine.
"""

from datetime import datetime

import numpy as np
from spatialmath import SE3

from grasp_recognition.scripts.grasp import Grasp, Pose
from grasp_recognition.scripts.grasp_transfer import GraspTransferEngine, transfer_pose


def make_grasp(T, successes=0, attempts=0):
    pose = Pose.from_transform(T, "base_footprint", "jaco_link_eef")
    return Grasp(pose, successes=successes, attempts=attempts,
                 created=datetime(2015, 4, 8, 10, 0, 0), id=3)


class TestGraspTransfer:

    def test_identity_and_zero_centroid_keep_pose_exactly(self):
        source = make_grasp(SE3.Trans(0.12, -0.03, 0.25) * SE3.Rx(0.4) * SE3.Rz(-1.2))

        [result] = GraspTransferEngine().transfer(SE3(), np.zeros(3), [source])

        assert np.array_equal(result.pose.matrix, source.pose.matrix)
        assert np.array_equal(result.pose.position, source.pose.position)
        assert result.pose == source.pose

    def test_centroid_only_shifts_translation(self):
        source = make_grasp(SE3.Trans(0.1, 0.0, 0.0) * SE3.Ry(0.5))
        centroid = np.array([1.0, 2.0, 3.0])

        result = transfer_pose(SE3(), centroid, source.pose)

        assert np.allclose(result.position, [1.1, 2.0, 3.0])
        assert np.array_equal(result.matrix[:3, :3], source.pose.matrix[:3, :3])

    def test_alignment_is_undone(self):
        # T maps observed into the model frame; the grasp must come back out
        T = SE3.Trans(0.02, -0.01, 0.0) * SE3.Rz(np.pi / 2)
        model_pose = SE3.Trans(0.05, 0.0, 0.1)
        source = make_grasp(model_pose)

        result = transfer_pose(T, np.zeros(3), source.pose)

        expected = T.inv() * model_pose
        assert np.allclose(result.matrix, expected.A)
        # moving the transferred grasp with T lands on the stored grasp again
        assert np.allclose((T * result.transform).A, model_pose.A)

    def test_other_fields_are_preserved(self):
        source = make_grasp(SE3.Trans(0, 0, 0.1), successes=2, attempts=3)

        [result] = GraspTransferEngine().transfer(SE3.Rz(0.3), [0.5, 0.5, 0.0], [source])

        assert result.successes == 2
        assert result.attempts == 3
        assert result.created == source.created
        assert result.id == source.id
        assert result.pose.grasp_frame_id == "jaco_link_eef"
        assert result.pose.robot_fixed_frame_id == "base_footprint"

    def test_order_is_preserved(self):
        grasps = [make_grasp(SE3.Trans(x, 0, 0)) for x in (0.1, 0.2, 0.3)]

        result = GraspTransferEngine().transfer(SE3(), np.zeros(3), grasps)

        assert [g.pose.position[0] for g in result] == [0.1, 0.2, 0.3]

    def test_source_grasps_are_untouched(self):
        source = make_grasp(SE3.Trans(0.1, 0, 0))
        before = source.pose.matrix

        GraspTransferEngine().transfer(SE3.Trans(1, 1, 1), [1.0, 1.0, 1.0], [source])

        assert np.array_equal(source.pose.matrix, before)
