"""
Tests for GraspRanker: failed-grasp filter, ascending order and frame rewrite.
"""

import itertools

import pytest
from spatialmath import SE3

from grasp_recognition.scripts.grasp import Grasp, Pose
from grasp_recognition.scripts.grasp_ranking import GraspRanker


def grasp(successes, attempts, x=0.0):
    return Grasp(Pose.from_transform(SE3.Trans(x, 0, 0), "base_footprint", "eef"),
                 successes=successes, attempts=attempts)


class TestGraspRanker:

    def test_failed_grasp_is_dropped(self):
        ranked = GraspRanker().rank([grasp(0, 5)], "camera")
        assert ranked == []

    def test_untested_grasp_is_kept(self):
        ranked = GraspRanker().rank([grasp(0, 0)], "camera")
        assert len(ranked) == 1
        assert ranked[0].rate == 0.0

    def test_ascending_success_rate(self):
        grasps = [grasp(4, 5, x=1), grasp(0, 0, x=2), grasp(1, 2, x=3), grasp(0, 3, x=4)]

        ranked = GraspRanker().rank(grasps, "camera")

        assert [r.rate for r in ranked] == pytest.approx([0.0, 0.5, 0.8])
        assert [r.pose.position[0] for r in ranked] == [2, 3, 1]

    def test_order_independent_of_input_order(self):
        grasps = [grasp(1, 4), grasp(3, 4), grasp(0, 0), grasp(2, 4)]

        for permutation in itertools.permutations(grasps):
            rates = [r.rate for r in GraspRanker().rank(list(permutation), "camera")]
            assert rates == sorted(rates)

    def test_equal_rates_keep_input_order(self):
        grasps = [grasp(1, 2, x=1), grasp(2, 4, x=2), grasp(0, 0, x=3), grasp(3, 6, x=4)]

        ranked = GraspRanker().rank(grasps, "camera")

        assert [r.pose.position[0] for r in ranked] == [3, 1, 2, 4]

    def test_frame_is_rewritten(self):
        ranked = GraspRanker().rank([grasp(1, 1), grasp(0, 0)], "kinect_rgb_optical_frame")

        assert all(r.pose.robot_fixed_frame_id == "kinect_rgb_optical_frame" for r in ranked)
        assert all(r.pose.grasp_frame_id == "eef" for r in ranked)

    def test_source_grasp_is_attached(self):
        source = grasp(2, 3)
        [ranked] = GraspRanker().rank([source], "camera")

        assert ranked.grasp is source
        assert ranked.rate == pytest.approx(source.success_rate)
