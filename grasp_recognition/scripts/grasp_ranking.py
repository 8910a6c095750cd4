"""
Ranking of transferred grasps by historical success rate.

- Grasps that were tried and never succeeded are dropped
- Untested grasps (no attempts) are kept with rate 0
- The rest is stably sorted by ascending success rate, so grasps with equal
  rates keep their input order
- Every pose is re-stamped with the observed cloud's frame
"""

from typing import List, Sequence

from grasp_recognition.scripts.grasp import Grasp, RankedGrasp
from grasp_recognition.utils.logger import ProjectLogger


class GraspRanker:

    def __init__(self):
        self.logger = ProjectLogger.get_instance()

    def rank(self, transferred_grasps: Sequence[Grasp], frame_id: str) -> List[RankedGrasp]:
        """
        Args:
            transferred_grasps: Grasps already expressed in the observed frame
            frame_id: Frame of the observed point cloud

        Returns:
            RankedGrasp list, ascending by success rate
        """
        kept = [g for g in transferred_grasps if not g.has_failed]
        dropped = len(transferred_grasps) - len(kept)
        if dropped:
            self.logger.debug(f"Dropped {dropped} grasps that never succeeded")

        # sorted() is stable
        ordered = sorted(kept, key=lambda g: g.success_rate)

        return [RankedGrasp(pose=g.pose.with_frame(frame_id), rate=g.success_rate, grasp=g)
                for g in ordered]
