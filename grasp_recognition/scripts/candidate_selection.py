"""
Best-match selection over the candidate grasp models.

For each candidate, in list order:
1. Skip it when it has no stored point cloud
2. Skip it when its average color is too far from the observed color
   (cheap check before the expensive registration)
3. Score it with RegistrationScorer

The lowest non-negative score wins. Only a strictly lower score replaces
the current best, so on ties the earlier candidate is kept. Scoring may run
on a thread pool; results are always reduced in candidate order.

Selection fails (None) when the inputs are empty or when no score is at or
below the confidence threshold.

Reference:
- https://docs.python.org/3/library/concurrent.futures.html
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, List, Sequence, Tuple

from spatialmath import SE3

from grasp_recognition.scripts.grasp import GraspModel
from grasp_recognition.utils.config_utils import RecognitionConfig
from grasp_recognition.utils.logger import ProjectLogger
from grasp_recognition.vision.point_cloud import PointCloud
from grasp_recognition.vision.preprocessing import average_color
from grasp_recognition.vision.registration import AlignmentResult, RegistrationScorer


@dataclass(frozen=True)
class SelectionResult:
    """Winning candidate: its index in the input list, alignment and score."""
    index: int
    alignment: AlignmentResult
    score: float

    @property
    def transform(self) -> SE3:
        return self.alignment.transform


def color_within_threshold(observed_color, candidate_color, threshold: float) -> bool:
    """True when every channel differs by at most threshold."""
    return all(abs(o - c) <= threshold for o, c in zip(observed_color, candidate_color))


class CandidateSelector:
    """
    Picks the grasp model that best explains an observed cloud.

    Args:
        params: Thresholds and weighting (config.yaml when None)
        scorer: Object with score(candidate_cloud, observed_cloud) -> (score, alignment)
    """

    def __init__(self, params: Optional[RecognitionConfig] = None, scorer=None):
        self.params = params or RecognitionConfig.from_config()
        self.scorer = scorer or RegistrationScorer(self.params)
        self.logger = ProjectLogger.get_instance()

    def select(self, observed_cloud: PointCloud, observed_color,
               candidates: Sequence[GraspModel]) -> Optional[SelectionResult]:
        """
        Args:
            observed_cloud: Preprocessed (centered) observed cloud
            observed_color: Average (r, g, b) of the observed cloud
            candidates: Grasp models in a meaningful, reproducible order

        Returns:
            SelectionResult, or None when nothing matched confidently
        """
        if not candidates:
            self.logger.warning("Candidate list is empty. Nothing to compare the observed object to.")
            return None
        if observed_cloud.is_empty:
            self.logger.warning("Observed point cloud is empty. Nothing to compare candidates to.")
            return None

        eligible = [i for i, candidate in enumerate(candidates)
                    if self._passes_prefilter(i, candidate, observed_color)]
        if not eligible:
            self.logger.info("No candidate passed the color pre-filter")
            return None

        best: Optional[SelectionResult] = None
        min_score = float('inf')

        for i, score, alignment in self._score_all(eligible, candidates, observed_cloud):
            self.logger.log_candidate_score(i, candidates[i].object_name, score)
            if 0 <= score < min_score:
                min_score = score
                best = SelectionResult(index=i, alignment=alignment, score=score)

        if best is None:
            self.logger.info("Every registration was rejected (overlap below cutoff)")
            return None
        if min_score > self.params.score_confidence_threshold:
            self.logger.info(f"Best score {min_score:.4f} is above the confidence threshold "
                             f"{self.params.score_confidence_threshold}")
            return None

        return best

    def _passes_prefilter(self, index: int, candidate: GraspModel, observed_color) -> bool:
        if not candidate.has_point_cloud:
            self.logger.debug(f"  Candidate {index} [{candidate.object_name}]: no point cloud, skipped")
            return False

        candidate_color = average_color(candidate.point_cloud)
        if not color_within_threshold(observed_color, candidate_color, self.params.color_threshold):
            self.logger.debug(f"  Candidate {index} [{candidate.object_name}]: color "
                              f"({candidate_color[0]:.0f}, {candidate_color[1]:.0f}, {candidate_color[2]:.0f}) "
                              f"too far off, skipped")
            return False

        return True

    def _score_all(self, eligible: List[int], candidates: Sequence[GraspModel],
                   observed_cloud: PointCloud) -> List[Tuple[int, float, AlignmentResult]]:
        """Score eligible candidates, returned in candidate order."""
        workers = self.params.max_workers

        if workers <= 1 or len(eligible) <= 1:
            results = []
            for i in eligible:
                score, alignment = self.scorer.score(candidates[i].point_cloud, observed_cloud)
                results.append((i, score, alignment))
            return results

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.scorer.score, candidates[i].point_cloud, observed_cloud)
                       for i in eligible]
            return [(i, *future.result()) for i, future in zip(eligible, futures)]
