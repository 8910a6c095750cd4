"""
Registration-based similarity score between a candidate model cloud and an
observed object cloud.

Pipeline per candidate:
1. Point-to-point ICP, observed cloud (source) onto candidate cloud (target),
   starting from identity since both clouds are centered on their centroid
2. Overlap: fraction of candidate points with an aligned point within the
   search radius. Below the overlap cutoff the registration is rejected and
   the sentinel score -1 is returned (never selectable)
3. Distance error: mean nearest-neighbor distance candidate -> aligned
4. Color error: percentage of candidate points without a nearby aligned
   point of similar color
5. score = alpha * (distance_scale * distance_error)
           + (1 - alpha) * (color_error / 100)

Lower score = better match.

Reference:
- https://www.open3d.org/docs/release/tutorial/pipelines/icp_registration.html
- https://www.open3d.org/docs/release/python_api/open3d.geometry.KDTreeFlann.html
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import open3d as o3d
from spatialmath import SE3

from grasp_recognition.utils.config_utils import RecognitionConfig
from grasp_recognition.utils.logger import ProjectLogger
from grasp_recognition.vision.helpers import to_open3d, numpyToSE3, show_point_clouds
from grasp_recognition.vision.point_cloud import PointCloud


REJECTED_SCORE = -1.0


@dataclass(frozen=True)
class AlignmentResult:
    """
    Rigid transform found by ICP and the cloud it produced.

    transform maps the observed (centered) cloud into the candidate's frame;
    aligned is the observed cloud after applying it.
    """
    transform: SE3
    aligned: PointCloud
    fitness: float = 0.0
    inlier_rmse: float = 0.0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Metrics behind a registration score (errors are NaN when rejected)."""
    overlap: float
    distance_error: float = float('nan')
    color_error: float = float('nan')
    score: float = REJECTED_SCORE

    @property
    def rejected(self) -> bool:
        return self.score < 0


# =============================================================================
# ICP
# =============================================================================

def perform_icp(candidate: PointCloud, observed: PointCloud,
                max_correspondence_distance: float,
                max_iteration: int) -> AlignmentResult:
    """
    Open3D ICP (Point-to-Point), observed onto candidate.

    Reference:
    - https://www.open3d.org/docs/release/tutorial/pipelines/icp_registration.html
    """
    source = to_open3d(observed)
    target = to_open3d(candidate)

    result = o3d.pipelines.registration.registration_icp(
        source, target, max_correspondence_distance, np.eye(4),
        o3d.pipelines.registration.TransformationEstimationPointToPoint(),
        o3d.pipelines.registration.ICPConvergenceCriteria(max_iteration=max_iteration)
    )

    transform = numpyToSE3(np.asarray(result.transformation))
    aligned = observed.transformed(transform.A)

    return AlignmentResult(transform=transform, aligned=aligned,
                           fitness=float(result.fitness),
                           inlier_rmse=float(result.inlier_rmse))


# =============================================================================
# REGISTRATION METRICS
# =============================================================================

def nearest_distances(base: PointCloud, target: PointCloud) -> np.ndarray:
    """Distance from every point of base to its nearest point in target."""
    return np.asarray(to_open3d(base).compute_point_cloud_distance(to_open3d(target)))


def overlap_fraction(base: PointCloud, target: PointCloud, radius: float) -> float:
    """Fraction of base points with a target point within radius."""
    if base.is_empty or target.is_empty:
        return 0.0
    return float(np.mean(nearest_distances(base, target) <= radius))


def distance_error(base: PointCloud, target: PointCloud) -> float:
    """Mean nearest-neighbor distance from base to target."""
    return float(np.mean(nearest_distances(base, target)))


def color_error(base: PointCloud, target: PointCloud, radius: float,
                tolerance: float) -> float:
    """
    Percentage (0-100) of base points without a target point within radius
    whose color is within tolerance in every channel.
    """
    if base.is_empty or target.is_empty:
        return 100.0

    tree = o3d.geometry.KDTreeFlann(to_open3d(target))
    target_colors = target.colors

    matched = 0
    for j in range(len(base)):
        k, idx, _ = tree.search_radius_vector_3d(np.array(base.points[j]), radius)
        if k == 0:
            continue
        diff = np.abs(target_colors[np.asarray(idx)] - base.colors[j])
        if np.any(np.all(diff <= tolerance, axis=1)):
            matched += 1

    return 100.0 * (1.0 - matched / len(base))


# =============================================================================
# SCORER
# =============================================================================

class RegistrationScorer:
    """
    Scores how well an observed cloud matches a candidate model cloud.

    Usage:
        scorer = RegistrationScorer(RecognitionConfig())
        score, alignment = scorer.score(candidate_cloud, observed_cloud)
        if score >= 0:
            ...
    """

    def __init__(self, params: Optional[RecognitionConfig] = None, visualize: bool = False):
        self.params = params or RecognitionConfig.from_config()
        self.visualize = visualize
        self.logger = ProjectLogger.get_instance()

    def score(self, candidate: PointCloud, observed: PointCloud) -> Tuple[float, AlignmentResult]:
        """
        Align observed onto candidate and score the fit.

        Returns:
            (score, alignment). Score is -1 when the overlap is below the cutoff.
        """
        breakdown, alignment = self.evaluate(candidate, observed)
        return breakdown.score, alignment

    def evaluate(self, candidate: PointCloud, observed: PointCloud) -> Tuple[ScoreBreakdown, AlignmentResult]:
        """Same as score() but returns every metric."""
        p = self.params

        alignment = perform_icp(candidate, observed,
                                p.icp_max_correspondence_distance,
                                p.icp_max_iteration)
        aligned = alignment.aligned

        self.logger.debug(f"ICP fitness: {alignment.fitness:.4f}, inlier_rmse: {alignment.inlier_rmse:.6f}")

        overlap = overlap_fraction(candidate, aligned, p.overlap_search_radius)
        if overlap < p.overlap_cutoff:
            self.logger.debug(f"Registration rejected: overlap {overlap:.3f} < {p.overlap_cutoff}")
            return ScoreBreakdown(overlap=overlap), alignment

        dist_err = distance_error(candidate, aligned)
        col_err = color_error(candidate, aligned, p.overlap_search_radius, p.color_match_tolerance)

        result = p.alpha * (p.distance_scale * dist_err) + (1.0 - p.alpha) * (col_err / 100.0)

        show_point_clouds([candidate, aligned], "REGISTRATION", [
            f"overlap={overlap:.3f}, distance_error={dist_err:.5f}, color_error={col_err:.1f}%",
            f"score={result:.4f}"
        ], debug=self.visualize)

        return ScoreBreakdown(overlap=overlap, distance_error=dist_err,
                              color_error=col_err, score=result), alignment
