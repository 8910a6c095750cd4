"""
Point cloud value type, preprocessing and registration scoring.
"""
from .point_cloud import PointCloud
from .helpers import (
    to_open3d,
    from_open3d,
    add_noise,
    numpyToSE3,
    computeError,
    show_point_clouds,
)
from .preprocessing import (
    PosePreprocessor,
    average_color,
    remove_outliers,
)
from .registration import (
    REJECTED_SCORE,
    AlignmentResult,
    ScoreBreakdown,
    RegistrationScorer,
    perform_icp,
    overlap_fraction,
    distance_error,
    color_error,
)
