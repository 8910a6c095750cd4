"""
Configuration loading for the recognition pipeline.

All scoring constants (color pre-filter, confidence threshold, weighting,
overlap cutoff, distance scale) live in config.yaml and are injected into
the components as a RecognitionConfig, so they can be tuned or overridden
in tests without touching code.

Reference:
- PyYAML: https://pyyaml.org/wiki/PyYAMLDocumentation
- Python dataclasses: https://docs.python.org/3/library/dataclasses.html
"""
import os
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

import yaml


# ============================================================
# Defaults (used when a key is missing from config.yaml)
# ============================================================
COLOR_THRESHOLD = 50.0
SCORE_CONFIDENCE_THRESHOLD = 0.8
ALPHA = 0.5
OVERLAP_CUTOFF = 0.75
DISTANCE_SCALE = 3.0

ICP_MAX_CORRESPONDENCE_DISTANCE = 0.02  # 2cm
ICP_MAX_ITERATION = 100
OVERLAP_SEARCH_RADIUS = 0.005  # 5mm
COLOR_MATCH_TOLERANCE = 30.0

OUTLIER_NB_NEIGHBORS = 20
OUTLIER_STD_RATIO = 2.0

DEFAULT_FRAME_ID = "base_footprint"


# ============================================================
# Config Loading Functions
# ============================================================
def load_config(path=None):
    """
    Load configuration from YAML file.
    Default path is config.yaml in the package directory.
    """
    if path is None:
        utils_dir = os.path.dirname(os.path.abspath(__file__))
        package_dir = os.path.dirname(utils_dir)
        path = os.path.join(package_dir, "config.yaml")

    with open(path, 'r') as f:
        config = yaml.safe_load(f)
    return config or {}


def get_recognition_params(config):
    """Get the recognition section (thresholds and weighting)."""
    return config.get('recognition', {})


def get_registration_params(config):
    """Get the registration section (ICP and correspondence metrics)."""
    return config.get('registration', {})


def get_preprocessing_params(config):
    """Get the preprocessing section (outlier removal)."""
    return config.get('preprocessing', {})


def get_default_frame_id(config):
    """Get the frame id assigned to clouds loaded without one."""
    return config.get('scene', {}).get('default_frame_id', DEFAULT_FRAME_ID)


def is_visualization_enabled(config):
    """Open3D windows are only shown when debug.visualize is set."""
    return bool(config.get('debug', {}).get('visualize', False))


@dataclass(frozen=True)
class RecognitionConfig:
    """
    Tunable parameters of the recognition pipeline.

    Attributes:
        color_threshold: Per-channel average color tolerance (RGB 0-255)
        score_confidence_threshold: Max accepted score (lower is better)
        alpha: Weight of the distance error against the color error, in [0, 1]
        overlap_cutoff: Minimum overlap fraction for a registration to count
        distance_scale: Scale applied to the mean distance error
        icp_max_correspondence_distance: ICP correspondence distance [m]
        icp_max_iteration: ICP iteration limit
        overlap_search_radius: Correspondence radius for overlap/color metrics [m]
        color_match_tolerance: Per-channel tolerance for a color match (RGB 0-255)
        outlier_nb_neighbors: Neighbors used by statistical outlier removal
        outlier_std_ratio: Std ratio used by statistical outlier removal
        max_workers: 1 = sequential candidate scoring, >1 = thread pool
    """
    color_threshold: float = COLOR_THRESHOLD
    score_confidence_threshold: float = SCORE_CONFIDENCE_THRESHOLD
    alpha: float = ALPHA
    overlap_cutoff: float = OVERLAP_CUTOFF
    distance_scale: float = DISTANCE_SCALE
    icp_max_correspondence_distance: float = ICP_MAX_CORRESPONDENCE_DISTANCE
    icp_max_iteration: int = ICP_MAX_ITERATION
    overlap_search_radius: float = OVERLAP_SEARCH_RADIUS
    color_match_tolerance: float = COLOR_MATCH_TOLERANCE
    outlier_nb_neighbors: int = OUTLIER_NB_NEIGHBORS
    outlier_std_ratio: float = OUTLIER_STD_RATIO
    max_workers: int = 1

    def __post_init__(self):
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be in [0, 1], got {self.alpha}")
        if not 0.0 <= self.overlap_cutoff <= 1.0:
            raise ValueError(f"overlap_cutoff must be in [0, 1], got {self.overlap_cutoff}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> 'RecognitionConfig':
        """
        Build from a loaded config dict (config.yaml when None).

        Unknown keys are ignored, missing keys fall back to the defaults.
        """
        if config is None:
            config = load_config()

        rec = get_recognition_params(config)
        reg = get_registration_params(config)
        pre = get_preprocessing_params(config)

        return cls(
            color_threshold=float(rec.get('color_threshold', COLOR_THRESHOLD)),
            score_confidence_threshold=float(rec.get('score_confidence_threshold', SCORE_CONFIDENCE_THRESHOLD)),
            alpha=float(rec.get('alpha', ALPHA)),
            overlap_cutoff=float(rec.get('overlap_cutoff', OVERLAP_CUTOFF)),
            distance_scale=float(rec.get('distance_scale', DISTANCE_SCALE)),
            icp_max_correspondence_distance=float(reg.get('icp_max_correspondence_distance', ICP_MAX_CORRESPONDENCE_DISTANCE)),
            icp_max_iteration=int(reg.get('icp_max_iteration', ICP_MAX_ITERATION)),
            overlap_search_radius=float(reg.get('overlap_search_radius', OVERLAP_SEARCH_RADIUS)),
            color_match_tolerance=float(reg.get('color_match_tolerance', COLOR_MATCH_TOLERANCE)),
            outlier_nb_neighbors=int(pre.get('outlier_nb_neighbors', OUTLIER_NB_NEIGHBORS)),
            outlier_std_ratio=float(pre.get('outlier_std_ratio', OUTLIER_STD_RATIO)),
            max_workers=int(rec.get('max_workers', 1)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
