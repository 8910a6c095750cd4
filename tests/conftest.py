"""
Shared fixtures: logger setup and synthetic colored clouds.
"""

import time

import numpy as np
import pytest
from spatialmath import SE3

from grasp_recognition.utils.config_utils import RecognitionConfig
from grasp_recognition.utils.logger import ProjectLogger
from grasp_recognition.vision.point_cloud import PointCloud
from grasp_recognition.vision.registration import AlignmentResult


TEST_LOGGER_CONFIG = {
    'debug': {'enabled': True, 'log_to_file': False, 'log_level': 'WARNING'},
}

RED = (200.0, 30.0, 30.0)
BLUE = (30.0, 30.0, 200.0)


@pytest.fixture(autouse=True)
def project_logger():
    """Fresh logger singleton without file output for every test."""
    ProjectLogger.reset()
    logger = ProjectLogger.get_instance(TEST_LOGGER_CONFIG)
    yield logger
    ProjectLogger.reset()


def sample_box_surface(size=(0.06, 0.04, 0.10), n_points=3000, seed=0):
    """Points uniformly spread over the surface of a box centered at the origin."""
    rng = np.random.default_rng(seed)
    half = np.asarray(size) / 2.0
    areas = np.array([size[1] * size[2], size[0] * size[2], size[0] * size[1]])
    probs = np.repeat(areas, 2) / (2 * areas.sum())

    faces = rng.choice(6, size=n_points, p=probs)
    points = rng.uniform(-half, half, size=(n_points, 3))
    axis = faces // 2
    sign = np.where(faces % 2 == 0, 1.0, -1.0)
    points[np.arange(n_points), axis] = sign * half[axis]
    return points


def sample_sphere_surface(radius=0.05, n_points=2000, seed=1):
    rng = np.random.default_rng(seed)
    v = rng.normal(size=(n_points, 3))
    return radius * v / np.linalg.norm(v, axis=1, keepdims=True)


@pytest.fixture
def make_box_cloud():
    def _make(color=RED, offset=(0.0, 0.0, 0.0), frame_id="camera_frame", **kwargs):
        points = sample_box_surface(**kwargs) + np.asarray(offset)
        colors = np.tile(np.asarray(color, dtype=float), (len(points), 1))
        return PointCloud(points, colors, frame_id)
    return _make


@pytest.fixture
def make_sphere_cloud():
    def _make(color=RED, radius=0.05, frame_id="camera_frame", **kwargs):
        points = sample_sphere_surface(radius=radius, **kwargs)
        colors = np.tile(np.asarray(color, dtype=float), (len(points), 1))
        return PointCloud(points, colors, frame_id)
    return _make


@pytest.fixture
def params():
    return RecognitionConfig()


class FakeScorer:
    """
    Stand-in for RegistrationScorer returning preset scores per candidate cloud.

    scores: list of (cloud, score) pairs, matched by identity
    """

    def __init__(self, scores, delays=None):
        self.scores = scores
        self.delays = delays or {}
        self.calls = []

    def score(self, candidate, observed):
        self.calls.append(candidate)
        for i, (cloud, value) in enumerate(self.scores):
            if cloud is candidate:
                if i in self.delays:
                    time.sleep(self.delays[i])
                return value, AlignmentResult(SE3(), observed)
        raise AssertionError("unexpected candidate cloud")


@pytest.fixture
def fake_scorer_cls():
    return FakeScorer
