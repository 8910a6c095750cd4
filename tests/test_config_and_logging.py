"""
Tests for configuration loading and the project loggers.
"""

import logging

import pytest
import yaml

from grasp_recognition.scripts.grasp import ObservedObject, Pose, RankedGrasp
from grasp_recognition.utils.config_utils import (
    RecognitionConfig, load_config, get_default_frame_id, is_visualization_enabled
)
from grasp_recognition.utils.logger import (
    ProjectLogger, RecognitionDataLogger, SelectiveLevelFilter, get_logger
)
from grasp_recognition.vision.point_cloud import PointCloud


class TestConfig:

    def test_packaged_config_loads(self):
        config = load_config()
        params = RecognitionConfig.from_config(config)

        assert params.overlap_cutoff == pytest.approx(0.75)
        assert params.distance_scale == pytest.approx(3.0)
        assert 0.0 <= params.alpha <= 1.0

    def test_missing_keys_use_defaults(self):
        params = RecognitionConfig.from_config({'recognition': {'alpha': 0.25}})

        assert params.alpha == pytest.approx(0.25)
        assert params.color_threshold == RecognitionConfig().color_threshold
        assert params.icp_max_iteration == RecognitionConfig().icp_max_iteration

    def test_custom_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            'recognition': {'score_confidence_threshold': 0.3, 'max_workers': 2},
            'scene': {'default_frame_id': 'kinect'},
            'debug': {'visualize': True},
        }))

        config = load_config(str(path))
        params = RecognitionConfig.from_config(config)

        assert params.score_confidence_threshold == pytest.approx(0.3)
        assert params.max_workers == 2
        assert get_default_frame_id(config) == 'kinect'
        assert is_visualization_enabled(config)

    def test_invalid_alpha_raises(self):
        with pytest.raises(ValueError):
            RecognitionConfig(alpha=1.5)

    def test_invalid_workers_raise(self):
        with pytest.raises(ValueError):
            RecognitionConfig(max_workers=0)


class TestProjectLogger:

    def test_singleton(self):
        assert ProjectLogger.get_instance() is get_logger()

    def test_selective_filter(self):
        f = SelectiveLevelFilter(["INFO", "ERROR"])
        info = logging.LogRecord("x", logging.INFO, "", 0, "m", None, None)
        warning = logging.LogRecord("x", logging.WARNING, "", 0, "m", None, None)

        assert f.filter(info)
        assert not f.filter(warning)

    def test_list_log_level(self):
        ProjectLogger.reset()
        logger = ProjectLogger.get_instance({'debug': {'log_level': ['INFO', 'ERROR'], 'log_to_file': False}})
        assert logger.selective_filter is not None

    def test_log_file_is_created(self, tmp_path):
        ProjectLogger.reset()
        logger = ProjectLogger.get_instance({
            'debug': {'log_to_file': True, 'log_level': 'INFO'},
            'output': {'directory': str(tmp_path)},
        })
        logger.info("hello")

        assert logger.log_file_path is not None
        assert logger.log_file_path.exists()
        assert "hello" in logger.log_file_path.read_text(encoding='utf-8')


class TestRecognitionDataLogger:

    def test_save_and_load(self, tmp_path):
        observed = ObservedObject(PointCloud([[0, 0, 0]], [[0, 0, 0]], "camera"))
        observed.name = "mug"
        observed.model_id = 4
        observed.confidence = 0.12
        observed.recognized = True
        observed.grasps = [RankedGrasp(Pose(robot_fixed_frame_id="camera", grasp_frame_id="eef"), 0.5)]
        missed = ObservedObject(PointCloud([[0, 0, 0]], [[0, 0, 0]], "camera"))

        data_logger = RecognitionDataLogger(tmp_path)
        data_logger.start_session({'alpha': 0.5})
        data_logger.add_result("mug.pcd", observed, duration=0.5)
        data_logger.add_result("unknown.pcd", missed)
        path = data_logger.save()

        session = data_logger.load_session(path)
        assert data_logger.list_saved_sessions() == [path]
        assert [r.source for r in session.records] == ["mug.pcd", "unknown.pcd"]
        first, second = session.records
        assert first.recognized and first.name == "mug" and first.model_id == 4
        assert first.grasps[0]['frame_id'] == "camera"
        assert first.grasps[0]['success_rate'] == pytest.approx(0.5)
        assert not second.recognized and second.grasps == []
        assert session.config_snapshot == {'alpha': 0.5}

    def test_save_without_session(self, tmp_path):
        assert RecognitionDataLogger(tmp_path).save() is None
