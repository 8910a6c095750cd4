"""
Point cloud recognizer: the full recognition and grasp transfer pipeline.

    PosePreprocessor -> CandidateSelector (RegistrationScorer per candidate)
        -> GraspTransferEngine -> GraspRanker -> ObservedObject

recognize() returns True and fills in the observed object on a confident
match. On any failure (empty cloud, empty candidate list, nothing within the
confidence threshold) it returns False and the object is left untouched.

Orientation is not inferred from the registration; a recognized object
always reports the identity rotation.
"""

import time
from typing import Optional, Sequence

from grasp_recognition.scripts.candidate_selection import CandidateSelector
from grasp_recognition.scripts.grasp import GraspModel, ObservedObject, IDENTITY_QUATERNION
from grasp_recognition.scripts.grasp_ranking import GraspRanker
from grasp_recognition.scripts.grasp_transfer import GraspTransferEngine
from grasp_recognition.utils.config_utils import RecognitionConfig
from grasp_recognition.utils.logger import ProjectLogger
from grasp_recognition.vision.preprocessing import PosePreprocessor
from grasp_recognition.vision.registration import RegistrationScorer


class PointCloudRecognizer:
    """
    Recognizes segmented objects against a list of grasp models.

    Usage:
        recognizer = PointCloudRecognizer()
        if recognizer.recognize(observed, models):
            best_last = observed.grasps[-1]

    Args:
        params: Thresholds and weighting (config.yaml when None)
        scorer: Registration scorer override (mainly for tests)
        visualize: Show Open3D windows for every scored registration
    """

    def __init__(self, params: Optional[RecognitionConfig] = None, scorer=None,
                 visualize: bool = False):
        self.params = params or RecognitionConfig.from_config()
        self.logger = ProjectLogger.get_instance()

        self.preprocessor = PosePreprocessor(self.params)
        self.selector = CandidateSelector(
            self.params, scorer or RegistrationScorer(self.params, visualize=visualize))
        self.transfer_engine = GraspTransferEngine()
        self.ranker = GraspRanker()

    def recognize(self, observed: ObservedObject, candidates: Sequence[GraspModel]) -> bool:
        """
        Args:
            observed: Segmented object (cloud + optional precomputed centroid)
            candidates: Grasp models; list order decides ties

        Returns:
            True if the object was recognized and its fields were filled in
        """
        cloud = observed.point_cloud
        self.logger.log_recognition_start(len(cloud), len(candidates), cloud.frame_id, observed.centroid)

        if not candidates:
            self.logger.log_recognition_result(
                False, reason="Candidate list is empty. Nothing to compare the observed object to.")
            return False
        if cloud.is_empty:
            self.logger.log_recognition_result(
                False, reason="Observed point cloud is empty. Nothing to compare candidates to.")
            return False

        prepared = self.preprocessor.preprocess(cloud, observed.centroid)
        if prepared is None:
            self.logger.log_recognition_result(False, reason="Preprocessing left no points")
            return False
        centered, centroid = prepared
        observed_color = self.preprocessor.average_color(centered)

        selection = self.selector.select(centered, observed_color, candidates)
        if selection is None:
            self.logger.log_recognition_result(False, reason="No candidate within the confidence threshold")
            return False

        model = candidates[selection.index]
        transferred = self.transfer_engine.transfer(selection.transform, centroid, model.grasps)
        ranked = self.ranker.rank(transferred, cloud.frame_id)

        # Only written once everything above succeeded
        observed.name = model.object_name
        observed.model_id = model.id
        observed.confidence = selection.score
        observed.recognized = True
        observed.orientation = IDENTITY_QUATERNION
        observed.grasps = ranked

        self.logger.log_recognition_result(True, name=model.object_name,
                                           model_id=model.id, confidence=selection.score)
        self.logger.log_ranked_grasps(ranked)
        return True

    def recognize_all(self, observed_objects: Sequence[ObservedObject],
                      candidates: Sequence[GraspModel]) -> int:
        """
        Recognize every object of a segmented scene.

        Returns:
            Number of recognized objects
        """
        start = time.time()
        recognized = sum(1 for obj in observed_objects if self.recognize(obj, candidates))

        names = [obj.name if obj.recognized else "?" for obj in observed_objects]
        self.logger.log_session_summary(names, total_time=time.time() - start,
                                        recognized_count=recognized,
                                        failed_count=len(observed_objects) - recognized)
        return recognized
