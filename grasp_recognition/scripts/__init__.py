# Scripts module init
from .grasp import (
    Pose,
    Grasp,
    GraspModel,
    GraspDemonstration,
    ObservedObject,
    RankedGrasp,
    IDENTITY_QUATERNION,
)

from .candidate_selection import (
    CandidateSelector,
    SelectionResult,
    color_within_threshold,
)

from .grasp_transfer import (
    GraspTransferEngine,
    transfer_pose,
)

from .grasp_ranking import GraspRanker

from .recognizer import PointCloudRecognizer

from .model_library import (
    ModelLibrary,
    load_model_library,
    load_observed_object,
    read_point_cloud,
)
