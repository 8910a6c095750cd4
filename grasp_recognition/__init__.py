"""
Recognition of segmented point clouds against grasp demonstration models,
with transfer of the stored grasps into the recognized object's frame.
"""
from .scripts import (
    PointCloudRecognizer,
    Pose,
    Grasp,
    GraspModel,
    ObservedObject,
    RankedGrasp,
)
from .utils import RecognitionConfig
from .vision import PointCloud

__version__ = "0.1.0"
