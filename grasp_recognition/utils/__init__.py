"""
Utility functions for configuration loading and logging.
"""
from .config_utils import (
    RecognitionConfig,
    load_config,
    get_recognition_params,
    get_registration_params,
    get_preprocessing_params,
    get_default_frame_id,
    is_visualization_enabled,
)
from .logger import (
    ProjectLogger,
    get_logger,
    RecognitionDataLogger,
    RecognitionRecord,
    SessionData,
)
