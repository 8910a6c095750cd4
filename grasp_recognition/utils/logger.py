"""
Single logger instance used throughout the recognition pipeline.
Configuration is loaded from config.yaml debug section.

Usage:
    from grasp_recognition.utils.logger import ProjectLogger

    # In class __init__:
    self.logger = ProjectLogger.get_instance()

    # In methods:
    self.logger.info("Message")
    if self.logger.debug_enabled:
        self.logger.debug("Detailed debug info")

Recognition results can additionally be stored as JSON with
RecognitionDataLogger for later analysis of scores and ranked grasps.

Reference:
- Python logging: https://docs.python.org/3/library/logging.html
- Singleton pattern: https://refactoring.guru/design-patterns/singleton/python
- ANSI escape codes: https://en.wikipedia.org/wiki/ANSI_escape_code
"""

import json
import logging
import sys
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Optional, Any, Dict, List, Sequence

import numpy as np


# ANSI color codes for console output (256-color mode)
COLORS = {
    'BLUE': '\033[38;5;39m',
    'GREEN': '\033[38;5;82m',
    'ORANGE': '\033[38;5;208m',
    'RED': '\033[38;5;196m',
    'GRAY': '\033[38;5;245m',
    'BOLD': '\033[1m',
    'DIM': '\033[2m',
    'UNDERLINE': '\033[4m',
    'END': '\033[0m',
}

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
    'ALL': logging.DEBUG,
}

LOGGER_NAME = 'grasp_recognition'


class SelectiveLevelFilter(logging.Filter):
    """
    Filter that only allows specific log levels.

    Used when log_level is a list like ["INFO", "WARNING", "ERROR"].

    Reference: https://docs.python.org/3/library/logging.html#filter-objects
    """

    def __init__(self, allowed_levels: list):
        super().__init__()
        self.allowed_levels = {LOG_LEVELS.get(lvl.upper(), logging.INFO) for lvl in allowed_levels}

    def filter(self, record):
        return record.levelno in self.allowed_levels


class ColoredFormatter(logging.Formatter):
    """
    Adds colors to console output based on log level.

    - DEBUG: Gray, dimmed
    - INFO: Blue
    - WARNING: Orange bold
    - ERROR/CRITICAL: Red bold
    """

    LEVEL_COLORS = {
        logging.DEBUG: COLORS['GRAY'] + COLORS['DIM'],
        logging.INFO: COLORS['BLUE'],
        logging.WARNING: COLORS['ORANGE'] + COLORS['BOLD'],
        logging.ERROR: COLORS['RED'] + COLORS['BOLD'],
        logging.CRITICAL: COLORS['RED'] + COLORS['BOLD'] + COLORS['UNDERLINE'],
    }

    LEVEL_PREFIXES = {
        logging.DEBUG: '  ',
        logging.INFO: '▸ ',
        logging.WARNING: '⚠ ',
        logging.ERROR: '✗ ',
        logging.CRITICAL: '✗✗ ',
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, COLORS['END'])
        prefix = self.LEVEL_PREFIXES.get(record.levelno, '')
        formatted = super().format(record)
        colored_level = f"{color}{record.levelname}{COLORS['END']}"
        formatted = formatted.replace(record.levelname, colored_level, 1)
        return f"{prefix}{formatted}"


class ProjectLogger:
    """
    Singleton logger for the recognition pipeline.

    Attributes:
        debug_enabled: Whether DEBUG level logging is active
        log_file_path: Path to current log file (or None)

    Example:
        logger = ProjectLogger.get_instance()
        logger.info("Recognition started")
        if logger.debug_enabled:
            logger.debug("Per-candidate metrics")
    """

    _instance: Optional['ProjectLogger'] = None
    _initialized: bool = False

    def __new__(cls, config: Optional[Dict] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config: Optional[Dict] = None):
        """
        Args:
            config: Optional config dict. If None, loads from config.yaml
        """
        if ProjectLogger._initialized:
            return

        if config is None:
            from grasp_recognition.utils.config_utils import load_config
            config = load_config()

        self.config = config
        self._setup_from_config()
        ProjectLogger._initialized = True

    def _setup_from_config(self):
        """Setup handlers from the config.yaml debug section."""
        debug_config = self.config.get('debug', {})

        self.debug_enabled = debug_config.get('enabled', True)
        log_to_file = debug_config.get('log_to_file', False)
        log_level_config = debug_config.get('log_level', 'INFO')

        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.setLevel(logging.DEBUG)  # filtering happens in handlers
        self._logger.handlers = []

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(fmt='%(levelname)-8s %(message)s'))

        # log_level may be "ALL", a single level name, or a list of level names
        self.selective_filter = None

        if isinstance(log_level_config, list):
            self.log_level = logging.DEBUG
            self.selective_filter = SelectiveLevelFilter(log_level_config)
            console_handler.addFilter(self.selective_filter)
            console_handler.setLevel(logging.DEBUG)
        elif isinstance(log_level_config, str):
            self.log_level = LOG_LEVELS.get(log_level_config.upper(), logging.INFO)
            console_handler.setLevel(self.log_level)
        else:
            self.log_level = logging.INFO
            console_handler.setLevel(self.log_level)

        self._logger.addHandler(console_handler)

        self.log_file_path = None
        if log_to_file:
            self._setup_file_handler()

    def _setup_file_handler(self):
        """Setup file logging with timestamp."""
        output_dir = self.config.get('output', {}).get('directory', 'outputs')
        log_dir = Path(output_dir) / 'recognition_logs'
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._logger.warning(f"Could not create log directory {log_dir}: {e}")
            return

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        self.log_file_path = log_dir / f'recognition_{timestamp}.log'

        file_handler = logging.FileHandler(self.log_file_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        self._logger.addHandler(file_handler)

    @classmethod
    def get_instance(cls, config: Optional[Dict] = None) -> 'ProjectLogger':
        """
        Get the singleton logger instance.

        Args:
            config: Optional config dict (only used on first call)
        """
        if cls._instance is None or not cls._initialized:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset singleton (for testing purposes only)."""
        if cls._instance is not None:
            cls._instance.cleanup()
        cls._instance = None
        cls._initialized = False

    def cleanup(self):
        """Close and detach all handlers."""
        if hasattr(self, '_logger'):
            for handler in self._logger.handlers[:]:
                handler.close()
                self._logger.removeHandler(handler)

    # =========================================================================
    # LOGGING METHODS (delegate to internal logger)
    # =========================================================================

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message (only if debug_enabled)."""
        if self.debug_enabled:
            self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._logger.critical(msg, *args, **kwargs)

    # =========================================================================
    # STRUCTURED LOGGING HELPERS
    # =========================================================================

    def log_recognition_start(self, n_points: int, n_candidates: int,
                              frame_id: str = "", centroid: Any = None):
        """
        Log the start of a recognition request.

        Args:
            n_points: Points in the observed cloud
            n_candidates: Number of grasp models to compare against
            frame_id: Frame of the observed cloud
            centroid: Precomputed centroid (if any)
        """
        self.info("=" * 60)
        self.info("RECOGNITION START")
        self.info("-" * 60)
        self.info(f"  Observed cloud: {n_points} pts [{frame_id}]")
        self.info(f"  Candidates: {n_candidates}")
        if centroid is not None:
            c = np.asarray(centroid, dtype=float)
            self.debug(f"  Centroid: [{c[0]:.4f}, {c[1]:.4f}, {c[2]:.4f}]")
        self.info("-" * 60)

    def log_candidate_score(self, index: int, name: str, score: float,
                            details: Optional[Dict[str, float]] = None):
        """
        Log the score of one candidate (score -1 = rejected registration).

        Args:
            index: Candidate index in the input list
            name: Candidate object name
            score: Final weighted score
            details: Optional metric breakdown (overlap, distance_error, ...)
        """
        if score < 0:
            self.debug(f"  Candidate {index} [{name}]: rejected (low overlap)")
        else:
            self.debug(f"  Candidate {index} [{name}]: score={score:.4f}")
        if details:
            for key, value in details.items():
                self.debug(f"      {key}: {value:.4f}")

    def log_recognition_result(self, success: bool, name: str = None,
                               model_id: int = None, confidence: float = None,
                               reason: str = None):
        """
        Log the result of a recognition request.

        Args:
            success: Whether an object was recognized
            name: Recognized object name
            model_id: Matched model identifier
            confidence: Winning score (lower is better)
            reason: Failure reason
        """
        if success:
            self.info(f"RECOGNIZED: {name} (model {model_id})")
            if confidence is not None:
                self.info(f"  Confidence: {confidence:.4f}")
        else:
            self.warning("NOT RECOGNIZED")
            if reason:
                self.warning(f"  {reason}")
        self.info("=" * 60)

    def log_ranked_grasps(self, ranked: Sequence[Any]):
        """
        Log transferred grasps in ranked order.

        Args:
            ranked: RankedGrasp sequence (pose + rate)
        """
        self.info(f"RANKED GRASPS: {len(ranked)}")
        for i, entry in enumerate(ranked):
            p = entry.pose.position
            self.info(f"  [{i}] rate={entry.rate:.2f} "
                      f"pos=[{p[0]:.4f}, {p[1]:.4f}, {p[2]:.4f}] frame={entry.pose.robot_fixed_frame_id}")

    def log_session_summary(self, objects: List[str], total_time: float = None,
                            recognized_count: int = None, failed_count: int = None):
        """
        Log end-of-session summary.

        Args:
            objects: Names (or sources) of the processed objects
            total_time: Total execution time (seconds)
            recognized_count: Number of recognized objects
            failed_count: Number of objects without a match
        """
        self.info("")
        self.info("=" * 60)
        self.info("SESSION SUMMARY")
        self.info("=" * 60)
        self.info(f"  Objects Processed: {', '.join(objects)}")

        if recognized_count is not None:
            self.info(f"  Recognized: {recognized_count}")
        if failed_count is not None:
            self.info(f"  Not Recognized: {failed_count}")
        if total_time is not None:
            self.info(f"  Total Time: {total_time:.2f} seconds")

        if self.log_file_path:
            self.info(f"  Full Log: {self.log_file_path}")

        self.info("=" * 60)


def get_logger() -> ProjectLogger:
    """Shorthand for ProjectLogger.get_instance()."""
    return ProjectLogger.get_instance()


# =============================================================================
# RECOGNITION DATA LOGGER - JSON FORMAT
# =============================================================================


@dataclass
class RecognitionRecord:
    """
    Result of one recognition request, JSON-serializable.
    """
    source: str
    recognized: bool
    name: str = ""
    model_id: int = -1
    confidence: float = -1.0
    grasps: List[Dict[str, Any]] = field(default_factory=list)
    timestamp: str = ""
    duration_sec: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()


@dataclass
class SessionData:
    """
    All recognition records from a single execution session.
    """
    session_id: str = ""
    start_time: str = ""
    end_time: str = ""
    records: List[RecognitionRecord] = field(default_factory=list)
    config_snapshot: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.session_id:
            self.session_id = datetime.now().strftime('%Y%m%d_%H%M%S')
        if not self.start_time:
            self.start_time = datetime.now().isoformat()


class RecognitionDataLogger:
    """
    JSON-based recognition result logger.

    Usage:
        data_logger = RecognitionDataLogger(output_dir="outputs/recognition_data")
        data_logger.start_session(config)
        data_logger.add_result("mug.pcd", observed_object)
        data_logger.save()
    """

    def __init__(self, output_dir=None):
        if output_dir is None:
            output_dir = Path('outputs') / 'recognition_data'
        self.output_dir = Path(output_dir)
        self.current_session: Optional[SessionData] = None
        self.logger = ProjectLogger.get_instance()

    def start_session(self, config: Dict = None):
        """
        Start a new logging session.

        Args:
            config: Optional config snapshot to store
        """
        self.current_session = SessionData(config_snapshot=config or {})
        self.logger.debug(f"RecognitionDataLogger: Session started [{self.current_session.session_id}]")

    def add_result(self, source: str, observed, duration: float = 0.0,
                   metadata: Dict = None) -> RecognitionRecord:
        """
        Add the state of an ObservedObject after a recognition call.

        Args:
            source: Where the observed cloud came from (file name, topic, ...)
            observed: ObservedObject after recognize()
            duration: Recognition duration in seconds
            metadata: Additional metadata dict
        """
        if self.current_session is None:
            self.logger.warning("RecognitionDataLogger: No active session, creating one")
            self.start_session()

        grasps = [
            {
                'position': entry.pose.position.tolist(),
                'orientation': entry.pose.quaternion.tolist(),
                'frame_id': entry.pose.robot_fixed_frame_id,
                'grasp_frame_id': entry.pose.grasp_frame_id,
                'success_rate': float(entry.rate),
            }
            for entry in (observed.grasps if observed.recognized else [])
        ]

        record = RecognitionRecord(
            source=source,
            recognized=bool(observed.recognized),
            name=observed.name if observed.recognized else "",
            model_id=int(observed.model_id) if observed.recognized else -1,
            confidence=float(observed.confidence) if observed.recognized else -1.0,
            grasps=grasps,
            duration_sec=duration,
            metadata=metadata or {},
        )
        self.current_session.records.append(record)
        self.logger.debug(f"RecognitionDataLogger: Added {source} (recognized={record.recognized})")
        return record

    def end_session(self):
        """Mark session as ended with timestamp."""
        if self.current_session:
            self.current_session.end_time = datetime.now().isoformat()

    def save(self, filename: str = None) -> Optional[Path]:
        """
        Save session data to JSON file.

        Returns:
            Path to saved JSON file, None without an active session
        """
        if self.current_session is None:
            self.logger.warning("RecognitionDataLogger: No session to save")
            return None

        if not self.current_session.end_time:
            self.end_session()

        if filename is None:
            filename = f"session_{self.current_session.session_id}.json"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / filename

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(asdict(self.current_session), f, indent=2)

        self.logger.info(f"RecognitionDataLogger: Saved to {filepath}")
        return filepath

    def load_session(self, filepath) -> SessionData:
        """Load session data from JSON file."""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        session = SessionData(
            session_id=data.get('session_id', ''),
            start_time=data.get('start_time', ''),
            end_time=data.get('end_time', ''),
            records=[RecognitionRecord(**r) for r in data.get('records', [])],
            config_snapshot=data.get('config_snapshot', {}),
        )

        self.logger.info(f"RecognitionDataLogger: Loaded session {session.session_id}")
        return session

    def list_saved_sessions(self) -> List[Path]:
        """List all saved session files."""
        return sorted(self.output_dir.glob('session_*.json'))
