"""
Command line driver: recognize segmented object clouds against a grasp
model library and print the transferred, ranked grasps.

Usage:
    python -m grasp_recognition.main --library models/library.yaml \
        --object scans/mug_0001.pcd [--object ...] \
        [--config my_config.yaml] [--frame-id base_footprint] \
        [--workers 4] [--save-results]

Exit code is 0 when every object was recognized, 1 otherwise.
"""
import argparse
import sys
import time
from dataclasses import replace
from pathlib import Path

from grasp_recognition.scripts import (
    PointCloudRecognizer,
    load_model_library,
    load_observed_object,
)
from grasp_recognition.utils import (
    ProjectLogger,
    RecognitionConfig,
    RecognitionDataLogger,
    load_config,
    is_visualization_enabled,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Recognize segmented point clouds and transfer stored grasps"
    )
    parser.add_argument(
        "--library", required=True,
        help="YAML manifest of the grasp model library"
    )
    parser.add_argument(
        "--object", dest="objects", action="append", required=True,
        help="Segmented object cloud (.pcd/.ply), can be repeated"
    )
    parser.add_argument(
        "--config", default=None,
        help="Config file (defaults to the packaged config.yaml)"
    )
    parser.add_argument(
        "--frame-id", default=None,
        help="Frame of the object clouds (defaults to scene.default_frame_id)"
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Threads used to score candidates"
    )
    parser.add_argument(
        "--save-results", action="store_true",
        help="Store the results as JSON in <output.directory>/recognition_data"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    config = load_config(args.config)
    logger = ProjectLogger.get_instance(config)

    params = RecognitionConfig.from_config(config)
    if args.workers is not None:
        params = replace(params, max_workers=args.workers)

    models = load_model_library(args.library)
    recognizer = PointCloudRecognizer(params, visualize=is_visualization_enabled(config))

    data_logger = None
    if args.save_results:
        output_dir = Path(config.get('output', {}).get('directory', 'outputs')) / 'recognition_data'
        data_logger = RecognitionDataLogger(output_dir)
        data_logger.start_session(params.to_dict())

    recognized = 0
    for path in args.objects:
        observed = load_observed_object(path, args.frame_id, config=config)

        start = time.time()
        if recognizer.recognize(observed, models):
            recognized += 1
        duration = time.time() - start

        if data_logger is not None:
            data_logger.add_result(path, observed, duration=duration)

    logger.log_session_summary(args.objects, recognized_count=recognized,
                               failed_count=len(args.objects) - recognized)

    if data_logger is not None:
        data_logger.save()

    return 0 if recognized == len(args.objects) else 1


if __name__ == "__main__":
    sys.exit(main())
