"""
Run the full pipeline on one image and print the scored darts.

    python check_pipeline.py board.jpg
    python check_pipeline.py board.jpg --keypoints keypoints.json --config dartvision.toml
"""
import argparse
import json
import logging
import sys

import cv2

from dartvision.config import load_settings
from dartvision.core.errors import PipelineError
from dartvision.core.pipeline import ImagePipeline
from dartvision.models.schemas import KeypointSet


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Score the darts in a dartboard image")
    parser.add_argument("image", help="Path to the image")
    parser.add_argument("--keypoints", help="JSON file with top/right/bottom/left [x, y] pairs")
    parser.add_argument("--config", help="TOML settings file")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    img = cv2.imread(args.image)
    print(f'Image loaded: {img is not None}')
    if img is None:
        return 1

    h, w = img.shape[:2]
    print(f'Image size: {w}x{h}')

    keypoints = None
    if args.keypoints:
        with open(args.keypoints, 'r') as f:
            keypoints = KeypointSet(**json.load(f)).to_keypoints()

    try:
        pipeline = ImagePipeline.from_settings(settings)
        result = pipeline.process(img, existing_keypoints=keypoints)
    except PipelineError as e:
        print(f'Pipeline failed: {e}')
        return 1

    print(result.to_response().model_dump_json(indent=2))
    for i, dart in enumerate(result.darts, start=1):
        print(f'  Dart {i}: board=({dart.x:.0f},{dart.y:.0f}) '
              f'score={dart.score.value} ({dart.score.field_type}) conf={dart.confidence:.3f}')
    return 0


if __name__ == "__main__":
    sys.exit(main())
