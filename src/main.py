"""
Object detection and annotation tool.

Runs a detector over image files, or over a camera/stream/video file, and
prints, draws and displays the results.

Usage:
    python src/main.py --config config/config.yaml image1.jpg image2.jpg --output out/
    python src/main.py --config config/config.yaml --source 0 --display

Arguments:
    images: Image files to process (image mode)
    --config: Path to configuration file
    --source: Camera index, stream URL or video file (stream mode)
    --threshold: Prediction threshold override (0-1)
    --size: Resize annotated output to fit WIDTHxHEIGHT
    --output: Directory for annotated images (image mode)
    --show: Show each annotated image (image mode)
    --display: Show the annotated stream (stream mode)
    --record: Write the annotated stream to a video file (stream mode)
    --print: Print results for every streamed frame
"""

import os
import sys
import argparse
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import cv2
import yaml

from detection import DetectionHelper, format_results, print_results
from imaging import resize_keeping_aspect_ratio
from models.config import Config
from observation import create_source_from_config
from ops.logging import setup_logging
from pipeline import StreamPipeline

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_BACKENDS = ('darknet', 'ultralytics')


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        config_dir = os.path.dirname(config_path)
        merged: Dict[str, Any] = {}

        base_path = os.path.join(config_dir, "default.yaml")
        local_overrides_path = os.path.join(config_dir, "config.yaml")
        for path in (base_path, local_overrides_path):
            if os.path.exists(path):
                with open(path, "r") as f:
                    merged = _deep_merge(merged, yaml.safe_load(f) or {})

        if os.path.exists(config_path) and os.path.abspath(config_path) not in (
            os.path.abspath(base_path),
            os.path.abspath(local_overrides_path),
        ):
            with open(config_path, "r") as f:
                merged = _deep_merge(merged, yaml.safe_load(f) or {})

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Returns:
        Tuple of (is_valid, error_message)
    """
    for section in ['detector', 'log_path', 'log_level']:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    detector = config.get('detector') or {}
    backend = detector.get('backend', 'darknet')
    if backend not in VALID_BACKENDS:
        return False, f"detector.backend must be one of: {', '.join(VALID_BACKENDS)}"
    if backend == 'darknet':
        for key in ('config_file', 'weights_file'):
            if not isinstance(detector.get(key), str) or not detector.get(key):
                return False, f"detector.{key} is required when detector.backend is 'darknet'"
    else:
        if not (detector.get('weights_file') or detector.get('config_file')):
            return False, "detector.weights_file is required when detector.backend is 'ultralytics'"

    for key in ('threshold', 'nms_threshold'):
        if key in detector:
            value = detector[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"detector.{key} must be a number between 0 and 1"

    if 'input_size' in detector:
        size = detector['input_size']
        if not isinstance(size, int) or size <= 0 or size % 32 != 0:
            return False, "detector.input_size must be a positive multiple of 32"

    classes = detector.get('classes')
    if classes is not None:
        if not isinstance(classes, list) or not all(isinstance(c, int) and c >= 0 for c in classes):
            return False, "detector.classes must be a list of non-negative integers"

    if not isinstance(detector.get('track', False), bool):
        return False, "detector.track must be true or false"
    if detector.get('track') and backend != 'ultralytics':
        return False, "detector.track is only supported by the 'ultralytics' backend"

    annotation = config.get('annotation') or {}
    if 'font_scale' in annotation:
        if not _is_number(annotation['font_scale']) or annotation['font_scale'] <= 0:
            return False, "annotation.font_scale must be a positive number"
    if 'font_thickness' in annotation:
        if not isinstance(annotation['font_thickness'], int) or annotation['font_thickness'] <= 0:
            return False, "annotation.font_thickness must be a positive integer"
    colours = annotation.get('colours')
    if colours is not None:
        if not isinstance(colours, list) or not colours:
            return False, "annotation.colours must be a non-empty list of [b, g, r] values"
        for colour in colours:
            if (not isinstance(colour, list) or len(colour) != 3
                    or not all(isinstance(c, int) and 0 <= c <= 255 for c in colour)):
                return False, "annotation.colours entries must be [b, g, r] integers in 0-255"

    source = config.get('source') or {}
    if 'device_id' in source:
        device_id = source['device_id']
        if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
            return False, "source.device_id must be an integer (index) or string (URL or file)"
        if isinstance(device_id, int) and device_id < 0:
            return False, "source.device_id integer must be non-negative"
    if source.get('resolution') is not None:
        resolution = source['resolution']
        if not isinstance(resolution, list) or len(resolution) != 2:
            return False, "source.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in resolution):
            return False, "source.resolution values must be positive integers"

    stream = config.get('stream') or {}
    if 'receive_timeout' in stream:
        if not _is_number(stream['receive_timeout']) or stream['receive_timeout'] <= 0:
            return False, "stream.receive_timeout must be a positive number"
    if 'max_consecutive_failures' in stream:
        mcf = stream['max_consecutive_failures']
        if not isinstance(mcf, int) or mcf <= 0:
            return False, "stream.max_consecutive_failures must be a positive integer"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def parse_size(text: str) -> Tuple[int, int]:
    """Parse "WIDTHxHEIGHT" into a (width, height) tuple."""
    try:
        w, h = (int(part) for part in text.lower().split('x'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"size must look like 640x480, got {text!r}")
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive, got {text!r}")
    return w, h


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Object detection and annotation')
    parser.add_argument('images', nargs='*',
                        help='Image files to process')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--source', type=str, default=None,
                        help='Camera index, stream URL or video file to process')
    parser.add_argument('--threshold', type=float, default=None,
                        help='Prediction threshold (0-1)')
    parser.add_argument('--size', type=parse_size, default=None,
                        help='Resize annotated output to fit WIDTHxHEIGHT')
    parser.add_argument('--output', type=str, default=None,
                        help='Directory for annotated images')
    parser.add_argument('--show', action='store_true',
                        help='Show each annotated image')
    parser.add_argument('--display', action='store_true',
                        help='Show the annotated stream')
    parser.add_argument('--record', type=str, default=None,
                        help='Record the annotated stream to this video file')
    parser.add_argument('--print', dest='print_results', action='store_true',
                        help='Print results for every streamed frame')
    return parser


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Fold command-line options into the config dict."""
    if args.threshold is not None:
        config.setdefault('detector', {})['threshold'] = args.threshold
    if args.source is not None:
        source = args.source
        config.setdefault('source', {})['device_id'] = int(source) if source.isdigit() else source
    stream = config.setdefault('stream', {})
    if args.display:
        stream['display'] = True
    if args.record:
        stream['record_path'] = args.record
    if args.print_results:
        stream['print_results'] = True
    return config


def output_path_for(image_path: str, output_dir: str) -> str:
    stem, ext = os.path.splitext(os.path.basename(image_path))
    return os.path.join(output_dir, f"{stem}_annotated{ext or '.jpg'}")


def run_images(helper: DetectionHelper, images: Sequence[str], size: Optional[Tuple[int, int]] = None,
               output_dir: Optional[str] = None, show: bool = False) -> int:
    """Predict, report and annotate each image. Returns the number of failures."""
    if output_dir and not os.path.exists(output_dir):
        os.makedirs(output_dir)

    failures = 0
    for image_path in images:
        try:
            results = helper.predict(image_path)
        except FileNotFoundError as e:
            logging.error(str(e))
            failures += 1
            continue

        logging.info(f"{image_path}: {format_results(results)} ({helper.duration_string()})")
        print_results(results, helper.names)

        annotated = helper.annotate()
        if size:
            annotated = resize_keeping_aspect_ratio(annotated, size)

        if output_dir:
            out_path = output_path_for(image_path, output_dir)
            if cv2.imwrite(out_path, annotated):
                logging.info(f"Saved annotated image: {out_path}")
            else:
                logging.error(f"Failed to write {out_path}")
                failures += 1

        if show:
            cv2.imshow(image_path, annotated)
            cv2.waitKey(0)
            cv2.destroyWindow(image_path)

    return failures


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    args = build_parser().parse_args(argv)

    config = apply_overrides(load_config(args.config), args)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    setup_logging(config['log_path'], config['log_level'])
    cfg = Config.from_dict(config)

    if not args.images and args.source is None:
        logging.error("Nothing to do: give image files or --source")
        return 1

    try:
        helper = DetectionHelper.from_config(cfg.detector, cfg.annotation)
    except (FileNotFoundError, ImportError, ValueError, RuntimeError) as e:
        logging.error(f"Failed to initialize detector: {e}")
        return 1

    if args.images:
        failures = run_images(helper, args.images, size=args.size,
                              output_dir=args.output, show=args.show)
        if args.show:
            cv2.destroyAllWindows()
        if failures:
            return 1

    if args.source is not None:
        source = create_source_from_config(cfg.source)
        pipeline = StreamPipeline(source, helper, cfg.stream, resize_to=args.size)
        stats = pipeline.run()
        if stats.frames_captured == 0:
            logging.error("No frames were captured from the source")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
