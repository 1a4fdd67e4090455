"""
Command-line interface for scanning still images.

Examples:
    docscan detect photo.jpg
    docscan scan photo.jpg -o flat.jpg --config my_config.yaml
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import cv2

from docscan.common.errors import ScannerError
from docscan.config_loader import ScannerConfig, load_config
from docscan.detection.detector import DocumentDetector
from docscan.rectification.encoding import ImageEncoder
from docscan.scanner import detect_and_rectify

logger = logging.getLogger(__name__)


def _load_image(path: Path):
    image = cv2.imread(str(path))
    if image is None:
        raise FileNotFoundError(f"Cannot read image: {path}")
    return image


def _load(args: argparse.Namespace) -> ScannerConfig:
    return load_config(Path(args.config)) if args.config else ScannerConfig()


def cmd_detect(args: argparse.Namespace) -> int:
    """Print the ordered document corners as JSON."""
    config = _load(args)
    image = _load_image(Path(args.image))
    quad = DocumentDetector(config.detection).detect(image)

    payload = {
        "image": str(args.image),
        "width": int(image.shape[1]),
        "height": int(image.shape[0]),
        "quad": [{"x": p.x, "y": p.y} for p in quad] if quad else None,
    }
    print(json.dumps(payload, indent=2))
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Detect, flatten and write the document."""
    config = _load(args)
    image = _load_image(Path(args.image))
    quad, flat = detect_and_rectify(image, config)

    data = ImageEncoder(config.capture).encode_jpeg(flat)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)

    if quad is None:
        logger.warning(f"No document found, wrote original image to {output}")
    else:
        logger.info(f"Wrote {flat.shape[1]}x{flat.shape[0]} document to {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docscan",
        description="Detect and flatten documents in photos",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="Print document corners as JSON")
    detect.add_argument("image", type=str, help="Input image path")
    detect.set_defaults(func=cmd_detect)

    scan = subparsers.add_parser("scan", help="Write the flattened document")
    scan.add_argument("image", type=str, help="Input image path")
    scan.add_argument("-o", "--output", type=str, required=True, help="Output JPEG path")
    scan.set_defaults(func=cmd_scan)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return args.func(args)
    except (FileNotFoundError, ScannerError) as e:
        logger.error(f"Scan failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
