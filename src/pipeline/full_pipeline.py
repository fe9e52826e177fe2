"""
Full End-to-End Pipeline

Command-line entry point: runs the certificate pipeline on one image and
prints (or saves) the merged JSON result.

Usage:
    certificate-ocr --input ielts.jpg
    certificate-ocr --input scan.png --type TOEIC --output results/scan.json
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from src.common.errors import CertificateOCRError
from src.extraction.rules import CertificateType
from src.pipeline.processor import CertificateProcessor
from src.utils.io import save_json, to_json
from src.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract structured fields from a language certificate image"
    )
    parser.add_argument("--input", type=str, required=True, help="Input image file")
    parser.add_argument(
        "--type",
        type=str,
        default=None,
        choices=[t.value for t in CertificateType],
        help="Certificate type hint (skips automatic detection)",
    )
    parser.add_argument("--config", type=str, default=None, help="Configuration file")
    parser.add_argument(
        "--output", type=str, default=None, help="Write JSON result to this file"
    )
    parser.add_argument(
        "--no-diagnostics",
        action="store_true",
        help="Omit OCR pass details from the output",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        processor = CertificateProcessor(
            config_path=Path(args.config) if args.config else None
        )
        result = processor.process(Path(args.input), type_hint=args.type)
    except CertificateOCRError as e:
        logger.error(e.message)
        print(f"Error: {e.user_message}", file=sys.stderr)
        for suggestion in e.suggestions:
            print(f"  - {suggestion}", file=sys.stderr)
        return 1
    except (FileNotFoundError, RuntimeError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    data = result.to_dict(include_diagnostics=not args.no_diagnostics)
    if args.output:
        save_json(data, Path(args.output))
        logger.info(f"Result saved to {args.output}")
    else:
        print(to_json(data))
    return 0


if __name__ == "__main__":
    sys.exit(main())
