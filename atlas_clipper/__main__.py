"""Command-line interface for atlas clipping.

Usage:
    python -m atlas_clipper -i atlas.png \
        -o 'icons/play 0 0 32 32' \
        -o 'icons/stop 32 0 32 32'
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from atlas_clipper.codecs import get_codec
from atlas_clipper.config import (
    CODEC_NAMES,
    DEFAULT_CODEC,
    DESCRIPTION,
    EPILOG,
    EXIT_CLIP_FAILED,
    EXIT_DECODE_FAILED,
    EXIT_DIRECTORY_FAILED,
    EXIT_INPUT_NOT_FOUND,
    EXIT_OK,
)
from atlas_clipper.descriptors import parse_descriptor
from atlas_clipper.errors import DecodeError, InputNotFoundError
from atlas_clipper.pipeline import STATUS_DIRECTORY_FAILED, extract_clips, load_atlas

logger = logging.getLogger("atlas_clipper")


def _descriptor_arg(text):
    try:
        return parse_descriptor(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atlas-clipper",
        description=DESCRIPTION,
        epilog=EPILOG,
        fromfile_prefix_chars="@",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument('-i', dest='input', type=Path, required=True, metavar='ATLAS',
                        help='input atlas file')
    parser.add_argument('-o', dest='outputs', type=_descriptor_arg, action='append', default=[],
                        metavar="'FILE X Y W H'", help='output clipped image (repeatable)')
    parser.add_argument('--output-dir', type=Path, default=None,
                        help='base directory for relative output names')
    parser.add_argument('--flip', action='store_true',
                        help='write rows bottom-up')
    parser.add_argument('--codec', choices=CODEC_NAMES, default=DEFAULT_CODEC,
                        help='image codec backend')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='enable debug logging')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI. Returns the process exit code."""
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    if not argv:
        parser.print_help()
        return EXIT_OK

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    codec = get_codec(args.codec)

    try:
        atlas = load_atlas(args.input, codec)
    except InputNotFoundError as exc:
        print(f"[FAIL] {exc}", file=sys.stderr)
        return EXIT_INPUT_NOT_FOUND
    except DecodeError as exc:
        logger.debug("Decode failed: %s", exc)
        print(f"[FAIL] Can't load atlas file '{args.input}' as image", file=sys.stderr)
        return EXIT_DECODE_FAILED

    exit_code = EXIT_OK
    with atlas:
        for result in extract_clips(atlas, args.outputs, args.output_dir, codec, args.flip):
            if result.ok:
                print(result.message)
            elif result.status == STATUS_DIRECTORY_FAILED:
                print(result.message, file=sys.stderr)
                exit_code = EXIT_DIRECTORY_FAILED
            else:
                print(result.message, file=sys.stderr)
                exit_code = EXIT_CLIP_FAILED

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
