"""Cut one atlas into many clip files."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from atlas_clipper.codecs import Codec, get_codec
from atlas_clipper.config import OUTPUT_EXTENSION
from atlas_clipper.descriptors import ClipDescriptor, normalize_output_name
from atlas_clipper.errors import DirectoryCreateError, EncodeError, InputNotFoundError, OutOfBoundsError
from atlas_clipper.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_OUT_OF_BOUNDS = "out_of_bounds"
STATUS_DIRECTORY_FAILED = "directory_failed"
STATUS_ENCODE_FAILED = "encode_failed"


@dataclass
class ClipResult:
    """Outcome of one descriptor."""
    descriptor: ClipDescriptor
    output_path: Path
    status: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def message(self) -> str:
        """Human-readable status line."""
        if self.ok:
            return f"[ OK ] File '{self.output_path}' generated"
        if self.status == STATUS_DIRECTORY_FAILED:
            return (
                f"[FAIL] Can't create directory '{self.output_path.parent}' "
                f"for output file '{self.output_path}': {self.error}"
            )
        return f"[FAIL] Clip '{self.descriptor}' -> '{self.output_path}': {self.error}"


def load_atlas(path: Path, codec: Optional[Codec] = None) -> PixelBuffer:
    """Load the source atlas.

    Raises:
        InputNotFoundError: If path is not an existing file
        DecodeError: If the file is not a decodable image
    """
    path = Path(path)
    if not path.is_file():
        raise InputNotFoundError(f"Input atlas file '{path}' not found")
    atlas = PixelBuffer.from_file(path, codec)
    logger.info("Loaded atlas %s (%dx%d, %d channels)", path, atlas.width, atlas.height, atlas.channels)
    return atlas


def resolve_output_path(
    descriptor: ClipDescriptor,
    output_dir: Optional[Path] = None,
    extension: str = OUTPUT_EXTENSION
) -> Path:
    """Normalized output path for a descriptor, relative to output_dir if given."""
    path = Path(normalize_output_name(descriptor.output_name, extension))
    if output_dir is not None and not path.is_absolute():
        path = Path(output_dir) / path
    return path


def ensure_directory(directory: Path) -> None:
    """Create directory and its parents if missing.

    Raises:
        DirectoryCreateError: If the directory cannot be created
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryCreateError(f"{exc.strerror or exc}") from exc


def extract_clips(
    atlas: PixelBuffer,
    descriptors: Iterable[ClipDescriptor],
    output_dir: Optional[Path] = None,
    codec: Optional[Codec] = None,
    flip_vertically: bool = False,
    extension: str = OUTPUT_EXTENSION
) -> Iterator[ClipResult]:
    """Extract and write each descriptor's region, in input order.

    Yields one ClipResult per descriptor. A region outside the atlas or a
    failed encode is reported and the next descriptor runs. A directory
    that cannot be created stops the run after its result is yielded;
    files already written are kept.

    Args:
        atlas: Loaded source image (not modified)
        descriptors: Regions to cut
        output_dir: Base directory for relative output names
        codec: Codec used for writing (default: Pillow)
        flip_vertically: Write rows bottom-up
        extension: Extension appended to names that lack it

    Yields:
        ClipResult for each processed descriptor
    """
    codec = codec or get_codec()

    for descriptor in descriptors:
        output_path = resolve_output_path(descriptor, output_dir, extension)
        logger.debug("Clipping %s -> %s", descriptor, output_path)

        try:
            clip = atlas.extract_region(*descriptor.rect, flip_vertically=flip_vertically)
        except OutOfBoundsError as exc:
            yield ClipResult(descriptor, output_path, STATUS_OUT_OF_BOUNDS, exc)
            continue

        with clip:
            result = _write_clip(clip, descriptor, output_path, codec)

        yield result
        if result.status == STATUS_DIRECTORY_FAILED:
            return


def _write_clip(clip: PixelBuffer, descriptor: ClipDescriptor, output_path: Path, codec: Codec) -> ClipResult:
    try:
        ensure_directory(output_path.parent)
    except DirectoryCreateError as exc:
        return ClipResult(descriptor, output_path, STATUS_DIRECTORY_FAILED, exc)

    try:
        clip.encode_to_file(output_path, codec)
    except EncodeError as exc:
        return ClipResult(descriptor, output_path, STATUS_ENCODE_FAILED, exc)

    return ClipResult(descriptor, output_path, STATUS_OK)


def run_clips(
    atlas: PixelBuffer,
    descriptors: Iterable[ClipDescriptor],
    output_dir: Optional[Path] = None,
    codec: Optional[Codec] = None,
    flip_vertically: bool = False,
    extension: str = OUTPUT_EXTENSION
) -> List[ClipResult]:
    """Run extract_clips to completion and return all results."""
    return list(extract_clips(atlas, descriptors, output_dir, codec, flip_vertically, extension))
