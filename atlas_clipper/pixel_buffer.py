"""In-memory raster with region extraction."""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from atlas_clipper.codecs import Codec, DecodedImage, ImageSource, get_codec
from atlas_clipper.config import CHANNEL_MODES, FALLBACK_PIXEL
from atlas_clipper.errors import DecodeError, EncodeError, OutOfBoundsError

logger = logging.getLogger(__name__)


class PixelBuffer:
    """Owned image memory: width x height pixels of `channels` bytes each.

    Pixels live in one contiguous uint8 array, row-major with channels
    interleaved, so pixel (x, y) channel c sits at
    ``channels * (x + y * width) + c``. A buffer is either fully loaded or
    unloaded (0x0, no pixels); nothing in between is observable.

    Can be used as a context manager; leaving the block releases the memory.
    """

    def __init__(self):
        self._width = 0
        self._height = 0
        self._channels = 0
        self._pixels: Optional[np.ndarray] = None

    # -- construction --------------------------------------------------------

    @classmethod
    def from_file(cls, path: Union[str, Path], codec: Optional[Codec] = None) -> "PixelBuffer":
        """Decode an image file.

        Raises:
            DecodeError: If the codec cannot decode the file
        """
        buffer = cls()
        buffer._assign((codec or get_codec()).decode(Path(path)))
        return buffer

    @classmethod
    def from_bytes(cls, data: bytes, codec: Optional[Codec] = None) -> "PixelBuffer":
        """Decode an encoded image held in memory.

        Raises:
            DecodeError: If the codec cannot decode the data
        """
        buffer = cls()
        buffer._assign((codec or get_codec()).decode(data))
        return buffer

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Copy an (H, W) or (H, W, C) uint8 array into a new buffer."""
        array = np.asarray(array)
        if array.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {array.dtype}")
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        if array.ndim != 3 or array.shape[2] not in CHANNEL_MODES:
            raise ValueError(f"Expected (H, W) or (H, W, 1-4) array, got shape {array.shape}")

        height, width, channels = array.shape
        buffer = cls()
        buffer._set(width, height, channels, array.reshape(-1).copy())
        return buffer

    # -- loading with fallback -----------------------------------------------

    def load_from_file(self, path: Union[str, Path], codec: Optional[Codec] = None) -> bool:
        """Decode a file into this buffer.

        On failure a warning is logged and the buffer becomes a 1x1 magenta
        placeholder; the return value tells the caller which happened.
        """
        return self._load(Path(path), codec, str(path))

    def load_from_memory(self, data: bytes, codec: Optional[Codec] = None) -> bool:
        """Same as load_from_file, decoding from in-memory bytes."""
        return self._load(data, codec, "memory")

    def _load(self, source: ImageSource, codec: Optional[Codec], label: str) -> bool:
        try:
            decoded = (codec or get_codec()).decode(source)
        except DecodeError as exc:
            logger.warning("Texture failed to load from %s: %s", label, exc)
            self._set_fallback()
            return False
        self._assign(decoded)
        return True

    def _set_fallback(self) -> None:
        self._set(1, 1, len(FALLBACK_PIXEL), np.array(FALLBACK_PIXEL, dtype=np.uint8))

    def _assign(self, decoded: DecodedImage) -> None:
        pixels = np.ascontiguousarray(decoded.pixels, dtype=np.uint8).reshape(-1)
        self._set(decoded.width, decoded.height, decoded.channels, pixels)

    def _set(self, width: int, height: int, channels: int, pixels: np.ndarray) -> None:
        if pixels.size != width * height * channels:
            raise ValueError(
                f"Buffer holds {pixels.size} bytes, expected {width * height * channels} "
                f"for {width}x{height}x{channels}"
            )
        self._width = width
        self._height = height
        self._channels = channels
        self._pixels = pixels

    def release(self) -> None:
        """Drop the pixel memory and return to the unloaded state."""
        self._width = 0
        self._height = 0
        self._channels = 0
        self._pixels = None

    def __enter__(self) -> "PixelBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # -- extraction ----------------------------------------------------------

    def extract_region(self, x: int, y: int, w: int, h: int, flip_vertically: bool = False) -> "PixelBuffer":
        """Copy the w x h rectangle with top-left corner (x, y) into a new buffer.

        Pixels are copied as-is; nothing is scaled or clamped. With
        flip_vertically the same source pixels are selected but rows are
        written bottom-up, so destination row ``h - 1 - iy`` holds source
        row ``y + iy``.

        Args:
            x: Left edge in source pixels
            y: Top edge in source pixels
            w: Region width
            h: Region height
            flip_vertically: Store rows in bottom-up order

        Returns:
            New PixelBuffer with the same channel count and its own memory

        Raises:
            OutOfBoundsError: If the rectangle is not fully inside this image
        """
        if self._pixels is None:
            raise OutOfBoundsError("Cannot extract a region from an unloaded buffer")
        if x < 0 or y < 0 or w < 0 or h < 0 or x + w > self._width or y + h > self._height:
            raise OutOfBoundsError(
                f"Region x={x} y={y} w={w} h={h} is outside "
                f"{self._width}x{self._height} image"
            )

        region = self.as_array()[y:y + h, x:x + w]
        if flip_vertically:
            region = region[::-1]

        result = PixelBuffer()
        # np.array copies, so the result never aliases this buffer
        result._set(w, h, self._channels, np.array(region, dtype=np.uint8).reshape(-1))
        return result

    # -- output --------------------------------------------------------------

    def encode_to_file(self, path: Union[str, Path], codec: Optional[Codec] = None) -> None:
        """Write this buffer as a PNG at path. Parent directories must exist.

        Raises:
            EncodeError: If the buffer is unloaded or the codec fails
        """
        if self._pixels is None:
            raise EncodeError(f"Cannot write '{path}': buffer is not loaded")
        (codec or get_codec()).encode(self._pixels, self._width, self._height, self._channels, Path(path))

    # -- accessors -----------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def pixels(self) -> Optional[np.ndarray]:
        """Flat view of the owned memory (writes go straight into the buffer)."""
        return self._pixels

    @property
    def is_loaded(self) -> bool:
        return self._pixels is not None

    @property
    def size_bytes(self) -> int:
        return 0 if self._pixels is None else int(self._pixels.size)

    def as_array(self) -> np.ndarray:
        """(height, width, channels) view of the owned memory."""
        if self._pixels is None:
            return np.zeros((0, 0, 0), dtype=np.uint8)
        return self._pixels.reshape(self._height, self._width, self._channels)

    def pixel(self, x: int, y: int) -> Tuple[int, ...]:
        """Channel values of the pixel at column x, row y."""
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise OutOfBoundsError(f"Pixel ({x}, {y}) is outside {self._width}x{self._height} image")
        start = self._channels * (x + y * self._width)
        return tuple(int(v) for v in self._pixels[start:start + self._channels])

    def __repr__(self) -> str:
        return f"PixelBuffer({self._width}x{self._height}x{self._channels})"
