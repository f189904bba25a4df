"""Image codecs: decode files into raw pixels and encode raw pixels as PNG.

Both codecs exchange pixels as contiguous uint8 arrays in RGB(A) channel
order, one byte per sample. Because samples are addressed byte by byte,
the written files do not depend on host endianness. Any reordering a
backend needs (OpenCV works in BGR) happens here and nowhere else.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image

from atlas_clipper.config import CHANNEL_MODES, DEFAULT_CODEC
from atlas_clipper.errors import DecodeError, EncodeError

ImageSource = Union[str, Path, bytes, bytearray, memoryview]

MODE_CHANNELS = {mode: channels for channels, mode in CHANNEL_MODES.items()}

# PNG header layout: 8-byte signature, then IHDR length, type, width, height,
# bit depth and colour type
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PNG_COLOR_TYPE_OFFSET = 25
PNG_GRAY_ALPHA = 4


@dataclass
class DecodedImage:
    """Raw result of a decode: flat pixels plus geometry."""
    pixels: np.ndarray
    width: int
    height: int
    channels: int


def _describe(source: ImageSource) -> str:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return f"<{len(source)} bytes in memory>"
    return str(source)


def _is_gray_alpha_png(data: bytes) -> bool:
    """True for a PNG whose IHDR colour type is 4 (gray + alpha)."""
    return (
        len(data) > PNG_COLOR_TYPE_OFFSET
        and data[:8] == PNG_SIGNATURE
        and data[12:16] == b"IHDR"
        and data[PNG_COLOR_TYPE_OFFSET] == PNG_GRAY_ALPHA
    )


def _check_geometry(pixels: np.ndarray, width: int, height: int, channels: int) -> np.ndarray:
    if channels not in CHANNEL_MODES:
        raise EncodeError(f"Unsupported channel count {channels}")
    if width <= 0 or height <= 0:
        raise EncodeError(f"Cannot write empty {width}x{height} image")
    expected = width * height * channels
    if pixels.size != expected:
        raise EncodeError(
            f"Buffer holds {pixels.size} bytes, expected {expected} "
            f"for {width}x{height}x{channels}"
        )
    return np.ascontiguousarray(pixels, dtype=np.uint8).reshape(height, width, channels)


class Codec:
    """Interface shared by the codec backends."""

    name = ""

    def decode(self, source: ImageSource) -> DecodedImage:
        raise NotImplementedError

    def encode(self, pixels: np.ndarray, width: int, height: int, channels: int, path: Path) -> None:
        raise NotImplementedError


class PillowCodec(Codec):
    """Codec backed by Pillow."""

    name = "pillow"

    def decode(self, source: ImageSource) -> DecodedImage:
        """Decode a file path or in-memory bytes.

        The channel count follows the source: grayscale stays 1 channel,
        RGB stays 3, and so on. Modes without a direct channel mapping are
        expanded (palette -> RGB or RGBA, 16-bit gray -> 8-bit gray).

        Raises:
            DecodeError: If Pillow cannot read the source
        """
        if isinstance(source, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(source))
        else:
            stream = Path(source)

        try:
            with Image.open(stream) as image:
                image.load()
                array = self._to_array(image)
        except (OSError, ValueError, SyntaxError, EOFError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Cannot decode image {_describe(source)}: {exc}") from exc

        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        height, width, channels = array.shape
        return DecodedImage(
            pixels=np.ascontiguousarray(array).reshape(-1),
            width=width,
            height=height,
            channels=channels,
        )

    @staticmethod
    def _to_array(image: Image.Image) -> np.ndarray:
        mode = image.mode
        if mode in MODE_CHANNELS:
            return np.array(image, dtype=np.uint8)
        if mode.startswith("I;16"):
            # Keep the high byte of each 16-bit sample
            wide = np.array(image, dtype=np.uint16)
            return (wide >> 8).astype(np.uint8)
        if mode in ("1", "I", "F"):
            return np.array(image.convert("L"), dtype=np.uint8)
        if mode == "La":
            return np.array(image.convert("LA"), dtype=np.uint8)
        target = "RGBA" if image.has_transparency_data else "RGB"
        return np.array(image.convert(target), dtype=np.uint8)

    def encode(self, pixels: np.ndarray, width: int, height: int, channels: int, path: Path) -> None:
        """Write pixels as a PNG file at path.

        Raises:
            EncodeError: If the geometry is invalid or the file cannot be written
        """
        array = _check_geometry(pixels, width, height, channels)
        image = Image.frombytes(CHANNEL_MODES[channels], (width, height), array.tobytes())
        try:
            image.save(path, format="PNG")
        except (OSError, ValueError) as exc:
            raise EncodeError(f"Cannot write '{path}': {exc}") from exc


class OpenCVCodec(Codec):
    """Codec backed by OpenCV (cv2.imdecode / cv2.imencode)."""

    name = "opencv"

    def decode(self, source: ImageSource) -> DecodedImage:
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
        else:
            try:
                data = Path(source).read_bytes()
            except OSError as exc:
                raise DecodeError(f"Cannot decode image {_describe(source)}: {exc}") from exc

        if not data:
            raise DecodeError(f"Cannot decode image {_describe(source)}: no data")

        try:
            array = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        except cv2.error as exc:
            raise DecodeError(f"Cannot decode image {_describe(source)}: {exc}") from exc
        if array is None:
            raise DecodeError(f"Cannot decode image {_describe(source)}: unrecognized format")

        if array.dtype == np.uint16:
            array = (array >> 8).astype(np.uint8)
        elif array.dtype != np.uint8:
            raise DecodeError(f"Cannot decode image {_describe(source)}: unsupported sample type {array.dtype}")

        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        elif array.shape[2] == 3:
            array = cv2.cvtColor(array, cv2.COLOR_BGR2RGB)
        elif array.shape[2] == 4:
            array = cv2.cvtColor(array, cv2.COLOR_BGRA2RGBA)
            if _is_gray_alpha_png(data):
                # OpenCV expands gray+alpha to BGRA; gray is replicated in R, G and B
                array = array[:, :, [0, 3]]

        height, width, channels = array.shape
        return DecodedImage(
            pixels=np.ascontiguousarray(array).reshape(-1),
            width=width,
            height=height,
            channels=channels,
        )

    def encode(self, pixels: np.ndarray, width: int, height: int, channels: int, path: Path) -> None:
        array = _check_geometry(pixels, width, height, channels)
        if channels == 2:
            raise EncodeError(f"Cannot write '{path}': OpenCV has no gray+alpha PNG output")
        if channels == 1:
            array = array[:, :, 0]
        elif channels == 3:
            array = cv2.cvtColor(array, cv2.COLOR_RGB2BGR)
        else:
            array = cv2.cvtColor(array, cv2.COLOR_RGBA2BGRA)

        ok, encoded = cv2.imencode(".png", array)
        if not ok:
            raise EncodeError(f"Cannot write '{path}': PNG encoding failed")
        try:
            Path(path).write_bytes(encoded.tobytes())
        except OSError as exc:
            raise EncodeError(f"Cannot write '{path}': {exc}") from exc


CODECS = {
    PillowCodec.name: PillowCodec,
    OpenCVCodec.name: OpenCVCodec,
}


def get_codec(name: str = DEFAULT_CODEC) -> Codec:
    """Return a codec instance by name ("pillow" or "opencv")."""
    try:
        return CODECS[name]()
    except KeyError:
        raise ValueError(f"Unknown codec '{name}', expected one of {sorted(CODECS)}") from None
