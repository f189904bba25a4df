"""Error kinds raised while loading, clipping and writing images."""


class ClipperError(Exception):
    """Base class for all atlas clipper errors."""


class InputNotFoundError(ClipperError, FileNotFoundError):
    """Atlas path does not exist or is not a file."""


class DecodeError(ClipperError, ValueError):
    """Codec could not decode the input as an image."""


class OutOfBoundsError(ClipperError, ValueError):
    """Requested region does not lie inside the source image."""


class DirectoryCreateError(ClipperError, OSError):
    """Output directory could not be created."""


class EncodeError(ClipperError, RuntimeError):
    """Codec could not write the image."""
