"""Clip descriptors: where to cut and where to write."""

from dataclasses import dataclass
from typing import Tuple

from atlas_clipper.config import OUTPUT_EXTENSION


@dataclass(frozen=True)
class ClipDescriptor:
    """One requested output region in atlas pixel coordinates (origin top-left)."""
    output_name: str
    x: int
    y: int
    w: int
    h: int

    @property
    def rect(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.w, self.h)

    def __str__(self) -> str:
        return f"{self.output_name} {self.x} {self.y} {self.w} {self.h}"


def parse_descriptor(text: str) -> ClipDescriptor:
    """Parse a whitespace-separated "NAME X Y W H" string.

    Bounds against the atlas are not checked here; extraction does that.

    Raises:
        ValueError: If the string does not have five fields, a coordinate
            is not an integer, or the size is negative
    """
    fields = text.split()
    if len(fields) != 5:
        raise ValueError(f"Expected 'NAME X Y W H', got {text!r}")

    name = fields[0]
    try:
        x, y, w, h = (int(value) for value in fields[1:])
    except ValueError:
        raise ValueError(f"Coordinates must be integers in {text!r}") from None

    if w < 0 or h < 0:
        raise ValueError(f"Width and height must be non-negative in {text!r}")

    return ClipDescriptor(output_name=name, x=x, y=y, w=w, h=h)


def normalize_output_name(name: str, extension: str = OUTPUT_EXTENSION) -> str:
    """Append the extension unless the name already ends with it."""
    if name.endswith(extension):
        return name
    return name + extension
