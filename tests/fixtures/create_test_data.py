"""Create test atlases for integration testing."""

import io
import struct
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw


def atlas_pixels(width: int, height: int, channels: int = 4) -> np.ndarray:
    """Build an (H, W, C) atlas where every pixel is distinct.

    Channel 0 encodes x, channel 1 encodes y, channel 2 mixes both and
    channel 3 (alpha) varies per row so row order is always observable.
    """
    ys, xs = np.mgrid[0:height, 0:width]
    planes = [
        xs % 256,
        ys % 256,
        (xs * 7 + ys * 13) % 256,
        255 - (ys * 3) % 256,
    ]
    return np.stack(planes[:channels], axis=-1).astype(np.uint8)


def create_test_atlas(output_path: Path, grid_size=(4, 4), cell_size=16):
    """Create a test atlas with a grid of distinct solid-color cells.

    Each cell has a unique color and an outline so clipped cells are easy
    to identify by eye.
    """
    cols, rows = grid_size
    img = Image.new('RGBA', (cell_size * cols, cell_size * rows), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    cell_index = 0
    for row in range(rows):
        for col in range(cols):
            x = col * cell_size
            y = row * cell_size

            r = (cell_index * 10) % 256
            g = (cell_index * 15) % 256
            b = (cell_index * 20) % 256

            draw.rectangle(
                [x, y, x + cell_size - 1, y + cell_size - 1],
                fill=(r, g, b, 255),
                outline=(255, 255, 255, 255)
            )
            cell_index += 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    img.save(output_path)
    return output_path


def corrupt_png_bytes(width: int = 8, height: int = 8) -> bytes:
    """Encoded RGBA PNG whose IDAT chunk length field is rewritten to 6."""
    stream = io.BytesIO()
    Image.fromarray(atlas_pixels(width, height, 4)).save(stream, format="PNG")
    data = bytearray(stream.getvalue())
    idat = data.index(b"IDAT")
    data[idat - 4:idat] = struct.pack(">I", 6)
    return bytes(data)


def cell_color(cell_index: int):
    """Fill color used by create_test_atlas for a cell."""
    return ((cell_index * 10) % 256, (cell_index * 15) % 256, (cell_index * 20) % 256, 255)


if __name__ == '__main__':
    fixtures_dir = Path(__file__).parent
    create_test_atlas(fixtures_dir / 'test_atlas.png')
    Image.fromarray(atlas_pixels(32, 24, 3)).save(fixtures_dir / 'test_atlas_rgb.png')
    print("Test fixtures created")
