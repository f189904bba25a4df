"""Configuration for atlas clipping."""

# Output settings
OUTPUT_EXTENSION = ".png"

# Codec settings
DEFAULT_CODEC = "pillow"
CODEC_NAMES = ("pillow", "opencv")

# Channel count -> Pillow mode
CHANNEL_MODES = {
    1: "L",
    2: "LA",
    3: "RGB",
    4: "RGBA",
}

# Substitute image used when a load fails (1x1 opaque magenta, RGBA)
FALLBACK_PIXEL = (255, 0, 255, 255)

# CLI exit codes
EXIT_OK = 0
EXIT_INPUT_NOT_FOUND = 1
EXIT_DECODE_FAILED = 2
EXIT_CLIP_FAILED = 3
EXIT_DIRECTORY_FAILED = 4

# CLI text
DESCRIPTION = "Tool to clip atlas to different image resources"
EPILOG = "Each -o value is a single string: 'FILE X Y W H' (pixels, origin top-left)"
