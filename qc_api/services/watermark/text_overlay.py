"""
Text watermark - renders a single centered label instead of file-backed assets.

Same best-effort contract as the image compositor: if anything fails the
source bytes are returned untouched.
"""
from typing import Tuple

from loguru import logger
from PIL import Image, ImageDraw, ImageFont

from qc_api.core.errors import CompositionError
from qc_api.services.watermark.compositor import BaseCompositor, CompositeResult
from qc_api.utils.imaging import decode_image, encode_image, output_format

MIN_FONT_SIZE = 24
MAX_FONT_SIZE = 72
RELATIVE_FONT_DIVISOR = 15

FONT_PATHS = [
    "arialbd.ttf",
    "Arial Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
]


def get_font_size(width: int) -> int:
    """Font size follows the image width, clamped to [24, 72]."""
    return int(max(MIN_FONT_SIZE, min(MAX_FONT_SIZE, width / RELATIVE_FONT_DIVISOR)))


def load_font(font_size: int) -> ImageFont.ImageFont:
    for font_path in FONT_PATHS:
        try:
            return ImageFont.truetype(font_path, font_size)
        except OSError:
            continue
    return ImageFont.load_default(size=font_size)


class TextWatermarkCompositor(BaseCompositor):
    def __init__(self, text: str = "WATERMARK", opacity: float = 0.5):
        self.text = text
        self.opacity = min(1.0, max(0.0, opacity))

    def render(self, source: bytes) -> Tuple[bytes, str]:
        """Strict rendering; returns the encoded image and its format. Raises CompositionError."""
        base, fmt = decode_image(source)
        width, height = base.size

        try:
            font = load_font(get_font_size(width))
            layer = Image.new("RGBA", base.size, (255, 255, 255, 0))
            draw = ImageDraw.Draw(layer)

            left, top, right, bottom = draw.textbbox((0, 0), self.text, font=font)
            x = (width - (right - left)) / 2 - left
            y = (height - (bottom - top)) / 2 - top
            fill = (255, 255, 255, int(round(255 * self.opacity)))
            draw.text((x, y), self.text, font=font, fill=fill)

            return encode_image(Image.alpha_composite(base, layer), fmt), output_format(fmt)
        except (OSError, ValueError) as e:
            raise CompositionError(f"Text watermark failed: {e}") from e

    def apply(self, source: bytes) -> CompositeResult:
        if not self.text.strip():
            return CompositeResult(data=source)
        try:
            data, fmt = self.render(source)
        except CompositionError as e:
            logger.error(f"[Watermark] {e}; returning unmodified image")
            return CompositeResult(data=source, fell_back=True)
        logger.info(f"[Watermark] Applied text watermark '{self.text}'")
        return CompositeResult(data=data, format=fmt)
