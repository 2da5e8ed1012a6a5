"""
Pillow helpers shared by the watermark compositors.
"""
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image

from qc_api.core.errors import CompositionError

# Formats we re-encode into; anything else falls back to PNG.
_WRITABLE_FORMATS = {"PNG", "JPEG", "WEBP", "GIF", "BMP", "TIFF"}

# Containers Pillow reads under their own name but that are served as a
# writable format (a multi-picture JPEG is still image/jpeg).
_FORMAT_ALIASES = {"MPO": "JPEG", "JPG": "JPEG"}

RESAMPLE = Image.Resampling.LANCZOS


def decode_image(data: bytes) -> Tuple[Image.Image, str]:
    """
    Decode image bytes into an RGBA image.

    Returns the image and its source format. Raises CompositionError when the
    bytes are not a decodable image.
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise CompositionError(f"Cannot decode source image: {e}") from e
    fmt = (img.format or "PNG").upper()
    return img.convert("RGBA"), fmt


def output_format(fmt: str) -> str:
    """The format `encode_image` actually writes for a source format."""
    fmt = fmt.upper()
    fmt = _FORMAT_ALIASES.get(fmt, fmt)
    return fmt if fmt in _WRITABLE_FORMATS else "PNG"


def mime_type(fmt: str) -> Optional[str]:
    return Image.MIME.get(output_format(fmt))


def encode_image(img: Image.Image, fmt: str) -> bytes:
    """Encode an RGBA image back into `fmt` (PNG if unsupported)."""
    fmt = output_format(fmt)

    if fmt in ("JPEG", "BMP"):
        img = img.convert("RGB")

    output = BytesIO()
    if fmt == "JPEG":
        img.save(output, format=fmt, quality=95)
    else:
        img.save(output, format=fmt)
    return output.getvalue()


def image_size(data: bytes) -> Tuple[int, int]:
    """Read width/height from the image header without a full decode."""
    with Image.open(BytesIO(data)) as img:
        return img.size
