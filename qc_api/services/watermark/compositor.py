"""
Watermark Compositor - overlays the corner assets onto a fetched image.

Watermarking is best-effort:
  - an asset that fails to load or scale is excluded, the others still apply;
  - a source that cannot be decoded, or a failing composite step, returns the
    unmodified source bytes.

`compose()` is the strict step and raises CompositionError. `apply_watermarks()`
wraps it with the pass-through policy and reports what happened in a
CompositeResult.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional, Tuple

from loguru import logger
from PIL import Image

from qc_api.core.errors import CompositionError, WatermarkAssetMissing
from qc_api.services.watermark.resolver import (
    SLOT_ORDER,
    WatermarkAssetResolver,
    WatermarkAssets,
    WatermarkSlot,
)
from qc_api.utils.imaging import RESAMPLE, decode_image, encode_image, output_format

DEFAULT_SCALE = 0.15  # asset width relative to the base image width
DEFAULT_MARGIN = 10   # px from the image edges


@dataclass(frozen=True)
class LayerPlacement:
    slot: WatermarkSlot
    width: int
    height: int
    top: int
    left: int


@dataclass
class CompositeResult:
    data: bytes
    applied: List[WatermarkSlot] = field(default_factory=list)
    skipped: Dict[WatermarkSlot, str] = field(default_factory=dict)
    fell_back: bool = False
    # Pillow format name of `data` when it was re-encoded
    format: Optional[str] = None

    @property
    def modified(self) -> bool:
        return bool(self.applied) and not self.fell_back


def place_layer(
    slot: WatermarkSlot,
    base_size: Tuple[int, int],
    asset_size: Tuple[int, int],
    scale: float = DEFAULT_SCALE,
    margin: int = DEFAULT_MARGIN,
) -> LayerPlacement:
    """Scaled size and (top, left) offset of one asset on a W x H base."""
    base_w, base_h = base_size
    asset_w, asset_h = asset_size
    if asset_w <= 0 or asset_h <= 0:
        raise ValueError(f"Invalid asset size {asset_size}")

    width = max(1, math.floor(base_w * scale))
    height = max(1, round(asset_h * width / asset_w))

    if slot is WatermarkSlot.TOP_LEFT:
        top, left = margin, margin
    elif slot is WatermarkSlot.TOP_RIGHT:
        top, left = margin, base_w - width - margin
    else:
        top, left = base_h - height - margin, base_w - width - margin
    return LayerPlacement(slot=slot, width=width, height=height, top=top, left=left)


def plan_layers(
    base_size: Tuple[int, int],
    assets: WatermarkAssets,
    scale: float = DEFAULT_SCALE,
    margin: int = DEFAULT_MARGIN,
) -> List[LayerPlacement]:
    """Placements for every present asset, in slot order."""
    return [
        place_layer(slot, base_size, (assets[slot].width, assets[slot].height), scale, margin)
        for slot in SLOT_ORDER
        if slot in assets
    ]


def _scale_asset(data: bytes, placement: LayerPlacement) -> Image.Image:
    try:
        with Image.open(BytesIO(data)) as img:
            layer = img.convert("RGBA")
        return layer.resize((placement.width, placement.height), RESAMPLE)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise WatermarkAssetMissing(f"{placement.slot.filename} could not be scaled: {e}") from e


def _clip(placement: LayerPlacement, base_size: Tuple[int, int]) -> Optional[Tuple[Tuple[int, int], Tuple[int, int, int, int]]]:
    """Destination offset and source box of the part of a layer inside the base."""
    base_w, base_h = base_size
    src_left, src_top = max(0, -placement.left), max(0, -placement.top)
    dest = (max(0, placement.left), max(0, placement.top))
    width = min(placement.width - src_left, base_w - dest[0])
    height = min(placement.height - src_top, base_h - dest[1])
    if width <= 0 or height <= 0:
        return None
    return dest, (src_left, src_top, src_left + width, src_top + height)


def _alpha_blend(base: Image.Image, layers: List[Tuple[LayerPlacement, Image.Image]]) -> Image.Image:
    """Blend every layer into `base` in place, in slot order."""
    for placement, layer in layers:
        # Offsets may be negative on tiny bases
        clipped = _clip(placement, base.size)
        if clipped is None:
            continue
        dest, box = clipped
        base.alpha_composite(layer, dest=dest, source=box)
    return base


def compose(
    source: bytes,
    assets: WatermarkAssets,
    scale: float = DEFAULT_SCALE,
    margin: int = DEFAULT_MARGIN,
) -> CompositeResult:
    """
    Strict compositing of `assets` onto `source`.

    Per-asset failures are recorded in `skipped`; decode and composite
    failures raise CompositionError.
    """
    if not assets:
        return CompositeResult(data=source)

    base, fmt = decode_image(source)
    result = CompositeResult(data=source)

    layers: List[Tuple[LayerPlacement, Image.Image]] = []
    for slot in SLOT_ORDER:
        asset = assets.get(slot)
        if asset is None:
            continue
        try:
            placement = place_layer(slot, base.size, (asset.width, asset.height), scale, margin)
            layers.append((placement, _scale_asset(asset.data, placement)))
        except (WatermarkAssetMissing, ValueError) as e:
            logger.warning(f"[Watermark] Skipping {slot.value}: {e}")
            result.skipped[slot] = str(e)

    if not layers:
        logger.warning("[Watermark] No watermark layers could be prepared")
        return result

    try:
        composed = _alpha_blend(base, layers)
        result.data = encode_image(composed, fmt)
        result.format = output_format(fmt)
    except (OSError, ValueError) as e:
        raise CompositionError(f"Composite step failed: {e}") from e

    result.applied = [placement.slot for placement, _ in layers]
    return result


def apply_watermarks(
    source: bytes,
    assets: WatermarkAssets,
    scale: float = DEFAULT_SCALE,
    margin: int = DEFAULT_MARGIN,
) -> CompositeResult:
    """Best-effort `compose()`: any CompositionError yields the source unchanged."""
    try:
        return compose(source, assets, scale, margin)
    except CompositionError as e:
        logger.error(f"[Watermark] {e}; returning unmodified image")
        return CompositeResult(data=source, fell_back=True)


class BaseCompositor(ABC):
    """A best-effort `bytes -> bytes` watermarking step."""

    @abstractmethod
    def apply(self, source: bytes) -> CompositeResult:
        """Return the watermarked image, or the source itself on failure."""
        pass


class ImageWatermarkCompositor(BaseCompositor):
    """Applies the file-backed corner assets provided by the resolver."""

    def __init__(
        self,
        resolver: WatermarkAssetResolver,
        scale: float = DEFAULT_SCALE,
        margin: int = DEFAULT_MARGIN,
    ):
        self.resolver = resolver
        self.scale = scale
        self.margin = margin

    def apply(self, source: bytes, assets: Optional[WatermarkAssets] = None) -> CompositeResult:
        if assets is None:
            assets = self.resolver.load_assets()
        if not assets:
            logger.debug("[Watermark] No watermark assets configured, passing image through")
            return CompositeResult(data=source)

        result = apply_watermarks(source, assets, self.scale, self.margin)
        if result.modified:
            logger.info(f"[Watermark] Applied {len(result.applied)} watermark(s)")
        return result
