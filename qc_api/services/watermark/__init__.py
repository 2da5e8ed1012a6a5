from qc_api.services.watermark.resolver import (
    WatermarkAsset,
    WatermarkAssetResolver,
    WatermarkSlot,
    resolve_asset,
    resolve_watermark_directory,
)
from qc_api.services.watermark.compositor import (
    BaseCompositor,
    CompositeResult,
    ImageWatermarkCompositor,
    apply_watermarks,
    plan_layers,
)
from qc_api.services.watermark.text_overlay import TextWatermarkCompositor


def build_compositor(settings, resolver: WatermarkAssetResolver) -> BaseCompositor:
    """Pick the compositor for the configured WATERMARK_MODE."""
    mode = settings.WATERMARK_MODE.lower()
    if mode == "text":
        return TextWatermarkCompositor(settings.WATERMARK_TEXT, settings.WATERMARK_OPACITY)
    if mode != "image":
        raise ValueError(f"Unknown WATERMARK_MODE: {settings.WATERMARK_MODE}")
    return ImageWatermarkCompositor(resolver, settings.WATERMARK_SCALE, settings.WATERMARK_MARGIN)


__all__ = [
    "WatermarkAsset",
    "WatermarkAssetResolver",
    "WatermarkSlot",
    "resolve_asset",
    "resolve_watermark_directory",
    "BaseCompositor",
    "CompositeResult",
    "ImageWatermarkCompositor",
    "TextWatermarkCompositor",
    "apply_watermarks",
    "plan_layers",
    "build_compositor",
]
