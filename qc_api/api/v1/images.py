from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from loguru import logger

from qc_api.api.deps import require_api_key
from qc_api.config import settings
from qc_api.core.container import get_qc_images
from qc_api.models.schemas import ErrorResponse, QCImagesResponse

router = APIRouter(tags=["Images"])

StorePlatform = Literal["WEIDIAN", "TAOBAO", "1688", "TMALL"]
ImageFormat = Literal["webp", "jpeg", "jpg", "png"]

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.get(
    "/qc-images",
    response_model=QCImagesResponse,
    responses=_ERRORS,
    dependencies=[Depends(require_api_key)],
)
async def list_qc_images(
    id: str = Query(..., min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$", description="Product ID"),
    storePlatform: StorePlatform = Query(settings.DEFAULT_STORE_PLATFORM),
    quality: int = Query(settings.DEFAULT_QUALITY, ge=1, le=100),
    format: ImageFormat = Query(settings.DEFAULT_FORMAT),
    width: int = Query(settings.DEFAULT_WIDTH, ge=100, le=2000),
):
    """List a product's QC images with links to their watermarked versions."""
    return await get_qc_images().list_images(id, storePlatform, quality, format, width)


@router.get(
    "/image",
    response_class=Response,
    responses={**_ERRORS, 200: {"content": {"image/*": {}}}},
)
async def get_image(
    url: str = Query(..., min_length=1, max_length=500, description="Source image URL"),
    quality: int = Query(settings.DEFAULT_QUALITY, ge=1, le=100),
    format: ImageFormat = Query(settings.DEFAULT_FORMAT),
    width: int = Query(settings.DEFAULT_WIDTH, ge=100, le=2000),
    watermark: Literal["true", "false"] = Query("true"),
):
    """
    Proxy one image through the upstream transformer, watermarked by default.

    `quality` and `width` are accepted for link compatibility; the upstream
    transform is pinned to maximum fidelity.
    """
    payload = await get_qc_images().fetch_image(url, format, watermark=watermark == "true")
    logger.debug(f"Serving {len(payload.content)} bytes ({payload.content_type}, watermarked={payload.watermarked})")
    return Response(
        content=payload.content,
        media_type=payload.content_type,
        headers={
            "Cache-Control": f"public, max-age={settings.CACHE_MAX_AGE}",
            "X-Content-Type-Options": "nosniff",
        },
    )
