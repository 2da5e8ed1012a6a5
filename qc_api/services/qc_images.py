"""
QC Image Service - composes upstream fetches, extraction and watermarking for
the two public operations:

  list_images  -> product metadata -> image references -> callback links
  fetch_image  -> image bytes -> (optional) watermark -> payload
"""
import asyncio
from urllib.parse import quote, urlencode

from loguru import logger

from qc_api.core.errors import NotFoundError, UpstreamHttpError, UpstreamTimeout
from qc_api.models.schemas import ImageLink, ImagePayload, QCImagesResponse
from qc_api.services.extractor import extract_image_urls
from qc_api.services.upstream.images import ImageFetcher
from qc_api.services.upstream.metadata import MetadataFetcher
from qc_api.services.watermark.compositor import BaseCompositor
from qc_api.utils.imaging import mime_type

# Characters left alone by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_watermarked_link(base_url: str, original: str, quality: int, fmt: str, width: int) -> str:
    """Callback URL into /api/image carrying the caller's transform parameters."""
    query = urlencode(
        {"url": original, "quality": quality, "format": fmt, "width": width},
        quote_via=quote,
        safe=_URI_COMPONENT_SAFE,
    )
    return f"{base_url.rstrip('/')}/api/image?{query}"


class QCImageService:
    def __init__(
        self,
        metadata_fetcher: MetadataFetcher,
        image_fetcher: ImageFetcher,
        compositor: BaseCompositor,
        public_base_url: str,
    ):
        self.metadata_fetcher = metadata_fetcher
        self.image_fetcher = image_fetcher
        self.compositor = compositor
        self.public_base_url = public_base_url

    async def list_images(
        self,
        product_id: str,
        store_platform: str,
        quality: int,
        fmt: str,
        width: int,
    ) -> QCImagesResponse:
        try:
            document = await self.metadata_fetcher.fetch(product_id, store_platform)
        except UpstreamHttpError as e:
            raise UpstreamHttpError(
                e.status_code,
                "Unable to retrieve product data",
                error="Error fetching data from upstream API",
            ) from e

        urls = extract_image_urls(document)
        logger.info(f"Product {product_id} ({store_platform}): {len(urls)} image(s) found")
        if not urls:
            raise NotFoundError()

        images = [
            ImageLink(
                original=url,
                watermarked=build_watermarked_link(self.public_base_url, url, quality, fmt, width),
            )
            for url in urls
        ]
        return QCImagesResponse(
            productId=product_id,
            storePlatform=store_platform,
            totalImages=len(images),
            images=images,
        )

    async def fetch_image(self, url: str, fmt: str, watermark: bool = True) -> ImagePayload:
        try:
            resp = await self.image_fetcher.fetch(url)
        except UpstreamHttpError as e:
            raise UpstreamHttpError(e.status_code, error="Error fetching image from source") from e
        except UpstreamTimeout as e:
            raise UpstreamTimeout("Image request took too long") from e

        content_type = resp.content_type or f"image/{fmt}"
        if not watermark:
            return ImagePayload(content=resp.content, content_type=content_type)

        # Decode/composite is CPU bound; keep it off the event loop
        result = await asyncio.to_thread(self.compositor.apply, resp.content)
        if result.format:
            # Re-encoded bytes carry the format that was written
            content_type = mime_type(result.format) or content_type
        return ImagePayload(
            content=result.data,
            content_type=content_type,
            watermarked=result.data is not resp.content,
        )
