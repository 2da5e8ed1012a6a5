"""
Remote Image Fetcher - raw image bytes through the upstream transformation
endpoint. The transform is pinned to maximum fidelity; callers' quality,
format and width only describe the outer contract.
"""
from qc_api.services.upstream.base import UpstreamClient, UpstreamResponse

IMAGE_PATH = "/img"


class ImageFetcher:
    def __init__(
        self,
        client: UpstreamClient,
        timeout: float = 30.0,
        quality: int = 100,
        image_format: str = "png",
        width: int = 5000,
    ):
        self.client = client
        self.timeout = timeout
        self.quality = quality
        self.image_format = image_format
        self.width = width

    @classmethod
    def from_settings(cls, client: UpstreamClient, settings) -> "ImageFetcher":
        return cls(
            client,
            timeout=settings.IMAGE_TIMEOUT,
            quality=settings.UPSTREAM_IMAGE_QUALITY,
            image_format=settings.UPSTREAM_IMAGE_FORMAT,
            width=settings.UPSTREAM_IMAGE_WIDTH,
        )

    async def fetch(self, url: str) -> UpstreamResponse:
        return await self.client.fetch(
            IMAGE_PATH,
            params={
                "url": url,
                "quality": self.quality,
                "format": self.image_format,
                "width": self.width,
            },
            timeout=self.timeout,
            headers={"Accept": "image/*"},
        )
