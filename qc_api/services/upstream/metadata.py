"""
Remote Metadata Fetcher - product qcMedia documents from the upstream API.
"""
import json
from typing import Any

from loguru import logger

from qc_api.services.upstream.base import UpstreamClient

QC_MEDIA_PATH = "/api/v1/products/qcMedia"


class MetadataFetcher:
    def __init__(self, client: UpstreamClient, timeout: float = 10.0):
        self.client = client
        self.timeout = timeout

    async def fetch(self, product_id: str, store_platform: str) -> Any:
        """
        Fetch and parse the qcMedia document for a product.

        A body that is not JSON yields None, which the extractor treats as a
        document without images.
        """
        resp = await self.client.fetch(
            QC_MEDIA_PATH,
            params={"id": product_id, "storePlatform": store_platform},
            timeout=self.timeout,
        )
        try:
            return json.loads(resp.content)
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"[Upstream] qcMedia body for {product_id} is not JSON: {e}")
            return None
