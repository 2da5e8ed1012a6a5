from qc_api.services.upstream.base import UpstreamClient, UpstreamResponse
from qc_api.services.upstream.metadata import MetadataFetcher
from qc_api.services.upstream.images import ImageFetcher

__all__ = ["UpstreamClient", "UpstreamResponse", "MetadataFetcher", "ImageFetcher"]
