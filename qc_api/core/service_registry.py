"""
Service Registration - single place to import and register all services.

Keeps main.py focused on app lifecycle (startup/shutdown) and wires the
explicit dependencies: the watermark resolver is built once from settings and
injected into the compositor, the shared upstream client into both fetchers.
"""

from qc_api.config import settings
from qc_api.core.container import container, Services


def register_all_services():
    """Import and register every service in the DI container."""

    # ── Upstream ─────────────────────────────────────────────
    from qc_api.services.upstream import UpstreamClient, MetadataFetcher, ImageFetcher

    container.register(Services.UPSTREAM_CLIENT, lambda: UpstreamClient.from_settings(settings))
    container.register(
        Services.METADATA_FETCHER,
        lambda: MetadataFetcher(container.get(Services.UPSTREAM_CLIENT), timeout=settings.METADATA_TIMEOUT),
    )
    container.register(
        Services.IMAGE_FETCHER,
        lambda: ImageFetcher.from_settings(container.get(Services.UPSTREAM_CLIENT), settings),
    )

    # ── Watermarking ─────────────────────────────────────────
    from qc_api.services.watermark import WatermarkAssetResolver, build_compositor

    container.register(Services.WATERMARK_RESOLVER, lambda: WatermarkAssetResolver.from_settings(settings))
    container.register(
        Services.COMPOSITOR,
        lambda: build_compositor(settings, container.get(Services.WATERMARK_RESOLVER)),
    )

    # ── Orchestration ────────────────────────────────────────
    from qc_api.services.qc_images import QCImageService

    container.register(
        Services.QC_IMAGES,
        lambda: QCImageService(
            metadata_fetcher=container.get(Services.METADATA_FETCHER),
            image_fetcher=container.get(Services.IMAGE_FETCHER),
            compositor=container.get(Services.COMPOSITOR),
            public_base_url=settings.public_base_url,
        ),
    )
