import os

os.environ.setdefault("LOG_TO_FILE", "false")
os.environ["ENVIRONMENT"] = "development"
os.environ["API_KEYS"] = ""

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from qc_api.main import app
from qc_api.core.container import container, Services
from qc_api.services.qc_images import QCImageService
from qc_api.services.upstream import UpstreamClient, MetadataFetcher, ImageFetcher
from qc_api.services.watermark import WatermarkAssetResolver, ImageWatermarkCompositor

UPSTREAM = "https://upstream.test"


def _make_png(width=200, height=150, color=(255, 0, 0, 255), mode="RGBA") -> bytes:
    """Solid-color image encoded as PNG."""
    img = Image.new(mode, (width, height), color)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_png():
    return _make_png


@pytest.fixture
def watermark_root(tmp_path):
    """Base path holding watermarks/image1..3.png (semi-transparent)."""
    wm = tmp_path / "watermarks"
    wm.mkdir()
    (wm / "image1.png").write_bytes(_make_png(100, 50, (0, 0, 255, 128)))
    (wm / "image2.png").write_bytes(_make_png(80, 80, (0, 255, 0, 128)))
    (wm / "image3.png").write_bytes(_make_png(60, 30, (255, 255, 0, 128)))
    return tmp_path


@pytest.fixture
def resolver(watermark_root):
    return WatermarkAssetResolver([watermark_root])


@pytest.fixture
def client():
    """FastAPI test client fixture (runs the app lifespan)."""
    with TestClient(app) as c:
        yield c


def build_service(resolver: WatermarkAssetResolver) -> QCImageService:
    upstream = UpstreamClient(UPSTREAM)
    return QCImageService(
        metadata_fetcher=MetadataFetcher(upstream, timeout=1.0),
        image_fetcher=ImageFetcher(upstream, timeout=1.0),
        compositor=ImageWatermarkCompositor(resolver),
        public_base_url="http://testserver",
    )


@pytest.fixture
def service(resolver):
    """QCImageService wired against the mocked upstream and tmp watermarks."""
    return build_service(resolver)


@pytest.fixture
def qc_service(client, service):
    """Same service, installed in the container behind the HTTP routes."""
    container.override(Services.QC_IMAGES, service)
    yield service


@pytest.fixture
def qc_service_no_watermarks(client, tmp_path):
    """Service whose resolver finds no watermarks/ directory anywhere."""
    service = build_service(WatermarkAssetResolver([tmp_path / "empty"]))
    container.override(Services.QC_IMAGES, service)
    yield service
