import httpx
import pytest
import respx
from httpx import Response

from qc_api.config import settings

UPSTREAM = "https://upstream.test"
QC_MEDIA = "/api/v1/products/qcMedia"


# ─── /api/qc-images ───────────────────────────────────────────────

def test_qc_images_single_image(client, qc_service):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        route = respx_mock.get(QC_MEDIA).mock(
            return_value=Response(200, json={"data": {"image": "http://x/1.png"}})
        )
        response = client.get("/api/qc-images", params={"id": "7494645791"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["productId"] == "7494645791"
    assert body["storePlatform"] == "WEIDIAN"
    assert body["totalImages"] == 1
    assert body["images"][0]["original"] == "http://x/1.png"
    assert "url=http%3A%2F%2Fx%2F1.png" in body["images"][0]["watermarked"]
    assert body["images"][0]["watermarked"].endswith("&quality=90&format=png&width=960")
    assert route.calls.last.request.url.params["storePlatform"] == "WEIDIAN"


def test_qc_images_custom_params(client, qc_service):
    payload = {"data": {"media": [{"image": "a"}, {"nested": {"image": "b"}}]}}
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        respx_mock.get(QC_MEDIA).mock(return_value=Response(200, json=payload))
        response = client.get("/api/qc-images", params={
            "id": "abc_1-2", "storePlatform": "1688", "quality": 60, "format": "webp", "width": 800,
        })

    body = response.json()
    assert body["storePlatform"] == "1688"
    assert [i["original"] for i in body["images"]] == ["a", "b"]
    assert body["images"][1]["watermarked"] == "http://testserver/api/image?url=b&quality=60&format=webp&width=800"


def test_qc_images_no_images(client, qc_service):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        respx_mock.get(QC_MEDIA).mock(return_value=Response(200, json={"data": {"images": []}}))
        response = client.get("/api/qc-images", params={"id": "1"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "No images found in the response"}


@pytest.mark.parametrize("params,field", [
    ({}, "id"),
    ({"id": ""}, "id"),
    ({"id": "bad id!"}, "id"),
    ({"id": "x" * 51}, "id"),
    ({"id": "1", "storePlatform": "AMAZON"}, "storePlatform"),
    ({"id": "1", "quality": 0}, "quality"),
    ({"id": "1", "quality": 101}, "quality"),
    ({"id": "1", "format": "gif"}, "format"),
    ({"id": "1", "width": 99}, "width"),
    ({"id": "1", "width": 2001}, "width"),
])
def test_qc_images_validation(client, qc_service, params, field):
    with respx.mock(base_url=UPSTREAM, assert_all_called=False) as respx_mock:
        route = respx_mock.get(QC_MEDIA).mock(return_value=Response(200, json={}))
        response = client.get("/api/qc-images", params=params)
        assert not route.called

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert field in [d["field"] for d in body["details"]]


@pytest.mark.parametrize("side_effect,status", [
    (httpx.ReadTimeout("slow"), 504),
    (httpx.ConnectTimeout("slow"), 504),
    (httpx.ConnectError("refused"), 503),
])
def test_qc_images_upstream_unreachable(client, qc_service, side_effect, status):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        respx_mock.get(QC_MEDIA).mock(side_effect=side_effect)
        response = client.get("/api/qc-images", params={"id": "7494645791"})

    assert response.status_code == status
    assert response.json()["success"] is False


@pytest.mark.parametrize("status", [403, 404, 500])
def test_qc_images_upstream_status_mirrored(client, qc_service, status):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        respx_mock.get(QC_MEDIA).mock(return_value=Response(status))
        response = client.get("/api/qc-images", params={"id": "1"})

    assert response.status_code == status
    assert response.json() == {
        "success": False,
        "error": "Error fetching data from upstream API",
        "message": "Unable to retrieve product data",
    }


def test_large_listing_is_gzip_encoded(client, qc_service):
    payload = {"data": [{"image": f"http://x/qc/{i}.png"} for i in range(40)]}
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        respx_mock.get(QC_MEDIA).mock(return_value=Response(200, json=payload))
        response = client.get("/api/qc-images", params={"id": "1"}, headers={"Accept-Encoding": "gzip"})

    assert response.status_code == 200
    assert response.headers["content-encoding"] == "gzip"
    assert response.json()["totalImages"] == 40


# ─── API key ──────────────────────────────────────────────────────

@pytest.fixture
def api_keys(monkeypatch):
    monkeypatch.setattr(settings, "API_KEYS", "k1, k2")


def _mock_one_image(respx_mock):
    respx_mock.get(QC_MEDIA).mock(return_value=Response(200, json={"data": {"image": "u"}}))


def test_api_key_required(client, qc_service, api_keys):
    response = client.get("/api/qc-images", params={"id": "1"})
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_api_key_invalid(client, qc_service, api_keys):
    response = client.get("/api/qc-images", params={"id": "1"}, headers={"X-API-Key": "nope"})
    assert response.status_code == 403
    assert response.json()["message"] == "Invalid API key"


def test_api_key_header_and_query(client, qc_service, api_keys):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        _mock_one_image(respx_mock)
        by_header = client.get("/api/qc-images", params={"id": "1"}, headers={"X-API-Key": "k2"})
        by_query = client.get("/api/qc-images", params={"id": "1", "apiKey": "k1"})

    assert by_header.status_code == 200
    assert by_query.status_code == 200


def test_production_without_keys_rejects(client, qc_service, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    response = client.get("/api/qc-images", params={"id": "1"})
    assert response.status_code == 401


# ─── /api/image ───────────────────────────────────────────────────

def _mock_image(respx_mock, content, content_type="image/png"):
    return respx_mock.get("/img").mock(
        return_value=Response(200, content=content, headers={"Content-Type": content_type})
    )


def test_image_without_watermark_is_verbatim(client, qc_service, make_png):
    source = make_png(400, 300)
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        _mock_image(respx_mock, source)
        response = client.get("/api/image", params={"url": "http://x/1.png", "watermark": "false"})

    assert response.status_code == 200
    assert response.content == source
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "public, max-age=86400"
    assert response.headers["x-content-type-options"] == "nosniff"


def test_image_watermarked_by_default(client, qc_service, make_png):
    source = make_png(400, 300)
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        route = _mock_image(respx_mock, source)
        response = client.get("/api/image", params={
            "url": "http://x/1.png", "quality": 50, "format": "webp", "width": 300,
        })

    assert response.status_code == 200
    assert response.content != source
    assert response.content.startswith(b"\x89PNG")
    # Caller transform parameters never reach the upstream
    params = route.calls.last.request.url.params
    assert (params["quality"], params["format"], params["width"]) == ("100", "png", "5000")


def test_image_without_watermark_directory(client, qc_service_no_watermarks, make_png):
    source = make_png(400, 300)
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        _mock_image(respx_mock, source)
        response = client.get("/api/image", params={"url": "http://x/1.png"})

    assert response.status_code == 200
    assert response.content == source


def test_image_undecodable_bytes_pass_through(client, qc_service):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        _mock_image(respx_mock, b"not really an image", "application/octet-stream")
        response = client.get("/api/image", params={"url": "http://x/1.png"})

    assert response.status_code == 200
    assert response.content == b"not really an image"


def test_image_upstream_status_mirrored(client, qc_service):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        respx_mock.get("/img").mock(return_value=Response(404))
        response = client.get("/api/image", params={"url": "http://x/missing.png"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Error fetching image from source"}


def test_image_upstream_timeout(client, qc_service):
    with respx.mock(base_url=UPSTREAM) as respx_mock:
        respx_mock.get("/img").mock(side_effect=httpx.ReadTimeout("slow"))
        response = client.get("/api/image", params={"url": "http://x/1.png"})

    assert response.status_code == 504
    assert response.json()["message"] == "Image request took too long"
    assert response.headers["content-type"].startswith("application/json")


@pytest.mark.parametrize("params", [
    {},
    {"url": "x" * 501},
    {"url": "u", "watermark": "yes"},
    {"url": "u", "format": "tiff"},
])
def test_image_validation(client, qc_service, params):
    response = client.get("/api/image", params=params)
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


# ─── Unexpected failures ──────────────────────────────────────────

class _BrokenService:
    async def fetch_image(self, url, fmt, watermark=True):
        raise RuntimeError("secret stack detail")


@pytest.mark.parametrize("environment,message", [
    ("production", "An unexpected error occurred"),
    ("development", "secret stack detail"),
])
def test_unexpected_error_returns_json_500(monkeypatch, environment, message):
    from fastapi.testclient import TestClient

    from qc_api.core.container import Services, container
    from qc_api.main import app

    with TestClient(app, raise_server_exceptions=False) as c:
        container.override(Services.QC_IMAGES, _BrokenService())
        monkeypatch.setattr(settings, "ENVIRONMENT", environment)
        response = c.get("/api/image", params={"url": "http://x/1.png"})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal server error",
        "message": message,
    }
