"""
Upstream HTTP client - one pooled httpx.AsyncClient for every upstream call.

All transport failures are classified into the four outcomes the rest of the
service branches on:

    non-2xx response        -> UpstreamHttpError (status mirrored)
    deadline exceeded       -> UpstreamTimeout   (504)
    sent, no response       -> UpstreamUnavailable (503)
    could not build / send  -> UpstreamSetupError (500)
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from qc_api.core.errors import (
    UpstreamHttpError,
    UpstreamSetupError,
    UpstreamTimeout,
    UpstreamUnavailable,
)


@dataclass
class UpstreamResponse:
    status_code: int
    content: bytes
    content_type: Optional[str]
    url: str


class UpstreamClient:
    """Thin async wrapper around httpx with per-call timeouts."""

    def __init__(self, base_url: str, user_agent: str = "QC-Image-API/1.0"):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings) -> "UpstreamClient":
        return cls(settings.UPSTREAM_BASE_URL, settings.USER_AGENT)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers={"User-Agent": self.user_agent})
        return self._client

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def fetch(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
    ) -> UpstreamResponse:
        """
        GET `path` on the upstream service.

        Raises one of the Upstream* errors; never returns a non-2xx response.
        """
        url = self.url_for(path)
        logger.info(f"[Upstream] GET {url} params={params}")
        try:
            resp = await self.client.get(url, params=params, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            logger.warning(f"[Upstream] Timeout after {timeout}s: {url}")
            raise UpstreamTimeout(f"Upstream request took longer than {timeout:g}s") from e
        except (httpx.UnsupportedProtocol, httpx.LocalProtocolError, httpx.InvalidURL) as e:
            logger.error(f"[Upstream] Could not send request to {url}: {e}")
            raise UpstreamSetupError(str(e)) from e
        except httpx.TransportError as e:
            logger.warning(f"[Upstream] No response from {url}: {e}")
            raise UpstreamUnavailable("No response received from external API") from e
        except httpx.HTTPError as e:
            logger.error(f"[Upstream] Request to {url} failed: {e}")
            raise UpstreamSetupError(str(e)) from e

        if not resp.is_success:
            logger.warning(f"[Upstream] {url} answered {resp.status_code}")
            raise UpstreamHttpError(resp.status_code)

        return UpstreamResponse(
            status_code=resp.status_code,
            content=resp.content,
            content_type=resp.headers.get("content-type"),
            url=str(resp.url),
        )

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
