"""HTTP client used to import pipeline templates by URL."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from pipeline_registry.core.settings import settings
from pipeline_registry.services.errors import InvalidArgumentError, TemplateFetchError

logger = logging.getLogger(__name__)

HTTP_OK = 200
_ALLOWED_SCHEMES = frozenset({"http", "https"})


@dataclass(frozen=True)
class FetcherConfig:
    """Runtime configuration for :class:`TemplateFetcher`."""

    timeout_seconds: float
    max_bytes: int


@dataclass(frozen=True)
class FetchedTemplate:
    """Downloaded template body and the media type the server reported."""

    content: bytes
    content_type: str | None


def load_fetcher_config() -> FetcherConfig:
    """Build configuration object from global settings."""
    return FetcherConfig(
        timeout_seconds=float(settings.template_fetch_timeout_seconds),
        max_bytes=settings.max_template_bytes,
    )


def validate_template_url(url: str) -> str:
    """Return ``url`` stripped, rejecting anything but absolute http(s) URLs.

    Raises:
        InvalidArgumentError: If the URL is empty or not http(s).
    """
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.netloc:
        raise InvalidArgumentError(f"Invalid pipeline URL '{url}'.")
    return candidate


class TemplateFetcher:
    """Download template bytes over HTTP(S)."""

    def __init__(
        self,
        config: FetcherConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_fetcher_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    follow_redirects=True,
                    transport=self._transport,
                )
        return self._client

    async def fetch(self, url: str) -> FetchedTemplate:
        """Download the template at ``url``.

        Raises:
            InvalidArgumentError: If ``url`` is not an absolute http(s) URL.
            TemplateFetchError: On network failure, a non-200 response or a
                body larger than the configured limit.
        """
        url = validate_template_url(url)
        client = await self._ensure_client()
        max_bytes = self.config.max_bytes
        too_large = f"Pipeline at {url} is larger than {max_bytes} bytes"
        try:
            async with client.stream("GET", url) as response:
                if response.status_code != HTTP_OK:
                    raise TemplateFetchError(
                        f"Failed to download pipeline from {url}: "
                        f"server responded with {response.status_code}"
                    )

                declared = response.headers.get("content-length")
                if declared is not None and declared.isdigit() and int(declared) > max_bytes:
                    raise TemplateFetchError(too_large)

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > max_bytes:
                        raise TemplateFetchError(too_large)
                content_type = response.headers.get("content-type")
        except httpx.HTTPError as exc:
            logger.warning("Template download from %s failed: %s", url, exc)
            raise TemplateFetchError(f"Failed to download pipeline from {url}: {exc}") from exc

        logger.info("Downloaded %d byte template from %s", len(body), url)
        return FetchedTemplate(content=bytes(body), content_type=content_type)

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _TemplateFetcherSingleton:
    """Singleton wrapper for TemplateFetcher."""

    _instance: TemplateFetcher | None = None

    @classmethod
    def get_instance(cls) -> TemplateFetcher:
        """Get or create the singleton TemplateFetcher instance."""
        if cls._instance is None:
            cls._instance = TemplateFetcher()
        return cls._instance


def get_template_fetcher() -> TemplateFetcher:
    """Return a singleton template fetcher instance."""
    return _TemplateFetcherSingleton.get_instance()
