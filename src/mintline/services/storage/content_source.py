"""Read raw content bytes from object storage over HTTP."""

import httpx
import structlog

from mintline.services.exceptions import ContentFetchError

logger = structlog.get_logger()


class HttpContentSource:
    """Fetches stored content by key from an HTTP-reachable bucket or CDN."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def url_for(self, storage_key: str) -> str:
        return f"{self.base_url}/{storage_key.lstrip('/')}"

    async def fetch(self, storage_key: str) -> bytes:
        """Download the bytes stored under storage_key.

        Raises:
            ContentFetchError: On timeout, transport failure or non-2xx status
        """
        url = self.url_for(storage_key)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ContentFetchError(f"Timeout fetching {storage_key}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise ContentFetchError(
                f"Storage returned {e.response.status_code} for {storage_key}"
            ) from e
        except httpx.HTTPError as e:
            raise ContentFetchError(f"Network error fetching {storage_key}: {e}") from e

        logger.debug("content.fetched", storage_key=storage_key, size=len(response.content))
        return response.content
