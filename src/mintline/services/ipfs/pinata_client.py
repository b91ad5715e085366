"""Pinata IPFS client for uploading content files and metadata JSON."""

import json
from typing import Any

import httpx

from mintline.services.exceptions import (
    IPFSAuthError,
    IPFSNetworkError,
    IPFSRateLimitError,
    IPFSValidationError,
)


class PinataClient:
    """IPFS upload client using Pinata pinning service.

    Pinning is content-addressed: pinning the same bytes twice returns the same
    CID and never fails because the content already exists.
    """

    def __init__(
        self,
        jwt_token: str,
        gateway_domain: str = "gateway.pinata.cloud",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Pinata client.

        Args:
            jwt_token: Pinata API JWT token (from PINATA_JWT env var)
            gateway_domain: Gateway domain for URL generation (default: public gateway)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.jwt_token = jwt_token
        self.gateway_domain = gateway_domain
        self.timeout = timeout
        self.transport = transport
        self.base_url = "https://api.pinata.cloud"
        self.headers = {"Authorization": f"Bearer {jwt_token}"}

    async def upload_file(self, data: bytes, filename: str, content_type: str) -> str:
        """Upload raw bytes to IPFS via Pinata.

        Args:
            data: File content
            filename: Name shown in the Pinata dashboard
            content_type: MIME type of the content

        Returns:
            IPFS CID (CIDv1 format, e.g., "bafkrei...")

        Raises:
            IPFSValidationError: Empty payload or bad request (400)
            IPFSAuthError: Invalid API key (401) or forbidden (403)
            IPFSRateLimitError: Rate limit (429)
            IPFSNetworkError: Timeout, transport failure or service unavailable
        """
        if not data:
            raise IPFSValidationError(f"Refusing to pin empty file: {filename}")

        files = {"file": (filename, data, content_type)}
        form = {
            "pinataOptions": json.dumps({"cidVersion": 1}),
            "pinataMetadata": json.dumps({"name": filename}),
        }
        return await self._pin("/pinning/pinFileToIPFS", files=files, data=form)

    async def upload_json(self, content: dict[str, Any], name: str) -> str:
        """Upload a JSON document to IPFS via Pinata.

        Args:
            content: JSON-serializable document
            name: Name shown in the Pinata dashboard

        Returns:
            IPFS CID (CIDv1 format)

        Raises:
            Same as upload_file
        """
        payload = {
            "pinataContent": content,
            "pinataOptions": {"cidVersion": 1},
            "pinataMetadata": {"name": name},
        }
        return await self._pin("/pinning/pinJSONToIPFS", json=payload)

    async def _pin(self, path: str, **request_kwargs: Any) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}{path}", headers=self.headers, **request_kwargs
                )
        except httpx.TimeoutException as e:
            raise IPFSNetworkError(f"Request timeout after {self.timeout}s: {e}") from e
        except httpx.HTTPError as e:
            raise IPFSNetworkError(f"Network error: {e}") from e

        # Error classification
        if response.status_code == 429:
            raise IPFSRateLimitError(f"Rate limit exceeded: {response.text}")
        elif response.status_code >= 500:
            raise IPFSNetworkError(
                f"Service unavailable ({response.status_code}): {response.text}"
            )
        elif response.status_code == 401:
            raise IPFSAuthError(
                "Unauthorized: Invalid API key. Check PINATA_JWT configuration. "
                "Verify JWT token is active at https://app.pinata.cloud/developers/api-keys"
            )
        elif response.status_code == 403:
            raise IPFSAuthError(
                f"Forbidden: Access denied for {path}. "
                "Verify account status and quota limits at https://app.pinata.cloud/billing"
            )
        elif response.status_code >= 400:
            raise IPFSValidationError(f"Bad request ({response.status_code}): {response.text}")

        try:
            return response.json()["IpfsHash"]
        except (ValueError, KeyError) as e:
            raise IPFSValidationError(f"Unexpected Pinata response: {response.text}") from e

    def gateway_url(self, uri: str) -> str | None:
        """Browser URL for an ipfs:// URI on the configured gateway.

        Returns None for URIs stored elsewhere (ar://, https://).
        """
        if not uri.startswith("ipfs://"):
            return None
        cid = uri.removeprefix("ipfs://")
        return f"https://{self.gateway_domain}/ipfs/{cid}"
