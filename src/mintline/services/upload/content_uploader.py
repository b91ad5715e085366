"""Push raw content bytes to decentralized storage."""

import mimetypes
import posixpath

import structlog

from mintline.services.exceptions import IPFSNetworkError, UploadError
from mintline.services.ipfs.pinata_client import PinataClient

logger = structlog.get_logger()

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def resolve_content_type(source_key: str, content_type: str | None = None) -> str:
    """Explicit content type, else a guess from the key's extension."""
    return content_type or mimetypes.guess_type(source_key)[0] or DEFAULT_CONTENT_TYPE


class ContentUploader:
    """Uploads a binary blob and returns its content-addressed URI.

    Single attempt per call. Re-uploading identical bytes is safe and yields
    a valid URI again.
    """

    def __init__(self, pinata: PinataClient):
        self.pinata = pinata

    async def upload(
        self, raw_bytes: bytes, source_key: str, content_type: str | None = None
    ) -> str:
        """Upload bytes read from source_key.

        Args:
            raw_bytes: Content to pin
            source_key: Object storage key the bytes came from (used as filename)
            content_type: MIME type; guessed from source_key when omitted

        Returns:
            Storage URI in ipfs://<CID> form

        Raises:
            UploadError: Provider rejection or transport failure
        """
        filename = posixpath.basename(source_key) or "content"
        content_type = resolve_content_type(filename, content_type)

        try:
            cid = await self.pinata.upload_file(raw_bytes, filename, content_type)
        except UploadError:
            raise
        except Exception as e:
            raise IPFSNetworkError(f"Content upload failed: {e}") from e

        uri = f"ipfs://{cid}"
        logger.info(
            "upload.content_uploaded",
            source_key=source_key,
            content_type=content_type,
            size=len(raw_bytes),
            uri=uri,
        )
        return uri
