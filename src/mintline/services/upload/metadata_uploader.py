"""Serialize asset metadata and push it to decentralized storage."""

from typing import Any

import structlog
from pydantic import BaseModel, Field, field_validator

from mintline.services.exceptions import IPFSNetworkError, UploadError
from mintline.services.ipfs.pinata_client import PinataClient

logger = structlog.get_logger()

STORAGE_URI_SCHEMES = ("ipfs://", "ar://", "https://")


class AssetAttribute(BaseModel):
    """Single (trait key, trait value) pair."""

    trait_type: str = Field(..., min_length=1, max_length=100)
    value: str | int | float | bool


class MetadataDescriptor(BaseModel):
    """Descriptive record uploaded once per mint, never persisted on its own."""

    image_uri: str
    image_type: str = Field(default="image/png", min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    symbol: str = Field(..., min_length=1, max_length=10)
    description: str = Field(default="", max_length=2000)
    attributes: list[AssetAttribute] = Field(default_factory=list)

    @field_validator("image_uri")
    @classmethod
    def validate_image_uri(cls, v: str) -> str:
        """The image must already live in storage (output of the content uploader)."""
        if not v.startswith(STORAGE_URI_SCHEMES):
            raise ValueError(
                f"image_uri must be a storage URI ({', '.join(STORAGE_URI_SCHEMES)}), got {v!r}"
            )
        return v


def build_metadata(descriptor: MetadataDescriptor) -> dict[str, Any]:
    """Build the metadata JSON document for a descriptor.

    Returns:
        Metadata dictionary with keys:
        - name, symbol, description
        - image (str): storage URI of the content
        - attributes (list): trait objects in the given order
        - properties.files: the image URI with its content type
    """
    return {
        "name": descriptor.name,
        "symbol": descriptor.symbol,
        "description": descriptor.description,
        "image": descriptor.image_uri,
        "attributes": [attribute.model_dump() for attribute in descriptor.attributes],
        "properties": {
            "files": [{"uri": descriptor.image_uri, "type": descriptor.image_type}],
        },
    }


class MetadataUploader:
    """Uploads a metadata descriptor and returns its URI."""

    def __init__(self, pinata: PinataClient):
        self.pinata = pinata

    async def upload(self, descriptor: MetadataDescriptor) -> str:
        """Serialize and pin descriptor.

        Returns:
            Storage URI in ipfs://<CID> form

        Raises:
            UploadError: Provider rejection or transport failure
        """
        metadata = build_metadata(descriptor)
        try:
            cid = await self.pinata.upload_json(metadata, name=f"{descriptor.name}.json")
        except UploadError:
            raise
        except Exception as e:
            raise IPFSNetworkError(f"Metadata upload failed: {e}") from e

        uri = f"ipfs://{cid}"
        logger.info(
            "upload.metadata_uploaded",
            name=descriptor.name,
            attribute_count=len(descriptor.attributes),
            uri=uri,
        )
        return uri
