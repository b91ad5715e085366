"""Mint orchestrator: drives an asset record from upload to a terminal state.

Stages run strictly in sequence because each consumes the previous output:

    Uploading → Minting → Verifying → Finalized
                   └──────────┴──────→ Failed

- Uploading: content upload, then metadata upload, once each. A failure
  propagates before any asset record is created or mutated.
- Minting / Verifying: bounded retry. ``max_retries`` counts retries after
  the first attempt, so a stage gets ``max_retries + 1`` attempts. Every
  MintError/VerifyError consumes one attempt regardless of its cause. Each
  failure is counted on a freshly read record; when the bound is exceeded the
  latest record is marked mint_failed and a terminal error is raised.
- Finalized: address, verification signature and the minted state are written
  in one update. This is the only way a record reaches minted.

Every write reads the latest persisted record first, in its own unit of work.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from uuid import UUID

import structlog
from pydantic import BaseModel, Field, model_validator

from mintline.models.asset import Asset, AssetCreate, AssetState, InvalidStateTransition
from mintline.services.blockchain.ledger import asset_key_for
from mintline.services.blockchain.minter import AssetMinter
from mintline.services.blockchain.verifier import AssetVerifier
from mintline.services.exceptions import (
    AssetNotFoundError,
    ContentNotFoundError,
    MintError,
    MintRetriesExhaustedError,
    VerifyError,
    VerifyRetriesExhaustedError,
)
from mintline.services.storage.content_source import HttpContentSource
from mintline.services.upload.content_uploader import ContentUploader, resolve_content_type
from mintline.services.upload.metadata_uploader import (
    AssetAttribute,
    MetadataDescriptor,
    MetadataUploader,
)
from mintline.uow import UnitOfWork

logger = structlog.get_logger()


@dataclass(frozen=True)
class MintPolicy:
    """Deployment-wide minting parameters, fixed at construction."""

    collection_address: str
    creator_address: str
    max_retries: int = 5
    retry_backoff_seconds: float = 2.0


class MintRequest(BaseModel):
    """Input of a mint request.

    When ``metadata_uri`` is given the metadata was uploaded upstream and the
    uploading stage is skipped. ``asset_id`` resubmits an existing record that
    is waiting for approval or failed earlier.
    """

    content_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=200)
    symbol: str = Field(..., min_length=1, max_length=10)
    description: str = Field(default="", max_length=2000)
    attributes: list[AssetAttribute] = Field(default_factory=list)
    metadata_uri: str | None = Field(default=None, max_length=512)
    asset_id: UUID | None = None

    @model_validator(mode="after")
    def require_content_or_asset(self) -> "MintRequest":
        if self.content_id is None and self.asset_id is None:
            raise ValueError("Either content_id or asset_id is required")
        return self


class MintOrchestrator:
    """Sequences uploads, bounded-retry chain writes and state persistence."""

    def __init__(
        self,
        uow_factory: Callable[[], Awaitable[UnitOfWork]],
        content_source: HttpContentSource,
        content_uploader: ContentUploader,
        metadata_uploader: MetadataUploader,
        minter: AssetMinter,
        verifier: AssetVerifier,
        policy: MintPolicy,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.uow_factory = uow_factory
        self.content_source = content_source
        self.content_uploader = content_uploader
        self.metadata_uploader = metadata_uploader
        self.minter = minter
        self.verifier = verifier
        self.policy = policy
        self._sleep = sleep

    async def submit_for_approval(self, request: MintRequest) -> Asset:
        """Create an asset record that waits for approval before minting.

        Raises:
            ContentNotFoundError: request.content_id does not exist
        """
        if request.content_id is None:
            raise ValueError("content_id is required to submit for approval")

        async with await self.uow_factory() as uow:
            asset = await uow.assets.create(
                AssetCreate(
                    name=request.name,
                    symbol=request.symbol,
                    description=request.description or None,
                    collection_address=self.policy.collection_address,
                    metadata_uri=request.metadata_uri,
                    content_id=request.content_id,
                    state=AssetState.WAITING_APPROVAL,
                )
            )
            await self._link_content(uow, request.content_id, asset.id)

        logger.info("asset.waiting_approval", asset_id=str(asset.id), name=asset.name)
        return asset

    async def request_mint(self, request: MintRequest) -> Asset:
        """Run the whole pipeline for one asset.

        Returns:
            The persisted asset in state minted, with address and verify_tx set

        Raises:
            UploadError: Uploading failed (no asset record touched)
            ContentNotFoundError / AssetNotFoundError: Unknown ids
            InvalidStateTransition: Resubmitted asset is not waiting or failed
            MintRetriesExhaustedError: Creation kept failing (asset now mint_failed)
            VerifyRetriesExhaustedError: Verification kept failing (asset now mint_failed)
            PersistenceError: Repository unavailable
        """
        content_id = await self._resolve_content_id(request)

        logger.info(
            "mint.requested",
            content_id=str(content_id) if content_id else None,
            asset_id=str(request.asset_id) if request.asset_id else None,
            name=request.name,
            collection=self.policy.collection_address,
        )

        metadata_uri = request.metadata_uri
        if metadata_uri is None:
            if content_id is None:
                raise ValueError("content_id is required when metadata_uri is not supplied")
            metadata_uri = await self._upload(request, content_id)

        asset = await self._open_mint_record(request, content_id, metadata_uri)

        address = await self._with_retries(
            asset.id,
            stage="mint",
            attempt=lambda: self.minter.create(
                name=asset.name,
                symbol=asset.symbol,
                metadata_uri=metadata_uri,
                collection_address=self.policy.collection_address,
                creator_address=self.policy.creator_address,
                asset_key=asset_key_for(asset.id),
            ),
            retryable=MintError,
            exhausted=MintRetriesExhaustedError,
        )
        await self._record_address(asset.id, address)

        verify_tx = await self._with_retries(
            asset.id,
            stage="verify",
            attempt=lambda: self.verifier.verify(address, self.policy.collection_address),
            retryable=VerifyError,
            exhausted=VerifyRetriesExhaustedError,
        )

        return await self._finalize(asset.id, address, verify_tx)

    async def _resolve_content_id(self, request: MintRequest) -> UUID | None:
        """Content id for the request; resubmissions are checked before any upload."""
        if request.asset_id is None:
            return request.content_id

        async with await self.uow_factory() as uow:
            existing = await self._load(uow, request.asset_id)

        if existing.state not in (AssetState.WAITING_APPROVAL, AssetState.MINT_FAILED):
            raise InvalidStateTransition(
                f"Cannot request mint from {existing.state.value}. "
                "Asset must be in waiting_approval or mint_failed state."
            )
        return request.content_id or existing.content_id

    async def _upload(self, request: MintRequest, content_id: UUID) -> str:
        async with await self.uow_factory() as uow:
            content = await uow.contents.get_standalone_by_id(content_id)
        if content is None:
            raise ContentNotFoundError(f"Content {content_id} not found")

        raw_bytes = await self.content_source.fetch(content.storage_key)
        image_uri = await self.content_uploader.upload(
            raw_bytes, content.storage_key, content.content_type
        )

        descriptor = MetadataDescriptor(
            image_uri=image_uri,
            image_type=resolve_content_type(content.storage_key, content.content_type),
            name=request.name,
            symbol=request.symbol,
            description=request.description,
            attributes=request.attributes,
        )
        return await self.metadata_uploader.upload(descriptor)

    async def _open_mint_record(
        self, request: MintRequest, content_id: UUID | None, metadata_uri: str
    ) -> Asset:
        """Create or re-request the asset record and link its content, in one commit."""
        async with await self.uow_factory() as uow:
            if request.asset_id is not None:
                asset = await self._load(uow, request.asset_id)
                asset.name = request.name
                asset.symbol = request.symbol
                asset.description = request.description or asset.description
                asset.content_id = content_id
                asset.mark_mint_requested(metadata_uri, self.policy.collection_address)
                asset = await uow.assets.save(asset)
            else:
                asset = await uow.assets.create(
                    AssetCreate(
                        name=request.name,
                        symbol=request.symbol,
                        description=request.description or None,
                        collection_address=self.policy.collection_address,
                        metadata_uri=metadata_uri,
                        content_id=content_id,
                        state=AssetState.MINT_REQUESTED,
                    )
                )

            if content_id is not None:
                await self._link_content(uow, content_id, asset.id)

        logger.info("mint.record_opened", asset_id=str(asset.id), metadata_uri=metadata_uri)
        return asset

    async def _with_retries(
        self,
        asset_id: UUID,
        stage: str,
        attempt: Callable[[], Awaitable[str]],
        retryable: type[MintError] | type[VerifyError],
        exhausted: type[MintRetriesExhaustedError] | type[VerifyRetriesExhaustedError],
    ) -> str:
        failures = 0
        while True:
            try:
                result = await attempt()
            except retryable as e:
                failures += 1
                if failures > self.policy.max_retries:
                    await self._mark_failed(asset_id, stage, e)
                    logger.error(
                        f"{stage}.retries_exhausted",
                        asset_id=str(asset_id),
                        attempts=failures,
                        max_retries=self.policy.max_retries,
                        error=str(e),
                    )
                    raise exhausted(
                        f"{stage} failed after {failures} attempts: {e}",
                        cause=e.cause or e,
                        attempts=failures,
                        asset_id=asset_id,
                    ) from e

                await self._record_failure(asset_id, stage, e)
                logger.warning(
                    f"{stage}.retrying",
                    asset_id=str(asset_id),
                    attempt=failures,
                    max_retries=self.policy.max_retries,
                    error=str(e),
                    error_type=type(e.cause or e).__name__,
                    backoff_seconds=self.policy.retry_backoff_seconds,
                )
                if self.policy.retry_backoff_seconds > 0:
                    await self._sleep(self.policy.retry_backoff_seconds)
                continue

            logger.info(f"{stage}.succeeded", asset_id=str(asset_id), attempts=failures + 1)
            return result

    async def _record_failure(self, asset_id: UUID, stage: str, error: Exception) -> None:
        async with await self.uow_factory() as uow:
            asset = await self._load(uow, asset_id)
            asset.record_attempt_failure(stage, error)
            await uow.assets.save(asset)

    async def _mark_failed(self, asset_id: UUID, stage: str, error: Exception) -> None:
        async with await self.uow_factory() as uow:
            asset = await self._load(uow, asset_id)
            asset.record_attempt_failure(stage, error)
            try:
                asset.mark_failed(stage, error)
            except InvalidStateTransition as e:
                # Record left mint_requested elsewhere; leave it untouched
                logger.warning(
                    f"{stage}.mark_failed_skipped",
                    asset_id=str(asset_id),
                    current_state=asset.state.value,
                    error=str(e),
                )
                return
            await uow.assets.save(asset)

    async def _record_address(self, asset_id: UUID, address: str) -> None:
        async with await self.uow_factory() as uow:
            asset = await self._load(uow, asset_id)
            asset.record_mint_address(address)
            await uow.assets.save(asset)

    async def _finalize(self, asset_id: UUID, address: str, verify_tx: str) -> Asset:
        async with await self.uow_factory() as uow:
            asset = await self._load(uow, asset_id)
            asset.mark_minted(address, verify_tx)
            asset = await uow.assets.save(asset)

        logger.info(
            "mint.finalized",
            asset_id=str(asset_id),
            address=address,
            verify_tx=verify_tx,
        )
        return asset

    async def _link_content(self, uow: UnitOfWork, content_id: UUID, asset_id: UUID) -> None:
        content = await uow.contents.get_standalone_by_id(content_id)
        if content is None:
            raise ContentNotFoundError(f"Content {content_id} not found")
        content.asset_id = asset_id
        await uow.contents.save(content)

    @staticmethod
    async def _load(uow: UnitOfWork, asset_id: UUID) -> Asset:
        asset = await uow.assets.get_by_id(asset_id)
        if asset is None:
            raise AssetNotFoundError(f"Asset {asset_id} not found")
        return asset
