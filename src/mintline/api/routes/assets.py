"""Asset minting API endpoints.

- POST /api/assets/mint - Upload, mint and verify a new asset (synchronous)
- POST /api/assets/approval - Register an asset that waits for approval
- POST /api/assets/{asset_id}/mint - Mint an approved or previously failed asset
- GET /api/assets/{asset_id} - Current state of an asset record
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from mintline.api.dependencies import (
    get_chain_session,
    get_orchestrator,
    get_pinata_client,
    get_uow_factory,
)
from mintline.models.asset import Asset, InvalidStateTransition
from mintline.services.blockchain.session import ChainSession
from mintline.services.exceptions import (
    AssetNotFoundError,
    ContentNotFoundError,
    MintError,
    PersistenceError,
    UploadError,
    VerifyError,
)
from mintline.services.ipfs.pinata_client import PinataClient
from mintline.services.minting.orchestrator import MintOrchestrator, MintRequest
from mintline.services.upload.metadata_uploader import AssetAttribute

logger = structlog.get_logger()
router = APIRouter(prefix="/api/assets", tags=["assets"])


# Request/Response Models


class ResubmitRequest(BaseModel):
    """Body for minting an existing asset record."""

    name: str = Field(..., min_length=1, max_length=200)
    symbol: str = Field(..., min_length=1, max_length=10)
    description: str = Field(default="", max_length=2000)
    attributes: list[AssetAttribute] = Field(default_factory=list)
    metadata_uri: str | None = Field(default=None, max_length=512)


class AssetDTO(BaseModel):
    """Data Transfer Object for asset records in API responses."""

    id: UUID
    name: str
    symbol: str
    description: str | None = None
    collection_address: str
    metadata_uri: str | None = None
    address: str | None = Field(default=None, description="On-chain address once minted")
    verify_tx: str | None = Field(default=None, description="Collection verification tx")
    state: str = Field(
        ..., description="Lifecycle state (waiting_approval, mint_requested, minted, mint_failed)"
    )
    content_id: UUID | None = None
    mint_attempts: int
    verify_attempts: int
    error_data: dict | None = None
    explorer_url: str | None = None
    metadata_gateway_url: str | None = Field(
        default=None, description="Browser link to the pinned metadata JSON"
    )
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_asset(
        cls,
        asset: Asset,
        chain_session: ChainSession | None,
        pinata: PinataClient | None = None,
    ) -> "AssetDTO":
        explorer_url = None
        if asset.address and chain_session is not None:
            explorer_url = chain_session.explorer_url(asset.address)
        metadata_gateway_url = None
        if asset.metadata_uri and pinata is not None:
            metadata_gateway_url = pinata.gateway_url(asset.metadata_uri)
        return cls(
            id=asset.id,
            name=asset.name,
            symbol=asset.symbol,
            description=asset.description,
            collection_address=asset.collection_address,
            metadata_uri=asset.metadata_uri,
            address=asset.address,
            verify_tx=asset.verify_tx,
            state=asset.state.value,
            content_id=asset.content_id,
            mint_attempts=asset.mint_attempts,
            verify_attempts=asset.verify_attempts,
            error_data=asset.error_data,
            explorer_url=explorer_url,
            metadata_gateway_url=metadata_gateway_url,
            created_at=asset.created_at,
            updated_at=asset.updated_at,
        )


# API Endpoints


@router.post("/mint", response_model=AssetDTO, status_code=status.HTTP_201_CREATED)
async def mint_asset(
    request: MintRequest,
    orchestrator: MintOrchestrator = Depends(get_orchestrator),
    chain_session: ChainSession | None = Depends(get_chain_session),
    pinata: PinataClient | None = Depends(get_pinata_client),
) -> AssetDTO:
    """Upload content and metadata, mint, verify and return the minted asset.

    Responds only once the asset is minted or has failed terminally.
    """
    asset = await _run_mint(orchestrator, request)
    return AssetDTO.from_asset(asset, chain_session, pinata)


@router.post("/approval", response_model=AssetDTO, status_code=status.HTTP_201_CREATED)
async def submit_for_approval(
    request: MintRequest,
    orchestrator: MintOrchestrator = Depends(get_orchestrator),
    chain_session: ChainSession | None = Depends(get_chain_session),
    pinata: PinataClient | None = Depends(get_pinata_client),
) -> AssetDTO:
    """Register an asset that waits for approval; no chain work happens."""
    try:
        asset = await orchestrator.submit_for_approval(request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except ContentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return AssetDTO.from_asset(asset, chain_session, pinata)


@router.post("/{asset_id}/mint", response_model=AssetDTO)
async def mint_existing_asset(
    asset_id: UUID,
    body: ResubmitRequest,
    orchestrator: MintOrchestrator = Depends(get_orchestrator),
    chain_session: ChainSession | None = Depends(get_chain_session),
    pinata: PinataClient | None = Depends(get_pinata_client),
) -> AssetDTO:
    """Mint an asset that is waiting for approval or failed previously."""
    request = MintRequest(asset_id=asset_id, **body.model_dump())
    asset = await _run_mint(orchestrator, request)
    return AssetDTO.from_asset(asset, chain_session, pinata)


@router.get("/{asset_id}", response_model=AssetDTO)
async def get_asset(
    asset_id: UUID,
    uow_factory=Depends(get_uow_factory),
    chain_session: ChainSession | None = Depends(get_chain_session),
    pinata: PinataClient | None = Depends(get_pinata_client),
) -> AssetDTO:
    """Return the persisted asset record."""
    async with await uow_factory() as uow:
        asset = await uow.assets.get_by_id(asset_id)

    if asset is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Asset {asset_id} not found"
        )
    return AssetDTO.from_asset(asset, chain_session, pinata)


async def _run_mint(orchestrator: MintOrchestrator, request: MintRequest) -> Asset:
    """Run request_mint and translate pipeline errors into HTTP responses."""
    try:
        return await orchestrator.request_mint(request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except (AssetNotFoundError, ContentNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidStateTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except UploadError as e:
        logger.warning("api.mint_upload_failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"stage": "upload", "error": str(e)},
        )
    except (MintError, VerifyError) as e:
        stage = "mint" if isinstance(e, MintError) else "verify"
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "stage": stage,
                "error": str(e),
                "attempts": getattr(e, "attempts", None),
                "asset_id": str(e.asset_id) if getattr(e, "asset_id", None) else None,
            },
        )
    except PersistenceError as e:
        logger.error("api.mint_persistence_failed", error=str(e))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
