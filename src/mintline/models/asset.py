"""Asset entity - collection-bound digital asset with mint lifecycle tracking."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class AssetState(str, Enum):
    """Asset lifecycle state."""

    WAITING_APPROVAL = "waiting_approval"
    MINT_REQUESTED = "mint_requested"
    MINTED = "minted"
    MINT_FAILED = "mint_failed"


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid asset state transition."""

    pass


class AssetCreate(SQLModel):
    """Fields accepted when creating an asset record."""

    name: str = Field(max_length=200)
    symbol: str = Field(max_length=10)
    description: Optional[str] = Field(default=None, max_length=2000)
    collection_address: str = Field(max_length=64)
    metadata_uri: Optional[str] = Field(default=None, max_length=512)
    content_id: Optional[UUID] = Field(default=None)
    state: AssetState = Field(default=AssetState.WAITING_APPROVAL)


class Asset(SQLModel, table=True):
    """Asset represents a to-be-minted or minted collectible."""

    __tablename__ = "assets"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=200)
    symbol: str = Field(max_length=10)
    description: Optional[str] = Field(default=None, max_length=2000)
    collection_address: str = Field(max_length=64)
    metadata_uri: Optional[str] = Field(default=None, max_length=512)
    address: Optional[str] = Field(default=None, max_length=64, index=True)
    verify_tx: Optional[str] = Field(default=None, max_length=128)
    state: AssetState = Field(default=AssetState.WAITING_APPROVAL, index=True)
    content_id: Optional[UUID] = Field(default=None, index=True)

    mint_attempts: int = Field(default=0, ge=0)
    verify_attempts: int = Field(default=0, ge=0)
    error_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def mark_mint_requested(self, metadata_uri: str, collection_address: str) -> None:
        """Transition to mint_requested from waiting_approval or mint_failed.

        Resubmitting a failed asset starts a fresh attempt, so counters,
        the previous error and any verification signature are cleared. An
        address recorded by an earlier attempt is kept so the duplicate check
        can find it again.

        Raises:
            InvalidStateTransition: If the asset is minted or already requested
            ValueError: If metadata_uri is empty
        """
        if self.state not in (AssetState.WAITING_APPROVAL, AssetState.MINT_FAILED):
            raise InvalidStateTransition(
                f"Cannot request mint from {self.state.value}. "
                "Asset must be in waiting_approval or mint_failed state."
            )
        if not metadata_uri:
            raise ValueError("metadata_uri is required")
        self.metadata_uri = metadata_uri
        self.collection_address = collection_address
        self.mint_attempts = 0
        self.verify_attempts = 0
        self.error_data = None
        self.verify_tx = None
        self.state = AssetState.MINT_REQUESTED
        self.touch()

    def record_mint_address(self, address: str) -> None:
        """Store the on-chain address once the creation transaction confirmed.

        Raises:
            InvalidStateTransition: If current state is not mint_requested
            ValueError: If address is empty
        """
        if self.state != AssetState.MINT_REQUESTED:
            raise InvalidStateTransition(
                f"Cannot record mint address from {self.state.value}. "
                "Asset must be in mint_requested state."
            )
        if not address:
            raise ValueError("address is required")
        self.address = address
        self.touch()

    def record_attempt_failure(self, stage: str, error: Exception) -> None:
        """Count a failed mint or verify attempt without changing state."""
        if stage == "mint":
            self.mint_attempts += 1
            attempts = self.mint_attempts
        elif stage == "verify":
            self.verify_attempts += 1
            attempts = self.verify_attempts
        else:
            raise ValueError(f"Unknown stage: {stage}")
        self.error_data = _error_dict(stage, error, attempts)
        self.touch()

    def mark_minted(self, address: str, verify_tx: str) -> None:
        """Transition from mint_requested to minted.

        Raises:
            InvalidStateTransition: If current state is not mint_requested
            ValueError: If address or verify_tx is empty
        """
        if self.state != AssetState.MINT_REQUESTED:
            raise InvalidStateTransition(
                f"Cannot mark minted from {self.state.value}. "
                "Asset must be in mint_requested state."
            )
        if not address or not verify_tx:
            raise ValueError("Both address and verify_tx are required")
        self.address = address
        self.verify_tx = verify_tx
        self.error_data = None
        self.state = AssetState.MINTED
        self.touch()

    def mark_failed(self, stage: str, error: Exception) -> None:
        """Transition from mint_requested to mint_failed.

        Raises:
            InvalidStateTransition: If current state is not mint_requested
        """
        if self.state != AssetState.MINT_REQUESTED:
            raise InvalidStateTransition(
                f"Cannot mark failed from {self.state.value}. "
                "Asset must be in mint_requested state."
            )
        attempts = self.mint_attempts if stage == "mint" else self.verify_attempts
        self.error_data = _error_dict(stage, error, attempts)
        self.state = AssetState.MINT_FAILED
        self.touch()

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()


def _error_dict(stage: str, error: Exception, attempts: int) -> dict:
    return {
        "stage": stage,
        "error_type": type(error).__name__,
        "error_message": str(error)[:1000],
        "attempts": attempts,
    }
