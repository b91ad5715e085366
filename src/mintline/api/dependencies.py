"""FastAPI dependency injection functions."""

from typing import Callable

from fastapi import Request

from mintline.services.blockchain.session import ChainSession
from mintline.services.ipfs.pinata_client import PinataClient
from mintline.services.minting.orchestrator import MintOrchestrator
from mintline.uow import UnitOfWork


def get_uow_factory(request: Request) -> Callable[[], UnitOfWork]:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.assets.get_by_id(asset_id)
    """
    return request.app.state.uow_factory


def get_orchestrator(request: Request) -> MintOrchestrator:
    """Get the mint orchestrator built during application startup."""
    return request.app.state.orchestrator


def get_chain_session(request: Request) -> ChainSession | None:
    """Get the chain session, or None when the ledger is not configured (tests)."""
    return getattr(request.app.state, "chain_session", None)


def get_pinata_client(request: Request) -> PinataClient | None:
    """Get the pinning client used to build gateway links, or None when not configured."""
    return getattr(request.app.state, "pinata_client", None)
