"""FastAPI application factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from mintline.api.routes import assets
from mintline.core.config import Settings, configure_logging
from mintline.core.database import setup_db_session
from mintline.services.blockchain.ledger import Web3Ledger
from mintline.services.blockchain.minter import AssetMinter
from mintline.services.blockchain.session import build_chain_session
from mintline.services.blockchain.verifier import AssetVerifier
from mintline.services.ipfs.pinata_client import PinataClient
from mintline.services.minting.orchestrator import MintOrchestrator, MintPolicy
from mintline.services.storage.content_source import HttpContentSource
from mintline.services.upload.content_uploader import ContentUploader
from mintline.services.upload.metadata_uploader import MetadataUploader
from mintline.uow import create_uow_factory

logger = structlog.get_logger()


def build_orchestrator(
    settings: Settings, uow_factory, chain_session, pinata: PinataClient
) -> MintOrchestrator:
    """Wire the orchestrator and its collaborators from settings.

    Args:
        settings: Application settings
        uow_factory: Factory producing UnitOfWork instances
        chain_session: Immutable chain session (connection, signer, addresses)
        pinata: Pinning client shared by both uploaders

    Returns:
        Ready-to-use MintOrchestrator
    """
    ledger = Web3Ledger(chain_session)

    return MintOrchestrator(
        uow_factory=uow_factory,
        content_source=HttpContentSource(
            settings.content_base_url, timeout=settings.upload_timeout_seconds
        ),
        content_uploader=ContentUploader(pinata),
        metadata_uploader=MetadataUploader(pinata),
        minter=AssetMinter(ledger),
        verifier=AssetVerifier(ledger),
        policy=MintPolicy(
            collection_address=chain_session.collection_address,
            creator_address=chain_session.creator_address,
            max_retries=settings.mint_max_retries,
            retry_backoff_seconds=settings.mint_retry_backoff_seconds,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    - Startup: configure logging, database session factory, chain session, orchestrator
    - Shutdown: dispose of the database engine
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)
    chain_session = build_chain_session(settings)

    pinata = PinataClient(
        jwt_token=settings.pinata_jwt,
        gateway_domain=settings.pinata_gateway,
        timeout=settings.upload_timeout_seconds,
    )

    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.chain_session = chain_session
    app.state.pinata_client = pinata
    app.state.orchestrator = build_orchestrator(settings, uow_factory, chain_session, pinata)

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        network=settings.network,
        registry=chain_session.registry_address,
        collection=chain_session.collection_address,
        creator=chain_session.creator_address,
        max_retries=settings.mint_max_retries,
    )

    yield

    logger.info("application.shutdown")
    engine = session_factory.kw.get("bind")
    if engine is not None:
        await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="mintline API",
        description="Collection-bound asset minting",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(assets.router)

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
            return {"status": "healthy"}

        except Exception as e:
            logger.error("health_check.failed", error=str(e), error_type=type(e).__name__)
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {"type": type(e).__name__, "message": str(e)},
            }

    return app


# Create app instance for uvicorn
app = create_app()
