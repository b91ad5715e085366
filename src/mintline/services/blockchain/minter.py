"""Asset minter: one creation attempt with duplicate detection."""

import structlog

from mintline.services.blockchain.ledger import Web3Ledger
from mintline.services.exceptions import MintError

logger = structlog.get_logger()


class AssetMinter:
    """Submits the creation transaction for an asset.

    Creation is not idempotent at the network level: a transaction that timed
    out client-side may still land. Before reporting a failure the minter
    therefore looks for an asset at the derived address and returns it if one
    exists. The same check runs before submitting, so a late-landing earlier
    attempt is never minted twice.
    """

    def __init__(self, ledger: Web3Ledger):
        self.ledger = ledger

    async def create(
        self,
        name: str,
        symbol: str,
        metadata_uri: str,
        collection_address: str,
        creator_address: str,
        asset_key: bytes,
    ) -> str:
        """Mint an asset, or find the one a previous attempt already minted.

        Args:
            name: Display name
            symbol: Ticker-style symbol
            metadata_uri: Storage URI of the metadata JSON
            collection_address: Collection the asset is created under
            creator_address: Creator credited with the full share
            asset_key: Registry key derived from the asset record

        Returns:
            On-chain address of the minted asset

        Raises:
            MintError: Attempt failed and no asset exists at the derived address
        """
        expected_address = None
        try:
            expected_address = await self.ledger.derive_asset_address(asset_key)

            existing = await self.ledger.find_asset_by_address(expected_address)
            if existing is not None:
                logger.info("mint.already_landed", address=existing.address, stage="pre_submit")
                return existing.address

            return await self.ledger.submit_create(
                expected_address=expected_address,
                asset_key=asset_key,
                name=name,
                symbol=symbol,
                metadata_uri=metadata_uri,
                collection_address=collection_address,
                creator_address=creator_address,
            )

        except Exception as e:
            landed = await self._find_landed(expected_address)
            if landed is not None:
                logger.warning(
                    "mint.recovered_after_error",
                    address=landed,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return landed

            logger.error(
                "mint.attempt_failed",
                expected_address=expected_address,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise MintError(f"Failed to mint asset: {e}", cause=e) from e

    async def _find_landed(self, expected_address: str | None) -> str | None:
        if expected_address is None:
            return None
        try:
            existing = await self.ledger.find_asset_by_address(expected_address)
        except Exception as e:
            logger.warning(
                "mint.duplicate_check_failed",
                expected_address=expected_address,
                error=str(e),
            )
            return None
        return existing.address if existing is not None else None
