"""Asset verifier: one collection-membership attestation attempt."""

import structlog

from mintline.services.blockchain.ledger import Web3Ledger
from mintline.services.exceptions import TransactionTimeoutError, VerifyError

logger = structlog.get_logger()


class AssetVerifier:
    """Submits the transaction attesting that a minted asset belongs to a collection.

    Like creation, verification can land after the attempt that sent it gave
    up. The registry is therefore asked before submitting and after any
    failure; when it already records the asset as verified, the hash of the
    transaction that emitted CollectionVerified is returned.
    """

    def __init__(self, ledger: Web3Ledger):
        self.ledger = ledger

    async def verify(self, mint_address: str, collection_address: str) -> str:
        """Verify collection membership of mint_address.

        Returns:
            Hash of the successful verification transaction

        Raises:
            VerifyError: Attempt failed and no successful verification is found on-chain
        """
        try:
            existing = await self._landed_verification(mint_address, collection_address)
            if existing is not None:
                logger.info("verify.already_landed", address=mint_address, tx_hash=existing)
                return existing

            return await self.ledger.submit_verify(mint_address, collection_address)

        except Exception as e:
            landed = await self._recover(mint_address, collection_address, e)
            if landed is not None:
                logger.warning(
                    "verify.recovered_after_error",
                    address=mint_address,
                    tx_hash=landed,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return landed

            logger.error(
                "verify.attempt_failed",
                address=mint_address,
                collection=collection_address,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise VerifyError(f"Failed to verify asset {mint_address}: {e}", cause=e) from e

    async def _landed_verification(self, mint_address: str, collection_address: str) -> str | None:
        """Hash of the CollectionVerified transaction, or None when not verified yet."""
        if not await self.ledger.is_collection_verified(mint_address, collection_address):
            return None
        return await self.ledger.find_verification_tx(mint_address, collection_address)

    async def _recover(
        self, mint_address: str, collection_address: str, error: Exception
    ) -> str | None:
        try:
            if not await self.ledger.is_collection_verified(mint_address, collection_address):
                return None
            tx_hash = await self.ledger.find_verification_tx(mint_address, collection_address)
        except Exception as e:
            logger.warning("verify.status_check_failed", address=mint_address, error=str(e))
            return None

        if tx_hash is not None:
            return tx_hash

        # A reverted transaction never verified anything; only a timed-out one may have landed
        if isinstance(error, TransactionTimeoutError) and error.tx_hash:
            return error.tx_hash

        logger.warning(
            "verify.event_not_found", address=mint_address, collection=collection_address
        )
        return None
