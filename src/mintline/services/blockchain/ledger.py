"""Ledger adapter for the asset registry contract."""

from dataclasses import dataclass
from uuid import UUID

import structlog
from web3 import Web3

from mintline.abi import get_contract_abi
from mintline.services.blockchain.confirmation import ConfirmationPoller
from mintline.services.blockchain.session import ChainSession
from mintline.services.exceptions import (
    BlockchainConnectionError,
    GasEstimationError,
    TransactionSubmissionError,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class OnChainAsset:
    """An asset found at a registry-derived address."""

    address: str
    code_size: int


def asset_key_for(asset_id: UUID) -> bytes:
    """Deterministic registry key for an asset record.

    Every attempt for the same record targets the same derived address, which
    is what makes the post-failure duplicate check possible.
    """
    return bytes(Web3.keccak(asset_id.bytes))


class Web3Ledger:
    """Submits create/verify transactions and answers existence queries."""

    def __init__(self, session: ChainSession, poller: ConfirmationPoller | None = None):
        """Initialize the ledger adapter.

        Args:
            session: Immutable chain session (connection, signer, addresses)
            poller: Receipt poller (default: built from session.confirmation)
        """
        self.session = session
        self.w3 = session.w3
        self.contract = self.w3.eth.contract(
            address=session.registry_address, abi=get_contract_abi("AssetRegistry")
        )
        self.poller = poller or ConfirmationPoller(self.w3, session.confirmation)

    async def derive_asset_address(self, asset_key: bytes) -> str:
        """Address the registry will deploy the asset for asset_key to.

        Raises:
            BlockchainConnectionError: RPC call failed
        """
        try:
            address = self.contract.functions.predictAssetAddress(asset_key).call()
        except Exception as e:
            raise BlockchainConnectionError(f"predictAssetAddress failed: {e}") from e
        return Web3.to_checksum_address(address)

    async def find_asset_by_address(self, address: str) -> OnChainAsset | None:
        """Return the asset deployed at address, or None if nothing is there.

        Raises:
            BlockchainConnectionError: RPC call failed
        """
        try:
            code = self.w3.eth.get_code(Web3.to_checksum_address(address))
        except Exception as e:
            raise BlockchainConnectionError(f"get_code failed for {address}: {e}") from e
        if not code:
            return None
        return OnChainAsset(address=Web3.to_checksum_address(address), code_size=len(code))

    async def is_collection_verified(self, asset_address: str, collection_address: str) -> bool:
        """Whether the registry already records asset as a verified collection member."""
        try:
            return bool(
                self.contract.functions.isCollectionVerified(
                    Web3.to_checksum_address(asset_address),
                    Web3.to_checksum_address(collection_address),
                ).call()
            )
        except Exception as e:
            raise BlockchainConnectionError(f"isCollectionVerified failed: {e}") from e

    async def find_verification_tx(
        self, asset_address: str, collection_address: str
    ) -> str | None:
        """Hash of the latest CollectionVerified transaction for asset and collection.

        Searches the last session.verify_log_lookback_blocks blocks.

        Returns:
            Transaction hash (0x-prefixed), or None when no event is found

        Raises:
            BlockchainConnectionError: RPC call failed
        """
        try:
            latest = self.w3.eth.block_number
            logs = self.contract.events.CollectionVerified.get_logs(
                argument_filters={
                    "asset": Web3.to_checksum_address(asset_address),
                    "collection": Web3.to_checksum_address(collection_address),
                },
                from_block=max(0, latest - self.session.verify_log_lookback_blocks),
                to_block=latest,
            )
        except Exception as e:
            raise BlockchainConnectionError(f"CollectionVerified lookup failed: {e}") from e
        if not logs:
            return None
        return Web3.to_hex(logs[-1]["transactionHash"])

    async def wait_for_confirmation(self, tx_hash: str) -> dict:
        """Block until tx_hash is mined, per the session's confirmation policy."""
        return await self.poller.wait(tx_hash)

    async def submit_create(
        self,
        expected_address: str,
        asset_key: bytes,
        name: str,
        symbol: str,
        metadata_uri: str,
        collection_address: str,
        creator_address: str,
    ) -> str:
        """Submit the create transaction and wait for confirmation.

        Args:
            expected_address: Address derived for asset_key by derive_asset_address

        Returns:
            Checksummed address of the created asset

        Raises:
            BlockchainError: Estimation, submission, revert or confirmation timeout
        """
        fn = self.contract.functions.createAsset(
            asset_key,
            name,
            symbol,
            metadata_uri,
            Web3.to_checksum_address(collection_address),
            Web3.to_checksum_address(creator_address),
            self.session.seller_fee_basis_points,
        )
        tx_hash = await self._send(fn, action="create")
        await self.wait_for_confirmation(tx_hash)

        logger.info(
            "ledger.asset_created",
            tx_hash=tx_hash,
            address=expected_address,
            collection=collection_address,
        )
        return expected_address

    async def submit_verify(self, asset_address: str, collection_address: str) -> str:
        """Submit the collection verification transaction and wait for confirmation.

        Returns:
            Transaction hash (0x-prefixed)

        Raises:
            BlockchainError: Estimation, submission, revert or confirmation timeout
        """
        fn = self.contract.functions.verifyCollection(
            Web3.to_checksum_address(asset_address),
            Web3.to_checksum_address(collection_address),
        )
        tx_hash = await self._send(fn, action="verify")
        await self.wait_for_confirmation(tx_hash)

        logger.info(
            "ledger.collection_verified",
            tx_hash=tx_hash,
            address=asset_address,
            collection=collection_address,
        )
        return tx_hash

    async def _send(self, fn, action: str) -> str:
        """Estimate, sign and broadcast an EIP-1559 transaction for a contract call."""
        sender = self.session.account.address
        try:
            estimated_gas = fn.estimate_gas({"from": sender})
            gas_limit = int(estimated_gas * self.session.gas_buffer)

            max_priority_fee = self.w3.eth.max_priority_fee
            base_fee = self.w3.eth.get_block("latest").get("baseFeePerGas", 0)
            max_priority_fee_buffered = int(max_priority_fee * self.session.gas_buffer)
            max_fee_per_gas = int(base_fee * 2 + max_priority_fee_buffered)
        except Exception as e:
            error_msg = str(e)
            logger.error("ledger.gas_estimation_failed", action=action, error=error_msg)
            if "insufficient funds" in error_msg.lower():
                error_msg = f"Signer {sender} has insufficient balance for gas: {error_msg}"
            raise GasEstimationError(f"Gas estimation failed for {action}: {error_msg}") from e

        try:
            nonce = self.w3.eth.get_transaction_count(sender, "pending")
            transaction = fn.build_transaction(
                {
                    "from": sender,
                    "nonce": nonce,
                    "gas": gas_limit,
                    "maxFeePerGas": max_fee_per_gas,
                    "maxPriorityFeePerGas": max_priority_fee_buffered,
                    "chainId": self.w3.eth.chain_id,
                }  # type: ignore[arg-type]
            )
            signed_txn = self.session.account.sign_transaction(transaction)
            tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed_txn.raw_transaction))
        except Exception as e:
            logger.error("ledger.transaction_submission_failed", action=action, error=str(e))
            raise TransactionSubmissionError(
                f"Transaction submission failed for {action}: {e}"
            ) from e

        logger.info(
            "ledger.transaction_submitted",
            action=action,
            tx_hash=tx_hash,
            nonce=nonce,
            gas_limit=gas_limit,
        )
        return tx_hash
