"""Immutable chain session shared by the ledger, minter and orchestrator.

Built once at startup from Settings and passed in explicitly; nothing in the
minting path reads connection or identity state from module globals.
"""

from dataclasses import dataclass, field

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from mintline.core.config import Settings


@dataclass(frozen=True)
class ConfirmationPolicy:
    """How long and how often to poll for a transaction receipt."""

    timeout: float = 180.0
    poll_interval: float = 1.0
    max_poll_interval: float = 10.0
    backoff: float = 1.5


@dataclass(frozen=True)
class ChainSession:
    """Connection, signer identity and contract addresses for one deployment."""

    w3: Web3
    account: LocalAccount
    registry_address: str
    collection_address: str
    explorer_base_url: str
    seller_fee_basis_points: int = 100
    gas_buffer: float = 1.2
    verify_log_lookback_blocks: int = 50_000
    confirmation: ConfirmationPolicy = field(default_factory=ConfirmationPolicy)

    @property
    def creator_address(self) -> str:
        """Signer address, recorded as the sole creator of every minted asset."""
        return self.account.address

    def explorer_url(self, address: str) -> str:
        return f"{self.explorer_base_url.rstrip('/')}/address/{address}"


def build_chain_session(settings: Settings) -> ChainSession:
    """Create the chain session from application settings.

    Args:
        settings: Application settings (RPC URL, signer key, addresses)

    Returns:
        Frozen ChainSession
    """
    w3 = Web3(
        Web3.HTTPProvider(
            settings.rpc_url,
            request_kwargs={"timeout": settings.transaction_timeout_seconds},
        )
    )
    account: LocalAccount = Account.from_key(settings.signer_private_key)

    return ChainSession(
        w3=w3,
        account=account,
        registry_address=Web3.to_checksum_address(settings.registry_contract_address),
        collection_address=Web3.to_checksum_address(settings.collection_address),
        explorer_base_url=settings.explorer_base_url,
        seller_fee_basis_points=settings.seller_fee_basis_points,
        gas_buffer=settings.gas_buffer,
        verify_log_lookback_blocks=settings.verify_log_lookback_blocks,
        confirmation=ConfirmationPolicy(
            timeout=settings.transaction_timeout_seconds,
            poll_interval=settings.confirmation_poll_interval_seconds,
            max_poll_interval=settings.confirmation_poll_max_interval_seconds,
            backoff=settings.confirmation_poll_backoff,
        ),
    )
