"""Service error hierarchy for uploads, chain writes and persistence.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- TransientError: Retryable errors (network, rate limits, timeouts)
- PermanentError: Non-retryable errors (authentication, validation)

The mint and verify loops do not consult this classification: every
MintError/VerifyError consumes one attempt of the retry budget.
"""

from uuid import UUID


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts
    - Rate limit exceeded (429)
    - Service unavailable (503)
    - Transaction submission failures
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Authentication failures (401, 403)
    - Invalid request parameters (400)
    - Transaction reverts
    """

    pass


# Upload errors (pre-mint, no chain side effect)
class UploadError(ServiceError):
    """Base exception for content and metadata upload errors.

    Raised before any chain transaction is attempted, so the whole request can
    be restarted from scratch.
    """

    pass


class IPFSRateLimitError(UploadError, TransientError):
    """Rate limit exceeded (429)."""

    pass


class IPFSNetworkError(UploadError, TransientError):
    """Network timeout or service unavailable."""

    pass


class IPFSAuthError(UploadError, PermanentError):
    """Authentication failure (401, 403)."""

    pass


class IPFSValidationError(UploadError, PermanentError):
    """Bad request (400) or a payload rejected before sending."""

    pass


class ContentFetchError(UploadError):
    """Raw content bytes could not be read from object storage."""

    pass


# Blockchain errors
class BlockchainError(ServiceError):
    """Base exception for ledger errors.

    Carries the transaction hash when a transaction was already submitted,
    so callers can check whether it landed after all.
    """

    def __init__(self, message: str, tx_hash: str | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class GasEstimationError(BlockchainError, TransientError):
    """Gas estimation failed."""

    pass


class TransactionSubmissionError(BlockchainError, TransientError):
    """Transaction submission failed."""

    pass


class TransactionTimeoutError(BlockchainError, TransientError):
    """Transaction confirmation timeout."""

    pass


class TransactionRevertError(BlockchainError, PermanentError):
    """Transaction reverted on-chain."""

    pass


class BlockchainConnectionError(BlockchainError, TransientError):
    """Failed to reach the RPC endpoint."""

    pass


# Mint pipeline errors
class MintError(ServiceError):
    """A creation attempt failed and no landed asset was found."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class MintRetriesExhaustedError(MintError):
    """Creation kept failing past the retry bound; asset marked mint_failed."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        attempts: int = 0,
        asset_id: UUID | None = None,
    ):
        super().__init__(message, cause)
        self.attempts = attempts
        self.asset_id = asset_id


class VerifyError(ServiceError):
    """A collection verification attempt failed."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class VerifyRetriesExhaustedError(VerifyError):
    """Verification kept failing past the retry bound; asset marked mint_failed."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        attempts: int = 0,
        asset_id: UUID | None = None,
    ):
        super().__init__(message, cause)
        self.attempts = attempts
        self.asset_id = asset_id


# Persistence errors
class PersistenceError(ServiceError):
    """Repository unavailable. Propagated immediately, never retried here."""

    pass


class AssetNotFoundError(PermanentError):
    """Asset record not found."""

    pass


class ContentNotFoundError(PermanentError):
    """Content record not found."""

    pass
