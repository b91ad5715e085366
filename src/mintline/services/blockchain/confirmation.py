"""Transaction confirmation polling with timeout and backoff."""

import asyncio
import time
from typing import Any, Awaitable, Callable

import structlog
from web3 import Web3
from web3.exceptions import TransactionNotFound

from mintline.services.blockchain.session import ConfirmationPolicy
from mintline.services.exceptions import TransactionRevertError, TransactionTimeoutError

logger = structlog.get_logger()


class ConfirmationPoller:
    """Polls for a transaction receipt until it is mined or the policy times out.

    The interval starts at policy.poll_interval and grows by policy.backoff up to
    policy.max_poll_interval. RPC errors while polling are logged and treated as
    "not mined yet"; only the overall timeout ends the wait unsuccessfully.
    """

    def __init__(
        self,
        w3: Web3,
        policy: ConfirmationPolicy,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.w3 = w3
        self.policy = policy
        self._sleep = sleep
        self._clock = clock

    async def wait(self, tx_hash: str) -> dict:
        """Wait for tx_hash to be mined successfully.

        Args:
            tx_hash: 0x-prefixed transaction hash

        Returns:
            Transaction receipt

        Raises:
            TransactionRevertError: Receipt found with status 0
            TransactionTimeoutError: No receipt within policy.timeout seconds
        """
        deadline = self._clock() + self.policy.timeout
        interval = self.policy.poll_interval
        polls = 0

        while True:
            polls += 1
            receipt = None
            try:
                receipt = self.w3.eth.get_transaction_receipt(tx_hash)  # type: ignore[arg-type]
            except TransactionNotFound:
                pass
            except Exception as e:
                logger.warning(
                    "confirmation.poll_error",
                    tx_hash=tx_hash,
                    error=str(e),
                    error_type=type(e).__name__,
                    poll=polls,
                )

            if receipt is not None:
                if receipt["status"] == 0:
                    logger.error(
                        "confirmation.reverted",
                        tx_hash=tx_hash,
                        block_number=receipt["blockNumber"],
                    )
                    raise TransactionRevertError(f"Transaction reverted: {tx_hash}", tx_hash)

                logger.debug(
                    "confirmation.confirmed",
                    tx_hash=tx_hash,
                    block_number=receipt["blockNumber"],
                    polls=polls,
                )
                return receipt

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(
                    "confirmation.timeout",
                    tx_hash=tx_hash,
                    timeout=self.policy.timeout,
                    polls=polls,
                )
                raise TransactionTimeoutError(
                    f"Transaction confirmation timeout after {self.policy.timeout}s: {tx_hash}",
                    tx_hash,
                )

            await self._sleep(min(interval, remaining))
            interval = min(interval * self.policy.backoff, self.policy.max_poll_interval)
