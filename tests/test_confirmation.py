"""Tests for receipt polling with timeout and backoff."""

from unittest.mock import Mock

import pytest
from web3.exceptions import TransactionNotFound

from mintline.services.blockchain.confirmation import ConfirmationPoller
from mintline.services.blockchain.session import ConfirmationPolicy
from mintline.services.exceptions import TransactionRevertError, TransactionTimeoutError

TX_HASH = "0x" + "ab" * 32


class FakeClock:
    """Monotonic clock that only advances when the poller sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_poller(w3, clock: FakeClock, **policy) -> ConfirmationPoller:
    return ConfirmationPoller(
        w3, ConfirmationPolicy(**policy), sleep=clock.sleep, clock=clock
    )


@pytest.mark.asyncio
async def test_wait_returns_receipt_once_mined(clock):
    w3 = Mock()
    receipt = {"status": 1, "blockNumber": 42}
    w3.eth.get_transaction_receipt.side_effect = [
        TransactionNotFound("pending"),
        TransactionNotFound("pending"),
        receipt,
    ]

    result = await make_poller(w3, clock, poll_interval=1.0, backoff=2.0).wait(TX_HASH)

    assert result == receipt
    assert clock.sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_wait_raises_on_revert(clock):
    w3 = Mock()
    w3.eth.get_transaction_receipt.return_value = {"status": 0, "blockNumber": 7}

    with pytest.raises(TransactionRevertError) as exc_info:
        await make_poller(w3, clock).wait(TX_HASH)

    assert exc_info.value.tx_hash == TX_HASH


@pytest.mark.asyncio
async def test_wait_times_out_with_capped_backoff(clock):
    """Intervals grow by the backoff factor, are capped, and never overshoot the deadline."""
    w3 = Mock()
    w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("pending")
    poller = make_poller(
        w3, clock, timeout=5.0, poll_interval=1.0, max_poll_interval=4.0, backoff=2.0
    )

    with pytest.raises(TransactionTimeoutError) as exc_info:
        await poller.wait(TX_HASH)

    assert exc_info.value.tx_hash == TX_HASH
    assert clock.sleeps == [1.0, 2.0, 2.0]
    assert w3.eth.get_transaction_receipt.call_count == 4


@pytest.mark.asyncio
async def test_wait_keeps_polling_through_rpc_errors(clock):
    w3 = Mock()
    receipt = {"status": 1, "blockNumber": 42}
    w3.eth.get_transaction_receipt.side_effect = [ConnectionError("flaky node"), receipt]

    result = await make_poller(w3, clock).wait(TX_HASH)

    assert result == receipt
    assert len(clock.sleeps) == 1
