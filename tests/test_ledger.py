"""Tests for the registry ledger adapter with a mocked Web3 connection."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from mintline.services.blockchain.ledger import OnChainAsset, Web3Ledger, asset_key_for
from mintline.services.blockchain.session import ChainSession
from mintline.services.exceptions import (
    BlockchainConnectionError,
    GasEstimationError,
    TransactionSubmissionError,
)

REGISTRY = "0x" + "11" * 20
COLLECTION = "0x" + "22" * 20
ASSET = "0x" + "33" * 20
SIGNER = "0x" + "44" * 20


@pytest.fixture
def w3():
    w3 = Mock()
    w3.eth.max_priority_fee = 2
    w3.eth.get_block.return_value = {"baseFeePerGas": 10}
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.chain_id = 84532
    w3.eth.send_raw_transaction.return_value = b"\x12" * 32
    return w3


@pytest.fixture
def account():
    account = Mock()
    account.address = SIGNER
    account.sign_transaction.return_value = Mock(raw_transaction=b"signed")
    return account


@pytest.fixture
def poller():
    poller = Mock()
    poller.wait = AsyncMock(return_value={"status": 1, "blockNumber": 1})
    return poller


@pytest.fixture
def ledger(w3, account, poller):
    session = ChainSession(
        w3=w3,
        account=account,
        registry_address=REGISTRY,
        collection_address=COLLECTION,
        explorer_base_url="https://sepolia.basescan.org/",
    )
    return Web3Ledger(session, poller=poller)


def test_asset_key_is_deterministic_per_record():
    asset_id = uuid4()

    assert asset_key_for(asset_id) == asset_key_for(asset_id)
    assert len(asset_key_for(asset_id)) == 32
    assert asset_key_for(asset_id) != asset_key_for(uuid4())


def test_explorer_url():
    session = ChainSession(
        w3=Mock(),
        account=Mock(address=SIGNER),
        registry_address=REGISTRY,
        collection_address=COLLECTION,
        explorer_base_url="https://sepolia.basescan.org/",
    )

    assert session.explorer_url(ASSET) == f"https://sepolia.basescan.org/address/{ASSET}"
    assert session.creator_address == SIGNER


@pytest.mark.asyncio
async def test_find_asset_by_address_empty_code(ledger, w3):
    w3.eth.get_code.return_value = b""

    assert await ledger.find_asset_by_address(ASSET) is None


@pytest.mark.asyncio
async def test_find_asset_by_address_with_code(ledger, w3):
    w3.eth.get_code.return_value = b"\x60\x80\x60\x40"

    found = await ledger.find_asset_by_address(ASSET)

    assert isinstance(found, OnChainAsset)
    assert found.code_size == 4
    assert found.address.lower() == ASSET


@pytest.mark.asyncio
async def test_find_asset_by_address_rpc_failure(ledger, w3):
    w3.eth.get_code.side_effect = ConnectionError("node unreachable")

    with pytest.raises(BlockchainConnectionError):
        await ledger.find_asset_by_address(ASSET)


@pytest.mark.asyncio
async def test_submit_verify_builds_eip1559_transaction(ledger, w3, poller):
    fn = ledger.contract.functions.verifyCollection.return_value
    fn.estimate_gas.return_value = 100_000
    fn.build_transaction.return_value = {"to": REGISTRY}

    tx_hash = await ledger.submit_verify(ASSET, COLLECTION)

    assert tx_hash == "0x" + "12" * 32
    tx_params = fn.build_transaction.call_args.args[0]
    assert tx_params["gas"] == 120_000
    assert tx_params["maxPriorityFeePerGas"] == 2
    assert tx_params["maxFeePerGas"] == 22
    assert tx_params["nonce"] == 7
    assert tx_params["chainId"] == 84532
    w3.eth.get_transaction_count.assert_called_once_with(SIGNER, "pending")
    poller.wait.assert_awaited_once_with(tx_hash)


@pytest.mark.asyncio
async def test_gas_estimation_failure_mentions_balance(ledger):
    fn = ledger.contract.functions.verifyCollection.return_value
    fn.estimate_gas.side_effect = ValueError("insufficient funds for gas * price + value")

    with pytest.raises(GasEstimationError, match="insufficient balance"):
        await ledger.submit_verify(ASSET, COLLECTION)


@pytest.mark.asyncio
async def test_submission_failure(ledger, w3, poller):
    fn = ledger.contract.functions.verifyCollection.return_value
    fn.estimate_gas.return_value = 100_000
    fn.build_transaction.return_value = {"to": REGISTRY}
    w3.eth.send_raw_transaction.side_effect = ValueError("nonce too low")

    with pytest.raises(TransactionSubmissionError):
        await ledger.submit_verify(ASSET, COLLECTION)

    poller.wait.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_create_returns_expected_address(ledger, poller):
    fn = ledger.contract.functions.createAsset.return_value
    fn.estimate_gas.return_value = 300_000
    fn.build_transaction.return_value = {"to": REGISTRY}

    address = await ledger.submit_create(
        expected_address=ASSET,
        asset_key=b"\x01" * 32,
        name="Cat #1",
        symbol="CAT",
        metadata_uri="ipfs://bafkreimetadata",
        collection_address=COLLECTION,
        creator_address=SIGNER,
    )

    assert address == ASSET
    ledger.contract.functions.predictAssetAddress.assert_not_called()
    args = ledger.contract.functions.createAsset.call_args.args
    assert args[0] == b"\x01" * 32
    assert args[3] == "ipfs://bafkreimetadata"
    assert args[6] == 100
    poller.wait.assert_awaited_once()


@pytest.mark.asyncio
async def test_find_verification_tx_returns_latest_event_hash(ledger, w3):
    w3.eth.block_number = 60_000
    event = ledger.contract.events.CollectionVerified
    event.get_logs.return_value = [
        {"transactionHash": b"\x0a" * 32},
        {"transactionHash": b"\x0b" * 32},
    ]

    tx_hash = await ledger.find_verification_tx(ASSET, COLLECTION)

    assert tx_hash == "0x" + "0b" * 32
    kwargs = event.get_logs.call_args.kwargs
    assert kwargs["from_block"] == 10_000
    assert kwargs["to_block"] == 60_000
    assert set(kwargs["argument_filters"]) == {"asset", "collection"}


@pytest.mark.asyncio
async def test_find_verification_tx_without_event(ledger, w3):
    w3.eth.block_number = 100
    ledger.contract.events.CollectionVerified.get_logs.return_value = []

    assert await ledger.find_verification_tx(ASSET, COLLECTION) is None
    kwargs = ledger.contract.events.CollectionVerified.get_logs.call_args.kwargs
    assert kwargs["from_block"] == 0


@pytest.mark.asyncio
async def test_find_verification_tx_rpc_failure(ledger, w3):
    w3.eth.block_number = 100
    ledger.contract.events.CollectionVerified.get_logs.side_effect = ConnectionError("down")

    with pytest.raises(BlockchainConnectionError):
        await ledger.find_verification_tx(ASSET, COLLECTION)
