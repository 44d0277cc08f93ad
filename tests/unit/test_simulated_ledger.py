"""Unit tests for the simulated TON ledger."""

import random

import pytest

from tonedu.ledger.address_validation import encode_friendly_address
from tonedu.ledger.service import SimulatedLedger, build_sbt_metadata

DISTRIBUTION_WALLET = "0:83dfd552e63729b472fcbcc8c45ebcc6691702558b68ec7527e1ba403a0f31a8"
RECIPIENT = "0:" + "4d" * 32


def _ledger(seed: int = 7, **kwargs) -> SimulatedLedger:
    kwargs.setdefault("delay_seconds", 0)
    return SimulatedLedger(random.Random(seed), DISTRIBUTION_WALLET, **kwargs)


@pytest.mark.asyncio
async def test_transfer_success():
    result = await _ledger().transfer(RECIPIENT, 1.25, "memo")
    assert result.success is True
    assert result.amount == 1.25
    assert result.tx_hash.startswith("0x")
    assert len(result.tx_hash) == 66
    assert result.error is None


@pytest.mark.asyncio
async def test_transfer_hash_is_seeded():
    first = await _ledger(seed=3).transfer(RECIPIENT, 1)
    second = await _ledger(seed=3).transfer(RECIPIENT, 1)
    assert first.tx_hash == second.tx_hash


@pytest.mark.asyncio
async def test_transfer_invalid_address():
    result = await _ledger().transfer("nope", 1)
    assert result.success is False
    assert result.error == "Invalid recipient address"


@pytest.mark.asyncio
async def test_transfer_non_positive_amount():
    result = await _ledger().transfer(RECIPIENT, 0)
    assert result.success is False
    assert result.error == "Amount must be greater than 0"


@pytest.mark.asyncio
async def test_transfer_without_distribution_wallet():
    ledger = SimulatedLedger(random.Random(1), "", delay_seconds=0)
    result = await ledger.transfer(RECIPIENT, 1)
    assert result.success is False
    assert "not configured" in result.error


def test_testnet_address_rejected_on_mainnet():
    testnet_only = encode_friendly_address(0, bytes(32), testnet=True)
    assert _ledger(network="testnet").is_valid_address(testnet_only) is True
    assert _ledger(network="mainnet").is_valid_address(testnet_only) is False


@pytest.mark.asyncio
async def test_mint_certificate():
    result = await _ledger().mint_certificate(
        RECIPIENT,
        {"name": "Ada", "course_title": "TON Basics", "additional_metadata": {"course_category": "beginner"}},
    )
    assert result.success is True
    assert 1000 <= int(result.token_id) <= 9999
    assert result.metadata["recipient"] == RECIPIENT
    assert result.metadata["course_category"] == "beginner"


@pytest.mark.asyncio
async def test_mint_invalid_address():
    result = await _ledger().mint_certificate("0:zz", {})
    assert result.success is False
    assert result.metadata == {}


def test_sbt_metadata_defaults():
    metadata = build_sbt_metadata(RECIPIENT, {"course_title": "FunC"})
    assert metadata["template_id"] == "default"
    assert metadata["issuer"] == "TON EDUCATION"
    assert metadata["certificate_type"] == "completion"
    assert metadata["description"] == "Certificate of completion for FunC"
    assert metadata["issued_on"] == "TON Blockchain"
    assert metadata["standard"] == "TON SBT"
