"""
Tests for ReceiptMinter.

All tests use FakeLedgerClient + FakeSigner — no network calls.

Test plan:
- Donation mint: taxon 0, transferable, URI is uppercase hex of canonical
  JSON, LastLedgerSequence bound, NFT appears on the fake ledger
- Impact mint: taxon 1
- Shape problems: logged as warning, mint proceeds
- Size: payload over 256 bytes → MintError before any network call
- Unserializable metadata → MintError
- Retry: tem*/tef* retried (3 attempts, 2 s pause), tec* not retried,
  exhaustion → MintError with attempts and engine result
"""

from __future__ import annotations

import logging

import pytest
from conftest import DONOR, SAMPLE_SEED, FakeLedgerClient, FakeSigner

from impact_ledger.errors import MintError
from impact_ledger.metadata.codec import decode, encode
from impact_ledger.xrpl.client import SubmitResult
from impact_ledger.xrpl.connection import ConnectionManager, ReconnectPolicy
from impact_ledger.xrpl.minter import ReceiptMinter
from impact_ledger.xrpl.tx import TF_TRANSFERABLE

DONATION = {
    "ngoId": "n1",
    "ngoName": "Acme Relief",
    "amount": "25.5",
    "purpose": "food",
    "timestamp": 1700000000000,
    "impactWindow": 31536000000,
    "category": "food",
    "txHash": "ABC123",
}

# Impact payloads must stay compact to fit the URI field.
IMPACT = {
    "ngoId": "n1",
    "ngoName": "A",
    "amount": "1",
    "purpose": "",
    "category": "food",
    "recipient": "Team",
    "txHash": "ABC123",
    "timestamp": 1700000000000,
    "impactWindow": 31104000000,
    "impactMetrics": [
        {"category": "food", "amount": "1", "percentage": 100, "description": ""}
    ],
}

MALFORMED = SubmitResult(validated=False, engine_result="temMALFORMED")
PAST_SEQ = SubmitResult(validated=False, engine_result="tefPAST_SEQ")
NO_RESERVE = SubmitResult(validated=True, engine_result="tecINSUFFICIENT_RESERVE")


@pytest.fixture
def minter(connections, signer: FakeSigner, sleep) -> ReceiptMinter:
    return ReceiptMinter(connections, signer_factory=lambda secret: signer, sleep=sleep)


class TestMintDonation:
    @pytest.mark.asyncio
    async def test_mint_shape(
        self, minter: ReceiptMinter, ledger: FakeLedgerClient, signer: FakeSigner
    ) -> None:
        tx_hash = await minter.mint_donation_receipt(SAMPLE_SEED, DONATION)

        assert tx_hash == f"{1:064X}"
        tx = signer.sign_calls[0]
        assert tx["TransactionType"] == "NFTokenMint"
        assert tx["Account"] == DONOR
        assert tx["NFTokenTaxon"] == 0
        assert tx["Flags"] == TF_TRANSFERABLE
        assert tx["URI"] == encode(DONATION)
        assert tx["URI"] == tx["URI"].upper()
        assert tx["LastLedgerSequence"] == ledger.ledger_index + 10

    @pytest.mark.asyncio
    async def test_nft_on_ledger(self, minter: ReceiptMinter, ledger: FakeLedgerClient) -> None:
        await minter.mint_receipt(SAMPLE_SEED, DONATION, "donation")
        [nft] = ledger.nfts[DONOR]
        assert nft["NFTokenTaxon"] == 0
        assert decode(nft["URI"]) == DONATION


class TestMintImpact:
    @pytest.mark.asyncio
    async def test_taxon_one(self, minter: ReceiptMinter, signer: FakeSigner) -> None:
        await minter.mint_impact_receipt(SAMPLE_SEED, IMPACT)
        assert signer.sign_calls[0]["NFTokenTaxon"] == 1

    @pytest.mark.asyncio
    async def test_unknown_kind(self, minter: ReceiptMinter, ledger: FakeLedgerClient) -> None:
        with pytest.raises(ValueError):
            await minter.mint_receipt(SAMPLE_SEED, DONATION, "gift")
        assert ledger.requests == []


class TestShapeAndSize:
    @pytest.mark.asyncio
    async def test_shape_problems_logged_and_minted(
        self, minter: ReceiptMinter, ledger: FakeLedgerClient, caplog
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="impact_ledger.xrpl.minter"):
            await minter.mint_donation_receipt(SAMPLE_SEED, {"amount": 10})
        assert "does not match schema" in caplog.text
        assert len(ledger.nfts[DONOR]) == 1

    @pytest.mark.asyncio
    async def test_oversized_payload(self, minter: ReceiptMinter, ledger: FakeLedgerClient) -> None:
        with pytest.raises(MintError, match="256"):
            await minter.mint_donation_receipt(SAMPLE_SEED, {**DONATION, "purpose": "x" * 300})
        assert ledger.requests == []

    @pytest.mark.asyncio
    async def test_unserializable(self, minter: ReceiptMinter, ledger: FakeLedgerClient) -> None:
        with pytest.raises(MintError, match="JSON"):
            await minter.mint_donation_receipt(SAMPLE_SEED, {**DONATION, "amount": object()})
        assert ledger.requests == []


class TestRetry:
    @pytest.mark.asyncio
    async def test_malformed_and_local_failures_retried(
        self, minter: ReceiptMinter, ledger: FakeLedgerClient, sleep
    ) -> None:
        ledger.submit_script = [MALFORMED, PAST_SEQ]
        await minter.mint_donation_receipt(SAMPLE_SEED, DONATION)
        assert len(ledger.submitted) == 3
        assert sleep.delays == [2.0, 2.0]
        assert len(ledger.nfts[DONOR]) == 1

    @pytest.mark.asyncio
    async def test_exhausted(self, minter: ReceiptMinter, ledger: FakeLedgerClient) -> None:
        ledger.submit_script = [MALFORMED, MALFORMED, MALFORMED]
        with pytest.raises(MintError) as exc_info:
            await minter.mint_donation_receipt(SAMPLE_SEED, DONATION)
        assert exc_info.value.attempts == 3
        assert exc_info.value.engine_result == "temMALFORMED"
        assert DONOR not in ledger.nfts

    @pytest.mark.asyncio
    async def test_rejected_not_retried(
        self, minter: ReceiptMinter, ledger: FakeLedgerClient
    ) -> None:
        ledger.submit_script = [NO_RESERVE]
        with pytest.raises(MintError, match="reserve") as exc_info:
            await minter.mint_donation_receipt(SAMPLE_SEED, DONATION)
        assert len(ledger.submitted) == 1
        assert exc_info.value.engine_result == "tecINSUFFICIENT_RESERVE"

    @pytest.mark.asyncio
    async def test_connection_failure(self, sleep) -> None:
        down = FakeLedgerClient(open_error=ConnectionRefusedError("down"))
        connections = ConnectionManager(
            [down.url],
            client_factory=lambda url: down,
            policy=ReconnectPolicy(liveness_interval=None),
            sleep=sleep,
        )
        minter = ReceiptMinter(connections, signer_factory=lambda s: FakeSigner(), sleep=sleep)
        with pytest.raises(MintError, match="after 3 attempt") as exc_info:
            await minter.mint_donation_receipt(SAMPLE_SEED, DONATION)
        assert down.open_calls == 3
        assert exc_info.value.engine_result is None
