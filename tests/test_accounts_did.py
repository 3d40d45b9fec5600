"""
Tests for account helpers and XRPL DIDs.

Test plan:
- is_valid_address: classic addresses only
- get_balance: drops → XRP decimal string, validated ledger, unfunded → "0",
  other node errors propagate, invalid address rejected before any request
- DIDs: did:xrpl:<address>, inverse, invalid input rejected
"""

from __future__ import annotations

import pytest
from conftest import DONOR, NGO, FakeLedgerClient

from impact_ledger.xrpl.accounts import get_balance, is_valid_address
from impact_ledger.xrpl.did import address_from_did, generate_xrpl_did
from impact_ledger.xrpl.errors import LedgerRequestError


class TestIsValidAddress:
    def test_valid(self) -> None:
        assert is_valid_address(DONOR)

    @pytest.mark.parametrize("address", ["", "rNope", "X7AcgcsBL6XDcUb289X4mJ8djcdyKaB5hJDWMArnXr61cqZ"])
    def test_invalid(self, address: str) -> None:
        assert not is_valid_address(address)


class TestGetBalance:
    @pytest.mark.asyncio
    async def test_converts_drops(self, connections, ledger: FakeLedgerClient) -> None:
        ledger.balances[DONOR] = "1000000000"
        assert await get_balance(connections, DONOR) == "1000"
        command, params = ledger.requests[0]
        assert command == "account_info"
        assert params == {"account": DONOR, "ledger_index": "validated"}

    @pytest.mark.asyncio
    async def test_fractional(self, connections, ledger: FakeLedgerClient) -> None:
        ledger.balances[DONOR] = "25500001"
        assert await get_balance(connections, DONOR) == "25.500001"

    @pytest.mark.asyncio
    async def test_unfunded_is_zero(self, connections) -> None:
        assert await get_balance(connections, NGO) == "0"

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, connections, ledger: FakeLedgerClient) -> None:
        ledger.request_failures["account_info"] = [
            LedgerRequestError("account_info", "tooBusy")
        ]
        with pytest.raises(LedgerRequestError, match="tooBusy"):
            await get_balance(connections, DONOR)

    @pytest.mark.asyncio
    async def test_invalid_address(self, connections, ledger: FakeLedgerClient) -> None:
        with pytest.raises(ValueError):
            await get_balance(connections, "rNope")
        assert ledger.requests == []


class TestDid:
    def test_generate(self) -> None:
        assert generate_xrpl_did(DONOR) == f"did:xrpl:{DONOR}"

    def test_inverse(self) -> None:
        assert address_from_did(generate_xrpl_did(NGO)) == NGO

    def test_invalid_address(self) -> None:
        with pytest.raises(ValueError):
            generate_xrpl_did("rNope")

    @pytest.mark.parametrize("did", ["did:web:example.com", "did:xrpl:rNope", DONOR])
    def test_invalid_did(self, did: str) -> None:
        with pytest.raises(ValueError):
            address_from_did(did)
