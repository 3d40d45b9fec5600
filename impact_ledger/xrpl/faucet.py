"""
Testnet faucet — funded accounts for new donors and NGOs.

The XRPL testnet faucet is a plain HTTP endpoint:

    POST https://faucet.altnet.rippletest.net/accounts
    {"destination": "r..."}          # optional; omitted → faucet makes one

    → {"account": {"classicAddress": "r...", "secret": "s..."},
       "amount": 100, "balance": 100}

The HTTP call goes through a ``JsonTransport`` so tests can substitute a
canned response, or intercept ``HttpxTransport`` with pytest-httpx.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx
from xrpl.wallet import Wallet

from impact_ledger.config import LedgerSettings, get_settings
from impact_ledger.errors import ImpactLedgerError
from impact_ledger.xrpl.tx import validate_address

logger = logging.getLogger(__name__)


class FaucetError(ImpactLedgerError):
    """The faucet refused the request or answered with garbage."""


@runtime_checkable
class JsonTransport(Protocol):
    """Async transport for JSON POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` as JSON and return the parsed response.

        Raises:
            Exception: On transport failures or non-2xx status.
        """
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient."""

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result


@dataclass(frozen=True)
class FundedAccount:
    """An account the faucet has funded.

    Attributes:
        address: Classic r-address.
        seed: Family seed, if known to the caller (None when an existing
            address was funded and the faucet did not generate a key).
        balance: XRP balance reported by the faucet, as a decimal string.
    """

    address: str
    seed: str | None
    balance: str

    def __repr__(self) -> str:
        seed = "***" if self.seed else None
        return f"FundedAccount(address={self.address!r}, seed={seed!r}, balance={self.balance!r})"


def _parse_funding(response: dict[str, Any], seed: str | None) -> FundedAccount:
    account = response.get("account")
    if not isinstance(account, dict):
        raise FaucetError("faucet response has no account")
    address = account.get("classicAddress") or account.get("address")
    if not address:
        raise FaucetError("faucet response has no account address")
    balance = response.get("balance", response.get("amount", 0))
    return FundedAccount(
        address=str(address),
        seed=seed or account.get("secret"),
        balance=str(balance),
    )


class FaucetClient:
    """Funds testnet accounts.

    Args:
        url: Faucet endpoint.
        transport: JSON transport. Defaults to HttpxTransport.
    """

    def __init__(self, url: str, transport: JsonTransport | None = None) -> None:
        self._url = url
        self._transport = transport or HttpxTransport()

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings | None = None,
        transport: JsonTransport | None = None,
    ) -> FaucetClient:
        settings = settings or get_settings()
        return cls(settings.faucet_url, transport)

    async def fund(self, destination: str | None = None) -> FundedAccount:
        """Ask the faucet for test XRP.

        Args:
            destination: Existing r-address to fund. If omitted, the faucet
                generates the account and returns its seed.

        Raises:
            ValueError: If destination is not a valid address.
            FaucetError: On transport failure or an unusable response.
        """
        payload: dict[str, Any] = {}
        if destination is not None:
            validate_address(destination, field="destination")
            payload["destination"] = destination
        return await self._post(payload, seed=None)

    async def create_funded_wallet(self) -> FundedAccount:
        """Generate a wallet locally and fund it; the seed never leaves us."""
        wallet = Wallet.create()
        return await self._post({"destination": wallet.address}, seed=wallet.seed)

    async def _post(self, payload: dict[str, Any], *, seed: str | None) -> FundedAccount:
        try:
            response = await self._transport.post_json(self._url, payload)
        except Exception as exc:
            raise FaucetError(f"faucet request to {self._url} failed: {exc}") from exc
        funded = _parse_funding(response, seed)
        logger.info("faucet funded %s with %s XRP", funded.address, funded.balance)
        return funded
