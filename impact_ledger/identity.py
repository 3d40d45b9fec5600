"""
Identity and profile collaborator.

The ledger core never stores who is who. Counterpart organizations
(NGOs) and user profiles come from an external store behind the
``CounterpartDirectory`` protocol; ``InMemoryDirectory`` is the
implementation used by tests and local tooling.

Wallet secrets are not part of a profile. Callers hold them and pass
them per operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, Protocol, runtime_checkable

from impact_ledger.xrpl.tx import validate_address


class Role(StrEnum):
    DONOR = "donor"
    NGO = "ngo"


@dataclass(frozen=True)
class Counterpart:
    """An organization that can receive donations.

    Attributes:
        id: Directory identifier, recorded as ``ngoId`` in receipts.
        name: Display name, recorded as ``ngoName``.
        wallet_address: Account that receives donations.
        category: Cause category ("education", "healthcare", ...).
        description: Free-text description.
        verified: Only verified counterparts accept donations.
    """

    id: str
    name: str
    wallet_address: str
    category: str
    description: str = ""
    verified: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("counterpart id must be non-empty")
        validate_address(self.wallet_address, field="wallet_address")


@dataclass(frozen=True)
class Profile:
    """A registered donor or NGO user."""

    id: str
    role: Role
    wallet_address: str
    email: str = ""

    def __post_init__(self) -> None:
        validate_address(self.wallet_address, field="wallet_address")


@runtime_checkable
class CounterpartDirectory(Protocol):
    """Lookup interface for organizations and user profiles."""

    async def get_verified_counterparts(self) -> list[Counterpart]:
        """All counterparts currently accepting donations."""
        ...

    async def get_profile(self, profile_id: str) -> Profile | None:
        """Profile by id, or None if unknown."""
        ...


class InMemoryDirectory:
    """Directory backed by dicts."""

    def __init__(
        self,
        counterparts: Iterable[Counterpart] = (),
        profiles: Iterable[Profile] = (),
    ) -> None:
        self._counterparts = {c.id: c for c in counterparts}
        self._profiles = {p.id: p for p in profiles}

    def add_counterpart(self, counterpart: Counterpart) -> None:
        self._counterparts[counterpart.id] = counterpart

    def add_profile(self, profile: Profile) -> None:
        self._profiles[profile.id] = profile

    async def get_verified_counterparts(self) -> list[Counterpart]:
        return [c for c in self._counterparts.values() if c.verified]

    async def get_profile(self, profile_id: str) -> Profile | None:
        return self._profiles.get(profile_id)
