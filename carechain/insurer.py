"""Registry of insurance companies and their authorized claims reviewers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Hashable


class InsurerRegistryError(Exception):
    """Raised when an insurer registry operation cannot be carried out."""


@dataclass(frozen=True)
class InsurerData:
    """Stored information about an insurance company."""

    name: str
    license_id: str
    contact_details: str
    coverage_policies: str
    metadata: str


class InsurerRegistry:
    """In-memory registry of insurers keyed by wallet address.

    Every state change appends an ``(topics, data)`` tuple to ``events``.
    """

    def __init__(self) -> None:
        self._insurers: dict[Hashable, InsurerData] = {}
        self._reviewers: dict[Hashable, list[Hashable]] = {}
        self.events: list[tuple[tuple[Any, ...], str]] = []

    def _require(self, wallet: Hashable) -> InsurerData:
        try:
            return self._insurers[wallet]
        except KeyError:
            raise InsurerRegistryError("Insurer not found") from None

    def register_insurer(
        self, wallet: Hashable, name: str, license_id: str, metadata: str
    ) -> None:
        """Register a new insurer with empty contact details and policies."""
        if wallet in self._insurers:
            raise InsurerRegistryError("Insurer already registered")
        self._insurers[wallet] = InsurerData(
            name=name,
            license_id=license_id,
            contact_details="",
            coverage_policies="",
            metadata=metadata,
        )
        self._reviewers[wallet] = []
        self.events.append((("reg_ins", wallet), "success"))

    def update_insurer(self, wallet: Hashable, metadata: str) -> None:
        """Replace an insurer's metadata."""
        self._insurers[wallet] = replace(self._require(wallet), metadata=metadata)
        self.events.append((("upd_ins", wallet), "success"))

    def update_contact_details(self, wallet: Hashable, contact_details: str) -> None:
        """Replace an insurer's contact details."""
        self._insurers[wallet] = replace(
            self._require(wallet), contact_details=contact_details
        )
        self.events.append((("upd_cntct", wallet), "success"))

    def update_coverage_policies(
        self, wallet: Hashable, coverage_policies: str
    ) -> None:
        """Replace an insurer's coverage policies."""
        self._insurers[wallet] = replace(
            self._require(wallet), coverage_policies=coverage_policies
        )
        self.events.append((("upd_cov", wallet), "success"))

    def get_insurer(self, wallet: Hashable) -> InsurerData:
        """Return the data stored for an insurer."""
        return self._require(wallet)

    def add_claims_reviewer(
        self, insurer_wallet: Hashable, reviewer_wallet: Hashable
    ) -> None:
        """Authorize a reviewer for an insurer's claims."""
        if insurer_wallet not in self._insurers:
            raise InsurerRegistryError("Insurer not registered")
        reviewers = self._reviewers.setdefault(insurer_wallet, [])
        if reviewer_wallet in reviewers:
            raise InsurerRegistryError("Reviewer already authorized")
        reviewers.append(reviewer_wallet)
        self.events.append((("add_rev", insurer_wallet, reviewer_wallet), "success"))

    def remove_claims_reviewer(
        self, insurer_wallet: Hashable, reviewer_wallet: Hashable
    ) -> None:
        """Revoke a reviewer's authorization."""
        try:
            reviewers = self._reviewers[insurer_wallet]
        except KeyError:
            raise InsurerRegistryError("No reviewers found") from None
        remaining = [r for r in reviewers if r != reviewer_wallet]
        if len(remaining) == len(reviewers):
            raise InsurerRegistryError("Reviewer not found")
        self._reviewers[insurer_wallet] = remaining
        self.events.append((("rm_rev", insurer_wallet, reviewer_wallet), "success"))

    def get_claims_reviewers(self, insurer_wallet: Hashable) -> list[Hashable]:
        """Return the reviewers authorized for an insurer, in order of addition."""
        return list(self._reviewers.get(insurer_wallet, []))

    def is_authorized_reviewer(
        self, insurer_wallet: Hashable, reviewer_wallet: Hashable
    ) -> bool:
        """Tell whether an address is an authorized reviewer for an insurer."""
        return reviewer_wallet in self._reviewers.get(insurer_wallet, [])