"""Medical claims: submission, adjudication, appeals and payment reconciliation."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Hashable, Sequence

HASH_LENGTH = 32
MAX_APPEAL_LEVEL = 3


class ErrorCode(IntEnum):
    """Numeric error codes reported by the claims system."""

    NOT_AUTHORIZED = 1
    CLAIM_NOT_FOUND = 2
    INVALID_APPEAL_LEVEL = 3
    INVALID_STATE_TRANSITION = 4


class ClaimsError(Exception):
    """Raised when a claims operation fails."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or code.name.replace("_", " ").lower())


class ClaimStatus(Enum):
    """Processing stage of a claim."""

    SUBMITTED = "Submitted"
    ADJUDICATED = "Adjudicated"
    APPEALED = "Appealed"
    PAID = "Paid"
    CLOSED = "Closed"


@dataclass(frozen=True)
class ServiceLine:
    """One billed procedure on a claim."""

    procedure_code: str
    quantity: int
    charge_amount: int
    modifier: str | None = None
    diagnosis_pointers: tuple[int, ...] = ()


@dataclass(frozen=True)
class DenialInfo:
    """Why a claim line was denied."""

    line_number: int
    denial_code: str
    denial_reason: str
    is_appealable: bool


@dataclass(frozen=True)
class ClaimRecord:
    """A claim and its adjudication state."""

    claim_id: int
    provider_id: Hashable
    patient_id: Hashable
    policy_id: int
    service_date: int
    service_codes: tuple[ServiceLine, ...]
    diagnosis_codes: tuple[str, ...]
    details_hash: bytes
    total_amount: int
    status: ClaimStatus = ClaimStatus.SUBMITTED
    approved_amount: int | None = None
    patient_responsibility: int | None = None
    appeal_level: int = 0


class MedicalClaims:
    """In-memory claims processing system."""

    def __init__(self) -> None:
        self._counter = 0
        self._claims: dict[int, ClaimRecord] = {}
        self._approved_lines: dict[int, list[int]] = {}
        self._denials: dict[int, list[DenialInfo]] = {}
        self._provider_claims: defaultdict[Hashable, list[int]] = defaultdict(list)
        self._patient_claims: defaultdict[Hashable, list[int]] = defaultdict(list)
        self._insurer_payments: dict[int, tuple[int, str]] = {}
        self._patient_payments: dict[int, tuple[int, int]] = {}

    def get_claim(self, claim_id: int) -> ClaimRecord:
        """Return the stored claim."""
        try:
            return self._claims[claim_id]
        except KeyError:
            raise ClaimsError(ErrorCode.CLAIM_NOT_FOUND) from None

    def submit_claim(
        self,
        provider_id: Hashable,
        patient_id: Hashable,
        policy_id: int,
        service_date: int,
        service_codes: Sequence[ServiceLine],
        diagnosis_codes: Sequence[str],
        claim_details_hash: bytes,
        total_amount: int,
    ) -> int:
        """Record a new claim and return its identifier (starting at 1)."""
        if len(claim_details_hash) != HASH_LENGTH:
            raise ValueError(f"claim_details_hash must be {HASH_LENGTH} bytes")
        self._counter += 1
        claim_id = self._counter
        self._claims[claim_id] = ClaimRecord(
            claim_id=claim_id,
            provider_id=provider_id,
            patient_id=patient_id,
            policy_id=policy_id,
            service_date=service_date,
            service_codes=tuple(service_codes),
            diagnosis_codes=tuple(diagnosis_codes),
            details_hash=bytes(claim_details_hash),
            total_amount=total_amount,
        )
        self._provider_claims[provider_id].append(claim_id)
        self._patient_claims[patient_id].append(claim_id)
        return claim_id

    def adjudicate_claim(
        self,
        claim_id: int,
        insurance_admin: Hashable,
        approved_lines: Sequence[int],
        denied_lines: Sequence[DenialInfo],
        approved_amount: int,
        patient_responsibility: int,
    ) -> None:
        """Decide a submitted or appealed claim."""
        claim = self.get_claim(claim_id)
        if claim.status not in (ClaimStatus.SUBMITTED, ClaimStatus.APPEALED):
            raise ClaimsError(ErrorCode.INVALID_STATE_TRANSITION)
        self._claims[claim_id] = replace(
            claim,
            status=ClaimStatus.ADJUDICATED,
            approved_amount=approved_amount,
            patient_responsibility=patient_responsibility,
        )
        self._approved_lines[claim_id] = list(approved_lines)
        self._denials[claim_id] = list(denied_lines)

    def appeal_denial(
        self,
        claim_id: int,
        provider_id: Hashable,
        appeal_level: int,
        appeal_details_hash: bytes,
    ) -> int:
        """Appeal an adjudicated claim at a higher level (at most 3)."""
        claim = self.get_claim(claim_id)
        if claim.provider_id != provider_id:
            raise ClaimsError(ErrorCode.NOT_AUTHORIZED)
        if claim.status is not ClaimStatus.ADJUDICATED:
            raise ClaimsError(ErrorCode.INVALID_STATE_TRANSITION)
        if appeal_level <= claim.appeal_level or appeal_level > MAX_APPEAL_LEVEL:
            raise ClaimsError(ErrorCode.INVALID_APPEAL_LEVEL)
        self._claims[claim_id] = replace(
            claim, status=ClaimStatus.APPEALED, appeal_level=appeal_level
        )
        return claim_id

    def process_payment(
        self,
        claim_id: int,
        insurance_admin: Hashable,
        payment_amount: int,
        payment_date: int,
        payment_reference: str,
    ) -> None:
        """Mark an adjudicated claim as paid by the insurer."""
        claim = self.get_claim(claim_id)
        if claim.status is not ClaimStatus.ADJUDICATED:
            raise ClaimsError(ErrorCode.INVALID_STATE_TRANSITION)
        self._claims[claim_id] = replace(claim, status=ClaimStatus.PAID)
        self._insurer_payments[claim_id] = (payment_date, payment_reference)

    def apply_patient_payment(
        self,
        claim_id: int,
        patient_id: Hashable,
        payment_amount: int,
        payment_date: int,
    ) -> None:
        """Reduce the patient's outstanding balance; a paid claim settled to zero closes."""
        claim = self.get_claim(claim_id)
        if claim.patient_id != patient_id:
            raise ClaimsError(ErrorCode.NOT_AUTHORIZED)
        if claim.status not in (ClaimStatus.PAID, ClaimStatus.ADJUDICATED):
            raise ClaimsError(ErrorCode.INVALID_STATE_TRANSITION)
        remaining = max((claim.patient_responsibility or 0) - payment_amount, 0)
        status = claim.status
        if status is ClaimStatus.PAID and remaining == 0:
            status = ClaimStatus.CLOSED
        self._claims[claim_id] = replace(
            claim, patient_responsibility=remaining, status=status
        )
        self._patient_payments[claim_id] = (payment_date, payment_amount)