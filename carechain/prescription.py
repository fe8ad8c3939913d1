"""Prescriptions and medication safety checks: interactions, allergies, contraindications."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Callable, Hashable, Iterable, Sequence

HASH_LENGTH = 32
SEVERITIES = frozenset({"minor", "moderate", "major", "contraindicated"})
DOCUMENTED_SEVERITIES = frozenset({"major", "contraindicated"})
ALLERGY_EFFECTS = "Potential hypersensitivity or allergic reaction."
ALLERGY_MANAGEMENT = "Avoid medication and prescribe a non-cross-reactive alternative."


class ErrorCode(IntEnum):
    """Numeric error codes reported by prescription management."""

    EXPIRED = 1
    UNAUTHORIZED = 2
    INVALID_PRESCRIPTION = 3
    ALREADY_EXISTS = 4
    NOT_FOUND = 5
    INVALID_SEVERITY = 6
    INTERACTION_NOT_FOUND = 7
    MISSING_OVERRIDE_REASON = 8


class PrescriptionError(Exception):
    """Raised when a prescription operation fails."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or code.name.replace("_", " ").lower())


def _check_hash(value: bytes, name: str) -> bytes:
    if len(value) != HASH_LENGTH:
        raise ValueError(f"{name} must be {HASH_LENGTH} bytes")
    return bytes(value)


@dataclass(frozen=True)
class Medication:
    """A registered medication identified by its NDC code."""

    ndc_code: str
    generic_name: str
    brand_names: tuple[str, ...]
    drug_class: str
    interaction_profile_hash: bytes


@dataclass(frozen=True)
class Interaction:
    """A known interaction between two medications."""

    id: int
    drug1_ndc: str
    drug2_ndc: str
    severity: str
    interaction_type: str
    clinical_effects: str
    management_strategy: str


@dataclass(frozen=True)
class InteractionWarning:
    """A warning produced by a safety check."""

    drug1: str
    drug2: str
    severity: str
    interaction_type: str
    clinical_effects: str
    management: str
    documentation_required: bool


@dataclass(frozen=True)
class InteractionOverride:
    """A provider's documented decision to proceed despite an interaction."""

    provider_id: Hashable
    patient_id: Hashable
    medication: str
    interaction_id: int
    override_reason: str
    timestamp: int


class PrescriptionStatus(Enum):
    """Lifecycle stage of a prescription."""

    ACTIVE = "Active"
    DISPENSED = "Dispensed"
    EXPIRED = "Expired"
    TRANSFERRED = "Transferred"


@dataclass(frozen=True)
class Prescription:
    """A stored prescription."""

    provider_id: Hashable
    patient_id: Hashable
    medication_name: str
    quantity: int
    refills_remaining: int
    is_controlled: bool
    valid_until: int
    current_pharmacy: Hashable | None = None
    status: PrescriptionStatus = PrescriptionStatus.ACTIVE


@dataclass(frozen=True)
class IssueRequest:
    """The details a provider supplies when issuing a prescription."""

    medication_name: str
    ndc_code: str
    dosage: str
    quantity: int
    days_supply: int
    refills_allowed: int
    instructions_hash: bytes
    is_controlled: bool
    valid_until: int
    schedule: int | None = None
    substitution_allowed: bool = True

    def __post_init__(self) -> None:
        _check_hash(self.instructions_hash, "instructions_hash")


class PrescriptionManager:
    """In-memory prescription and medication-safety store.

    ``clock`` supplies the current time used for expiry checks and overrides.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or (lambda: int(time.time()))
        self._next_id = 0
        self._prescriptions: dict[int, Prescription] = {}
        self._medications: dict[str, Medication] = {}
        self._interaction_counter = 0
        self._interactions: dict[int, Interaction] = {}
        self._pairs: dict[tuple[str, str], int] = {}
        self._allergies: dict[Hashable, list[str]] = {}
        self._conditions: dict[Hashable, list[str]] = {}
        self._contraindications: dict[str, list[str]] = {}
        self._overrides: dict[tuple[int, Hashable], InteractionOverride] = {}

    def _require_medication(self, ndc_code: str) -> Medication:
        try:
            return self._medications[ndc_code]
        except KeyError:
            raise PrescriptionError(ErrorCode.NOT_FOUND, "Medication not found") from None

    def issue_prescription(
        self, provider_id: Hashable, patient_id: Hashable, req: IssueRequest
    ) -> int:
        """Issue a prescription and return its identifier (starting at 0)."""
        prescription_id = self._next_id
        self._prescriptions[prescription_id] = Prescription(
            provider_id=provider_id,
            patient_id=patient_id,
            medication_name=req.medication_name,
            quantity=req.quantity,
            refills_remaining=req.refills_allowed,
            is_controlled=req.is_controlled,
            valid_until=req.valid_until,
        )
        self._next_id += 1
        return prescription_id

    def get_prescription(self, prescription_id: int) -> Prescription:
        """Return a stored prescription."""
        try:
            return self._prescriptions[prescription_id]
        except KeyError:
            raise PrescriptionError(
                ErrorCode.NOT_FOUND, "Prescription not found"
            ) from None

    def dispense_prescription(
        self, prescription_id: int, pharmacy_id: Hashable, quantity: int, lot: str
    ) -> None:
        """Dispense a prescription that has not passed its validity date."""
        prescription = self.get_prescription(prescription_id)
        if self._clock() > prescription.valid_until:
            raise PrescriptionError(ErrorCode.EXPIRED)
        self._prescriptions[prescription_id] = replace(
            prescription,
            status=PrescriptionStatus.DISPENSED,
            current_pharmacy=pharmacy_id,
        )

    def transfer_prescription(
        self, prescription_id: int, from_pharmacy: Hashable, to_pharmacy: Hashable
    ) -> None:
        """Move a prescription to another pharmacy."""
        prescription = self.get_prescription(prescription_id)
        self._prescriptions[prescription_id] = replace(
            prescription,
            status=PrescriptionStatus.TRANSFERRED,
            current_pharmacy=to_pharmacy,
        )

    def register_medication(
        self,
        ndc_code: str,
        generic_name: str,
        brand_names: Iterable[str],
        drug_class: str,
        interaction_profile_hash: bytes,
    ) -> Medication:
        """Register a medication; each NDC code may be registered once."""
        if ndc_code in self._medications:
            raise PrescriptionError(ErrorCode.ALREADY_EXISTS)
        medication = Medication(
            ndc_code=ndc_code,
            generic_name=generic_name,
            brand_names=tuple(brand_names),
            drug_class=drug_class,
            interaction_profile_hash=_check_hash(
                interaction_profile_hash, "interaction_profile_hash"
            ),
        )
        self._medications[ndc_code] = medication
        return medication

    def add_interaction(
        self,
        drug1_ndc: str,
        drug2_ndc: str,
        severity: str,
        interaction_type: str,
        clinical_effects: str,
        management_strategy: str,
    ) -> int:
        """Record an interaction between two registered drugs; return its id (from 1)."""
        if severity not in SEVERITIES:
            raise PrescriptionError(ErrorCode.INVALID_SEVERITY)
        if drug1_ndc not in self._medications or drug2_ndc not in self._medications:
            raise PrescriptionError(ErrorCode.NOT_FOUND)
        if (drug1_ndc, drug2_ndc) in self._pairs:
            raise PrescriptionError(ErrorCode.ALREADY_EXISTS)
        self._interaction_counter += 1
        interaction_id = self._interaction_counter
        self._interactions[interaction_id] = Interaction(
            id=interaction_id,
            drug1_ndc=drug1_ndc,
            drug2_ndc=drug2_ndc,
            severity=severity,
            interaction_type=interaction_type,
            clinical_effects=clinical_effects,
            management_strategy=management_strategy,
        )
        self._pairs[(drug1_ndc, drug2_ndc)] = interaction_id
        self._pairs[(drug2_ndc, drug1_ndc)] = interaction_id
        return interaction_id

    def check_interactions(
        self,
        patient_id: Hashable,
        new_medication: str,
        current_medications: Iterable[str],
    ) -> list[InteractionWarning]:
        """Return a warning for each current medication that interacts with the new one."""
        self._require_medication(new_medication)
        warnings = []
        for current in current_medications:
            interaction_id = self._pairs.get((new_medication, current))
            if interaction_id is None:
                continue
            interaction = self._interactions.get(interaction_id)
            if interaction is None:
                raise PrescriptionError(ErrorCode.INTERACTION_NOT_FOUND)
            warnings.append(
                InteractionWarning(
                    drug1=interaction.drug1_ndc,
                    drug2=interaction.drug2_ndc,
                    severity=interaction.severity,
                    interaction_type=interaction.interaction_type,
                    clinical_effects=interaction.clinical_effects,
                    management=interaction.management_strategy,
                    documentation_required=interaction.severity in DOCUMENTED_SEVERITIES,
                )
            )
        return warnings

    def check_allergy_interaction(
        self, patient_id: Hashable, medication: str
    ) -> list[InteractionWarning]:
        """Warn for each patient allergy matching the drug's generic, NDC or brand name."""
        med = self._require_medication(medication)
        names = {med.generic_name, med.ndc_code, *med.brand_names}
        return [
            InteractionWarning(
                drug1=med.ndc_code,
                drug2=allergy,
                severity="contraindicated",
                interaction_type="allergy",
                clinical_effects=ALLERGY_EFFECTS,
                management=ALLERGY_MANAGEMENT,
                documentation_required=True,
            )
            for allergy in self._allergies.get(patient_id, [])
            if allergy in names
        ]

    def get_contraindications(
        self, patient_id: Hashable, medication: str, conditions: Sequence[str]
    ) -> list[str]:
        """Return the drug's contraindications present in the given or stored conditions."""
        self._require_medication(medication)
        all_conditions = list(conditions)
        for condition in self._conditions.get(patient_id, []):
            if condition not in all_conditions:
                all_conditions.append(condition)
        return [
            contraindication
            for contraindication in self._contraindications.get(medication, [])
            if contraindication in all_conditions
        ]

    def override_interaction_warning(
        self,
        provider_id: Hashable,
        patient_id: Hashable,
        medication: str,
        interaction_id: int,
        override_reason: str,
    ) -> InteractionOverride:
        """Record a justified override of an interaction warning for a patient."""
        if not override_reason:
            raise PrescriptionError(ErrorCode.MISSING_OVERRIDE_REASON)
        if interaction_id not in self._interactions:
            raise PrescriptionError(ErrorCode.INTERACTION_NOT_FOUND)
        record = InteractionOverride(
            provider_id=provider_id,
            patient_id=patient_id,
            medication=medication,
            interaction_id=interaction_id,
            override_reason=override_reason,
            timestamp=self._clock(),
        )
        self._overrides[(interaction_id, patient_id)] = record
        return record

    def set_patient_allergies(
        self, patient_id: Hashable, allergies: Iterable[str]
    ) -> None:
        """Replace a patient's recorded allergies."""
        self._allergies[patient_id] = list(allergies)

    def set_patient_conditions(
        self, patient_id: Hashable, conditions: Iterable[str]
    ) -> None:
        """Replace a patient's recorded conditions."""
        self._conditions[patient_id] = list(conditions)

    def set_medication_contraindications(
        self, medication: str, contraindications: Iterable[str]
    ) -> None:
        """Replace a registered medication's contraindications."""
        self._require_medication(medication)
        self._contraindications[medication] = list(contraindications)