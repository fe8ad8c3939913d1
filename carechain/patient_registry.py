"""Registry of patients, doctors, institutions and access-controlled medical records."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Hashable


class RegistryError(Exception):
    """Raised when a medical registry operation cannot be carried out."""


@dataclass(frozen=True)
class PatientData:
    """Stored information about a patient."""

    name: str
    dob: int
    metadata: str


@dataclass(frozen=True)
class DoctorData:
    """Stored information about a doctor."""

    name: str
    specialization: str
    certificate_hash: bytes
    verified: bool = False


@dataclass(frozen=True)
class MedicalRecord:
    """A record added to a patient's file by an authorized doctor."""

    doctor: Hashable
    record_hash: bytes
    description: str
    timestamp: int


class MedicalRegistry:
    """In-memory medical registry.

    ``clock`` supplies the timestamp stored with medical records. State changes
    that announce themselves append ``(topics, data)`` to ``events``.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or (lambda: int(time.time()))
        self._patients: dict[Hashable, PatientData] = {}
        self._doctors: dict[Hashable, DoctorData] = {}
        self._institutions: set[Hashable] = set()
        self._authorized: dict[Hashable, dict[Hashable, bool]] = {}
        self._records: dict[Hashable, list[MedicalRecord]] = {}
        self.events: list[tuple[tuple[Any, ...], str]] = []

    def register_patient(
        self, wallet: Hashable, name: str, dob: int, metadata: str
    ) -> None:
        """Register a patient; a wallet can register only once."""
        if wallet in self._patients:
            raise RegistryError("Patient already registered")
        self._patients[wallet] = PatientData(name, dob, metadata)
        self.events.append((("reg_pat", wallet), "success"))

    def update_patient(self, wallet: Hashable, metadata: str) -> None:
        """Replace a patient's metadata."""
        self._patients[wallet] = replace(self.get_patient(wallet), metadata=metadata)
        self.events.append((("upd_pat", wallet), "success"))

    def get_patient(self, wallet: Hashable) -> PatientData:
        """Return a registered patient's data."""
        try:
            return self._patients[wallet]
        except KeyError:
            raise RegistryError("Patient not found") from None

    def is_patient_registered(self, wallet: Hashable) -> bool:
        """Tell whether a wallet belongs to a registered patient."""
        return wallet in self._patients

    def register_doctor(
        self,
        wallet: Hashable,
        name: str,
        specialization: str,
        certificate_hash: bytes,
    ) -> None:
        """Register an unverified doctor."""
        if wallet in self._doctors:
            raise RegistryError("Doctor already registered")
        self._doctors[wallet] = DoctorData(name, specialization, bytes(certificate_hash))
        self.events.append((("reg_doc", wallet), "success"))

    def verify_doctor(self, wallet: Hashable, institution_wallet: Hashable) -> None:
        """Mark a doctor as verified by a registered institution."""
        if institution_wallet not in self._institutions:
            raise RegistryError("Unauthorized institution")
        self._doctors[wallet] = replace(self.get_doctor(wallet), verified=True)
        self.events.append((("ver_doc", wallet), "verified"))

    def get_doctor(self, wallet: Hashable) -> DoctorData:
        """Return a registered doctor's data."""
        try:
            return self._doctors[wallet]
        except KeyError:
            raise RegistryError("Doctor not found") from None

    def register_institution(self, institution_wallet: Hashable) -> None:
        """Register an institution allowed to verify doctors."""
        self._institutions.add(institution_wallet)

    def grant_access(self, patient: Hashable, doctor: Hashable) -> None:
        """Allow a doctor to add records to a patient's file."""
        self._authorized.setdefault(patient, {})[doctor] = True

    def revoke_access(self, patient: Hashable, doctor: Hashable) -> None:
        """Withdraw a doctor's access to a patient's file."""
        self._authorized.setdefault(patient, {}).pop(doctor, None)

    def get_authorized_doctors(self, patient: Hashable) -> list[Hashable]:
        """Return the doctors currently authorized by a patient."""
        return list(self._authorized.get(patient, {}))

    def add_medical_record(
        self,
        patient: Hashable,
        doctor: Hashable,
        record_hash: bytes,
        description: str,
    ) -> None:
        """Append a record to a patient's file; the doctor must be authorized."""
        if doctor not in self._authorized.get(patient, {}):
            raise RegistryError("Doctor not authorized")
        record = MedicalRecord(doctor, bytes(record_hash), description, self._clock())
        self._records.setdefault(patient, []).append(record)

    def get_medical_records(self, patient: Hashable) -> list[MedicalRecord]:
        """Return a patient's records in the order they were added."""
        return list(self._records.get(patient, []))