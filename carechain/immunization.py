"""Immunization registry: vaccine administrations, adverse events and dose series."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import IntEnum
from typing import Hashable

HASH_LENGTH = 32


class ErrorCode(IntEnum):
    """Numeric error codes reported by the immunization registry."""

    NOT_AUTHORIZED = 1
    RECORD_NOT_FOUND = 2
    INVALID_DOSE_NUMBER = 3


class ImmunizationError(Exception):
    """Raised when an immunization registry operation fails."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or code.name.replace("_", " ").lower())


@dataclass(frozen=True)
class VaccineRecord:
    """A single administered vaccine dose."""

    patient_id: Hashable
    provider_id: Hashable
    vaccine_name: str
    cvx_code: str
    lot_number: str
    manufacturer: str
    administration_date: int
    expiration_date: int
    dose_number: int
    route: str
    site: str


@dataclass(frozen=True)
class AdverseEvent:
    """A reported reaction following an immunization."""

    reporter: Hashable
    event_description: str
    severity: str
    onset_date: int


@dataclass(frozen=True)
class VaccineSeries:
    """A multi-dose vaccine schedule a patient is enrolled in."""

    series_name: str
    doses_required: int
    schedule_hash: bytes

    def __post_init__(self) -> None:
        if len(self.schedule_hash) != HASH_LENGTH:
            raise ValueError(f"schedule_hash must be {HASH_LENGTH} bytes")


class ImmunizationRegistry:
    """In-memory registry of immunizations per patient."""

    def __init__(self) -> None:
        self._counter = 0
        self._records: dict[int, VaccineRecord] = {}
        self._patient_records: defaultdict[Hashable, list[int]] = defaultdict(list)
        self._adverse_events: defaultdict[int, list[AdverseEvent]] = defaultdict(list)
        self._series: defaultdict[Hashable, list[VaccineSeries]] = defaultdict(list)

    def record_immunization(self, record: VaccineRecord) -> int:
        """Store a vaccine record and return its new identifier (starting at 1)."""
        self._counter += 1
        record_id = self._counter
        self._records[record_id] = record
        self._patient_records[record.patient_id].append(record_id)
        return record_id

    def record_adverse_event(
        self,
        immunization_id: int,
        reporter: Hashable,
        event_description: str,
        severity: str,
        onset_date: int,
    ) -> AdverseEvent:
        """Attach an adverse event to an existing immunization and return it."""
        if immunization_id not in self._records:
            raise ImmunizationError(ErrorCode.RECORD_NOT_FOUND)
        event = AdverseEvent(reporter, event_description, severity, onset_date)
        self._adverse_events[immunization_id].append(event)
        return event

    def get_immunization_history(
        self, patient_id: Hashable, requester: Hashable
    ) -> list[VaccineRecord]:
        """Return a patient's immunizations in the order they were recorded."""
        return [
            self._records[record_id]
            for record_id in self._patient_records.get(patient_id, [])
            if record_id in self._records
        ]

    def register_vaccine_series(
        self,
        patient_id: Hashable,
        series_name: str,
        doses_required: int,
        schedule_hash: bytes,
    ) -> None:
        """Enrol a patient in a vaccine series."""
        series = VaccineSeries(series_name, doses_required, bytes(schedule_hash))
        self._series[patient_id].append(series)

    def check_due_vaccines(
        self, patient_id: Hashable, current_date: int
    ) -> list[VaccineSeries]:
        """Return the series for which fewer doses were given than required.

        A dose counts towards a series when the vaccine name equals the series name.
        """
        history = self.get_immunization_history(patient_id, patient_id)
        due = []
        for series in self._series.get(patient_id, []):
            administered = sum(
                1 for record in history if record.vaccine_name == series.series_name
            )
            if administered < series.doses_required:
                due.append(series)
        return due