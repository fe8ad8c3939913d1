"""Patient vital signs: readings, monitoring parameters, devices, alerts and statistics."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import IntEnum
from typing import Hashable, Iterable

# Vital type names accepted by VitalSigns.value_of, mapped to their fields.
_VITAL_FIELDS = {
    "heart_rate": "heart_rate",
    "bp_systolic": "blood_pressure_systolic",
    "bp_diastolic": "blood_pressure_diastolic",
    "temperature": "temperature",
    "respiratory": "respiratory_rate",
    "oxygen_sat": "oxygen_saturation",
    "blood_glucose": "blood_glucose",
    "weight": "weight",
}


class ErrorCode(IntEnum):
    """Numeric error codes reported by the vitals store."""

    UNAUTHORIZED = 1
    NOT_FOUND = 2
    INVALID_PARAMETER = 3


class VitalsError(Exception):
    """Raised when a vitals operation fails."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or code.name.replace("_", " ").lower())


@dataclass(frozen=True)
class VitalSigns:
    """A set of vital measurements; any of them may be missing."""

    blood_pressure_systolic: int | None = None
    blood_pressure_diastolic: int | None = None
    heart_rate: int | None = None
    temperature: int | None = None
    respiratory_rate: int | None = None
    oxygen_saturation: int | None = None
    blood_glucose: int | None = None
    weight: int | None = None

    def value_of(self, vital_type: str) -> int | None:
        """Return the measurement named by ``vital_type``, or None if absent or unknown."""
        field_name = _VITAL_FIELDS.get(vital_type)
        return None if field_name is None else getattr(self, field_name)


@dataclass(frozen=True)
class AlertThresholds:
    """Levels at which a vital should raise an alert."""

    critical_low: int | None = None
    low: int | None = None
    high: int | None = None
    critical_high: int | None = None


@dataclass(frozen=True)
class ValueRange:
    """An inclusive target range for a vital."""

    min: int
    max: int


@dataclass(frozen=True)
class VitalStatistics:
    """Summary of one vital over a period; all zero when no values were found."""

    min_value: int
    max_value: int
    average_value: int
    count: int


@dataclass(frozen=True)
class MonitoringParameters:
    """How a provider wants a patient's vital monitored."""

    provider_id: Hashable
    target_range: ValueRange
    alert_thresholds: AlertThresholds
    monitoring_frequency: int


@dataclass(frozen=True)
class DeviceRegistration:
    """A monitoring device registered to a patient."""

    device_type: str
    serial_number: str
    calibration_date: int


@dataclass(frozen=True)
class VitalAlert:
    """An alert raised for a vital."""

    value: str
    severity: str
    alert_time: int


@dataclass(frozen=True)
class VitalReading:
    """Vital signs measured at a point in time and who recorded them."""

    measurement_time: int
    vitals: VitalSigns
    recorder: Hashable


@dataclass(frozen=True)
class DeviceReading:
    """Vital signs reported by a device at a point in time."""

    reading_time: int
    values: VitalSigns


class PatientVitals:
    """In-memory store of patients' vital signs."""

    def __init__(self) -> None:
        self._history: defaultdict[Hashable, list[VitalReading]] = defaultdict(list)
        self._params: dict[tuple[Hashable, str], MonitoringParameters] = {}
        self._devices: dict[tuple[Hashable, str], DeviceRegistration] = {}
        self._alerts: defaultdict[tuple[Hashable, str], list[VitalAlert]] = defaultdict(
            list
        )

    def record_vital_signs(
        self,
        patient_id: Hashable,
        recorder: Hashable,
        measurement_time: int,
        vitals: VitalSigns,
    ) -> int:
        """Append a reading and return the patient's number of readings."""
        history = self._history[patient_id]
        history.append(VitalReading(measurement_time, vitals, recorder))
        return len(history)

    def set_monitoring_parameters(
        self,
        patient_id: Hashable,
        provider_id: Hashable,
        vital_type: str,
        target_range: ValueRange,
        alert_thresholds: AlertThresholds,
        monitoring_frequency: int,
    ) -> MonitoringParameters:
        """Store (replacing any earlier) monitoring parameters for a vital."""
        params = MonitoringParameters(
            provider_id, target_range, alert_thresholds, monitoring_frequency
        )
        self._params[(patient_id, vital_type)] = params
        return params

    def register_monitoring_device(
        self,
        patient_id: Hashable,
        device_id: str,
        device_type: str,
        serial_number: str,
        calibration_date: int,
    ) -> DeviceRegistration:
        """Register a device for a patient."""
        registration = DeviceRegistration(device_type, serial_number, calibration_date)
        self._devices[(patient_id, device_id)] = registration
        return registration

    def submit_device_reading(
        self,
        device_id: str,
        patient_id: Hashable,
        reading_time: int,
        readings: Iterable[DeviceReading],
    ) -> None:
        """Add a registered device's readings to the patient's history."""
        if (patient_id, device_id) not in self._devices:
            raise VitalsError(ErrorCode.NOT_FOUND, "device not registered")
        self._history[patient_id].extend(
            VitalReading(reading.reading_time, reading.values, patient_id)
            for reading in readings
        )

    def trigger_vital_alert(
        self,
        patient_id: Hashable,
        vital_type: str,
        value: str,
        severity: str,
        alert_time: int,
    ) -> VitalAlert:
        """Record an alert for a patient's vital and return it."""
        alert = VitalAlert(value, severity, alert_time)
        self._alerts[(patient_id, vital_type)].append(alert)
        return alert

    def get_vital_trends(
        self,
        patient_id: Hashable,
        vital_type: str,
        start_date: int,
        end_date: int,
    ) -> list[VitalReading]:
        """Return readings measured within [start_date, end_date], in recorded order."""
        return [
            reading
            for reading in self._history.get(patient_id, [])
            if start_date <= reading.measurement_time <= end_date
        ]

    def calculate_vital_statistics(
        self, patient_id: Hashable, vital_type: str, period: int
    ) -> VitalStatistics:
        """Summarize a vital over readings measured at or after ``period``."""
        values = [
            value
            for reading in self._history.get(patient_id, [])
            if reading.measurement_time >= period
            and (value := reading.vitals.value_of(vital_type)) is not None
        ]
        if not values:
            return VitalStatistics(0, 0, 0, 0)
        return VitalStatistics(
            min_value=min(values),
            max_value=max(values),
            average_value=sum(values) // len(values),
            count=len(values),
        )