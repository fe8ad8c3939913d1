"""Laboratory orders: ordering, lab assignment, result submission and critical alerts."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Hashable, Sequence

HASH_LENGTH = 32


class ErrorCode(IntEnum):
    """Numeric error codes reported by lab management."""

    NOT_FOUND = 1
    UNAUTHORIZED = 2
    QC_FIELD_FAILED = 4


class LabError(Exception):
    """Raised when a lab management operation fails."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or code.name.replace("_", " ").lower())


@dataclass(frozen=True)
class LabTestResult:
    """One analyte result reported by a laboratory."""

    test_code: str
    test_name: str
    value: str
    unit: str
    reference_range: str
    is_abnormal: bool
    abnormal_flag: str | None = None


@dataclass(frozen=True)
class LabOrder:
    """A lab order and its processing state."""

    provider_id: Hashable
    patient_id: Hashable
    test_panel: tuple[str, ...]
    status: str = "Ordered"
    lab_id: Hashable | None = None
    results_hash: bytes | None = None
    quality_control_passed: bool = False


@dataclass(frozen=True)
class OrderRequest:
    """The details a provider supplies when ordering tests."""

    test_panel: Sequence[str]
    priority: str
    clinical_info_hash: bytes
    fasting_required: bool
    collection_date: int | None = None

    def __post_init__(self) -> None:
        if len(self.clinical_info_hash) != HASH_LENGTH:
            raise ValueError(f"clinical_info_hash must be {HASH_LENGTH} bytes")


class LabManagement:
    """In-memory lab order book.

    Published notifications are appended to ``events`` as ``(topics, data)``.
    """

    def __init__(self) -> None:
        self._next_id = 0
        self._orders: dict[int, LabOrder] = {}
        self.events: list[tuple[tuple[Any, ...], Any]] = []

    def _require(self, order_id: int, message: str) -> LabOrder:
        try:
            return self._orders[order_id]
        except KeyError:
            raise LabError(ErrorCode.NOT_FOUND, message) from None

    def order_lab_test(
        self, provider_id: Hashable, patient_id: Hashable, req: OrderRequest
    ) -> int:
        """Create an order and return its identifier (starting at 0)."""
        order_id = self._next_id
        self._orders[order_id] = LabOrder(
            provider_id=provider_id,
            patient_id=patient_id,
            test_panel=tuple(req.test_panel),
        )
        self._next_id += 1
        return order_id

    def assign_lab(self, order_id: int, lab_id: Hashable, eta: int) -> None:
        """Assign a laboratory to an existing order."""
        order = self._require(order_id, "Order not found")
        self._orders[order_id] = replace(order, lab_id=lab_id, status="Assigned")

    def submit_results(
        self,
        order_id: int,
        lab_id: Hashable,
        results_hash: bytes,
        results_summary: Sequence[LabTestResult],
        qc_passed: bool,
    ) -> None:
        """Complete an order with results; results failing quality control are refused."""
        order = self._require(order_id, "No Order")
        if not qc_passed:
            raise LabError(ErrorCode.QC_FIELD_FAILED)
        if len(results_hash) != HASH_LENGTH:
            raise ValueError(f"results_hash must be {HASH_LENGTH} bytes")
        order = replace(
            order,
            results_hash=bytes(results_hash),
            quality_control_passed=True,
            status="Completed",
        )
        self.events.append(
            (("LAB", "RESULT", order.patient_id), list(results_summary))
        )
        self._orders[order_id] = order

    def flag_critical_value(
        self, order_id: int, lab_id: Hashable, test_code: str, val: str
    ) -> None:
        """Publish a critical-value alert for an order."""
        self.events.append((("CRITICAL", order_id), (test_code, val)))

    def get_order(self, order_id: int) -> LabOrder:
        """Return the stored order."""
        return self._require(order_id, "Order not found")