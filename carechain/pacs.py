"""Imaging archive: DICOM studies, series, reports, access grants, CDs, QC and view audit."""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Callable, Hashable, Sequence

HASH_LENGTH = 32
SECONDS_PER_DAY = 86_400
MAX_QUALITY_SCORE = 100
ADDENDUM = "addendum"
ANONYMIZED_PREFIX = "ANON-"


class ErrorCode(IntEnum):
    """Numeric error codes reported by the imaging archive."""

    NOT_FOUND = 1
    UNAUTHORIZED = 2
    INVALID_INPUT = 3
    ALREADY_EXISTS = 4
    ACCESS_EXPIRED = 5
    REPORT_ALREADY_EXISTS = 6


class PacsError(Exception):
    """Raised when an imaging archive operation fails."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or code.name.replace("_", " ").lower())


def _check_hash(value: bytes, name: str) -> bytes:
    if len(value) != HASH_LENGTH:
        raise ValueError(f"{name} must be {HASH_LENGTH} bytes")
    return bytes(value)


@dataclass(frozen=True)
class ImagingStudy:
    """A registered imaging study."""

    study_id: int
    patient_id: Hashable
    ordering_provider: Hashable
    study_uid: str
    modality: str
    body_part: str
    study_date: int
    study_description: str
    series_count: int
    image_count: int
    storage_location_hash: bytes
    has_report: bool = False
    critical_findings: bool = False
    registered_at: int = 0


@dataclass(frozen=True)
class SeriesInfo:
    """A DICOM series belonging to a study."""

    series_uid: str
    series_number: int
    series_description: str
    image_count: int
    acquisition_date: int


@dataclass(frozen=True)
class ImagingReport:
    """A radiology report linked to a study."""

    study_id: int
    radiologist_id: Hashable
    report_type: str
    report_hash: bytes
    critical_findings: bool
    reported_at: int


@dataclass(frozen=True)
class AccessGrant:
    """Permission for a viewer to see a study, optionally until a given time."""

    viewer_id: Hashable
    access_type: str
    granted_at: int
    expires_at: int | None = None


@dataclass(frozen=True)
class ViewRecord:
    """One audited view of a study."""

    viewer_id: Hashable
    view_timestamp: int
    view_duration: int


@dataclass(frozen=True)
class QcReview:
    """A quality-control assessment of a study."""

    study_id: int
    reviewer_id: Hashable
    quality_score: int
    technical_issues: tuple[str, ...]
    repeat_required: bool
    reviewed_at: int


@dataclass(frozen=True)
class CdRecord:
    """A portable media bundle of several studies."""

    cd_id: int
    study_ids: tuple[int, ...]
    patient_id: Hashable
    requesting_provider: Hashable
    cd_token: str
    created_at: int


@dataclass(frozen=True)
class ComparisonCriteria:
    """Criteria prior studies must meet to be offered for comparison.

    A ``max_age_days`` of zero means no age limit.
    """

    body_part: str
    modality: str | None = None
    max_age_days: int = 0
    same_side: bool = False


@dataclass(frozen=True)
class ImagingFilters:
    """Optional filters for a study search; ``None`` leaves a field unfiltered."""

    modality: str | None = None
    body_part: str | None = None
    start_date: int | None = None
    end_date: int | None = None
    has_critical_findings: bool | None = None


class PacsArchive:
    """In-memory imaging archive.

    ``clock`` supplies the current time. Published notifications are appended
    to ``events`` as ``(topics, data)``.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or (lambda: int(time.time()))
        self._study_counter = 0
        self._cd_counter = 0
        self._studies: dict[int, ImagingStudy] = {}
        self._series: defaultdict[int, list[SeriesInfo]] = defaultdict(list)
        self._reports: dict[int, ImagingReport] = {}
        self._access: defaultdict[int, list[AccessGrant]] = defaultdict(list)
        self._patient_studies: defaultdict[Hashable, list[int]] = defaultdict(list)
        self._view_log: defaultdict[int, list[ViewRecord]] = defaultdict(list)
        self._qc_reviews: dict[int, QcReview] = {}
        self._anonymized: dict[int, str] = {}
        self._cds: dict[int, CdRecord] = {}
        self.events: list[tuple[tuple[Any, ...], Any]] = []

    def get_study(self, study_id: int) -> ImagingStudy:
        """Return a stored study."""
        try:
            return self._studies[study_id]
        except KeyError:
            raise PacsError(ErrorCode.NOT_FOUND) from None

    def register_imaging_study(
        self,
        patient_id: Hashable,
        ordering_provider: Hashable,
        study_uid: str,
        modality: str,
        body_part: str,
        study_date: int,
        study_description: str,
        series_count: int,
        image_count: int,
        storage_location_hash: bytes,
    ) -> int:
        """Register a study and return its identifier (starting at 1)."""
        if not study_uid or not body_part:
            raise PacsError(ErrorCode.INVALID_INPUT)
        location = _check_hash(storage_location_hash, "storage_location_hash")
        self._study_counter += 1
        study_id = self._study_counter
        self._studies[study_id] = ImagingStudy(
            study_id=study_id,
            patient_id=patient_id,
            ordering_provider=ordering_provider,
            study_uid=study_uid,
            modality=modality,
            body_part=body_part,
            study_date=study_date,
            study_description=study_description,
            series_count=series_count,
            image_count=image_count,
            storage_location_hash=location,
            registered_at=self._clock(),
        )
        self._patient_studies[patient_id].append(study_id)
        self.events.append((("study_reg", study_id), (patient_id, ordering_provider)))
        return study_id

    def add_series_to_study(
        self,
        study_id: int,
        series_uid: str,
        series_number: int,
        series_description: str,
        image_count: int,
        acquisition_date: int,
    ) -> None:
        """Append a series; the study's series count becomes the number of added series."""
        study = self.get_study(study_id)
        if not series_uid:
            raise PacsError(ErrorCode.INVALID_INPUT)
        series = self._series[study_id]
        series.append(
            SeriesInfo(
                series_uid,
                series_number,
                series_description,
                image_count,
                acquisition_date,
            )
        )
        self._studies[study_id] = replace(study, series_count=len(series))
        self.events.append((("ser_add", study_id), series_number))

    def link_imaging_report(
        self,
        study_id: int,
        radiologist_id: Hashable,
        report_type: str,
        report_hash: bytes,
        critical_findings: bool,
    ) -> None:
        """Link a report; once a study has one, only addenda may follow."""
        study = self.get_study(study_id)
        if study.has_report and report_type != ADDENDUM:
            raise PacsError(ErrorCode.REPORT_ALREADY_EXISTS)
        self._reports[study_id] = ImagingReport(
            study_id=study_id,
            radiologist_id=radiologist_id,
            report_type=report_type,
            report_hash=_check_hash(report_hash, "report_hash"),
            critical_findings=critical_findings,
            reported_at=self._clock(),
        )
        self._studies[study_id] = replace(
            study,
            has_report=True,
            critical_findings=study.critical_findings or critical_findings,
        )
        self.events.append(
            (("rpt_link", study_id), (radiologist_id, critical_findings))
        )

    def request_comparison_study(
        self,
        current_study_id: int,
        radiologist_id: Hashable,
        comparison_criteria: ComparisonCriteria,
    ) -> list[int]:
        """Return the patient's other studies that match the comparison criteria."""
        current = self.get_study(current_study_id)
        now = self._clock()
        max_age = comparison_criteria.max_age_days * SECONDS_PER_DAY
        matches = []
        for study_id in self._patient_studies.get(current.patient_id, []):
            if study_id == current_study_id:
                continue
            study = self._studies.get(study_id)
            if study is None:
                continue
            if (
                comparison_criteria.modality is not None
                and study.modality != comparison_criteria.modality
            ):
                continue
            if study.body_part != comparison_criteria.body_part:
                continue
            if max_age > 0 and now > study.study_date and now - study.study_date > max_age:
                continue
            matches.append(study_id)
        self.events.append((("cmp_req", current_study_id), radiologist_id))
        return matches

    def grant_imaging_access(
        self,
        study_id: int,
        patient_id: Hashable,
        viewer_id: Hashable,
        access_type: str,
        expires_at: int | None,
    ) -> None:
        """Let the study's patient grant a viewer access."""
        study = self.get_study(study_id)
        if study.patient_id != patient_id:
            raise PacsError(ErrorCode.UNAUTHORIZED)
        self._access[study_id].append(
            AccessGrant(viewer_id, access_type, self._clock(), expires_at)
        )
        self.events.append((("acc_grant", study_id), (patient_id, viewer_id)))

    def create_imaging_cd(
        self,
        study_ids: Sequence[int],
        patient_id: Hashable,
        requesting_provider: Hashable,
        cd_token: str,
        created_at: int,
    ) -> int:
        """Bundle studies of one patient into a CD record and return its id (starting at 1)."""
        if not study_ids or not cd_token:
            raise PacsError(ErrorCode.INVALID_INPUT)
        for study_id in study_ids:
            if self.get_study(study_id).patient_id != patient_id:
                raise PacsError(ErrorCode.UNAUTHORIZED)
        self._cd_counter += 1
        cd_id = self._cd_counter
        self._cds[cd_id] = CdRecord(
            cd_id=cd_id,
            study_ids=tuple(study_ids),
            patient_id=patient_id,
            requesting_provider=requesting_provider,
            cd_token=cd_token,
            created_at=created_at,
        )
        self.events.append((("cd_create", cd_id), (patient_id, requesting_provider)))
        return cd_id

    def anonymize_study(
        self,
        study_id: int,
        requesting_researcher: Hashable,
        anonymization_level: str,
        purpose: str,
    ) -> str:
        """Record an anonymization request and return the anonymized UID."""
        self.get_study(study_id)
        if not purpose:
            raise PacsError(ErrorCode.INVALID_INPUT)
        anon_uid = ANONYMIZED_PREFIX
        self._anonymized[study_id] = anon_uid
        self.events.append(
            (
                ("anon", study_id),
                (requesting_researcher, anonymization_level, purpose),
            )
        )
        return anon_uid

    def quality_control_review(
        self,
        study_id: int,
        reviewer_id: Hashable,
        quality_score: int,
        technical_issues: Sequence[str],
        repeat_required: bool,
    ) -> None:
        """Record a QC review; the score must not exceed 100."""
        self.get_study(study_id)
        if quality_score > MAX_QUALITY_SCORE:
            raise PacsError(ErrorCode.INVALID_INPUT)
        self._qc_reviews[study_id] = QcReview(
            study_id=study_id,
            reviewer_id=reviewer_id,
            quality_score=quality_score,
            technical_issues=tuple(technical_issues),
            repeat_required=repeat_required,
            reviewed_at=self._clock(),
        )
        self.events.append(
            (("qc_done", study_id), (reviewer_id, quality_score, repeat_required))
        )

    def track_study_views(
        self,
        study_id: int,
        viewer_id: Hashable,
        view_timestamp: int,
        view_duration: int,
    ) -> None:
        """Audit a view; viewers other than patient and provider need a live grant."""
        study = self.get_study(study_id)
        if viewer_id not in (study.patient_id, study.ordering_provider):
            grant = next(
                (g for g in self._access.get(study_id, []) if g.viewer_id == viewer_id),
                None,
            )
            if grant is None:
                raise PacsError(ErrorCode.UNAUTHORIZED)
            if grant.expires_at is not None and self._clock() > grant.expires_at:
                raise PacsError(ErrorCode.ACCESS_EXPIRED)
        self._view_log[study_id].append(
            ViewRecord(viewer_id, view_timestamp, view_duration)
        )
        self.events.append((("view_log", study_id), (viewer_id, view_timestamp)))

    def _can_view(self, study: ImagingStudy, requester: Hashable, now: int) -> bool:
        if requester in (study.patient_id, study.ordering_provider):
            return True
        for grant in self._access.get(study.study_id, []):
            if grant.viewer_id == requester:
                return grant.expires_at is None or now <= grant.expires_at
        return False

    @staticmethod
    def _passes(study: ImagingStudy, filters: ImagingFilters) -> bool:
        if filters.modality is not None and study.modality != filters.modality:
            return False
        if filters.body_part is not None and study.body_part != filters.body_part:
            return False
        if filters.start_date is not None and study.study_date < filters.start_date:
            return False
        if filters.end_date is not None and study.study_date > filters.end_date:
            return False
        if (
            filters.has_critical_findings is not None
            and study.critical_findings != filters.has_critical_findings
        ):
            return False
        return True

    def search_imaging_studies(
        self, patient_id: Hashable, requester: Hashable, filters: ImagingFilters
    ) -> list[ImagingStudy]:
        """Return the patient's studies visible to the requester that pass the filters."""
        now = self._clock()
        studies = (
            self._studies[study_id]
            for study_id in self._patient_studies.get(patient_id, [])
            if study_id in self._studies
        )
        return [
            study
            for study in studies
            if self._can_view(study, requester, now) and self._passes(study, filters)
        ]