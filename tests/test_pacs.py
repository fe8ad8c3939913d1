import pytest

from carechain.pacs import (
    ComparisonCriteria,
    ErrorCode,
    ImagingFilters,
    PacsArchive,
    PacsError,
)

HASH = bytes([0xAB] * 32)
PATIENT = "patient-1"
PROVIDER = "provider-1"


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(0)


@pytest.fixture
def archive(clock):
    return PacsArchive(clock=clock)


def register_ct_chest(archive, patient=PATIENT, provider=PROVIDER, study_date=1_700_000_000):
    return archive.register_imaging_study(
        patient,
        provider,
        "1.2.840.10008.5.1.4.1.1.2",
        "CT",
        "Chest",
        study_date,
        "CT Chest w contrast",
        2,
        40,
        HASH,
    )


def test_register_study_increments_id(archive):
    assert register_ct_chest(archive) == 1
    assert register_ct_chest(archive) == 2


def test_register_study_stores_fields(archive, clock):
    clock.now = 1234
    sid = register_ct_chest(archive)
    study = archive.get_study(sid)
    assert study.patient_id == PATIENT
    assert study.modality == "CT"
    assert study.registered_at == 1234
    assert study.has_report is False


def test_register_study_empty_uid_fails(archive):
    with pytest.raises(PacsError) as exc:
        archive.register_imaging_study(
            PATIENT, PROVIDER, "", "CT", "Chest", 1_700_000_000, "desc", 1, 10, HASH
        )
    assert exc.value.code is ErrorCode.INVALID_INPUT


def test_register_study_empty_body_part_fails(archive):
    with pytest.raises(PacsError) as exc:
        archive.register_imaging_study(
            PATIENT, PROVIDER, "1.2.3", "CT", "", 1_700_000_000, "desc", 1, 10, HASH
        )
    assert exc.value.code is ErrorCode.INVALID_INPUT


def test_add_series_to_study_ok(archive):
    sid = register_ct_chest(archive)
    archive.add_series_to_study(sid, "1.2.3.4.5.1", 1, "Axial", 20, 1_700_000_100)
    assert archive.get_study(sid).series_count == 1
    assert archive.events[-1] == (("ser_add", sid), 1)


def test_add_series_nonexistent_study_fails(archive):
    with pytest.raises(PacsError) as exc:
        archive.add_series_to_study(99, "1.2.3", 1, "ax", 5, 0)
    assert exc.value.code is ErrorCode.NOT_FOUND


def test_add_series_empty_uid_fails(archive):
    sid = register_ct_chest(archive)
    with pytest.raises(PacsError) as exc:
        archive.add_series_to_study(sid, "", 1, "ax", 5, 0)
    assert exc.value.code is ErrorCode.INVALID_INPUT


def test_link_report_and_addendum_ok(archive):
    sid = register_ct_chest(archive)
    archive.link_imaging_report(sid, "rad", "final", HASH, False)
    assert archive.get_study(sid).critical_findings is False
    archive.link_imaging_report(sid, "rad", "addendum", HASH, True)
    study = archive.get_study(sid)
    assert study.has_report is True
    assert study.critical_findings is True


def test_duplicate_final_report_fails(archive):
    sid = register_ct_chest(archive)
    archive.link_imaging_report(sid, "rad", "final", HASH, False)
    with pytest.raises(PacsError) as exc:
        archive.link_imaging_report(sid, "rad", "final", HASH, False)
    assert exc.value.code is ErrorCode.REPORT_ALREADY_EXISTS


def test_critical_findings_stay_set_after_addendum(archive):
    sid = register_ct_chest(archive)
    archive.link_imaging_report(sid, "rad", "final", HASH, True)
    archive.link_imaging_report(sid, "rad", "addendum", HASH, False)
    assert archive.get_study(sid).critical_findings is True


def test_comparison_study_returns_prior_match(archive):
    prior = register_ct_chest(archive)
    current = register_ct_chest(archive)
    criteria = ComparisonCriteria(body_part="Chest", modality="CT", max_age_days=365)
    matches = archive.request_comparison_study(current, "rad", criteria)
    assert prior in matches
    assert current not in matches


def test_comparison_study_wrong_modality_no_match(archive):
    register_ct_chest(archive)
    current = register_ct_chest(archive)
    criteria = ComparisonCriteria(body_part="Chest", modality="MRI", max_age_days=365)
    assert archive.request_comparison_study(current, "rad", criteria) == []


def test_comparison_study_excludes_old_studies(archive, clock):
    register_ct_chest(archive, study_date=1_000)
    current = register_ct_chest(archive, study_date=1_000 + 400 * 86_400)
    clock.now = 1_000 + 400 * 86_400
    criteria = ComparisonCriteria(body_part="Chest", modality=None, max_age_days=365)
    assert archive.request_comparison_study(current, "rad", criteria) == []
    unlimited = ComparisonCriteria(body_part="Chest", max_age_days=0)
    assert archive.request_comparison_study(current, "rad", unlimited) == [1]


def test_comparison_missing_study_fails(archive):
    with pytest.raises(PacsError) as exc:
        archive.request_comparison_study(5, "rad", ComparisonCriteria(body_part="Chest"))
    assert exc.value.code is ErrorCode.NOT_FOUND


def test_grant_access_and_track_view(archive):
    sid = register_ct_chest(archive)
    archive.grant_imaging_access(sid, PATIENT, "viewer", "view_only", None)
    archive.track_study_views(sid, "viewer", 1_700_001_000, 30)
    assert archive.events[-1] == (("view_log", sid), ("viewer", 1_700_001_000))


def test_grant_by_other_patient_fails(archive):
    sid = register_ct_chest(archive)
    with pytest.raises(PacsError) as exc:
        archive.grant_imaging_access(sid, "someone-else", "viewer", "view_only", None)
    assert exc.value.code is ErrorCode.UNAUTHORIZED


def test_patient_and_provider_can_view_without_grant(archive):
    sid = register_ct_chest(archive)
    archive.track_study_views(sid, PATIENT, 1_700_001_100, 10)
    archive.track_study_views(sid, PROVIDER, 1_700_001_200, 5)
    view_events = [e for e in archive.events if e[0][0] == "view_log"]
    assert [e[1][0] for e in view_events] == [PATIENT, PROVIDER]


def test_unauthorized_viewer_fails(archive):
    sid = register_ct_chest(archive)
    with pytest.raises(PacsError) as exc:
        archive.track_study_views(sid, "stranger", 0, 0)
    assert exc.value.code is ErrorCode.UNAUTHORIZED


def test_expired_grant_fails(archive, clock):
    sid = register_ct_chest(archive)
    archive.grant_imaging_access(sid, PATIENT, "viewer", "view_only", 100)
    clock.now = 101
    with pytest.raises(PacsError) as exc:
        archive.track_study_views(sid, "viewer", 101, 5)
    assert exc.value.code is ErrorCode.ACCESS_EXPIRED


def test_create_imaging_cd_ok(archive):
    s1 = register_ct_chest(archive)
    s2 = register_ct_chest(archive)
    assert archive.create_imaging_cd([s1, s2], PATIENT, PROVIDER, "TOKEN-XYZ", 1_700_002_000) == 1
    assert archive.create_imaging_cd([s1], PATIENT, PROVIDER, "TOKEN-XYZ", 1_700_002_000) == 2


def test_create_imaging_cd_rejects_other_patient(archive):
    s1 = register_ct_chest(archive)
    s2 = register_ct_chest(archive, patient="patient-2")
    with pytest.raises(PacsError) as exc:
        archive.create_imaging_cd([s1, s2], PATIENT, PROVIDER, "TOKEN-XYZ", 0)
    assert exc.value.code is ErrorCode.UNAUTHORIZED


def test_create_imaging_cd_empty_fails(archive):
    with pytest.raises(PacsError) as exc:
        archive.create_imaging_cd([], PATIENT, PROVIDER, "TOKEN-XYZ", 0)
    assert exc.value.code is ErrorCode.INVALID_INPUT


def test_anonymize_study_returns_uid(archive):
    sid = register_ct_chest(archive)
    uid = archive.anonymize_study(sid, "researcher", "full", "cancer study")
    assert uid == "ANON-"


def test_anonymize_requires_purpose(archive):
    sid = register_ct_chest(archive)
    with pytest.raises(PacsError) as exc:
        archive.anonymize_study(sid, "researcher", "full", "")
    assert exc.value.code is ErrorCode.INVALID_INPUT


def test_quality_control_review_ok(archive):
    sid = register_ct_chest(archive)
    archive.quality_control_review(sid, "reviewer", 85, ["motion artifact"], False)
    assert archive.events[-1] == (("qc_done", sid), ("reviewer", 85, False))


def test_qc_score_above_100_fails(archive):
    sid = register_ct_chest(archive)
    with pytest.raises(PacsError) as exc:
        archive.quality_control_review(sid, "reviewer", 101, [], False)
    assert exc.value.code is ErrorCode.INVALID_INPUT


def test_search_studies_modality_filter(archive):
    register_ct_chest(archive)
    results = archive.search_imaging_studies(PATIENT, PATIENT, ImagingFilters(modality="CT"))
    assert len(results) == 1


def test_search_studies_wrong_modality_no_results(archive):
    register_ct_chest(archive)
    results = archive.search_imaging_studies(PATIENT, PATIENT, ImagingFilters(modality="MRI"))
    assert len(results) == 0


def test_search_studies_critical_findings_filter(archive):
    sid = register_ct_chest(archive)
    archive.link_imaging_report(sid, "rad", "final", HASH, True)
    results = archive.search_imaging_studies(
        PATIENT, PATIENT, ImagingFilters(has_critical_findings=True)
    )
    assert [s.study_id for s in results] == [sid]


def test_search_date_range(archive):
    register_ct_chest(archive, study_date=100)
    s2 = register_ct_chest(archive, study_date=200)
    results = archive.search_imaging_studies(
        PATIENT, PATIENT, ImagingFilters(start_date=150, end_date=250)
    )
    assert [s.study_id for s in results] == [s2]


def test_search_respects_grants(archive, clock):
    sid = register_ct_chest(archive)
    assert archive.search_imaging_studies(PATIENT, "viewer", ImagingFilters()) == []
    archive.grant_imaging_access(sid, PATIENT, "viewer", "view_only", 50)
    assert len(archive.search_imaging_studies(PATIENT, "viewer", ImagingFilters())) == 1
    clock.now = 51
    assert archive.search_imaging_studies(PATIENT, "viewer", ImagingFilters()) == []


def test_get_missing_study_fails(archive):
    with pytest.raises(PacsError) as exc:
        archive.get_study(42)
    assert exc.value.code is ErrorCode.NOT_FOUND