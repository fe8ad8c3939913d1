import pytest

from carechain.lab import (
    ErrorCode,
    LabError,
    LabManagement,
    LabTestResult,
    OrderRequest,
)


@pytest.fixture
def lab_book():
    return LabManagement()


def _request(code="2345-7", priority="STAT", fasting=True, collection=0):
    return OrderRequest(
        test_panel=[code],
        priority=priority,
        clinical_info_hash=bytes([1] * 32),
        fasting_required=fasting,
        collection_date=collection,
    )


def test_happy_path_lifecycle(lab_book):
    order_id = lab_book.order_lab_test("provider", "patient", _request())
    assert order_id == 0

    lab_book.assign_lab(order_id, "lab", 3600)
    assigned = lab_book.get_order(order_id)
    assert assigned.status == "Assigned"
    assert assigned.lab_id == "lab"

    result = LabTestResult(
        test_code="2345-7",
        test_name="Glucose",
        value="450",
        unit="mg/dL",
        reference_range="70-99",
        is_abnormal=True,
        abnormal_flag="CRITICAL",
    )
    lab_book.submit_results(order_id, "lab", bytes([2] * 32), [result], True)

    done = lab_book.get_order(order_id)
    assert done.status == "Completed"
    assert done.results_hash == bytes([2] * 32)
    assert done.quality_control_passed is True
    assert done.test_panel == ("2345-7",)
    assert lab_book.events[-1] == (("LAB", "RESULT", "patient"), [result])


def test_order_ids_increment(lab_book):
    assert lab_book.order_lab_test("p", "a", _request()) == 0
    assert lab_book.order_lab_test("p", "a", _request()) == 1


def test_new_order_state(lab_book):
    order_id = lab_book.order_lab_test("provider", "patient", _request())
    order = lab_book.get_order(order_id)
    assert order.status == "Ordered"
    assert order.lab_id is None
    assert order.results_hash is None
    assert order.quality_control_passed is False


def test_fail_qc_check(lab_book):
    req = _request("LOINC-1", "Routine", False, None)
    order_id = lab_book.order_lab_test("provider", "patient", req)
    with pytest.raises(LabError) as info:
        lab_book.submit_results(order_id, "lab", bytes(32), [], False)
    assert info.value.code == ErrorCode.QC_FIELD_FAILED
    assert info.value.code == 4
    assert lab_book.get_order(order_id).status == "Ordered"
    assert lab_book.events == []


def test_critical_value_alerting(lab_book):
    lab_book.flag_critical_value(0, "lab", "12345-1", "9.0")
    assert lab_book.events == [(("CRITICAL", 0), ("12345-1", "9.0"))]


def test_fail_assign_nonexistent_order(lab_book):
    with pytest.raises(LabError) as info:
        lab_book.assign_lab(999, "lab", 0)
    assert info.value.code == ErrorCode.NOT_FOUND


def test_submit_results_missing_order(lab_book):
    with pytest.raises(LabError) as info:
        lab_book.submit_results(5, "lab", bytes(32), [], True)
    assert info.value.code == ErrorCode.NOT_FOUND


def test_request_rejects_short_hash():
    with pytest.raises(ValueError):
        OrderRequest(["x"], "STAT", b"short", False)