import pytest

from src.planner.models import PlanStatus
from src.planner.status import derive_status, is_present, normalize_actual


@pytest.mark.parametrize(
    ("actual_start", "actual_end", "expected"),
    [
        (None, None, PlanStatus.NOT_STARTED),
        ("2025-02-01", None, PlanStatus.IN_PROGRESS),
        (None, "2025-02-10", PlanStatus.DONE),
        ("2025-02-01", "2025-02-10", PlanStatus.DONE),
    ],
)
def test_derive_status_truth_table(actual_start, actual_end, expected):
    assert derive_status(actual_start, actual_end) is expected


def test_blank_values_count_as_absent():
    assert derive_status("", "   ") is PlanStatus.NOT_STARTED
    assert derive_status(" 2025-02-01 ", "") is PlanStatus.IN_PROGRESS
    assert not is_present("  ")
    assert is_present("2025-02-01")


def test_normalize_actual():
    assert normalize_actual(None) is None
    assert normalize_actual("") is None
    assert normalize_actual("  ") is None
    assert normalize_actual(" 2025-02-01 ") == "2025-02-01"
