"""Unit tests for the single-slot analysis guard."""

import pytest

from resumefit.exceptions import ConcurrencyRejectedError
from resumefit.service import InFlightGuard


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def guard(clock):
    return InFlightGuard(stale_after=900, clock=clock)


@pytest.mark.unit
def test_second_acquire_is_rejected(guard, clock):
    first = guard.acquire("first")
    clock.advance(42)

    with pytest.raises(ConcurrencyRejectedError) as excinfo:
        guard.acquire("second")

    assert first == "first"
    assert excinfo.value.request_id == "first"
    assert excinfo.value.duration_seconds == 42
    assert excinfo.value.status_code == 429


@pytest.mark.unit
def test_release_only_clears_own_request(guard):
    guard.acquire("first")
    guard.release("someone-else")
    assert guard.in_progress

    guard.release("first")
    assert not guard.in_progress
    assert guard.acquire("second") == "second"


@pytest.mark.unit
def test_stale_flag_is_cleared_on_acquire(guard, clock):
    guard.acquire("stuck")
    clock.advance(901)

    assert guard.acquire("fresh") == "fresh"
    assert guard.status()["request_id"] == "fresh"


@pytest.mark.unit
def test_flag_within_deadline_is_kept(guard, clock):
    guard.acquire("running")
    clock.advance(899)

    assert guard.clear_if_stale() is None
    assert guard.in_progress


@pytest.mark.unit
def test_reset_returns_previous_request(guard):
    assert guard.reset() is None
    guard.acquire("abc")
    assert guard.reset() == "abc"
    assert guard.status() == {"in_progress": False, "request_id": None, "duration_seconds": None}


@pytest.mark.unit
def test_status_reports_duration(guard, clock):
    guard.acquire("abc")
    clock.advance(12.4)
    assert guard.status() == {"in_progress": True, "request_id": "abc", "duration_seconds": 12}


@pytest.mark.unit
def test_generated_request_ids_are_unique(guard):
    first = guard.acquire()
    guard.release(first)
    second = guard.acquire()
    assert first and second and first != second
