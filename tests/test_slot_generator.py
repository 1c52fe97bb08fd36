"""Tests for candidate start-time generation"""
from datetime import time

import pytest

from app.core.exceptions import ValidationError
from app.models import AvailabilityWindow
from app.services.availability.slot_generator import SlotGenerator


def _window(start, end, capacity=1):
    return AvailabilityWindow(day_of_week=2, start_time=start, end_time=end, capacity=capacity, is_active=True)


def test_candidates_fit_entirely_inside_window():
    candidates = SlotGenerator.generate_candidates([_window(time(9, 0), time(12, 0))], 60, 30)

    assert list(candidates) == [time(9, 0), time(9, 30), time(10, 0), time(10, 30), time(11, 0)]


def test_last_candidate_may_end_exactly_at_window_end():
    candidates = list(SlotGenerator.generate_candidates([_window(time(9, 0), time(10, 0))], 60, 15))

    assert candidates == [time(9, 0)]


def test_service_longer_than_window_yields_nothing():
    candidates = SlotGenerator.generate_candidates([_window(time(9, 0), time(9, 45))], 60, 15)

    assert list(candidates) == []


def test_candidates_can_be_iterated_more_than_once():
    candidates = SlotGenerator.generate_candidates(
        [_window(time(9, 0), time(10, 0)), _window(time(14, 0), time(15, 0))], 30, 30
    )

    first = list(candidates)
    second = list(candidates)

    assert first == second == [time(9, 0), time(9, 30), time(14, 0), time(14, 30)]


def test_day_candidates_are_sorted_and_unique_across_overlapping_windows():
    windows = [_window(time(10, 0), time(12, 0)), _window(time(9, 0), time(11, 0))]

    candidates = SlotGenerator.day_candidates(windows, 60, 30)

    assert candidates == [time(9, 0), time(9, 30), time(10, 0), time(10, 30), time(11, 0)]


def test_no_windows_means_no_candidates():
    assert SlotGenerator.day_candidates([], 60, 30) == []


@pytest.mark.parametrize("duration,step", [(0, 30), (-15, 30), (60, 0), (60, -5)])
def test_invalid_duration_or_step_is_rejected(duration, step):
    with pytest.raises(ValidationError):
        SlotGenerator.generate_candidates([_window(time(9, 0), time(12, 0))], duration, step)
