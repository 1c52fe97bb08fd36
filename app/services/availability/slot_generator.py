# ===== app/services/availability/slot_generator.py =====
from datetime import time
from typing import Iterable, Iterator, List, Sequence

from app.core.exceptions import ValidationError
from app.models.availability import AvailabilityWindow
from app.utils.time_utils import from_minutes, to_minutes, validate_duration


class SlotCandidates:
    """
    Candidate start times for a service inside a set of windows.

    Every call to iter() starts again from the first window, so the same
    object can be walked by several callers. A candidate `t` is produced only
    when `t + duration <= window.end`.
    """

    def __init__(self, windows: Sequence[AvailabilityWindow], duration_minutes: int, step_minutes: int):
        self.windows = list(windows)
        self.duration_minutes = duration_minutes
        self.step_minutes = step_minutes

    def __iter__(self) -> Iterator[time]:
        for window in self.windows:
            window_start = to_minutes(window.start_time)
            window_end = to_minutes(window.end_time)

            current = window_start
            while current + self.duration_minutes <= window_end:
                yield from_minutes(current)
                current += self.step_minutes


class SlotGenerator:

    @staticmethod
    def _validate(duration_minutes: int, step_minutes: int):
        validate_duration(duration_minutes)
        if step_minutes is None or step_minutes <= 0:
            raise ValidationError("step_minutes must be a positive number of minutes", field="step_minutes")

    @staticmethod
    def generate_candidates(
            windows: Iterable[AvailabilityWindow],
            duration_minutes: int,
            step_minutes: int = 30
    ) -> SlotCandidates:
        """Lazy per-window candidates, concatenated in window order"""
        SlotGenerator._validate(duration_minutes, step_minutes)
        return SlotCandidates(list(windows), duration_minutes, step_minutes)

    @staticmethod
    def day_candidates(
            windows: Iterable[AvailabilityWindow],
            duration_minutes: int,
            step_minutes: int = 30
    ) -> List[time]:
        """All candidates for one day, time-ordered with duplicates from overlapping windows removed"""
        candidates = SlotGenerator.generate_candidates(windows, duration_minutes, step_minutes)
        return sorted(set(candidates))
