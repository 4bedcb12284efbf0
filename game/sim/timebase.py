"""
Simulation time abstraction.

Procurement code never reads a clock. Callers pass a `SimTime` into every
time-dependent operation (`tick`, `expire_check`, ...), so the systems stay
unit-testable without a live host and replay identically at any tick rate.

Units: one time unit is one in-world hour; a day is HOURS_PER_DAY units.
"""

from __future__ import annotations

from dataclasses import dataclass

from config import HOURS_PER_DAY


@dataclass(frozen=True, slots=True, order=True)
class SimTime:
    """A point in simulated time (day index + hour of day)."""

    day: int = 0
    hour: int = 0

    def __post_init__(self):
        # Keep hour in [0, HOURS_PER_DAY) so field-wise ordering matches total_hours.
        d, h = divmod(int(self.day) * HOURS_PER_DAY + int(self.hour), HOURS_PER_DAY)
        object.__setattr__(self, "day", d)
        object.__setattr__(self, "hour", h)

    @property
    def total_hours(self) -> int:
        return int(self.day) * HOURS_PER_DAY + int(self.hour)

    @classmethod
    def from_hours(cls, total_hours: int) -> "SimTime":
        d, h = divmod(int(total_hours), HOURS_PER_DAY)
        return cls(day=d, hour=h)

    def plus_hours(self, hours: int) -> "SimTime":
        return SimTime.from_hours(self.total_hours + int(hours))


def day_of(total_hours: int) -> int:
    return int(total_hours) // HOURS_PER_DAY


def format_duration(hours: int) -> str:
    """Human label for a countdown in hours ("2 days, 5 hours" / "7 hours")."""
    hours = max(0, int(hours))
    days, rem = divmod(hours, HOURS_PER_DAY)
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''}, {rem} hours"
    return f"{hours} hours"
