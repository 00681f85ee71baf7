from dataclasses import dataclass
from datetime import datetime
from typing import Iterable


@dataclass(frozen=True)
class Reservation:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError("Reservation start time must be earlier than end time.")


@dataclass(frozen=True)
class OverlapReport:
    """Which boundaries of a candidate booking collide with existing ones."""

    start_overlaps: bool = False
    end_overlaps: bool = False
    conflicting: tuple[Reservation, ...] = ()

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicting)

    def messages(self) -> list[dict[str, str]]:
        errors: list[dict[str, str]] = []
        if self.start_overlaps:
            errors.append(
                {"field": "MomentStart", "message": "The selected start date overlaps with an existing booking."}
            )
        if self.end_overlaps:
            errors.append({"field": "MomentEnd", "message": "The selected end date overlaps with an existing booking."})
        return errors


def has_time_overlap(new_start: datetime, new_end: datetime, exist_start: datetime, exist_end: datetime) -> bool:
    """Return True when two time intervals overlap by even one second.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    if new_start >= new_end:
        raise ValueError("new_start must be earlier than new_end.")
    if exist_start >= exist_end:
        raise ValueError("exist_start must be earlier than exist_end.")

    return new_start < exist_end and new_end > exist_start


def start_within(new_start: datetime, exist_start: datetime, exist_end: datetime) -> bool:
    return exist_start <= new_start < exist_end


def end_within(new_end: datetime, exist_start: datetime, exist_end: datetime) -> bool:
    return exist_start < new_end <= exist_end


def find_overlaps(new_start: datetime, new_end: datetime, existing_reservations: Iterable[Reservation]) -> OverlapReport:
    """Check a candidate interval against every reservation of one place.

    A candidate that fully encloses an existing reservation has neither
    boundary inside it; both boundaries are reported for that case.
    """
    if new_start >= new_end:
        raise ValueError("new_start must be earlier than new_end.")

    start_hit = False
    end_hit = False
    conflicting: list[Reservation] = []
    for reservation in existing_reservations:
        if not has_time_overlap(new_start, new_end, reservation.start, reservation.end):
            continue
        conflicting.append(reservation)
        starts_inside = start_within(new_start, reservation.start, reservation.end)
        ends_inside = end_within(new_end, reservation.start, reservation.end)
        if not starts_inside and not ends_inside:
            starts_inside = ends_inside = True
        start_hit = start_hit or starts_inside
        end_hit = end_hit or ends_inside

    return OverlapReport(start_overlaps=start_hit, end_overlaps=end_hit, conflicting=tuple(conflicting))


def has_conflict(new_start: datetime, new_end: datetime, existing_reservations: Iterable[Reservation]) -> bool:
    """Return True when the candidate overlaps any of ``existing_reservations``.

    There is no place argument: callers pass only the reservations of the
    place being booked, which BookingRepository selects in SQL by PlaceNumber.
    """
    return find_overlaps(new_start, new_end, existing_reservations).has_conflict

