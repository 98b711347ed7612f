"""
Boat grouping and sorting for the shed display.

Boats are split into a training column and a race column (racing/
training hybrids sit with training), bucketed by hull type, and sorted
alphabetically by display name inside each bucket.  The display reads
the buckets in the order quads → doubles → singles → other.
"""

from __future__ import annotations

from collections.abc import Iterable

from boatboard.models import BoatColumn, BoatType, BoatWithBookings, Classification, GroupedBoats

_BUCKET_BY_TYPE = {
    BoatType.QUAD: "quads",
    BoatType.DOUBLE: "doubles",
    BoatType.SINGLE: "singles",
    BoatType.UNKNOWN: "other",
}


def _sort_key(boat: BoatWithBookings) -> tuple[str, str, int]:
    # full name and id only break ties between identical display names
    return (boat.display_name.casefold(), boat.full_name.casefold(), boat.id)


def _column(boats: Iterable[BoatWithBookings]) -> BoatColumn:
    buckets: dict[str, list[BoatWithBookings]] = {
        "quads": [], "doubles": [], "singles": [], "other": [],
    }
    for boat in boats:
        buckets[_BUCKET_BY_TYPE.get(boat.boat_type, "other")].append(boat)
    return BoatColumn(**{name: sorted(items, key=_sort_key) for name, items in buckets.items()})


def group_and_sort(boats: Iterable[BoatWithBookings]) -> GroupedBoats:
    """Deterministic grouping; feeding the flattened output back in is a no-op."""
    boats = list(boats)
    race = [b for b in boats if b.classification is Classification.RACE]
    training = [b for b in boats if b.classification is not Classification.RACE]
    return GroupedBoats(training=_column(training), race=_column(race))
