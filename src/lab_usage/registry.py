"""Registry of lab areas and their computer counts."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Mapping, Optional, Sequence

from .errors import InvalidArea, UnknownArea
from .models import Session


@dataclass(frozen=True, slots=True)
class Area:
    """A floor of a building, identified by a compact label."""

    label: str
    building: str
    floor: Optional[str]
    capacity: int


def split_label(label: str) -> tuple[str, Optional[str]]:
    """Derive (building, floor) from labels such as ``"MAIN-2"``."""
    building, sep, floor = label.partition("-")
    if not sep:
        return label, None
    return building, floor or None


class AreaRegistry:
    """Known areas, built once before the timeline engine runs."""

    def __init__(self, areas: Iterable[Area]) -> None:
        self._areas: dict[str, Area] = {}
        for area in areas:
            _check_area(area)
            if area.label in self._areas:
                raise InvalidArea(f"Duplicate area label {area.label!r}")
            self._areas[area.label] = area

    @classmethod
    def from_capacities(
        cls,
        capacities: Mapping[str, int],
        building_of: Optional[Callable[[str], tuple[str, Optional[str]]]] = None,
    ) -> "AreaRegistry":
        resolve = building_of or split_label
        areas = []
        for label, capacity in capacities.items():
            building, floor = resolve(label)
            areas.append(Area(label=label, building=building, floor=floor, capacity=capacity))
        return cls(areas)

    def __contains__(self, label: object) -> bool:
        return label in self._areas

    def __len__(self) -> int:
        return len(self._areas)

    def __iter__(self) -> Iterator[Area]:
        return iter(self._areas.values())

    def get(self, label: str) -> Area:
        try:
            return self._areas[label]
        except KeyError:
            raise UnknownArea(label) from None

    def capacity_of(self, label: str) -> int:
        return self.get(label).capacity

    def all_areas(self) -> frozenset[Area]:
        return frozenset(self._areas.values())

    def labels(self) -> list[str]:
        return sorted(self._areas)

    def buildings(self) -> dict[str, tuple[Area, ...]]:
        grouped: defaultdict[str, list[Area]] = defaultdict(list)
        for area in self._areas.values():
            grouped[area.building].append(area)
        return {
            building: tuple(sorted(members, key=lambda item: item.label))
            for building, members in sorted(grouped.items())
        }

    def building_capacity(self, building: str) -> int:
        members = self.buildings().get(building)
        if members is None:
            raise UnknownArea(building)
        return sum(area.capacity for area in members)

    def validate_sessions(
        self, sessions: Iterable[Session], indexes: Optional[Sequence[int]] = None
    ) -> None:
        """Raise ``UnknownArea`` for the first session outside the registry.

        ``indexes`` gives the input record number of each session; without it
        the position in ``sessions`` is reported.
        """
        for position, session in enumerate(sessions):
            if session.area not in self._areas:
                index = indexes[position] if indexes is not None else position
                raise UnknownArea(session.area, index=index)


def _check_area(area: Area) -> None:
    if not area.label:
        raise InvalidArea("Area label must not be empty")
    if isinstance(area.capacity, bool) or not isinstance(area.capacity, int):
        raise InvalidArea(f"Capacity of {area.label!r} must be an integer")
    if area.capacity < 0:
        raise InvalidArea(f"Capacity of {area.label!r} must be non-negative")
