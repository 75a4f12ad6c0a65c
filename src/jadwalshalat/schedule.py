from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import logging
from typing import Any, Dict, FrozenSet, Optional, Protocol, Tuple

from jadwalshalat.cache_store import Cache, CacheMiss
from jadwalshalat.errors import MalformedSchedule, NoScheduleForDate
from jadwalshalat.regions import Region

DATE_LABEL_KEY = "tanggal"


@dataclass(frozen=True)
class PrayerEvent:
    name: str
    time_of_day: str


@dataclass(frozen=True)
class ScheduleDay:
    date_label: str
    events: Tuple[PrayerEvent, ...]

    def as_dict(self) -> Dict[str, str]:
        return {event.name: event.time_of_day for event in self.events}


def schedule_day_from_record(record: Dict[str, Any]) -> ScheduleDay:
    # A single bad field should not sink the whole day; it becomes an empty time.
    events = tuple(
        PrayerEvent(name=name, time_of_day=value if isinstance(value, str) else "")
        for name, value in record.items()
        if name != DATE_LABEL_KEY
    )
    label = record.get(DATE_LABEL_KEY)
    return ScheduleDay(
        date_label=label if isinstance(label, str) else "",
        events=events,
    )


@dataclass(frozen=True)
class ScheduleMonth:
    """One month of schedule data for one region, as cached.

    ``days`` holds parsed entries, ``None`` for days the remote left empty.
    Entries that are present but not records are listed in ``malformed_days``
    so the failure surfaces only when that day is requested.
    """

    days: Dict[str, Optional[ScheduleDay]]
    malformed_days: FrozenSet[str] = frozenset()
    document: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def day(self, label: str) -> ScheduleDay:
        if label in self.malformed_days:
            raise MalformedSchedule(f"Invalid schedule entry for {label}")
        found = self.days.get(label)
        if found is None:
            raise NoScheduleForDate(f"No schedule for {label}")
        return found


def schedule_month_from_document(document: Any) -> ScheduleMonth:
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise MalformedSchedule("Schedule document must be a mapping of dates")

    days: Dict[str, Optional[ScheduleDay]] = {}
    malformed = set()
    for label, record in document.items():
        if record is None:
            days[label] = None
        elif isinstance(record, dict):
            days[label] = schedule_day_from_record(record)
        else:
            malformed.add(label)
    return ScheduleMonth(days=days, malformed_days=frozenset(malformed), document=document)


def month_label(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


class ScheduleSource(Protocol):
    def fetch_month(self, region: Region, year: int, month: int) -> Dict[str, Any]:
        ...


class ScheduleResolver:
    def __init__(self, *, cache: Cache, source: ScheduleSource) -> None:
        self._cache = cache
        self._source = source
        self._logger = logging.getLogger(self.__class__.__name__)

    def resolve_month(self, region: Region, year: int, month: int) -> ScheduleMonth:
        if not 1 <= month <= 12:
            raise ValueError(f"Month out of range: {month}")
        key = self._cache_key(region, year, month)
        try:
            cached = self._cache.get(key)
        except CacheMiss:
            pass
        else:
            return schedule_month_from_document(cached)

        self._logger.info(
            "Schedule for %s %s %s not cached, downloading now",
            region.regency,
            region.province,
            month_label(year, month),
        )
        document = self._source.fetch_month(region, year, month)
        try:
            self._cache.put(key, document)
        except OSError as exc:
            self._logger.warning("Could not persist schedule %s: %s", key, exc)
        return schedule_month_from_document(document)

    def day_of(self, region: Region, day: date) -> ScheduleDay:
        month = self.resolve_month(region, day.year, day.month)
        return month.day(day.isoformat())

    def _cache_key(self, region: Region, year: int, month: int) -> str:
        return "-".join(
            [region.province.lower(), region.regency.lower(), month_label(year, month)]
        )
