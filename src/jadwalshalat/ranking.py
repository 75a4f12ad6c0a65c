from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from jadwalshalat.errors import MalformedSchedule
from jadwalshalat.schedule import PrayerEvent

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class RankedEvent:
    signed_offset_minutes: int
    name: str
    time_of_day: str

    @property
    def is_past(self) -> bool:
        return self.signed_offset_minutes < 0


@dataclass(frozen=True)
class Ranking:
    events: Tuple[RankedEvent, ...]
    past: Tuple[RankedEvent, ...]
    future: Tuple[RankedEvent, ...]

    @property
    def nearest_past(self) -> Optional[RankedEvent]:
        return self.past[-1] if self.past else None

    @property
    def nearest_future(self) -> Optional[RankedEvent]:
        return self.future[0] if self.future else None


class Clock:
    def now(self) -> datetime:  # pragma: no cover - interface only
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now()


def rank(events: Iterable[PrayerEvent], day: date, reference: datetime) -> Ranking:
    """Split a day's events into passed and upcoming around ``reference``.

    Offsets compare clock times only. The calendar date of ``reference`` is
    ignored, so a reference taken on another day is ranked as if it were on
    ``day``, and nothing wraps around midnight.
    """
    ranked: List[RankedEvent] = []
    for event in events:
        moment = _combine(day, event)
        delta = _on_same_day(moment) - _on_same_day(reference)
        ranked.append(
            RankedEvent(
                signed_offset_minutes=delta // timedelta(minutes=1),
                name=event.name,
                time_of_day=event.time_of_day,
            )
        )

    # sorted() is stable, so equal offsets keep the schedule's own order.
    by_offset = sorted(ranked, key=lambda item: item.signed_offset_minutes)
    return Ranking(
        events=tuple(ranked),
        past=tuple(item for item in by_offset if item.signed_offset_minutes < 0),
        future=tuple(item for item in by_offset if item.signed_offset_minutes >= 0),
    )


def _combine(day: date, event: PrayerEvent) -> datetime:
    raw = f"{day.isoformat()} {event.time_of_day}"
    try:
        return datetime.strptime(raw, TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise MalformedSchedule(
            f"Cannot parse time {event.time_of_day!r} for {event.name}"
        ) from exc


def _on_same_day(moment: datetime) -> datetime:
    return datetime.combine(date.min, moment.time())
