from __future__ import annotations


class JadwalShalatError(RuntimeError):
    """Base class for failures raised while resolving prayer schedules."""


class TransportError(JadwalShalatError):
    """Raised when the remote service cannot be reached or answers badly."""


class ParseError(JadwalShalatError):
    """Raised when a remote response or a cached document cannot be parsed."""


class MalformedSchedule(ParseError):
    """Raised when a schedule document does not have the expected shape."""


class NoScheduleForDate(JadwalShalatError, LookupError):
    """Raised when a month document has no entry for the requested day."""


class InvalidRegion(JadwalShalatError, LookupError):
    """Raised when no catalog entry matches the requested province and regency."""


class InvalidDateFormat(JadwalShalatError, ValueError):
    """Raised when a user supplied date is not in YYYY-MM-DD form."""
