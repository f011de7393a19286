"""
DateNormalizer — turns heterogeneous date inputs into one canonical value.

Accepted inputs:
  None / ""                → None
  int, digit string        → epoch seconds, UTC
  float                    → epoch seconds with fraction, UTC
  ISO-8601 string          → offset honoured; no offset means site timezone
  datetime                 → aware kept as-is, naive means site timezone
  date                     → midnight in the site timezone

Output is always an aware datetime in UTC.
"""

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from qastore.config import get_settings

CANONICAL_TZ = timezone.utc

_EPOCH_RE = re.compile(r"^[+-]?\d+$")

TimezoneSource = Union[tzinfo, str, Callable[[], Union[tzinfo, str]], None]


class InvalidDateError(ValueError):
    """Raised when a value cannot be interpreted as a date."""

    def __init__(self, value, reason=""):
        self.value = value
        message = f"Invalid date value {value!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


def _resolve_tz(value) -> tzinfo:
    if isinstance(value, tzinfo):
        return value
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {value!r}") from exc


class DateNormalizer:
    """Converts date inputs to aware UTC datetimes.

    site_timezone may be a tzinfo, an IANA name, or a zero-argument callable
    returning either; the callable is consulted on every call so a
    request-scoped timezone is honoured. Defaults to Settings.site_timezone.
    """

    def __init__(self, site_timezone: TimezoneSource = None):
        self._site_timezone = site_timezone

    def site_timezone(self) -> tzinfo:
        source = self._site_timezone
        if source is None:
            source = get_settings().site_timezone
        elif callable(source) and not isinstance(source, tzinfo):
            source = source()
        return _resolve_tz(source)

    def normalize(self, value) -> Optional[datetime]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise InvalidDateError(value, "booleans are not dates")
        if isinstance(value, datetime):
            return self._localize(value)
        if isinstance(value, date):
            return self._localize(datetime(value.year, value.month, value.day))
        if isinstance(value, (int, float)):
            return self._from_epoch(value)
        if isinstance(value, str):
            return self._from_string(value)
        raise InvalidDateError(value, f"unsupported type {type(value).__name__}")

    __call__ = normalize

    # ── Internal ─────────────────────────────────────────────────────

    def _localize(self, dt: datetime) -> datetime:
        if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
            dt = dt.replace(tzinfo=self.site_timezone())
        return dt.astimezone(CANONICAL_TZ)

    def _from_epoch(self, seconds) -> datetime:
        try:
            return datetime.fromtimestamp(seconds, tz=CANONICAL_TZ)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidDateError(seconds, str(exc)) from exc

    def _from_string(self, text: str) -> Optional[datetime]:
        text = text.strip()
        if not text:
            return None
        if _EPOCH_RE.match(text):
            return self._from_epoch(int(text))
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidDateError(text, "not an ISO-8601 date") from exc
        return self._localize(parsed)


def utc_now() -> datetime:
    return datetime.now(CANONICAL_TZ)
