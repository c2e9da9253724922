"""Five-field cron parsing for the job clock."""

import re

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger

from .errors import InvalidScheduleError

CRON_FIELDS = ("minute", "hour", "day", "month", "day_of_week")

# cron numbering: 0 and 7 are Sunday
_DOW_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_NUMERIC_BASE = re.compile(r"\*|\d+(-\d+)?")


def _translate_day_of_week(field: str) -> str:
    """Rewrite numeric day-of-week terms as weekday names.

    APScheduler numbers weekdays from Monday=0, so "0 0 * * 0" would fire on
    Mondays if passed through unchanged. Names mean the same thing to both.
    """
    terms: list[str] = []
    for part in field.split(","):
        base, _, step_raw = part.partition("/")
        if not _NUMERIC_BASE.fullmatch(base) or (base == "*" and not step_raw):
            terms.append(part)
            continue

        step = int(step_raw) if step_raw else 1
        if base == "*":
            lo, hi = 0, 6
        elif "-" in base:
            lo_raw, hi_raw = base.split("-", 1)
            lo, hi = int(lo_raw), int(hi_raw)
        else:
            lo = int(base)
            hi = 6 if step_raw else lo

        if step < 1 or not (0 <= lo <= hi <= 7):
            raise ValueError(f"invalid day-of-week term: {part!r}")

        terms.extend(_DOW_NAMES[n % 7] for n in range(lo, hi + 1, step))

    return ",".join(dict.fromkeys(terms))


def parse_cron(expr: str, timezone=None) -> BaseTrigger:
    """Build a trigger from a standard 5-field cron expression.

    Fields are minute, hour, day-of-month, month, day-of-week. There is no
    seconds field; fires land on second 0. ``?`` in either day field means
    the same as ``*``. When both day fields are restricted, a time matches if
    either of them does, as in classic cron.

    Raises:
        InvalidScheduleError: wrong field count or any field out of range
    """
    fields = expr.split() if isinstance(expr, str) else []
    if len(fields) != len(CRON_FIELDS):
        raise InvalidScheduleError(
            f"cron expression must have 5 fields (minute hour day month weekday), "
            f"got {len(fields)}: {expr!r}"
        )

    values = dict(zip(CRON_FIELDS, fields))
    for key in ("day", "day_of_week"):
        if values[key] == "?":
            values[key] = "*"
    try:
        values["day_of_week"] = _translate_day_of_week(values["day_of_week"])
        if values["day"] == "*" or values["day_of_week"] == "*":
            return CronTrigger(timezone=timezone, **values)
        return OrTrigger(
            [
                CronTrigger(timezone=timezone, **{**values, "day_of_week": "*"}),
                CronTrigger(timezone=timezone, **{**values, "day": "*"}),
            ]
        )
    except ValueError as e:
        raise InvalidScheduleError(f"invalid cron expression {expr!r}: {e}") from e
