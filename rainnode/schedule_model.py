"""Schedules, their triggers and the JSON form they are reported in."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Any, Optional, Union

MAX_ID_LEN = 8
MAX_NAME_LEN = 32
MAX_INFO_LEN = 128
MAX_OPERATION_LEN = 10


class TriggerType(IntEnum):
    INVALID = 0
    DAYS_OF_WEEK = 1
    DATE = 2
    RELATIVE = 3


class ScheduleOperation(IntEnum):
    INVALID = 0
    ADD = 1
    EDIT = 2
    REMOVE = 3
    ENABLE = 4
    DISABLE = 5


_OPERATION_WORDS = (
    ("add", ScheduleOperation.ADD),
    ("edit", ScheduleOperation.EDIT),
    ("remove", ScheduleOperation.REMOVE),
    ("enable", ScheduleOperation.ENABLE),
    ("disable", ScheduleOperation.DISABLE),
)


def parse_operation(text: Optional[str]) -> ScheduleOperation:
    """Map an operation word, or a prefix of one, to a ScheduleOperation."""
    if text is None:
        return ScheduleOperation.INVALID
    for word, operation in _OPERATION_WORDS:
        if word.startswith(text):
            return operation
    return ScheduleOperation.INVALID


@dataclass
class Trigger:
    """When a schedule fires.

    repeat_days is an OR of weekdays (Monday = 0b1); repeat_months an OR of
    months (January = 0b1), 0 meaning the next matching date only.
    next_timestamp is used by one-time and relative schedules.
    """

    type: TriggerType = TriggerType.INVALID
    relative_seconds: int = 0
    minutes: int = 0
    repeat_days: int = 0
    day: int = 0
    repeat_months: int = 0
    year: int = 0
    repeat_every_year: bool = False
    next_timestamp: int = 0

    @property
    def hours_and_minutes(self) -> tuple[int, int]:
        """The time of day as (hours, minutes) from the minutes since midnight."""
        return divmod(self.minutes, 60)


@dataclass(eq=False)
class Schedule:
    """A schedule: an identified, named action run by a trigger."""

    id: str
    name: str
    index: int = 0
    info: Optional[str] = None
    flags: int = 0
    enabled: bool = False
    handle: Any = None
    action: Optional[str] = None
    trigger: Trigger = field(default_factory=Trigger)


def _int(entry: dict, key: str) -> Optional[int]:
    value = entry.get(key)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def parse_trigger(data: Union[dict, str, bytes]) -> Optional[Trigger]:
    """Read the first trigger of a schedule entry.

    Returns None when the entry has no "triggers" array or it is empty,
    in which case the schedule's existing trigger is to be kept.
    """
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8")
    if isinstance(data, str):
        data = json.loads(data)
    if not isinstance(data, dict):
        return None
    triggers = data.get("triggers")
    if not isinstance(triggers, list) or not triggers:
        return None
    trigger = Trigger()
    first = triggers[0]
    if not isinstance(first, dict):
        return trigger
    timestamp = _int(first, "ts")
    if timestamp is not None:
        trigger.next_timestamp = timestamp
    relative = _int(first, "rsec")
    if relative is not None:
        trigger.type = TriggerType.RELATIVE
        trigger.relative_seconds = relative
        return trigger
    minutes = _int(first, "m")
    if minutes is not None:
        trigger.minutes = minutes & 0xFFFF
    days = _int(first, "d")
    if days is not None:
        trigger.type = TriggerType.DAYS_OF_WEEK
        trigger.repeat_days = days & 0xFF
    day = _int(first, "dd")
    if day is not None:
        trigger.type = TriggerType.DATE
        trigger.day = day & 0xFF
        months = _int(first, "mm")
        if months is not None:
            trigger.repeat_months = months & 0xFFFF
        year = _int(first, "yy")
        if year is not None:
            trigger.year = year & 0xFFFF
        repeat = first.get("r")
        if isinstance(repeat, bool):
            trigger.repeat_every_year = repeat
    return trigger


def _one_time_passed(trigger: Trigger, now: float) -> bool:
    return 0 < trigger.next_timestamp <= now


def _last_date_timestamp(trigger: Trigger) -> Optional[float]:
    """Local timestamp of the last repeat month's date, normalised like mktime."""
    month_index = trigger.repeat_months.bit_length() - 1
    year = trigger.year + month_index // 12
    month = month_index % 12 + 1
    if year < 1:
        return None
    try:
        moment = datetime(year, month, 1) + timedelta(
            days=trigger.day - 1, minutes=trigger.minutes
        )
        return moment.timestamp()
    except (OverflowError, ValueError, OSError):
        return None


def is_expired(schedule: Schedule, now: Optional[float] = None) -> bool:
    """Whether the schedule will never fire again after the time now."""
    if now is None:
        now = time.time()
    trigger = schedule.trigger
    if trigger.type == TriggerType.RELATIVE:
        return _one_time_passed(trigger, now)
    if trigger.type == TriggerType.DAYS_OF_WEEK:
        return trigger.repeat_days == 0 and _one_time_passed(trigger, now)
    if trigger.type == TriggerType.DATE:
        if trigger.repeat_months == 0:
            return _one_time_passed(trigger, now)
        if trigger.repeat_every_year:
            return False
        last = _last_date_timestamp(trigger)
        if last is None:
            return trigger.year < 1
        return last < now
    return False


def _trigger_to_dict(trigger: Trigger) -> dict:
    entry: dict[str, Any] = {}
    if trigger.type == TriggerType.RELATIVE:
        entry["rsec"] = trigger.relative_seconds
        entry["ts"] = trigger.next_timestamp
        return entry
    entry["m"] = trigger.minutes
    if trigger.type == TriggerType.DAYS_OF_WEEK:
        entry["d"] = trigger.repeat_days
        if trigger.repeat_days == 0:
            entry["ts"] = trigger.next_timestamp
    elif trigger.type == TriggerType.DATE:
        entry["dd"] = trigger.day
        entry["mm"] = trigger.repeat_months
        entry["yy"] = trigger.year
        entry["r"] = int(trigger.repeat_every_year)
        if trigger.repeat_months == 0:
            entry["ts"] = trigger.next_timestamp
    return entry


def schedule_to_dict(schedule: Schedule) -> dict:
    """The reported JSON form of a schedule."""
    entry: dict[str, Any] = {
        "name": schedule.name,
        "id": schedule.id,
        "enabled": schedule.enabled,
    }
    if schedule.info is not None:
        entry["info"] = schedule.info
    if schedule.flags != 0:
        entry["flags"] = schedule.flags
    entry["action"] = None if schedule.action is None else json.loads(schedule.action)
    entry["triggers"] = [_trigger_to_dict(schedule.trigger)]
    return entry