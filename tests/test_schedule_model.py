import json
import time

import pytest

from rainnode.schedule_model import (
    Schedule,
    ScheduleOperation,
    Trigger,
    TriggerType,
    is_expired,
    parse_operation,
    parse_trigger,
    schedule_to_dict,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("add", ScheduleOperation.ADD),
        ("edit", ScheduleOperation.EDIT),
        ("remove", ScheduleOperation.REMOVE),
        ("enable", ScheduleOperation.ENABLE),
        ("disable", ScheduleOperation.DISABLE),
        ("rem", ScheduleOperation.REMOVE),
        ("dis", ScheduleOperation.DISABLE),
        ("e", ScheduleOperation.EDIT),
        ("bogus", ScheduleOperation.INVALID),
        ("adding", ScheduleOperation.INVALID),
        (None, ScheduleOperation.INVALID),
    ],
)
def test_parse_operation(text, expected):
    assert parse_operation(text) == expected


def test_parse_trigger_relative():
    trigger = parse_trigger({"triggers": [{"rsec": 30, "ts": 1700000000, "m": 5}]})
    assert trigger.type == TriggerType.RELATIVE
    assert trigger.relative_seconds == 30
    assert trigger.next_timestamp == 1700000000
    assert trigger.minutes == 0


def test_parse_trigger_days_of_week():
    trigger = parse_trigger({"triggers": [{"m": 480, "d": 31}]})
    assert trigger.type == TriggerType.DAYS_OF_WEEK
    assert trigger.minutes == 480
    assert trigger.repeat_days == 31
    assert trigger.hours_and_minutes == (8, 0)


def test_parse_trigger_date():
    trigger = parse_trigger(
        {"triggers": [{"m": 60, "dd": 15, "mm": 4, "yy": 2030, "r": True}]}
    )
    assert trigger.type == TriggerType.DATE
    assert trigger.day == 15
    assert trigger.repeat_months == 4
    assert trigger.year == 2030
    assert trigger.repeat_every_year is True


def test_parse_trigger_from_text():
    trigger = parse_trigger(json.dumps({"triggers": [{"m": 90, "d": 2}]}))
    assert trigger.repeat_days == 2
    assert trigger.minutes == 90


def test_parse_trigger_missing_or_empty():
    assert parse_trigger({"name": "x"}) is None
    assert parse_trigger({"triggers": []}) is None


def test_parse_trigger_non_object_entry_gives_invalid():
    trigger = parse_trigger({"triggers": [5]})
    assert trigger == Trigger()
    assert trigger.type == TriggerType.INVALID


def test_relative_expiry():
    schedule = Schedule("a1", "s", trigger=Trigger(TriggerType.RELATIVE, next_timestamp=100))
    assert is_expired(schedule, now=100) is True
    assert is_expired(schedule, now=99) is False
    schedule.trigger.next_timestamp = 0
    assert is_expired(schedule, now=1000) is False


def test_days_of_week_expiry():
    once = Schedule(
        "a1", "s", trigger=Trigger(TriggerType.DAYS_OF_WEEK, repeat_days=0, next_timestamp=50)
    )
    assert is_expired(once, now=60) is True
    repeating = Schedule(
        "a2", "s", trigger=Trigger(TriggerType.DAYS_OF_WEEK, repeat_days=1, next_timestamp=50)
    )
    assert is_expired(repeating, now=60) is False


def test_date_expiry():
    now = time.time()
    past = Schedule(
        "a1", "s", trigger=Trigger(TriggerType.DATE, day=1, repeat_months=1, year=2000)
    )
    assert is_expired(past, now=now) is True
    future = Schedule(
        "a2", "s", trigger=Trigger(TriggerType.DATE, day=1, repeat_months=1, year=3000)
    )
    assert is_expired(future, now=now) is False
    past.trigger.repeat_every_year = True
    assert is_expired(past, now=now) is False


def test_date_expiry_uses_last_month():
    moment = time.mktime((2031, 3, 10, 0, 0, 0, 0, 0, -1))
    schedule = Schedule(
        "a1",
        "s",
        trigger=Trigger(TriggerType.DATE, day=10, repeat_months=0b101, year=2031),
    )
    # The last repeat month is March; just before it the schedule is still live.
    assert is_expired(schedule, now=moment - 10) is False
    assert is_expired(schedule, now=moment + 10) is True


def test_one_time_date_expiry():
    schedule = Schedule(
        "a1", "s", trigger=Trigger(TriggerType.DATE, day=3, repeat_months=0, next_timestamp=20)
    )
    assert is_expired(schedule, now=25) is True
    assert is_expired(schedule, now=15) is False


def test_schedule_to_dict_days():
    schedule = Schedule(
        "ab12",
        "Morning",
        enabled=True,
        info="wake",
        flags=3,
        action='{"Light":{"Power":true}}',
        trigger=Trigger(TriggerType.DAYS_OF_WEEK, minutes=420, repeat_days=0, next_timestamp=77),
    )
    assert schedule_to_dict(schedule) == {
        "name": "Morning",
        "id": "ab12",
        "enabled": True,
        "info": "wake",
        "flags": 3,
        "action": {"Light": {"Power": True}},
        "triggers": [{"m": 420, "d": 0, "ts": 77}],
    }


def test_schedule_to_dict_omits_empty_fields():
    schedule = Schedule("id1", "n", trigger=Trigger(TriggerType.RELATIVE, relative_seconds=9))
    entry = schedule_to_dict(schedule)
    assert "info" not in entry
    assert "flags" not in entry
    assert entry["action"] is None
    assert entry["triggers"] == [{"rsec": 9, "ts": 0}]


def test_date_dict_writes_repeat_as_int():
    schedule = Schedule(
        "id1",
        "n",
        trigger=Trigger(TriggerType.DATE, day=2, repeat_months=6, year=2040, repeat_every_year=True),
    )
    trigger_entry = schedule_to_dict(schedule)["triggers"][0]
    assert trigger_entry["r"] == 1
    assert "ts" not in trigger_entry


@pytest.mark.parametrize(
    "trigger",
    [
        Trigger(TriggerType.RELATIVE, relative_seconds=45, next_timestamp=123),
        Trigger(TriggerType.DAYS_OF_WEEK, minutes=600, repeat_days=96),
        Trigger(TriggerType.DAYS_OF_WEEK, minutes=5, repeat_days=0, next_timestamp=999),
        Trigger(TriggerType.DATE, minutes=30, day=20, repeat_months=2, year=2035),
        Trigger(TriggerType.DATE, minutes=30, day=20, repeat_months=0, year=2035, next_timestamp=5),
    ],
)
def test_trigger_round_trip(trigger):
    schedule = Schedule("x1", "n", trigger=trigger)
    parsed = parse_trigger(json.loads(json.dumps(schedule_to_dict(schedule))))
    assert parsed == trigger