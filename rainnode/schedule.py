"""The schedule service: actions run on the node at chosen times."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from enum import IntEnum
from typing import Any, Callable, Optional, Union

from .node import Device
from .params import (
    Param,
    ParamError,
    ParamValue,
    PropFlag,
    RequestSource,
    array_value,
)
from .runtime import RainMaker
from .schedule_model import (
    MAX_ID_LEN,
    MAX_INFO_LEN,
    MAX_NAME_LEN,
    MAX_OPERATION_LEN,
    Schedule,
    ScheduleOperation,
    is_expired,
    parse_operation,
    parse_trigger,
    schedule_to_dict,
)
from .types import PARAM_SCHEDULES, SERVICE_SCHEDULE

logger = logging.getLogger(__name__)

DEFAULT_MAX_SCHEDULES = 10
TIME_SYNC_DELAY = 10  # seconds between time synchronisation checks

SERVICE_NAME = "Schedule"
SCHEDULES_PARAM_NAME = "Schedules"


class _TimeSync(IntEnum):
    NOT_STARTED = 0
    STARTED = 1
    DONE = 2


class Scheduler:
    """Keeps timer entries for schedules, keyed by schedule id.

    This keeps the entries in memory; a host with real timers subclasses it
    and calls ScheduleService.trigger(index) when a schedule fires.
    """

    def __init__(self) -> None:
        self.entries: dict[str, dict[str, Any]] = {}

    def _entry(self, schedule: Schedule) -> dict[str, Any]:
        try:
            return self.entries[schedule.id]
        except KeyError:
            raise ValueError(f"No timer entry for schedule {schedule.id}") from None

    def create(self, schedule: Schedule) -> Any:
        """Create a timer entry for a schedule and return its handle."""
        if schedule.id in self.entries:
            raise ValueError(f"Timer entry for schedule {schedule.id} already exists")
        self.entries[schedule.id] = {
            "index": schedule.index,
            "trigger": replace(schedule.trigger),
            "enabled": False,
        }
        return schedule.id

    def edit(self, schedule: Schedule) -> None:
        """Replace the trigger of an existing entry."""
        self._entry(schedule)["trigger"] = replace(schedule.trigger)

    def delete(self, schedule: Schedule) -> None:
        """Remove the entry of a schedule."""
        self._entry(schedule)
        del self.entries[schedule.id]

    def enable(self, schedule: Schedule) -> None:
        """Arm the entry of a schedule."""
        self._entry(schedule)["enabled"] = True

    def disable(self, schedule: Schedule) -> None:
        """Disarm the entry of a schedule."""
        self._entry(schedule)["enabled"] = False

    def is_enabled(self, schedule_id: str) -> bool:
        entry = self.entries.get(schedule_id)
        return bool(entry and entry["enabled"])


def _get_str(entry: dict, key: str, max_len: int) -> Optional[str]:
    """Return a string field that fits within max_len bytes, else None."""
    value = entry.get(key)
    if not isinstance(value, str):
        return None
    if len(value.encode("utf-8")) > max_len:
        return None
    return value


class ScheduleService:
    """Keeps the list of schedules and applies schedule requests to the node."""

    def __init__(
        self,
        rainmaker: RainMaker,
        scheduler: Optional[Scheduler] = None,
        time_check: Optional[Callable[[], bool]] = None,
        max_schedules: int = DEFAULT_MAX_SCHEDULES,
    ) -> None:
        self.rainmaker = rainmaker
        self.scheduler = scheduler if scheduler is not None else Scheduler()
        self.time_check = time_check if time_check is not None else (lambda: True)
        self.max_schedules = max_schedules
        self.schedules: list[Schedule] = []
        self.service: Optional[Device] = None
        self.timesync_pending = False
        self._next_index = 0
        self._time_sync = _TimeSync.NOT_STARTED

    def __len__(self) -> int:
        return len(self.schedules)

    def enable(self) -> Device:
        """Create the schedule service and add it to the node."""
        device = Device(
            name=SERVICE_NAME,
            type=SERVICE_SCHEDULE,
            is_service=True,
            write_cb=self.write,
            priv_data=self,
        )
        param = Param(
            SCHEDULES_PARAM_NAME,
            PARAM_SCHEDULES,
            array_value("[]"),
            PropFlag.READ | PropFlag.WRITE | PropFlag.PERSIST,
        )
        param.add_array_max_count(self.max_schedules)
        device.add_param(param)
        self.rainmaker.node.add_device(device)
        self.service = device
        logger.debug("Scheduling Service Enabled")
        return device

    def schedule(self, schedule_id: str) -> Optional[Schedule]:
        """Return the schedule with the given id, or None."""
        return next((s for s in self.schedules if s.id == schedule_id), None)

    def _by_index(self, index: int) -> Optional[Schedule]:
        return next((s for s in self.schedules if s.index == index), None)

    # Operations on a single schedule

    def _op_enable(self, schedule: Schedule) -> bool:
        """Enable a schedule; returns False while waiting for time sync."""
        # Marked enabled even before time sync so the reported state is right.
        schedule.enabled = True
        if self._time_sync == _TimeSync.NOT_STARTED:
            if not self.time_check():
                logger.info(
                    "Time is not synchronised yet. The schedule will be enabled "
                    "when time is synchronised."
                )
                self.timesync_pending = True
                self._time_sync = _TimeSync.STARTED
                return False
            self._time_sync = _TimeSync.DONE
        elif self._time_sync == _TimeSync.STARTED:
            return False

        if is_expired(schedule):
            logger.info(
                "Schedule with id %s does not repeat anymore. Disabling it.", schedule.id
            )
            self._op_disable(schedule)
            self._report()
            return True
        self.scheduler.enable(schedule)
        return True

    def _op_disable(self, schedule: Schedule) -> None:
        try:
            self.scheduler.disable(schedule)
        finally:
            schedule.trigger.next_timestamp = 0
            schedule.enabled = False

    def _op_add(self, schedule: Schedule) -> None:
        schedule.handle = self.scheduler.create(schedule)
        self.schedules.append(schedule)

    def _op_edit(self, schedule: Schedule) -> None:
        try:
            self.scheduler.edit(schedule)
        finally:
            if schedule.enabled:
                self._op_disable(schedule)
                self._op_enable(schedule)

    def _op_remove(self, schedule: Schedule) -> None:
        self.schedules = [s for s in self.schedules if s is not schedule]
        self.scheduler.delete(schedule)

    def _perform(self, schedule: Schedule, operation: ScheduleOperation, enabled: bool) -> None:
        try:
            if operation == ScheduleOperation.ADD:
                if len(self.schedules) >= self.max_schedules:
                    logger.error(
                        "Max schedules (%d) reached. Not adding this schedule with id %s",
                        self.max_schedules,
                        schedule.id,
                    )
                    return
                self._op_add(schedule)
                if enabled:
                    self._op_enable(schedule)
            elif operation == ScheduleOperation.EDIT:
                self._op_edit(schedule)
            elif operation == ScheduleOperation.REMOVE:
                self._op_remove(schedule)
            elif operation == ScheduleOperation.ENABLE:
                self._op_enable(schedule)
            elif operation == ScheduleOperation.DISABLE:
                self._op_disable(schedule)
        except ValueError as exc:
            logger.error("Schedule operation %s on %s failed: %s", operation.name, schedule.id, exc)

    # Parsing of requests

    def _operation(self, entry: dict, schedule_id: str) -> ScheduleOperation:
        text = _get_str(entry, "operation", MAX_OPERATION_LEN)
        if not text:
            logger.error("Operation not found in schedule with id: %s", schedule_id)
            return ScheduleOperation.INVALID
        operation = parse_operation(text)
        if operation == ScheduleOperation.EDIT and self.schedule(schedule_id) is None:
            operation = ScheduleOperation.ADD
        elif operation == ScheduleOperation.INVALID:
            logger.error("Invalid schedule operation found: %s", text)
        return operation

    def _find_or_create(
        self, entry: dict, schedule_id: str, operation: ScheduleOperation
    ) -> Optional[Schedule]:
        existing = self.schedule(schedule_id)
        name = _get_str(entry, "name", MAX_NAME_LEN)
        if operation == ScheduleOperation.ADD:
            if existing is not None:
                logger.error(
                    "Schedule with id %s already exists. Not adding it again.", schedule_id
                )
                return None
            if not name:
                logger.error("Name not found for schedule with id: %s", schedule_id)
                return None
            schedule = Schedule(id=schedule_id, name=name, index=self._next_index)
            self._next_index += 1
            return schedule
        if existing is None:
            logger.error("Schedule with id %s not found", schedule_id)
            return None
        if operation == ScheduleOperation.EDIT and name:
            existing.name = name
        return existing

    @staticmethod
    def _parse_details(entry: dict, schedule: Schedule) -> None:
        action = entry.get("action")
        if isinstance(action, dict):
            schedule.action = json.dumps(action, separators=(",", ":"))
        else:
            logger.debug("Action not found in JSON")
        trigger = parse_trigger(entry)
        if trigger is not None:
            schedule.trigger = trigger
        info = _get_str(entry, "info", MAX_INFO_LEN)
        if info is not None:
            schedule.info = info or None
        flags = entry.get("flags")
        if isinstance(flags, int) and not isinstance(flags, bool):
            schedule.flags = flags & 0xFFFFFFFF

    def apply(self, data: Union[str, bytes], src: RequestSource) -> None:
        """Apply a JSON array of schedule requests."""
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        try:
            document = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ParamError(f"Invalid schedules JSON: {exc}") from exc
        if not isinstance(document, list):
            return
        enabled = True
        for entry in document:
            if not isinstance(entry, dict):
                break
            schedule_id = _get_str(entry, "id", MAX_ID_LEN)
            if not schedule_id:
                logger.error("ID not found in schedule JSON")
                continue
            if src == RequestSource.INIT:
                operation = ScheduleOperation.ADD
            else:
                operation = self._operation(entry, schedule_id)
                if operation == ScheduleOperation.INVALID:
                    continue
            schedule = self._find_or_create(entry, schedule_id, operation)
            if schedule is None:
                continue
            if operation in (ScheduleOperation.ADD, ScheduleOperation.EDIT):
                if operation == ScheduleOperation.ADD:
                    if src == RequestSource.INIT:
                        stored = entry.get("enabled")
                        if isinstance(stored, bool):
                            enabled = stored
                    else:
                        enabled = True
                self._parse_details(entry, schedule)
            self._perform(schedule, operation, enabled)

    # Reporting

    def params_json(self) -> str:
        """Return the current schedules as compact JSON text."""
        return json.dumps(
            [schedule_to_dict(s) for s in self.schedules], separators=(",", ":")
        )

    def _report(self) -> None:
        if self.service is None:
            raise ParamError("Schedule service is not enabled.")
        param = self.service.param_by_type(PARAM_SCHEDULES)
        self.rainmaker.update_and_report(param, array_value(self.params_json()))

    def write(self, device: Device, param: Param, value: ParamValue, src: RequestSource) -> None:
        """Handle a write to the schedules parameter."""
        if param.type != PARAM_SCHEDULES:
            raise ParamError(
                f"Got callback for invalid param with name {param.name} and type {param.type}"
            )
        if not value.value:
            raise ParamError("Invalid length for schedules params: 0")
        self.apply(value.value, src)
        # At init the value is reported with the rest of the node state.
        if src != RequestSource.INIT:
            self._report()

    # Timer callbacks

    def trigger(self, index: int) -> None:
        """Run the action of the schedule with the given index, as its timer fired."""
        schedule = self._by_index(index)
        if schedule is None:
            logger.error("Schedule with index %d not found for trigger", index)
            return
        if schedule.action is None:
            logger.error("Schedule with id %s has no action.", schedule.id)
        else:
            self.rainmaker.handle_set_params(schedule.action, RequestSource.SCHEDULE)
        if is_expired(schedule):
            self._op_disable(schedule)
            self._report()

    def set_next_timestamp(self, index: int, timestamp: int) -> None:
        """Record the next time a one-time or relative schedule will fire."""
        schedule = self._by_index(index)
        if schedule is None:
            logger.error("Schedule with index %d not found for timestamp callback", index)
            return
        schedule.trigger.next_timestamp = timestamp

    def timesync_tick(self) -> bool:
        """Check time sync; once synced, enable the waiting schedules.

        Returns True once time is synchronised. While it is not, the check
        stays pending and should be repeated after TIME_SYNC_DELAY seconds.
        """
        if not self.time_check():
            self.timesync_pending = True
            return False
        self.timesync_pending = False
        self._time_sync = _TimeSync.DONE
        logger.info("Time is synchronised now. Enabling the schedules.")
        for schedule in list(self.schedules):
            if schedule.enabled:
                try:
                    self._op_enable(schedule)
                except ValueError as exc:
                    logger.error("Enabling schedule %s failed: %s", schedule.id, exc)
        return True