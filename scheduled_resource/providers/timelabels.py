"""
Time-ruler providers.

A timetable usually carries one or more header rows labelling the time
axis: a row of hour marks, a row of day marks. These are configured like
any other resource, e.g.::

    [ResourceKinds]
    ZTimeHeaderDay = "ZTimeLabelDay"
    ZTimeHeaderHour = "ZTimeLabelHour"

    Resources = ["ZTimeHeaderDay Day0", "ZTimeHeaderHour Hour0", ...]

and the providers below generate one label block per hour or per day.
"""

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Optional, Sequence
from zoneinfo import ZoneInfo

from ..timeexpr import to_epoch
from ..types import ScheduledResource
from .base import BlockRecord, filter_incremental, get_registry


STEP_HOUR = "hour"
STEP_DAY = "day"

_DEFAULT_FORMATS = {
    STEP_HOUR: "%H:%M",
    STEP_DAY: "%a %b %d",
}


class TimeLabelProvider:
    """
    Generates aligned label blocks for a time-ruler row.

    Blocks start on local hour (or midnight) boundaries in the configured
    time zone. Every sub-id of the kind receives the same labels.

    Args:
        step: "hour" or "day"
        tz: IANA time zone name for boundaries and labels (default UTC)
        label_format: strftime format for the label
    """

    def __init__(self, step: str = STEP_HOUR, tz: str = "UTC", label_format: Optional[str] = None):
        if step not in _DEFAULT_FORMATS:
            raise ValueError(f"Unknown time label step: {step!r} (use 'hour' or 'day')")
        self.step = step
        self.tz: tzinfo = timezone.utc if tz == "UTC" else ZoneInfo(tz)
        self.label_format = label_format or _DEFAULT_FORMATS[step]

    def _boundaries(self, t1: Any, t2: Any) -> list[datetime]:
        start = datetime.fromtimestamp(to_epoch(t1), tz=timezone.utc).astimezone(self.tz)
        end = to_epoch(t2)

        if self.step == STEP_DAY:
            day = start.date()
            marks = []
            while True:
                mark = datetime(day.year, day.month, day.day, tzinfo=self.tz)
                marks.append(mark)
                if mark.timestamp() >= end:
                    break
                day += timedelta(days=1)
            return marks

        mark = start.replace(minute=0, second=0, microsecond=0).astimezone(timezone.utc)
        marks = [mark]
        while mark.timestamp() < end:
            mark = mark + timedelta(hours=1)
            marks.append(mark)
        return marks

    def _labels(self, t1: Any, t2: Any) -> list[BlockRecord]:
        marks = self._boundaries(t1, t2)
        records = []
        for begin, finish in zip(marks, marks[1:]):
            records.append(BlockRecord(
                start_time=begin.astimezone(timezone.utc),
                end_time=finish.astimezone(timezone.utc),
                payload={"label": begin.astimezone(self.tz).strftime(self.label_format)},
            ))
        return records

    def get_all_blocks(
        self,
        sub_ids: Sequence[str],
        t1: Any,
        t2: Any,
        inc: Optional[str],
    ) -> dict[str, list[BlockRecord]]:
        if to_epoch(t1) >= to_epoch(t2):
            return {sub_id: [] for sub_id in sub_ids}
        result = {}
        for sub_id in sub_ids:
            labels = filter_incremental(self._labels(t1, t2), t1, t2, inc)
            result[sub_id] = labels
        return result


class HourLabelProvider(TimeLabelProvider):
    def __init__(self, tz: str = "UTC", label_format: Optional[str] = None):
        super().__init__(STEP_HOUR, tz, label_format)


class DayLabelProvider(TimeLabelProvider):
    def __init__(self, tz: str = "UTC", label_format: Optional[str] = None):
        super().__init__(STEP_DAY, tz, label_format)


class TimeHeaderDecorator:
    """Sets a fixed label and title on time-ruler rows."""

    def __init__(self, label: str, title: str):
        self.label = label
        self.title = title

    def decorate_resource(self, resource: ScheduledResource) -> None:
        resource.label = self.label
        resource.title = self.title


# Register providers
_registry = get_registry()
_registry.register_provider("ZTimeLabelHour", HourLabelProvider)
_registry.register_provider("ZTimeLabelDay", DayLabelProvider)
_registry.register_decorator("ZTimeHeaderHour", TimeHeaderDecorator("Hour", "Time of day"))
_registry.register_decorator("ZTimeHeaderDay", TimeHeaderDecorator("Day", "Date"))
