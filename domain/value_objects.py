"""Domain Value Objects"""
from pydantic import BaseModel, validator
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Union

DayLike = Union[date, datetime]

END_OF_DAY = time(23, 59, 59)


def to_day(value: DayLike) -> date:
    """Drop the time-of-day component, converting aware values to UTC first"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


class DateRange(BaseModel):
    """Value Object for an inclusive calendar-day interval.

    Timestamps are kept as given (naive UTC) so that ``is_ordered`` can
    compare them exactly, while every predicate works on whole days: a range
    ending at 23:59:59 and one starting at 00:00:00 on the same day overlap.
    Ordering is not enforced here; blocks and requests reject unordered
    ranges at creation.
    """
    start: datetime
    end: datetime

    @validator('start', 'end', pre=True)
    def promote_date(cls, v):
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min)
        return v

    @validator('start', 'end')
    def strip_timezone(cls, v):
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @classmethod
    def for_day(cls, day: DayLike) -> "DateRange":
        """Range covering a single day, 00:00:00 to 23:59:59"""
        d = to_day(day)
        return cls(start=datetime.combine(d, time.min), end=datetime.combine(d, END_OF_DAY))

    @property
    def start_day(self) -> date:
        return self.start.date()

    @property
    def end_day(self) -> date:
        return self.end.date()

    def is_ordered(self) -> bool:
        """Check start is strictly before end"""
        return self.start < self.end

    def overlaps(self, other: "DateRange") -> bool:
        """Check whether two ranges share at least one calendar day"""
        return self.start_day <= other.end_day and other.start_day <= self.end_day

    def contains(self, day: DayLike) -> bool:
        """Check whether a day falls inside the range"""
        return self.start_day <= to_day(day) <= self.end_day

    def days_between(self) -> List[date]:
        """Every calendar day from start to end inclusive, ascending"""
        days = []
        current = self.start_day
        while current <= self.end_day:
            days.append(current)
            current += timedelta(days=1)
        return days

    class Config:
        frozen = True
