from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable

from config import Settings, validate_business_hours
from models import Appointment, SlotStatus


def to_local_naive(value: datetime) -> datetime:
  """Convert an aware datetime to naive local time; naive input is already local."""
  if value.tzinfo is not None:
    return value.astimezone().replace(tzinfo=None)
  return value


def minutes_until(start: datetime, now: datetime) -> int:
  # Whole minutes, truncated toward zero: 10m59s -> 10, -0m30s -> 0
  return int((start - now).total_seconds() / 60)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
  return max(a_start, b_start) < min(a_end, b_end)


@dataclass(frozen=True)
class SlotGrid:
  start_hour: int = 7
  end_hour: int = 19
  slot_minutes: int = 30

  def __post_init__(self):
    try:
      validate_business_hours(self.start_hour, self.end_hour, self.slot_minutes)
    except RuntimeError as e:
      raise ValueError(str(e)) from None

  @classmethod
  def from_settings(cls, settings: Settings) -> "SlotGrid":
    return cls(settings.start_hour, settings.end_hour, settings.slot_minutes)

  @property
  def slot_length(self) -> timedelta:
    return timedelta(minutes=self.slot_minutes)

  def slot_end(self, start: datetime) -> datetime:
    return start + self.slot_length

  def is_valid_slot(self, start: datetime) -> bool:
    if start.second or start.microsecond:
      return False
    if start.minute % self.slot_minutes:
      return False
    if start.hour < self.start_hour:
      return False
    minute_of_day = start.hour * 60 + start.minute
    return minute_of_day + self.slot_minutes <= self.end_hour * 60

  def day_starts(self, day: date) -> list[datetime]:
    opening = datetime.combine(day, time(self.start_hour, 0))
    count = (self.end_hour - self.start_hour) * 60 // self.slot_minutes
    return [opening + i * self.slot_length for i in range(count)]

  def has_overlap(self, candidate_start: datetime, appointments: Iterable[Appointment]) -> bool:
    candidate_end = self.slot_end(candidate_start)
    for appt in appointments:
      if appt.status is not SlotStatus.BOOKED:
        continue
      if intervals_overlap(appt.start, appt.end, candidate_start, candidate_end):
        return True
    return False

  def describe(self) -> str:
    last_start = self.day_starts(date.today())[-1]
    return (
      f"Invalid time slot. Appointments must start on a {self.slot_minutes}-minute boundary "
      f"with zero seconds, between {self.start_hour:02d}:00 and {last_start:%H:%M}"
    )
