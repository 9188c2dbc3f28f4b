from datetime import date, datetime, timedelta, timezone

import pytest

from models import Appointment, SlotStatus
from scheduling import SlotGrid, intervals_overlap, minutes_until, to_local_naive

DAY = date(2026, 10, 20)


def at(hour: int, minute: int = 0, second: int = 0) -> datetime:
  return datetime(2026, 10, 20, hour, minute, second)


def booked(start: datetime, minutes: int = 30, status: SlotStatus = SlotStatus.BOOKED) -> Appointment:
  return Appointment(
    id=f"appt-{start:%H%M}",
    name="Ada",
    email="ada@example.com",
    start=start,
    end=start + timedelta(minutes=minutes),
    status=status,
    created_at=datetime(2026, 10, 19, 8, 0),
  )


def test_default_grid_accepts_every_tile_of_the_business_day(grid):
  starts = grid.day_starts(DAY)
  assert len(starts) == 24
  assert starts[0] == at(7, 0)
  assert starts[-1] == at(18, 30)
  assert all(grid.is_valid_slot(s) for s in starts)


@pytest.mark.parametrize(
  "start",
  [at(6, 30), at(6, 59), at(19, 0), at(19, 30), at(23, 30), at(9, 15), at(9, 45), at(9, 0, 30)],
)
def test_default_grid_rejects_outside_or_misaligned(grid, start):
  assert not grid.is_valid_slot(start)


def test_last_slot_ends_exactly_at_closing(grid):
  assert grid.is_valid_slot(at(18, 30))
  assert grid.slot_end(at(18, 30)) == at(19, 0)
  assert not grid.is_valid_slot(at(19, 0))


@pytest.mark.parametrize("slot_minutes", [5, 10, 15, 20, 30, 60])
def test_grid_accepts_exactly_aligned_minutes_within_hours(slot_minutes):
  grid = SlotGrid(start_hour=8, end_hour=17, slot_minutes=slot_minutes)
  accepted = set()
  for minute_of_day in range(24 * 60):
    start = datetime.combine(DAY, datetime.min.time()) + timedelta(minutes=minute_of_day)
    if grid.is_valid_slot(start):
      accepted.add(start)

  expected = {
    datetime(2026, 10, 20, h, m)
    for h in range(8, 17)
    for m in range(0, 60)
    if m % slot_minutes == 0
  }
  assert accepted == expected
  assert accepted == set(grid.day_starts(DAY))


def test_hourly_grid_has_no_half_hour_slots():
  grid = SlotGrid(slot_minutes=60)
  assert grid.is_valid_slot(at(18, 0))
  assert not grid.is_valid_slot(at(18, 30))


@pytest.mark.parametrize(
  "kwargs",
  [
    {"slot_minutes": 45},
    {"slot_minutes": 0},
    {"start_hour": 19, "end_hour": 7},
    {"start_hour": 9, "end_hour": 9},
    {"end_hour": 25},
  ],
)
def test_grid_rejects_bad_configuration(kwargs):
  with pytest.raises(ValueError):
    SlotGrid(**kwargs)


def test_back_to_back_slots_do_not_overlap(grid):
  existing = [booked(at(9, 0))]
  assert not grid.has_overlap(at(8, 30), existing)
  assert not grid.has_overlap(at(9, 30), existing)
  assert grid.has_overlap(at(9, 0), existing)


def test_longer_booking_blocks_every_slot_it_covers(grid):
  existing = [booked(at(9, 0), minutes=60)]
  assert grid.has_overlap(at(9, 30), existing)
  assert not grid.has_overlap(at(10, 0), existing)


def test_only_booked_appointments_participate(grid):
  existing = [booked(at(9, 0), status=SlotStatus.AVAILABLE)]
  assert not grid.has_overlap(at(9, 0), existing)


def test_overlap_is_symmetric_with_distance(grid):
  base = at(12, 0)
  existing = [booked(base)]
  for offset in range(-90, 91, 5):
    candidate = base + timedelta(minutes=offset)
    assert grid.has_overlap(candidate, existing) == (abs(offset) < grid.slot_minutes)


def test_intervals_overlap_excludes_shared_endpoints():
  assert not intervals_overlap(at(9), at(10), at(10), at(11))
  assert intervals_overlap(at(9), at(10, 1), at(10), at(11))


def test_minutes_until_truncates_toward_zero():
  start = at(9, 0)
  assert minutes_until(start, start - timedelta(minutes=10, seconds=59)) == 10
  assert minutes_until(start, start - timedelta(minutes=30)) == 30
  assert minutes_until(start, start + timedelta(seconds=30)) == 0
  assert minutes_until(start, start + timedelta(minutes=2)) == -2


def test_to_local_naive_converts_aware_values():
  aware = datetime(2026, 10, 20, 9, 0, tzinfo=timezone.utc)
  converted = to_local_naive(aware)
  assert converted.tzinfo is None
  assert converted == aware.astimezone().replace(tzinfo=None)
  assert to_local_naive(at(9)) == at(9)


def test_describe_mentions_grid(grid):
  message = grid.describe()
  assert "30-minute" in message
  assert "07:00" in message
  assert "18:30" in message
  assert "zero seconds" in message
