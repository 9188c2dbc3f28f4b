"""
Shared fixtures: a controllable clock, both store backends and an API client.
"""

import os
from datetime import datetime, timedelta

import pytest

# main builds a module-level app on import; keep it off the filesystem.
os.environ.setdefault("APPOINTMENT_STORE", "memory")

from fastapi.testclient import TestClient

from booking import BookingService
from config import Settings
from db import Base, make_engine, make_session_factory
from main import create_app
from scheduling import SlotGrid, to_local_naive
from store import MemoryAppointmentStore, SqlAppointmentStore

# Monday morning; "tomorrow" is 2026-10-20.
NOW = datetime(2026, 10, 19, 8, 0)
TOMORROW = "2026-10-20"


class FakeClock:
  def __init__(self, now: datetime):
    self.now = now

  def __call__(self) -> datetime:
    return self.now

  def set(self, now: datetime) -> None:
    self.now = now

  def advance(self, **kwargs) -> None:
    self.now += timedelta(**kwargs)


def local(value: str) -> datetime:
  """Parse an ISO timestamp from the API back into naive local time."""
  return to_local_naive(datetime.fromisoformat(value))


def make_sql_store(url: str = "sqlite://") -> SqlAppointmentStore:
  engine = make_engine(url)
  Base.metadata.create_all(bind=engine)
  return SqlAppointmentStore(make_session_factory(engine))


@pytest.fixture
def clock():
  return FakeClock(NOW)


@pytest.fixture
def grid():
  return SlotGrid()


@pytest.fixture(params=["memory", "sql"])
def store(request):
  if request.param == "memory":
    return MemoryAppointmentStore()
  return make_sql_store()


@pytest.fixture
def service(store, grid, clock):
  return BookingService(store, grid, clock=clock)


@pytest.fixture
def api_store():
  return MemoryAppointmentStore()


@pytest.fixture
def client(api_store, clock):
  app = create_app(Settings(store_backend="memory"), store=api_store, clock=clock)
  return TestClient(app)


@pytest.fixture(params=["memory", "sqlite-file"])
def shared_store(request, tmp_path):
  """Stores that many threads hit at once; the file-backed one uses a real connection pool."""
  if request.param == "memory":
    return MemoryAppointmentStore()
  return make_sql_store(f"sqlite:///{tmp_path / 'appointments.db'}")
