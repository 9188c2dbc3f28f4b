import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from config import Settings
from db import Base, make_engine, make_session_factory
from models import Appointment, AppointmentRecord, SlotStatus

logger = logging.getLogger(__name__)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
  start = datetime.combine(day, time(0, 0))
  return start, start + timedelta(days=1)


class AppointmentStore(ABC):
  def __init__(self):
    self._lock = threading.RLock()

  @contextmanager
  def atomic(self) -> Iterator[None]:
    with self._lock:
      yield

  @abstractmethod
  def add(self, appt: Appointment) -> None:
    ...

  @abstractmethod
  def remove(self, appointment_id: str) -> bool:
    ...

  @abstractmethod
  def get(self, appointment_id: str) -> Optional[Appointment]:
    ...

  @abstractmethod
  def overlapping(self, start: datetime, end: datetime) -> list[Appointment]:
    """Appointments that may intersect [start, end); a superset is allowed."""

  @abstractmethod
  def on_date(self, day: date) -> list[Appointment]:
    """Booked appointments starting on ``day``, in insertion order."""

  @abstractmethod
  def all(self) -> list[Appointment]:
    ...


class MemoryAppointmentStore(AppointmentStore):
  def __init__(self):
    super().__init__()
    self._items: list[Appointment] = []

  def add(self, appt: Appointment) -> None:
    with self._lock:
      self._items.append(appt)

  def remove(self, appointment_id: str) -> bool:
    with self._lock:
      for i, appt in enumerate(self._items):
        if appt.id == appointment_id:
          del self._items[i]
          return True
      return False

  def get(self, appointment_id: str) -> Optional[Appointment]:
    with self._lock:
      return next((a for a in self._items if a.id == appointment_id), None)

  def overlapping(self, start: datetime, end: datetime) -> list[Appointment]:
    return self.all()

  def on_date(self, day: date) -> list[Appointment]:
    lo, hi = _day_bounds(day)
    return [a for a in self.all() if a.status is SlotStatus.BOOKED and lo <= a.start < hi]

  def all(self) -> list[Appointment]:
    with self._lock:
      return list(self._items)


class SqlAppointmentStore(AppointmentStore):
  def __init__(self, session_factory: sessionmaker):
    super().__init__()
    self._session_factory = session_factory

  @contextmanager
  def _session(self) -> Iterator[Session]:
    db = self._session_factory()
    try:
      yield db
    except Exception:
      db.rollback()
      raise
    finally:
      db.close()

  def add(self, appt: Appointment) -> None:
    with self._lock, self._session() as db:
      db.add(AppointmentRecord.from_appointment(appt))
      db.commit()

  def remove(self, appointment_id: str) -> bool:
    with self._lock, self._session() as db:
      deleted = (
        db.query(AppointmentRecord)
        .filter(AppointmentRecord.id == appointment_id)
        .delete(synchronize_session=False)
      )
      db.commit()
      return deleted > 0

  def get(self, appointment_id: str) -> Optional[Appointment]:
    with self._session() as db:
      row = db.query(AppointmentRecord).filter(AppointmentRecord.id == appointment_id).first()
      return row.to_appointment() if row else None

  def overlapping(self, start: datetime, end: datetime) -> list[Appointment]:
    with self._session() as db:
      rows = (
        db.query(AppointmentRecord)
        .filter(AppointmentRecord.start_time < end)
        .filter(AppointmentRecord.end_time > start)
        .order_by(AppointmentRecord.seq)
        .all()
      )
      return [r.to_appointment() for r in rows]

  def on_date(self, day: date) -> list[Appointment]:
    lo, hi = _day_bounds(day)
    with self._session() as db:
      rows = (
        db.query(AppointmentRecord)
        .filter(func.upper(AppointmentRecord.status) == SlotStatus.BOOKED.value)
        .filter(AppointmentRecord.start_time >= lo)
        .filter(AppointmentRecord.start_time < hi)
        .order_by(AppointmentRecord.seq)
        .all()
      )
      return [r.to_appointment() for r in rows]

  def all(self) -> list[Appointment]:
    with self._session() as db:
      rows = db.query(AppointmentRecord).order_by(AppointmentRecord.seq).all()
      return [r.to_appointment() for r in rows]


def build_store(settings: Settings) -> AppointmentStore:
  if settings.store_backend == "memory":
    logger.info("store.memory")
    return MemoryAppointmentStore()
  engine = make_engine(settings.database_url)
  Base.metadata.create_all(bind=engine)
  logger.info("store.database", extra={"url": engine.url.render_as_string(hide_password=True)})
  return SqlAppointmentStore(make_session_factory(engine))
