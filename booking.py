import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from config import Settings
from errors import ErrorKind, Outcome, failure, success
from models import Appointment, SlotStatus
from scheduling import SlotGrid, intervals_overlap, minutes_until
from schemas import validate_appointment_id, validate_create, validate_date
from store import AppointmentStore

logger = logging.getLogger(__name__)


def _new_id() -> str:
  return str(uuid.uuid4())


class BookingService:
  """Create, cancel and list appointments for a single bookable resource."""

  def __init__(
    self,
    store: AppointmentStore,
    grid: SlotGrid,
    clock: Callable[[], datetime] = datetime.now,
    id_factory: Callable[[], str] = _new_id,
  ):
    self.store = store
    self.grid = grid
    self.clock = clock
    self.id_factory = id_factory

  @classmethod
  def from_settings(cls, settings: Settings, store: AppointmentStore, clock: Optional[Callable[[], datetime]] = None) -> "BookingService":
    return cls(store, SlotGrid.from_settings(settings), clock=clock or datetime.now)

  def create(self, payload: Any) -> Outcome[Appointment]:
    parsed = validate_create(payload)
    if not parsed.ok:
      return self._reject("create", parsed)
    data = parsed.value

    if not data.start > self.clock():
      return self._reject("create", failure(ErrorKind.PAST_BOOKING, "Cannot book appointments in the past"))
    if not self.grid.is_valid_slot(data.start):
      return self._reject("create", failure(ErrorKind.INVALID_SLOT, self.grid.describe()))

    end = self.grid.slot_end(data.start)
    with self.store.atomic():
      if self.grid.has_overlap(data.start, self.store.overlapping(data.start, end)):
        return self._reject("create", failure(ErrorKind.SLOT_CONFLICT, "Time slot is already booked"))
      appt = Appointment(
        id=self.id_factory(),
        name=data.name,
        email=data.email,
        start=data.start,
        end=end,
        status=SlotStatus.BOOKED,
        created_at=self.clock(),
      )
      self.store.add(appt)

    logger.info("appointment.created", extra={"appointment_id": appt.id, "start": appt.start.isoformat()})
    return success(appt)

  def cancel(self, appointment_id: Any) -> Outcome[Appointment]:
    checked = validate_appointment_id(appointment_id)
    if not checked.ok:
      return self._reject("cancel", checked)

    with self.store.atomic():
      appt = self.store.get(checked.value)
      if appt is None:
        return self._reject("cancel", failure(ErrorKind.NOT_FOUND, "Appointment not found"))
      if appt.status is not SlotStatus.BOOKED:
        return self._reject("cancel", failure(ErrorKind.NOT_ACTIVE, "Appointment is not active"))

      # A start already in the past is negative here and still rejected.
      remaining = minutes_until(appt.start, self.clock())
      if remaining < self.grid.slot_minutes:
        return self._reject("cancel", failure(
          ErrorKind.TOO_LATE,
          f"Cannot cancel within {self.grid.slot_minutes} minutes of start time. "
          f"Appointment starts in {remaining} minutes.",
        ))
      self.store.remove(appt.id)

    logger.info("appointment.cancelled", extra={"appointment_id": appt.id, "minutes_before_start": remaining})
    return success(appt)

  def list_for_date(self, raw_date: Any) -> Outcome[list[Appointment]]:
    day = validate_date(raw_date)
    if not day.ok:
      return day
    return success(self.store.on_date(day.value))

  def slots_for_date(self, raw_date: Any) -> Outcome[list[dict]]:
    day = validate_date(raw_date)
    if not day.ok:
      return day
    booked = self.store.on_date(day.value)
    now = self.clock()
    slots = []
    for start in self.grid.day_starts(day.value):
      end = self.grid.slot_end(start)
      owner = next((a for a in booked if intervals_overlap(a.start, a.end, start, end)), None)
      slots.append({
        "start": start,
        "end": end,
        "status": SlotStatus.BOOKED if owner else SlotStatus.AVAILABLE,
        "appointment_id": owner.id if owner else None,
        "bookable": owner is None and start > now,
      })
    return success(slots)

  def _reject(self, operation: str, outcome: Outcome) -> Outcome:
    logger.info(
      "appointment.rejected",
      extra={"operation": operation, "kind": outcome.error.kind.value, "reason": outcome.error.message},
    )
    return outcome
