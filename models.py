from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime

from db import Base


class SlotStatus(str, Enum):
  AVAILABLE = "AVAILABLE"
  BOOKED = "BOOKED"

  @classmethod
  def parse(cls, value: str) -> "SlotStatus":
    # "booked" and "BOOKED" are the same status
    return cls(str(value).strip().upper())


def isoformat_local(value: datetime) -> str:
  # Naive datetimes are local time; render them with the local offset.
  return value.astimezone().isoformat()


@dataclass(frozen=True)
class Appointment:
  id: str
  name: str
  email: str
  start: datetime
  end: datetime
  status: SlotStatus
  created_at: datetime

  def to_dict(self) -> dict:
    return {
      "id": self.id,
      "name": self.name,
      "email": self.email,
      "start": isoformat_local(self.start),
      "end": isoformat_local(self.end),
      "status": self.status.value,
      "createdAt": isoformat_local(self.created_at),
    }


class AppointmentRecord(Base):
  __tablename__ = "appointments"

  seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
  name: Mapped[str] = mapped_column(String(100))
  email: Mapped[str] = mapped_column(String(100))
  start_time: Mapped[datetime] = mapped_column(DateTime, index=True)
  end_time: Mapped[datetime] = mapped_column(DateTime, index=True)
  status: Mapped[str] = mapped_column(String(16), default=SlotStatus.BOOKED.value)
  created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

  @classmethod
  def from_appointment(cls, appt: Appointment) -> "AppointmentRecord":
    return cls(
      id=appt.id,
      name=appt.name,
      email=appt.email,
      start_time=appt.start,
      end_time=appt.end,
      status=appt.status.value,
      created_at=appt.created_at,
    )

  def to_appointment(self) -> Appointment:
    return Appointment(
      id=self.id,
      name=self.name,
      email=self.email,
      start=self.start_time,
      end=self.end_time,
      status=SlotStatus.parse(self.status),
      created_at=self.created_at,
    )
