from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
  INVALID_INPUT = "INVALID_INPUT"
  PAST_BOOKING = "PAST_BOOKING"
  INVALID_SLOT = "INVALID_SLOT"
  SLOT_CONFLICT = "SLOT_CONFLICT"
  INVALID_ID = "INVALID_ID"
  NOT_FOUND = "NOT_FOUND"
  NOT_ACTIVE = "NOT_ACTIVE"
  TOO_LATE = "TOO_LATE"
  INVALID_DATE = "INVALID_DATE"
  INTERNAL = "INTERNAL"


STATUS_CODES: dict[ErrorKind, int] = {
  ErrorKind.INVALID_INPUT: 400,
  ErrorKind.PAST_BOOKING: 400,
  ErrorKind.INVALID_SLOT: 400,
  ErrorKind.SLOT_CONFLICT: 409,
  ErrorKind.INVALID_ID: 400,
  ErrorKind.NOT_FOUND: 404,
  ErrorKind.NOT_ACTIVE: 400,
  ErrorKind.TOO_LATE: 403,
  ErrorKind.INVALID_DATE: 400,
  ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class Failure:
  kind: ErrorKind
  message: str

  @property
  def status_code(self) -> int:
    return STATUS_CODES[self.kind]

  def to_dict(self) -> dict:
    return {"error": self.message, "statusCode": self.status_code, "kind": self.kind.value}


@dataclass(frozen=True)
class Outcome(Generic[T]):
  """Result of a validation step or workflow: either a value or a failure."""

  value: Optional[T] = None
  error: Optional[Failure] = None

  @property
  def ok(self) -> bool:
    return self.error is None


def success(value: T) -> Outcome[T]:
  return Outcome(value=value)


def failure(kind: ErrorKind, message: str) -> Outcome:
  return Outcome(error=Failure(kind, message))
