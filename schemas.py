import re
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

from errors import ErrorKind, Outcome, failure, success
from scheduling import to_local_naive

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

MAX_FIELD_LENGTH = 100


class CreateAppointment(BaseModel):
  model_config = ConfigDict(str_strip_whitespace=True)

  name: str = Field(min_length=1, max_length=MAX_FIELD_LENGTH)
  email: EmailStr
  start: datetime

  @field_validator("email", mode="before")
  @classmethod
  def _normalize_email(cls, value: Any) -> Any:
    if isinstance(value, str):
      return value.strip().lower()
    return value

  @field_validator("email")
  @classmethod
  def _email_length(cls, value: str) -> str:
    if len(value) > MAX_FIELD_LENGTH:
      raise ValueError("Email too long")
    return value

  @field_validator("start", mode="before")
  @classmethod
  def _parse_start(cls, value: Any) -> datetime:
    # Only ISO-8601 strings; no epoch numbers or partial dates.
    if not isinstance(value, str):
      raise ValueError("Invalid datetime format")
    try:
      parsed = datetime.fromisoformat(value.strip())
    except ValueError:
      raise ValueError("Invalid datetime format") from None
    try:
      return to_local_naive(parsed)
    except OverflowError:
      # 0001-01-01T00:00+01:00 has no local equivalent
      raise ValueError("Invalid datetime format") from None


def describe_error(err: dict) -> str:
  field = ".".join(str(p) for p in err.get("loc", ())) or "body"
  msg = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
  return f"{field}: {msg}"


def _first_error(exc: ValidationError) -> str:
  return describe_error(exc.errors()[0])


def validate_create(payload: Any) -> Outcome[CreateAppointment]:
  if not isinstance(payload, dict):
    return failure(ErrorKind.INVALID_INPUT, "Request body must be a JSON object with name, email and start")
  try:
    return success(CreateAppointment.model_validate(payload))
  except ValidationError as e:
    return failure(ErrorKind.INVALID_INPUT, _first_error(e))


def validate_appointment_id(raw: Any) -> Outcome[str]:
  if not isinstance(raw, str) or not _UUID_RE.match(raw.strip()):
    return failure(ErrorKind.INVALID_ID, "Invalid appointment ID format")
  return success(raw.strip().lower())


def validate_date(raw: Any) -> Outcome[date]:
  if raw is None or (isinstance(raw, str) and not raw.strip()):
    return failure(ErrorKind.INVALID_DATE, "Date parameter is required (YYYY-MM-DD format)")
  if not isinstance(raw, str) or not _DATE_RE.match(raw.strip()):
    return failure(ErrorKind.INVALID_DATE, "Invalid date format. Expected YYYY-MM-DD")
  try:
    return success(date.fromisoformat(raw.strip()))
  except ValueError:
    return failure(ErrorKind.INVALID_DATE, "Invalid date")
