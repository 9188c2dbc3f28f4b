import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Optional, Union

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from config import Settings
from scheduling import SlotGrid

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
  def __init__(self, status_code: int, message: str, kind: Optional[str] = None):
    super().__init__(message)
    self.status_code = status_code
    self.message = message
    self.kind = kind


def default_retryable(exc: BaseException) -> bool:
  if isinstance(exc, httpx.TransportError):
    return True
  if isinstance(exc, ApiError):
    return exc.status_code >= 500
  return False


@dataclass(frozen=True)
class RetryPolicy:
  max_attempts: int = 3
  base_delay: float = 0.5
  multiplier: float = 2.0
  max_delay: float = 8.0
  retryable: Callable[[BaseException], bool] = field(default=default_retryable, compare=False)

  def __post_init__(self):
    if self.max_attempts < 1:
      raise ValueError("max_attempts must be >= 1")

  @classmethod
  def from_settings(cls, settings: Settings) -> "RetryPolicy":
    return cls(max_attempts=settings.retry_max_attempts, base_delay=settings.retry_backoff_seconds)

  def retrying(self, sleep: Callable[[float], None] = time.sleep) -> Retrying:
    return Retrying(
      stop=stop_after_attempt(self.max_attempts),
      wait=wait_exponential(multiplier=self.base_delay, exp_base=self.multiplier, max=self.max_delay),
      retry=retry_if_exception(self.retryable),
      before_sleep=_log_before_sleep,
      sleep=sleep,
      reraise=True,
    )


def _log_before_sleep(retry_state: RetryCallState) -> None:
  exc = retry_state.outcome.exception() if retry_state.outcome else None
  logger.warning(
    "client.retry",
    extra={
      "attempt": retry_state.attempt_number,
      "delay": getattr(retry_state.next_action, "sleep", None),
      "error": str(exc) if exc else None,
    },
  )


def _error_from_response(response: httpx.Response) -> ApiError:
  message = f"Request failed with status {response.status_code}"
  kind = None
  try:
    body = response.json()
  except ValueError:
    body = None
  if isinstance(body, dict):
    message = body.get("error") or message
    kind = body.get("kind")
  return ApiError(response.status_code, message, kind)


class AppointmentsClient:
  def __init__(
    self,
    base_url: str,
    policy: Optional[RetryPolicy] = None,
    *,
    timeout_seconds: float = 10.0,
    transport: Optional[httpx.BaseTransport] = None,
    sleep: Callable[[float], None] = time.sleep,
  ):
    self.policy = policy or RetryPolicy()
    self._sleep = sleep
    self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout_seconds, transport=transport)

  @classmethod
  def from_settings(cls, settings: Settings, **kwargs: Any) -> "AppointmentsClient":
    return cls(settings.api_base_url, RetryPolicy.from_settings(settings), **kwargs)

  def close(self) -> None:
    self._http.close()

  def __enter__(self) -> "AppointmentsClient":
    return self

  def __exit__(self, *exc_info) -> None:
    self.close()

  def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
    response = self._http.request(method, path, **kwargs)
    if response.is_error:
      raise _error_from_response(response)
    return response

  def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
    return self.policy.retrying(self._sleep)(self._send, method, path, **kwargs)

  def health(self) -> dict:
    return self._request("GET", "/health").json()

  def list_appointments(self, day: Union[date, str]) -> list[dict]:
    return self._request("GET", "/appointments", params={"date": str(day)}).json()

  def list_slots(self, day: Union[date, str]) -> list[dict]:
    return self._request("GET", "/slots", params={"date": str(day)}).json()

  def create_appointment(self, name: str, email: str, start: Union[datetime, str]) -> dict:
    if isinstance(start, datetime):
      start = start.isoformat()
    payload = {"name": name, "email": email, "start": start}
    return self._request("POST", "/appointments", json=payload).json()

  def cancel_appointment(self, appointment_id: str) -> None:
    self._request("DELETE", f"/appointments/{appointment_id}")


def generate_time_slots(day: date, grid: SlotGrid) -> list[str]:
  """Candidate slot starts for a date, as the client renders them."""
  return [start.isoformat() for start in grid.day_starts(day)]
