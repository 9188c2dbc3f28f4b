import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
  host: str = "0.0.0.0"
  port: int = 3001

  # Business day is [start_hour:00, end_hour:00), tiled by slot_minutes.
  start_hour: int = 7
  end_hour: int = 19
  slot_minutes: int = 30

  cors_origins: tuple[str, ...] = ("*",)
  api_base_url: str = "http://localhost:3001/api"

  # "database" (SQLAlchemy, SQLite fallback) or "memory"
  store_backend: str = "database"
  database_url: str = ""

  log_level: str = "INFO"

  # Client retry tuning
  retry_max_attempts: int = 3
  retry_backoff_seconds: float = 0.5


def _int_env(name: str, default: int) -> int:
  raw = (os.getenv(name) or "").strip()
  if not raw:
    return default
  try:
    return int(raw)
  except ValueError as e:
    raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected an integer.") from e


def _float_env(name: str, default: float) -> float:
  raw = (os.getenv(name) or "").strip()
  if not raw:
    return default
  try:
    return float(raw)
  except ValueError as e:
    raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected a number.") from e


def _parse_origins(raw: str) -> tuple[str, ...]:
  parts = [p.strip().strip('"') for p in raw.split(",")]
  parts = [p for p in parts if p]
  if not parts or "*" in parts:
    return ("*",)
  return tuple(dict.fromkeys(parts))


def validate_business_hours(start_hour: int, end_hour: int, slot_minutes: int) -> None:
  if not 0 <= start_hour < end_hour <= 24:
    raise RuntimeError(
      f"Invalid business hours: START_HOUR={start_hour}, END_HOUR={end_hour}. "
      "Expected 0 <= START_HOUR < END_HOUR <= 24."
    )
  if slot_minutes < 1 or 60 % slot_minutes:
    raise RuntimeError(f"SLOT_MINUTES must divide 60, got {slot_minutes}")


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
  # dotenv_path allows overriding in tests; existing env always wins.
  load_dotenv(dotenv_path=dotenv_path, override=False)

  port = _int_env("PORT", 3001)
  start_hour = _int_env("START_HOUR", 7)
  end_hour = _int_env("END_HOUR", 19)
  slot_minutes = _int_env("SLOT_MINUTES", 30)
  validate_business_hours(start_hour, end_hour, slot_minutes)

  store_backend = (os.getenv("APPOINTMENT_STORE") or "database").strip().lower()
  if store_backend not in {"database", "memory"}:
    raise RuntimeError(f"Invalid APPOINTMENT_STORE value: {store_backend!r}. Expected 'database' or 'memory'.")

  retry_max_attempts = _int_env("RETRY_MAX_ATTEMPTS", 3)
  if retry_max_attempts < 1:
    raise RuntimeError("RETRY_MAX_ATTEMPTS must be >= 1")

  return Settings(
    host=(os.getenv("HOST") or "0.0.0.0").strip(),
    port=port,
    start_hour=start_hour,
    end_hour=end_hour,
    slot_minutes=slot_minutes,
    cors_origins=_parse_origins(os.getenv("CORS_ORIGIN", "*")),
    api_base_url=(os.getenv("API_BASE_URL") or f"http://localhost:{port}/api").strip().rstrip("/"),
    store_backend=store_backend,
    database_url=(os.getenv("DATABASE_URL") or "").strip(),
    log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    retry_max_attempts=retry_max_attempts,
    retry_backoff_seconds=_float_env("RETRY_BACKOFF_SECONDS", 0.5),
  )
