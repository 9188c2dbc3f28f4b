import logging
from contextlib import asynccontextmanager
from datetime import datetime
from logging.config import dictConfig
from typing import Any, Callable, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from booking import BookingService
from config import Settings, load_settings
from errors import ErrorKind, Failure
from models import isoformat_local
from schemas import describe_error
from store import AppointmentStore, build_store


def configure_logging(level: str = "INFO") -> None:
  dictConfig(
    {
      "version": 1,
      "disable_existing_loggers": False,
      "formatters": {
        "json": {
          "()": "pythonjsonlogger.json.JsonFormatter",
          "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
        }
      },
      "handlers": {
        "console": {
          "class": "logging.StreamHandler",
          "formatter": "json",
          "level": level,
        }
      },
      "root": {"handlers": ["console"], "level": level},
    }
  )


logger = logging.getLogger(__name__)


def error_response(error: Failure) -> JSONResponse:
  return JSONResponse(status_code=error.status_code, content=error.to_dict())


def get_booking(request: Request) -> BookingService:
  return request.app.state.booking


router = APIRouter()


@router.get("/health")
def health():
  return {"status": "ok", "message": "Server is running", "timestamp": isoformat_local(datetime.now())}


@router.get("/appointments")
def list_appointments(
  date: Optional[str] = Query(None, description="YYYY-MM-DD"),
  booking: BookingService = Depends(get_booking),
):
  outcome = booking.list_for_date(date)
  if not outcome.ok:
    return error_response(outcome.error)
  return [a.to_dict() for a in outcome.value]


@router.get("/slots")
def list_slots(
  date: Optional[str] = Query(None, description="YYYY-MM-DD"),
  booking: BookingService = Depends(get_booking),
):
  outcome = booking.slots_for_date(date)
  if not outcome.ok:
    return error_response(outcome.error)
  return [
    {
      "start": isoformat_local(s["start"]),
      "end": isoformat_local(s["end"]),
      "status": s["status"].value,
      "appointmentId": s["appointment_id"],
      "bookable": s["bookable"],
    }
    for s in outcome.value
  ]


@router.post("/appointments", status_code=201)
def create_appointment(payload: Any = Body(None), booking: BookingService = Depends(get_booking)):
  outcome = booking.create(payload)
  if not outcome.ok:
    return error_response(outcome.error)
  return outcome.value.to_dict()


@router.delete("/appointments/{appointment_id}", status_code=204)
def cancel_appointment(appointment_id: str, booking: BookingService = Depends(get_booking)):
  outcome = booking.cancel(appointment_id)
  if not outcome.ok:
    return error_response(outcome.error)
  return Response(status_code=204)


def create_app(
  settings: Optional[Settings] = None,
  store: Optional[AppointmentStore] = None,
  clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
  if settings is None:
    settings = load_settings()
  if store is None:
    store = build_store(settings)

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    logger.info(
      "server.started",
      extra={
        "business_hours": f"{settings.start_hour}:00 - {settings.end_hour}:00",
        "slot_minutes": settings.slot_minutes,
        "cors_origins": list(settings.cors_origins),
        "api_base_url": settings.api_base_url,
      },
    )
    yield

  app = FastAPI(title="Slot Booking API", version="0.1.0", lifespan=lifespan)
  app.state.settings = settings
  app.state.booking = BookingService.from_settings(settings, store, clock=clock)

  @app.middleware("http")
  async def internal_errors(request: Request, call_next):
    try:
      return await call_next(request)
    except Exception:
      logger.exception("request.failed", extra={"method": request.method, "path": request.url.path})
      return error_response(Failure(ErrorKind.INTERNAL, "Internal server error"))

  allow_all_origins = settings.cors_origins == ("*",)
  app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=not allow_all_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
  )

  @app.exception_handler(RequestValidationError)
  async def invalid_request(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = describe_error(errors[0]) if errors else "Invalid request"
    return error_response(Failure(ErrorKind.INVALID_INPUT, message))

  app.include_router(router, prefix="/api")
  app.add_api_route("/health", health, methods=["GET"], include_in_schema=False)
  return app


_settings = load_settings()
configure_logging(_settings.log_level)
app = create_app(_settings)

if __name__ == "__main__":
  import uvicorn
  uvicorn.run(app, host=_settings.host, port=_settings.port)
