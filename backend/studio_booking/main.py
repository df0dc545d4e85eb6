import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db
from .redis_client import redis_client
from .routers import admin, appointments, services
from .services.errors import AppointmentError

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready")
    yield


app = FastAPI(title="Studio Booking API", lifespan=lifespan)


@app.exception_handler(AppointmentError)
async def appointment_error_handler(request: Request, exc: AppointmentError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(services.router)
app.include_router(appointments.router)
app.include_router(admin.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except Exception:
        logger.exception("Redis health check failed")
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}
