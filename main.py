# main.py

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import STORE_MEMORY, Settings, get_settings
from database import create_client, get_attendance_collection, get_database, get_employee_collection
from exceptions import AttendanceError
from repositories.attendance_repository import (
    AttendanceRepository,
    InMemoryAttendanceRepository,
    MongoAttendanceRepository,
)
from repositories.employee_repository import (
    EmployeeRepository,
    InMemoryEmployeeRepository,
    MongoEmployeeRepository,
)
from routers import attendance_router, realtime_router
from services.attendance_service import AttendanceService
from services.notifier import BroadcastNotifier
from services.seed_service import seed_employees
from utils.date_utils import utc_now

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    attendance: Optional[AttendanceRepository] = None,
    employees: Optional[EmployeeRepository] = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """
    Build the application.

    Repositories are picked from ATTENDANCE_STORE unless passed in
    explicitly (tests do this). There is no fallback from one store to the
    other at runtime.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        attendance_repo, employee_repo = attendance, employees
        if attendance_repo is None or employee_repo is None:
            if settings.attendance_store == STORE_MEMORY:
                logger.warning("Using the in-memory attendance store; records are lost on restart")
                attendance_repo = attendance_repo or InMemoryAttendanceRepository()
                employee_repo = employee_repo or InMemoryEmployeeRepository()
            else:
                client = create_client(settings)
                db = get_database(client, settings)
                attendance_repo = attendance_repo or MongoAttendanceRepository(get_attendance_collection(db))
                employee_repo = employee_repo or MongoEmployeeRepository(get_employee_collection(db))

        await attendance_repo.ensure_indexes()
        await employee_repo.ensure_indexes()
        if settings.seed_demo_data:
            await seed_employees(employee_repo)

        notifier = BroadcastNotifier(send_timeout=settings.ws_send_timeout)
        app.state.settings = settings
        app.state.notifier = notifier
        app.state.attendance_service = AttendanceService(
            attendance_repo, employee_repo, notifier, tz=settings.tz, clock=clock
        )
        logger.info("Attendance service ready (store=%s, timezone=%s)",
                    settings.attendance_store, settings.attendance_timezone)
        try:
            yield
        finally:
            if client is not None:
                client.close()

    app = FastAPI(title="Parlour Attendance Service", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AttendanceError)
    async def attendance_error_handler(request: Request, exc: AttendanceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": exc.name},
        )

    app.include_router(attendance_router.router)
    app.include_router(realtime_router.router)

    @app.get("/health")
    async def health(request: Request):
        notifier = request.app.state.notifier
        return {
            "status": "OK",
            "store": settings.attendance_store,
            "connectedClients": notifier.connection_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the Parlour Attendance Service"}

    return app


_settings = get_settings()
configure_logging(_settings)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=_settings.host, port=_settings.port)
