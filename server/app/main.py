import logging

import app.models  # noqa: F401
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.clock import now_utc
from app.core.config import settings
from app.core.db import SessionLocal
from app.core.errors import DomainError
from app.models.organization import Organization
from app.routers import attendance as attendance_router
from app.routers import events as events_router
from app.routers import financial as financial_router
from app.routers import members as members_router
from app.routers import whoami as whoami_router
from app.services import absences as absences_service
from app.services import notifications
from app.services.tenancy import TenantScope

app = FastAPI(title="OrgSuite Attendance API", version="0.1.0")

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(timezone="UTC")

HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "not_authenticated",
    status.HTTP_403_FORBIDDEN: "permission_denied",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "validation_error",
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(whoami_router.router)
app.include_router(events_router.router)
app.include_router(attendance_router.router)
app.include_router(financial_router.router)
app.include_router(members_router.router)


@app.exception_handler(DomainError)
async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(
        "domain_error",
        extra={"code": exc.code, "path": request.url.path, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": code},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_errors(exc), "code": "validation_error"},
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "loc": list(error.get("loc", ())),
                "msg": str(error.get("msg", "")),
                "type": error.get("type"),
            }
        )
    return errors


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


def _run_absence_sweep() -> None:
    now = now_utc()
    with SessionLocal() as session:
        organization_ids = [row.id for row in session.query(Organization.id).all()]
        for organization_id in organization_ids:
            scope = TenantScope(session, organization_id)
            outcomes = absences_service.process_expired_events(scope, now=now)
            for outcome in outcomes:
                for entry in outcome.fines:
                    notifications.notify(notifications.FINANCIAL_UPDATED, notifications.financial_updated_payload(entry))
            if outcomes:
                logger.info(
                    "absence_sweep_job",
                    extra={
                        "organization_id": organization_id,
                        "events": [outcome.event_id for outcome in outcomes],
                        "absent_marked": sum(outcome.absent_count for outcome in outcomes),
                    },
                )


@app.on_event("startup")
def start_scheduled_jobs() -> None:
    interval = settings.AUTO_SWEEP_INTERVAL_MINUTES
    if not interval:
        return
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        _run_absence_sweep,
        trigger="interval",
        minutes=interval,
        id="absence_sweep",
        replace_existing=True,
    )


@app.on_event("shutdown")
def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
