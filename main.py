# type: ignore
# pyright: reportGeneralTypeIssues=false
# pyright: reportOptionalMemberAccess=false
"""
Birthday Fund Service
=====================
Collects gift money for team members' birthdays over Telegram: yearly
obligations, contribution requests, team-lead notices, birthday wishes and
the final payout confirmation. Daily passes run on an in-process scheduler
and can be triggered manually by administrators.

    scan ─► fan-out ─► notify members ─► notify lead ─► wish ─► payout

Port: 8005
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from birthday_fund.controllers import (
    admin_controller,
    directory_controller,
    system_controller,
    telegram_controller,
)
from birthday_fund.core.config import settings
from birthday_fund.core.database import engine
from birthday_fund.core.dependencies import get_conversation_store, get_trigger_service
from birthday_fund.core.errors import InactiveTeam, InvalidInput
from birthday_fund.core.logging import get_logger
from birthday_fund.core.schema import create_schema
from birthday_fund.middleware import MetricsMiddleware, RequestIDMiddleware
from birthday_fund.schemas import ErrorResponse
from birthday_fund.services.scheduler import build_scheduler

logger = get_logger(settings.SERVICE_NAME)


@asynccontextmanager
async def lifespan(application: FastAPI):
    if settings.INIT_SCHEMA:
        create_schema(engine)
        logger.info("Database schema ensured")
    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_scheduler(get_trigger_service())
        scheduler.start()
        logger.info("Scheduler started tz=%s", settings.TIMEZONE)
    logger.info("%s v%s starting", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    logger.info(
        "%s shutting down — %d open conversations dropped",
        settings.SERVICE_NAME, len(get_conversation_store()),
    )
    engine.dispose()


app = FastAPI(
    title="Birthday Fund Service",
    description="Birthday gift-collection workflow driven through a Telegram bot.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    responses={
        422: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(system_controller.router)
app.include_router(admin_controller.router)
app.include_router(directory_controller.router)
app.include_router(telegram_controller.router)


@app.exception_handler(InactiveTeam)
async def inactive_team_handler(request: Request, exc: InactiveTeam):
    return JSONResponse(status_code=409, content={"error": "inactive_team", "detail": str(exc)})


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(status_code=422, content={"error": "invalid_input", "detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level=settings.LOG_LEVEL.lower())
