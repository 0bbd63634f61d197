# gmao/main.py

import os
import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from arq import cron
from arq.connections import create_pool, RedisSettings

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gmao.core.config import settings
from gmao.core.database import engine, get_session
from gmao.core.exceptions import GmaoError

from gmao import API_PREFIX

# Task modules
from gmao.core import tasks as core_tasks
from gmao.domains.shared import tasks as shared_tasks
from gmao.domains.inv import tasks as inv_tasks

# Domain routers
from gmao.domains.usr.routers import router as usr_router
from gmao.domains.asset.routers import router as asset_router
from gmao.domains.tech.routers import router as tech_router
from gmao.domains.inv.routers import router as inv_router
from gmao.domains.wo.routers import router as wo_router
from gmao.domains.rpt.routers import router as rpt_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Functions the arq worker can run
worker_functions = [
    core_tasks.health_check_database_task,
    shared_tasks.dispatch_notification_task,
    inv_tasks.low_stock_report_task,
]


class ArqWorkerSettings:
    """Run with `arq gmao.main.ArqWorkerSettings`."""
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    cron_jobs = [
        cron(core_tasks.health_check_database_task, hour=0, minute=0, timeout=300, keep_result=600),
        cron(inv_tasks.low_stock_report_task, hour=6, minute=0, timeout=600, keep_result=3600),
    ]


# =============================================================================
# Lifespan: arq Redis pool
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Creates the arq Redis pool used to enqueue notifications. Without Redis the
    API still serves requests; notifications are then only logged.
    """
    logger.info("Starting %s (%s)", settings.APP_NAME, settings.APP_ENV)
    try:
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("arq Redis pool created.")
    except Exception as e:
        app.state.redis = None
        logger.warning("arq Redis pool unavailable, notifications will only be logged: %s", e)

    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    try:
        if app.state.redis is not None:
            await app.state.redis.close()
            logger.info("arq Redis pool closed.")
        await engine.dispose()
        logger.info("Database connection pool disposed.")
    except Exception as e:
        logger.error("Error during shutdown: %s", e)


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Uploaded work order images
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error rendering
# =============================================================================
@app.exception_handler(GmaoError)
async def gmao_error_handler(request: Request, exc: GmaoError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# =============================================================================
# Domain routers
# =============================================================================
app.include_router(usr_router, prefix=f"{API_PREFIX}/usr", tags=["User Management"])
app.include_router(asset_router, prefix=f"{API_PREFIX}/asset", tags=["Client & Machine Management"])
app.include_router(tech_router, prefix=f"{API_PREFIX}/tech", tags=["Technician Management"])
app.include_router(inv_router, prefix=f"{API_PREFIX}/inv", tags=["Inventory Management"])
app.include_router(wo_router, prefix=f"{API_PREFIX}/wo", tags=["Work Order Management"])
app.include_router(rpt_router, prefix=f"{API_PREFIX}/rpt", tags=["Reporting"])


@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Runs `SELECT 1` against the database."""
    try:
        result = await session.exec(select(1))
        if result.first():
            return {"status": "ok", "database_connection": "successful"}
    except Exception as e:
        logger.error("Health check failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}",
        )
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Database health check failed: No result from test query",
    )
