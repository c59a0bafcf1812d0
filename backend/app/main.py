import asyncio
import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from .api import admin as admin_api
from .api import application as application_api
from .api import auth as auth_api
from .api import job as job_api
from .config import FRONTEND_ORIGINS, LOG_LEVEL, RESYNC_INTERVAL_SECONDS, RESYNC_ON_STARTUP, STORAGE_UPLOAD_URL, UPLOAD_DIR
from .database import SessionLocal, engine, init_db
from .services.count_sync import resync_application_counts
from .utils.error_handlers import register_error_handlers

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Job Board API")

app.include_router(auth_api.router)
app.include_router(job_api.router)
app.include_router(application_api.router)
app.include_router(admin_api.router)

register_error_handlers(app)

_default_origins = ["http://localhost:5173", "http://127.0.0.1:5173"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=[*_default_origins, *FRONTEND_ORIGINS],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not STORAGE_UPLOAD_URL:
    # Local storage mode: uploaded files are served straight from disk.
    Path(UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")


def _run_resync() -> dict:
    db = SessionLocal()
    try:
        return resync_application_counts(db)
    finally:
        db.close()


async def _resync_loop(interval_s: int) -> None:
    while True:
        await asyncio.sleep(interval_s)
        try:
            await run_in_threadpool(_run_resync)
        except Exception:
            logger.exception("Periodic application count resync failed")


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "Backend running",
        "service": "Job Board API",
    }


@app.on_event("startup")
async def on_startup() -> None:
    app.state.resync_task = None
    try:
        init_db()
        app.state.db_init_error = None
    except Exception as e:
        logger.exception("Database init failed")
        app.state.db_init_error = str(e)
        return

    if RESYNC_ON_STARTUP:
        try:
            await run_in_threadpool(_run_resync)
        except Exception:
            logger.exception("Startup application count resync failed")

    if RESYNC_INTERVAL_SECONDS > 0:
        logger.info("Resyncing application counts every %ss", RESYNC_INTERVAL_SECONDS)
        app.state.resync_task = asyncio.create_task(_resync_loop(RESYNC_INTERVAL_SECONDS))


@app.on_event("shutdown")
async def on_shutdown() -> None:
    task = getattr(app.state, "resync_task", None)
    if task:
        task.cancel()


@app.get("/db/health")
def db_health():
    if getattr(app.state, "db_init_error", None):
        raise HTTPException(
            status_code=503,
            detail=f"DB init failed: {app.state.db_init_error}",
        )

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"DB connection failed: {e}",
        )

    return {"status": "ok"}
