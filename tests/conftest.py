import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


# Ensure `import backend.app...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Config is read once at import time, and test modules import backend code during
# collection, so the environment has to be in place before anything else runs.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="jobboard-tests-"))
os.environ["DISABLE_DOTENV"] = "1"
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_TEST_ROOT / 'test.sqlite3'}"
os.environ["UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["STORAGE_UPLOAD_URL"] = ""
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AUTH_RATE_LIMIT_MAX_REQUESTS"] = "100000"
os.environ["RESYNC_ON_STARTUP"] = "0"
os.environ["RESYNC_INTERVAL_SECONDS"] = "0"
for _name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASS", "SMTP_FROM"):
    os.environ[_name] = ""


@pytest.fixture(scope="session")
def test_db_path() -> Path:
    return _TEST_ROOT / "test.sqlite3"


@pytest.fixture()
def app(test_db_path: Path) -> FastAPI:
    """
    Create a FastAPI app wired to a temporary SQLite DB.

    We intentionally do NOT import `app.main` so no startup hooks (resync loop) run.
    """
    from backend.app import database as db

    engine = create_engine(
        os.environ["DATABASE_URL"],
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Patch the shared database module so router dependencies use the test DB.
    db.engine = engine
    db.SessionLocal = TestingSessionLocal

    # Import models so Base metadata is populated, then create tables.
    from backend.app import models  # noqa: F401

    db.Base.metadata.drop_all(bind=engine)
    db.Base.metadata.create_all(bind=engine)

    from backend.app.api import admin as admin_api
    from backend.app.api import application as application_api
    from backend.app.api import auth as auth_api
    from backend.app.api import job as job_api
    from backend.app.services.rate_limiter import auth_limiter
    from backend.app.utils.error_handlers import register_error_handlers

    auth_limiter.reset()

    fastapi_app = FastAPI()
    fastapi_app.include_router(auth_api.router)
    fastapi_app.include_router(job_api.router)
    fastapi_app.include_router(application_api.router)
    fastapi_app.include_router(admin_api.router)
    register_error_handlers(fastapi_app)

    uploads = Path(os.environ["UPLOAD_DIR"])
    uploads.mkdir(parents=True, exist_ok=True)
    fastapi_app.mount("/uploads", StaticFiles(directory=uploads), name="uploads")

    return fastapi_app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(app: FastAPI):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    from backend.app.database import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
