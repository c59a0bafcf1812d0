import os
from pathlib import Path
from dotenv import load_dotenv

# Override=True so changes in backend/.env take effect on process reload (and not get
# stuck on old environment variables).
#
# For automated tests (SQLite), we need to prevent backend/.env from overriding the
# test DATABASE_URL. Set DISABLE_DOTENV=1 to skip loading .env.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv(override=True)


def _env_bool(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or default).strip() in {"1", "true", "True", "yes", "YES"}


_raw_database_url = (os.getenv("DATABASE_URL") or "").strip()
# Default to a local SQLite DB for dev so the backend can start out-of-the-box.
# Use an absolute path so it works regardless of current working directory.
_default_sqlite_path = (Path(__file__).resolve().parent.parent / "dev.db").as_posix()
DATABASE_URL = _raw_database_url or f"sqlite:///{_default_sqlite_path}"

# development | production | test
APP_ENV = (os.getenv("APP_ENV") or "development").strip().lower()
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

# Auth / JWT
# NOTE: keep a default for local dev so the server can boot even if SECRET_KEY isn't set.
SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret_change_me")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)) or "10080")
PASSWORD_RESET_EXPIRE_MINUTES = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60") or "60")
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12") or "12")
AUTH_COOKIE_NAME = "auth_token"
AUTH_COOKIE_SECURE = _env_bool("AUTH_COOKIE_SECURE", "1" if APP_ENV == "production" else "0")

# Rate limiting for /auth routes (per client IP, sliding window)
AUTH_RATE_LIMIT_MAX_REQUESTS = int(os.getenv("AUTH_RATE_LIMIT_MAX_REQUESTS", "100") or "100")
AUTH_RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("AUTH_RATE_LIMIT_WINDOW_SECONDS", "900") or "900")

# File uploads
# Absolute path; override with UPLOAD_DIR in env (useful for tests).
UPLOAD_DIR = os.getenv("UPLOAD_DIR") or (Path(__file__).resolve().parent.parent / "uploads").as_posix()
PUBLIC_BASE_URL = (os.getenv("PUBLIC_BASE_URL") or "http://localhost:8000").rstrip("/")

# External object storage. When STORAGE_UPLOAD_URL is empty, files stay under UPLOAD_DIR
# and are served from /uploads.
STORAGE_UPLOAD_URL = (os.getenv("STORAGE_UPLOAD_URL") or "").strip().rstrip("/")
STORAGE_PUBLIC_URL = (os.getenv("STORAGE_PUBLIC_URL") or STORAGE_UPLOAD_URL).strip().rstrip("/")
STORAGE_API_KEY = os.getenv("STORAGE_API_KEY") or ""
STORAGE_TIMEOUT_S = float(os.getenv("STORAGE_TIMEOUT_S", "30") or "30")

# Application counter repair. 0 disables the periodic loop (startup + on-demand still run).
RESYNC_ON_STARTUP = _env_bool("RESYNC_ON_STARTUP", "1")
RESYNC_INTERVAL_SECONDS = int(os.getenv("RESYNC_INTERVAL_SECONDS", "0") or "0")

# Admin seeder
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin@123")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin User")

# Outgoing mail (password reset). Gmail App Password works with the defaults.
SMTP_HOST = (os.getenv("SMTP_HOST") or "").strip()
SMTP_PORT = int((os.getenv("SMTP_PORT") or "587").strip())
SMTP_USER = (os.getenv("SMTP_USER") or "").strip()
SMTP_PASS = (os.getenv("SMTP_PASS") or "").strip()
SMTP_FROM = (os.getenv("SMTP_FROM") or SMTP_USER).strip()
SMTP_TLS = _env_bool("SMTP_TLS", "1")

# Extra CORS origins for the SPA (comma-separated); local dev origins are always allowed.
FRONTEND_ORIGINS = [o.strip() for o in (os.getenv("FRONTEND_ORIGINS") or "").split(",") if o.strip()]
# Used to build the link in password reset emails.
FRONTEND_URL = (os.getenv("FRONTEND_URL") or "http://localhost:5173").rstrip("/")
