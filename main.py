from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
import os
import logging
import threading
from pydantic import BaseModel, Field
from dotenv import load_dotenv
from itsdangerous import TimestampSigner, BadSignature
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from similarity import (
    PlagiarismEngine,
    PlagiarismCheckError,
    ValidationError,
    SQLiteStore,
    SupabaseStore,
    load_engine_config,
)

# Configure logging to both file and console
LOG_DIR = os.getenv("LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True)

# Set log level from environment (default: INFO)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, LOG_LEVEL, logging.INFO)

# Create formatters
log_formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Root logger configuration
root_logger = logging.getLogger()
root_logger.setLevel(log_level)

# Console handler (for docker logs)
console_handler = logging.StreamHandler()
console_handler.setFormatter(log_formatter)
root_logger.addHandler(console_handler)

# File handler (persistent logs)
log_file = os.path.join(LOG_DIR, "plagiarism.log")
file_handler = logging.FileHandler(log_file, encoding='utf-8')
file_handler.setFormatter(log_formatter)
root_logger.addHandler(file_handler)

# Configure uvicorn loggers to use the same format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    logging.getLogger(uvicorn_logger_name).handlers = [console_handler, file_handler]

logger = logging.getLogger(__name__)
logger.info(f"Logging initialized. Log file: {log_file}")

load_dotenv()
app = FastAPI()
ADMIN_LOGIN = os.getenv("ADMIN_LOGIN")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")
SESSION_MAX_AGE = 3600

PLAGIARISM_BACKEND = os.getenv("PLAGIARISM_BACKEND", "sqlite").lower()
DATABASE_PATH = os.getenv("DATABASE_PATH", os.path.join("data", "plagiarism.db"))
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
RATE_LIMIT = os.getenv("PLAGIARISM_RATE_LIMIT", "10/minute")

# Check required environment variables
if not ADMIN_LOGIN or not ADMIN_PASSWORD:
    raise RuntimeError(
        "ADMIN_LOGIN and ADMIN_PASSWORD must be set in the environment. "
        "The service cannot start without a security configuration."
    )

if PLAGIARISM_BACKEND not in ("sqlite", "supabase"):
    raise RuntimeError(f"Unknown PLAGIARISM_BACKEND '{PLAGIARISM_BACKEND}', expected 'sqlite' or 'supabase'")

if PLAGIARISM_BACKEND == "supabase" and not (SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY):
    raise RuntimeError(
        "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set when PLAGIARISM_BACKEND=supabase."
    )

ENGINE_CONFIG = load_engine_config()
logger.info(
    f"Engine config: weights={ENGINE_CONFIG.weights}, flag threshold={ENGINE_CONFIG.flag_threshold}, "
    f"workers={ENGINE_CONFIG.max_workers}, backend={PLAGIARISM_BACKEND}"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow requests from any origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
signer = TimestampSigner(SECRET_KEY)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

_store = None
_store_lock = threading.Lock()


def create_store():
    if PLAGIARISM_BACKEND == "supabase":
        return SupabaseStore(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)
    return SQLiteStore(DATABASE_PATH)


def get_store():
    """Storage backend shared by all requests, created on first use."""
    global _store
    if _store is None:
        # Sync endpoints run in the threadpool and may race on the first request
        with _store_lock:
            if _store is None:
                _store = create_store()
    return _store


def get_engine() -> PlagiarismEngine:
    store = get_store()
    return PlagiarismEngine(store, store, ENGINE_CONFIG)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def session_token(request: Request) -> str | None:
    """Signed admin token from a Bearer header, falling back to the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get("admin_session")


def authenticated_login(request: Request) -> str | None:
    """Login of the admin behind the request, or None if it is not authenticated."""
    token = session_token(request)
    if not token:
        return None

    try:
        login = signer.unsign(token, max_age=SESSION_MAX_AGE).decode()
    except BadSignature:
        return None

    return login if login == ADMIN_LOGIN else None


def is_authenticated(request: Request) -> bool:
    return authenticated_login(request) is not None


class AuthRequest(BaseModel):
    login: str
    password: str


class ReviewUpdate(BaseModel):
    flagged: bool | None = None
    reviewNotes: str | None = Field(None, max_length=5000)


@app.post("/admin/login")
def admin_login(data: AuthRequest, response: Response):
    if data.login == ADMIN_LOGIN and data.password == ADMIN_PASSWORD:
        token = signer.sign(data.login.encode()).decode()
        response.set_cookie(
            key="admin_session",
            value=token,
            httponly=True,
            max_age=SESSION_MAX_AGE,
            path="/",
            secure=False
        )
        return {"authenticated": True, "token": token}
    raise HTTPException(status_code=401, detail="Invalid login or password")

@app.get("/admin/check-auth")
def check_auth(request: Request):
    token = session_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="No session")

    try:
        login = signer.unsign(token, max_age=SESSION_MAX_AGE).decode()
    except BadSignature:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    if login != ADMIN_LOGIN:
        raise HTTPException(status_code=401, detail="Invalid session")

    return {"authenticated": True}

@app.post("/admin/logout")
def logout(response: Response):
    response.delete_cookie("admin_session", path="/")
    return {"message": "Logged out"}


@app.post("/check-plagiarism")
@limiter.limit(RATE_LIMIT)
async def check_plagiarism(request: Request):
    """
    Compare all submissions of a lab pairwise and store suspicious pairs.

    Body: {"labId": str, "threshold": number 0-100 (default 50)}
    """
    if not is_authenticated(request):
        return error_response(401, "Unauthorized")

    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}

    lab_id = payload.get("labId")
    threshold = payload.get("threshold")
    logger.info(f"Plagiarism check requested - Lab: {lab_id}, threshold: {threshold}")

    try:
        summary = await run_in_threadpool(get_engine().run, lab_id, threshold)
    except ValidationError as e:
        logger.warning(f"Rejected plagiarism check: {e}")
        return error_response(400, str(e))
    except PlagiarismCheckError as e:
        logger.error(f"Plagiarism check failed for lab {lab_id}: {e}")
        return error_response(500, str(e))
    except Exception as e:
        logger.exception(f"Unexpected error during plagiarism check: {str(e)}")
        return error_response(500, str(e) or "Internal server error")

    return summary.to_response()


@app.get("/labs/{lab_id}/plagiarism")
def get_lab_plagiarism(lab_id: str, request: Request):
    """Stored comparisons of a lab, highest similarity first."""
    if not is_authenticated(request):
        return error_response(401, "Unauthorized")

    try:
        return get_store().list_results(lab_id)
    except Exception as e:
        logger.exception(f"Failed to load plagiarism results for lab {lab_id}: {str(e)}")
        return error_response(500, str(e))


@app.patch("/plagiarism/{record_id}")
def review_plagiarism(record_id: str, data: ReviewUpdate, request: Request):
    """Reviewer override of the flag and review notes of one comparison."""
    reviewer = authenticated_login(request)
    if reviewer is None:
        return error_response(401, "Unauthorized")

    try:
        record = get_store().update_review(
            record_id,
            flagged=data.flagged,
            review_notes=data.reviewNotes,
            reviewed_by=reviewer,
        )
    except Exception as e:
        logger.exception(f"Failed to update plagiarism record {record_id}: {str(e)}")
        return error_response(500, str(e))

    if record is None:
        return error_response(404, "Record not found")

    logger.info(f"Plagiarism record {record_id} reviewed by {reviewer}: flagged={data.flagged}")
    return record
