"""Cover Letter API — generates tailored cover letters from a PDF CV.

Run: uvicorn coverletter.main:app --reload --port 8000
Docs: http://localhost:8000/docs
"""

import traceback
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from coverletter.config import load_settings  # noqa: E402
from coverletter.core.errors import CoverLetterError, ValidationError  # noqa: E402
from coverletter.core.logger import logger  # noqa: E402
from coverletter.middleware import RequestIdMiddleware, request_id_var  # noqa: E402
from coverletter.models import ErrorResponse  # noqa: E402
from coverletter.routes import generate, health  # noqa: E402

settings = load_settings()

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    client = getattr(app.state, "completion_client", None)
    if client is not None:
        await client.aclose()
        logger.info("Completion client closed")


app = FastAPI(
    title="Cover Letter API",
    version="1.0.0",
    description="Generates tailored cover letters from a job description, company profile and PDF CV.",
    lifespan=lifespan,
)

app.state.limiter = generate.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

ALLOWED_ORIGINS = settings.allowed_origins.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# Request ID middleware (runs after CORS, before route handlers)
app.add_middleware(RequestIdMiddleware)


# ── Global exception handlers ────────────────────────────────────────


def _error_response(status_code: int, message: str, error: str = "") -> JSONResponse:
    body = ErrorResponse(message=message, error=error, request_id=request_id_var.get("-"))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(CoverLetterError)
async def cover_letter_error_handler(request: Request, exc: CoverLetterError):
    if isinstance(exc, ValidationError):
        logger.warning(f"Rejected request: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.message)
    logger.error(f"Error generating cover letter: {type(exc).__name__}: {exc.message}")
    return _error_response(exc.status_code, "Failed to generate cover letter", exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(exc.status_code, str(exc.detail), str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = request_id_var.get("-")
    logger.error(f"Unhandled exception [{rid}]: {exc}\n{traceback.format_exc()}")
    return _error_response(500, "Internal server error")


app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.include_router(health.router)
app.include_router(generate.router)


@app.get("/", include_in_schema=False)
async def index():
    return FileResponse(STATIC_DIR / "index.html")
