"""FastAPI application entry point."""
import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from suivi.config import settings
from suivi.database import Base, engine
from suivi.errors import SuiviError
from suivi.log_config import setup_logging

# Import routers
from suivi.routers import auth, records, uploads, users

# Import all models so Base.metadata knows about them
from suivi.models.user import User                   # noqa: F401
from suivi.models.record import ChangeRecord         # noqa: F401
from suivi.models.attachment import Attachment       # noqa: F401
from suivi.models.purchase import PurchaseEntry      # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Suivi",
    description="Product change-notice tracking: records, attachments and temporary purchases",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error mapping: every failure leaves as {"error": message} ───────


@app.exception_handler(SuiviError)
def handle_domain_error(request: Request, exc: SuiviError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "Invalid request"})


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Register routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(records.router, prefix="/api/records", tags=["Records"])
app.include_router(uploads.router, prefix="/api/uploads", tags=["Uploads"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])

# Direct asset access to the upload directory
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    logger.info("Suivi API ready (uploads in %s)", Path(settings.UPLOAD_DIR).resolve())


@app.get("/api/health")
def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("suivi.main:app", host=settings.HOST, port=settings.PORT)
