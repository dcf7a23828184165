from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

from app.core.logging_config import setup_logging
from app.db.base_class import Base
from app.db.session import engine
from app.routers import bulk_upload

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Realty Bulk Upload Service",
    version="1.0.0"
)

# --- Register Routers ---
app.include_router(bulk_upload.router)    # /api/v1/bulk-uploads/*


@app.on_event("startup")
async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


# --- Malformed bodies are intake errors, not 422s ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Malformed request body",
            "summary": {"total": 0, "imported": 0, "skipped": 0, "failed": 0},
            "errors": _error_details(exc),
        },
    )


def _error_details(exc: RequestValidationError):
    return [{"loc": list(error.get("loc", ())), "msg": error.get("msg")} for error in exc.errors()]


# --- Root health check ---
@app.get("/")
async def root():
    return {"message": "Realty Bulk Upload Service is running"}
