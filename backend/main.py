"""
Main FastAPI Application
=======================

Entry point for the Deedplot traverse API server. Console output is colored
by level; the rotating log file and the /logs/recent ring buffer receive the
plain records.
"""

import uvicorn
import logging
import sys
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dotenv import load_dotenv
load_dotenv()  # settings reads os.environ at import

from config import settings
from api.router import api_router
from services.logging_service import init_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


class ColoredFormatter(logging.Formatter):
    """Level-colored console formatter"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, "")
        # other handlers share the record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname:<8}{self.RESET}"
        return super().format(colored)


def configure_logging():
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, ColoredFormatter):
            root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(console)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    try:
        init_logging(log_to_file=settings.LOG_TO_FILE)
    except OSError as e:
        logger.warning(f"File logging unavailable, continuing with console and ring buffer: {e}")
        init_logging(log_to_file=False)


def create_app() -> FastAPI:
    application = FastAPI(
        title="Deedplot API",
        description="Legal description traverse, closure and DXF export API",
        version=VERSION,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(api_router)

    @application.middleware("http")
    async def timing_header(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
        return response

    @application.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )

    @application.get("/health")
    async def health():
        return {
            "status": "healthy",
            "service": "deedplot",
            "version": VERSION,
            "closure_thresholds": {
                "max_error_feet": settings.CLOSES_MAX_ERROR_FEET,
                "min_precision": settings.CLOSES_MIN_PRECISION,
            },
        }

    @application.get("/")
    async def root():
        return {"message": f"Deedplot API v{VERSION}", "docs": "/docs", "api": "/api"}

    return application


configure_logging()
app = create_app()


if __name__ == "__main__":
    logger.info(f"Starting Deedplot API on {settings.API_HOST}:{settings.API_PORT}")
    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT, log_level="info")
