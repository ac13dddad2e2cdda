import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from narrate.core.cache import build_eligibility_cache
from narrate.db.base import get_db
from narrate.core.config import settings
from narrate.routers import entries as entries_router
from narrate.routers import summaries as summaries_router
from narrate.core.errors import (
    NarrateException,
    narrate_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One eligibility cache per worker process, owned by the app.
    app.state.eligibility_cache = build_eligibility_cache()
    yield
    app.state.eligibility_cache.clear()


app = FastAPI(
    title="Narrate API",
    description=(
        "**Private journaling with weekly AI reflections**\n\n"
        "Write short entries; once a week's worth exists, ask for a narrative "
        "summary, a key theme and a handful of gentle insights.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(NarrateException, narrate_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(entries_router.router)
app.include_router(summaries_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok", ...}` when the API and the database
    are reachable, plus whether an AI key is configured. HTTP 503 if the DB
    is down. No provider call is made.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as exc:
        logger.error("Health check database probe failed: %s", exc)
        db_status = "unreachable"

    body = {
        "status": "ok" if db_status == "ok" else "error",
        "db": db_status,
        "env": settings.APP_ENV,
        "ai_configured": settings.ai_configured,
    }
    if db_status != "ok":
        return JSONResponse(status_code=503, content=body)
    return body
