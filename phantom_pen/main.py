from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from phantom_pen.db.base import get_db
from phantom_pen.core.config import settings
from phantom_pen.core.logging import get_logger
from phantom_pen.routers import captures as captures_router
from phantom_pen.routers import narratives as narratives_router
from phantom_pen.routers import uploads as uploads_router
from phantom_pen.routers import users as users_router
from phantom_pen.services.scheduler import shutdown_scheduler
from phantom_pen.core.errors import (
    PhantomPenException,
    phantom_pen_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Phantom Pen API starting (env=%s)", settings.APP_ENV)
    yield
    # Pending synthesis jobs live in this process only.
    shutdown_scheduler()
    logger.info("Phantom Pen API stopped")


app = FastAPI(
    title="Phantom Pen API",
    description=(
        "**Voice notes that write your memoir**\n\n"
        "Stores voice-note captures, transcribes uploaded audio and rewrites each "
        "note into dated memoir entries after a short quiet period.\n\n"
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
app.add_exception_handler(PhantomPenException, phantom_pen_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(captures_router.router)
app.include_router(narratives_router.router)
app.include_router(uploads_router.router)
app.include_router(users_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
