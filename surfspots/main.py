import logging
import pathlib
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from .cache import WeatherCache
from .config import settings, configure_logging
from .db import engine, Base
from .exceptions import SurfSpotsError
from .routes import comments, geocode, posts, spots, tips, users, weather
from .sessions import InMemorySessionStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("surf spots API started (sessions: %s)", settings.SESSION_BACKEND)
    yield
    await engine.dispose()


app = FastAPI(title="Surf Spots", lifespan=lifespan)

app.state.weather_cache = WeatherCache(
    ttl_seconds=settings.WEATHER_CACHE_TTL,
    max_entries=settings.WEATHER_CACHE_MAX_ENTRIES,
)
app.state.memory_sessions = InMemorySessionStore(max_age_seconds=settings.SESSION_MAX_AGE)


# ---------- Error mapping ----------

@app.exception_handler(SurfSpotsError)
async def surfspots_error_handler(request: Request, exc: SurfSpotsError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return JSONResponse(status_code=400, content={"detail": "; ".join(problems) or "Invalid request"})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Server error, please try again"})


# ---------- Routes ----------

app.include_router(users.router)
app.include_router(spots.router)
app.include_router(weather.router)
app.include_router(geocode.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(tips.router)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}


# ---------- Uploaded images (mounted AFTER APIs) ----------
UPLOAD_DIR = pathlib.Path(settings.UPLOAD_DIR).resolve()
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")
