import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.responses import JSONResponse

from . import telemetry_pipeline  # noqa: F401  registers the search log listener
from .config import get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import dispose_engine, get_engine, init_db
from .errors import CatalogError
from .logging_config import configure_logging
from .routes import admin_router, exam_router, universities_router


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    settings = get_settings()
    logger.info("Catalog backend started (default provider: %s)", settings.default_provider)
    logger.info("Exam API key configured: %s", bool(settings.exam_api_key))
    yield
    dispose_engine()


app = FastAPI(title="Tutor Catalog Backend", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.title, "message": str(exc)})


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/healthz/database")
def database_health() -> Dict[str, object]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"status": "ok", "pool": get_pool_snapshot(engine)}


app.include_router(exam_router)
app.include_router(universities_router)
app.include_router(admin_router)
