from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging, os

from pantryreco.core.config import get_settings
from pantryreco.core.lifespan import lifespan
from pantryreco.core.logging import configure_logging
from pantryreco.api.v1.routers.health import router as health_router
from pantryreco.api.v1.routers.recipes import router as recipes_router
from pantryreco.api.v1.routers.index import router as index_router
from pantryreco.domain.errors import MalformedSearchQuery, SearchBackendUnavailable

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV list, e.g. "https://pantry.example.com,https://www.pantry.example.com"
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)


# ------- Search backend failures -------
@app.exception_handler(SearchBackendUnavailable)
async def _backend_unavailable(request: Request, exc: SearchBackendUnavailable):
    logger.error(f"Search backend unavailable on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "search backend unavailable"})


@app.exception_handler(MalformedSearchQuery)
async def _malformed_query(request: Request, exc: MalformedSearchQuery):
    logger.error(f"Malformed search query on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "malformed search query"})


# ------- Routes -------
app.include_router(health_router)
app.include_router(recipes_router)
app.include_router(index_router)
