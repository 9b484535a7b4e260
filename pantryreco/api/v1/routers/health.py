# pantryreco/api/v1/routers/health.py
import time
import subprocess
from fastapi import APIRouter
from pantryreco.core.config import get_settings
from pantryreco.db import mongo

router = APIRouter(tags=["health"])
START_TIME = time.time()


def _git_sha(short: bool = True) -> str:
    try:
        cmd = ["git", "rev-parse", "--short" if short else "HEAD"]
        return subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


@router.get("/health")
async def health():
    """
    Tolerant health check: pings Mongo (which also hosts the Atlas Search index)
    and exposes basic app info.
    """
    settings = get_settings()
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "version": settings.GIT_SHA if settings.GIT_SHA != "unknown" else _git_sha(),
        "uptime_seconds": int(time.time() - START_TIME),
        "search_index": settings.recipes_search_index,
    }

    # --- Mongo ---
    try:
        db = mongo.get_db()
        await db.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        checks["mongodb"] = f"error: {e}"

    status = "ok" if checks["mongodb"] == "ok" else "error"
    return {"status": status, "checks": checks, "timestamp": int(time.time())}
