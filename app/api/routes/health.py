from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db.session import get_db


router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(request: Request, response: Response, db: Session | None = Depends(get_db)) -> dict:
    """Readiness probe - 503 if the configured cache database is unreachable."""
    context = getattr(request.app.state, "generation_context", None)
    providers = context.provider_status() if context is not None else {}
    cache = "disabled"
    if db is not None:
        try:
            db.execute(text("SELECT 1"))
            cache = "ok"
        except Exception as e:
            response.status_code = 503
            return {"status": "not_ready", "error": str(e), "providers": providers}
    if context is None:
        response.status_code = 503
        return {"status": "not_ready", "error": "generation context not initialized", "cache": cache}
    return {"status": "ready", "cache": cache, "providers": providers}
