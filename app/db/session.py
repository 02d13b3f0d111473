from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def build_engine(database_url: str) -> Engine | None:
    """Engine for the artifact cache; None when no database is configured."""
    if not database_url.strip():
        return None
    kwargs: dict = {"pool_pre_ping": True}
    if database_url.startswith("postgresql"):
        kwargs.update(
            pool_size=10,
            max_overflow=20,
            pool_recycle=1800,  # recycle connections every 30 min (avoid stale)
            connect_args={"connect_timeout": 5},
        )
    return create_engine(database_url, **kwargs)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False) if engine is not None else None


def get_db():
    """Yield a session, or None when caching is disabled."""
    if SessionLocal is None:
        yield None
        return
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create cache tables when a database is configured."""
    if engine is None:
        return
    from app.db.base import Base
    import app.models.character_artifact  # noqa: F401

    Base.metadata.create_all(bind=engine)
