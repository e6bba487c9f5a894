from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from backend.app.db.session import SessionLocal


def get_db() -> Iterator[Session]:
    """One session per request, rolled back if the handler raises."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
