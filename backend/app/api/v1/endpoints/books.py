from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.book import BookCreate, BookRead, BookUpdate
from backend.services import catalog

router = APIRouter(prefix="/books")


@router.post("", response_model=BookRead, status_code=201)
def create_book(payload: BookCreate, db: Session = Depends(get_db)):
    return catalog.create_book(db, payload)


@router.get("", response_model=list[BookRead])
def list_books(q: str | None = None, db: Session = Depends(get_db)):
    """Every book, or those whose title/author contains ``q``. Newest first."""
    return catalog.search_books(db, q)


@router.get("/{book_id}", response_model=BookRead)
def get_book(book_id: int, db: Session = Depends(get_db)):
    return catalog.get_book(db, book_id)


@router.put("/{book_id}", response_model=BookRead)
def update_book(book_id: int, patch: BookUpdate, db: Session = Depends(get_db)):
    return catalog.update_book(db, book_id, patch)
