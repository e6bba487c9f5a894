from __future__ import annotations

import logging

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Book
from backend.app.schemas.book import BookCreate, BookUpdate
from backend.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def create_book(db: Session, payload: BookCreate) -> Book:
    book = Book(title=payload.title, author=payload.author, stock=payload.stock)
    db.add(book)
    db.commit()
    db.refresh(book)

    logger.info("Book %s created (stock=%s)", book.id, book.stock)
    return book


def get_book(db: Session, book_id: int) -> Book:
    book = db.get(Book, book_id)
    if not book:
        raise NotFoundError("not found")
    return book


def search_books(db: Session, q: str | None = None) -> list[Book]:
    """
    Books whose title or author contains ``q``, newest first.

    ``%`` and ``_`` in ``q`` match literally. Case sensitivity is the
    backend's LIKE semantics (case-insensitive for ASCII on SQLite).
    """
    stmt = select(Book)
    if q:
        stmt = stmt.where(
            or_(
                Book.title.contains(q, autoescape=True),
                Book.author.contains(q, autoescape=True),
            )
        )
    stmt = stmt.order_by(Book.id.desc())
    return list(db.execute(stmt).scalars().all())


def update_book(db: Session, book_id: int, patch: BookUpdate) -> Book:
    changes = patch.changes()

    # explicit nulls get through the schema, the columns don't accept them
    if "stock" in changes and changes["stock"] is None:
        raise ValidationError("invalid stock")
    if "title" in changes and not changes["title"]:
        raise ValidationError("title required")

    book = get_book(db, book_id)
    for field, value in changes.items():
        setattr(book, field, value)

    db.commit()
    db.refresh(book)

    logger.info("Book %s updated (%s)", book.id, ", ".join(sorted(changes)) or "no changes")
    return book
