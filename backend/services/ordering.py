"""
Order store and order workflow.

Confirm and cancel never read-then-write: each transition is a conditional
UPDATE guarded on ``status = 'pending'`` (and, for confirm, on
``stock >= qty``), and confirm commits the status change and the stock
debit in the same transaction. Two requests racing on the same order or
book cannot both win, and stock cannot go below zero.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Book, Order, utcnow
from backend.app.db.models.core_types import OrderStatus
from backend.app.schemas.order import OrderCreate
from backend.services.errors import (
    ConflictError,
    InsufficientStockError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ---------- Store ----------
def create_order(db: Session, payload: OrderCreate) -> Order:
    # 0 is never a generated id
    if not payload.book_id:
        raise ValidationError("book_id required")
    if not db.get(Book, payload.book_id):
        raise NotFoundError("book not found")

    order = Order(book_id=payload.book_id, qty=payload.qty, status=OrderStatus.pending)
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info("Order %s created (book=%s, qty=%s)", order.id, order.book_id, order.qty)
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("not found")
    return order


def list_orders(db: Session) -> list[Row]:
    """Rows of ``(Order, book_title, book_author)``, newest order first."""
    stmt = (
        select(Order, Book.title.label("book_title"), Book.author.label("book_author"))
        .join(Book, Book.id == Order.book_id)
        .order_by(Order.id.desc())
    )
    return list(db.execute(stmt).all())


def get_order_with_book(db: Session, order_id: int) -> Row:
    """Row of ``(Order, book_title)``."""
    row = db.execute(
        select(Order, Book.title.label("book_title"))
        .join(Book, Book.id == Order.book_id)
        .where(Order.id == order_id)
    ).first()
    if row is None:
        raise NotFoundError("not found")
    return row


# ---------- Workflow ----------
def _mark(db: Session, order_id: int, status: OrderStatus, **values) -> bool:
    result = db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status == OrderStatus.pending)
        .values(status=status, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def confirm_order(db: Session, order_id: int) -> tuple[Order, int]:
    """
    Confirm a pending order and debit its book.

    Returns the confirmed order and the book's stock after the debit.
    Nothing is written unless both the status change and the debit apply.
    """
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("order not found")
    if order.status != OrderStatus.pending:
        logger.warning("Order %s not confirmed: status is %s", order_id, order.status.value)
        raise ConflictError("already processed")

    book_id, qty = order.book_id, order.qty

    try:
        if not _mark(db, order_id, OrderStatus.confirmed, confirmed_at=utcnow()):
            # lost the race against another confirm/cancel
            raise ConflictError("already processed")

        debited = db.execute(
            update(Book)
            .where(Book.id == book_id, Book.stock >= qty)
            .values(stock=Book.stock - qty)
            .execution_options(synchronize_session=False)
        )
        if debited.rowcount != 1:
            db.rollback()
            book = db.get(Book, book_id)
            if not book:
                logger.error("Order %s references missing book %s", order_id, book_id)
                raise InternalError("book missing")
            logger.warning(
                "Order %s not confirmed: stock %s < qty %s", order_id, book.stock, qty
            )
            raise InsufficientStockError(stock=book.stock)

        remaining = db.execute(select(Book.stock).where(Book.id == book_id)).scalar_one()
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise InternalError(str(e)) from e

    db.refresh(order)
    logger.info("Order %s confirmed, book %s stock now %s", order_id, book_id, remaining)
    return order, remaining


def cancel_order(db: Session, order_id: int) -> Order:
    order = get_order(db, order_id)
    if order.status != OrderStatus.pending:
        logger.warning("Order %s not cancelled: status is %s", order_id, order.status.value)
        raise ConflictError("cannot cancel")

    try:
        if not _mark(db, order_id, OrderStatus.cancelled):
            raise ConflictError("cannot cancel")
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise InternalError(str(e)) from e

    db.refresh(order)
    logger.info("Order %s cancelled", order_id)
    return order
