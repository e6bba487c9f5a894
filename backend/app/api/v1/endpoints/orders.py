from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.order import (
    OrderConfirmation,
    OrderCreate,
    OrderDetail,
    OrderListItem,
    OrderRead,
)
from backend.services import ordering

router = APIRouter(prefix="/orders")


@router.post("", response_model=OrderRead, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    return ordering.create_order(db, payload)


@router.get("", response_model=list[OrderListItem])
def list_orders(db: Session = Depends(get_db)):
    return [
        OrderListItem(
            **OrderRead.model_validate(order).model_dump(),
            book_title=book_title,
            book_author=book_author,
        )
        for order, book_title, book_author in ordering.list_orders(db)
    ]


@router.get("/{order_id}", response_model=OrderDetail)
def get_order(order_id: int, db: Session = Depends(get_db)):
    order, book_title = ordering.get_order_with_book(db, order_id)
    return OrderDetail(**OrderRead.model_validate(order).model_dump(), book_title=book_title)


@router.post("/{order_id}/confirm", response_model=OrderConfirmation)
def confirm_order(order_id: int, db: Session = Depends(get_db)):
    order, remaining = ordering.confirm_order(db, order_id)
    return OrderConfirmation(order=OrderRead.model_validate(order), remaining_stock=remaining)


@router.post("/{order_id}/cancel", response_model=OrderRead)
def cancel_order(order_id: int, db: Session = Depends(get_db)):
    return ordering.cancel_order(db, order_id)
