from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, StrictInt

from backend.app.db.models.core_types import OrderStatus


class OrderCreate(BaseModel):
    book_id: int
    qty: StrictInt = Field(gt=0)


class OrderRead(BaseModel):
    id: int
    book_id: int
    qty: int
    status: OrderStatus
    created_at: datetime
    confirmed_at: datetime | None = None

    class Config:
        from_attributes = True


class OrderDetail(OrderRead):
    book_title: str


class OrderListItem(OrderRead):
    book_title: str
    book_author: str | None = None


class OrderConfirmation(BaseModel):
    order: OrderRead
    remaining_stock: int
