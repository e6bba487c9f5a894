from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, StrictInt


class BookCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    author: str | None = Field(default=None, max_length=255)
    stock: StrictInt = Field(default=0, ge=0)


class BookUpdate(BaseModel):
    """
    Partial update. Only the keys present in the request body are applied,
    so ``model_fields_set`` is the source of truth, not ``None`` values:
    ``{"author": null}`` clears the author, ``{}`` changes nothing.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    author: str | None = Field(default=None, max_length=255)
    stock: StrictInt | None = Field(default=None, ge=0)

    def changes(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class BookRead(BaseModel):
    id: int
    title: str
    author: str | None
    stock: int
    created_at: datetime

    class Config:
        from_attributes = True
