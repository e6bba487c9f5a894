import pytest
from sqlalchemy import update

from backend.app.db.models.core_types import OrderStatus
from backend.app.db.models.models_v1 import Book, Order
from backend.app.schemas.book import BookCreate
from backend.app.schemas.order import OrderCreate
from backend.services import catalog, ordering
from backend.services.errors import (
    ConflictError,
    InsufficientStockError,
    InternalError,
    NotFoundError,
    ValidationError,
)


def _book(db, stock, title="Dune", author=None):
    return catalog.create_book(db, BookCreate(title=title, author=author, stock=stock))


def _order(db, book_id, qty):
    return ordering.create_order(db, OrderCreate(book_id=book_id, qty=qty))


# ---------- Store ----------
def test_create_order_is_pending(db_session):
    book = _book(db_session, 5)

    order = _order(db_session, book.id, 3)

    assert order.status == OrderStatus.pending
    assert order.book_id == book.id
    assert order.qty == 3
    assert order.created_at is not None
    assert order.confirmed_at is None


def test_create_order_unknown_book(db_session):
    with pytest.raises(NotFoundError, match="book not found"):
        _order(db_session, 999, 1)
    assert db_session.query(Order).count() == 0


def test_create_order_book_id_zero_is_required(db_session):
    with pytest.raises(ValidationError, match="book_id required"):
        _order(db_session, 0, 1)


def test_get_order_not_found(db_session):
    with pytest.raises(NotFoundError):
        ordering.get_order(db_session, 1)
    with pytest.raises(NotFoundError):
        ordering.get_order_with_book(db_session, 1)


def test_list_orders_joins_book_newest_first(db_session):
    dune = _book(db_session, 5, "Dune", "Herbert")
    emma = _book(db_session, 5, "Emma")
    first = _order(db_session, dune.id, 1)
    second = _order(db_session, emma.id, 2)

    rows = ordering.list_orders(db_session)

    assert [(o.id, t, a) for o, t, a in rows] == [
        (second.id, "Emma", None),
        (first.id, "Dune", "Herbert"),
    ]


def test_get_order_with_book(db_session):
    book = _book(db_session, 5, "Dune")
    order = _order(db_session, book.id, 2)

    found, title = ordering.get_order_with_book(db_session, order.id)

    assert found.id == order.id
    assert title == "Dune"


# ---------- Confirm ----------
def test_confirm_debits_stock_and_returns_remaining(db_session):
    """
    GIVEN a book with stock 5 and a pending order of 3
    THEN confirm leaves 2, and the stored stock agrees
    """
    book = _book(db_session, 5)
    order = _order(db_session, book.id, 3)

    confirmed, remaining = ordering.confirm_order(db_session, order.id)

    assert confirmed.status == OrderStatus.confirmed
    assert confirmed.confirmed_at is not None
    assert remaining == 2
    assert catalog.get_book(db_session, book.id).stock == remaining


def test_confirm_twice_is_a_conflict(db_session):
    book = _book(db_session, 5)
    order = _order(db_session, book.id, 3)
    ordering.confirm_order(db_session, order.id)

    with pytest.raises(ConflictError, match="already processed"):
        ordering.confirm_order(db_session, order.id)

    assert catalog.get_book(db_session, book.id).stock == 2


def test_confirm_insufficient_stock_changes_nothing(db_session):
    book = _book(db_session, 1, "X")
    order = _order(db_session, book.id, 5)

    with pytest.raises(InsufficientStockError) as exc:
        ordering.confirm_order(db_session, order.id)

    assert exc.value.to_dict() == {"error": "insufficient stock", "stock": 1}
    assert catalog.get_book(db_session, book.id).stock == 1
    assert ordering.get_order(db_session, order.id).status == OrderStatus.pending


def test_confirm_exact_stock_reaches_zero(db_session):
    book = _book(db_session, 4)
    order = _order(db_session, book.id, 4)

    _, remaining = ordering.confirm_order(db_session, order.id)

    assert remaining == 0


def test_confirm_unknown_order(db_session):
    with pytest.raises(NotFoundError, match="order not found"):
        ordering.confirm_order(db_session, 77)


def test_confirm_with_missing_book_is_internal(db_session):
    # foreign keys are off in the test engine
    db_session.add(Order(book_id=4242, qty=1, status=OrderStatus.pending))
    db_session.commit()
    order_id = db_session.query(Order).one().id

    with pytest.raises(InternalError, match="book missing"):
        ordering.confirm_order(db_session, order_id)

    assert ordering.get_order(db_session, order_id).status == OrderStatus.pending


def test_confirm_loses_to_concurrent_transition(db_session):
    """The status guard is re-checked in SQL, not trusted from the loaded row."""
    book = _book(db_session, 5)
    order = _order(db_session, book.id, 2)
    assert ordering.get_order(db_session, order.id).status == OrderStatus.pending

    # another writer cancels behind the session's back; the identity map
    # still holds the stale pending order
    db_session.execute(
        update(Order)
        .where(Order.id == order.id)
        .values(status=OrderStatus.cancelled)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConflictError, match="already processed"):
        ordering.confirm_order(db_session, order.id)

    assert db_session.get(Book, book.id).stock == 5


def test_stock_never_negative_over_many_orders(db_session):
    book = _book(db_session, 10)
    quantities = [3, 4, 5, 2, 1, 1, 6]

    confirmed = 0
    for qty in quantities:
        order = _order(db_session, book.id, qty)
        try:
            _, remaining = ordering.confirm_order(db_session, order.id)
        except InsufficientStockError as e:
            assert e.stock < qty
            continue
        confirmed += qty
        assert remaining >= 0

    stock = catalog.get_book(db_session, book.id).stock
    assert stock == 10 - confirmed
    assert stock >= 0


# ---------- Cancel ----------
def test_cancel_pending_then_confirm_fails(db_session):
    book = _book(db_session, 5)
    order = _order(db_session, book.id, 2)

    cancelled = ordering.cancel_order(db_session, order.id)
    assert cancelled.status == OrderStatus.cancelled
    assert cancelled.confirmed_at is None

    with pytest.raises(ConflictError, match="already processed"):
        ordering.confirm_order(db_session, order.id)
    assert catalog.get_book(db_session, book.id).stock == 5


def test_cancel_confirmed_or_cancelled_is_a_conflict(db_session):
    book = _book(db_session, 5)
    confirmed = _order(db_session, book.id, 1)
    cancelled = _order(db_session, book.id, 1)
    ordering.confirm_order(db_session, confirmed.id)
    ordering.cancel_order(db_session, cancelled.id)

    for order_id in (confirmed.id, cancelled.id):
        with pytest.raises(ConflictError, match="cannot cancel"):
            ordering.cancel_order(db_session, order_id)

    assert catalog.get_book(db_session, book.id).stock == 4


def test_cancel_unknown_order(db_session):
    with pytest.raises(NotFoundError, match="not found"):
        ordering.cancel_order(db_session, 5)
