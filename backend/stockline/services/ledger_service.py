# Overview: Service-layer operations for the stock ledger; the only code path that changes product quantity.

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    InsufficientStock,
    ProductNotFound,
    StocklineError,
    StorageFailure,
    ValidationError,
)
from ..extensions import db
from ..models import Product, StockTransaction
from ..validation import MAX_QUANTITY
from .concurrency import run_with_retry
from ..time_utils import utcnow

"""
Stock Ledger Invariants (authoritative)

- products.quantity >= 0 at all times.
- A sale is ONE conditional UPDATE: quantity = quantity - n WHERE quantity >= n.
  The affected-row count is the stock check. There is no read-then-write
  window in which two sales can both see the same stale quantity.
- A purchase is ONE unconditional increment.
- The quantity change and the StockTransaction insert commit together or
  not at all.
- unit_price_cents and total_price_cents come from the product row inside
  the same database transaction. Callers never supply a price.
- Inactive (soft-deleted) products cannot be transacted against.
- No audit entries here. The caller logs after this returns.
"""

SALE = "Sale"
PURCHASE = "Purchase"
TXN_TYPES = (SALE, PURCHASE)


def normalize_txn_type(value) -> str:
    """Accept "Sale"/"Purchase" in any case. Anything else is a ValidationError."""
    if isinstance(value, str):
        candidate = value.strip().lower()
        for txn_type in TXN_TYPES:
            if candidate == txn_type.lower():
                return txn_type
    raise ValidationError("Transaction type must be 'Sale' or 'Purchase'")


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity exceeds maximum allowed ({MAX_QUANTITY})")
    return quantity


def _classify_miss(product_id: int, txn_type: str, quantity: int):
    """
    The guarded UPDATE touched no row. Work out why, after rolling back.

    Only used to pick the error. The decision to reject was already made
    atomically by the UPDATE itself.
    """
    row = db.session.execute(
        select(Product.quantity, Product.is_active).where(Product.id == product_id)
    ).first()
    db.session.rollback()

    if row is None or not row.is_active:
        return ProductNotFound()
    if txn_type == SALE:
        return InsufficientStock(
            f"Insufficient stock: requested {quantity}, available {row.quantity}"
        )
    return StorageFailure()


def apply_transaction(
    *,
    product_id: int,
    user_id: int,
    txn_type: str,
    quantity: int,
    note: str | None = None,
) -> StockTransaction:
    """
    Apply a sale or purchase and record it.

    Returns the committed StockTransaction.

    Raises:
        ValidationError: bad type or quantity (nothing written)
        ProductNotFound: unknown or inactive product (nothing written)
        InsufficientStock: sale larger than current quantity (nothing written)
        StorageFailure: database fault; both writes rolled back
    """
    txn_type = normalize_txn_type(txn_type)
    quantity = _validate_quantity(quantity)

    if txn_type == SALE:
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.is_active.is_(True),
                Product.quantity >= quantity,
            )
            .values(quantity=Product.quantity - quantity)
        )
    else:
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.is_active.is_(True),
            )
            .values(quantity=Product.quantity + quantity)
        )
    stmt = stmt.execution_options(synchronize_session=False)

    def _op() -> StockTransaction:
        result = db.session.execute(stmt)
        if result.rowcount != 1:
            raise _classify_miss(product_id, txn_type, quantity)

        unit_price_cents = db.session.execute(
            select(Product.unit_price_cents).where(Product.id == product_id)
        ).scalar_one()

        record = StockTransaction(
            product_id=product_id,
            user_id=user_id,
            txn_type=txn_type,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            total_price_cents=unit_price_cents * quantity,
            occurred_at=utcnow(),
            note=note,
        )
        db.session.add(record)
        db.session.commit()
        return record

    try:
        return run_with_retry(_op)
    except StocklineError:
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageFailure() from exc
