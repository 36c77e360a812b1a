# Overview: Read-side queries over recorded stock transactions.

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import StockTransaction
from ..time_utils import day_bounds, month_bounds, utcnow
from .ledger_service import SALE


def _newest_first(query):
    return query.order_by(StockTransaction.occurred_at.desc(), StockTransaction.id.desc())


def list_transactions(limit: int) -> list[StockTransaction]:
    if limit <= 0:
        raise ValidationError("limit must be positive")
    return _newest_first(db.session.query(StockTransaction)).limit(limit).all()


def list_in_range(start: datetime, end: datetime) -> list[StockTransaction]:
    """Transactions with start <= occurred_at < end."""
    return _newest_first(
        db.session.query(StockTransaction).filter(
            StockTransaction.occurred_at >= start,
            StockTransaction.occurred_at < end,
        )
    ).all()


def list_today() -> list[StockTransaction]:
    start, end = day_bounds(utcnow().date())
    return list_in_range(start, end)


def list_for_product(product_id: int) -> list[StockTransaction]:
    return _newest_first(
        db.session.query(StockTransaction).filter(StockTransaction.product_id == product_id)
    ).all()


def _sales_total_cents(start: datetime, end: datetime) -> int:
    total = db.session.query(
        func.coalesce(func.sum(StockTransaction.total_price_cents), 0)
    ).filter(
        StockTransaction.txn_type == SALE,
        StockTransaction.occurred_at >= start,
        StockTransaction.occurred_at < end,
    ).scalar()
    return int(total or 0)


def daily_sales(day: date) -> int:
    """Sum of sale totals (cents) for one UTC calendar day."""
    if day == date.max:
        raise ValidationError("date is out of range")
    return _sales_total_cents(*day_bounds(day))


def monthly_sales(year: int, month: int) -> int:
    """Sum of sale totals (cents) for one UTC calendar month."""
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    # December 9999 has no exclusive upper bound
    if not 1970 <= year <= 9999 or (year, month) == (9999, 12):
        raise ValidationError("year is out of range")
    return _sales_total_cents(*month_bounds(year, month))
