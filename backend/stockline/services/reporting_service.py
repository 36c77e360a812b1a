# Overview: Service-layer operations for reporting; read-only aggregates over sales, stock, and audit data.

from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import case, func

from ..errors import ValidationError
from ..extensions import db
from ..models import AuditLogEntry, Product, StockTransaction, User
from ..time_utils import to_utc_z
from .ledger_service import SALE


def _range(start: date, end: date) -> tuple[datetime, datetime]:
    """Inclusive date range -> half-open [start, end + 1 day) datetimes."""
    if end < start:
        raise ValidationError("end_date must not be before start_date")
    if end == date.max:
        raise ValidationError("end_date is out of range")
    start_dt = datetime(start.year, start.month, start.day)
    end_dt = datetime(end.year, end.month, end.day) + timedelta(days=1)
    return start_dt, end_dt


def _sales_in(start_dt: datetime, end_dt: datetime):
    return (
        StockTransaction.txn_type == SALE,
        StockTransaction.occurred_at >= start_dt,
        StockTransaction.occurred_at < end_dt,
    )


def sales_summary(start: date, end: date) -> dict:
    start_dt, end_dt = _range(start, end)
    row = db.session.query(
        func.count(StockTransaction.id).label("total_transactions"),
        func.coalesce(func.sum(StockTransaction.quantity), 0).label("total_items_sold"),
        func.coalesce(func.sum(StockTransaction.total_price_cents), 0).label("total_revenue_cents"),
    ).filter(*_sales_in(start_dt, end_dt)).one()

    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "total_transactions": int(row.total_transactions or 0),
        "total_items_sold": int(row.total_items_sold or 0),
        "total_revenue_cents": int(row.total_revenue_cents or 0),
    }


def top_selling_products(limit: int, start: date, end: date) -> list[dict]:
    if limit <= 0:
        raise ValidationError("limit must be positive")
    start_dt, end_dt = _range(start, end)

    total_sold = func.sum(StockTransaction.quantity).label("total_sold")
    rows = (
        db.session.query(
            Product.id,
            Product.name,
            Product.category,
            total_sold,
            func.sum(StockTransaction.total_price_cents).label("total_revenue_cents"),
        )
        .join(StockTransaction, StockTransaction.product_id == Product.id)
        .filter(*_sales_in(start_dt, end_dt))
        .group_by(Product.id, Product.name, Product.category)
        .order_by(total_sold.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": r.id,
            "name": r.name,
            "category": r.category,
            "total_sold": int(r.total_sold or 0),
            "total_revenue_cents": int(r.total_revenue_cents or 0),
        }
        for r in rows
    ]


def sales_by_category(start: date, end: date) -> list[dict]:
    start_dt, end_dt = _range(start, end)

    revenue = func.sum(StockTransaction.total_price_cents).label("total_revenue_cents")
    rows = (
        db.session.query(
            Product.category,
            func.count(StockTransaction.id).label("transaction_count"),
            func.sum(StockTransaction.quantity).label("total_quantity"),
            revenue,
        )
        .join(StockTransaction, StockTransaction.product_id == Product.id)
        .filter(*_sales_in(start_dt, end_dt))
        .group_by(Product.category)
        .order_by(revenue.desc(), Product.category.asc())
        .all()
    )
    return [
        {
            "category": r.category,
            "transaction_count": int(r.transaction_count or 0),
            "total_quantity": int(r.total_quantity or 0),
            "total_revenue_cents": int(r.total_revenue_cents or 0),
        }
        for r in rows
    ]


def inventory_status(threshold: int) -> dict:
    """Totals over active products. low_stock_count includes out-of-stock items."""
    row = db.session.query(
        func.count(Product.id).label("total_products"),
        func.coalesce(func.sum(Product.quantity), 0).label("total_items"),
        func.coalesce(func.sum(Product.unit_price_cents * Product.quantity), 0).label("total_value_cents"),
        func.coalesce(func.sum(case((Product.quantity <= threshold, 1), else_=0)), 0).label("low_stock_count"),
        func.coalesce(func.sum(case((Product.quantity == 0, 1), else_=0)), 0).label("out_of_stock_count"),
    ).filter(Product.is_active.is_(True)).one()

    return {
        "threshold": threshold,
        "total_products": int(row.total_products or 0),
        "total_items": int(row.total_items or 0),
        "total_value_cents": int(row.total_value_cents or 0),
        "low_stock_count": int(row.low_stock_count or 0),
        "out_of_stock_count": int(row.out_of_stock_count or 0),
    }


def stock_levels(threshold: int) -> dict:
    """Active products bucketed into out_of_stock / low_stock / normal_stock."""
    levels = {"out_of_stock": [], "low_stock": [], "normal_stock": []}
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.quantity.asc(), Product.id.asc())
        .all()
    )
    for p in products:
        item = {
            "product_id": p.id,
            "name": p.name,
            "category": p.category,
            "quantity": p.quantity,
            "unit_price_cents": p.unit_price_cents,
            "total_value_cents": p.unit_price_cents * p.quantity,
        }
        if p.quantity == 0:
            levels["out_of_stock"].append(item)
        elif p.quantity <= threshold:
            levels["low_stock"].append(item)
        else:
            levels["normal_stock"].append(item)
    return levels


def user_activity(start: date, end: date) -> list[dict]:
    """Audit entry count and latest action per user, busiest first. Users with no activity are included."""
    start_dt, end_dt = _range(start, end)

    action_count = func.count(AuditLogEntry.id).label("action_count")
    rows = (
        db.session.query(
            User.id,
            User.username,
            User.role,
            action_count,
            func.max(AuditLogEntry.occurred_at).label("last_action_at"),
        )
        .outerjoin(
            AuditLogEntry,
            db.and_(
                AuditLogEntry.user_id == User.id,
                AuditLogEntry.occurred_at >= start_dt,
                AuditLogEntry.occurred_at < end_dt,
            ),
        )
        .group_by(User.id, User.username, User.role)
        .order_by(action_count.desc(), User.username.asc())
        .all()
    )
    return [
        {
            "user_id": r.id,
            "username": r.username,
            "role": r.role,
            "action_count": int(r.action_count or 0),
            "last_action_at": to_utc_z(r.last_action_at) if r.last_action_at else None,
        }
        for r in rows
    ]
