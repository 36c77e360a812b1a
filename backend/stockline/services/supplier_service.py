# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

Suppliers are referenced by products. They are never hard-deleted:
deactivate_supplier sets is_active=False and leaves existing products
pointing at the row, so history stays readable. New products can only be
linked to an active supplier.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Product, Supplier

SUPPLIER_MUTABLE_FIELDS = {"name", "contact_info", "email", "address"}

_FIELD_LIMITS = {"name": 100, "contact_info": 255, "email": 100}


def _clean(field: str, value):
    if value is None:
        if field == "name":
            raise ValidationError("Supplier name cannot be empty")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if field == "name" and not value:
        raise ValidationError("Supplier name cannot be empty")
    limit = _FIELD_LIMITS.get(field)
    if limit is not None and len(value) > limit:
        raise ValidationError(f"{field} must be at most {limit} characters")
    if field == "email" and value and "@" not in value:
        raise ValidationError("email is not a valid address")
    return value or None


def create_supplier(
    *,
    name: str,
    contact_info: str | None = None,
    email: str | None = None,
    address: str | None = None,
) -> Supplier:
    supplier = Supplier(
        name=_clean("name", name),
        contact_info=_clean("contact_info", contact_info),
        email=_clean("email", email),
        address=_clean("address", address),
        is_active=True,
    )
    db.session.add(supplier)
    db.session.commit()
    return supplier


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFound("Supplier not found")
    return supplier


def list_suppliers() -> list[dict]:
    """
    All suppliers by name, each with the count of its active products.
    """
    rows = (
        db.session.query(Supplier, func.count(Product.id))
        .outerjoin(
            Product,
            db.and_(Product.supplier_id == Supplier.id, Product.is_active.is_(True)),
        )
        .group_by(Supplier.id)
        .order_by(Supplier.name.asc(), Supplier.id.asc())
        .all()
    )
    result = []
    for supplier, product_count in rows:
        item = supplier.to_dict()
        item["product_count"] = product_count
        result.append(item)
    return result


def search_suppliers(search_term: str) -> list[Supplier]:
    term = (search_term or "").strip()
    if not term:
        raise ValidationError("search_term cannot be empty")
    return (
        db.session.query(Supplier)
        .filter(Supplier.name.ilike(f"%{term}%"))
        .order_by(Supplier.name.asc())
        .all()
    )


def update_supplier(*, supplier_id: int, patch: dict) -> tuple[Supplier, list[str]]:
    supplier = get_supplier(supplier_id)
    if not supplier.is_active:
        raise NotFound("Supplier not found")

    changed = []
    for k, v in patch.items():
        if k not in SUPPLIER_MUTABLE_FIELDS:
            continue
        v = _clean(k, v)
        if getattr(supplier, k) != v:
            setattr(supplier, k, v)
            changed.append(k)
    if changed:
        db.session.commit()
    return supplier, changed


def deactivate_supplier(*, supplier_id: int) -> Supplier:
    """Soft-delete. Linked products keep their supplier_id."""
    supplier = get_supplier(supplier_id)
    if supplier.is_active:
        supplier.is_active = False
        db.session.commit()
    return supplier
