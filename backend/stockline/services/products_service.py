# backend/stockline/services/products_service.py
"""
Products Service

Product master data. Quantity is set once at creation; after that only
ledger_service.apply_transaction changes it. quantity is not a mutable
field here, and the update action rejects a patch that carries one.

SOFT DELETE: deactivate_product sets is_active=False. Rows are never
removed, so transaction history keeps resolving.
"""
from __future__ import annotations

from ..errors import NotFound, ProductNotFound, ValidationError
from ..extensions import db
from ..models import Product, Supplier
from ..validation import validate_price_cents, validate_quantity

PRODUCT_MUTABLE_FIELDS = {"name", "category", "unit_price_cents", "supplier_id"}

DEFAULT_CATEGORY = "Uncategorized"


def _require_supplier(supplier_id: int | None) -> None:
    if supplier_id is None:
        return
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None or not supplier.is_active:
        raise NotFound("Supplier not found")


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name cannot be empty")
    if len(name) > 100:
        raise ValidationError("Product name must be at most 100 characters")
    return name


def _clean_category(category: str | None) -> str:
    category = (category or "").strip()
    if len(category) > 50:
        raise ValidationError("Category must be at most 50 characters")
    return category or DEFAULT_CATEGORY


def apply_product_patch(p: Product, patch: dict) -> list[str]:
    """Apply whitelisted fields. Returns the names of fields that changed."""
    changed = []
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "name":
            v = _clean_name(v)
        elif k == "category":
            v = _clean_category(v)
        elif k == "unit_price_cents":
            v = validate_price_cents("unit_price_cents", v)
        elif k == "supplier_id":
            _require_supplier(v)
        if getattr(p, k) != v:
            setattr(p, k, v)
            changed.append(k)
    return changed


def create_product(
    *,
    name: str,
    unit_price_cents: int,
    category: str | None = None,
    quantity: int = 0,
    supplier_id: int | None = None,
) -> Product:
    """
    Create a product with its opening stock.

    Raises:
        ValidationError: empty name, negative price or quantity
        NotFound: supplier_id given but no active supplier has it
    """
    name = _clean_name(name)
    category = _clean_category(category)
    validate_price_cents("unit_price_cents", unit_price_cents)
    validate_quantity("quantity", quantity, allow_zero=True)
    _require_supplier(supplier_id)

    p = Product(
        name=name,
        category=category,
        unit_price_cents=unit_price_cents,
        quantity=quantity,
        supplier_id=supplier_id,
        is_active=True,
    )
    db.session.add(p)
    db.session.commit()
    return p


def get_product(product_id: int, *, include_inactive: bool = True) -> Product:
    p = db.session.get(Product, product_id)
    if p is None or (not include_inactive and not p.is_active):
        raise ProductNotFound()
    return p


def list_products(
    *,
    include_inactive: bool = True,
    category: str | None = None,
    supplier_id: int | None = None,
) -> list[Product]:
    """
    All products, active first, then by id.

    category / supplier_id narrow the list to active products in that
    category or from that supplier.
    """
    query = db.session.query(Product)
    if category is not None or supplier_id is not None:
        include_inactive = False
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category is not None:
        query = query.filter(Product.category == category)
    if supplier_id is not None:
        query = query.filter(Product.supplier_id == supplier_id)
    return query.order_by(Product.is_active.desc(), Product.id.asc()).all()


def search_products(search_term: str) -> list[Product]:
    """Case-insensitive partial match on name or category, active products only."""
    term = (search_term or "").strip()
    if not term:
        raise ValidationError("search_term cannot be empty")
    pattern = f"%{term}%"
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            db.or_(Product.name.ilike(pattern), Product.category.ilike(pattern)),
        )
        .order_by(Product.id.asc())
        .all()
    )


def list_low_stock(threshold: int) -> list[Product]:
    """Active products with quantity <= threshold, lowest first."""
    if threshold < 0:
        raise ValidationError("threshold cannot be negative")
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.quantity <= threshold)
        .order_by(Product.quantity.asc(), Product.id.asc())
        .all()
    )


def update_product(*, product_id: int, patch: dict) -> tuple[Product, list[str]]:
    """
    Update name, category, price or supplier.

    Returns (product, changed_field_names). An inactive product can't be
    edited; reactivation is not offered over the wire.
    """
    p = get_product(product_id, include_inactive=False)
    changed = apply_product_patch(p, patch)
    if changed:
        db.session.commit()
    return p, changed


def deactivate_product(*, product_id: int) -> Product:
    """Soft-delete. Idempotent for an already inactive product."""
    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
        db.session.commit()
    return p
