from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Supplier(db.Model):
    """
    Supplier master data.

    SOFT DELETE: Suppliers are deactivated (is_active=False), never removed,
    so products and transaction history keep a resolvable reference.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.CheckConstraint("length(trim(name)) > 0", name="ck_suppliers_name_not_empty"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, index=True)
    contact_info = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(100), nullable=True)
    address = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_info": self.contact_info,
            "email": self.email,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data and current stock quantity.

    STOCK INVARIANT:
    - quantity >= 0 at all times, also enforced by a CHECK constraint. The
      stock ledger never issues an update that could violate it
      (sales use a conditional decrement, see ledger_service).
    - quantity is only changed by ledger_service.apply_transaction after
      creation. update_product never touches it.

    Prices are stored in cents (integer) and are server-authoritative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_products_unit_price_non_negative"),
        db.CheckConstraint("length(trim(name)) > 0", name="ck_products_name_not_empty"),
        db.Index("ix_products_active_quantity", "is_active", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False, index=True)
    category = db.Column(db.String(50), nullable=False, default="Uncategorized", index=True)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    supplier_id = db.Column(
        db.Integer,
        db.ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransaction(db.Model):
    """
    Sale or purchase record.

    APPEND-ONLY: Created exactly once per successful ledger application, in
    the same database transaction as the quantity change. Never updated or
    deleted by the server.

    total_price_cents = unit_price_cents * quantity, computed server-side
    from the product's price at the time of the transaction.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.CheckConstraint("txn_type IN ('Sale', 'Purchase')", name="ck_stock_transactions_type"),
        db.CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
        db.CheckConstraint("total_price_cents >= 0", name="ck_stock_transactions_total_non_negative"),
        db.Index("ix_stock_transactions_type_occurred", "txn_type", "occurred_at"),
        db.Index("ix_stock_transactions_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    txn_type = db.Column(db.String(20), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    note = db.Column(db.Text, nullable=True)

    product = db.relationship("Product", backref=db.backref("transactions", lazy=True))
    user = db.relationship("User", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "txn_type": self.txn_type,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
        }
