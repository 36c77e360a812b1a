# Overview: Product catalogue actions.

from __future__ import annotations

from ..errors import ValidationError
from ..permissions import Tier
from ..server.protocol import Response
from ..server.router import ActionContext, ActionGroup
from ..services import products_service
from ..validation import get_id, get_int, get_str
from .common import body_of, dicts, low_stock_threshold, record_audit

products = ActionGroup("products")


@products.action("get_all_products", tier=Tier.AUTHENTICATED)
def get_all_products(ctx: ActionContext) -> Response:
    category = get_str(ctx.payload, "category", required=False, max_length=50)
    supplier_id = get_id(ctx.payload, "supplier_id", required=False)
    items = products_service.list_products(category=category, supplier_id=supplier_id)
    return Response.ok(f"Retrieved {len(items)} products", dicts(items))


@products.action("get_product", tier=Tier.AUTHENTICATED)
def get_product(ctx: ActionContext) -> Response:
    product_id = get_id(ctx.payload, "product_id")
    p = products_service.get_product(product_id)
    return Response.ok("Product retrieved", p.to_dict())


@products.action("search_products", tier=Tier.AUTHENTICATED)
def search_products(ctx: ActionContext) -> Response:
    term = get_str(ctx.payload, "search_term", max_length=100)
    items = products_service.search_products(term)
    return Response.ok(f"Found {len(items)} products", dicts(items))


@products.action("get_low_stock", tier=Tier.AUTHENTICATED)
def get_low_stock(ctx: ActionContext) -> Response:
    threshold = low_stock_threshold(ctx.payload)
    items = products_service.list_low_stock(threshold)
    return Response.ok(f"{len(items)} products at or below {threshold}", dicts(items))


@products.action("add_product", tier=Tier.ADMIN_OR_MANAGER)
def add_product(ctx: ActionContext) -> Response:
    body = body_of(ctx.payload, "product")
    p = products_service.create_product(
        name=get_str(body, "name", max_length=100),
        category=get_str(body, "category", required=False, max_length=50, allow_blank=True),
        unit_price_cents=get_int(body, "unit_price_cents"),
        quantity=get_int(body, "quantity", required=False, default=0),
        supplier_id=get_id(body, "supplier_id", required=False),
    )
    record_audit(ctx, "ADD_PRODUCT", f"Added product {p.id} ({p.name})")
    return Response.ok("Product added successfully", p.to_dict())


@products.action("update_product", tier=Tier.ADMIN_OR_MANAGER)
def update_product(ctx: ActionContext) -> Response:
    body = body_of(ctx.payload, "product")
    product_id = get_id(body, "product_id", required=False)
    if product_id is None:
        product_id = get_id(ctx.payload, "product_id")

    if "quantity" in body:
        raise ValidationError("quantity can only be changed by recording a transaction")

    patch = {}
    if body.get("name") is not None:
        patch["name"] = get_str(body, "name", max_length=100)
    if body.get("category") is not None:
        patch["category"] = get_str(body, "category", max_length=50, allow_blank=True)
    if body.get("unit_price_cents") is not None:
        patch["unit_price_cents"] = get_int(body, "unit_price_cents")
    if body.get("supplier_id") is not None:
        patch["supplier_id"] = get_id(body, "supplier_id")
    if not patch:
        raise ValidationError("No updatable fields supplied")

    p, changed = products_service.update_product(product_id=product_id, patch=patch)
    if changed:
        record_audit(ctx, "UPDATE_PRODUCT", f"Updated product {p.id}: {', '.join(sorted(changed))}")
    return Response.ok("Product updated successfully", p.to_dict())


@products.action("delete_product", tier=Tier.ADMIN)
def delete_product(ctx: ActionContext) -> Response:
    product_id = get_id(ctx.payload, "product_id")
    p = products_service.deactivate_product(product_id=product_id)
    record_audit(ctx, "DEACTIVATE_PRODUCT", f"Deactivated product {p.id} ({p.name})")
    return Response.ok("Product deactivated successfully", p.to_dict())
