# Overview: Supplier actions.

from __future__ import annotations

from ..errors import ValidationError
from ..permissions import Tier
from ..server.protocol import Response
from ..server.router import ActionContext, ActionGroup
from ..services import supplier_service
from ..validation import get_id, get_str
from .common import body_of, dicts, record_audit

suppliers = ActionGroup("suppliers")

_OPTIONAL_FIELDS = ("contact_info", "email", "address")


@suppliers.action("get_all_suppliers", tier=Tier.AUTHENTICATED)
def get_all_suppliers(ctx: ActionContext) -> Response:
    items = supplier_service.list_suppliers()
    return Response.ok(f"Retrieved {len(items)} suppliers", items)


@suppliers.action("get_supplier", tier=Tier.AUTHENTICATED)
def get_supplier(ctx: ActionContext) -> Response:
    supplier_id = get_id(ctx.payload, "supplier_id")
    supplier = supplier_service.get_supplier(supplier_id)
    return Response.ok("Supplier retrieved", supplier.to_dict())


@suppliers.action("search_suppliers", tier=Tier.AUTHENTICATED)
def search_suppliers(ctx: ActionContext) -> Response:
    term = get_str(ctx.payload, "search_term", max_length=100)
    items = supplier_service.search_suppliers(term)
    return Response.ok(f"Found {len(items)} suppliers", dicts(items))


@suppliers.action("add_supplier", tier=Tier.ADMIN_OR_MANAGER)
def add_supplier(ctx: ActionContext) -> Response:
    body = body_of(ctx.payload, "supplier")
    fields = {k: get_str(body, k, required=False, allow_blank=True) for k in _OPTIONAL_FIELDS}
    supplier = supplier_service.create_supplier(name=get_str(body, "name", max_length=100), **fields)
    record_audit(ctx, "ADD_SUPPLIER", f"Added supplier {supplier.id} ({supplier.name})")
    return Response.ok("Supplier added successfully", supplier.to_dict())


@suppliers.action("update_supplier", tier=Tier.ADMIN_OR_MANAGER)
def update_supplier(ctx: ActionContext) -> Response:
    body = body_of(ctx.payload, "supplier")
    supplier_id = get_id(body, "supplier_id", required=False)
    if supplier_id is None:
        supplier_id = get_id(ctx.payload, "supplier_id")

    patch = {}
    if body.get("name") is not None:
        patch["name"] = get_str(body, "name", max_length=100)
    for k in _OPTIONAL_FIELDS:
        if body.get(k) is not None:
            patch[k] = get_str(body, k, allow_blank=True)
    if not patch:
        raise ValidationError("No updatable fields supplied")

    supplier, changed = supplier_service.update_supplier(supplier_id=supplier_id, patch=patch)
    if changed:
        record_audit(ctx, "UPDATE_SUPPLIER", f"Updated supplier {supplier.id}: {', '.join(sorted(changed))}")
    return Response.ok("Supplier updated successfully", supplier.to_dict())


@suppliers.action("delete_supplier", tier=Tier.ADMIN)
def delete_supplier(ctx: ActionContext) -> Response:
    supplier_id = get_id(ctx.payload, "supplier_id")
    supplier = supplier_service.deactivate_supplier(supplier_id=supplier_id)
    record_audit(ctx, "DEACTIVATE_SUPPLIER", f"Deactivated supplier {supplier.id} ({supplier.name})")
    return Response.ok("Supplier deactivated successfully", supplier.to_dict())
