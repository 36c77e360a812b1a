# Overview: Read-only report actions for managers and admins.

from __future__ import annotations

from ..permissions import Tier
from ..server.protocol import Response
from ..server.router import ActionContext, ActionGroup
from ..services import reporting_service
from ..validation import get_int
from .common import get_date, low_stock_threshold

reports = ActionGroup("reports")

DEFAULT_TOP_PRODUCTS = 10


def _date_range(ctx: ActionContext):
    return get_date(ctx.payload, "start_date"), get_date(ctx.payload, "end_date")


@reports.action("get_sales_summary", tier=Tier.ADMIN_OR_MANAGER)
def get_sales_summary(ctx: ActionContext) -> Response:
    start, end = _date_range(ctx)
    return Response.ok("Sales summary retrieved", reporting_service.sales_summary(start, end))


@reports.action("get_top_products", tier=Tier.ADMIN_OR_MANAGER)
def get_top_products(ctx: ActionContext) -> Response:
    start, end = _date_range(ctx)
    limit = get_int(ctx.payload, "limit", required=False, default=DEFAULT_TOP_PRODUCTS, minimum=1, maximum=100)
    rows = reporting_service.top_selling_products(limit, start, end)
    return Response.ok(f"Top {len(rows)} products retrieved", rows)


@reports.action("get_sales_by_category", tier=Tier.ADMIN_OR_MANAGER)
def get_sales_by_category(ctx: ActionContext) -> Response:
    start, end = _date_range(ctx)
    return Response.ok("Category sales retrieved", reporting_service.sales_by_category(start, end))


@reports.action("get_inventory_status", tier=Tier.ADMIN_OR_MANAGER)
def get_inventory_status(ctx: ActionContext) -> Response:
    status = reporting_service.inventory_status(low_stock_threshold(ctx.payload))
    return Response.ok("Inventory status retrieved", status)


@reports.action("get_stock_levels", tier=Tier.ADMIN_OR_MANAGER)
def get_stock_levels(ctx: ActionContext) -> Response:
    levels = reporting_service.stock_levels(low_stock_threshold(ctx.payload))
    return Response.ok("Stock levels retrieved", levels)


@reports.action("get_user_activity", tier=Tier.ADMIN)
def get_user_activity(ctx: ActionContext) -> Response:
    start, end = _date_range(ctx)
    return Response.ok("User activity retrieved", reporting_service.user_activity(start, end))
