# Overview: Recording sales/purchases and querying transaction history.

from __future__ import annotations

from ..errors import ProtocolError
from ..permissions import Tier
from ..server.protocol import Response
from ..server.router import ActionContext, ActionGroup
from ..services import ledger_service, transaction_service
from ..validation import get_id, get_int, get_str
from .common import body_of, dicts, get_date, list_limit, record_audit

transactions = ActionGroup("transactions")


@transactions.action("record_transaction", tier=Tier.AUTHENTICATED)
def record_transaction(ctx: ActionContext) -> Response:
    """
    Apply a sale or purchase through the stock ledger.

    SECURITY: The acting user is always the session's principal. Any
    user_id in the request is ignored.
    """
    body = body_of(ctx.payload, "transaction")

    product_id = get_id(body, "product_id")
    txn_type = body.get("type", body.get("txn_type"))
    if txn_type is None:
        raise ProtocolError("Missing required field: type")
    quantity = get_int(body, "quantity")
    note = get_str(body, "note", required=False, max_length=500, allow_blank=True) or None

    record = ledger_service.apply_transaction(
        product_id=product_id,
        user_id=ctx.principal.user_id,
        txn_type=txn_type,
        quantity=quantity,
        note=note,
    )
    record_audit(
        ctx,
        "RECORD_TRANSACTION",
        f"{record.txn_type} of {record.quantity} x product {record.product_id} (transaction {record.id})",
    )
    return Response.ok("Transaction recorded successfully", record.to_dict())


@transactions.action("get_all_transactions", tier=Tier.AUTHENTICATED)
def get_all_transactions(ctx: ActionContext) -> Response:
    items = transaction_service.list_transactions(list_limit(ctx.payload))
    return Response.ok(f"Retrieved {len(items)} transactions", dicts(items))


@transactions.action("get_today_transactions", tier=Tier.AUTHENTICATED)
def get_today_transactions(ctx: ActionContext) -> Response:
    items = transaction_service.list_today()
    return Response.ok(f"Retrieved {len(items)} transactions for today", dicts(items))


@transactions.action("get_product_transactions", tier=Tier.AUTHENTICATED)
def get_product_transactions(ctx: ActionContext) -> Response:
    product_id = get_id(ctx.payload, "product_id")
    items = transaction_service.list_for_product(product_id)
    return Response.ok(f"Retrieved {len(items)} transactions", dicts(items))


@transactions.action("get_daily_sales", tier=Tier.AUTHENTICATED)
def get_daily_sales(ctx: ActionContext) -> Response:
    day = get_date(ctx.payload, "date")
    total = transaction_service.daily_sales(day)
    return Response.ok("Daily sales retrieved", {"date": day.isoformat(), "total_sales_cents": total})


@transactions.action("get_monthly_sales", tier=Tier.AUTHENTICATED)
def get_monthly_sales(ctx: ActionContext) -> Response:
    year = get_int(ctx.payload, "year")
    month = get_int(ctx.payload, "month")
    total = transaction_service.monthly_sales(year, month)
    return Response.ok("Monthly sales retrieved", {"year": year, "month": month, "total_sales_cents": total})
