# Overview: Action handlers grouped by area; registered into the router once at startup.

from __future__ import annotations

from ..server.router import RequestRouter
from .admin import admin
from .auth import auth
from .products import products
from .reports import reports
from .suppliers import suppliers
from .transactions import transactions

ACTION_GROUPS = (auth, admin, products, suppliers, transactions, reports)


def register_actions(router: RequestRouter) -> None:
    for group in ACTION_GROUPS:
        router.register_group(group)
