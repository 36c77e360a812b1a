from .auth import User
from .inventory import Supplier, Product, StockTransaction
from .audit import AuditLogEntry

__all__ = [
    'User',
    'Supplier', 'Product', 'StockTransaction',
    'AuditLogEntry',
]
