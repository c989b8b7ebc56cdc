from .purchase_order_repository import PurchaseOrderRepository

__all__ = [
    "PurchaseOrderRepository",
]
