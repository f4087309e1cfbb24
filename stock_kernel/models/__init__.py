"""ORM models for the stock kernel.  Importing this package registers every table."""

from stock_kernel.models.product import Product, ProductVariant
from stock_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stock_kernel.models.receipt import Receipt, ReceiptItem
from stock_kernel.models.stock_movement import StockMovement

__all__ = [
    "Product",
    "ProductVariant",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "Receipt",
    "ReceiptItem",
    "StockMovement",
]
