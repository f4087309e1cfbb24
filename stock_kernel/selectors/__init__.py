"""Read-only selectors for stock and purchase orders."""

from stock_kernel.selectors.purchase_order_selector import PurchaseOrderSelector
from stock_kernel.selectors.stock_selector import StockSelector

__all__ = ["PurchaseOrderSelector", "StockSelector"]
