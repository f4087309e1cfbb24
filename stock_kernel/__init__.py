"""
Stock Kernel

An append-only stock ledger with purchase-order receiving reconciliation:
- Immutable movement records as the source of truth for quantity changes
- Atomic stock projection (strict or clamped negative-stock policy)
- Atomic multi-line PO receiving under a per-PO row lock
- Purchase-order status derived from ordered vs. received totals
"""

__version__ = "0.1.0"
