"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (sale flows, manual adjustments, the receiving screen)
must react differently to a bad request, a missing product, a stock shortage
and a lock conflict.  Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        inventory.record_movement(product_id, None, "sale", 5)
    except InsufficientStockError as e:
        api_response(code=e.code, available=e.available, requested=e.requested)
    except ConcurrencyConflictError:
        retry_later()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingFieldError
    |   +-- InvalidMovementTypeError
    |   +-- InvalidQuantityError
    |   +-- MovementMagnitudeExceededError
    |   +-- ReceiptLineMismatchError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- VariantNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- PurchaseOrderItemNotFoundError
    |
    +-- InsufficientStockError
    +-- OverReceiptError
    |
    +-- PurchaseOrderStateError
    |   +-- PurchaseOrderCancelledError
    |   +-- InvalidStatusTransitionError
    |   +-- ResolverOwnedStatusError
    |
    +-- ConcurrencyConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_FIELD               | Required input absent or blank
                | INVALID_MOVEMENT_TYPE       | Type outside the closed movement set
                | INVALID_QUANTITY            | Zero, negative magnitude, non-integer
                | MOVEMENT_MAGNITUDE_EXCEEDED | abs(quantity) above the deployment cap
                | RECEIPT_LINE_MISMATCH       | Line product differs from PO item
----------------|-----------------------------|-----------------------------------------
Not found       | PRODUCT_NOT_FOUND           | Product id unknown
                | VARIANT_NOT_FOUND           | Variant unknown or not of the product
                | PURCHASE_ORDER_NOT_FOUND    | PO id unknown
                | PURCHASE_ORDER_ITEM_NOT_FOUND | PO item unknown or not on the PO
----------------|-----------------------------|-----------------------------------------
Business rule   | INSUFFICIENT_STOCK          | Strict policy, stock would go negative
                | OVER_RECEIPT                | Reject policy, received > ordered
----------------|-----------------------------|-----------------------------------------
PO state        | PURCHASE_ORDER_CANCELLED    | Receiving against a cancelled PO
                | INVALID_STATUS_TRANSITION   | Administrative transition not allowed
                | RESOLVER_OWNED_STATUS       | Manual attempt to set partial/received
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENCY_CONFLICT        | Deadlock, lock timeout, busy database
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of an append-only row

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and not-found errors are never retried; surface them verbatim.
2. InsufficientStockError and OverReceiptError are business-rule violations,
   not system faults.
3. ConcurrencyConflictError is the only category with ``retryable = True``.
   The kernel never retries on its own; the caller decides on backoff.
4. Every failure aborts the whole operation.  Nothing is partially committed.

===============================================================================
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"
    retryable: bool = False


# Validation exceptions


class ValidationError(StockKernelError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required field is absent or blank."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class InvalidMovementTypeError(ValidationError):
    """Movement type is not one of the enumerated types."""

    code: str = "INVALID_MOVEMENT_TYPE"

    def __init__(self, movement_type: str):
        self.movement_type = movement_type
        super().__init__(f"Invalid movement type: {movement_type!r}")


class InvalidQuantityError(ValidationError):
    """Quantity is zero, of the wrong sign for its type, or not an integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class MovementMagnitudeExceededError(ValidationError):
    """Absolute movement quantity is above the configured cap."""

    code: str = "MOVEMENT_MAGNITUDE_EXCEEDED"

    def __init__(self, quantity: int, max_magnitude: int):
        self.quantity = quantity
        self.max_magnitude = max_magnitude
        super().__init__(
            f"Movement quantity {quantity} exceeds maximum magnitude {max_magnitude}"
        )


class ReceiptLineMismatchError(ValidationError):
    """Receipt line refers to a different product than its PO item."""

    code: str = "RECEIPT_LINE_MISMATCH"

    def __init__(self, po_item_id: str, expected_product_id: str, received_product_id: str):
        self.po_item_id = po_item_id
        self.expected_product_id = expected_product_id
        self.received_product_id = received_product_id
        super().__init__(
            f"PO item {po_item_id} is for product {expected_product_id}, "
            f"receipt line names {received_product_id}"
        )


# Not-found exceptions


class NotFoundError(StockKernelError):
    """Base exception for references to entities that do not exist."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class VariantNotFoundError(NotFoundError):
    """Variant was not found, or does not belong to the given product."""

    code: str = "VARIANT_NOT_FOUND"

    def __init__(self, variant_id: str, product_id: str | None = None):
        self.variant_id = variant_id
        self.product_id = product_id
        if product_id is None:
            super().__init__(f"Product variant not found: {variant_id}")
        else:
            super().__init__(
                f"Product variant {variant_id} not found for product {product_id}"
            )


class PurchaseOrderNotFoundError(NotFoundError):
    """Purchase order with given ID was not found."""

    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Purchase order not found: {po_id}")


class PurchaseOrderItemNotFoundError(NotFoundError):
    """PO item was not found on the given purchase order."""

    code: str = "PURCHASE_ORDER_ITEM_NOT_FOUND"

    def __init__(self, po_item_id: str, po_id: str):
        self.po_item_id = po_item_id
        self.po_id = po_id
        super().__init__(f"Purchase order item {po_item_id} not found on PO {po_id}")


# Business-rule exceptions


class InsufficientStockError(StockKernelError):
    """
    Strict negative-stock policy rejected a movement.

    Stock and ledger are both left unchanged.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: str,
        variant_id: str | None,
        available: int,
        requested: int,
    ):
        self.product_id = product_id
        self.variant_id = variant_id
        self.available = available
        self.requested = requested
        holder = f"variant {variant_id}" if variant_id else f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {holder}: available={available}, "
            f"requested={requested}"
        )


class OverReceiptError(StockKernelError):
    """Receiving would push quantity_received above quantity_ordered."""

    code: str = "OVER_RECEIPT"

    def __init__(self, po_item_id: str, quantity_ordered: int, quantity_received: int):
        self.po_item_id = po_item_id
        self.quantity_ordered = quantity_ordered
        self.quantity_received = quantity_received
        super().__init__(
            f"Over-receipt on PO item {po_item_id}: ordered={quantity_ordered}, "
            f"received would be {quantity_received}"
        )


# Purchase-order state exceptions


class PurchaseOrderStateError(StockKernelError):
    """Base exception for operations not allowed in the PO's current state."""

    code: str = "PURCHASE_ORDER_STATE_ERROR"


class PurchaseOrderCancelledError(PurchaseOrderStateError):
    """Purchase order is cancelled and accepts no further receipts."""

    code: str = "PURCHASE_ORDER_CANCELLED"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Purchase order {po_id} is cancelled")


class InvalidStatusTransitionError(PurchaseOrderStateError):
    """Administrative status transition is not permitted."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, po_id: str, from_status: str, to_status: str):
        self.po_id = po_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Purchase order {po_id} cannot move from {from_status} to {to_status}"
        )


class ResolverOwnedStatusError(PurchaseOrderStateError):
    """partial/received are derived by the resolver and cannot be set manually."""

    code: str = "RESOLVER_OWNED_STATUS"

    def __init__(self, po_id: str, status: str):
        self.po_id = po_id
        self.status = status
        super().__init__(
            f"Status {status!r} on purchase order {po_id} is derived from receipts "
            "and cannot be set manually"
        )


# Concurrency exceptions


class ConcurrencyConflictError(StockKernelError):
    """
    Lock contention, deadlock or serialization failure.

    The whole operation was rolled back.  Safe for the caller to retry.
    """

    code: str = "CONCURRENCY_CONFLICT"
    retryable: bool = True

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Concurrency conflict during {operation}: {detail}")


# Immutability exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    StockMovement, Receipt and ReceiptItem are immutable from creation;
    PurchaseOrderItem.quantity_received may never decrease.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
