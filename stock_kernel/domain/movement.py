"""
Movement types and the sign policy.

Responsibility:
    Defines the closed set of stock movement types and the single function
    that turns a (type, quantity) pair into the signed delta recorded in the
    ledger and applied to on-hand stock.

Architecture position:
    Kernel > Domain -- pure, no I/O, no ORM.

Invariants enforced:
    - SIGN_POLICY: receipt, return and found add stock; sale, transfer and
      loss remove it; adjustment carries the caller's sign.  Callers of the
      non-adjustment types supply a magnitude, never a signed value.
    - No zero movements, and no movement larger than the deployment cap.

Failure modes:
    - InvalidMovementTypeError for anything outside MovementType.
    - InvalidQuantityError for zero, bool, non-int, or a negative magnitude
      on a non-adjustment type.
    - MovementMagnitudeExceededError when abs(delta) > max_magnitude.
"""

from enum import Enum

from stock_kernel.exceptions import (
    InvalidMovementTypeError,
    InvalidQuantityError,
    MovementMagnitudeExceededError,
)


class MovementType(str, Enum):
    """Inventory-affecting event kinds."""

    RECEIPT = "receipt"
    ADJUSTMENT = "adjustment"
    SALE = "sale"
    RETURN = "return"
    TRANSFER = "transfer"
    LOSS = "loss"
    FOUND = "found"


INBOUND_TYPES: frozenset[MovementType] = frozenset(
    {MovementType.RECEIPT, MovementType.RETURN, MovementType.FOUND}
)
OUTBOUND_TYPES: frozenset[MovementType] = frozenset(
    {MovementType.SALE, MovementType.TRANSFER, MovementType.LOSS}
)


def parse_movement_type(value: "MovementType | str") -> MovementType:
    """Coerce a raw string into a MovementType, rejecting unknown values."""
    if isinstance(value, MovementType):
        return value
    try:
        return MovementType(value)
    except ValueError:
        raise InvalidMovementTypeError(str(value)) from None


def signed_delta(
    movement_type: "MovementType | str",
    quantity: int,
    max_magnitude: int,
) -> int:
    """
    Apply the sign table to a caller-supplied quantity.

    Args:
        movement_type: One of MovementType (or its string value).
        quantity: Magnitude for inbound/outbound types; signed value for
            adjustments.
        max_magnitude: Deployment cap on abs(delta).

    Returns:
        The non-zero signed delta.
    """
    mtype = parse_movement_type(movement_type)

    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(quantity, "quantity must be an integer")
    if quantity == 0:
        raise InvalidQuantityError(quantity, "quantity must be non-zero")

    if mtype is MovementType.ADJUSTMENT:
        delta = quantity
    else:
        if quantity < 0:
            raise InvalidQuantityError(
                quantity,
                f"{mtype.value} takes a positive magnitude; only adjustments are signed",
            )
        delta = quantity if mtype in INBOUND_TYPES else -quantity

    if abs(delta) > max_magnitude:
        raise MovementMagnitudeExceededError(quantity, max_magnitude)

    return delta
