"""Domain-specific exceptions for POS settlement.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from PosSettlementError for easy catching.

Basket transitions do not raise these; they return them inside a
``Transition`` so the caller can render an inline message. Entry points
that must refuse outright (building a sale payload, loading configuration)
raise them.
"""


class PosSettlementError(Exception):
    """Base exception for all POS settlement errors.

    This is the base class for all domain-specific exceptions in the package.
    Users can catch this exception to handle any settlement or reporting error.
    """

    pass


class ConfigError(PosSettlementError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid configuration values are provided (e.g. negative rates)
    - Configuration files cannot be loaded or parsed
    """

    pass


class ValidationError(PosSettlementError):
    """Raised when a sale or basket operation fails validation.

    This exception is raised when:
    - The basket is empty at checkout
    - A quantity or payment amount is not positive
    - The computed total is zero or negative
    - No customer is selected
    - Payment entries do not cover the final total
    """

    pass


class StockInsufficientError(ValidationError):
    """Raised when a requested quantity exceeds available stock.

    Applies to both priced line items and courtesy items; each is checked
    against the product stock at the moment of the add operation.
    """

    def __init__(self, product_name: str, requested: int, available: int) -> None:
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for '{product_name}': requested {requested}, "
            f"only {available} available"
        )


class NotFoundError(PosSettlementError):
    """Raised when a referenced product or entry no longer resolves."""

    pass


class DataQualityError(PosSettlementError):
    """Raised when persisted sale records cannot be interpreted.

    This exception is raised when:
    - A sale record is not a mapping
    - Required monetary fields hold non-numeric values
    """

    pass


class AggregationError(PosSettlementError):
    """Raised when a reporting aggregation cannot be completed."""

    pass
