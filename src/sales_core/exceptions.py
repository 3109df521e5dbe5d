"""Domain-specific exceptions for the sales analytics engine.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from SalesCoreError for easy catching.
"""


class SalesCoreError(Exception):
    """Base exception for all sales analytics errors.

    Users can catch this exception to handle any error raised by the package.
    """

    pass


class ParseError(SalesCoreError):
    """Raised when a date string fails calendar validation.

    This exception is raised when:
    - A date-only string does not match YYYY-MM-DD
    - The month or day is out of range (no silent rollover)
    - A timestamp cannot be parsed as ISO 8601

    Components that consume sale collections catch this and exclude the
    offending record instead of failing the whole report.
    """

    pass


class DataQualityError(SalesCoreError):
    """Raised when an input record violates the caller contract.

    This exception is raised when:
    - A sale has a zero or non-numeric sale_price
    - A required identifier is missing
    - A refund workflow is applied to a sale in the wrong state
    """

    pass


class ConfigError(SalesCoreError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Threshold values are negative or out of range
    - Unknown configuration keys are provided
    """

    pass
