# src/tradecraft/domain/errors.py
"""
Exception hierarchy shared by services and routers.
Routers translate these into HTTP responses; services only raise them.
"""


class TradeCraftError(Exception):
    """Base class for all application errors."""


class ValidationError(TradeCraftError, ValueError):
    """Required input is missing or has an invalid value."""


class WebhookSignatureError(TradeCraftError):
    """A webhook could not be authenticated (bad/missing signature or secret)."""


class MalformedEventError(TradeCraftError):
    """A signed webhook event of a known type does not match its schema."""


class PaymentGatewayError(TradeCraftError):
    """A call to the payment provider failed."""


class DuplicateUserError(ValidationError):
    """A user with this email already exists."""
