"""Payment processor integration."""

from .client import PaymentProcessor

__all__ = ["PaymentProcessor"]
