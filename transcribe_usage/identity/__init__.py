"""Identity provider integration."""

from .client import IdentityProvider

__all__ = ["IdentityProvider"]
