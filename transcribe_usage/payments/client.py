"""Stripe wrapper for subscription cancellation and customer removal.

The Stripe library is synchronous; calls run in a worker thread so the event
loop keeps serving other jobs while a request is in flight.
"""

import asyncio
from typing import Any

import stripe

from ..errors import ExternalServiceError
from ..logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "stripe"


def _is_resource_missing(error: Exception) -> bool:
    return (
        isinstance(error, stripe.error.InvalidRequestError)
        and getattr(error, "code", None) == "resource_missing"
    )


class PaymentProcessor:
    """Subscription and customer operations against Stripe."""

    def __init__(self, api_key: str, max_network_retries: int = 2):
        self._api_key = api_key
        # Process-wide in the stripe library; set once per processor
        stripe.max_network_retries = max_network_retries

    def _options(self) -> dict[str, Any]:
        return {"api_key": self._api_key}

    async def _call(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **self._options(), **kwargs)
        except stripe.error.StripeError as e:
            if _is_resource_missing(e):
                raise
            raise ExternalServiceError(SERVICE_NAME, str(e)) from e

    async def cancel_subscription(
        self,
        subscription_id: str,
        cancel_at_period_end: bool = False,
    ) -> bool:
        """Cancel a subscription.

        With ``cancel_at_period_end`` the subscription is flagged to lapse at
        the end of the billing period; otherwise it is cancelled immediately.

        Returns:
            True if Stripe accepted the change, False if the subscription no
            longer exists.

        Raises:
            ExternalServiceError: On any other Stripe failure.
        """
        try:
            if cancel_at_period_end:
                await self._call(
                    stripe.Subscription.modify,
                    subscription_id,
                    cancel_at_period_end=True,
                )
            else:
                await self._call(stripe.Subscription.cancel, subscription_id)
        except stripe.error.InvalidRequestError:
            logger.info("Subscription already absent", subscription_id=subscription_id)
            return False

        logger.info(
            "Subscription cancelled",
            subscription_id=subscription_id,
            at_period_end=cancel_at_period_end,
        )
        return True

    async def delete_customer(self, customer_id: str) -> bool:
        """Delete a customer and its stored payment methods.

        Returns:
            True if deleted, False if the customer no longer exists.

        Raises:
            ExternalServiceError: On any other Stripe failure.
        """
        try:
            await self._call(stripe.Customer.delete, customer_id)
        except stripe.error.InvalidRequestError:
            logger.info("Customer already absent", customer_id=customer_id)
            return False

        logger.info("Customer deleted", customer_id=customer_id)
        return True
