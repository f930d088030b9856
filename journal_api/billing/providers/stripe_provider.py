# journal_api/billing/providers/stripe_provider.py
import stripe
from typing import Optional
from starlette.concurrency import run_in_threadpool

from ..base import (
    BasePaymentProvider,
    CheckoutSessionResponse,
    CheckoutSessionStatus,
)
from ...error_handlers import PaymentGatewayException
from ...logging_config import get_logger

logger = get_logger(__name__)


class StripeProvider(BasePaymentProvider):
    """Stripe Checkout provider (subscription mode)"""

    def _initialize_client(self):
        # Key is passed per call; the global stripe.api_key is never set
        self.secret_key = self.config["secret_key"]
        self.price_id = self.config["price_id"]

    async def create_checkout_session(
        self,
        user_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutSessionResponse:
        params = {
            "mode": "subscription",
            "line_items": [{"price": self.price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": user_id,
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create,
                api_key=self.secret_key,
                **params
            )
        except stripe.InvalidRequestError as e:
            self._log_error(e)
            if e.code == "resource_missing":
                raise PaymentGatewayException(
                    f'Invalid Stripe Price ID. The price ID "{self.price_id}" does not exist in your Stripe account.'
                )
            raise PaymentGatewayException(f"Stripe API error: {e.user_message or str(e)}")
        except stripe.StripeError as e:
            self._log_error(e)
            raise PaymentGatewayException(f"Stripe API error: {e.user_message or str(e)}")

        return CheckoutSessionResponse(session_id=session.id, url=session.url)

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionStatus:
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.retrieve,
                session_id,
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            self._log_error(e)
            raise PaymentGatewayException(f"Stripe API error: {e.user_message or str(e)}")

        customer = getattr(session, "customer", None)
        return CheckoutSessionStatus(
            session_id=session.id,
            client_reference_id=getattr(session, "client_reference_id", None),
            status=getattr(session, "status", None),
            payment_status=getattr(session, "payment_status", None),
            customer_id=customer if isinstance(customer, str) else getattr(customer, "id", None),
        )

    @staticmethod
    def _log_error(e: "stripe.StripeError"):
        logger.error(
            f"Stripe request failed: {e}",
            extra={"extra_data": {
                "type": type(e).__name__,
                "code": getattr(e, "code", None),
                "http_status": getattr(e, "http_status", None),
            }}
        )
