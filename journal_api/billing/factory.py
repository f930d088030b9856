# journal_api/billing/factory.py
from typing import Dict, Any

from .base import BasePaymentProvider, PaymentProvider
from .providers.stripe_provider import StripeProvider
from ..config import settings
from ..error_handlers import ConfigurationException


class PaymentProviderFactory:
    """Factory for creating payment provider instances"""

    _providers = {
        PaymentProvider.STRIPE: StripeProvider,
    }

    @classmethod
    def create_provider(
        cls,
        provider: PaymentProvider,
        config: Dict[str, Any]
    ) -> BasePaymentProvider:
        """
        Raises:
            ValueError: If provider not supported
        """
        provider_class = cls._providers.get(provider)

        if not provider_class:
            raise ValueError(f"Unsupported payment provider: {provider}")

        return provider_class(config)


def get_payment_provider() -> BasePaymentProvider:
    """Per-request provider; fails with 500 before any Stripe call when misconfigured"""
    secret_key = settings.STRIPE_SECRET_KEY
    if not secret_key or not secret_key.startswith("sk_"):
        raise ConfigurationException(
            "Stripe is not configured. Please check STRIPE_SECRET_KEY environment variable.",
            setting="STRIPE_SECRET_KEY",
        )

    price_id = settings.STRIPE_PRICE_MONTHLY
    if not price_id or not price_id.startswith("price_"):
        raise ConfigurationException(
            f'Stripe price ID is not configured. Current value: "{price_id or "MISSING"}". '
            "Please check STRIPE_PRICE_MONTHLY environment variable.",
            setting="STRIPE_PRICE_MONTHLY",
        )

    return PaymentProviderFactory.create_provider(
        PaymentProvider.STRIPE,
        {"secret_key": secret_key, "price_id": price_id},
    )
