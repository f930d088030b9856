# journal_api/billing/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class PaymentProvider(str, Enum):
    STRIPE = "stripe"


@dataclass
class CheckoutSessionResponse:
    """Standardized response for hosted checkout creation"""
    session_id: str
    url: str


@dataclass
class CheckoutSessionStatus:
    """Standardized view of a hosted checkout session"""
    session_id: str
    client_reference_id: Optional[str]
    status: Optional[str]  # open / complete / expired
    payment_status: Optional[str]  # paid / unpaid / no_payment_required
    customer_id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == "complete" and self.payment_status in ("paid", "no_payment_required")


class BasePaymentProvider(ABC):
    """Abstract base class for payment providers"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._initialize_client()

    @abstractmethod
    def _initialize_client(self):
        """Initialize provider-specific client"""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        user_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutSessionResponse:
        """
        Create a hosted subscription checkout

        Args:
            user_id: Stored as the session's client reference
            success_url: Redirect after payment
            cancel_url: Redirect when the buyer backs out
            customer_email: Prefills the checkout form when known

        Returns:
            CheckoutSessionResponse with the hosted page URL
        """
        pass

    @abstractmethod
    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionStatus:
        """Get current checkout session state from provider"""
        pass
