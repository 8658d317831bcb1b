"""
Braintree adapter.

``BraintreePaymentGateway`` wraps the two SDK calls the checkout needs so the
order service never touches the SDK (or its global configuration) directly.
The gateway is built once from settings by ``get_gateway``; tests override
that dependency with an in-process fake.
"""
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Any, Optional

import braintree
from braintree.exceptions.braintree_error import BraintreeError

from .config import Settings, get_settings
from .log import get_logger

logger = get_logger(__name__)

ENVIRONMENTS = {
    "sandbox": braintree.Environment.Sandbox,
    "production": braintree.Environment.Production,
}


class GatewayError(Exception):
    """The gateway could not be reached or rejected the request outright."""


@dataclass
class SaleResult:
    success: bool
    transaction_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[str] = None
    message: Optional[str] = None
    raw: Any = field(default=None, repr=False)

    def as_payment(self) -> dict:
        """The outcome as stored on the order document."""
        return {
            "success": self.success,
            "transaction": {
                "id": self.transaction_id,
                "status": self.status,
                "amount": self.amount,
            },
            "message": self.message,
        }


def format_amount(amount) -> str:
    return str(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class BraintreePaymentGateway:
    def __init__(self, gateway: braintree.BraintreeGateway):
        self._gateway = gateway

    @classmethod
    def from_settings(cls, settings: Settings) -> "BraintreePaymentGateway":
        environment = ENVIRONMENTS.get(
            settings.BRAINTREE_ENVIRONMENT.lower(), braintree.Environment.Sandbox
        )
        gateway = braintree.BraintreeGateway(
            braintree.Configuration(
                environment=environment,
                merchant_id=settings.BRAINTREE_MERCHANT_ID,
                public_key=settings.BRAINTREE_PUBLIC_KEY,
                private_key=settings.BRAINTREE_PRIVATE_KEY,
            )
        )
        return cls(gateway)

    def generate_client_token(self) -> str:
        try:
            return self._gateway.client_token.generate()
        except BraintreeError as exc:
            raise GatewayError(str(exc) or exc.__class__.__name__) from exc

    def sale(self, amount, nonce: str) -> SaleResult:
        try:
            result = self._gateway.transaction.sale({
                "amount": format_amount(amount),
                "payment_method_nonce": nonce,
                "options": {"submit_for_settlement": True},
            })
        except BraintreeError as exc:
            raise GatewayError(str(exc) or exc.__class__.__name__) from exc

        transaction = getattr(result, "transaction", None)
        if not result.is_success:
            logger.warning("Sale for %s declined: %s", format_amount(amount), result.message)
        return SaleResult(
            success=bool(result.is_success),
            transaction_id=getattr(transaction, "id", None),
            status=getattr(transaction, "status", None),
            amount=str(getattr(transaction, "amount", "")) or None,
            message=None if result.is_success else result.message,
            raw=result,
        )


@lru_cache
def get_gateway() -> BraintreePaymentGateway:
    return BraintreePaymentGateway.from_settings(get_settings())
