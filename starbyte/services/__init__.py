"""
Business logic services for the Starbyte reward redemption flow.
"""
from .purchase_authority import (
    PurchaseAuthority,
    DatabasePurchaseAuthority,
    SupabasePurchaseAuthority,
    authority_from_config,
)
from .delivery_resolver import DeliveryResolver
from .receipt_notifier import ReceiptNotifier, SmtpTransport, SendGridTransport
from .checkout_service import (
    CheckoutService,
    CheckoutOutcome,
    CheckoutState,
    get_checkout_service,
)

__all__ = [
    'PurchaseAuthority',
    'DatabasePurchaseAuthority',
    'SupabasePurchaseAuthority',
    'authority_from_config',
    'DeliveryResolver',
    'ReceiptNotifier',
    'SmtpTransport',
    'SendGridTransport',
    'CheckoutService',
    'CheckoutOutcome',
    'CheckoutState',
    'get_checkout_service',
]
