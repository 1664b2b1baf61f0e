"""
Checkout orchestration for marketplace rewards.

Sequences one purchase click:

    idle -> purchasing -> failed                 (Purchase Authority said no)
                       -> resolving -> resolved  (artifact ready)
                                    -> failed    (resolution failed; debit stands
                                                  unless the refund policy applies)

Every step waits for the previous one; nothing runs in parallel. The
Purchase Authority is the only step that moves Stardust, so nothing here is
persisted between steps.

Policies:
- DELIVERY_FAILURE_POLICY
    debit_final: a failed resolution keeps the purchase (the buyer owns it)
    refund:      a failed resolution is refunded through the authority
- RECEIPT_POLICY
    always:      send a receipt whenever the purchase stands
    on_resolved: send a receipt only when resolution succeeded
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional

from ..middleware.star_session import StarSession
from ..schemas import (
    PurchaseFailure,
    PurchaseResult,
    StarLite,
    RewardSummary,
    ResolutionFailure,
    ResolvedDelivery,
)
from ..utils.exceptions import PurchaseInProgressError
from .delivery_resolver import DeliveryResolver
from .purchase_authority import PurchaseAuthority
from .receipt_notifier import ReceiptNotifier

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    """Checkout state machine."""
    IDLE = 'idle'
    PURCHASING = 'purchasing'
    RESOLVING = 'resolving'
    RESOLVED = 'resolved'
    FAILED = 'failed'


class DeliveryFailurePolicy(str, Enum):
    DEBIT_FINAL = 'debit_final'
    REFUND = 'refund'


class ReceiptPolicy(str, Enum):
    ALWAYS = 'always'
    ON_RESOLVED = 'on_resolved'


@dataclass
class CheckoutOutcome:
    """Everything the buyer needs to see after a purchase click."""
    state: CheckoutState = CheckoutState.IDLE
    purchase: Optional[PurchaseResult] = None
    resolved: Optional[ResolvedDelivery] = None
    receipt: Optional[Dict[str, Any]] = None
    refund: Optional[Dict[str, Any]] = None
    reward: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state == CheckoutState.RESOLVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'state': self.state.value,
            'receipt_id': getattr(self.purchase, 'receipt_id', None),
            'resolved': self.resolved.to_dict() if self.resolved else None,
            'receipt': self.receipt,
            'refund': self.refund,
            'reward': self.reward,
            'error': self.error,
        }


class CheckoutService:
    """
    Orchestrates purchase, delivery resolution and receipt.

    Usage:
        service = CheckoutService(authority, resolver, notifier)
        outcome = service.checkout(session, reward_id)
        outcome.resolved.to_dict()  # {'ok': True, 'type': 'code', 'code': '...'}
    """

    def __init__(
        self,
        authority: PurchaseAuthority,
        resolver: DeliveryResolver,
        notifier: ReceiptNotifier,
        receipt_policy: str = ReceiptPolicy.ALWAYS.value,
        failure_policy: str = DeliveryFailurePolicy.DEBIT_FINAL.value,
    ):
        self.authority = authority
        self.resolver = resolver
        self.notifier = notifier
        self.receipt_policy = ReceiptPolicy(receipt_policy)
        self.failure_policy = DeliveryFailurePolicy(failure_policy)
        self._in_flight = set()
        self._lock = threading.Lock()

    @classmethod
    def from_app(cls, app) -> 'CheckoutService':
        from .purchase_authority import authority_from_config

        config = app.config
        return cls(
            authority=authority_from_config(config),
            resolver=DeliveryResolver(timeout=config.get('DELIVERY_FETCH_TIMEOUT', 10)),
            notifier=ReceiptNotifier.from_app(app),
            receipt_policy=config.get('RECEIPT_POLICY', ReceiptPolicy.ALWAYS.value),
            failure_policy=config.get('DELIVERY_FAILURE_POLICY', DeliveryFailurePolicy.DEBIT_FINAL.value),
        )

    # ==================== Checkout ====================

    def checkout(self, session: StarSession, reward_id: str) -> CheckoutOutcome:
        """
        Run a full purchase for the signed-in star.

        Raises:
            PurchaseInProgressError: If this star already has a checkout running
        """
        self._acquire(session.star_id)
        try:
            return self._checkout(session, reward_id)
        finally:
            self._release(session.star_id)

    def _checkout(self, session: StarSession, reward_id: str) -> CheckoutOutcome:
        outcome = CheckoutOutcome(state=CheckoutState.PURCHASING)
        reward = RewardSummary.coerce(self.authority.get_reward(reward_id))

        purchase = self.authority.purchase(session.star_id, reward_id)
        outcome.purchase = purchase

        if isinstance(purchase, PurchaseFailure):
            outcome.state = CheckoutState.FAILED
            outcome.error = purchase.error or 'Failed to purchase'
            logger.info(f"Purchase rejected for star {session.star_id}: {outcome.error}")
            return outcome

        if reward is None:
            logger.warning(
                f"Reward {reward_id} details unavailable for receipt {purchase.receipt_id}; "
                f"receipt uses default title and zero total"
            )

        outcome.state = CheckoutState.RESOLVING
        star = session.to_lite()
        resolved = self.resolver.resolve(purchase, star)
        outcome.resolved = resolved

        purchase_stands = True
        if isinstance(resolved, ResolutionFailure):
            outcome.state = CheckoutState.FAILED
            outcome.error = resolved.message
            logger.warning(
                f"Delivery resolution failed for receipt {purchase.receipt_id}: {resolved.message}"
            )
            if self.failure_policy == DeliveryFailurePolicy.REFUND and purchase.receipt_id:
                outcome.refund = self.authority.refund(
                    purchase.receipt_id,
                    f'Delivery failed: {resolved.message}'
                )
                purchase_stands = not outcome.refund.get('success')
        else:
            outcome.state = CheckoutState.RESOLVED

        if purchase_stands:
            outcome.receipt = self.send_receipt(purchase, resolved, star, reward)

        outcome.reward = self.authority.get_reward(reward_id)
        return outcome

    def fulfill(self, purchase: PurchaseResult, star: Any, reward: Any = None) -> CheckoutOutcome:
        """
        Resolve and notify for a purchase completed elsewhere.

        Never refunds: the purchase result comes from the caller, not from
        the authority.
        """
        star = StarLite.coerce(star)
        reward = RewardSummary.coerce(reward)
        outcome = CheckoutOutcome(state=CheckoutState.RESOLVING, purchase=purchase)

        resolved = self.resolver.resolve(purchase, star)
        outcome.resolved = resolved
        if isinstance(resolved, ResolutionFailure):
            outcome.state = CheckoutState.FAILED
            outcome.error = resolved.message
        else:
            outcome.state = CheckoutState.RESOLVED

        outcome.receipt = self.send_receipt(purchase, resolved, star, reward)
        return outcome

    # ==================== Receipt ====================

    def should_send_receipt(self, resolved: ResolvedDelivery, star: StarLite) -> bool:
        if not star.email:
            return False
        if self.receipt_policy == ReceiptPolicy.ON_RESOLVED:
            return not isinstance(resolved, ResolutionFailure)
        return True

    def send_receipt(
        self,
        purchase: PurchaseResult,
        resolved: ResolvedDelivery,
        star: StarLite,
        reward: Optional[RewardSummary],
    ) -> Optional[Dict[str, Any]]:
        """Send the receipt if policy allows; returns the notifier result or None."""
        if not self.should_send_receipt(resolved, star):
            return None

        price = reward.price if reward and reward.price is not None else 0
        line_item = {
            'title': (reward.title if reward else None) or 'Reward',
            'description': reward.description if reward else None,
            'price': price,
            'image_url': reward.primary_image if reward else None,
            'delivery_instructions': reward.delivery_instructions if reward else None,
            'reward_detail': resolved.detail,
        }

        result = self.notifier.send_purchase_receipt(
            to=star.email,
            order_id=getattr(purchase, 'receipt_id', None) or '',
            total=price,
            products=[line_item],
        )
        if not result.get('success'):
            logger.warning(f"Receipt not sent for {star.email}: {result.get('message')}")
        return result

    # ==================== Re-entrancy ====================

    def _acquire(self, star_id: str) -> None:
        with self._lock:
            if star_id in self._in_flight:
                raise PurchaseInProgressError(star_id)
            self._in_flight.add(star_id)

    def _release(self, star_id: str) -> None:
        with self._lock:
            self._in_flight.discard(star_id)

    def is_in_flight(self, star_id: str) -> bool:
        with self._lock:
            return star_id in self._in_flight


_service_lock = threading.Lock()


def get_checkout_service(app) -> CheckoutService:
    """Return the app's shared CheckoutService, creating it on first use."""
    service = app.extensions.get('starbyte_checkout')
    if service is None:
        with _service_lock:
            service = app.extensions.get('starbyte_checkout')
            if service is None:
                service = CheckoutService.from_app(app)
                app.extensions['starbyte_checkout'] = service
    return service
