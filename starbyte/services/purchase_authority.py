"""
Purchase Authority for marketplace rewards.

The Purchase Authority is the only component allowed to move Stardust. It
validates stock and funds, debits the buyer and increments the reward's
used counter in one atomic step, and answers with a PurchaseResult.

Errors are returned as data ({success: false, error}), never raised.

Two backends:
- DatabasePurchaseAuthority: local SQL transaction with row locks
- SupabasePurchaseAuthority: the managed backend's stored procedures
  (purchase_reward, refund_reward_purchase) over PostgREST
"""
import logging
from datetime import datetime
from typing import Dict, Any, Optional

import requests
from flask import current_app

from ..extensions import db
from ..models import (
    Star,
    Reward,
    StardustTransaction,
    StardustTransactionType,
    UsageType,
)
from ..schemas import PurchaseFailure, PurchaseResult, parse_purchase_result
from ..utils.exceptions import (
    StarbyteError,
    StarNotFoundError,
    RewardNotFoundError,
    InsufficientStardustError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class PurchaseAuthority:
    """Contract shared by every Purchase Authority backend."""

    def purchase(self, buyer_id: str, reward_id: str) -> PurchaseResult:
        raise NotImplementedError

    def get_reward(self, reward_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def refund(self, receipt_id: str, reason: str) -> Dict[str, Any]:
        raise NotImplementedError


class DatabasePurchaseAuthority(PurchaseAuthority):
    """
    Purchase Authority backed by the local database.

    Usage:
        authority = DatabasePurchaseAuthority()
        result = authority.purchase(star_id, reward_id)
        if result.success:
            result.receipt_id  # StardustTransaction id
    """

    def purchase(self, buyer_id: str, reward_id: str) -> PurchaseResult:
        """
        Debit the buyer and claim one unit of stock.

        Star and reward rows are locked for the duration of the transaction,
        so concurrent purchases of the last unit (or with the last Stardust)
        are serialized.
        """
        try:
            star = Star.query.filter_by(id=buyer_id).with_for_update().first()
            reward = Reward.query.filter_by(id=reward_id).with_for_update().first()
            self._check_purchase(star, reward)

            star.stardust -= reward.price
            reward.used_total = (reward.used_total or 0) + 1

            transaction = StardustTransaction(
                star_id=star.id,
                reward_id=reward.id,
                amount=-reward.price,
                transaction_type=StardustTransactionType.PURCHASE.value,
                description=f'Purchased "{reward.title}"',
                created_at=datetime.utcnow()
            )
            db.session.add(transaction)
            db.session.flush()

            result = parse_purchase_result({
                'success': True,
                'type': reward.delivery_type,
                'data': reward.delivery_data or {},
                'receipt_id': transaction.id,
            })
            db.session.commit()

        except StarbyteError as e:
            db.session.rollback()
            return PurchaseFailure(error=e.message)

        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Reward purchase failed for star {buyer_id}: {e}")
            return PurchaseFailure(error='Failed to purchase')

        current_app.logger.info(
            f"Reward purchased: star {buyer_id} -{reward.price} stardust "
            f"for reward {reward_id} ({reward.delivery_type}). Receipt {result.receipt_id}"
        )
        return result

    def _check_purchase(self, star: Optional[Star], reward: Optional[Reward]) -> None:
        if not star:
            raise StarNotFoundError()
        if not reward:
            raise RewardNotFoundError()
        if not reward.is_active:
            raise StarbyteError('Reward is not active', 'REWARD_INACTIVE')
        if reward.out_of_stock:
            raise StarbyteError('Reward is out of stock', 'OUT_OF_STOCK')
        if reward.lister_id == star.id:
            raise StarbyteError('You cannot purchase your own reward', 'OWN_REWARD')
        if reward.usage_type == UsageType.SINGLE_USE.value and self._already_redeemed(star.id, reward.id):
            raise StarbyteError('Reward already redeemed', 'ALREADY_REDEEMED')
        if star.stardust < reward.price:
            raise InsufficientStardustError(star.stardust, reward.price)
        if not isinstance(reward.delivery_data, dict) or reward.delivery_type not in reward.delivery_data:
            raise ValidationError('Reward delivery is not configured', field='delivery_data')

    def _already_redeemed(self, star_id: str, reward_id: str) -> bool:
        return StardustTransaction.query.filter(
            StardustTransaction.star_id == star_id,
            StardustTransaction.reward_id == reward_id,
            StardustTransaction.transaction_type == StardustTransactionType.PURCHASE.value,
            StardustTransaction.reversed_at.is_(None)
        ).count() > 0

    def get_reward(self, reward_id: str) -> Optional[Dict[str, Any]]:
        reward = Reward.query.get(reward_id)
        return reward.to_dict() if reward else None

    def refund(self, receipt_id: str, reason: str) -> Dict[str, Any]:
        """
        Reverse a purchase: credit the buyer and release the stock unit.

        Args:
            receipt_id: Purchase transaction id
            reason: Reason recorded on both ledger rows

        Returns:
            Dict with refund result
        """
        original = StardustTransaction.query.filter_by(
            id=receipt_id,
            transaction_type=StardustTransactionType.PURCHASE.value
        ).with_for_update().first()

        if not original:
            return {'success': False, 'error': 'Transaction not found'}

        if original.reversed_at:
            return {'success': False, 'error': 'Transaction already reversed'}

        star = Star.query.filter_by(id=original.star_id).with_for_update().first()
        reward = Reward.query.filter_by(id=original.reward_id).with_for_update().first()

        if not star:
            return {'success': False, 'error': 'Star not found'}

        refund = StardustTransaction(
            star_id=original.star_id,
            reward_id=original.reward_id,
            amount=-original.amount,
            transaction_type=StardustTransactionType.REFUND.value,
            description=f'Refund: {reason}',
            related_transaction_id=original.id,
            created_at=datetime.utcnow()
        )
        db.session.add(refund)

        star.stardust += -original.amount
        if reward and reward.used_total:
            reward.used_total -= 1

        original.reversed_at = datetime.utcnow()
        original.reversed_reason = reason

        try:
            db.session.commit()

            current_app.logger.info(
                f"Purchase refunded: receipt {receipt_id}, "
                f"{-original.amount} stardust to star {original.star_id}: {reason}"
            )

            return {
                'success': True,
                'refund_id': refund.id,
                'receipt_id': original.id,
                'amount': refund.amount,
                'new_balance': star.stardust,
                'reason': reason
            }

        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Refund failed for receipt {receipt_id}: {e}")
            return {'success': False, 'error': str(e)}


class SupabasePurchaseAuthority(PurchaseAuthority):
    """
    Purchase Authority backed by Supabase stored procedures.

    The procedures own the locking and the debit; this class only shapes the
    request and validates the answer.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 10, session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_headers(self) -> Dict[str, str]:
        return {
            'apikey': self.api_key,
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    def _rpc(self, name: str, params: Dict[str, Any]) -> Any:
        response = self.session.post(
            f'{self.base_url}/rest/v1/rpc/{name}',
            json=params,
            headers=self._get_headers(),
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def purchase(self, buyer_id: str, reward_id: str) -> PurchaseResult:
        try:
            data = self._rpc('purchase_reward', {
                'p_buyer_id': buyer_id,
                'p_reward_id': reward_id,
            })
        except requests.exceptions.RequestException as e:
            logger.error(f"purchase_reward RPC failed for star {buyer_id}: {e}")
            return PurchaseFailure(error='Failed to purchase')
        except ValueError:
            return PurchaseFailure(error='Failed to purchase')

        try:
            return parse_purchase_result(data)
        except ValidationError as e:
            logger.error(f"purchase_reward RPC returned a malformed result: {e.message}")
            return PurchaseFailure(error='Failed to purchase')

    def get_reward(self, reward_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.session.get(
                f'{self.base_url}/rest/v1/rewards',
                params={'id': f'eq.{reward_id}', 'select': '*'},
                headers=self._get_headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            rows = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Reward lookup failed for {reward_id}: {e}")
            return None

        if not isinstance(rows, list) or not rows:
            return None
        reward = dict(rows[0])
        reward.pop('delivery_data', None)
        reward['out_of_stock'] = (reward.get('used_total') or 0) >= (reward.get('stock_total') or 0)
        return reward

    def refund(self, receipt_id: str, reason: str) -> Dict[str, Any]:
        try:
            data = self._rpc('refund_reward_purchase', {
                'p_receipt_id': receipt_id,
                'p_reason': reason,
            })
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"refund_reward_purchase RPC failed for receipt {receipt_id}: {e}")
            return {'success': False, 'error': str(e)}

        if not isinstance(data, dict):
            return {'success': False, 'error': 'Malformed refund result'}
        return {**data, 'success': bool(data.get('success'))}


def authority_from_config(config) -> PurchaseAuthority:
    """Build the backend named by PURCHASE_AUTHORITY."""
    if config.get('PURCHASE_AUTHORITY') == 'supabase':
        return SupabasePurchaseAuthority(
            base_url=config.get('SUPABASE_URL', ''),
            api_key=config.get('SUPABASE_SERVICE_ROLE_KEY', ''),
            timeout=config.get('SUPABASE_TIMEOUT', 10),
        )
    return DatabasePurchaseAuthority()
