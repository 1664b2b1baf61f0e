"""
Rewards API endpoints for the Starbyte marketplace.

Handles:
- Marketplace listing and reward detail
- Reward purchase (debit, delivery resolution, receipt)
- Delivery resolution for purchases completed by the client
"""
from flask import Blueprint, request, jsonify, current_app

from ..middleware.star_session import require_star_session
from ..models import Reward, DeliveryType
from ..schemas import PurchaseFailure, parse_purchase_result, parse_star, parse_reward_summary
from ..services.checkout_service import get_checkout_service
from ..utils.errors import (
    ErrorCode,
    bad_request,
    not_found,
    conflict,
    purchase_rejected,
    resolution_error,
)
from ..utils.exceptions import ValidationError, PurchaseInProgressError

rewards_bp = Blueprint('rewards', __name__)


def _checkout():
    return get_checkout_service(current_app._get_current_object())


# ==============================================================================
# MARKETPLACE
# ==============================================================================

@rewards_bp.route('', methods=['GET'])
def list_rewards():
    """
    List active marketplace rewards.

    Query params:
        delivery_type: Filter by delivery type (code, link, fetch)

    Returns:
        List of rewards, newest first
    """
    delivery_type = request.args.get('delivery_type')
    query = Reward.query.filter(Reward.is_active.is_(True))

    if delivery_type:
        if delivery_type not in [t.value for t in DeliveryType]:
            return bad_request(
                f'delivery_type must be one of: {", ".join(t.value for t in DeliveryType)}',
                ErrorCode.VALIDATION_ERROR
            )
        query = query.filter(Reward.delivery_type == delivery_type)

    rewards = query.order_by(Reward.created_at.desc()).all()

    return jsonify({
        'rewards': [r.to_dict() for r in rewards],
        'count': len(rewards)
    })


@rewards_bp.route('/<reward_id>', methods=['GET'])
def get_reward(reward_id):
    """Get a single reward with its stock counters."""
    reward = _checkout().authority.get_reward(reward_id)
    if not reward:
        return not_found('Reward not found', ErrorCode.REWARD_NOT_FOUND)
    return jsonify(reward)


# ==============================================================================
# PURCHASE
# ==============================================================================

@rewards_bp.route('/<reward_id>/purchase', methods=['POST'])
@require_star_session
def purchase_reward(reward_id, session):
    """
    Purchase a reward for the signed-in star.

    Returns:
        success: True when the reward resolved to something usable
        state: resolved or failed
        resolved: The redemption artifact ({ok, type, code|link|message})
        receipt: Receipt email result, or null when none was sent
        refund: Refund result when the refund policy applied
        reward: Refreshed reward with stock counters
    """
    try:
        outcome = _checkout().checkout(session, reward_id)
    except PurchaseInProgressError as e:
        return conflict(e.message, ErrorCode.STATE_CONFLICT)

    if isinstance(outcome.purchase, PurchaseFailure):
        return purchase_rejected(outcome.error)

    return jsonify(outcome.to_dict())


# ==============================================================================
# DELIVERY RESOLUTION
# ==============================================================================

@rewards_bp.route('/resolve', methods=['POST'])
def resolve_delivery():
    """
    Resolve a completed purchase into a redemption artifact.

    JSON body:
        purchase: Purchase result from the Purchase Authority (required)
        star: Buyer profile {starName, displayName, email, avatar, bio}
        reward: Reward summary {title, description, image_url, price, ...}

    Returns:
        {ok: true, type, code|link|message} or {ok: false, message}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('purchase'):
        return resolution_error('Missing purchase')

    try:
        purchase = parse_purchase_result(data['purchase'])
    except ValidationError as e:
        return resolution_error(e.message)

    if isinstance(purchase, PurchaseFailure):
        return resolution_error(purchase.error or 'Invalid purchase')

    try:
        star = parse_star(data.get('star'))
        reward = parse_reward_summary(data.get('reward'))
    except ValidationError as e:
        return resolution_error(e.message)

    try:
        outcome = _checkout().fulfill(purchase, star, reward)
    except Exception as e:
        current_app.logger.error(f"Delivery resolution failed: {e}")
        return resolution_error('Failed to resolve delivery', 500)

    return jsonify(outcome.resolved.to_dict())
