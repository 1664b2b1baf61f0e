"""
Tests for API error responses.
"""
import pytest

from starbyte.utils.errors import purchase_rejected, resolution_error, exception_response
from starbyte.utils.exceptions import PurchaseInProgressError, RewardNotFoundError


class TestPurchaseRejected:

    @pytest.mark.parametrize('message,code', [
        ('Insufficient stardust', 'INSUFFICIENT_BALANCE'),
        ('INSUFFICIENT FUNDS', 'INSUFFICIENT_BALANCE'),
        ('Reward is out of stock', 'OPERATION_FAILED'),
        ('Reward is not active', 'OPERATION_FAILED'),
    ])
    def test_code_follows_message(self, app, message, code):
        response, status = purchase_rejected(message)

        assert status == 400
        assert response.get_json() == {'error': {'message': message, 'code': code}}

    def test_missing_message(self, app):
        response, _ = purchase_rejected(None)

        assert response.get_json()['error']['message'] == 'Failed to purchase'


class TestResolutionError:

    def test_keeps_resolved_delivery_shape(self, app):
        response, status = resolution_error('Missing purchase')

        assert status == 400
        assert response.get_json() == {'ok': False, 'message': 'Missing purchase'}


class TestExceptionResponse:

    def test_uses_exception_status(self, app):
        response, status = exception_response(PurchaseInProgressError('star-1'))

        assert status == 409
        assert response.get_json()['error']['code'] == 'STATE_CONFLICT'

    def test_not_found(self, app):
        response, status = exception_response(RewardNotFoundError('reward-1'))

        assert status == 404
        assert response.get_json()['error'] == {
            'message': 'Reward with ID reward-1 not found',
            'code': 'REWARD_NOT_FOUND',
        }
