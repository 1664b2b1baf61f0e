"""
Tests for the Purchase Authority backends.

Comprehensive tests for:
- Atomic debit and stock claim (database backend)
- Rejection messages and their precedence
- Refunds (compensating transactions)
- Supabase stored-procedure calls (mocked HTTP)
"""
import pytest
import requests
from unittest.mock import MagicMock

from starbyte.schemas import CodePurchase, LinkPurchase, FetchPurchase, PurchaseFailure
from starbyte.services.purchase_authority import (
    DatabasePurchaseAuthority,
    SupabasePurchaseAuthority,
    authority_from_config,
)


@pytest.fixture
def authority(app):
    return DatabasePurchaseAuthority()


class TestDatabasePurchase:
    """Tests for DatabasePurchaseAuthority.purchase."""

    def test_code_purchase_debits_and_claims_stock(self, authority, sample_star, sample_reward):
        from starbyte.models import StardustTransaction

        result = authority.purchase(sample_star.id, sample_reward.id)

        assert isinstance(result, CodePurchase)
        assert result.data.code == 'WELCOME20'
        assert result.receipt_id

        assert sample_star.stardust == 30
        assert sample_reward.used_total == 1

        transaction = StardustTransaction.query.get(result.receipt_id)
        assert transaction.amount == -20
        assert transaction.transaction_type == 'purchase'
        assert transaction.star_id == sample_star.id
        assert transaction.reward_id == sample_reward.id

    def test_link_purchase(self, authority, sample_star, link_reward):
        result = authority.purchase(sample_star.id, link_reward.id)

        assert isinstance(result, LinkPurchase)
        assert result.data.link == 'https://example.com/wallpapers'

    def test_fetch_purchase_normalizes_descriptor(self, authority, sample_star, make_reward):
        reward = make_reward(
            price=5,
            delivery_type='fetch',
            delivery_data={'fetch': 'https://partner.example.com/fulfill'}
        )

        result = authority.purchase(sample_star.id, reward.id)

        assert isinstance(result, FetchPurchase)
        assert result.data.fetch.url == 'https://partner.example.com/fulfill'
        assert result.data.fetch.method == 'POST'

    def test_insufficient_stardust(self, authority, sample_star, make_reward):
        from starbyte.models import StardustTransaction

        reward = make_reward(price=60)

        result = authority.purchase(sample_star.id, reward.id)

        assert isinstance(result, PurchaseFailure)
        assert result.error == 'Insufficient stardust'
        assert sample_star.stardust == 50
        assert reward.used_total == 0
        assert StardustTransaction.query.count() == 0

    def test_exact_balance_is_enough(self, authority, sample_star, make_reward):
        reward = make_reward(price=50)

        result = authority.purchase(sample_star.id, reward.id)

        assert result.success is True
        assert sample_star.stardust == 0

    def test_out_of_stock(self, authority, sample_star, make_reward):
        reward = make_reward(stock_total=3, used_total=3)

        result = authority.purchase(sample_star.id, reward.id)

        assert result.error == 'Reward is out of stock'

    def test_last_unit_can_be_bought_once(self, authority, sample_star, make_reward):
        reward = make_reward(price=10, stock_total=1)

        first = authority.purchase(sample_star.id, reward.id)
        second = authority.purchase(sample_star.id, reward.id)

        assert first.success is True
        assert second.error == 'Reward is out of stock'
        assert sample_star.stardust == 40

    def test_inactive_reward(self, authority, sample_star, make_reward):
        reward = make_reward(is_active=False)

        result = authority.purchase(sample_star.id, reward.id)

        assert result.error == 'Reward is not active'

    def test_unknown_reward(self, authority, sample_star):
        result = authority.purchase(sample_star.id, 'missing')

        assert result.error == 'Reward not found'

    def test_unknown_star(self, authority, sample_reward):
        result = authority.purchase('missing', sample_reward.id)

        assert result.error == 'Star not found'

    def test_lister_cannot_buy_own_reward(self, authority, sample_lister, sample_reward):
        sample_lister.stardust = 100

        result = authority.purchase(sample_lister.id, sample_reward.id)

        assert result.error == 'You cannot purchase your own reward'

    def test_single_use_reward_once_per_star(self, authority, sample_star, make_reward):
        reward = make_reward(price=10, usage_type='single_use')

        first = authority.purchase(sample_star.id, reward.id)
        second = authority.purchase(sample_star.id, reward.id)

        assert first.success is True
        assert second.error == 'Reward already redeemed'
        assert sample_star.stardust == 40

    def test_multi_use_reward_repeatable(self, authority, sample_star, make_reward):
        reward = make_reward(price=10, usage_type='multi_use')

        authority.purchase(sample_star.id, reward.id)
        second = authority.purchase(sample_star.id, reward.id)

        assert second.success is True
        assert reward.used_total == 2

    def test_inactive_checked_before_funds(self, authority, sample_star, make_reward):
        reward = make_reward(price=500, is_active=False)

        result = authority.purchase(sample_star.id, reward.id)

        assert result.error == 'Reward is not active'

    def test_unconfigured_delivery_is_rejected(self, authority, sample_star, make_reward):
        reward = make_reward(delivery_type='link', delivery_data={'code': 'WRONG'})

        result = authority.purchase(sample_star.id, reward.id)

        assert result.success is False
        assert sample_star.stardust == 50

    def test_get_reward_hides_delivery_data(self, authority, sample_reward):
        reward = authority.get_reward(sample_reward.id)

        assert reward['title'] == 'Welcome pack'
        assert reward['stock_total'] == 100
        assert reward['out_of_stock'] is False
        assert 'delivery_data' not in reward

    def test_get_unknown_reward(self, authority):
        assert authority.get_reward('missing') is None


class TestDatabaseRefund:
    """Tests for DatabasePurchaseAuthority.refund."""

    def test_refund_restores_balance_and_stock(self, authority, sample_star, sample_reward):
        from starbyte.models import StardustTransaction

        purchase = authority.purchase(sample_star.id, sample_reward.id)
        result = authority.refund(purchase.receipt_id, 'Delivery failed')

        assert result['success'] is True
        assert result['amount'] == 20
        assert result['new_balance'] == 50
        assert sample_star.stardust == 50
        assert sample_reward.used_total == 0

        original = StardustTransaction.query.get(purchase.receipt_id)
        assert original.reversed_at is not None
        assert original.reversed_reason == 'Delivery failed'

        refund = StardustTransaction.query.get(result['refund_id'])
        assert refund.transaction_type == 'refund'
        assert refund.related_transaction_id == purchase.receipt_id

    def test_refund_twice_is_rejected(self, authority, sample_star, sample_reward):
        purchase = authority.purchase(sample_star.id, sample_reward.id)
        authority.refund(purchase.receipt_id, 'first')

        result = authority.refund(purchase.receipt_id, 'second')

        assert result == {'success': False, 'error': 'Transaction already reversed'}
        assert sample_star.stardust == 50

    def test_refund_unknown_receipt(self, authority):
        result = authority.refund('missing', 'reason')

        assert result == {'success': False, 'error': 'Transaction not found'}

    def test_refunded_single_use_can_be_bought_again(self, authority, sample_star, make_reward):
        reward = make_reward(price=10, usage_type='single_use')

        purchase = authority.purchase(sample_star.id, reward.id)
        authority.refund(purchase.receipt_id, 'Delivery failed')
        again = authority.purchase(sample_star.id, reward.id)

        assert again.success is True


class TestSupabasePurchaseAuthority:
    """Tests for the stored-procedure backend."""

    @pytest.fixture
    def http(self):
        return MagicMock()

    @pytest.fixture
    def supabase(self, http):
        return SupabasePurchaseAuthority(
            'https://project.supabase.co/', 'service-key', timeout=4, session=http
        )

    def test_purchase_calls_rpc(self, supabase, http, http_response):
        http.post.return_value = http_response(200, {
            'success': True, 'type': 'code', 'data': {'code': 'WELCOME20'}, 'receipt_id': 'r1'
        })

        result = supabase.purchase('star-1', 'reward-1')

        assert isinstance(result, CodePurchase)
        assert result.receipt_id == 'r1'
        http.post.assert_called_once()
        args, kwargs = http.post.call_args
        assert args[0] == 'https://project.supabase.co/rest/v1/rpc/purchase_reward'
        assert kwargs['json'] == {'p_buyer_id': 'star-1', 'p_reward_id': 'reward-1'}
        assert kwargs['headers']['apikey'] == 'service-key'
        assert kwargs['headers']['Authorization'] == 'Bearer service-key'
        assert kwargs['timeout'] == 4

    def test_rejection_is_passed_through(self, supabase, http, http_response):
        http.post.return_value = http_response(200, {'success': False, 'error': 'Insufficient stardust'})

        result = supabase.purchase('star-1', 'reward-1')

        assert result == PurchaseFailure(error='Insufficient stardust')

    def test_network_error_becomes_failure(self, supabase, http):
        http.post.side_effect = requests.exceptions.ConnectionError('down')

        result = supabase.purchase('star-1', 'reward-1')

        assert result.error == 'Failed to purchase'

    def test_malformed_success_becomes_failure(self, supabase, http, http_response):
        http.post.return_value = http_response(200, {'success': True, 'type': 'code', 'data': {}})

        result = supabase.purchase('star-1', 'reward-1')

        assert isinstance(result, PurchaseFailure)

    def test_get_reward_strips_delivery_data(self, supabase, http, http_response):
        http.get.return_value = http_response(200, [{
            'id': 'reward-1', 'title': 'Welcome pack', 'stock_total': 2, 'used_total': 2,
            'delivery_data': {'code': 'SECRET'},
        }])

        reward = supabase.get_reward('reward-1')

        assert reward['out_of_stock'] is True
        assert 'delivery_data' not in reward
        assert http.get.call_args[1]['params']['id'] == 'eq.reward-1'

    def test_get_missing_reward(self, supabase, http, http_response):
        http.get.return_value = http_response(200, [])

        assert supabase.get_reward('reward-1') is None

    def test_refund_calls_rpc(self, supabase, http, http_response):
        http.post.return_value = http_response(200, {'success': True, 'new_balance': 50})

        result = supabase.refund('r1', 'Delivery failed')

        assert result['success'] is True
        assert http.post.call_args[1]['json'] == {'p_receipt_id': 'r1', 'p_reason': 'Delivery failed'}


class TestAuthorityFromConfig:

    def test_database_by_default(self, app):
        assert isinstance(authority_from_config(app.config), DatabasePurchaseAuthority)

    def test_supabase(self, app):
        app.config['PURCHASE_AUTHORITY'] = 'supabase'
        app.config['SUPABASE_URL'] = 'https://project.supabase.co'

        authority = authority_from_config(app.config)

        assert isinstance(authority, SupabasePurchaseAuthority)
        assert authority.base_url == 'https://project.supabase.co'
