"""
Shared pytest fixtures for Starbyte.

The app runs on in-memory SQLite with one app context held open for the whole
test, so model instances created by fixtures stay attached to the session the
views and services use.
"""
import pytest
from unittest.mock import MagicMock

from starbyte import create_app
from starbyte.extensions import db as _db


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Test client."""
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def sample_star(app):
    """Buyer with 50 Stardust."""
    from starbyte.models import Star

    star = Star(
        star_name='nova',
        display_name='Nova',
        email='nova@example.com',
        avatar='https://cdn.example.com/nova.png',
        bio='Collects every badge.',
        stardust=50
    )
    _db.session.add(star)
    _db.session.commit()
    return star


@pytest.fixture
def sample_lister(app):
    """Star who lists rewards."""
    from starbyte.models import Star

    star = Star(
        star_name='orbit',
        display_name='Orbit Studio',
        email='orbit@example.com',
        stardust=0
    )
    _db.session.add(star)
    _db.session.commit()
    return star


def _make_reward(lister, **overrides):
    from starbyte.models import Reward

    fields = {
        'lister_id': lister.id,
        'title': 'Welcome pack',
        'description': 'A discount code for your first order.',
        'image_url': ['https://cdn.example.com/welcome.png'],
        'price': 20,
        'delivery_type': 'code',
        'usage_type': 'multi_use',
        'delivery_data': {'code': 'WELCOME20'},
        'delivery_instructions': 'Enter the code at checkout.',
        'stock_total': 100,
        'used_total': 0,
        'is_active': True,
    }
    fields.update(overrides)
    reward = Reward(**fields)
    _db.session.add(reward)
    _db.session.commit()
    return reward


@pytest.fixture
def make_reward(app, sample_lister):
    """Factory for rewards listed by sample_lister."""
    def factory(**overrides):
        return _make_reward(sample_lister, **overrides)
    return factory


@pytest.fixture
def sample_reward(make_reward):
    """Code reward priced at 20 Stardust."""
    return make_reward()


@pytest.fixture
def link_reward(make_reward):
    return make_reward(
        title='Wallpaper bundle',
        price=10,
        delivery_type='link',
        delivery_data={'link': 'https://example.com/wallpapers'},
        delivery_instructions=None
    )


@pytest.fixture
def fetch_reward(make_reward):
    return make_reward(
        title='Studio membership',
        price=40,
        delivery_type='fetch',
        delivery_data={'fetch': {'url': 'https://partner.example.com/fulfill', 'method': 'POST'}},
        delivery_instructions='Your membership code arrives from Orbit Studio.'
    )


@pytest.fixture
def star_session(sample_star):
    from starbyte.middleware import StarSession

    return StarSession(
        star_id=sample_star.id,
        email=sample_star.email,
        star_name=sample_star.star_name,
        display_name=sample_star.display_name,
        avatar=sample_star.avatar,
        bio=sample_star.bio
    )


@pytest.fixture
def auth_headers(app, star_session):
    """Authorization header carrying a signed session for sample_star."""
    from starbyte.middleware import issue_session_token

    token = issue_session_token(star_session, app.config['SESSION_SECRET'])
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def mock_transport():
    """Email transport that records sends instead of delivering them."""
    return MagicMock()


@pytest.fixture
def mock_http():
    """requests.Session stand-in for fulfillment endpoints."""
    return MagicMock()


@pytest.fixture
def checkout_service(app, mock_transport, mock_http):
    """The app's CheckoutService with mocked network and email."""
    from starbyte.services import CheckoutService, DeliveryResolver, ReceiptNotifier
    from starbyte.services.purchase_authority import authority_from_config

    service = CheckoutService(
        authority=authority_from_config(app.config),
        resolver=DeliveryResolver(session=mock_http, timeout=app.config['DELIVERY_FETCH_TIMEOUT']),
        notifier=ReceiptNotifier.from_app(app, transport=mock_transport),
        receipt_policy=app.config['RECEIPT_POLICY'],
        failure_policy=app.config['DELIVERY_FAILURE_POLICY']
    )
    app.extensions['starbyte_checkout'] = service
    return service


def json_response(status_code=200, body=None):
    """Fake requests.Response with a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture
def http_response():
    """Factory for fake fulfillment endpoint responses."""
    return json_response
