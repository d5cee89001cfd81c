import pytest
from fooddash import create_app, db
from fooddash.config import TestingConfig
from fooddash.models.models import User

PASSWORD = 'secret123'


def bearer(token):
    return {'Authorization': f"Bearer {token}"}


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(client):
    """Register a user through the API and return (user dict, auth headers)"""
    def _register(identifier, role='user', name=None, password=PASSWORD):
        resp = client.post('/api/auth/register', json={
            'name': name or identifier.split('@')[0],
            'identifier': identifier,
            'password': password,
            'role': role
        })
        assert resp.status_code == 201, resp.get_json()
        data = resp.get_json()['data']
        return data['user'], bearer(data['token'])
    return _register


@pytest.fixture
def admin(app, client):
    with app.app_context():
        user = User(name='Admin', identifier='admin@example.com', role='admin')
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()

    resp = client.post('/api/auth/login', json={'identifier': 'admin@example.com', 'password': PASSWORD})
    data = resp.get_json()['data']
    return data['user'], bearer(data['token'])


@pytest.fixture
def owner(register):
    return register('owner@example.com', role='restaurant_owner')


@pytest.fixture
def customer(register):
    return register('customer@example.com')


@pytest.fixture
def driver_user(register):
    return register('driver@example.com', role='driver')


def restaurant_payload(**overrides):
    payload = {
        'name': 'Pasta Place',
        'location': 'Downtown',
        'address': '1 Main Street',
        'phone': '555-0100',
        'email': 'pasta@example.com',
        'cuisine_type': 'italian',
        'delivery_fee': 2.5,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def restaurant(client, owner):
    _, headers = owner
    resp = client.post('/api/resturants', json=restaurant_payload(), headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['data']


@pytest.fixture
def place_order(client):
    def _place(headers, restaurant_id, total_price=19.99, **extra):
        payload = {'restaurant_id': restaurant_id, 'total_price': total_price,
                   'delivery_address': '5 Side Road'}
        payload.update(extra)
        resp = client.post('/api/orders', json=payload, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()['data']
    return _place
