from types import SimpleNamespace

import pytest
from fooddash.errors import AuthorizationError
from fooddash.services.authorization import (
    is_owner_or_admin, ensure_owner_or_admin, ensure_any_owner_or_admin, ensure_role
)

OWNER_A = 1
USER_B = 2


def test_owner_is_permitted():
    assert is_owner_or_admin(OWNER_A, 'restaurant_owner', OWNER_A)


def test_other_non_admin_is_denied():
    assert not is_owner_or_admin(USER_B, 'restaurant_owner', OWNER_A)
    assert not is_owner_or_admin(USER_B, 'driver', OWNER_A)
    assert not is_owner_or_admin(USER_B, 'user', OWNER_A)


def test_admin_is_permitted_on_any_resource():
    assert is_owner_or_admin(USER_B, 'admin', OWNER_A)


def test_missing_requester_never_matches_missing_owner():
    assert not is_owner_or_admin(None, 'user', None)


def test_ensure_owner_or_admin_raises_authorization_error():
    stranger = SimpleNamespace(id=USER_B, role='user')
    with pytest.raises(AuthorizationError) as exc:
        ensure_owner_or_admin(stranger, OWNER_A, 'nope')
    assert exc.value.status_code == 403
    assert exc.value.message == 'nope'


def test_ensure_any_owner_accepts_any_listed_owner():
    user = SimpleNamespace(id=3, role='user')
    ensure_any_owner_or_admin(user, (1, 3), 'denied')
    with pytest.raises(AuthorizationError):
        ensure_any_owner_or_admin(user, (1, 2), 'denied')


def test_ensure_role_lets_admin_through():
    ensure_role(SimpleNamespace(id=1, role='admin'), ('driver',), 'denied')
    ensure_role(SimpleNamespace(id=1, role='driver'), ('driver',), 'denied')
    with pytest.raises(AuthorizationError):
        ensure_role(SimpleNamespace(id=1, role='user'), ('driver',), 'denied')
