from types import SimpleNamespace

import pytest
from fooddash.errors import ConflictError, ValidationError
from fooddash.services.order_service import OrderWorkflow, TRANSITION_POLICIES


def make_order(status='pending'):
    return SimpleNamespace(status=status, delivered_at=None)


def test_forward_policy_allows_skipping_ahead():
    order = OrderWorkflow('forward').transition(make_order(), 'delivered')
    assert order.status == 'delivered'
    assert order.delivered_at is not None


def test_forward_policy_never_goes_back():
    with pytest.raises(ConflictError) as exc:
        OrderWorkflow('forward').transition(make_order('preparing'), 'accepted')
    assert exc.value.error == 'Allowed statuses: on_the_way, delivered, cancelled'


def test_strict_policy_only_allows_next_step_or_cancel():
    workflow = OrderWorkflow('strict')
    assert workflow.allowed_targets('pending') == ['accepted', 'cancelled']

    with pytest.raises(ConflictError):
        workflow.transition(make_order(), 'delivered')

    order = workflow.transition(make_order(), 'accepted')
    assert order.status == 'accepted'
    assert order.delivered_at is None


def test_permissive_policy_accepts_anything():
    order = OrderWorkflow('permissive').transition(make_order('delivered'), 'pending')
    assert order.status == 'pending'


@pytest.mark.parametrize('policy', ['strict', 'forward'])
def test_terminal_statuses_are_final(policy):
    workflow = OrderWorkflow(policy)
    for status in ('delivered', 'cancelled'):
        assert workflow.allowed_targets(status) == []
        with pytest.raises(ConflictError):
            workflow.transition(make_order(status), 'pending')


def test_only_delivery_is_timestamped():
    order = OrderWorkflow('forward').transition(make_order(), 'cancelled')
    assert order.status == 'cancelled'
    assert order.delivered_at is None


def test_unknown_status_is_validation_error():
    with pytest.raises(ValidationError) as exc:
        OrderWorkflow().transition(make_order(), 'teleported')
    assert 'Valid statuses are' in exc.value.message


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        OrderWorkflow('anything-goes')


def test_custom_table():
    workflow = OrderWorkflow(transitions={'pending': frozenset({'cancelled'})})
    assert workflow.allowed_targets('pending') == ['cancelled']
    assert workflow.allowed_targets('accepted') == []


def test_cancel():
    assert OrderWorkflow.cancel(make_order('on_the_way')).status == 'cancelled'
    for status in ('delivered', 'cancelled'):
        with pytest.raises(ConflictError):
            OrderWorkflow.cancel(make_order(status))


def test_policies_cover_every_status():
    for table in TRANSITION_POLICIES.values():
        assert set(table) == {'pending', 'accepted', 'preparing', 'on_the_way', 'delivered', 'cancelled'}
