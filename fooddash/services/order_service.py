"""
Order lifecycle and order statistics.

Statuses move forward through
    pending -> accepted -> preparing -> on_the_way -> delivered
and ``cancelled`` is reachable from any non-terminal status. Which jumps are
accepted by the status endpoint depends on the configured transition policy.
"""
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from sqlalchemy import func
from fooddash import db
from fooddash.errors import ValidationError, ConflictError
from fooddash.models.models import Order, ORDER_STATUSES
from fooddash.utils import now_utc

FORWARD_SEQUENCE = ('pending', 'accepted', 'preparing', 'on_the_way', 'delivered')
TERMINAL_STATUSES = frozenset({'delivered', 'cancelled'})
NON_TERMINAL_STATUSES = tuple(s for s in ORDER_STATUSES if s not in TERMINAL_STATUSES)


def _strict_transitions() -> Dict[str, FrozenSet[str]]:
    table = {status: frozenset() for status in ORDER_STATUSES}
    for current, following in zip(FORWARD_SEQUENCE, FORWARD_SEQUENCE[1:]):
        table[current] = frozenset({following, 'cancelled'})
    return table


def _forward_transitions() -> Dict[str, FrozenSet[str]]:
    table = {status: frozenset() for status in ORDER_STATUSES}
    for index, current in enumerate(FORWARD_SEQUENCE[:-1]):
        table[current] = frozenset(FORWARD_SEQUENCE[index + 1:]) | {'cancelled'}
    return table


def _permissive_transitions() -> Dict[str, FrozenSet[str]]:
    return {status: frozenset(ORDER_STATUSES) for status in ORDER_STATUSES}


TRANSITION_POLICIES = {
    'strict': _strict_transitions(),
    'forward': _forward_transitions(),
    'permissive': _permissive_transitions(),
}


class OrderWorkflow:
    """Applies status changes to orders according to an adjacency table."""

    def __init__(self, policy: str = 'forward', transitions: Optional[Dict[str, FrozenSet[str]]] = None):
        if transitions is None:
            if policy not in TRANSITION_POLICIES:
                raise ValueError(
                    f"Unknown order transition policy '{policy}'. "
                    f"Expected one of: {', '.join(sorted(TRANSITION_POLICIES))}"
                )
            transitions = TRANSITION_POLICIES[policy]
        self.policy = policy
        self.transitions = transitions

    def allowed_targets(self, status: str):
        targets = self.transitions.get(status, frozenset())
        return [s for s in ORDER_STATUSES if s in targets]

    @staticmethod
    def check_status(target: str) -> str:
        if target not in ORDER_STATUSES:
            raise ValidationError(
                "Invalid status. Valid statuses are: " + ', '.join(ORDER_STATUSES)
            )
        return target

    def transition(self, order: Order, target: str) -> Order:
        self.check_status(target)

        if target not in self.transitions.get(order.status, frozenset()):
            raise ConflictError(
                f"Cannot change order status from {order.status} to {target}",
                "Allowed statuses: " + (', '.join(self.allowed_targets(order.status)) or 'none')
            )

        order.status = target
        # Only delivery carries a timestamp
        if target == 'delivered':
            order.delivered_at = now_utc()
        return order

    @staticmethod
    def cancel(order: Order) -> Order:
        if order.status in TERMINAL_STATUSES:
            raise ConflictError("Cannot cancel order that is already delivered or cancelled")
        order.status = 'cancelled'
        return order


class OrderStatisticsService:
    """Aggregate figures over a filtered set of orders"""

    @staticmethod
    def _filters(restaurant_id=None, user_id=None, start: Optional[datetime] = None,
                 end: Optional[datetime] = None):
        clauses = []
        if restaurant_id is not None:
            clauses.append(Order.restaurant_id == restaurant_id)
        if user_id is not None:
            clauses.append(Order.user_id == user_id)
        if start is not None:
            clauses.append(Order.placed_at >= start)
        if end is not None:
            clauses.append(Order.placed_at < end)
        return clauses

    @classmethod
    def compute(cls, restaurant_id=None, user_id=None, start: Optional[datetime] = None,
                end: Optional[datetime] = None) -> Dict:
        clauses = cls._filters(restaurant_id, user_id, start, end)

        total_orders, average = (
            db.session.query(func.count(Order.id), func.avg(Order.total_price))
            .filter(*clauses)
            .one()
        )

        status_breakdown = {status: 0 for status in ORDER_STATUSES}
        rows = (
            db.session.query(Order.status, func.count(Order.id))
            .filter(*clauses)
            .group_by(Order.status)
            .all()
        )
        for status, count in rows:
            status_breakdown[status] = count

        revenue = (
            db.session.query(func.sum(Order.total_price))
            .filter(*clauses, Order.status == 'delivered')
            .scalar()
        )

        return {
            'total_orders': total_orders or 0,
            'status_breakdown': status_breakdown,
            'total_revenue': round(float(revenue or 0), 2),
            'average_order_value': round(float(average or 0), 2)
        }
