from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from fooddash import db
from fooddash.errors import ValidationError, ConflictError, NotFoundError
from fooddash.models.models import Order, User, Restaurant
from fooddash.responses import success_response, failure
from fooddash.routes.restaurants import get_restaurant_or_404
from fooddash.services.authorization import (
    ensure_owner_or_admin, ensure_any_owner_or_admin
)
from fooddash.services.order_service import OrderWorkflow, OrderStatisticsService, TERMINAL_STATUSES
from fooddash.validation import (
    get_payload, require_fields, clean_update, get_pagination, pagination_block,
    parse_day_range, to_str, to_int, to_money, to_json
)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')

ORDER_FIELDS = {
    'order': to_json,
    'total_price': to_money,
    'delivery_address': to_str,
    'phone': to_str,
}

ORDER_CREATE_FIELDS = dict(ORDER_FIELDS, restaurant_id=to_int)

# Status only moves through the status/cancel endpoints
ORDER_IMMUTABLE = ('id', 'user_id', 'restaurant_id', 'status', 'placed_at', 'delivered_at',
                   'created_at', 'updated_at')
ORDER_CREATE_IMMUTABLE = tuple(f for f in ORDER_IMMUTABLE if f != 'restaurant_id')


def get_order_or_404(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError('Order not found')
    return order


def order_details(order, include_user=True, include_restaurant=True):
    """Order with user/restaurant summaries, read separately (no transaction)"""
    data = order.to_dict()
    if include_user:
        user = db.session.get(User, order.user_id)
        data['user'] = user.summary() if user else None
    if include_restaurant:
        restaurant = db.session.get(Restaurant, order.restaurant_id)
        data['restaurant'] = restaurant.summary() if restaurant else None
    return data


def _restaurant_owner_id(order):
    restaurant = db.session.get(Restaurant, order.restaurant_id)
    return restaurant.user_id if restaurant else None


def _status_filter():
    status = request.args.get('status')
    if status:
        OrderWorkflow.check_status(status)
    return status


def _check_total(values):
    if 'total_price' in values and (values['total_price'] is None or values['total_price'] <= 0):
        raise ValidationError('total_price must be greater than 0')


@orders_bp.route('', methods=['POST'])
@jwt_required()
def create_order():
    """Place an order for the current user"""
    try:
        data = get_payload()
        values = clean_update(data, ORDER_CREATE_FIELDS, ORDER_CREATE_IMMUTABLE)
        require_fields(values, ('restaurant_id', 'total_price'), 'restaurant_id and total_price are required')
        _check_total(values)

        restaurant = get_restaurant_or_404(values.pop('restaurant_id'))
        if not restaurant.is_active:
            raise ValidationError('Restaurant is not accepting orders')

        order = Order(
            user_id=current_user.id,
            restaurant_id=restaurant.id,
            status='pending',
            **values
        )
        db.session.add(order)
        db.session.commit()

        current_app.logger.info(f"Order {order.id} placed by user {current_user.id} at restaurant {restaurant.id}")
        return success_response('Order created successfully', order.to_dict(), 201)

    except Exception as e:
        return failure('Failed to create order', e)


@orders_bp.route('', methods=['GET'])
@jwt_required()
def get_all_orders():
    """All orders for admins, the caller's own orders for everyone else"""
    try:
        page, limit = get_pagination()
        status = _status_filter()
        user_id = to_int(request.args.get('user_id'), 'user_id')
        restaurant_id = to_int(request.args.get('restaurant_id'), 'restaurant_id')

        if not current_user.is_admin:
            if user_id is not None:
                ensure_owner_or_admin(current_user, user_id, 'You can only list your own orders')
            user_id = current_user.id

        query = Order.query
        if status:
            query = query.filter(Order.status == status)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if restaurant_id is not None:
            query = query.filter(Order.restaurant_id == restaurant_id)

        orders = (
            query.order_by(Order.placed_at.desc(), Order.id.desc())
            .paginate(page=page, per_page=limit, error_out=False)
        )

        return success_response('Orders retrieved successfully', {
            'orders': [order_details(o) for o in orders.items],
            'pagination': pagination_block(orders, 'orders')
        })

    except Exception as e:
        return failure('Failed to retrieve orders', e)


@orders_bp.route('/statistics', methods=['GET'])
@jwt_required()
def get_order_statistics():
    """Order counts per status, delivered revenue and average order value"""
    try:
        restaurant_id = to_int(request.args.get('restaurant_id'), 'restaurant_id')
        user_id = to_int(request.args.get('user_id'), 'user_id')
        start, end = parse_day_range(request.args.get('date_from'), request.args.get('date_to'))

        if not current_user.is_admin:
            if restaurant_id is not None:
                restaurant = get_restaurant_or_404(restaurant_id)
                ensure_owner_or_admin(current_user, restaurant.user_id,
                                      'You can only view statistics of your own restaurant')
            elif user_id is not None:
                ensure_owner_or_admin(current_user, user_id, 'You can only view your own order statistics')
            else:
                user_id = current_user.id

        stats = OrderStatisticsService.compute(restaurant_id=restaurant_id, user_id=user_id,
                                               start=start, end=end)

        return success_response('Order statistics retrieved successfully', stats)

    except Exception as e:
        return failure('Failed to retrieve order statistics', e)


@orders_bp.route('/<int:order_id>', methods=['GET'])
@jwt_required()
def get_order(order_id):
    try:
        order = get_order_or_404(order_id)
        if current_user.role != 'driver':
            ensure_any_owner_or_admin(current_user, (order.user_id, _restaurant_owner_id(order)),
                                      'You cannot view this order')

        return success_response('Order retrieved successfully', order_details(order))

    except Exception as e:
        return failure('Failed to retrieve order', e)


@orders_bp.route('/user/<int:user_id>', methods=['GET'])
@jwt_required()
def get_user_orders(user_id):
    try:
        if not db.session.get(User, user_id):
            raise NotFoundError('User not found')
        ensure_owner_or_admin(current_user, user_id, 'You can only view your own orders')

        page, limit = get_pagination()
        status = _status_filter()

        query = Order.query.filter(Order.user_id == user_id)
        if status:
            query = query.filter(Order.status == status)

        orders = (
            query.order_by(Order.placed_at.desc(), Order.id.desc())
            .paginate(page=page, per_page=limit, error_out=False)
        )

        return success_response('User orders retrieved successfully', {
            'orders': [order_details(o, include_user=False) for o in orders.items],
            'pagination': pagination_block(orders, 'orders')
        })

    except Exception as e:
        return failure('Failed to retrieve user orders', e)


@orders_bp.route('/restaurant/<int:restaurant_id>', methods=['GET'])
@jwt_required()
def get_restaurant_orders(restaurant_id):
    try:
        restaurant = get_restaurant_or_404(restaurant_id)
        ensure_owner_or_admin(current_user, restaurant.user_id,
                              'You can only view orders of your own restaurant')

        query = Order.query.filter(Order.restaurant_id == restaurant_id)
        status = _status_filter()
        if status:
            query = query.filter(Order.status == status)

        orders = query.order_by(Order.placed_at.desc(), Order.id.desc()).all()

        return success_response('Restaurant orders retrieved successfully', {
            'orders': [order_details(o, include_restaurant=False) for o in orders]
        })

    except Exception as e:
        return failure('Failed to retrieve restaurant orders', e)


@orders_bp.route('/<int:order_id>', methods=['PUT'])
@jwt_required()
def update_order(order_id):
    """Edit the contents of an order that is still in progress"""
    try:
        order = get_order_or_404(order_id)
        ensure_owner_or_admin(current_user, order.user_id, 'You can only update your own orders')

        values = clean_update(get_payload(), ORDER_FIELDS, ORDER_IMMUTABLE)
        if not values:
            raise ValidationError('No fields to update')
        _check_total(values)

        if order.status in TERMINAL_STATUSES:
            raise ConflictError('Cannot update order that is already delivered or cancelled')

        for field, value in values.items():
            setattr(order, field, value)
        db.session.commit()

        return success_response('Order updated successfully', order_details(order))

    except Exception as e:
        return failure('Failed to update order', e)


@orders_bp.route('/<int:order_id>/status', methods=['PATCH'])
@jwt_required()
def update_order_status(order_id):
    try:
        data = get_payload()
        workflow = current_app.extensions['order_workflow']
        target = workflow.check_status(data.get('status'))

        order = get_order_or_404(order_id)
        if current_user.role != 'driver':
            ensure_owner_or_admin(current_user, _restaurant_owner_id(order),
                                  'Only the restaurant, a driver or an admin can update order status')

        previous = order.status
        workflow.transition(order, target)
        db.session.commit()

        current_app.logger.info(f"Order {order.id} status changed from {previous} to {target}")
        return success_response('Order status updated successfully', order.to_dict())

    except Exception as e:
        return failure('Failed to update order status', e)


@orders_bp.route('/<int:order_id>/cancel', methods=['PATCH'])
@jwt_required()
def cancel_order(order_id):
    try:
        order = get_order_or_404(order_id)
        ensure_any_owner_or_admin(current_user, (order.user_id, _restaurant_owner_id(order)),
                                  'You can only cancel your own orders')

        OrderWorkflow.cancel(order)
        db.session.commit()

        current_app.logger.info(f"Order {order.id} cancelled by user {current_user.id}")
        return success_response('Order cancelled successfully', order.to_dict())

    except Exception as e:
        return failure('Failed to cancel order', e)


@orders_bp.route('/<int:order_id>', methods=['DELETE'])
@jwt_required()
def delete_order(order_id):
    try:
        order = get_order_or_404(order_id)
        ensure_owner_or_admin(current_user, order.user_id, 'You can only delete your own orders')

        db.session.delete(order)
        db.session.commit()

        current_app.logger.info(f"Order {order_id} deleted by user {current_user.id}")
        return success_response('Order deleted successfully')

    except Exception as e:
        return failure('Failed to delete order', e)
