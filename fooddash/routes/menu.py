from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from fooddash import db
from fooddash.errors import ValidationError, NotFoundError
from fooddash.models.models import MenuItem
from fooddash.responses import success_response, failure
from fooddash.routes.restaurants import get_restaurant_or_404
from fooddash.services.authorization import ensure_owner_or_admin
from fooddash.validation import (
    get_payload, require_fields, clean_update, to_str, to_money, to_bool, to_int
)

menu_bp = Blueprint('menu', __name__, url_prefix='/api/menu')

MAX_SPICE_LEVEL = 5

MENU_FIELDS = {
    'name': to_str,
    'description': to_str,
    'price': to_money,
    'category': to_str,
    'image': to_str,
    'is_available': to_bool,
    'is_vegetarian': to_bool,
    'is_vegan': to_bool,
    'spice_level': to_int,
    'calories': to_int,
    'preparation_time': to_int,
}

MENU_IMMUTABLE = ('id', 'restaurant_id', 'created_at', 'updated_at')

# Columns with a database default: an explicit null means "keep the default"
DEFAULTED_FIELDS = ('is_available', 'is_vegetarian', 'is_vegan', 'spice_level')


def get_menu_item_or_404(item_id):
    item = db.session.get(MenuItem, item_id)
    if not item:
        raise NotFoundError('Menu item not found')
    return item


def _validate_values(values):
    if 'price' in values and (values['price'] is None or values['price'] <= 0):
        raise ValidationError('price must be greater than 0')
    if 'name' in values and values['name'] is None:
        raise ValidationError('name cannot be empty')

    spice_level = values.get('spice_level')
    if spice_level is not None and not 0 <= spice_level <= MAX_SPICE_LEVEL:
        raise ValidationError(f"spice_level must be between 0 and {MAX_SPICE_LEVEL}")
    for field in ('calories', 'preparation_time'):
        if values.get(field) is not None and values[field] < 0:
            raise ValidationError(f"{field} cannot be negative")

    # A vegan dish is vegetarian too
    if values.get('is_vegan'):
        values['is_vegetarian'] = True

    for field in DEFAULTED_FIELDS:
        if field in values and values[field] is None:
            del values[field]
    return values


@menu_bp.route('/create', methods=['POST'])
@jwt_required()
def create_menu_item():
    try:
        data = get_payload()
        require_fields(data, ('restaurant_id',), 'restaurant_id is required')
        restaurant_id = to_int(data.get('restaurant_id'), 'restaurant_id')

        restaurant = get_restaurant_or_404(restaurant_id)
        ensure_owner_or_admin(current_user, restaurant.user_id,
                              'You can only add menu items to your own restaurant')

        payload = {k: v for k, v in data.items() if k != 'restaurant_id'}
        values = clean_update(payload, MENU_FIELDS, MENU_IMMUTABLE)
        require_fields(values, ('name', 'price'), 'Name and price are required')
        values = _validate_values(values)

        uploader = current_app.extensions['media_uploader']
        values['image'] = uploader.resolve_image(request.files.get('image'), values.get('image'), 'menu-items')

        item = MenuItem(restaurant_id=restaurant.id, **values)
        db.session.add(item)
        db.session.commit()

        return success_response('Menu item created successfully', item.to_dict(), 201)

    except Exception as e:
        return failure('Failed to create menu item', e)


@menu_bp.route('/restaurant/<int:restaurant_id>', methods=['GET'])
def get_restaurant_menu_items(restaurant_id):
    """Menu of a restaurant, optionally filtered"""
    try:
        get_restaurant_or_404(restaurant_id)

        query = MenuItem.query.filter(MenuItem.restaurant_id == restaurant_id)
        category = request.args.get('category')
        if category:
            query = query.filter(MenuItem.category == category)
        for flag in ('is_available', 'is_vegetarian', 'is_vegan'):
            if flag in request.args:
                query = query.filter(getattr(MenuItem, flag) == to_bool(request.args[flag], flag))

        items = query.order_by(MenuItem.category, MenuItem.name, MenuItem.id).all()
        return success_response('Menu items retrieved successfully', [item.to_dict() for item in items])

    except Exception as e:
        return failure('Failed to retrieve menu items', e)


@menu_bp.route('/restaurant/<int:restaurant_id>/categories', methods=['GET'])
def get_restaurant_categories(restaurant_id):
    """Distinct categories among the items that can currently be ordered"""
    try:
        get_restaurant_or_404(restaurant_id)

        rows = (
            db.session.query(MenuItem.category)
            .filter(
                MenuItem.restaurant_id == restaurant_id,
                MenuItem.is_available.is_(True),
                MenuItem.category.isnot(None)
            )
            .distinct()
            .order_by(MenuItem.category)
            .all()
        )
        return success_response('Categories retrieved successfully', [row[0] for row in rows])

    except Exception as e:
        return failure('Failed to retrieve categories', e)


@menu_bp.route('/item/<int:item_id>', methods=['GET'])
def get_menu_item(item_id):
    try:
        item = get_menu_item_or_404(item_id)
        return success_response('Menu item retrieved successfully', item.to_dict())

    except Exception as e:
        return failure('Failed to retrieve menu item', e)


@menu_bp.route('/item/<int:item_id>', methods=['PUT', 'PATCH'])
@jwt_required()
def update_menu_item(item_id):
    try:
        item = get_menu_item_or_404(item_id)
        ensure_owner_or_admin(current_user, item.restaurant.user_id,
                              'You can only update menu items of your own restaurant')

        values = clean_update(get_payload(), MENU_FIELDS, MENU_IMMUTABLE)
        image_file = request.files.get('image')
        if not values and not (image_file and image_file.filename):
            raise ValidationError('No fields to update')
        values = _validate_values(values)

        if image_file and image_file.filename:
            values['image'] = current_app.extensions['media_uploader'].upload(image_file, 'menu-items')

        for field, value in values.items():
            setattr(item, field, value)
        db.session.commit()

        return success_response('Menu item updated successfully', item.to_dict())

    except Exception as e:
        return failure('Failed to update menu item', e)


@menu_bp.route('/item/<int:item_id>/toggle-availability', methods=['PATCH'])
@jwt_required()
def toggle_menu_item_availability(item_id):
    try:
        item = get_menu_item_or_404(item_id)
        ensure_owner_or_admin(current_user, item.restaurant.user_id,
                              'You can only manage menu items of your own restaurant')

        item.is_available = not item.is_available
        db.session.commit()

        state = 'available' if item.is_available else 'unavailable'
        return success_response(f"Menu item is now {state}", {
            'id': item.id,
            'is_available': item.is_available
        })

    except Exception as e:
        return failure('Failed to toggle menu item availability', e)


@menu_bp.route('/item/<int:item_id>', methods=['DELETE'])
@jwt_required()
def delete_menu_item(item_id):
    try:
        item = get_menu_item_or_404(item_id)
        ensure_owner_or_admin(current_user, item.restaurant.user_id,
                              'You can only delete menu items of your own restaurant')

        db.session.delete(item)
        db.session.commit()

        return success_response('Menu item deleted successfully')

    except Exception as e:
        return failure('Failed to delete menu item', e)
