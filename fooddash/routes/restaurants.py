from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy.exc import IntegrityError
from fooddash import db
from fooddash.errors import ValidationError, ConflictError, NotFoundError
from fooddash.models.models import Restaurant
from fooddash.responses import success_response, failure
from fooddash.services.authorization import ensure_owner_or_admin, ensure_role
from fooddash.validation import (
    get_payload, require_fields, clean_update, get_pagination, pagination_block,
    to_str, to_money, to_bool
)

restaurants_bp = Blueprint('restaurants', __name__, url_prefix='/api/resturants')


def to_email(value, field):
    value = to_str(value, field)
    if value is None:
        return None
    if '@' not in value:
        raise ValidationError(f"{field} must be a valid email address")
    return value.lower()


RESTAURANT_FIELDS = {
    'name': to_str,
    'image': to_str,
    'location': to_str,
    'address': to_str,
    'phone': to_str,
    'email': to_email,
    'description': to_str,
    'cuisine_type': to_str,
    'opening_hours': to_str,
    'start_time': to_str,
    'end_time': to_str,
    'delivery_time': to_str,
    'delivery_fee': to_money,
    'minimum_order': to_money,
    'is_active': to_bool,
}

# Ratings are derived from reviews and verification is an admin action
RESTAURANT_IMMUTABLE = ('id', 'user_id', 'rating', 'total_reviews', 'is_verified',
                        'created_at', 'updated_at')

REQUIRED_FIELDS = ('name', 'location', 'address', 'phone', 'email')


def get_restaurant_or_404(restaurant_id):
    restaurant = db.session.get(Restaurant, restaurant_id)
    if not restaurant:
        raise NotFoundError('Restaurant not found')
    return restaurant


def _check_amounts(values):
    for field in ('delivery_fee', 'minimum_order'):
        if values.get(field) is not None and values[field] < 0:
            raise ValidationError(f"{field} cannot be negative")


def _check_email_free(email, restaurant_id=None):
    query = Restaurant.query.filter(Restaurant.email == email)
    if restaurant_id is not None:
        query = query.filter(Restaurant.id != restaurant_id)
    if query.first():
        raise ConflictError('A restaurant with this email already exists')


def _flush_unique():
    """Write pending rows so the unique constraints are checked before any upload"""
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Restaurant conflicts with an existing one (owner or email already used)')


@restaurants_bp.route('', methods=['POST'])
@jwt_required()
def create_restaurant():
    """Create the restaurant owned by the current user"""
    try:
        ensure_role(current_user, ('restaurant_owner',),
                    'Only restaurant owners can create restaurants')

        # One restaurant per owner, whatever the payload says
        if Restaurant.query.filter_by(user_id=current_user.id).first():
            raise ConflictError('You already have a restaurant. Each user can only own one restaurant.')

        data = get_payload()
        values = clean_update(data, RESTAURANT_FIELDS, RESTAURANT_IMMUTABLE)
        require_fields(values, REQUIRED_FIELDS,
                       'Name, location, address, phone, and email are required')
        _check_amounts(values)
        _check_email_free(values['email'])

        for field in ('delivery_fee', 'minimum_order'):
            if values.get(field) is None:
                values[field] = 0.0
        if values.get('is_active') is None:
            values.pop('is_active', None)

        restaurant = Restaurant(user_id=current_user.id, **values)
        db.session.add(restaurant)
        _flush_unique()

        uploader = current_app.extensions['media_uploader']
        restaurant.image = uploader.resolve_image(request.files.get('image'), restaurant.image, 'restaurants')
        db.session.commit()

        current_app.logger.info(f"Restaurant {restaurant.id} created by user {current_user.id}")
        return success_response('Restaurant created successfully', restaurant.to_dict(), 201)

    except Exception as e:
        return failure('Failed to create restaurant', e)


@restaurants_bp.route('', methods=['GET'])
def get_all_restaurants():
    """List restaurants with filtering and pagination"""
    try:
        page, limit = get_pagination()
        is_active = to_bool(request.args.get('is_active', 'true'), 'is_active')
        cuisine_type = request.args.get('cuisine_type')
        location = request.args.get('location')

        query = Restaurant.query.filter(Restaurant.is_active == is_active)
        if cuisine_type:
            query = query.filter(Restaurant.cuisine_type == cuisine_type)
        if location:
            query = query.filter(Restaurant.location.ilike(f"%{location}%"))

        restaurants = (
            query.order_by(Restaurant.rating.desc(), Restaurant.created_at.desc(), Restaurant.id.desc())
            .paginate(page=page, per_page=limit, error_out=False)
        )

        return success_response('Restaurants retrieved successfully', {
            'restaurants': [r.to_dict() for r in restaurants.items],
            'pagination': pagination_block(restaurants, 'restaurants')
        })

    except Exception as e:
        return failure('Failed to retrieve restaurants', e)


@restaurants_bp.route('/<int:restaurant_id>', methods=['GET'])
def get_restaurant(restaurant_id):
    try:
        restaurant = get_restaurant_or_404(restaurant_id)
        return success_response('Restaurant retrieved successfully', restaurant.to_dict())

    except Exception as e:
        return failure('Failed to retrieve restaurant', e)


@restaurants_bp.route('/my/restaurant', methods=['GET'])
@jwt_required()
def get_my_restaurant():
    try:
        restaurant = Restaurant.query.filter_by(user_id=current_user.id).first()
        if not restaurant:
            raise NotFoundError("You don't have a restaurant yet")

        return success_response('Restaurant retrieved successfully', restaurant.to_dict(include_owner=True))

    except Exception as e:
        return failure('Failed to retrieve restaurant', e)


@restaurants_bp.route('/<int:restaurant_id>', methods=['PUT', 'PATCH'])
@jwt_required()
def update_restaurant(restaurant_id):
    try:
        restaurant = get_restaurant_or_404(restaurant_id)
        ensure_owner_or_admin(current_user, restaurant.user_id, 'You can only update your own restaurant')

        values = clean_update(get_payload(), RESTAURANT_FIELDS, RESTAURANT_IMMUTABLE)
        image_file = request.files.get('image')
        if not values and not (image_file and image_file.filename):
            raise ValidationError('No fields to update')

        for field in REQUIRED_FIELDS:
            if field in values and values[field] is None:
                raise ValidationError(f"{field} cannot be empty")
        _check_amounts(values)
        for field in ('delivery_fee', 'minimum_order', 'is_active'):
            if field in values and values[field] is None:
                del values[field]
        if values.get('email'):
            _check_email_free(values['email'], restaurant.id)

        for field, value in values.items():
            setattr(restaurant, field, value)
        _flush_unique()

        if image_file and image_file.filename:
            restaurant.image = current_app.extensions['media_uploader'].upload(image_file, 'restaurants')
        db.session.commit()

        return success_response('Restaurant updated successfully', restaurant.to_dict(include_owner=True))

    except Exception as e:
        return failure('Failed to update restaurant', e)


@restaurants_bp.route('/<int:restaurant_id>', methods=['DELETE'])
@jwt_required()
def delete_restaurant(restaurant_id):
    try:
        restaurant = get_restaurant_or_404(restaurant_id)
        ensure_owner_or_admin(current_user, restaurant.user_id, 'You can only delete your own restaurant')

        db.session.delete(restaurant)
        db.session.commit()

        current_app.logger.info(f"Restaurant {restaurant_id} deleted by user {current_user.id}")
        return success_response('Restaurant deleted successfully')

    except Exception as e:
        return failure('Failed to delete restaurant', e)


@restaurants_bp.route('/<int:restaurant_id>/toggle-status', methods=['PATCH'])
@jwt_required()
def toggle_restaurant_status(restaurant_id):
    try:
        restaurant = get_restaurant_or_404(restaurant_id)
        ensure_owner_or_admin(current_user, restaurant.user_id, 'You can only manage your own restaurant')

        restaurant.is_active = not restaurant.is_active
        db.session.commit()

        state = 'activated' if restaurant.is_active else 'deactivated'
        return success_response(f"Restaurant {state} successfully", {
            'id': restaurant.id,
            'is_active': restaurant.is_active
        })

    except Exception as e:
        return failure('Failed to toggle restaurant status', e)


@restaurants_bp.route('/<int:restaurant_id>/verify', methods=['PATCH'])
@jwt_required()
def verify_restaurant(restaurant_id):
    """Admin only: flip the verification flag"""
    try:
        ensure_role(current_user, (), 'Only admins can verify restaurants')
        restaurant = get_restaurant_or_404(restaurant_id)

        restaurant.is_verified = not restaurant.is_verified
        db.session.commit()

        state = 'verified' if restaurant.is_verified else 'unverified'
        return success_response(f"Restaurant {state} successfully", {
            'id': restaurant.id,
            'is_verified': restaurant.is_verified
        })

    except Exception as e:
        return failure('Failed to verify restaurant', e)
