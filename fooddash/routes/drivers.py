from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy.exc import IntegrityError
from fooddash import db
from fooddash.errors import ValidationError, ConflictError, NotFoundError
from fooddash.models.models import Driver
from fooddash.responses import success_response, failure
from fooddash.services.authorization import ensure_owner_or_admin, ensure_role
from fooddash.validation import (
    get_payload, require_fields, clean_update, get_pagination, pagination_block,
    to_str, to_upper, to_bool, to_float
)

drivers_bp = Blueprint('drivers', __name__, url_prefix='/api/drivers')

DRIVER_FIELDS = {
    'vehicle_type': to_str,
    'vehicle_license_plate': to_upper,
    'vehicle_color': to_str,
    'image': to_str,
    'is_available': to_bool,
}

DRIVER_IMMUTABLE = ('id', 'user_id', 'rating', 'total_reviews', 'created_at', 'updated_at')


def get_driver_or_404(driver_id):
    driver = db.session.get(Driver, driver_id)
    if not driver:
        raise NotFoundError('Driver not found')
    return driver


def _check_plate_free(plate, driver_id=None):
    query = Driver.query.filter(Driver.vehicle_license_plate == plate)
    if driver_id is not None:
        query = query.filter(Driver.id != driver_id)
    if query.first():
        raise ConflictError('This license plate is already registered')


def _flush_unique():
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Driver profile conflicts with an existing one (user or license plate already registered)')


@drivers_bp.route('', methods=['POST'])
@jwt_required()
def create_driver():
    """
    CREATE DRIVER PROFILE
    Only users with the driver role (or admins) can create one, once.
    """
    try:
        ensure_role(current_user, ('driver',), 'Only users with driver role can create driver profiles')

        if Driver.query.filter_by(user_id=current_user.id).first():
            raise ConflictError('You already have a driver profile. Each user can only have one driver profile.')

        values = clean_update(get_payload(), DRIVER_FIELDS, DRIVER_IMMUTABLE)
        require_fields(values, ('vehicle_type', 'vehicle_license_plate'),
                       'Vehicle type and license plate are required')
        _check_plate_free(values['vehicle_license_plate'])

        if values.get('is_available') is None:
            values.pop('is_available', None)

        driver = Driver(user_id=current_user.id, **values)
        db.session.add(driver)
        # Claims the user and plate keys before anything reaches the media host
        _flush_unique()

        uploader = current_app.extensions['media_uploader']
        driver.image = uploader.resolve_image(request.files.get('image'), driver.image, 'drivers')
        db.session.commit()

        current_app.logger.info(f"Driver profile {driver.id} created for user {current_user.id}")
        return success_response('Driver profile created successfully', driver.to_dict(), 201)

    except Exception as e:
        return failure('Failed to create driver profile', e)


@drivers_bp.route('', methods=['GET'])
def get_all_drivers():
    """
    GET ALL DRIVERS
    Filtering by vehicle type, availability and minimum rating, paginated.
    """
    try:
        page, limit = get_pagination()

        query = Driver.query
        vehicle_type = request.args.get('vehicle_type')
        if vehicle_type:
            query = query.filter(Driver.vehicle_type == vehicle_type)
        if 'is_available' in request.args:
            query = query.filter(Driver.is_available == to_bool(request.args['is_available'], 'is_available'))
        min_rating = to_float(request.args.get('min_rating'), 'min_rating')
        if min_rating is not None:
            query = query.filter(Driver.rating >= min_rating)

        drivers = (
            query.order_by(Driver.rating.desc(), Driver.created_at.desc(), Driver.id.desc())
            .paginate(page=page, per_page=limit, error_out=False)
        )

        return success_response('Drivers retrieved successfully', {
            'drivers': [d.to_dict() for d in drivers.items],
            'pagination': pagination_block(drivers, 'drivers')
        })

    except Exception as e:
        return failure('Failed to retrieve drivers', e)


@drivers_bp.route('/<int:driver_id>', methods=['GET'])
def get_driver(driver_id):
    try:
        driver = get_driver_or_404(driver_id)
        return success_response('Driver retrieved successfully', driver.to_dict())

    except Exception as e:
        return failure('Failed to retrieve driver', e)


@drivers_bp.route('/my/profile', methods=['GET'])
@jwt_required()
def get_my_driver_profile():
    try:
        driver = Driver.query.filter_by(user_id=current_user.id).first()
        if not driver:
            raise NotFoundError("You don't have a driver profile yet")

        return success_response('Driver profile retrieved successfully', driver.to_dict())

    except Exception as e:
        return failure('Failed to retrieve driver profile', e)


@drivers_bp.route('/available/<vehicle_type>', methods=['GET'])
def get_available_drivers_by_vehicle_type(vehicle_type):
    try:
        drivers = (
            Driver.query.filter_by(vehicle_type=vehicle_type, is_available=True)
            .order_by(Driver.rating.desc(), Driver.id)
            .all()
        )

        return success_response(f"Available {vehicle_type} drivers retrieved successfully", {
            'vehicle_type': vehicle_type,
            'available_drivers': [d.to_dict() for d in drivers],
            'count': len(drivers)
        })

    except Exception as e:
        return failure('Failed to retrieve available drivers', e)


@drivers_bp.route('/<int:driver_id>', methods=['PUT', 'PATCH'])
@jwt_required()
def update_driver(driver_id):
    try:
        driver = get_driver_or_404(driver_id)
        ensure_owner_or_admin(current_user, driver.user_id, 'You can only update your own driver profile')

        values = clean_update(get_payload(), DRIVER_FIELDS, DRIVER_IMMUTABLE)
        image_file = request.files.get('image')
        if not values and not (image_file and image_file.filename):
            raise ValidationError('No fields to update')

        for field in ('vehicle_type', 'vehicle_license_plate', 'is_available'):
            if field in values and values[field] is None:
                raise ValidationError(f"{field} cannot be empty")
        if 'vehicle_license_plate' in values:
            _check_plate_free(values['vehicle_license_plate'], driver.id)

        for field, value in values.items():
            setattr(driver, field, value)
        _flush_unique()

        if image_file and image_file.filename:
            driver.image = current_app.extensions['media_uploader'].upload(image_file, 'drivers')
        db.session.commit()

        return success_response('Driver profile updated successfully', driver.to_dict())

    except Exception as e:
        return failure('Failed to update driver profile', e)


@drivers_bp.route('/<int:driver_id>', methods=['DELETE'])
@jwt_required()
def delete_driver(driver_id):
    try:
        driver = get_driver_or_404(driver_id)
        ensure_owner_or_admin(current_user, driver.user_id, 'You can only delete your own driver profile')

        db.session.delete(driver)
        db.session.commit()

        current_app.logger.info(f"Driver profile {driver_id} deleted by user {current_user.id}")
        return success_response('Driver profile deleted successfully')

    except Exception as e:
        return failure('Failed to delete driver profile', e)


@drivers_bp.route('/<int:driver_id>/toggle-availability', methods=['PATCH'])
@jwt_required()
def toggle_driver_availability(driver_id):
    try:
        driver = get_driver_or_404(driver_id)
        ensure_owner_or_admin(current_user, driver.user_id, 'You can only manage your own driver profile')

        driver.is_available = not driver.is_available
        db.session.commit()

        state = 'is now available' if driver.is_available else 'is now unavailable'
        return success_response(f"Driver {state}", {
            'id': driver.id,
            'is_available': driver.is_available
        })

    except Exception as e:
        return failure('Failed to toggle driver availability', e)
