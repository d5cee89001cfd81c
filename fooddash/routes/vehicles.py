from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, current_user
from fooddash import db
from fooddash.errors import ValidationError, NotFoundError
from fooddash.models.models import Vehicle
from fooddash.responses import success_response, failure
from fooddash.services.authorization import ensure_role
from fooddash.validation import get_payload, require_fields, clean_update, to_str

vehicles_bp = Blueprint('vehicles', __name__, url_prefix='/api/vehicles')

VEHICLE_FIELDS = {
    'type': to_str,
    'price': to_str,
    'image': to_str,
}

VEHICLE_IMMUTABLE = ('id', 'created_at', 'updated_at')


def get_vehicle_or_404(vehicle_id):
    vehicle = db.session.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError('Vehicle not found')
    return vehicle


@vehicles_bp.route('', methods=['GET'])
def get_all_vehicles():
    try:
        vehicles = Vehicle.query.order_by(Vehicle.created_at.desc(), Vehicle.id.desc()).all()
        return success_response('Vehicles retrieved successfully', [v.to_dict() for v in vehicles])

    except Exception as e:
        return failure('Failed to retrieve vehicles', e)


@vehicles_bp.route('/<int:vehicle_id>', methods=['GET'])
def get_vehicle(vehicle_id):
    try:
        vehicle = get_vehicle_or_404(vehicle_id)
        return success_response('Vehicle retrieved successfully', vehicle.to_dict())

    except Exception as e:
        return failure('Failed to retrieve vehicle', e)


@vehicles_bp.route('', methods=['POST'])
@jwt_required()
def create_vehicle():
    """Add a vehicle type to the catalog (admin only)"""
    try:
        ensure_role(current_user, (), 'Only admins can manage the vehicle catalog')

        values = clean_update(get_payload(), VEHICLE_FIELDS, VEHICLE_IMMUTABLE)
        require_fields(values, ('type', 'price'), 'Type and price are required')

        uploader = current_app.extensions['media_uploader']
        values['image'] = uploader.resolve_image(request.files.get('image'), values.get('image'), 'vehicles')

        vehicle = Vehicle(**values)
        db.session.add(vehicle)
        db.session.commit()

        return success_response('Vehicle created successfully', vehicle.to_dict(), 201)

    except Exception as e:
        return failure('Failed to create vehicle', e)


@vehicles_bp.route('/<int:vehicle_id>', methods=['PUT', 'PATCH'])
@jwt_required()
def update_vehicle(vehicle_id):
    try:
        ensure_role(current_user, (), 'Only admins can manage the vehicle catalog')
        vehicle = get_vehicle_or_404(vehicle_id)

        values = clean_update(get_payload(), VEHICLE_FIELDS, VEHICLE_IMMUTABLE)
        image_file = request.files.get('image')
        if not values and not (image_file and image_file.filename):
            raise ValidationError('No fields to update')
        for field in ('type', 'price'):
            if field in values and values[field] is None:
                raise ValidationError(f"{field} cannot be empty")

        if image_file and image_file.filename:
            values['image'] = current_app.extensions['media_uploader'].upload(image_file, 'vehicles')

        for field, value in values.items():
            setattr(vehicle, field, value)
        db.session.commit()

        return success_response('Vehicle updated successfully', vehicle.to_dict())

    except Exception as e:
        return failure('Failed to update vehicle', e)


@vehicles_bp.route('/<int:vehicle_id>', methods=['DELETE'])
@jwt_required()
def delete_vehicle(vehicle_id):
    try:
        ensure_role(current_user, (), 'Only admins can manage the vehicle catalog')
        vehicle = get_vehicle_or_404(vehicle_id)

        db.session.delete(vehicle)
        db.session.commit()

        return success_response('Vehicle deleted successfully')

    except Exception as e:
        return failure('Failed to delete vehicle', e)
