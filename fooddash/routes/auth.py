from flask import Blueprint, current_app
from flask_jwt_extended import create_access_token, jwt_required, current_user
from sqlalchemy.exc import IntegrityError
from fooddash import db
from fooddash.errors import ValidationError, ConflictError, AuthenticationError
from fooddash.models.models import User
from fooddash.responses import success_response, failure
from fooddash.validation import get_payload, require_fields, to_str

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

SELF_REGISTER_ROLES = ('user', 'restaurant_owner', 'driver')
MIN_PASSWORD_LENGTH = 6


def _token_for(user):
    # Expiry comes from JWT_ACCESS_TOKEN_EXPIRES (30 days)
    return create_access_token(identity=user)


def _check_password_length(password, label='Password'):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters long")


def _check_identifier_free(identifier):
    if User.query.filter_by(identifier=identifier).first():
        raise ConflictError('User with this identifier already exists')


@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a new user"""
    try:
        data = get_payload()
        values = {
            'name': to_str(data.get('name'), 'name'),
            'identifier': to_str(data.get('identifier'), 'identifier'),
            'password': data.get('password'),
        }
        require_fields(values, ('name', 'identifier', 'password'),
                       'All fields are required (name, identifier, password)')

        name = values['name']
        identifier = values['identifier']
        password = str(values['password'])
        role = to_str(data.get('role'), 'role') or 'user'

        _check_password_length(password)

        if role not in SELF_REGISTER_ROLES:
            raise ValidationError(
                f"Invalid role. Choose one of: {', '.join(SELF_REGISTER_ROLES)}"
            )

        _check_identifier_free(identifier)

        user = User(name=name, identifier=identifier, role=role)
        user.set_password(password)

        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('User with this identifier already exists')

        current_app.logger.info(f"Registered user {user.id} with role {user.role}")

        return success_response('User registered successfully', {
            'user': user.to_dict(),
            'token': _token_for(user)
        }, 201)

    except Exception as e:
        return failure('User registration failed', e)


@auth_bp.route('/login', methods=['POST'])
def login():
    """Login user and return JWT token"""
    try:
        data = get_payload()
        require_fields(data, ('identifier', 'password'), 'Identifier and password are required')

        identifier = to_str(data['identifier'], 'identifier')
        user = User.query.filter_by(identifier=identifier).first()

        if not user or not user.check_password(str(data['password'])):
            raise AuthenticationError('Invalid credentials')

        return success_response('Login successful', {
            'user': user.to_dict(),
            'token': _token_for(user)
        })

    except Exception as e:
        return failure('Login failed', e)


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_profile():
    """Get current user profile"""
    try:
        data = current_user.to_dict()
        if current_user.restaurant:
            data['restaurant'] = current_user.restaurant.summary()
        if current_user.driver:
            data['driver'] = current_user.driver.to_dict(include_user=False)

        return success_response('Profile retrieved successfully', data)

    except Exception as e:
        return failure('Failed to get user profile', e)


@auth_bp.route('/me', methods=['PUT'])
@jwt_required()
def update_profile():
    """Update name, identifier or password of the current user"""
    try:
        data = get_payload()
        allowed = {'name', 'identifier', 'current_password', 'new_password'}
        rejected = sorted(k for k in data if k not in allowed)
        if rejected:
            raise ValidationError(f"These fields cannot be updated: {', '.join(rejected)}")

        user = current_user

        name = to_str(data.get('name'), 'name')
        if name:
            user.name = name

        identifier = to_str(data.get('identifier'), 'identifier')
        if identifier and identifier != user.identifier:
            _check_identifier_free(identifier)
            user.identifier = identifier

        new_password = data.get('new_password')
        if new_password:
            current_password = data.get('current_password')
            if not current_password:
                raise ValidationError('Current password is required to set new password')
            if not user.check_password(str(current_password)):
                raise ValidationError('Current password is incorrect')
            _check_password_length(str(new_password), 'New password')
            user.set_password(str(new_password))

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('This identifier is already taken')

        return success_response('User information updated successfully', user.to_dict())

    except Exception as e:
        return failure('Failed to update user information', e)


@auth_bp.route('/delete-account', methods=['POST'])
@jwt_required()
def delete_account():
    """Delete the current user's account after password confirmation"""
    try:
        data = get_payload()
        password = data.get('password')
        if not password:
            raise ValidationError('Password confirmation is required to delete account')

        user = current_user
        if not user.check_password(str(password)):
            raise ValidationError('Password is incorrect')

        user_id = user.id
        db.session.delete(user)
        db.session.commit()

        current_app.logger.info(f"Deleted user account {user_id}")
        return success_response('Account deleted successfully')

    except Exception as e:
        return failure('Failed to delete account', e)
