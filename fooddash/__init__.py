from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException
from fooddash.config import Config

db = SQLAlchemy()
jwt = JWTManager()
migrate = Migrate()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # Import models to ensure they are registered with SQLAlchemy
    from fooddash.models import models

    # Services that need configuration are built once, here
    from fooddash.services.media_service import MediaUploader
    from fooddash.services.order_service import OrderWorkflow
    app.extensions['media_uploader'] = MediaUploader.from_config(app.config)
    app.extensions['order_workflow'] = OrderWorkflow(app.config['ORDER_TRANSITION_POLICY'])

    from fooddash.routes import auth, restaurants, menu, drivers, vehicles, orders
    app.register_blueprint(auth.auth_bp)
    app.register_blueprint(restaurants.restaurants_bp)
    app.register_blueprint(menu.menu_bp)
    app.register_blueprint(drivers.drivers_bp)
    app.register_blueprint(vehicles.vehicles_bp)
    app.register_blueprint(orders.orders_bp)

    register_jwt_callbacks(models.User)
    register_error_handlers(app)

    @app.route('/')
    def root():
        return jsonify({
            'success': True,
            'message': 'FoodDash marketplace API',
            'data': {'health': '/health'}
        })

    @app.route('/health')
    def health_check():
        return jsonify({
            'success': True,
            'message': 'healthy',
            'data': {'service': 'fooddash-api'}
        })

    return app


def _auth_error(message, error=None):
    body = {'success': False, 'message': message}
    if error:
        body['error'] = error
    return jsonify(body), 401


def register_jwt_callbacks(user_model):
    @jwt.user_identity_loader
    def user_identity_lookup(user):
        return str(user.id) if isinstance(user, user_model) else str(user)

    @jwt.user_lookup_loader
    def user_lookup_callback(_jwt_header, jwt_data):
        try:
            user_id = int(jwt_data['sub'])
        except (KeyError, TypeError, ValueError):
            return None
        return db.session.get(user_model, user_id)

    @jwt.user_lookup_error_loader
    def user_lookup_error_callback(_jwt_header, _jwt_data):
        return _auth_error('Authentication required', 'User no longer exists')

    @jwt.unauthorized_loader
    def missing_token_callback(reason):
        return _auth_error('Authentication required', reason)

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return _auth_error('Invalid token', reason)

    @jwt.expired_token_loader
    def expired_token_callback(_jwt_header, _jwt_payload):
        return _auth_error('Token has expired')


def register_error_handlers(app):
    from fooddash.errors import ApiError
    from fooddash.responses import http_error_response

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return http_error_response(e)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        app.logger.error(f"Unhandled error: {e}")
        return jsonify({
            'success': False,
            'message': 'Internal server error',
            'error': str(e)
        }), 500
