import os
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _database_uri():
    if os.environ.get('DATABASE_URL'):
        return os.environ['DATABASE_URL']

    host = os.environ.get('DB_HOST')
    if not host:
        return 'sqlite:///fooddash.db'

    return 'mysql+pymysql://{user}:{password}@{host}:{port}/{name}'.format(
        user=os.environ.get('DB_USER', 'root'),
        password=os.environ.get('DB_PASSWORD', ''),
        host=host,
        port=os.environ.get('DB_PORT', '3306'),
        name=os.environ.get('DB_NAME', 'fooddash'),
    )


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key'
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Authentication
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=30)
    JWT_TOKEN_LOCATION = ['headers']

    # Media storage (Cloudinary)
    CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME')
    CLOUDINARY_API_KEY = os.environ.get('CLOUDINARY_API_KEY')
    CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET')
    MEDIA_UPLOAD_TIMEOUT = int(os.environ.get('MEDIA_UPLOAD_TIMEOUT', 30))

    # File Upload Configuration
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5MB
    ALLOWED_IMAGE_EXTENSIONS = ('jpeg', 'jpg', 'png', 'gif')

    # Order workflow: strict | forward | permissive
    ORDER_TRANSITION_POLICY = os.environ.get('ORDER_TRANSITION_POLICY', 'forward')

    # Pagination
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'
    TESTING = False


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or _database_uri()  # Must be set in production


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    CLOUDINARY_CLOUD_NAME = 'test-cloud'
    CLOUDINARY_API_KEY = 'test-key'
    CLOUDINARY_API_SECRET = 'test-secret'
    ORDER_TRANSITION_POLICY = 'forward'
    LOG_LEVEL = 'WARNING'
