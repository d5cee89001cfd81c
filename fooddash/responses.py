from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from fooddash import db
from fooddash.errors import ApiError


def success_response(message, data=None, status=200):
    body = {
        'success': True,
        'message': message
    }
    if data is not None:
        body['data'] = data
    return jsonify(body), status


def error_response(message, error=None, status=400):
    body = {
        'success': False,
        'message': message
    }
    if error is not None:
        body['error'] = error
    return jsonify(body), status


def http_error_response(exc):
    """Envelope for a werkzeug HTTPException, keeping its status code"""
    if exc.code == 413:
        message = 'Uploaded file is too large'
    else:
        message = exc.name
    return error_response(message, exc.description, exc.code)


def failure(message, exc):
    """Turn an exception raised inside a route into an error envelope.

    ApiError subclasses and werkzeug HTTP errors (e.g. an upload over
    MAX_CONTENT_LENGTH) carry their own status; anything else is an
    unhandled storage/network failure reported as 500 with its text.
    """
    db.session.rollback()

    if isinstance(exc, ApiError):
        return jsonify(exc.to_dict()), exc.status_code

    if isinstance(exc, HTTPException):
        return http_error_response(exc)

    current_app.logger.error(f"{message}: {exc}")
    return error_response(message, str(exc), 500)
