from flask import jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base for errors rendered as a ``{success: false, message}`` envelope."""

    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400


class UnauthorizedError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


def error_response(message, status_code):
    return jsonify({"success": False, "message": message}), status_code


def register_error_handlers(app):
    from absensi.extensions import db, jwt
    from utils.logging import log_rate_limit_violation

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return error_response(error.message, error.status_code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        app.logger.warning("Integrity error on %s %s: %s", request.method, request.path, error.orig)
        return error_response("Request conflicts with existing data", 409)

    @app.errorhandler(429)
    def handle_rate_limit(error):
        log_rate_limit_violation()
        return error_response("Rate limit exceeded. Please slow down.", 429)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return error_response(error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response("Internal server error", 500)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response("Not authorized to access this route", 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_response(f"Invalid token: {reason}", 401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response("Token has expired", 401)

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return error_response("Token has been revoked", 401)
