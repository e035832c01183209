import logging

from flask import jsonify
from flask_jwt_extended.exceptions import NoAuthorizationError
from werkzeug.exceptions import HTTPException
from models import db

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        data = {"error": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(APIError):
    status_code = 404


class ForbiddenError(APIError):
    status_code = 403


class ConflictError(APIError):
    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(NoAuthorizationError)
    def handle_missing_token(error):
        return jsonify({"error": "Unauthorized"}), 401

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "Internal server error"}), 500
