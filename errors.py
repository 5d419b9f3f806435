"""Error types raised by the services and their JSON rendering."""
from flask import jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from extensions import db


class GalleryError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GalleryError):
    status_code = 400


class AuthError(GalleryError):
    status_code = 401


class NotFoundError(GalleryError):
    status_code = 404


class ConflictError(GalleryError):
    status_code = 409


def error_response(message, status_code):
    return jsonify({"status": "error", "message": message}), status_code


def register_error_handlers(app):
    @app.errorhandler(GalleryError)
    def handle_gallery_error(error):
        db.session.rollback()
        return error_response(error.message, error.status_code)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        return error_response("File size exceeds the limit", 400)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return error_response(error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", error)
        return error_response("Internal server error", 500)
