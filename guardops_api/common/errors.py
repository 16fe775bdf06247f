# guardops_api/common/errors.py
from flask import current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError

from guardops_api.extensions import db
from guardops_api.common.http import fail


class APIError(Exception):
    """Raised by services; rendered as the standard error envelope."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class NotFound(APIError):
    def __init__(self, message="Not found", code="not_found"):
        super().__init__(code, message, 404)


class Conflict(APIError):
    def __init__(self, message, code="conflict", payload=None):
        super().__init__(code, message, 409, payload)


class ValidationFailed(APIError):
    def __init__(self, message, code="validation", payload=None):
        super().__init__(code, message, 422, payload)


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        db.session.rollback()
        return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _integrity(e: IntegrityError):
        db.session.rollback()
        # 409 for unique/FK violations
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR",
                    detail=str(e.orig) if getattr(e, "orig", None) else None)

    @app.errorhandler(Exception)
    def _500(e: Exception):
        current_app.logger.exception(e)
        db.session.rollback()
        return fail("Internal server error", status=500)
