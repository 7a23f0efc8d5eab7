"""Flask application for the HTTP API."""

import logging
from flask import Flask
from werkzeug.exceptions import HTTPException

from ..exceptions import ConflictError, MembershipError, NotFoundError, ValidationError
from .memberships import memberships_bp
from .responses import bad_request, conflict, error, not_found, server_error
from .users import users_bp


logger = logging.getLogger(__name__)


def create_app() -> Flask:
    """
    Build the API application.

    Example:
        >>> app = create_app()
        >>> client = app.test_client()
        >>> client.get('/memberships/my').status_code
        401
    """
    app = Flask(__name__)
    app.register_blueprint(memberships_bp)
    app.register_blueprint(users_bp)

    @app.errorhandler(MembershipError)
    def handle_membership_error(e: MembershipError):
        if isinstance(e, NotFoundError):
            return not_found(str(e), code=e.code)
        if isinstance(e, ConflictError):
            return conflict(str(e), code=e.code)
        if isinstance(e, ValidationError):
            return bad_request(str(e), code=e.code)
        return bad_request(str(e), code=e.code)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return error(e.code or 500, 'http/error', e.description or e.name)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.error(f"Unhandled API error: {e}", exc_info=True)
        return server_error(str(e))

    return app


__all__ = ['create_app']
