"""Standard JSON envelopes for API responses."""

from typing import Any, Optional
from flask import Response, jsonify


def success(data: Any, status: int = 200) -> tuple[Response, int]:
    return jsonify({'success': True, 'data': data}), status


def no_content() -> tuple[str, int]:
    return '', 204


def error(status: int, code: str, message: str, details: Optional[Any] = None) -> tuple[Response, int]:
    body: dict[str, Any] = {'code': code, 'message': message}
    if details is not None:
        body['details'] = details
    return jsonify({'success': False, 'error': body}), status


def bad_request(message: str, code: str = 'validation/invalid') -> tuple[Response, int]:
    return error(400, code, message)


def unauthorized(message: str, code: str = 'auth/invalid-token') -> tuple[Response, int]:
    return error(401, code, message)


def forbidden(message: str = 'Unauthorized') -> tuple[Response, int]:
    return error(403, 'auth/forbidden', message)


def not_found(message: str, code: str = 'resource/not-found') -> tuple[Response, int]:
    return error(404, code, message)


def conflict(message: str, code: str = 'resource/conflict') -> tuple[Response, int]:
    return error(409, code, message)


def server_error(message: str = 'Internal server error') -> tuple[Response, int]:
    return error(500, 'server/error', message)
