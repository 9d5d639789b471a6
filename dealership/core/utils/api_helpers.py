"""Shared API utilities — request parsing and error responses."""
import logging

from flask import jsonify, request

from core.exceptions import NotFoundError, DuplicateError, ValidationError

logger = logging.getLogger('dealership.api')


# ============== Request Validation ==============

def get_json_or_error():
    """Get JSON from request body with null check.

    Returns (data, error_response) tuple. Caller pattern:
        data, error = get_json_or_error()
        if error:
            return error
    """
    data = request.get_json(silent=True)
    if data is None:
        return None, (jsonify({
            'success': False,
            'error': 'Invalid or missing JSON body',
        }), 400)
    return data, None


# ============== Error Handling ==============

_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (DuplicateError, 409),
    (ValidationError, 400),
)


def error_response(e):
    """Translate a domain exception into a JSON error response.

    - NotFoundError -> 404, DuplicateError -> 409, ValidationError -> 400
      (with `details` when the error carries them)
    - Everything else: logs full exception, returns a generic 500
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(e, error_type):
            body = {'success': False, 'error': str(e)}
            if getattr(e, 'details', None):
                body['details'] = e.details
            return jsonify(body), status_code

    logger.exception('Unhandled error in API route')
    return jsonify({'success': False, 'error': 'An internal error occurred'}), 500
