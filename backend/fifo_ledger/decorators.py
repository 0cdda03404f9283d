# Overview: Request decorators for API routes.

from functools import wraps

from flask import current_app, jsonify

from .errors import LedgerError

RETRY_MESSAGE = "Please retry the request."


def error_response(exc: LedgerError):
    """JSON body + status for a ledger error; retryable kinds get a generic message."""
    body = exc.to_dict()
    if exc.retryable:
        body["error"] = RETRY_MESSAGE
    return jsonify(body), exc.status_code


def json_errors(f):
    """
    Map ledger errors raised by a route to JSON responses.

    Services roll their own session back before raising, so nothing is left
    pending here. Anything that is not a LedgerError is logged with its
    traceback and reported as a 500 without internal details.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except LedgerError as e:
            if e.retryable:
                current_app.logger.warning("Retryable ledger failure on %s: %s", f.__name__, e)
            return error_response(e)
        except Exception:
            current_app.logger.exception("Unexpected error in %s", f.__name__)
            return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500

    return decorated_function
