import functools
import logging

from flask import jsonify, abort
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Every error leaves the app as a JSON body: {"error": "..."}."""

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(e):
        limit_mb = app.config.get("MAX_UPLOAD_MB", 50)
        return jsonify(error=f"File too large. The limit is {limit_mb} MB."), 413

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify(error=e.description), e.code

    @app.errorhandler(Exception)
    def unhandled(e):
        logger.exception("Unhandled error")
        return jsonify(error="Internal server error"), 500


def tool_errors(message: str):
    """
    Wrap a tool view the same way for every tool:
      - ValueError -> 400 with its own message (bad input)
      - HTTPException -> untouched (aborts raised inside the view)
      - anything else -> logged, 500 with the tool's generic message
    """
    def decorator(view):
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except HTTPException:
                raise
            except ValueError as ve:
                logger.info("[%s BAD_INPUT] %s", view.__name__, ve)
                abort(400, str(ve))
            except Exception:
                logger.exception("[%s ERROR]", view.__name__)
                abort(500, message)
        return wrapper
    return decorator
