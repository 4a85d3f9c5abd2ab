from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .errors import AppError, DependencyFailureError, InvariantError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(kind, message, status_code):
    body = {"success": False, "error": kind, "message": message}
    return jsonify(body), status_code


@error_handlers_bp.app_errorhandler(DependencyFailureError)
def handle_dependency_failure(error):
    """Handles failures of the user or step stores."""
    current_app.logger.error(f"Dependency Failure: {error.message}")
    return _error_response(error.kind, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(InvariantError)
def handle_invariant_error(error):
    """Handles store inconsistencies without exposing their details."""
    current_app.logger.error(f"Invariant Violation: {error.message}")
    return _error_response(error.kind, "An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles validation, lookup, conflict and authorization errors."""
    current_app.logger.warning(f"{type(error).__name__}: {error.message}")
    return _error_response(error.kind, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("not_found", "Page not found.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests with an unsupported method."""
    return _error_response("method_not_allowed", "Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("internal_error", "An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles CSRF errors on form-based endpoints."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _error_response("csrf_error", e.description, 400)
