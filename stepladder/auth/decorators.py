"""Decorators for authenticated endpoints."""

from functools import wraps

from flask import g, jsonify, session


def login_required(f):
    """Reject the request with 401 unless the session carries a user id.

    The user id is exposed to the view as ``g.user_id``.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = session.get("user_id")
        if not user_id:
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "unauthenticated",
                        "message": "Authentication required.",
                    }
                ),
                401,
            )
        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
