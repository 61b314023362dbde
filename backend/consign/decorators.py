# Overview: Request and permission decorators for API routes.

import hmac
from functools import wraps

from flask import current_app, g, jsonify, request

from .services import permission_service, session_service
from .services.permission_service import Actor


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets:
    - g.current_user: the authenticated User
    - g.actor: Actor passed explicitly into every service call

    Returns 401 if the header is missing or the token is invalid, expired,
    revoked, or belongs to a deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.actor = Actor.from_user(user)
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a specific permission for the authenticated actor.

    Must be stacked below @require_auth. Services re-check the same
    permission, so this only short-circuits with a 403 before parsing input.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "actor"):
                return jsonify({"error": "Authentication required"}), 401

            if not permission_service.has_permission(g.actor, permission_code):
                current_app.logger.warning(
                    "permission denied: user=%s role=%s permission=%s path=%s",
                    g.actor.user_id, g.actor.role, permission_code, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_cron_secret(f):
    """
    Guard for the external timer trigger.

    Accepts "Authorization: Bearer <CRON_SECRET>". When CRON_SECRET is not
    configured the endpoint is disabled (503).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = current_app.config.get("CRON_SECRET")
        if not secret:
            return jsonify({"error": "Cron trigger is not configured"}), 503

        token = _bearer_token()
        if token is None or not hmac.compare_digest(token, secret):
            current_app.logger.warning("cron trigger rejected: path=%s", request.path)
            return jsonify({"error": "Unauthorized"}), 401

        return f(*args, **kwargs)

    return decorated_function
