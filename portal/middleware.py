"""Middleware for identity context and role checks."""
from functools import wraps
from flask import session, g, current_app
from portal.database import get_session
from portal.exceptions import LoginRequiredError, UnauthorizedError
from portal.models import Profile, ProfileRole


def load_current_user():
    """
    Load the current profile into g (Flask's per-request global).

    Authentication happens upstream; the session only carries 'user_id'.
    Sets g.user, g.user_id and g.role when a matching profile exists.
    """
    g.user = None
    g.user_id = None
    g.role = None

    user_id = session.get('user_id')
    if not user_id:
        return

    try:
        profile = get_session().query(Profile).filter_by(id=user_id).first()
    except Exception as e:
        current_app.logger.error(f"Error in load_current_user: {e}")
        raise

    if profile is None:
        # Stale session pointing at a deleted profile
        session.pop('user_id', None)
        return

    g.user = profile
    g.user_id = profile.id
    g.role = profile.role


def require_login(f):
    """Decorator: require an authenticated profile (401 otherwise)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise LoginRequiredError()
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """
    Decorator: require the admin role.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('role') != ProfileRole.ADMIN.value:
            current_app.logger.warning(f"[AUTH] Profile {g.get('user_id')} denied admin access")
            raise UnauthorizedError()
        return f(*args, **kwargs)
    return decorated_function


def is_admin() -> bool:
    return g.get('role') == ProfileRole.ADMIN.value
