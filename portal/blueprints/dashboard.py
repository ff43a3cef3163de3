"""
Dashboard blueprint.
Stock alerts and recent orders for clients; order pipeline and low stock for operators.
"""

from flask import Blueprint, jsonify, g, current_app
from portal.database import get_session
from portal.middleware import require_login, is_admin
from portal.services.cache_service import get_cache, client_scope, GLOBAL_SCOPE
from portal.services.dashboard_service import get_client_dashboard, get_admin_dashboard


dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


@dashboard_bp.route('', methods=['GET'])
@require_login
def index():
    """
    Dashboard data for the current profile.

    Cached briefly; inventory edits and order changes invalidate it.
    """
    db_session = get_session()
    ttl = current_app.config.get('CACHE_DASHBOARD_TTL', 30)
    cache = get_cache()

    if is_admin():
        data = cache.memoize(GLOBAL_SCOPE, 'dashboard', 'admin',
                             lambda: get_admin_dashboard(db_session), ttl=ttl)
        return jsonify({'role': 'admin', 'dashboard': data})

    client_id = g.user_id
    data = cache.memoize(client_scope(client_id), 'dashboard', 'summary',
                         lambda: get_client_dashboard(db_session, client_id), ttl=ttl)
    return jsonify({'role': 'client', 'dashboard': data})
