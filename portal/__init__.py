"""Flask application factory."""
import os

from flask import Flask, jsonify, request
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException
from portal.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # CSRF protection: JSON clients send the token in the X-CSRFToken header
    csrf = CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'code': 'csrf_error', 'message': e.description}), 400

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis cache (degrades to no-cache when Redis is unreachable)
    from portal.services.cache_service import init_cache
    init_cache(app)

    # Prometheus instrumentation
    from portal.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust the reverse proxy headers
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    from portal.middleware import load_current_user

    @app.before_request
    def before_request_handler():
        """Load the current profile for each request."""
        load_current_user()

    # Error Handlers
    from portal.exceptions import PortalError
    from portal.i18n import current_language, translate

    @app.errorhandler(PortalError)
    def handle_portal_error(error):
        """Domain errors become JSON bodies in the caller's language."""
        log = app.logger.error if error.status_code >= 500 else app.logger.info
        log(f"PortalError [{error.status_code}] {error.code}: {error.message}")
        return jsonify(error.to_dict(current_language())), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({
            'status': 'error',
            'code': 'not_found',
            'message': translate('error.not_found', current_language()),
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'status': 'error', 'code': 'method_not_allowed', 'message': str(error)}), 405

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException) and error.code < 500:
            return jsonify({'status': 'error', 'code': error.name.lower().replace(' ', '_'), 'message': error.description}), error.code
        app.logger.exception(f"Unhandled Exception on {request.method} {request.path}: {error}")
        return jsonify({
            'status': 'error',
            'code': 'internal_error',
            'message': translate('error.internal', current_language()),
        }), 500

    # Register blueprints
    from portal.blueprints.cart import cart_bp
    from portal.blueprints.orders import orders_bp
    from portal.blueprints.inventory import inventory_bp
    from portal.blueprints.dashboard import dashboard_bp
    from portal.blueprints.catalog import catalog_bp
    from portal.blueprints.metrics import metrics_bp

    app.register_blueprint(cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(metrics_bp)

    # Metrics scrapes carry no session
    csrf.exempt(metrics_bp)

    # Register CLI commands
    from portal.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
