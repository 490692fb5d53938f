"""Flask application factory."""
from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from distribuidora.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis publisher for seller notifications
    from distribuidora.services.notification_service import init_notifier
    init_notifier(app)

    # Prometheus metrics instrumentation
    from distribuidora.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* from the reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Bearer token -> g.principal before each request
    from distribuidora.middleware import load_principal
    app.before_request(load_principal)

    # Admin web client origins; the Android apps send no Origin
    allowed_origins = sorted({
        origin.strip() for origin in (app.config.get('CLIENT_ORIGIN') or '').split(',') if origin.strip()
    })
    CORS(
        app,
        resources={r"/api/*": {"origins": allowed_origins}},
        allow_headers=['Authorization', 'Content-Type'],
        methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'],
    )

    # Error Handlers
    from distribuidora.exceptions import AppError

    @app.errorhandler(AppError)
    def handle_app_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"AppError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"AppError [{error.status_code}] {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        messages = {404: 'No encontrado', 405: 'Método no permitido', 413: 'Solicitud demasiado grande'}
        return jsonify({'ok': False, 'error': messages.get(error.code, error.name)}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'ok': False, 'error': 'Error interno'}), 500

    # Register blueprints
    from distribuidora.blueprints.main import main_bp
    from distribuidora.blueprints.auth import auth_bp
    from distribuidora.blueprints.seller import seller_bp
    from distribuidora.blueprints.loader import loader_bp
    from distribuidora.blueprints.customers import customers_bp
    from distribuidora.blueprints.catalog import catalog_bp
    from distribuidora.blueprints.fleet import fleet_bp
    from distribuidora.blueprints.discounts import discounts_bp
    from distribuidora.blueprints.metrics import metrics_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(seller_bp)
    app.register_blueprint(loader_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(fleet_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from distribuidora.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
