# backend/agrimarket/__init__.py
from flask import Flask, request, g
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import MarketError, AuthorizationError
from .extensions import db, migrate
from .responses import error_response
from .services import permission_service


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(MarketError)
    def handle_market_error(error: MarketError):
        # The unit of work has already rolled back; this covers guard failures
        db.session.rollback()

        if isinstance(error, AuthorizationError) and hasattr(g, "current_user"):
            permission_service.log_security_event(
                user_id=g.current_user.id,
                event_type="PERMISSION_DENIED",
                success=False,
                resource=request.path,
                action=request.method,
                reason=error.message,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )

        if error.status_code >= 500:
            app.logger.error("%s %s failed: %s", request.method, request.path, error.message)
        return error_response(error)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        code = (error.name or "HTTP_ERROR").upper().replace(" ", "_")
        wrapped = MarketError(error.description or error.name, code=code)
        wrapped.status_code = error.code or 500
        return error_response(wrapped)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response(MarketError("Internal server error"))


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.approvisionnements import approvisionnements_bp
    from .routes.orders import orders_bp
    from .routes.deliveries import deliveries_bp
    from .routes.stocks import stocks_bp
    from .routes.roles import roles_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(approvisionnements_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(deliveries_bp)
    app.register_blueprint(stocks_bp)
    app.register_blueprint(roles_bp)

    _register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config.get("ALLOWED_ORIGINS", []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
