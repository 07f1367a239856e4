import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

from config import Config
from chatdesk.extensions import db, migrate, cors, socketio, jwt, bcrypt
from chatdesk.errors import ServiceError
from chatdesk.utils.auth import register_jwt_handlers
from chatdesk.utils.dates import utcnow
from chatdesk.utils.response import success, error, service_error

API_VERSION = "1.0.0"


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    frontend_url = app.config["FRONTEND_URL"]

    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(app, origins=[frontend_url], supports_credentials=True)
    socketio.init_app(app, cors_allowed_origins=[frontend_url])
    jwt.init_app(app)
    bcrypt.init_app(app)

    register_jwt_handlers(jwt)

    # Modelos registrados antes de create_all / migraciones
    from chatdesk.models import user, conversation, prompt  # noqa: F401

    # Register blueprints
    from chatdesk.routes.auth_routes import auth_bp
    from chatdesk.routes.conversation_routes import conversation_bp
    from chatdesk.routes.prompt_routes import prompt_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(conversation_bp)
    app.register_blueprint(prompt_bp)

    from chatdesk import socket_events  # noqa: F401
    from chatdesk.commands import register_commands

    register_commands(app)
    _register_error_handlers(app)

    @app.route("/health")
    def health():
        return success({"status": "OK", "timestamp": utcnow().isoformat()}, "chatdesk backend is running")

    @app.route("/api/health")
    def api_health():
        return success(
            {"timestamp": utcnow().isoformat(), "version": API_VERSION},
            "API funcionando correctamente",
        )

    @app.route("/api/info")
    def api_info():
        return success({
            "name": "chatdesk API",
            "version": API_VERSION,
            "description": "API para dashboard de conversaciones de IA",
            "endpoints": {
                "auth": "/api/auth",
                "conversations": "/api/conversations",
                "prompts": "/api/prompts",
                "health": "/api/health",
                "info": "/api/info",
            },
        })

    return app


def _register_error_handlers(app):

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        return service_error(e)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if e.code == 404:
            return error("Not Found", 404, message="Ruta no encontrada")
        return error(e.name, e.code, message=e.description)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception("Error no controlado: %s", e)
        db.session.rollback()
        return error("Error interno del servidor", 500)
