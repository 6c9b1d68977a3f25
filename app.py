from flask import Flask, jsonify, request
from flask_smorest import Api
from flask_jwt_extended import JWTManager
from sqlalchemy.exc import SQLAlchemyError
from config import Config
from db import db
from logger import logger, setup_logging
# Import models so SQLAlchemy knows about all tables before create_all()
from models import *  # noqa: F401,F403
from services import EXTENSION_KEY, build_services
from utils import utcnow
from auth import blp as AuthBlueprint
from points import blp as PointsBlueprint
from records import blp as RecordsBlueprint
from chat import blp as ChatBlueprint
from admin import blp as AdminBlueprint


def create_app(config=None, rng=None):
    """
    Build the API. ``config`` overrides values from ``Config`` (tests pass an
    in-memory database here); ``rng`` is handed to the chat service.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    setup_logging(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    api = Api(app)
    JWTManager(app)

    # Stores and chat service share Flask-SQLAlchemy's scoped session
    app.extensions[EXTENSION_KEY] = build_services(db.session, rng=rng)

    # Marshmallow / request validation errors -> consistent JSON
    @app.errorhandler(422)
    def handle_unprocessable(err):
        exc = getattr(err, "exc", None)
        messages = exc.messages if exc else ["Invalid request"]
        return jsonify({"message": "Validation error", "errors": messages}), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(err):
        db.session.rollback()
        logger.opt(exception=err).error(f"Database error on {request.method} {request.path}")
        return jsonify({"message": "Internal server error"}), 500

    @app.after_request
    def log_request(response):
        logger.info(f"{request.method} {request.path} -> {response.status_code}")
        return response

    # Create tables (for local/demo runs; in prod you'd use migrations)
    with app.app_context():
        db.create_all()

    # Register blueprints (endpoints)
    api.register_blueprint(AuthBlueprint)
    api.register_blueprint(PointsBlueprint)
    api.register_blueprint(RecordsBlueprint)
    api.register_blueprint(ChatBlueprint)
    api.register_blueprint(AdminBlueprint)

    @app.route("/")
    def index():
        return {
            "message": "EnviroWatch API is running",
            "version": app.config["API_VERSION"],
            "timestamp": utcnow().isoformat(),
        }

    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    app = create_app()
    # Dev server (debug on for hot reload + better tracebacks)
    app.run(host="0.0.0.0", port=5000, debug=True)
