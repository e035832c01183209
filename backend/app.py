import logging
from flask import Flask, jsonify
from flask_migrate import Migrate
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from config import get_config
from models import db
from routes import register_blueprints
from sockets import socketio, init_socketio
from utils.errors import register_error_handlers

migrate = Migrate()
jwt = JWTManager()


def configure_logging(app):
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))


def register_jwt_handlers(jwt_manager):
    @jwt_manager.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({"error": "Token has expired"}), 401

    @jwt_manager.invalid_token_loader
    def invalid_token(reason):
        return jsonify({"error": f"Invalid token: {reason}"}), 401

    @jwt_manager.unauthorized_loader
    def missing_token(reason):
        return jsonify({"error": "Unauthorized"}), 401


def create_app(config_name=None):
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    configure_logging(app)

    CORS(app, origins=app.config["CORS_ORIGINS"], supports_credentials=True)
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    register_jwt_handlers(jwt)

    register_error_handlers(app)
    init_socketio(app)

    #register routes
    register_blueprints(app)

    @app.route("/")
    def home():
        return {"message": "Quiz platform backend is running!"}

    app.logger.info("App created with %s config", config_name or "default")
    return app


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    socketio.run(
        app,
        port=app.config["PORT"],
        debug=app.config.get("DEBUG", False),
        allow_unsafe_werkzeug=True
    )
