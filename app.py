from flask import Flask, jsonify
import os

from extensions import db, migrate, login_manager
from errors import register_error_handlers
from routes import register_blueprints
from commands import register_commands


def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # --------------------- EXTENSIONS ---------------------
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    import models  # noqa: F401  registers the mappers with the metadata

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # --------------------- ROUTES, ERRORS, CLI ---------------------
    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route("/")
    def index():
        return jsonify({"status": "success", "message": "Gallery API", "api": "/api"})

    @app.route("/api/<path:unknown>", methods=["GET", "POST", "PUT", "DELETE"])
    def api_not_found(unknown):
        return jsonify({"status": "error", "message": "API endpoint not found"}), 404

    return app


app = create_app()

if __name__ == "__main__":
    with app.app_context(): db.create_all()
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5001)), debug=True)
