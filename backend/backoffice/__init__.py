# backend/backoffice/__init__.py
import logging

from flask import Flask, jsonify
from sqlalchemy.orm import configure_mappers

from .config import Config
from .errors import BackofficeError
from .extensions import db, migrate


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably; backref
    # attributes (Purchase.items, ...) exist only after mapper configuration
    from . import models  # noqa: F401
    configure_mappers()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.purchases import purchases_bp
    from .routes.sales import sales_bp
    from .routes.transfers import transfers_bp
    from .routes.returns import purchase_returns_bp, sale_returns_bp
    from .routes.inventory import inventory_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(transfers_bp)
    app.register_blueprint(purchase_returns_bp)
    app.register_blueprint(sale_returns_bp)
    app.register_blueprint(inventory_bp)

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(BackofficeError)
    def backoffice_error(error: BackofficeError):
        return jsonify(error.to_dict()), error.status_code

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
