"""
This contains the application factory for creating flask application instances.
Using the application factory allows for the creation of flask applications configured
for different environments based on the value of the CONFIG_TYPE environment variable
"""

import os
import logging.config
import sqlite3

import click
import wtforms_json
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask import Flask, current_app, jsonify, request
from flask_login import LoginManager
from sqlalchemy import MetaData, event
from sqlalchemy.engine import Engine
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration


db = SQLAlchemy(
    metadata=MetaData(
        naming_convention={
            "pk": "pk_%(table_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "ix": "ix_%(table_name)s_%(column_0_name)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(column_0_name)s",
        }
    )
)
migrate = Migrate()
login_manager = LoginManager()
wtforms_json.init()


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """
    SQLite ignores foreign keys (and so ON DELETE CASCADE) unless asked per connection
    """
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


### Application Factory ###
def create_app():
    app = Flask(__name__)

    # Configure the flask app instance
    CONFIG_TYPE = os.getenv("CONFIG_TYPE", default="app.config.DevelopmentConfig")
    app.config.from_object(CONFIG_TYPE)

    # Configure logging
    logging.config.dictConfig(app.config["LOGGING_CONFIG"])

    # Configure Sentry
    sentry_sdk.init(
        integrations=[FlaskIntegration(), SqlalchemyIntegration()],
        **app.config["SENTRY_CONFIG"]
    )

    # Register blueprints
    register_blueprints(app)

    # Initialize flask extension objects
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Configure login manager
    from app.blueprints.auth.models import User
    from app.blueprints.auth.utils import decode_token

    @login_manager.request_loader
    def request_loader(request):
        """
        Load the user named by the bearer token in the Authorization header.
        Returns None for a missing, expired or invalid token.
        """
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return None

        claims = decode_token(auth_header[len("Bearer ") :], token_type="access")
        if claims is None:
            return None

        return db.session.get(User, claims["user_uid"])

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


### Helper Functions ###
def register_blueprints(app):
    from app.blueprints.auth import auth_bp

    from app.blueprints.forms import forms_bp
    from app.blueprints.healthcheck import healthcheck_bp
    from app.blueprints.sync import sync_bp
    from app.blueprints.user_management import user_management_bp

    # Auth needs to be registered first to avoid circular imports
    app.register_blueprint(auth_bp)
    app.register_blueprint(forms_bp)
    app.register_blueprint(healthcheck_bp)
    app.register_blueprint(sync_bp)
    app.register_blueprint(user_management_bp)


def register_error_handlers(app):
    def bad_request(e):
        return jsonify(message=str(e)), 400

    def unauthorized(e):
        return jsonify(message=str(e)), 401

    def forbidden(e):
        return jsonify(message=str(e)), 403

    def page_not_found(e):
        return jsonify(message=str(e)), 404

    def method_not_allowed(e):
        return jsonify(message=str(e)), 405

    def internal_server_error(e):
        current_app.logger.error(
            "Unhandled error on %s %s: %s", request.method, request.path, e
        )
        return jsonify(message=str(e)), 500

    app.register_error_handler(400, bad_request)
    app.register_error_handler(401, unauthorized)
    app.register_error_handler(403, forbidden)
    app.register_error_handler(404, page_not_found)
    app.register_error_handler(405, method_not_allowed)
    app.register_error_handler(500, internal_server_error)


def register_commands(app):
    @app.cli.command("create-admin")
    @click.option("--username", default=None, help="Admin username")
    @click.option("--email", default=None, help="Admin email")
    @click.option("--password", default=None, help="Admin password")
    def create_admin(username, email, password):
        """
        Create the default admin user if no user with the same username exists
        """
        from app.blueprints.auth.models import User

        username = username or app.config["DEFAULT_ADMIN_USERNAME"]
        email = email or app.config["DEFAULT_ADMIN_EMAIL"]
        password = password or app.config["DEFAULT_ADMIN_PASSWORD"]

        if not password:
            raise click.UsageError(
                "Provide --password or set DEFAULT_ADMIN_PASSWORD in the environment"
            )

        if User.query.filter_by(username=username).first() is not None:
            click.echo(f"User '{username}' already exists")
            return

        admin = User(
            username=username,
            email=email,
            full_name="System Administrator",
            role="admin",
            password=password,
        )
        db.session.add(admin)
        db.session.commit()

        click.echo(f"Created admin user '{username}'")
