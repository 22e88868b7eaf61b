from flask import current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import db

from . import healthcheck_bp


@healthcheck_bp.route("", methods=["GET"])
def healthcheck():
    """
    Check if app can connect to DB
    """
    try:
        db.session.execute(text("SELECT 1"))
        return jsonify(message="Healthy"), 200
    except SQLAlchemyError as e:
        current_app.logger.error("Healthcheck failed: %s", e)
        return jsonify(message="Failed DB connection"), 500
