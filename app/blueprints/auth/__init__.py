from flask import Blueprint

auth_bp = Blueprint("auth", __name__, url_prefix="/api")

from . import controllers  # noqa: E402,F401
