from flask import Blueprint

forms_bp = Blueprint("forms", __name__, url_prefix="/api/forms")

from . import controllers  # noqa: E402,F401
