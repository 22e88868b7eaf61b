from flask import Blueprint

user_management_bp = Blueprint(
    "user_management", __name__, url_prefix="/api/users"
)

from . import controllers  # noqa: E402,F401
