from datetime import datetime, timezone
from functools import wraps

from flask import jsonify, request
from flask_login import current_user
from wtforms.fields import Field
from wtforms.validators import ValidationError
from wtforms_json import InvalidData


def utcnow():
    """
    Naive UTC timestamp, the form every DateTime column in the app is stored in
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def safe_isoformat(value):
    """
    Assert that a value is not None before converting to isoformat()
    """

    if value is not None:
        return value.isoformat()
    else:
        return None


def parse_iso_datetime(value):
    """
    Parse an ISO 8601 timestamp sent by a client into a naive UTC datetime.
    Accepts a trailing "Z" and explicit offsets. Raises ValueError on bad input.
    """

    if not isinstance(value, str) or not value.strip():
        raise ValueError("Timestamp must be a non-empty ISO 8601 string")

    value = value.strip()
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)

    return parsed


def parse_iso_date(value):
    """
    Parse a client date, either YYYY-MM-DD or a full ISO timestamp, into a date
    """

    if isinstance(value, str) and len(value.strip()) == 10:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()

    return parse_iso_datetime(value).date()


def logged_in_active_user_required(f):
    """
    Login required middleware
    The user is loaded from the bearer token by the login manager's request loader.
    Rejects missing/invalid tokens with 401 and deactivated users with 403
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify(message="UNAUTHORIZED"), 401

        if current_user.is_active is False:
            return jsonify(message="INACTIVE_USER"), 403

        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """
    Only allow users with the admin role. Must be applied after
    logged_in_active_user_required
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin():
            return jsonify(message="Admin access required", success=False), 403

        return f(*args, **kwargs)

    return decorated_function


def validate_query_params(validator):
    """
    Decorator to validate query params
    """

    def decorator(fn):
        @wraps(fn)
        def decorated_function(*args, **kwargs):
            query_param_validator = validator.from_json(request.args)

            if not query_param_validator.validate():
                return (
                    jsonify(
                        {
                            "success": False,
                            "data": None,
                            "message": query_param_validator.errors,
                        }
                    ),
                    400,
                )

            kwargs["validated_query_params"] = query_param_validator

            return fn(*args, **kwargs)

        return decorated_function

    return decorator


def validate_payload(validator, error_status=422):
    """
    Decorator to validate a JSON payload

    :param validator: FlaskForm class used to validate the body
    :param error_status: status code returned when validation fails
    """

    def decorator(fn):
        @wraps(fn)
        def decorated_function(*args, **kwargs):
            payload = request.get_json(silent=True)

            try:
                payload_validator = validator.from_json(payload)
            except InvalidData:
                return (
                    jsonify(message="Request body must be a JSON object", success=False),
                    error_status,
                )

            if not payload_validator.validate():
                return (
                    jsonify(message=payload_validator.errors, success=False),
                    error_status,
                )

            kwargs["validated_payload"] = payload_validator

            return fn(*args, **kwargs)

        return decorated_function

    return decorator


class JSONField(Field):
    def _value(self):
        return self.data if self.data else {}

    def process_formdata(self, valuelist):
        if valuelist:
            try:
                self.data = valuelist[0]
            except ValueError:
                raise ValueError("This field contains invalid JSON")
        else:
            self.data = None

    def pre_validate(self, form):
        super().pre_validate(form)
        if self.data is not None and not isinstance(self.data, dict):
            raise ValidationError("This field must be a JSON object")
