from . import auth_bp
from app.utils.utils import logged_in_active_user_required, validate_payload
from flask import current_app, jsonify
from flask_login import current_user
from sqlalchemy import or_
from app import db
from app.blueprints.auth.models import User
from .utils import decode_token, encode_token
from .validators import (
    ChangePasswordValidator,
    LoginValidator,
    RefreshTokenValidator,
    RegisterValidator,
)


##############################################################################
# REGISTRATION
##############################################################################


@auth_bp.route("/register", methods=["POST"])
@validate_payload(RegisterValidator)
def register(validated_payload):
    """
    Endpoint for a field supervisor to create their own account.
    Only available when ALLOW_SELF_REGISTRATION is set, otherwise
    users are created by an admin through /api/users

    Requires JSON body with following keys:
    - username
    - email
    - password
    - fullName

    Registered users always get the user role
    """

    if not current_app.config["ALLOW_SELF_REGISTRATION"]:
        return jsonify(message="Registration is disabled"), 403

    username = validated_payload.username.data
    email = validated_payload.email.data

    existing_user = User.query.filter(
        or_(User.username == username, User.email == email)
    ).first()
    if existing_user is not None:
        return jsonify(message="Username or email already exists"), 409

    user = User(
        username=username,
        email=email,
        full_name=validated_payload.fullName.data,
        password=validated_payload.password.data,
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info("User %s registered", user.user_uid)

    return (
        jsonify(
            {
                "message": "User registered successfully",
                "accessToken": encode_token(user, "access"),
                "refreshToken": encode_token(user, "refresh"),
                "user": user.to_dict(),
            }
        ),
        201,
    )


##############################################################################
# LOGIN / TOKENS
##############################################################################


@auth_bp.route("/login", methods=["POST"])
@validate_payload(LoginValidator)
def login(validated_payload):
    """
    Endpoint to login

    Requires JSON body with following keys:
    - username (username or email)
    - password

    Returns an access token and a refresh token to be sent as
    `Authorization: Bearer <token>` on subsequent requests
    """

    username = validated_payload.username.data
    password = validated_payload.password.data

    user = (
        User.query.filter(
            or_(User.username == username, User.email == username)
        ).first()
    )

    if user is None or not user.verify_password(password):
        current_app.logger.info("Failed login attempt for '%s'", username)
        return jsonify(message="UNAUTHORIZED"), 401

    if not user.is_active:
        return jsonify(message="INACTIVE_USER"), 403

    return (
        jsonify(
            {
                "message": "Success: logged in",
                "accessToken": encode_token(user, "access"),
                "refreshToken": encode_token(user, "refresh"),
                "user": user.to_dict(),
            }
        ),
        200,
    )


@auth_bp.route("/refresh", methods=["POST"])
@validate_payload(RefreshTokenValidator)
def refresh(validated_payload):
    """
    Exchange a refresh token for a new access token
    """

    claims = decode_token(validated_payload.refreshToken.data, token_type="refresh")
    if claims is None:
        return jsonify(message="Invalid refresh token"), 401

    user = db.session.get(User, claims["user_uid"])
    if user is None or not user.is_active:
        return jsonify(message="Invalid refresh token"), 401

    return jsonify({"accessToken": encode_token(user, "access")}), 200


@auth_bp.route("/profile", methods=["GET"])
@logged_in_active_user_required
def get_profile():
    """
    Return the logged in user's details
    """

    return jsonify({"success": True, "data": current_user.to_dict()}), 200


##############################################################################
# PASSWORD MANAGEMENT
##############################################################################


@auth_bp.route("/change-password", methods=["PUT"])
@logged_in_active_user_required
@validate_payload(ChangePasswordValidator)
def change_password(validated_payload):
    """
    Endpoint to change password, user must be logged in

    Requires JSON body with following keys:
    - cur_password
    - new_password
    - confirm
    """

    cur_password = validated_payload.cur_password.data
    new_password = validated_payload.new_password.data

    if current_user.verify_password(cur_password):
        current_user.change_password(new_password)
        return jsonify(message="Success: password changed"), 200
    else:
        return jsonify(message="Wrong password"), 403
