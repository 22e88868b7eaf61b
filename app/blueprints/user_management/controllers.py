from math import ceil

from flask import current_app, jsonify
from flask_login import current_user
from sqlalchemy import or_

from app import db
from app.blueprints.auth.models import User
from app.utils.utils import (
    admin_required,
    logged_in_active_user_required,
    validate_payload,
    validate_query_params,
)

from . import user_management_bp
from .validators import (
    AddUserValidator,
    GetUsersQueryParamValidator,
    ResetPasswordValidator,
    UpdateUserValidator,
)


@user_management_bp.route("", methods=["GET"])
@logged_in_active_user_required
@admin_required
@validate_query_params(GetUsersQueryParamValidator)
def get_users(validated_query_params):
    """
    Return a page of users, newest first (admin only)
    Optional filters: ?search=<str>&role=<admin|user>&isActive=<true|false>
    """

    page = validated_query_params.page.data or 1
    limit = validated_query_params.limit.data or 10
    search = validated_query_params.search.data
    role = validated_query_params.role.data
    is_active = validated_query_params.isActive.data

    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.full_name.ilike(pattern),
            )
        )
    if role:
        filters.append(User.role == role)
    if is_active:
        filters.append(User.active == (is_active == "true"))

    total = User.query.filter(*filters).count()
    users = (
        User.query.filter(*filters)
        .order_by(User.created_at.desc(), User.user_uid.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )

    total_pages = ceil(total / limit)

    response = {
        "success": True,
        "data": [user.to_dict() for user in users],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalUsers": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }

    return jsonify(response), 200


@user_management_bp.route("", methods=["POST"])
@logged_in_active_user_required
@admin_required
@validate_payload(AddUserValidator)
def add_user(validated_payload):
    """
    Create a user (admin only)

    Requires JSON body with following keys:
    - username
    - email
    - password
    - fullName
    - role (optional, defaults to user)
    """

    username = validated_payload.username.data
    email = validated_payload.email.data

    existing_user = User.query.filter(
        or_(User.username == username, User.email == email)
    ).first()
    if existing_user is not None:
        return (
            jsonify(
                {"success": False, "message": "Username or email already exists"}
            ),
            409,
        )

    user = User(
        username=username,
        email=email,
        full_name=validated_payload.fullName.data,
        password=validated_payload.password.data,
        role=validated_payload.role.data or "user",
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info(
        "User %s created by admin %s", user.user_uid, current_user.user_uid
    )

    return (
        jsonify(
            {
                "success": True,
                "message": "User created successfully",
                "data": user.to_dict(),
            }
        ),
        201,
    )


@user_management_bp.route("/<int:user_uid>", methods=["GET"])
@logged_in_active_user_required
@admin_required
def get_user(user_uid):
    """
    Return a single user (admin only)
    """

    user = db.session.get(User, user_uid)
    if user is None:
        return jsonify({"success": False, "message": "User not found"}), 404

    return jsonify({"success": True, "data": user.to_dict()}), 200


@user_management_bp.route("/<int:user_uid>", methods=["PUT"])
@logged_in_active_user_required
@admin_required
@validate_payload(UpdateUserValidator)
def update_user(user_uid, validated_payload):
    """
    Update a user's details, role or active flag (admin only)

    Accepts a JSON body with any of the following keys:
    - username
    - email
    - fullName
    - role
    - isActive
    """

    user = db.session.get(User, user_uid)
    if user is None:
        return jsonify({"success": False, "message": "User not found"}), 404

    username = validated_payload.username.data
    email = validated_payload.email.data
    full_name = validated_payload.fullName.data
    role = validated_payload.role.data
    is_active = (
        None
        if validated_payload.isActive.is_missing
        else validated_payload.isActive.data
    )

    if not any([username, email, full_name, role]) and is_active is None:
        return jsonify({"success": False, "message": "No fields to update"}), 400

    if is_active is False and user_uid == current_user.user_uid:
        return (
            jsonify(
                {
                    "success": False,
                    "message": "You cannot deactivate your own account",
                }
            ),
            400,
        )

    if username or email:
        duplicate = User.query.filter(
            or_(User.username == username, User.email == email),
            User.user_uid != user_uid,
        ).first()
        if duplicate is not None:
            return (
                jsonify(
                    {"success": False, "message": "Username or email already exists"}
                ),
                409,
            )

    if username:
        user.username = username
    if email:
        user.email = email
    if full_name:
        user.full_name = full_name
    if role:
        user.role = role
    if is_active is not None:
        user.active = is_active

    db.session.commit()

    current_app.logger.info(
        "User %s updated by admin %s", user.user_uid, current_user.user_uid
    )

    return (
        jsonify(
            {
                "success": True,
                "message": "User updated successfully",
                "data": user.to_dict(),
            }
        ),
        200,
    )


@user_management_bp.route("/<int:user_uid>/reset-password", methods=["PUT"])
@logged_in_active_user_required
@admin_required
@validate_payload(ResetPasswordValidator)
def reset_password(user_uid, validated_payload):
    """
    Set a new password for a user (admin only)

    Requires JSON body with following keys:
    - newPassword
    """

    user = db.session.get(User, user_uid)
    if user is None:
        return jsonify({"success": False, "message": "User not found"}), 404

    user.change_password(validated_payload.newPassword.data)

    current_app.logger.info(
        "Password of user %s reset by admin %s", user.user_uid, current_user.user_uid
    )

    return jsonify({"success": True, "message": "Password reset successfully"}), 200


@user_management_bp.route("/<int:user_uid>", methods=["DELETE"])
@logged_in_active_user_required
@admin_required
def deactivate_user(user_uid):
    """
    Deactivate a user (admin only)
    Users are never hard deleted, their forms and sync history are kept
    """

    if user_uid == current_user.user_uid:
        return (
            jsonify(
                {"success": False, "message": "You cannot delete your own account"}
            ),
            400,
        )

    user = db.session.get(User, user_uid)
    if user is None:
        return jsonify({"success": False, "message": "User not found"}), 404

    user.active = False
    db.session.commit()

    return (
        jsonify(
            {
                "success": True,
                "message": "User deleted successfully",
                "data": {"user_uid": user.user_uid, "username": user.username},
            }
        ),
        200,
    )


@user_management_bp.route("/<int:user_uid>/restore", methods=["PUT"])
@logged_in_active_user_required
@admin_required
def restore_user(user_uid):
    """
    Reactivate a deactivated user (admin only)
    """

    user = db.session.get(User, user_uid)
    if user is None:
        return jsonify({"success": False, "message": "User not found"}), 404

    if user.active:
        return jsonify({"success": False, "message": "User is already active"}), 400

    user.active = True
    db.session.commit()

    return (
        jsonify(
            {
                "success": True,
                "message": "User restored successfully",
                "data": {"user_uid": user.user_uid, "username": user.username},
            }
        ),
        200,
    )
