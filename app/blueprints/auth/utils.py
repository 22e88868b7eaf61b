from datetime import datetime, timezone

import jwt
from flask import current_app


def _signing_key(token_type):
    if token_type == "refresh":
        return current_app.config["JWT_REFRESH_SECRET_KEY"]
    return current_app.config["JWT_SECRET_KEY"]


def encode_token(user, token_type="access"):
    """
    Issue a signed JWT for the given user

    :param user: User the token is issued to
    :param token_type: "access" or "refresh", each signed with its own secret
    """

    if token_type == "refresh":
        expires_in = current_app.config["JWT_REFRESH_TOKEN_EXPIRES"]
    else:
        expires_in = current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]

    now = datetime.now(timezone.utc)
    payload = {
        "user_uid": user.user_uid,
        "username": user.username,
        "role": user.role,
        "type": token_type,
        "iat": now,
        "exp": now + expires_in,
    }

    return jwt.encode(
        payload,
        _signing_key(token_type),
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token, token_type="access"):
    """
    Return the claims of a valid token, or None if the token is expired,
    tampered with or of the wrong type
    """

    try:
        claims = jwt.decode(
            token,
            _signing_key(token_type),
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except jwt.ExpiredSignatureError:
        current_app.logger.info("Rejected expired %s token", token_type)
        return None
    except jwt.InvalidTokenError:
        return None

    if claims.get("type") != token_type:
        return None

    return claims
