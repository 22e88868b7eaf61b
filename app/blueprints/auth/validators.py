from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import (
    DataRequired,
    Email,
    EqualTo,
    Length,
    Regexp,
    ValidationError,
)


def validate_password_strength(form, field):
    password = field.data or ""
    if not (
        any(c.islower() for c in password)
        and any(c.isupper() for c in password)
        and any(c.isdigit() for c in password)
    ):
        raise ValidationError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )


class LoginValidator(FlaskForm):
    username = StringField(validators=[DataRequired()])
    password = PasswordField(validators=[DataRequired()])


class RefreshTokenValidator(FlaskForm):
    refreshToken = StringField(validators=[DataRequired()])


class RegisterValidator(FlaskForm):
    username = StringField(
        validators=[
            DataRequired(),
            Length(
                min=3, max=50, message="Username must be between 3 and 50 characters"
            ),
            Regexp(
                r"^[a-zA-Z0-9_]+$",
                message="Username can only contain letters, numbers, and underscores",
            ),
        ]
    )
    email = StringField(
        validators=[
            DataRequired(),
            Email(message="Please provide a valid email address"),
        ]
    )
    password = PasswordField(
        validators=[
            DataRequired(),
            Length(min=8, message="Password must be at least 8 characters long"),
            validate_password_strength,
        ]
    )
    fullName = StringField(
        validators=[
            DataRequired(),
            Length(
                min=2, max=100, message="Full name must be between 2 and 100 characters"
            ),
        ]
    )


class ChangePasswordValidator(FlaskForm):
    cur_password = PasswordField(validators=[DataRequired()])
    new_password = PasswordField(
        validators=[
            DataRequired(),
            Length(min=6, message="Password must be at least 6 characters"),
            EqualTo("confirm", message="New passwords must match!"),
        ],
    )
    confirm = PasswordField()
