from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, PasswordField, StringField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    Length,
    NumberRange,
    Optional,
    Regexp,
)

from app.blueprints.auth.validators import (
    RegisterValidator,
    validate_password_strength,
)


class GetUsersQueryParamValidator(FlaskForm):
    class Meta:
        csrf = False

    page = IntegerField(validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField(validators=[Optional(), NumberRange(min=1, max=500)])
    search = StringField()
    role = StringField(
        validators=[
            Optional(),
            AnyOf(["admin", "user"], message="Value must be one of %(values)s"),
        ]
    )
    isActive = StringField(
        validators=[
            Optional(),
            AnyOf(["true", "false"], message="Value must be one of %(values)s"),
        ]
    )


class AddUserValidator(RegisterValidator):
    role = StringField(
        default="user",
        validators=[
            Optional(),
            AnyOf(["admin", "user"], message="Role must be either admin or user"),
        ],
    )


class UpdateUserValidator(FlaskForm):
    """
    Every field is optional, only the ones sent are changed
    """

    username = StringField(
        validators=[
            Optional(),
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
        validators=[Optional(), Email(message="Please provide a valid email address")]
    )
    fullName = StringField(
        validators=[
            Optional(),
            Length(
                min=2, max=100, message="Full name must be between 2 and 100 characters"
            ),
        ]
    )
    role = StringField(
        validators=[
            Optional(),
            AnyOf(["admin", "user"], message="Role must be either admin or user"),
        ]
    )
    isActive = BooleanField(validators=[Optional()])


class ResetPasswordValidator(FlaskForm):
    newPassword = PasswordField(
        validators=[
            DataRequired(message="New password is required"),
            Length(min=8, message="New password must be at least 8 characters long"),
            validate_password_strength,
        ]
    )
