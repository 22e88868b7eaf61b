from flask_wtf import FlaskForm
from wtforms import FieldList, FormField, IntegerField, StringField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    NumberRange,
    Optional,
    ValidationError,
)

from app.blueprints.forms.validators import VisitValidator
from app.utils.utils import JSONField, parse_iso_datetime


class UploadSyncValidator(FlaskForm):
    """
    Batch level shape of an upload. Anything wrong here rejects the whole
    request, problems inside a single form are reported per form instead.
    """

    deviceId = StringField(validators=[DataRequired(message="Device ID is required")])
    forms = FieldList(JSONField())
    appVersion = StringField()
    networkType = StringField()

    def validate_forms(self, field):
        if not field.data:
            raise ValidationError("At least one form is required")

        for index, form in enumerate(field.data):
            if not isinstance(form, dict):
                raise ValidationError(f"Form at index {index} must be a JSON object")

            temp_id = form.get("tempId")
            if temp_id is None or str(temp_id).strip() == "":
                raise ValidationError(f"Form at index {index} must have a tempId")


class SyncFormValidator(FlaskForm):
    """
    Content of one uploaded form, checked before its transaction opens
    """

    tempId = StringField(validators=[DataRequired()])
    healthFacilityName = StringField(
        validators=[DataRequired(message="Health facility name is required")]
    )
    province = StringField(validators=[DataRequired(message="Province is required")])
    district = StringField(validators=[DataRequired(message="District is required")])
    staffTraining = JSONField()
    visits = FieldList(FormField(VisitValidator), default=[])


class DownloadSyncQueryParamValidator(FlaskForm):
    class Meta:
        csrf = False

    deviceId = StringField(validators=[DataRequired(message="Device ID is required")])
    lastSync = StringField()
    appVersion = StringField()
    networkType = StringField()

    def validate_lastSync(self, field):
        if field.data in (None, ""):
            return
        try:
            parse_iso_datetime(field.data)
        except ValueError:
            raise ValidationError("lastSync must be an ISO 8601 timestamp")


class SyncStatusQueryParamValidator(FlaskForm):
    class Meta:
        csrf = False

    page = IntegerField(validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField(validators=[Optional(), NumberRange(min=1, max=500)])
    userId = IntegerField(validators=[Optional()])
    syncType = StringField(
        validators=[
            Optional(),
            AnyOf(
                ["upload", "download", "verify"],
                message="Value must be one of %(values)s",
            ),
        ]
    )
    syncStatus = StringField(
        validators=[
            Optional(),
            AnyOf(
                ["completed", "failed"],
                message="Value must be one of %(values)s",
            ),
        ]
    )


class VerifyFormValidator(FlaskForm):
    notes = StringField()
    deviceId = StringField()
