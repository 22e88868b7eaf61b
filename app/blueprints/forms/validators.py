from flask_wtf import FlaskForm
from wtforms import FieldList, FormField, IntegerField, StringField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    NumberRange,
    Optional,
    ValidationError,
)

from app.utils.utils import JSONField, parse_iso_date

from .models import SYNC_STATUSES


def validate_iso_date(form, field):
    if field.data in (None, ""):
        return
    try:
        parse_iso_date(field.data)
    except (TypeError, ValueError):
        raise ValidationError("Must be a valid ISO 8601 date")


class GetFormsQueryParamValidator(FlaskForm):
    class Meta:
        csrf = False

    page = IntegerField(validators=[Optional(), NumberRange(min=1)])
    limit = IntegerField(validators=[Optional(), NumberRange(min=1, max=500)])
    search = StringField()
    syncStatus = StringField(
        validators=[
            Optional(),
            AnyOf(SYNC_STATUSES, message="Value must be one of %(values)s"),
        ]
    )


class VisitValidator(FlaskForm):
    """
    One visit with its sections, as sent by the mobile client
    """

    visitNumber = IntegerField(
        validators=[
            DataRequired(message="Visit number is required"),
            NumberRange(min=1, max=4, message="Visit number must be between 1 and 4"),
        ]
    )
    visitDate = StringField(validators=[validate_iso_date])
    recommendations = StringField()
    actionsAgreed = StringField()
    supervisorSignature = StringField()
    facilityRepresentativeSignature = StringField()

    adminManagement = JSONField()
    logistics = JSONField()
    equipment = JSONField()
    mhdcManagement = JSONField()
    serviceStandards = JSONField()
    healthInformation = JSONField()
    integration = JSONField()


class UpdateVisitValidator(FlaskForm):
    visitDate = StringField(validators=[validate_iso_date])
    recommendations = StringField()
    actionsAgreed = StringField()
    supervisorSignature = StringField()
    facilityRepresentativeSignature = StringField()

    adminManagement = JSONField()
    logistics = JSONField()
    equipment = JSONField()
    mhdcManagement = JSONField()
    serviceStandards = JSONField()
    healthInformation = JSONField()
    integration = JSONField()


class CreateFormValidator(FlaskForm):
    healthFacilityName = StringField(
        validators=[DataRequired(message="Health facility name is required")]
    )
    province = StringField(validators=[DataRequired(message="Province is required")])
    district = StringField(validators=[DataRequired(message="District is required")])
    staffTraining = JSONField()
    visits = FieldList(FormField(VisitValidator), default=[])


class UpdateFormValidator(FlaskForm):
    healthFacilityName = StringField()
    province = StringField()
    district = StringField()
    staffTraining = JSONField()
