"""
Uniform writer/reader for the per-visit survey sections.

Every section is an explicitly declared model in section_models.py. A
SectionSchema derives the accepted field set and each field's value kind from
the model's columns, so the same coercion, insert, update and read path serves
all seven sections (and the form-level staff training record).
"""

from datetime import date

from sqlalchemy import Boolean, Date, Integer, String

from app.utils.utils import parse_iso_date
from .errors import InvalidSectionPayloadError
from .models import FormStaffTraining
from .section_models import (
    AdminManagementResponse,
    EquipmentResponse,
    HealthInformationResponse,
    IntegrationResponse,
    LogisticsResponse,
    MhdcManagementResponse,
    ServiceStandardsResponse,
    YesNo,
)

MANAGED_COLUMNS = {"created_at", "updated_at"}


def _coerce_yes_no(value):
    if value is None or value == "":
        return None
    if isinstance(value, str) and value.strip().upper() in ("Y", "N"):
        return value.strip().upper()
    raise ValueError("Must be 'Y', 'N' or empty")


def _coerce_boolean(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "y", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "n", "no"):
        return False
    raise ValueError("Must be a boolean")


def _coerce_count(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("Must be a whole number")
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    if isinstance(value, int):
        if value < 0:
            raise ValueError("Must not be negative")
        return value
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    raise ValueError("Must be a whole number")


def _coerce_date(value):
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValueError("Must be a date in YYYY-MM-DD format")


def _text_coercer(max_length):
    def coerce(value):
        if value is None or value == "":
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError("Must be text")
        value = str(value)
        if max_length is not None and len(value) > max_length:
            raise ValueError(f"Must be at most {max_length} characters")
        return value

    return coerce


def _coercer_for(column_type):
    # YesNo is a String underneath, check it first
    if isinstance(column_type, YesNo):
        return _coerce_yes_no
    if isinstance(column_type, Boolean):
        return _coerce_boolean
    if isinstance(column_type, Integer):
        return _coerce_count
    if isinstance(column_type, Date):
        return _coerce_date
    if isinstance(column_type, String):
        return _text_coercer(column_type.length)
    raise TypeError(f"No payload coercion for column type {column_type!r}")


class SectionSchema:
    """
    Field schema for one section kind

    :param key: name of the section in client payloads, e.g. "adminManagement"
    :param model: declared model holding one row per owner
    :param owner_column: column that points at the owning visit (or form)
    """

    def __init__(self, key, model, owner_column="visit_uid"):
        self.key = key
        self.model = model
        self.owner_column = owner_column
        self.coercers = {
            column.key: _coercer_for(column.type)
            for column in model.__table__.columns
            if not column.primary_key
            and column.key != owner_column
            and column.key not in MANAGED_COLUMNS
        }

    @property
    def field_names(self):
        return list(self.coercers)

    def coerce(self, payload):
        """
        Validate a client payload against the declared fields and return the
        values to store. Unknown keys and ill-typed values are rejected.
        """

        if not isinstance(payload, dict):
            raise InvalidSectionPayloadError(
                self.key, {"_payload": "Section payload must be a JSON object"}
            )

        values = {}
        field_errors = {}
        for name, raw_value in payload.items():
            coerce = self.coercers.get(name)
            if coerce is None:
                field_errors[name] = "Unknown field"
                continue
            try:
                values[name] = coerce(raw_value)
            except ValueError as e:
                field_errors[name] = str(e)

        if field_errors:
            raise InvalidSectionPayloadError(self.key, field_errors)

        return values

    def serialize(self, row):
        data = {}
        for name in self.coercers:
            value = getattr(row, name)
            data[name] = value.isoformat() if isinstance(value, date) else value
        return data


VISIT_SECTIONS = [
    SectionSchema("adminManagement", AdminManagementResponse),
    SectionSchema("logistics", LogisticsResponse),
    SectionSchema("equipment", EquipmentResponse),
    SectionSchema("mhdcManagement", MhdcManagementResponse),
    SectionSchema("serviceStandards", ServiceStandardsResponse),
    SectionSchema("healthInformation", HealthInformationResponse),
    SectionSchema("integration", IntegrationResponse),
]

STAFF_TRAINING = SectionSchema(
    "staffTraining", FormStaffTraining, owner_column="form_uid"
)


def is_empty_payload(payload):
    return payload is None or payload == {}


def is_blank(values):
    return all(value is None for value in values.values())


class SectionStore:
    """
    Insert, update and read section rows within the caller's session.
    Nothing is committed here, the caller owns the transaction.
    """

    def __init__(self, session, schemas=None):
        self.session = session
        self.schemas = {
            schema.key: schema
            for schema in (schemas or VISIT_SECTIONS + [STAFF_TRAINING])
        }

    def schema(self, key):
        return self.schemas[key]

    def _find(self, schema, owner_uid):
        return (
            self.session.query(schema.model)
            .filter(getattr(schema.model, schema.owner_column) == owner_uid)
            .one_or_none()
        )

    def validate(self, key, payload):
        """
        Return the field errors a write of this payload would raise, or {}
        """
        if is_empty_payload(payload):
            return {}
        try:
            self.schemas[key].coerce(payload)
        except InvalidSectionPayloadError as e:
            return e.field_errors
        return {}

    def write(self, key, owner_uid, payload):
        """
        Insert a new section row. An absent or empty payload, or one whose
        values are all blank, writes nothing.
        """

        if is_empty_payload(payload):
            return None

        schema = self.schemas[key]
        values = schema.coerce(payload)
        if is_blank(values):
            return None

        row = schema.model(owner_uid, **values)
        self.session.add(row)

        return row

    def upsert(self, key, owner_uid, payload):
        """
        Update the fields present in the payload, inserting the row if the
        section has not been recorded yet
        """

        if is_empty_payload(payload):
            return None

        schema = self.schemas[key]
        values = schema.coerce(payload)
        row = self._find(schema, owner_uid)
        if row is None:
            if is_blank(values):
                return None
            row = schema.model(owner_uid, **values)
            self.session.add(row)
        else:
            for name, value in values.items():
                setattr(row, name, value)

        return row

    def read(self, key, owner_uid):
        """
        Return the stored section as a dict, or None if it was never written
        """

        schema = self.schemas[key]
        row = self._find(schema, owner_uid)
        if row is None:
            return None

        return schema.serialize(row)

    def write_all(self, visit_uid, visit_payload):
        """
        Insert every visit section present in a visit payload.
        Returns the keys of the sections written.
        """

        written = []
        for schema in VISIT_SECTIONS:
            if self.write(schema.key, visit_uid, visit_payload.get(schema.key)):
                written.append(schema.key)
        return written

    def upsert_all(self, visit_uid, visit_payload):
        updated = []
        for schema in VISIT_SECTIONS:
            if self.upsert(schema.key, visit_uid, visit_payload.get(schema.key)):
                updated.append(schema.key)
        return updated

    def read_all(self, visit_uid):
        return {
            schema.key: self.read(schema.key, visit_uid) for schema in VISIT_SECTIONS
        }

    def read_all_for_visits(self, visit_uids):
        """
        Read every section of many visits with one query per section table.
        Returns {visit_uid: {section_key: dict or None}}
        """

        result = {
            visit_uid: {schema.key: None for schema in VISIT_SECTIONS}
            for visit_uid in visit_uids
        }
        if not visit_uids:
            return result

        for schema in VISIT_SECTIONS:
            rows = (
                self.session.query(schema.model)
                .filter(schema.model.visit_uid.in_(visit_uids))
                .all()
            )
            for row in rows:
                result[row.visit_uid][schema.key] = schema.serialize(row)

        return result

    def validate_visit(self, visit_payload):
        """
        Field errors for every section of a visit payload, keyed by section
        """

        errors = {}
        for schema in VISIT_SECTIONS:
            section_errors = self.validate(schema.key, visit_payload.get(schema.key))
            if section_errors:
                errors[schema.key] = section_errors
        return errors
