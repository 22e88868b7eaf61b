class InvalidSectionPayloadError(Exception):
    def __init__(self, section, field_errors):
        self.section = section
        self.field_errors = field_errors
        self.message = f"Invalid {section} payload"

    def __str__(self):
        return f"{self.message}: {self.field_errors}"


class FormNotFoundError(Exception):
    def __init__(self, form_uid):
        self.form_uid = form_uid
        self.message = f"Form {form_uid} not found"


class VisitConflictError(Exception):
    def __init__(self, form_uid, visit_number):
        self.form_uid = form_uid
        self.visit_number = visit_number
        self.message = f"Visit {visit_number} already exists for form {form_uid}"
