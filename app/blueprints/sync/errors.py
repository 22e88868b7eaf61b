class InvalidUploadFormError(Exception):
    def __init__(self, field_errors):
        self.field_errors = field_errors
        self.message = "Invalid form data"


class InvalidSyncTransitionError(Exception):
    def __init__(self, form_uid, current_status, target_status):
        self.form_uid = form_uid
        self.current_status = current_status
        self.target_status = target_status
        self.message = (
            f"Form {form_uid} cannot move from '{current_status}' to '{target_status}'"
        )
