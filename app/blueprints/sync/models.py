from app import db
from app.blueprints.auth.models import User
from app.blueprints.forms.models import SupervisionForm
from sqlalchemy import CheckConstraint

from app.utils.utils import safe_isoformat, utcnow


class SyncLog(db.Model):
    """
    SQLAlchemy data model for SyncLog
    Append-only audit ledger with one row per sync attempt (upload per form,
    download per request, verify per form), successful or not.
    Rows are never updated or deleted by the application.
    """

    __tablename__ = "sync_logs"

    __table_args__ = (
        db.Index(
            "ix_sync_logs_user_uid_device_id_temp_id",
            "user_uid",
            "device_id",
            "temp_id",
        ),
    )

    sync_log_uid = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    user_uid = db.Column(
        db.Integer(),
        db.ForeignKey(User.user_uid, ondelete="CASCADE"),
        nullable=False,
    )
    # Plain integers rather than foreign keys, the log outlives deleted forms
    form_uid = db.Column(db.Integer(), nullable=True, index=True)
    visit_uid = db.Column(db.Integer(), nullable=True)
    device_id = db.Column(db.String(255), nullable=True)
    temp_id = db.Column(db.String(255), nullable=True)
    sync_type = db.Column(
        db.String(20),
        CheckConstraint(
            "sync_type IN ('upload', 'download', 'verify')",
            name="ck_sync_logs_sync_type",
        ),
        nullable=False,
    )
    sync_status = db.Column(
        db.String(20),
        CheckConstraint(
            "sync_status IN ('completed', 'failed')",
            name="ck_sync_logs_sync_status",
        ),
        nullable=False,
        server_default="completed",
    )
    error_message = db.Column(db.Text())
    forms_count = db.Column(db.Integer())
    visits_count = db.Column(db.Integer())
    network_type = db.Column(db.String(50))
    app_version = db.Column(db.String(50))
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.Text())
    sync_timestamp = db.Column(
        db.DateTime(), nullable=False, default=utcnow, index=True
    )

    user = db.relationship(User)

    def __init__(
        self,
        user_uid,
        sync_type,
        sync_status="completed",
        form_uid=None,
        visit_uid=None,
        device_id=None,
        temp_id=None,
        error_message=None,
        forms_count=None,
        visits_count=None,
        network_type=None,
        app_version=None,
        ip_address=None,
        user_agent=None,
    ):
        self.user_uid = user_uid
        self.sync_type = sync_type
        self.sync_status = sync_status
        self.form_uid = form_uid
        self.visit_uid = visit_uid
        self.device_id = device_id
        self.temp_id = temp_id
        self.error_message = error_message
        self.forms_count = forms_count
        self.visits_count = visits_count
        self.network_type = network_type
        self.app_version = app_version
        self.ip_address = ip_address
        self.user_agent = user_agent

    def to_dict(self):
        return {
            "sync_log_uid": self.sync_log_uid,
            "user_uid": self.user_uid,
            "form_uid": self.form_uid,
            "visit_uid": self.visit_uid,
            "device_id": self.device_id,
            "temp_id": self.temp_id,
            "sync_type": self.sync_type,
            "sync_status": self.sync_status,
            "error_message": self.error_message,
            "forms_count": self.forms_count,
            "visits_count": self.visits_count,
            "network_type": self.network_type,
            "app_version": self.app_version,
            "ip_address": self.ip_address,
            "sync_timestamp": safe_isoformat(self.sync_timestamp),
        }


class SyncIdentity(db.Model):
    """
    SQLAlchemy data model for SyncIdentity
    Maps a client generated tempId to the server form it created. Written in
    the same transaction as the form, so a row exists iff the upload committed.
    """

    __tablename__ = "sync_identities"

    __table_args__ = (
        db.UniqueConstraint(
            "user_uid",
            "device_id",
            "temp_id",
            name="_sync_identities_user_uid_device_id_temp_id_uc",
        ),
    )

    sync_identity_uid = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    user_uid = db.Column(
        db.Integer(),
        db.ForeignKey(User.user_uid, ondelete="CASCADE"),
        nullable=False,
    )
    device_id = db.Column(db.String(255), nullable=False)
    temp_id = db.Column(db.String(255), nullable=False)
    form_uid = db.Column(
        db.Integer(),
        db.ForeignKey(SupervisionForm.form_uid, ondelete="CASCADE"),
        nullable=False,
    )
    visit_count = db.Column(db.Integer(), nullable=False, default=0)
    created_at = db.Column(db.DateTime(), nullable=False, default=utcnow)

    def __init__(self, user_uid, device_id, temp_id, form_uid, visit_count=0):
        self.user_uid = user_uid
        self.device_id = device_id
        self.temp_id = temp_id
        self.form_uid = form_uid
        self.visit_count = visit_count
