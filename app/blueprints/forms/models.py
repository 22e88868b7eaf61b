from app import db
from app.blueprints.auth.models import User
from sqlalchemy.orm import backref
from sqlalchemy import CheckConstraint

from app.utils.utils import safe_isoformat, utcnow


SYNC_STATUSES = ("local", "synced", "verified")


class SupervisionForm(db.Model):
    """
    SQLAlchemy data model for SupervisionForm
    One supervision engagement at one health facility, owned by one user.
    A form holds up to four numbered visits and one staff training record.
    """

    __tablename__ = "supervision_forms"

    form_uid = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    user_uid = db.Column(
        db.Integer(),
        db.ForeignKey(User.user_uid, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    health_facility_name = db.Column(db.String(255), nullable=False)
    province = db.Column(db.String(100), nullable=False)
    district = db.Column(db.String(100), nullable=False)
    sync_status = db.Column(
        db.String(20),
        CheckConstraint(
            "sync_status IN ('local', 'synced', 'verified')",
            name="ck_supervision_forms_sync_status",
        ),
        nullable=False,
        server_default="local",
    )
    created_at = db.Column(db.DateTime(), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(), nullable=False, default=utcnow, onupdate=utcnow, index=True
    )

    user = db.relationship(
        User, backref=backref("supervision_forms", passive_deletes=True)
    )
    visits = db.relationship(
        "SupervisionVisit",
        back_populates="form",
        order_by="SupervisionVisit.visit_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __init__(
        self,
        user_uid,
        health_facility_name,
        province,
        district,
        sync_status="local",
    ):
        self.user_uid = user_uid
        self.health_facility_name = health_facility_name
        self.province = province
        self.district = district
        self.sync_status = sync_status

    def touch(self):
        """
        Bump updated_at so the form shows up in the next download
        """
        self.updated_at = utcnow()

    def to_dict(self):
        return {
            "form_uid": self.form_uid,
            "user_uid": self.user_uid,
            "health_facility_name": self.health_facility_name,
            "province": self.province,
            "district": self.district,
            "sync_status": self.sync_status,
            "created_at": safe_isoformat(self.created_at),
            "updated_at": safe_isoformat(self.updated_at),
        }


class SupervisionVisit(db.Model):
    """
    SQLAlchemy data model for SupervisionVisit
    One numbered (1-4) supervision occasion within a form
    """

    __tablename__ = "supervision_visits"

    __table_args__ = (
        db.UniqueConstraint(
            "form_uid",
            "visit_number",
            name="_supervision_visits_form_uid_visit_number_uc",
        ),
    )

    visit_uid = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    form_uid = db.Column(
        db.Integer(),
        db.ForeignKey(SupervisionForm.form_uid, ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    visit_number = db.Column(
        db.Integer(),
        CheckConstraint(
            "visit_number BETWEEN 1 AND 4",
            name="ck_supervision_visits_visit_number",
        ),
        nullable=False,
    )
    visit_date = db.Column(db.Date(), nullable=True)
    recommendations = db.Column(db.Text())
    actions_agreed = db.Column(db.Text())
    supervisor_signature = db.Column(db.Text())
    facility_representative_signature = db.Column(db.Text())
    sync_status = db.Column(
        db.String(20),
        CheckConstraint(
            "sync_status IN ('local', 'synced', 'verified')",
            name="ck_supervision_visits_sync_status",
        ),
        nullable=False,
        server_default="local",
    )
    created_at = db.Column(db.DateTime(), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(), nullable=False, default=utcnow, onupdate=utcnow, index=True
    )

    form = db.relationship(SupervisionForm, back_populates="visits")

    def __init__(
        self,
        visit_number,
        visit_date=None,
        recommendations=None,
        actions_agreed=None,
        supervisor_signature=None,
        facility_representative_signature=None,
        sync_status="local",
        form_uid=None,
    ):
        self.form_uid = form_uid
        self.visit_number = visit_number
        self.visit_date = visit_date
        self.recommendations = recommendations
        self.actions_agreed = actions_agreed
        self.supervisor_signature = supervisor_signature
        self.facility_representative_signature = facility_representative_signature
        self.sync_status = sync_status

    def to_dict(self):
        return {
            "visit_uid": self.visit_uid,
            "form_uid": self.form_uid,
            "visit_number": self.visit_number,
            "visit_date": safe_isoformat(self.visit_date),
            "recommendations": self.recommendations,
            "actions_agreed": self.actions_agreed,
            "supervisor_signature": self.supervisor_signature,
            "facility_representative_signature": self.facility_representative_signature,
            "sync_status": self.sync_status,
            "created_at": safe_isoformat(self.created_at),
            "updated_at": safe_isoformat(self.updated_at),
        }


class FormStaffTraining(db.Model):
    """
    SQLAlchemy data model for FormStaffTraining
    Form-level counts of staff trained per cadre
    """

    __tablename__ = "form_staff_training"

    staff_training_uid = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    form_uid = db.Column(
        db.Integer(),
        db.ForeignKey(SupervisionForm.form_uid, ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Health Assistant
    ha_total_staff = db.Column(db.Integer(), default=0)
    ha_mhdc_trained = db.Column(db.Integer(), default=0)
    ha_fen_trained = db.Column(db.Integer(), default=0)
    ha_other_ncd_trained = db.Column(db.Integer(), default=0)

    # Senior AHW
    sr_ahw_total_staff = db.Column(db.Integer(), default=0)
    sr_ahw_mhdc_trained = db.Column(db.Integer(), default=0)
    sr_ahw_fen_trained = db.Column(db.Integer(), default=0)
    sr_ahw_other_ncd_trained = db.Column(db.Integer(), default=0)

    # AHW
    ahw_total_staff = db.Column(db.Integer(), default=0)
    ahw_mhdc_trained = db.Column(db.Integer(), default=0)
    ahw_fen_trained = db.Column(db.Integer(), default=0)
    ahw_other_ncd_trained = db.Column(db.Integer(), default=0)

    # Senior ANM
    sr_anm_total_staff = db.Column(db.Integer(), default=0)
    sr_anm_mhdc_trained = db.Column(db.Integer(), default=0)
    sr_anm_fen_trained = db.Column(db.Integer(), default=0)
    sr_anm_other_ncd_trained = db.Column(db.Integer(), default=0)

    # ANM
    anm_total_staff = db.Column(db.Integer(), default=0)
    anm_mhdc_trained = db.Column(db.Integer(), default=0)
    anm_fen_trained = db.Column(db.Integer(), default=0)
    anm_other_ncd_trained = db.Column(db.Integer(), default=0)

    # Others
    others_total_staff = db.Column(db.Integer(), default=0)
    others_mhdc_trained = db.Column(db.Integer(), default=0)
    others_fen_trained = db.Column(db.Integer(), default=0)
    others_other_ncd_trained = db.Column(db.Integer(), default=0)

    last_mhdc_training_date = db.Column(db.Date())
    last_fen_training_date = db.Column(db.Date())
    last_other_training_date = db.Column(db.Date())
    training_provider = db.Column(db.String(200))
    training_certificates_verified = db.Column(db.Boolean())

    created_at = db.Column(db.DateTime(), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )

    form = db.relationship(
        SupervisionForm,
        backref=backref(
            "staff_training",
            uselist=False,
            cascade="all, delete-orphan",
            passive_deletes=True,
        ),
    )

    def __init__(self, form_uid, **fields):
        self.form_uid = form_uid
        for name, value in fields.items():
            setattr(self, name, value)
