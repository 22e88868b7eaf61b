from app import db
from passlib.hash import pbkdf2_sha256
from sqlalchemy import CheckConstraint, true

from app.utils.utils import utcnow


class User(db.Model):
    """
    SQLAlchemy data model for User
    Users are field supervisors (role=user) who own supervision forms,
    or admins who manage users and verify synced forms
    """

    __tablename__ = "users"

    user_uid = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(100), unique=True, nullable=False)
    password_secure = db.Column(db.String(), nullable=False)
    full_name = db.Column(db.String(100), nullable=False)
    role = db.Column(
        db.String(20),
        CheckConstraint("role IN ('admin', 'user')", name="ck_users_role"),
        nullable=False,
        server_default="user",
    )
    active = db.Column(db.Boolean(), nullable=False, server_default=true())
    created_at = db.Column(db.DateTime(), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __init__(
        self,
        username,
        email,
        full_name,
        password,
        role="user",
        active=True,
    ):
        self.username = username
        self.email = email
        self.full_name = full_name
        self.password_secure = pbkdf2_sha256.hash(password)
        self.role = role
        self.active = active

    def to_dict(self):
        return {
            "user_uid": self.user_uid,
            "username": self.username,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "active": self.active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def verify_password(self, password):
        return pbkdf2_sha256.verify(password, self.password_secure)

    def change_password(self, new_password):
        self.password_secure = pbkdf2_sha256.hash(new_password)
        db.session.add(self)
        db.session.commit()

    def is_admin(self):
        return self.role == "admin"

    ##############################################################################
    # NECESSARY CALLABLES FOR FLASK-LOGIN
    ##############################################################################

    @property
    def is_active(self):
        """
        Return True if the user is active
        """
        return self.active

    @property
    def is_authenticated(self):
        """
        Return True if the user is authenticated.
        """
        return True

    @property
    def is_anonymous(self):
        """
        False, as anonymous users aren't supported.
        """
        return False

    def get_id(self):
        """
        Return the uid to satisfy Flask-Login's requirements.
        """
        return str(self.user_uid)
