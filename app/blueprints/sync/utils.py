from contextlib import contextmanager

from flask import current_app
from sqlalchemy import case, distinct, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.blueprints.auth.models import User
from app.blueprints.forms.errors import (
    FormNotFoundError,
    InvalidSectionPayloadError,
    VisitConflictError,
)
from app.blueprints.forms.models import SupervisionForm, SupervisionVisit
from app.blueprints.forms.sections import SectionStore
from app.blueprints.forms.utils import FormHydrator
from app.utils.utils import parse_iso_date, safe_isoformat, utcnow

from .errors import InvalidSyncTransitionError, InvalidUploadFormError
from .models import SyncIdentity, SyncLog
from .queries import build_changed_forms_query
from .validators import SyncFormValidator


@contextmanager
def form_transaction(session):
    """
    Scope one form's writes to a single transaction.
    Commits on success, rolls back and re-raises on any error.
    """

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


class IdentityMapper:
    """
    Maps (user, device, tempId) to the server form created by the first
    successful upload of that tempId
    """

    def __init__(self, session):
        self.session = session

    def lookup(self, user_uid, device_id, temp_id):
        return (
            self.session.query(SyncIdentity)
            .filter(
                SyncIdentity.user_uid == user_uid,
                SyncIdentity.device_id == device_id,
                SyncIdentity.temp_id == temp_id,
            )
            .one_or_none()
        )

    def record(self, user_uid, device_id, temp_id, form_uid, visit_count):
        identity = SyncIdentity(
            user_uid=user_uid,
            device_id=device_id,
            temp_id=temp_id,
            form_uid=form_uid,
            visit_count=visit_count,
        )
        self.session.add(identity)
        return identity


class SyncLogger:
    """
    Appends entries to the sync log for one user/device.
    `log` joins the caller's transaction, `log_now` commits on its own.
    """

    def __init__(self, session, user_uid, device_id=None, client_info=None):
        self.session = session
        self.user_uid = user_uid
        self.device_id = device_id
        self.client_info = client_info or {}

    def log(self, sync_type, sync_status="completed", **kwargs):
        entry = SyncLog(
            user_uid=self.user_uid,
            sync_type=sync_type,
            sync_status=sync_status,
            device_id=kwargs.pop("device_id", self.device_id),
            ip_address=self.client_info.get("ip_address"),
            user_agent=self.client_info.get("user_agent"),
            app_version=self.client_info.get("app_version"),
            network_type=self.client_info.get("network_type"),
            **kwargs,
        )
        self.session.add(entry)
        return entry

    def log_now(self, sync_type, sync_status="completed", **kwargs):
        try:
            entry = self.log(sync_type, sync_status, **kwargs)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(
                "Could not write %s sync log for user %s: %s",
                sync_type,
                self.user_uid,
                e,
            )
            return None

        return entry


class SyncEngine:
    """
    Upload, download and verification of supervision forms for the offline
    mobile client.

    Each uploaded form is written in its own transaction; a failing form is
    rolled back and logged without affecting the other forms of the batch.
    """

    def __init__(self, session, user, device_id=None, client_info=None):
        self.session = session
        self.user = user
        self.device_id = device_id
        self.identities = IdentityMapper(session)
        self.sections = SectionStore(session)
        self.sync_logger = SyncLogger(session, user.user_uid, device_id, client_info)

    ##########################################################################
    # UPLOAD
    ##########################################################################

    def upload(self, form_payloads):
        current_app.logger.info(
            "Sync upload started for user %s, device %s, %s forms",
            self.user.user_uid,
            self.device_id,
            len(form_payloads),
        )

        upload_results = []
        errors = []
        total_visits = 0

        for form_payload in form_payloads:
            result = self.upload_form(form_payload)
            if result["status"] == "success":
                upload_results.append(result)
                total_visits += result["visitCount"]
            else:
                errors.append(result)

        current_app.logger.info(
            "Sync upload completed for user %s: %s/%s forms synced",
            self.user.user_uid,
            len(upload_results),
            len(form_payloads),
        )

        return {
            "message": f"Sync completed: {len(upload_results)} successful, {len(errors)} failed",
            "uploadResults": upload_results,
            "errors": errors,
            "totalForms": len(form_payloads),
            "successCount": len(upload_results),
            "errorCount": len(errors),
            "totalVisitsSynced": total_visits,
        }

    def upload_form(self, form_payload):
        """
        Create one form with its staff training, visits and sections,
        unless this tempId was already uploaded from the same device
        """

        temp_id = str(form_payload["tempId"]).strip()

        try:
            identity = self.identities.lookup(
                self.user.user_uid, self.device_id, temp_id
            )
            if identity is not None:
                return self._replayed_result(temp_id, identity)

            validated = self._validate_form(form_payload)
            with form_transaction(self.session):
                form, visit_count = self._create_form(temp_id, validated)
        except IntegrityError as e:
            # A concurrent request may have committed the same tempId first
            identity = self.identities.lookup(
                self.user.user_uid, self.device_id, temp_id
            )
            if identity is not None:
                return self._replayed_result(temp_id, identity)
            return self._failed_result(temp_id, "Database constraint violated", e)
        except InvalidUploadFormError as e:
            return self._failed_result(temp_id, e.message, e, e.field_errors)
        except InvalidSectionPayloadError as e:
            return self._failed_result(
                temp_id, e.message, e, {e.section: e.field_errors}
            )
        except VisitConflictError as e:
            return self._failed_result(temp_id, e.message, e)
        except SQLAlchemyError as e:
            return self._failed_result(temp_id, "Database error", e)

        current_app.logger.info(
            "Form %s synced as form_uid %s with %s visits",
            temp_id,
            form.form_uid,
            visit_count,
        )

        return {
            "tempId": temp_id,
            "serverId": form.form_uid,
            "visitCount": visit_count,
            "status": "success",
            "syncedAt": safe_isoformat(form.created_at),
            "replayed": False,
        }

    def _validate_form(self, form_payload):
        raw_visits = form_payload.get("visits")
        if raw_visits is not None and not isinstance(raw_visits, list):
            raise InvalidUploadFormError({"visits": ["Visits must be a list"]})

        validator = SyncFormValidator.from_json(form_payload)
        field_errors = {} if validator.validate() else dict(validator.errors)

        staff_training_errors = self.sections.validate(
            "staffTraining", validator.staffTraining.data
        )
        if staff_training_errors:
            field_errors["staffTraining"] = staff_training_errors

        for index, visit_payload in enumerate(raw_visits or []):
            if not isinstance(visit_payload, dict):
                continue
            section_errors = self.sections.validate_visit(visit_payload)
            if section_errors:
                field_errors.setdefault("visitSections", {})[index] = section_errors

        if field_errors:
            raise InvalidUploadFormError(field_errors)

        return validator

    def _create_form(self, temp_id, validated):
        form = SupervisionForm(
            user_uid=self.user.user_uid,
            health_facility_name=validated.healthFacilityName.data,
            province=validated.province.data,
            district=validated.district.data,
            sync_status="synced",
        )
        self.session.add(form)
        self.session.flush()

        self.sections.write(
            "staffTraining", form.form_uid, validated.staffTraining.data
        )

        seen_visit_numbers = set()
        for visit_form in validated.visits:
            visit_number = visit_form.visitNumber.data
            if visit_number in seen_visit_numbers:
                raise VisitConflictError(temp_id, visit_number)
            seen_visit_numbers.add(visit_number)

            visit = SupervisionVisit(
                form_uid=form.form_uid,
                visit_number=visit_number,
                visit_date=(
                    parse_iso_date(visit_form.visitDate.data)
                    if visit_form.visitDate.data
                    else None
                ),
                recommendations=visit_form.recommendations.data,
                actions_agreed=visit_form.actionsAgreed.data,
                supervisor_signature=visit_form.supervisorSignature.data,
                facility_representative_signature=visit_form.facilityRepresentativeSignature.data,
                sync_status="synced",
            )
            self.session.add(visit)
            self.session.flush()

            self.sections.write_all(visit.visit_uid, visit_form.data)

        visit_count = len(seen_visit_numbers)
        self.identities.record(
            self.user.user_uid, self.device_id, temp_id, form.form_uid, visit_count
        )
        self.sync_logger.log(
            "upload",
            form_uid=form.form_uid,
            temp_id=temp_id,
            forms_count=1,
            visits_count=visit_count,
        )

        return form, visit_count

    def _replayed_result(self, temp_id, identity):
        current_app.logger.info(
            "Form %s already synced as form_uid %s, replaying result",
            temp_id,
            identity.form_uid,
        )
        self.sync_logger.log_now(
            "upload",
            form_uid=identity.form_uid,
            temp_id=temp_id,
            forms_count=1,
            visits_count=identity.visit_count,
            error_message="Replayed",
        )
        return {
            "tempId": temp_id,
            "serverId": identity.form_uid,
            "visitCount": identity.visit_count,
            "status": "success",
            "syncedAt": safe_isoformat(identity.created_at),
            "replayed": True,
        }

    def _failed_result(self, temp_id, message, error, details=None):
        current_app.logger.warning("Error syncing form %s: %s", temp_id, error)

        self.sync_logger.log_now(
            "upload",
            sync_status="failed",
            temp_id=temp_id,
            forms_count=1,
            error_message=f"{message}: {details if details is not None else error}",
        )

        result = {"tempId": temp_id, "status": "error", "error": message}
        if details is not None:
            result["details"] = details
        return result

    ##########################################################################
    # DOWNLOAD
    ##########################################################################

    def download(self, last_sync=None, page_size=100):
        """
        Return the user's forms changed after last_sync, fully hydrated.

        The page is cut in ascending change time order so that every form
        changed at or before the returned nextSync has been delivered. Forms
        sharing the change time of the last row are all included, so a page
        never splits a timestamp.
        """

        sync_time = utcnow()
        query, change_time = build_changed_forms_query(self.user.user_uid, last_sync)

        rows = (
            query.order_by(change_time.asc(), SupervisionForm.form_uid.asc())
            .limit(page_size)
            .all()
        )
        has_more = len(rows) >= page_size

        if has_more:
            boundary = rows[-1].change_time
            seen = [row.SupervisionForm.form_uid for row in rows]
            rows += (
                query.filter(
                    change_time == boundary,
                    SupervisionForm.form_uid.notin_(seen),
                )
                .order_by(SupervisionForm.form_uid.asc())
                .all()
            )

        next_sync = rows[-1].change_time if rows else last_sync

        # Newest changes first
        rows.sort(
            key=lambda row: (row.change_time, row.SupervisionForm.form_uid),
            reverse=True,
        )

        hydrated_forms = FormHydrator(self.session).hydrate(
            [row.SupervisionForm for row in rows]
        )
        for form_data, row in zip(hydrated_forms, rows):
            form_data["changed_at"] = safe_isoformat(row.change_time)

        self.sync_logger.log_now(
            "download",
            forms_count=len(hydrated_forms),
        )

        current_app.logger.info(
            "Sync download for user %s, device %s: %s forms since %s",
            self.user.user_uid,
            self.device_id,
            len(hydrated_forms),
            last_sync,
        )

        return {
            "message": f"Downloaded {len(hydrated_forms)} forms",
            "forms": hydrated_forms,
            "syncTime": safe_isoformat(sync_time),
            "nextSync": safe_isoformat(next_sync),
            "hasMore": has_more,
        }

    ##########################################################################
    # VERIFY
    ##########################################################################

    def verify(self, form_uid, notes=None):
        """
        Mark a synced form and all of its visits verified in one transaction.
        Verifying an already verified form succeeds and is logged again.
        """

        form = self.session.get(SupervisionForm, form_uid)
        if form is None:
            self.sync_logger.log_now(
                "verify",
                sync_status="failed",
                form_uid=form_uid,
                error_message="Supervision form not found",
            )
            raise FormNotFoundError(form_uid)

        if form.sync_status == "local":
            error = InvalidSyncTransitionError(form_uid, form.sync_status, "verified")
            self.sync_logger.log_now(
                "verify",
                sync_status="failed",
                form_uid=form_uid,
                error_message=error.message,
            )
            raise error

        with form_transaction(self.session):
            form.sync_status = "verified"
            for visit in form.visits:
                visit.sync_status = "verified"
            self.sync_logger.log(
                "verify",
                form_uid=form_uid,
                visits_count=len(form.visits),
                error_message=notes or "Form verified by admin",
            )

        current_app.logger.info(
            "Form %s verified by user %s", form_uid, self.user.user_uid
        )

        return form


def get_sync_status(
    session, page=1, limit=50, user_uid=None, sync_type=None, sync_status=None
):
    """
    Paginated sync log, newest first, with statistics over the same filters
    """

    filters = []
    if user_uid is not None:
        filters.append(SyncLog.user_uid == user_uid)
    if sync_type is not None:
        filters.append(SyncLog.sync_type == sync_type)
    if sync_status is not None:
        filters.append(SyncLog.sync_status == sync_status)

    logs = (
        session.query(
            SyncLog,
            User.username,
            User.full_name,
            SupervisionForm.health_facility_name,
        )
        .join(User, User.user_uid == SyncLog.user_uid)
        .outerjoin(SupervisionForm, SupervisionForm.form_uid == SyncLog.form_uid)
        .filter(*filters)
        .order_by(SyncLog.sync_timestamp.desc(), SyncLog.sync_log_uid.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )

    stats = (
        session.query(
            func.count(SyncLog.sync_log_uid).label("total_syncs"),
            func.count(case((SyncLog.sync_status == "completed", 1))).label(
                "successful_syncs"
            ),
            func.count(case((SyncLog.sync_status == "failed", 1))).label(
                "failed_syncs"
            ),
            func.count(case((SyncLog.sync_type == "upload", 1))).label("uploads"),
            func.count(case((SyncLog.sync_type == "download", 1))).label("downloads"),
            func.count(case((SyncLog.sync_type == "verify", 1))).label("verifies"),
            func.count(distinct(SyncLog.user_uid)).label("active_users"),
            func.count(distinct(SyncLog.device_id)).label("active_devices"),
        )
        .filter(*filters)
        .one()
    )

    return {
        "syncLogs": [
            {
                **log.to_dict(),
                "username": username,
                "full_name": full_name,
                "health_facility_name": health_facility_name,
            }
            for log, username, full_name, health_facility_name in logs
        ],
        "statistics": dict(stats._mapping),
        "pagination": {
            "currentPage": page,
            "limit": limit,
            "total": stats.total_syncs,
        },
    }
