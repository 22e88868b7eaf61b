from math import ceil

from flask import current_app, jsonify
from flask_login import current_user
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from app import db
from app.blueprints.auth.models import User
from app.utils.utils import (
    logged_in_active_user_required,
    parse_iso_date,
    safe_isoformat,
    utcnow,
    validate_payload,
    validate_query_params,
)

from . import forms_bp
from .errors import InvalidSectionPayloadError
from .models import SupervisionForm, SupervisionVisit
from .queries import (
    build_facility_history_query,
    build_facility_summary_query,
    build_latest_facility_status_query,
)
from .sections import SectionStore
from .utils import FormHydrator, calculate_facility_trends
from .validators import (
    CreateFormValidator,
    GetFormsQueryParamValidator,
    UpdateFormValidator,
    UpdateVisitValidator,
    VisitValidator,
)

VISIT_FIELDS = {
    "recommendations": "recommendations",
    "actionsAgreed": "actions_agreed",
    "supervisorSignature": "supervisor_signature",
    "facilityRepresentativeSignature": "facility_representative_signature",
}


def get_form_for_current_user(form_uid):
    """
    Admins can reach any form, other users only their own
    """

    query = db.session.query(SupervisionForm).filter(
        SupervisionForm.form_uid == form_uid
    )
    if not current_user.is_admin():
        query = query.filter(SupervisionForm.user_uid == current_user.user_uid)

    return query.first()


def is_locked(form):
    return form.sync_status == "verified" and not current_user.is_admin()


def form_not_found():
    return jsonify({"success": False, "message": "Supervision form not found"}), 404


def form_locked():
    return (
        jsonify(
            {
                "success": False,
                "message": "Verified forms can only be modified by an admin",
            }
        ),
        403,
    )


def invalid_section(e):
    return (
        jsonify(
            {
                "success": False,
                "message": e.message,
                "errors": {e.section: e.field_errors},
            }
        ),
        422,
    )


def build_visit(visit_payload, form_uid):
    return SupervisionVisit(
        form_uid=form_uid,
        visit_number=visit_payload.visitNumber.data,
        visit_date=(
            parse_iso_date(visit_payload.visitDate.data)
            if visit_payload.visitDate.data
            else None
        ),
        recommendations=visit_payload.recommendations.data,
        actions_agreed=visit_payload.actionsAgreed.data,
        supervisor_signature=visit_payload.supervisorSignature.data,
        facility_representative_signature=visit_payload.facilityRepresentativeSignature.data,
    )


@forms_bp.route("", methods=["GET"])
@logged_in_active_user_required
@validate_query_params(GetFormsQueryParamValidator)
def get_forms(validated_query_params):
    """
    Return a page of supervision forms, newest first
    Admins see every form, other users only their own
    Optional filters: ?search=<str>&syncStatus=<str>
    """

    page = validated_query_params.page.data or 1
    limit = validated_query_params.limit.data or 10
    search = validated_query_params.search.data
    sync_status = validated_query_params.syncStatus.data

    filters = []
    if not current_user.is_admin():
        filters.append(SupervisionForm.user_uid == current_user.user_uid)
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                SupervisionForm.health_facility_name.ilike(pattern),
                SupervisionForm.province.ilike(pattern),
                SupervisionForm.district.ilike(pattern),
            )
        )
    if sync_status:
        filters.append(SupervisionForm.sync_status == sync_status)

    total = db.session.query(SupervisionForm).filter(*filters).count()

    result = (
        db.session.query(SupervisionForm, User.username, User.full_name)
        .join(User, User.user_uid == SupervisionForm.user_uid)
        .filter(*filters)
        .order_by(SupervisionForm.created_at.desc(), SupervisionForm.form_uid.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )

    total_pages = ceil(total / limit)

    response = {
        "success": True,
        "data": [
            {
                **form.to_dict(),
                "username": username,
                "full_name": full_name,
                "visit_count": len(form.visits),
            }
            for form, username, full_name in result
        ],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalForms": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }

    return jsonify(response), 200


@forms_bp.route("/<int:form_uid>", methods=["GET"])
@logged_in_active_user_required
def get_form(form_uid):
    """
    Return a form with its staff training and every visit with all sections
    """

    form = get_form_for_current_user(form_uid)
    if form is None:
        return form_not_found()

    response = {"success": True, "data": FormHydrator(db.session).hydrate_one(form)}

    return jsonify(response), 200


@forms_bp.route("", methods=["POST"])
@logged_in_active_user_required
@validate_payload(CreateFormValidator)
def create_form(validated_payload):
    """
    Create a supervision form directly on the server
    The form starts out as 'local' until it goes through the sync flow
    """

    store = SectionStore(db.session)

    visit_numbers = [visit.visitNumber.data for visit in validated_payload.visits]
    if len(visit_numbers) != len(set(visit_numbers)):
        return (
            jsonify({"success": False, "message": "Visit numbers must be unique"}),
            422,
        )

    form = SupervisionForm(
        user_uid=current_user.user_uid,
        health_facility_name=validated_payload.healthFacilityName.data,
        province=validated_payload.province.data,
        district=validated_payload.district.data,
    )

    try:
        db.session.add(form)
        db.session.flush()

        store.write(
            "staffTraining", form.form_uid, validated_payload.staffTraining.data
        )

        for visit_payload in validated_payload.visits:
            visit = build_visit(visit_payload, form.form_uid)
            db.session.add(visit)
            db.session.flush()
            store.write_all(visit.visit_uid, visit_payload.data)

        db.session.commit()
    except InvalidSectionPayloadError as e:
        db.session.rollback()
        return invalid_section(e)
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning("Could not create supervision form: %s", e)
        return (
            jsonify({"success": False, "message": "Could not create the form"}),
            400,
        )

    current_app.logger.info(
        "Supervision form %s created by user %s", form.form_uid, current_user.user_uid
    )

    return (
        jsonify(
            {
                "success": True,
                "message": "Supervision form created successfully",
                "data": FormHydrator(db.session).hydrate_one(form),
            }
        ),
        201,
    )


@forms_bp.route("/<int:form_uid>", methods=["PUT"])
@logged_in_active_user_required
@validate_payload(UpdateFormValidator)
def update_form(form_uid, validated_payload):
    """
    Update the facility details and staff training of a form
    Only the fields sent are changed
    """

    form = get_form_for_current_user(form_uid)
    if form is None:
        return form_not_found()
    if is_locked(form):
        return form_locked()

    if validated_payload.healthFacilityName.data:
        form.health_facility_name = validated_payload.healthFacilityName.data
    if validated_payload.province.data:
        form.province = validated_payload.province.data
    if validated_payload.district.data:
        form.district = validated_payload.district.data

    try:
        SectionStore(db.session).upsert(
            "staffTraining", form.form_uid, validated_payload.staffTraining.data
        )
        form.touch()
        db.session.commit()
    except InvalidSectionPayloadError as e:
        db.session.rollback()
        return invalid_section(e)

    return (
        jsonify(
            {
                "success": True,
                "message": "Supervision form updated successfully",
                "data": FormHydrator(db.session).hydrate_one(form),
            }
        ),
        200,
    )


@forms_bp.route("/<int:form_uid>", methods=["DELETE"])
@logged_in_active_user_required
def delete_form(form_uid):
    """
    Delete a form together with its visits, sections and staff training
    """

    form = get_form_for_current_user(form_uid)
    if form is None:
        return form_not_found()
    if is_locked(form):
        return form_locked()

    db.session.delete(form)
    db.session.commit()

    current_app.logger.info(
        "Supervision form %s deleted by user %s", form_uid, current_user.user_uid
    )

    return (
        jsonify({"success": True, "message": "Supervision form deleted successfully"}),
        200,
    )


@forms_bp.route("/<int:form_uid>/visits", methods=["POST"])
@logged_in_active_user_required
@validate_payload(VisitValidator)
def add_visit(form_uid, validated_payload):
    """
    Add a numbered visit with its sections to a form
    """

    form = get_form_for_current_user(form_uid)
    if form is None:
        return form_not_found()
    if is_locked(form):
        return form_locked()

    visit_number = validated_payload.visitNumber.data
    if any(visit.visit_number == visit_number for visit in form.visits):
        return (
            jsonify(
                {
                    "success": False,
                    "message": f"Visit {visit_number} already exists for this form",
                }
            ),
            409,
        )

    store = SectionStore(db.session)
    visit = build_visit(validated_payload, form.form_uid)

    try:
        db.session.add(visit)
        db.session.flush()
        store.write_all(visit.visit_uid, validated_payload.data)
        form.touch()
        db.session.commit()
    except InvalidSectionPayloadError as e:
        db.session.rollback()
        return invalid_section(e)
    except IntegrityError:
        db.session.rollback()
        return (
            jsonify(
                {
                    "success": False,
                    "message": f"Visit {visit_number} already exists for this form",
                }
            ),
            409,
        )

    return (
        jsonify(
            {
                "success": True,
                "data": {**visit.to_dict(), **store.read_all(visit.visit_uid)},
            }
        ),
        201,
    )


@forms_bp.route("/<int:form_uid>/visits/<int:visit_number>", methods=["PUT"])
@logged_in_active_user_required
@validate_payload(UpdateVisitValidator)
def update_visit(form_uid, visit_number, validated_payload):
    """
    Update a visit's fields and sections
    Sections are merged field by field into what is already stored
    """

    form = get_form_for_current_user(form_uid)
    if form is None:
        return form_not_found()
    if is_locked(form):
        return form_locked()

    visit = next(
        (visit for visit in form.visits if visit.visit_number == visit_number), None
    )
    if visit is None:
        return jsonify({"success": False, "message": "Visit not found"}), 404

    if validated_payload.visitDate.data:
        visit.visit_date = parse_iso_date(validated_payload.visitDate.data)
    for payload_key, column in VISIT_FIELDS.items():
        value = getattr(validated_payload, payload_key).data
        if value:
            setattr(visit, column, value)

    store = SectionStore(db.session)

    try:
        store.upsert_all(visit.visit_uid, validated_payload.data)
        visit.updated_at = utcnow()
        form.touch()
        db.session.commit()
    except InvalidSectionPayloadError as e:
        db.session.rollback()
        return invalid_section(e)

    return (
        jsonify(
            {
                "success": True,
                "data": {**visit.to_dict(), **store.read_all(visit.visit_uid)},
            }
        ),
        200,
    )


@forms_bp.route("/<int:form_uid>/visits/<int:visit_number>", methods=["DELETE"])
@logged_in_active_user_required
def delete_visit(form_uid, visit_number):
    form = get_form_for_current_user(form_uid)
    if form is None:
        return form_not_found()
    if is_locked(form):
        return form_locked()

    visit = next(
        (visit for visit in form.visits if visit.visit_number == visit_number), None
    )
    if visit is None:
        return jsonify({"success": False, "message": "Visit not found"}), 404

    form.visits.remove(visit)
    form.touch()
    db.session.commit()

    return jsonify({"success": True, "message": "Visit deleted successfully"}), 200


##############################################################################
# FACILITY HISTORY
##############################################################################


@forms_bp.route("/facility/<facility_name>/history", methods=["GET"])
@logged_in_active_user_required
def get_facility_history(facility_name):
    """
    Return every form the user has filled for facilities matching the name,
    newest first, with trends in medicine, equipment and staff training scores
    """

    forms = build_facility_history_query(current_user.user_uid, facility_name).all()
    if not forms:
        return (
            jsonify(
                {
                    "success": False,
                    "message": f"No previous visits found for facility: {facility_name}",
                }
            ),
            404,
        )

    history = FormHydrator(db.session).hydrate(forms)

    response = {
        "success": True,
        "data": {
            "facilityName": facility_name,
            "totalForms": len(history),
            "totalVisits": sum(len(form["visits"]) for form in history),
            "history": history,
            "trends": calculate_facility_trends(list(reversed(history))),
            "lastFormDate": history[0]["created_at"],
            "firstFormDate": history[-1]["created_at"],
        },
    }

    return jsonify(response), 200


@forms_bp.route("/facilities/summary", methods=["GET"])
@logged_in_active_user_required
def get_facilities_summary():
    """
    Return one entry per facility the user has supervised, most recent first
    """

    latest_status = {}
    for name, province, district, sync_status in build_latest_facility_status_query(
        current_user.user_uid
    ).all():
        latest_status.setdefault((name, province, district), sync_status)

    today = utcnow().date()
    facilities = []
    for row in build_facility_summary_query(current_user.user_uid).all():
        last_seen = row.last_visit_date or row.last_form_date.date()
        facilities.append(
            {
                "facilityName": row.health_facility_name,
                "province": row.province,
                "district": row.district,
                "formCount": row.form_count,
                "visitCount": row.visit_count,
                "firstFormDate": safe_isoformat(row.first_form_date),
                "lastFormDate": safe_isoformat(row.last_form_date),
                "lastVisitDate": safe_isoformat(row.last_visit_date),
                "latestSyncStatus": latest_status[
                    (row.health_facility_name, row.province, row.district)
                ],
                "daysSinceLastVisit": (today - last_seen).days,
            }
        )

    total_forms = sum(facility["formCount"] for facility in facilities)

    response = {
        "success": True,
        "data": {
            "totalFacilities": len(facilities),
            "totalForms": total_forms,
            "totalVisits": sum(facility["visitCount"] for facility in facilities),
            "averageFormsPerFacility": (
                round(total_forms / len(facilities), 1) if facilities else 0
            ),
            "facilities": facilities,
        },
    }

    return jsonify(response), 200
