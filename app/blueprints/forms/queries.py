from sqlalchemy import distinct, func

from app import db

from .models import SupervisionForm, SupervisionVisit


def build_facility_history_query(user_uid, facility_name):
    """
    Build a query over the user's forms for facilities whose name contains
    facility_name (case insensitive), newest first
    """

    return (
        db.session.query(SupervisionForm)
        .filter(
            SupervisionForm.user_uid == user_uid,
            SupervisionForm.health_facility_name.ilike(f"%{facility_name}%"),
        )
        .order_by(SupervisionForm.created_at.desc(), SupervisionForm.form_uid.desc())
    )


def build_facility_summary_query(user_uid):
    """
    Build a query that returns one row per facility the user has supervised,
    with its form and visit counts and the first and last dates, most
    recently supervised facility first
    """

    last_form_date = func.max(SupervisionForm.created_at)

    return (
        db.session.query(
            SupervisionForm.health_facility_name.label("health_facility_name"),
            SupervisionForm.province.label("province"),
            SupervisionForm.district.label("district"),
            func.count(distinct(SupervisionForm.form_uid)).label("form_count"),
            func.count(SupervisionVisit.visit_uid).label("visit_count"),
            func.min(SupervisionForm.created_at).label("first_form_date"),
            last_form_date.label("last_form_date"),
            func.max(SupervisionVisit.visit_date).label("last_visit_date"),
        )
        .outerjoin(
            SupervisionVisit, SupervisionVisit.form_uid == SupervisionForm.form_uid
        )
        .filter(SupervisionForm.user_uid == user_uid)
        .group_by(
            SupervisionForm.health_facility_name,
            SupervisionForm.province,
            SupervisionForm.district,
        )
        .order_by(last_form_date.desc(), SupervisionForm.health_facility_name)
    )


def build_latest_facility_status_query(user_uid):
    """
    Build a query over the sync status of each of the user's forms, newest
    first, so the first row per facility holds its latest status
    """

    return (
        db.session.query(
            SupervisionForm.health_facility_name,
            SupervisionForm.province,
            SupervisionForm.district,
            SupervisionForm.sync_status,
        )
        .filter(SupervisionForm.user_uid == user_uid)
        .order_by(SupervisionForm.created_at.desc(), SupervisionForm.form_uid.desc())
    )
