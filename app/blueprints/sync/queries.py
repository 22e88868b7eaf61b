from sqlalchemy import case, func

from app import db
from app.blueprints.forms.models import SupervisionForm, SupervisionVisit


def build_form_change_time_subquery():
    """
    Build a subquery with the latest visit update time per form
    """

    return (
        db.session.query(
            SupervisionVisit.form_uid.label("form_uid"),
            func.max(SupervisionVisit.updated_at).label("last_visit_change"),
        )
        .group_by(SupervisionVisit.form_uid)
        .subquery()
    )


def build_changed_forms_query(user_uid, last_sync=None):
    """
    Build a query over the user's forms with their effective change time,
    the later of the form's own updated_at and any of its visits' updated_at.
    Only forms changed strictly after last_sync are included when it is given.

    Returns the query and the change time column expression
    """

    visit_changes = build_form_change_time_subquery()

    change_time = case(
        (
            visit_changes.c.last_visit_change > SupervisionForm.updated_at,
            visit_changes.c.last_visit_change,
        ),
        else_=SupervisionForm.updated_at,
    ).label("change_time")

    query = (
        db.session.query(SupervisionForm, change_time)
        .outerjoin(visit_changes, visit_changes.c.form_uid == SupervisionForm.form_uid)
        .filter(SupervisionForm.user_uid == user_uid)
    )

    if last_sync is not None:
        query = query.filter(change_time > last_sync)

    return query, change_time
