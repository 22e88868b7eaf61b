import re

from .models import FormStaffTraining, SupervisionVisit
from .section_models import EquipmentResponse, LogisticsResponse, YesNo
from .sections import STAFF_TRAINING, SectionStore

# Numbered question answers, e.g. b1_response, as opposed to item availability
QUESTION_FIELD = re.compile(r"^[a-e]\d+_response$")

MEDICINE_FIELDS = [
    column.key
    for column in LogisticsResponse.__table__.columns
    if isinstance(column.type, YesNo) and not QUESTION_FIELD.match(column.key)
]
EQUIPMENT_FIELDS = [
    column.key
    for column in EquipmentResponse.__table__.columns
    if isinstance(column.type, YesNo)
]
STAFF_CADRES = ["ha", "sr_ahw", "ahw", "sr_anm", "anm", "others"]


class FormHydrator:
    """
    Build the full nested representation of forms: form fields, staff
    training and every visit with all its sections.
    Sections that were never recorded are returned as None.
    """

    def __init__(self, session):
        self.session = session
        self.store = SectionStore(session)

    def hydrate(self, forms):
        form_uids = [form.form_uid for form in forms]
        if not form_uids:
            return []

        visits = (
            self.session.query(SupervisionVisit)
            .filter(SupervisionVisit.form_uid.in_(form_uids))
            .order_by(SupervisionVisit.form_uid, SupervisionVisit.visit_number)
            .all()
        )
        sections = self.store.read_all_for_visits(
            [visit.visit_uid for visit in visits]
        )

        visits_by_form = {form_uid: [] for form_uid in form_uids}
        for visit in visits:
            visits_by_form[visit.form_uid].append(
                {**visit.to_dict(), **sections[visit.visit_uid]}
            )

        staff_training = {
            row.form_uid: STAFF_TRAINING.serialize(row)
            for row in self.session.query(FormStaffTraining)
            .filter(FormStaffTraining.form_uid.in_(form_uids))
            .all()
        }

        return [
            {
                **form.to_dict(),
                "staff_training": staff_training.get(form.form_uid),
                "visits": visits_by_form[form.form_uid],
            }
            for form in forms
        ]

    def hydrate_one(self, form):
        return self.hydrate([form])[0]


def availability_score(section, fields):
    """
    Percentage of the listed items answered 'Y'. Unanswered items count as
    not available.
    """

    available = sum(1 for field in fields if section.get(field) == "Y")
    return round(available * 100 / len(fields))


def training_score(staff_training):
    """
    Percentage of the facility's staff trained on MHDC NCD management
    """

    total = sum(
        staff_training.get(f"{cadre}_total_staff") or 0 for cadre in STAFF_CADRES
    )
    trained = sum(
        staff_training.get(f"{cadre}_mhdc_trained") or 0 for cadre in STAFF_CADRES
    )
    return round(trained * 100 / total) if total else 0


def calculate_facility_trends(forms):
    """
    Score medicine availability and equipment per visit and staff training
    per form, in the order given

    :param forms: hydrated forms, oldest first
    """

    visits = [(form, visit) for form in forms for visit in form["visits"]]
    if len(visits) < 2:
        return {"message": "Need at least 2 visits to calculate trends"}

    trends = {
        "medicineAvailability": [],
        "equipmentFunctionality": [],
        "staffTraining": [],
    }

    for form, visit in visits:
        point = {
            "formUid": form["form_uid"],
            "visitNumber": visit["visit_number"],
            "visitDate": visit["visit_date"],
        }
        if visit["logistics"] is not None:
            trends["medicineAvailability"].append(
                {
                    **point,
                    "score": availability_score(visit["logistics"], MEDICINE_FIELDS),
                }
            )
        if visit["equipment"] is not None:
            trends["equipmentFunctionality"].append(
                {
                    **point,
                    "score": availability_score(visit["equipment"], EQUIPMENT_FIELDS),
                }
            )

    for form in forms:
        if form["staff_training"] is not None:
            trends["staffTraining"].append(
                {
                    "formUid": form["form_uid"],
                    "date": form["created_at"],
                    "score": training_score(form["staff_training"]),
                }
            )

    return trends
