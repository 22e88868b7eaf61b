import jsondiff
import pytest

from app import db
from app.blueprints.forms.models import (
    FormStaffTraining,
    SupervisionForm,
    SupervisionVisit,
)
from app.blueprints.forms.section_models import AdminManagementResponse
from app.blueprints.forms.utils import EQUIPMENT_FIELDS, MEDICINE_FIELDS
from utils import build_visit_payload


@pytest.mark.forms
class TestForms:
    @pytest.fixture()
    def create_form(self, client, user_headers):
        """
        Insert a new form with one visit as a setup step for the form tests
        """

        payload = {
            "healthFacilityName": "Rangeli Health Post",
            "province": "Koshi",
            "district": "Morang",
            "staffTraining": {"anm_total_staff": 3, "anm_fen_trained": 2},
            "visits": [build_visit_payload(1)],
        }

        response = client.post(
            "/api/forms",
            json=payload,
            content_type="application/json",
            headers=user_headers,
        )
        assert response.status_code == 201

        yield response.json["data"]["form_uid"]

    def test_create_form(self, client, user_headers, user_uid, create_form):
        response = client.get(f"/api/forms/{create_form}", headers=user_headers)

        assert response.status_code == 200

        form = response.json["data"]
        expected_form = {
            "form_uid": create_form,
            "user_uid": user_uid,
            "health_facility_name": "Rangeli Health Post",
            "province": "Koshi",
            "district": "Morang",
            "sync_status": "local",
        }
        checkdiff = jsondiff.diff(
            expected_form, {key: form[key] for key in expected_form}
        )
        assert checkdiff == {}

        assert form["staff_training"]["anm_total_staff"] == 3
        assert form["staff_training"]["anm_fen_trained"] == 2
        assert form["staff_training"]["ha_total_staff"] == 0
        assert len(form["visits"]) == 1
        assert form["visits"][0]["sync_status"] == "local"
        assert form["visits"][0]["recommendations"] == "Recommendations for visit 1"
        assert form["visits"][0]["adminManagement"]["a1_comment"] == (
            "Committee meets monthly"
        )

    def test_create_form_missing_fields(self, client, user_headers):
        response = client.post(
            "/api/forms",
            json={"healthFacilityName": "Rangeli Health Post"},
            content_type="application/json",
            headers=user_headers,
        )

        expected_response = {
            "success": False,
            "message": {
                "province": ["Province is required"],
                "district": ["District is required"],
            },
        }

        assert response.status_code == 422
        checkdiff = jsondiff.diff(expected_response, response.json)
        assert checkdiff == {}

    def test_create_form_invalid_section(self, client, app, user_headers):
        response = client.post(
            "/api/forms",
            json={
                "healthFacilityName": "Rangeli Health Post",
                "province": "Koshi",
                "district": "Morang",
                "visits": [
                    build_visit_payload(1, logistics={"metformin_500mg": "maybe"})
                ],
            },
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 422
        assert response.json["errors"] == {
            "logistics": {"metformin_500mg": "Must be 'Y', 'N' or empty"}
        }

        with app.app_context():
            assert SupervisionForm.query.count() == 0

    def test_create_form_duplicate_visit_numbers(self, client, user_headers):
        response = client.post(
            "/api/forms",
            json={
                "healthFacilityName": "Rangeli Health Post",
                "province": "Koshi",
                "district": "Morang",
                "visits": [build_visit_payload(2), build_visit_payload(2)],
            },
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 422

    def test_get_forms(self, client, user_headers, admin_headers, create_form):
        response = client.get("/api/forms", headers=user_headers)

        assert response.status_code == 200
        assert [form["form_uid"] for form in response.json["data"]] == [create_form]
        assert response.json["data"][0]["username"] == "supervisor"
        assert response.json["data"][0]["visit_count"] == 1
        assert response.json["pagination"] == {
            "currentPage": 1,
            "totalPages": 1,
            "totalForms": 1,
            "hasNextPage": False,
            "hasPrevPage": False,
        }

    def test_get_forms_search(self, client, user_headers, create_form):
        response = client.get(
            "/api/forms", query_string={"search": "rangeli"}, headers=user_headers
        )
        assert len(response.json["data"]) == 1

        response = client.get(
            "/api/forms", query_string={"search": "Kathmandu"}, headers=user_headers
        )
        assert response.json["data"] == []

    def test_get_forms_by_sync_status(self, client, user_headers, create_form):
        response = client.get(
            "/api/forms", query_string={"syncStatus": "synced"}, headers=user_headers
        )
        assert response.json["data"] == []

        response = client.get(
            "/api/forms", query_string={"syncStatus": "archived"}, headers=user_headers
        )
        assert response.status_code == 400

    def test_users_only_see_own_forms(
        self, client, other_user_headers, admin_headers, create_form
    ):
        response = client.get("/api/forms", headers=other_user_headers)
        assert response.json["data"] == []

        response = client.get(f"/api/forms/{create_form}", headers=other_user_headers)
        assert response.status_code == 404

        response = client.get("/api/forms", headers=admin_headers)
        assert [form["form_uid"] for form in response.json["data"]] == [create_form]

    def test_update_form(self, client, user_headers, create_form):
        response = client.put(
            f"/api/forms/{create_form}",
            json={
                "district": "Sunsari",
                "staffTraining": {"anm_fen_trained": 3},
            },
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 200

        form = response.json["data"]
        assert form["district"] == "Sunsari"
        assert form["health_facility_name"] == "Rangeli Health Post"
        assert form["staff_training"]["anm_fen_trained"] == 3
        assert form["staff_training"]["anm_total_staff"] == 3
        assert form["sync_status"] == "local"

    def test_delete_form(self, client, app, user_headers, create_form):
        response = client.delete(f"/api/forms/{create_form}", headers=user_headers)

        assert response.status_code == 200

        with app.app_context():
            assert SupervisionForm.query.count() == 0
            assert SupervisionVisit.query.count() == 0
            assert FormStaffTraining.query.count() == 0
            assert AdminManagementResponse.query.count() == 0

        response = client.get(f"/api/forms/{create_form}", headers=user_headers)
        assert response.status_code == 404

    def test_add_visit(self, client, user_headers, create_form):
        response = client.post(
            f"/api/forms/{create_form}/visits",
            json=build_visit_payload(
                2, equipment={"glucometer": "Y", "glucometer_quantity": 1}
            ),
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 201
        assert response.json["data"]["visit_number"] == 2
        assert response.json["data"]["equipment"]["glucometer"] == "Y"
        assert response.json["data"]["logistics"] is None

    def test_add_existing_visit_number(self, client, user_headers, create_form):
        response = client.post(
            f"/api/forms/{create_form}/visits",
            json=build_visit_payload(1),
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 409

    def test_add_visit_number_out_of_range(self, client, user_headers, create_form):
        response = client.post(
            f"/api/forms/{create_form}/visits",
            json=build_visit_payload(5),
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 422
        assert response.json["message"] == {
            "visitNumber": ["Visit number must be between 1 and 4"]
        }

    def test_update_visit(self, client, user_headers, create_form):
        response = client.put(
            f"/api/forms/{create_form}/visits/1",
            json={
                "recommendations": "Follow up on stock outs",
                "adminManagement": {"a2_response": "N"},
            },
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 200

        visit = response.json["data"]
        assert visit["recommendations"] == "Follow up on stock outs"
        assert visit["actions_agreed"] == "Restock medicines"
        assert visit["adminManagement"]["a1_response"] == "Y"
        assert visit["adminManagement"]["a2_response"] == "N"
        assert visit["sync_status"] == "local"

    def test_update_missing_visit(self, client, user_headers, create_form):
        response = client.put(
            f"/api/forms/{create_form}/visits/3",
            json={"recommendations": "None"},
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 404

    def test_delete_visit(self, client, app, user_headers, create_form):
        response = client.delete(
            f"/api/forms/{create_form}/visits/1", headers=user_headers
        )

        assert response.status_code == 200

        with app.app_context():
            assert SupervisionVisit.query.count() == 0
            assert AdminManagementResponse.query.count() == 0
            assert SupervisionForm.query.count() == 1

    def test_verified_form_is_locked_for_users(
        self, client, app, user_headers, admin_headers, create_form
    ):
        with app.app_context():
            db.session.get(SupervisionForm, create_form).sync_status = "verified"
            db.session.commit()

        response = client.put(
            f"/api/forms/{create_form}",
            json={"district": "Sunsari"},
            content_type="application/json",
            headers=user_headers,
        )
        assert response.status_code == 403

        response = client.delete(
            f"/api/forms/{create_form}/visits/1", headers=user_headers
        )
        assert response.status_code == 403

        response = client.put(
            f"/api/forms/{create_form}",
            json={"district": "Sunsari"},
            content_type="application/json",
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json["data"]["sync_status"] == "verified"

    def test_forms_require_login(self, client):
        response = client.get("/api/forms")

        assert response.status_code == 401


@pytest.mark.forms
class TestFacilityHistory:
    @pytest.fixture()
    def facility_forms(self, client, user_headers, other_user_headers):
        """
        Two forms for the same facility, a form for another facility, and one
        from another supervisor that must never show up
        """

        def create(headers, facility_name, visits, staff_training):
            response = client.post(
                "/api/forms",
                json={
                    "healthFacilityName": facility_name,
                    "province": "Koshi",
                    "district": "Morang",
                    "staffTraining": staff_training,
                    "visits": visits,
                },
                content_type="application/json",
                headers=headers,
            )
            assert response.status_code == 201
            return response.json["data"]["form_uid"]

        first = create(
            user_headers,
            "Rangeli Health Post",
            [
                build_visit_payload(
                    1,
                    logistics={MEDICINE_FIELDS[0]: "Y"},
                    equipment={field: "N" for field in EQUIPMENT_FIELDS},
                )
            ],
            {"ha_total_staff": 4, "ha_mhdc_trained": 1},
        )
        second = create(
            user_headers,
            "Rangeli Health Post",
            [
                build_visit_payload(
                    1, logistics={field: "Y" for field in MEDICINE_FIELDS}
                ),
                build_visit_payload(2),
            ],
            {"ha_total_staff": 4, "ha_mhdc_trained": 3},
        )
        other_facility = create(
            user_headers, "Biratnagar Hospital", [build_visit_payload(1)], {}
        )
        create(other_user_headers, "Rangeli Health Post", [], {})

        return {"first": first, "second": second, "other_facility": other_facility}

    def test_facility_history(self, client, user_headers, facility_forms):
        response = client.get(
            "/api/forms/facility/rangeli/history", headers=user_headers
        )

        assert response.status_code == 200

        data = response.json["data"]
        assert data["facilityName"] == "rangeli"
        assert data["totalForms"] == 2
        assert data["totalVisits"] == 3
        assert [form["form_uid"] for form in data["history"]] == [
            facility_forms["second"],
            facility_forms["first"],
        ]
        assert data["history"][1]["visits"][0]["logistics"][MEDICINE_FIELDS[0]] == "Y"
        assert data["lastFormDate"] == data["history"][0]["created_at"]
        assert data["firstFormDate"] == data["history"][1]["created_at"]

    def test_facility_history_trends(self, client, user_headers, facility_forms):
        response = client.get(
            "/api/forms/facility/Rangeli%20Health%20Post/history", headers=user_headers
        )

        trends = response.json["data"]["trends"]

        assert trends["medicineAvailability"] == [
            {
                "formUid": facility_forms["first"],
                "visitNumber": 1,
                "visitDate": "2024-01-15",
                "score": round(100 / len(MEDICINE_FIELDS)),
            },
            {
                "formUid": facility_forms["second"],
                "visitNumber": 1,
                "visitDate": "2024-01-15",
                "score": 100,
            },
        ]
        assert [point["score"] for point in trends["equipmentFunctionality"]] == [0]
        assert [point["score"] for point in trends["staffTraining"]] == [25, 75]

    def test_facility_history_needs_two_visits_for_trends(
        self, client, user_headers, facility_forms
    ):
        response = client.get(
            "/api/forms/facility/Biratnagar/history", headers=user_headers
        )

        assert response.status_code == 200
        assert response.json["data"]["trends"] == {
            "message": "Need at least 2 visits to calculate trends"
        }

    def test_facility_history_unknown_facility(
        self, client, user_headers, facility_forms
    ):
        response = client.get(
            "/api/forms/facility/Kathmandu/history", headers=user_headers
        )

        assert response.status_code == 404
        assert response.json["message"] == (
            "No previous visits found for facility: Kathmandu"
        )

    def test_facilities_summary(self, client, app, user_headers, facility_forms):
        with app.app_context():
            db.session.get(SupervisionForm, facility_forms["second"]).sync_status = (
                "synced"
            )
            db.session.commit()

        response = client.get("/api/forms/facilities/summary", headers=user_headers)

        assert response.status_code == 200

        data = response.json["data"]
        assert data["totalFacilities"] == 2
        assert data["totalForms"] == 3
        assert data["totalVisits"] == 4
        assert data["averageFormsPerFacility"] == 1.5

        facilities = {
            facility["facilityName"]: facility for facility in data["facilities"]
        }
        rangeli = facilities["Rangeli Health Post"]
        expected_rangeli = {
            "province": "Koshi",
            "district": "Morang",
            "formCount": 2,
            "visitCount": 3,
            "lastVisitDate": "2024-02-15",
            "latestSyncStatus": "synced",
        }
        checkdiff = jsondiff.diff(
            expected_rangeli, {key: rangeli[key] for key in expected_rangeli}
        )
        assert checkdiff == {}
        assert rangeli["daysSinceLastVisit"] > 0
        assert facilities["Biratnagar Hospital"]["latestSyncStatus"] == "local"

    def test_facilities_summary_without_forms(self, client, user_headers):
        response = client.get("/api/forms/facilities/summary", headers=user_headers)

        assert response.status_code == 200
        assert response.json["data"] == {
            "totalFacilities": 0,
            "totalForms": 0,
            "totalVisits": 0,
            "averageFormsPerFacility": 0,
            "facilities": [],
        }
