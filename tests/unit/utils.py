def login_user(client, credentials):
    """
    Log a user in and return the headers to authenticate as them
    """

    response = client.post(
        "/api/login",
        json={
            "username": credentials["username"],
            "password": credentials["password"],
        },
        content_type="application/json",
    )
    assert response.status_code == 200

    return {"Authorization": f"Bearer {response.json['accessToken']}"}


def build_visit_payload(visit_number, **overrides):
    payload = {
        "visitNumber": visit_number,
        "visitDate": f"2024-0{visit_number}-15",
        "recommendations": f"Recommendations for visit {visit_number}",
        "actionsAgreed": "Restock medicines",
        "supervisorSignature": "signature-supervisor",
        "facilityRepresentativeSignature": "signature-facility",
        "adminManagement": {
            "a1_response": "Y",
            "a1_comment": "Committee meets monthly",
        },
    }
    payload.update(overrides)
    return payload


def build_form_payload(temp_id, visits=None, **overrides):
    """
    An offline form as the mobile client uploads it
    """

    payload = {
        "tempId": temp_id,
        "healthFacilityName": f"Health Post {temp_id}",
        "province": "Koshi",
        "district": "Morang",
        "staffTraining": {
            "ha_total_staff": 2,
            "ha_mhdc_trained": 1,
        },
        "visits": visits if visits is not None else [build_visit_payload(1)],
    }
    payload.update(overrides)
    return payload


def upload_forms(client, headers, forms, device_id="device-1"):
    return client.post(
        "/api/sync/upload",
        json={
            "deviceId": device_id,
            "forms": forms,
            "appVersion": "1.0.0",
            "networkType": "wifi",
        },
        content_type="application/json",
        headers=headers,
    )


def download_forms(client, headers, last_sync=None, device_id="device-1"):
    query_string = {"deviceId": device_id}
    if last_sync is not None:
        query_string["lastSync"] = last_sync

    return client.get(
        "/api/sync/download",
        query_string=query_string,
        headers=headers,
    )


def set_user_active_status(app, db, username, active):
    """
    Activate or deactivate a user directly in the database
    """
    from app.blueprints.auth.models import User

    with app.app_context():
        user = User.query.filter_by(username=username).first()
        user.active = active
        db.session.commit()
