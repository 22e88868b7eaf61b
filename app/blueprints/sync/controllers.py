from flask import current_app, jsonify, request
from flask_login import current_user

from app import db
from app.blueprints.forms.errors import FormNotFoundError
from app.utils.utils import (
    admin_required,
    logged_in_active_user_required,
    parse_iso_datetime,
    validate_payload,
    validate_query_params,
)

from . import sync_bp
from .errors import InvalidSyncTransitionError
from .utils import SyncEngine, get_sync_status
from .validators import (
    DownloadSyncQueryParamValidator,
    SyncStatusQueryParamValidator,
    UploadSyncValidator,
    VerifyFormValidator,
)


def get_client_info(app_version=None, network_type=None):
    return {
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
        "app_version": app_version,
        "network_type": network_type,
    }


@sync_bp.route("/upload", methods=["POST"])
@logged_in_active_user_required
@validate_payload(UploadSyncValidator, error_status=400)
def upload(validated_payload):
    """
    Upload forms created offline on a device

    Requires JSON body with following keys:
    - deviceId
    - forms: list of forms, each with a tempId

    Always responds 200 with a per form breakdown once the batch is well formed
    """

    engine = SyncEngine(
        db.session,
        current_user,
        device_id=validated_payload.deviceId.data,
        client_info=get_client_info(
            validated_payload.appVersion.data, validated_payload.networkType.data
        ),
    )

    response = engine.upload(validated_payload.forms.data)

    return jsonify(response), 200


@sync_bp.route("/download", methods=["GET"])
@logged_in_active_user_required
@validate_query_params(DownloadSyncQueryParamValidator)
def download(validated_query_params):
    """
    Download the user's forms changed since ?lastSync=<ISO 8601>
    Requires ?deviceId=<str>
    """

    last_sync = validated_query_params.lastSync.data
    last_sync = parse_iso_datetime(last_sync) if last_sync else None

    engine = SyncEngine(
        db.session,
        current_user,
        device_id=validated_query_params.deviceId.data,
        client_info=get_client_info(
            validated_query_params.appVersion.data,
            validated_query_params.networkType.data,
        ),
    )

    response = engine.download(
        last_sync=last_sync,
        page_size=current_app.config["SYNC_DOWNLOAD_PAGE_SIZE"],
    )

    return jsonify(response), 200


@sync_bp.route("/status", methods=["GET"])
@logged_in_active_user_required
@admin_required
@validate_query_params(SyncStatusQueryParamValidator)
def sync_status(validated_query_params):
    """
    Paginated sync log with statistics (admin only)
    Optional filters: ?userId=<int>&syncType=<str>&syncStatus=<str>
    """

    response = get_sync_status(
        db.session,
        page=validated_query_params.page.data or 1,
        limit=validated_query_params.limit.data
        or current_app.config["SYNC_STATUS_DEFAULT_PAGE_SIZE"],
        user_uid=validated_query_params.userId.data,
        sync_type=validated_query_params.syncType.data or None,
        sync_status=validated_query_params.syncStatus.data or None,
    )

    return jsonify(response), 200


@sync_bp.route("/verify/<int:form_uid>", methods=["PUT"])
@logged_in_active_user_required
@admin_required
@validate_payload(VerifyFormValidator)
def verify_form(form_uid, validated_payload):
    """
    Mark a synced form and all its visits as verified (admin only)

    Accepts an optional JSON body with:
    - notes
    """

    engine = SyncEngine(
        db.session,
        current_user,
        device_id=validated_payload.deviceId.data,
        client_info=get_client_info(),
    )

    try:
        form = engine.verify(form_uid, notes=validated_payload.notes.data)
    except FormNotFoundError:
        return (
            jsonify({"success": False, "message": "Supervision form not found"}),
            404,
        )
    except InvalidSyncTransitionError as e:
        return jsonify({"success": False, "message": e.message}), 409

    return (
        jsonify(
            {
                "success": True,
                "message": "Form verified successfully",
                "form": {
                    **form.to_dict(),
                    "visits": [visit.to_dict() for visit in form.visits],
                },
            }
        ),
        200,
    )
