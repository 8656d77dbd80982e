"""
Training blueprint.

Routes for training modules, member progress, the step machine, and leader
review. All business logic is delegated to training_service.

Endpoints:
  Modules:       GET  /training/modules
                 GET  /training/modules/<id>
  Member hub:    GET  /members/<id>/training
                 GET  /members/<id>/training/progress
  Progress:      POST /members/<id>/training/modules/<mid>/progress
                 POST /members/<id>/training/modules/<mid>/session
                 POST /members/<id>/training/modules/<mid>/assessment
                 GET  /members/<id>/training/modules/<mid>/next
  Leader review: GET  /training/submissions?leader_id=
                 POST /training/progress/<id>/approve
                 POST /training/progress/<id>/reject

All paths are under /api/v1.
"""

from flask import Blueprint, jsonify, request

from ministry_hub.blueprints import json_body
from ministry_hub.models.training import MEMBER_STATUSES
from ministry_hub.services import training_service
from ministry_hub.utils.errors import E, api_error, register_error_handlers


training_bp = Blueprint("training", __name__, url_prefix="/api/v1")
register_error_handlers(training_bp)


def _int_field(data, name, required=False):
    """Return (value, error_response). Booleans are not integers here."""
    value = data.get(name)
    if value is None:
        if required:
            return None, api_error(E.VALIDATION_REQUIRED, f"{name} is required",
                                   details={name: "required"})
        return None, None
    if isinstance(value, bool) or not isinstance(value, int):
        return None, api_error(E.VALIDATION_INVALID, f"{name} must be an integer",
                               details={name: "invalid"})
    return value, None


# ═════════════════════════════════════════════════════════════════════════════
# Modules
# ═════════════════════════════════════════════════════════════════════════════


@training_bp.route("/training/modules", methods=["GET"])
def list_modules():
    """Query params: ministry_id?"""
    modules = training_service.list_modules(ministry_id=request.args.get("ministry_id", type=int))
    return jsonify({"items": [m.to_dict() for m in modules], "total": len(modules)}), 200


@training_bp.route("/training/modules/<int:module_id>", methods=["GET"])
def get_module(module_id):
    module = training_service.get_module(module_id)
    return jsonify(training_service.module_detail(module)), 200


# ═════════════════════════════════════════════════════════════════════════════
# Member hub & progress
# ═════════════════════════════════════════════════════════════════════════════


@training_bp.route("/members/<int:member_id>/training", methods=["GET"])
def training_hub(member_id):
    return jsonify(training_service.training_hub(member_id)), 200


@training_bp.route("/members/<int:member_id>/training/progress", methods=["GET"])
def list_progress(member_id):
    records = training_service.list_member_progress(member_id)
    return jsonify({"items": [p.to_dict() for p in records], "total": len(records)}), 200


@training_bp.route(
    "/members/<int:member_id>/training/modules/<int:module_id>/progress", methods=["POST"],
)
def upsert_progress(member_id, module_id):
    """Create or update a progress record.

    Body: { "status": in-progress|completed|submitted, "progress_percent"?: 0-100 }

    Scores are never taken from this body; they come from scoring the
    assessment (session or /assessment).
    """
    data = json_body()
    status = data.get("status")
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "status is required", details={"status": "required"})
    if not isinstance(status, str) or status not in MEMBER_STATUSES:
        return api_error(
            E.VALIDATION_INVALID,
            f"status must be one of: {', '.join(sorted(MEMBER_STATUSES))}",
            details={"status": "invalid"},
        )

    percent, err = _int_field(data, "progress_percent")
    if err:
        return err
    if percent is not None and not 0 <= percent <= 100:
        return api_error(E.VALIDATION_INVALID, "progress_percent must be between 0 and 100",
                         details={"progress_percent": "out of range"})

    result = training_service.upsert_progress(member_id, module_id, status, progress_percent=percent)
    return jsonify(result), 200


@training_bp.route(
    "/members/<int:member_id>/training/modules/<int:module_id>/session", methods=["POST"],
)
def session_event(member_id, module_id):
    """Drive the step machine one event forward.

    Body: { "session"?: {...}, "event": next|previous|answer|retry|start_review,
            "value"?: answer }
    Returns: { session, progress_update, outcome, progress }
    """
    data = json_body()
    event = data.get("event")
    if not event:
        return api_error(E.VALIDATION_REQUIRED, "event is required", details={"event": "required"})
    if not isinstance(event, str):
        return api_error(E.VALIDATION_INVALID, "event must be a string", details={"event": "invalid"})
    session = data.get("session")
    if session is not None and not isinstance(session, dict):
        return api_error(E.VALIDATION_INVALID, "session must be an object",
                         details={"session": "invalid"})

    result = training_service.run_session_event(
        member_id, module_id, session, event, value=data.get("value"),
    )
    return jsonify(result), 200


@training_bp.route(
    "/members/<int:member_id>/training/modules/<int:module_id>/assessment", methods=["POST"],
)
def submit_assessment(member_id, module_id):
    """Body: { "answers": {index: answer} | [answer, ...], "review_mode"?: bool }"""
    data = json_body()
    answers = data.get("answers")
    if not isinstance(answers, (dict, list)):
        return api_error(E.VALIDATION_REQUIRED, "answers (object or list) is required",
                         details={"answers": "required"})
    result = training_service.submit_assessment(
        member_id, module_id, answers, review_mode=bool(data.get("review_mode", False)),
    )
    return jsonify(result), 200


@training_bp.route(
    "/members/<int:member_id>/training/modules/<int:module_id>/next", methods=["GET"],
)
def next_module(member_id, module_id):
    upcoming = training_service.next_module(member_id, module_id)
    return jsonify({"next": upcoming.to_dict() if upcoming else None}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Leader review
# ═════════════════════════════════════════════════════════════════════════════


@training_bp.route("/training/submissions", methods=["GET"])
def list_submissions():
    leader_id = request.args.get("leader_id", type=int)
    if not leader_id:
        return api_error(E.VALIDATION_REQUIRED, "leader_id is required",
                         details={"leader_id": "required"})
    items = training_service.list_submissions(leader_id)
    return jsonify({"items": items, "total": len(items)}), 200


@training_bp.route("/training/progress/<int:progress_id>/approve", methods=["POST"])
def approve(progress_id):
    data = json_body()
    leader_id, err = _int_field(data, "leader_id", required=True)
    if err:
        return err
    return jsonify(training_service.approve_progress(progress_id, leader_id)), 200


@training_bp.route("/training/progress/<int:progress_id>/reject", methods=["POST"])
def reject(progress_id):
    """Body: { "leader_id": int, "feedback": str }"""
    data = json_body()
    leader_id, err = _int_field(data, "leader_id", required=True)
    if err:
        return err
    feedback = str(data.get("feedback") or "").strip()
    if not feedback:
        return api_error(E.VALIDATION_REQUIRED, "feedback is required when rejecting",
                         details={"feedback": "required"})
    return jsonify(training_service.reject_progress(progress_id, leader_id, feedback)), 200
