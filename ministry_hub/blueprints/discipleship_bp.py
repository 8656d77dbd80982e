"""
Discipleship path blueprint.

Endpoints:
    GET  /api/v1/members/<id>/ministry-path
    POST /api/v1/members/<id>/ministry-path/steps/<step_id>/<action>   (start | complete)

Gating and backward moves are rejected by the service with 422.
"""

from flask import Blueprint, jsonify

from ministry_hub.services import discipleship_service
from ministry_hub.utils.errors import register_error_handlers

discipleship_bp = Blueprint("discipleship", __name__, url_prefix="/api/v1/members")
register_error_handlers(discipleship_bp)


@discipleship_bp.route("/<int:member_id>/ministry-path", methods=["GET"])
def get_ministry_path(member_id):
    return jsonify(discipleship_service.get_path_view(member_id)), 200


@discipleship_bp.route(
    "/<int:member_id>/ministry-path/steps/<step_id>/<action>", methods=["POST"],
)
def step_action(member_id, step_id, action):
    return jsonify(discipleship_service.apply_step_action(member_id, step_id, action)), 200
