"""
Member & ministry blueprint.

Endpoints:
  Members:     GET/POST /api/v1/members
               GET      /api/v1/members/<id>
  Ministries:  GET/POST /api/v1/ministries
               POST     /api/v1/ministries/<id>/members
"""

import logging

from flask import Blueprint, jsonify, request

from ministry_hub.blueprints import json_body, paginate_query
from ministry_hub.models.member import Member
from ministry_hub.services import member_service
from ministry_hub.utils.errors import E, api_error, register_error_handlers
from ministry_hub.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

member_bp = Blueprint("member", __name__, url_prefix="/api/v1")
register_error_handlers(member_bp)


# ═════════════════════════════════════════════════════════════════════════════
# Members
# ═════════════════════════════════════════════════════════════════════════════


@member_bp.route("/members", methods=["GET"])
def list_members():
    """List members, optionally by role. Query: role?, limit?, offset?"""
    query = Member.query.order_by(Member.full_name, Member.id)
    role = request.args.get("role")
    if role:
        query = query.filter(Member.role == role)
    items, total = paginate_query(query)
    return jsonify({"items": [m.to_dict() for m in items], "total": total}), 200


@member_bp.route("/members", methods=["POST"])
def create_member():
    """Create a member.

    Body: { "full_name": str, "email": str, "role"?: member|leader|pastor|admin }
    Returns: Member dict (201). Duplicate email → 409.
    """
    data = json_body()
    missing = [f for f in ("full_name", "email") if not str(data.get(f) or "").strip()]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED, f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )
    if "@" not in data["email"]:
        return api_error(E.VALIDATION_INVALID, "email is not a valid address",
                         details={"email": "invalid"})

    member = member_service.create_member(data)
    return jsonify(member.to_dict()), 201


@member_bp.route("/members/<int:member_id>", methods=["GET"])
def get_member(member_id):
    member, err = get_or_404(Member, member_id)
    if err:
        return err
    return jsonify(member.to_dict()), 200


# ═════════════════════════════════════════════════════════════════════════════
# Ministries
# ═════════════════════════════════════════════════════════════════════════════


@member_bp.route("/ministries", methods=["GET"])
def list_ministries():
    include_inactive = request.args.get("include_inactive", "").lower() in ("true", "1", "yes")
    items = member_service.list_ministries(include_inactive=include_inactive)
    return jsonify({"items": [m.to_dict() for m in items], "total": len(items)}), 200


@member_bp.route("/ministries", methods=["POST"])
def create_ministry():
    data = json_body()
    if not str(data.get("name") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "name is required", details={"name": "required"})
    ministry = member_service.create_ministry(data)
    return jsonify(ministry.to_dict()), 201


@member_bp.route("/ministries/<int:ministry_id>/members", methods=["POST"])
def join_ministry(ministry_id):
    """Add a member to a ministry (re-activates an earlier assignment).

    Body: { "member_id": int, "role"?: member|leader }
    """
    data = json_body()
    member_id = data.get("member_id")
    if not isinstance(member_id, int) or isinstance(member_id, bool):
        return api_error(E.VALIDATION_REQUIRED, "member_id (integer) is required",
                         details={"member_id": "required"})
    assignment = member_service.join_ministry(
        ministry_id, member_id, role=data.get("role") or "member",
    )
    return jsonify(assignment.to_dict()), 201
