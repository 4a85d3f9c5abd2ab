"""Routes for the group blueprint."""

from flask import current_app, g, jsonify, request

from stepladder.auth.decorators import login_required
from stepladder.core.types import APIResponse
from stepladder.errors import InvalidArgumentError

from . import bp
from .forms import (
    CreateGroupForm,
    InviteMemberForm,
    JoinByCodeForm,
    JoinGroupForm,
    TransferOwnershipForm,
    UpdateGroupForm,
    UpdateMemberRoleForm,
)
from .utils import first_form_error, get_group_service


def _respond(data=None, message="", status_code=200):
    body: APIResponse = {"success": True, "message": message, "data": data}
    return jsonify(body), status_code


def _validated(form):
    """Validate a submitted form, raising InvalidArgumentError on failure."""
    if not form.validate_on_submit():
        raise InvalidArgumentError(first_form_error(form))
    return form


def _payload_has(key):
    payload = request.get_json(silent=True)
    return isinstance(payload, dict) and key in payload


def _int_arg(name, default):
    value = request.args.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer.") from None


@bp.route("/", methods=["POST"])
@login_required
def create_group():
    """Create a group owned by the current user."""
    form = _validated(CreateGroupForm())
    is_public = form.is_public.data if _payload_has("isPublic") else True
    group = get_group_service().create_group(
        g.user_id,
        form.name.data,
        description=form.description.data,
        is_public=is_public,
        period_type=form.period_type.data,
    )
    return _respond(group.to_dict(), "Group created successfully.", 201)


@bp.route("/", methods=["GET"])
@login_required
def my_groups():
    """List the current user's groups."""
    groups = get_group_service().get_user_groups(g.user_id)
    return _respond([group.to_dict() for group in groups])


@bp.route("/public", methods=["GET"])
@login_required
def public_groups():
    """List the newest public groups."""
    limit = _int_arg("limit", current_app.config["PUBLIC_GROUPS_LIMIT"])
    groups = get_group_service().list_public_groups(limit)
    return _respond([group.to_dict() for group in groups])


@bp.route("/search", methods=["GET"])
@login_required
def search_groups():
    """Search public groups by name prefix."""
    limit = _int_arg("limit", current_app.config["PUBLIC_GROUPS_LIMIT"])
    groups = get_group_service().search_public_groups(
        request.args.get("q", ""), limit
    )
    return _respond([group.to_dict() for group in groups])


@bp.route("/join-by-code", methods=["POST"])
@login_required
def join_by_code():
    """Join the group holding the submitted code."""
    form = _validated(JoinByCodeForm())
    group = get_group_service().join_by_code(g.user_id, form.code.data)
    return _respond(group.to_dict(), f"You have joined {group.name}.")


@bp.route("/<string:group_id>", methods=["GET"])
@login_required
def view_group(group_id):
    """Show a group the current user belongs to."""
    group = get_group_service().get_group(g.user_id, group_id)
    return _respond(group.to_dict())


@bp.route("/<string:group_id>", methods=["PUT"])
@login_required
def edit_group(group_id):
    """Update a group's name, description and visibility."""
    form = _validated(UpdateGroupForm())
    is_public = form.is_public.data if _payload_has("isPublic") else None
    group = get_group_service().update_group(
        g.user_id,
        group_id,
        form.name.data,
        description=form.description.data,
        is_public=is_public,
    )
    return _respond(group.to_dict(), "Group updated successfully.")


@bp.route("/<string:group_id>", methods=["DELETE"])
@login_required
def delete_group(group_id):
    """Delete a group."""
    get_group_service().delete_group(g.user_id, group_id)
    return _respond(message="Group deleted successfully.")


@bp.route("/<string:group_id>/join", methods=["POST"])
@login_required
def join_group(group_id):
    """Join a public group, or a private one with its code."""
    form = JoinGroupForm()
    group = get_group_service().join_group(
        g.user_id, group_id, join_code=form.join_code.data or None
    )
    return _respond(group.to_dict(), f"You have joined {group.name}.")


@bp.route("/<string:group_id>/leave", methods=["POST"])
@login_required
def leave_group(group_id):
    """Leave a group."""
    get_group_service().leave_group(g.user_id, group_id)
    return _respond(message="You have left the group.")


@bp.route("/<string:group_id>/members", methods=["GET"])
@login_required
def list_members(group_id):
    """List a group's members with their display data."""
    members = get_group_service().get_members(g.user_id, group_id)
    return _respond([member.to_dict() for member in members])


@bp.route("/<string:group_id>/members", methods=["POST"])
@login_required
def invite_member(group_id):
    """Add a user to the group."""
    form = _validated(InviteMemberForm())
    member = get_group_service().invite_member(g.user_id, group_id, form.user_id.data)
    return _respond(member.to_dict(), f"{member.display_name} has been added.", 201)


@bp.route("/<string:group_id>/members/<string:user_id>", methods=["DELETE"])
@login_required
def remove_member(group_id, user_id):
    """Remove a member from the group."""
    get_group_service().remove_member(g.user_id, group_id, user_id)
    return _respond(message="Member removed.")


@bp.route("/<string:group_id>/members/<string:user_id>/role", methods=["PUT"])
@login_required
def change_member_role(group_id, user_id):
    """Promote or demote a member."""
    form = _validated(UpdateMemberRoleForm())
    member = get_group_service().update_member_role(
        g.user_id, group_id, user_id, form.role.data
    )
    return _respond(member.to_dict(), "Role updated.")


@bp.route("/<string:group_id>/transfer-ownership", methods=["POST"])
@login_required
def transfer_ownership(group_id):
    """Hand the group to another member."""
    form = _validated(TransferOwnershipForm())
    member = get_group_service().transfer_ownership(
        g.user_id, group_id, form.user_id.data
    )
    return _respond(member.to_dict(), "Ownership transferred.")


@bp.route("/<string:group_id>/leaderboard", methods=["GET"])
@login_required
def leaderboard(group_id):
    """Rank the group's members for the current competition period."""
    board = get_group_service().get_leaderboard(g.user_id, group_id)
    return _respond(board.to_dict())


@bp.route("/<string:group_id>/regenerate-code", methods=["POST"])
@login_required
def regenerate_code(group_id):
    """Issue a new join code for a private group."""
    group = get_group_service().regenerate_join_code(g.user_id, group_id)
    return _respond(group.to_dict(), "Join code regenerated.")
