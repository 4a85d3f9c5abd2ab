"""Forms for the group blueprint.

The API takes JSON bodies, which Flask-WTF reads as form data. Field names
follow the camelCase keys of the request payloads.
"""

from flask_wtf import FlaskForm
from wtforms import BooleanField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Optional

from stepladder.group.models import CompetitionPeriodType, MemberRole


class APIForm(FlaskForm):
    """Base form for JSON endpoints; the blueprint is exempt from CSRF."""

    class Meta:
        csrf = False


class CreateGroupForm(APIForm):
    """Form for creating a new group."""

    name = StringField(
        "Group Name",
        validators=[DataRequired(message="Group name cannot be empty.")],
    )
    description = TextAreaField("Description", validators=[Optional()])
    is_public = BooleanField("Public Group", name="isPublic")
    period_type = SelectField(
        "Competition Period",
        name="periodType",
        choices=[(p.value, p.value) for p in CompetitionPeriodType],
        default=CompetitionPeriodType.WEEKLY.value,
        validate_choice=False,
    )


class UpdateGroupForm(APIForm):
    """Form for editing group metadata."""

    name = StringField(
        "Group Name",
        validators=[DataRequired(message="Group name cannot be empty.")],
    )
    description = TextAreaField("Description", validators=[Optional()])
    is_public = BooleanField("Public Group", name="isPublic")


class JoinGroupForm(APIForm):
    """Form for joining a group by id, with a code for private groups."""

    join_code = StringField("Join Code", name="joinCode", validators=[Optional()])


class JoinByCodeForm(APIForm):
    """Form for joining whichever group holds a code."""

    code = StringField(
        "Join Code", validators=[DataRequired(message="Join code cannot be empty.")]
    )


class InviteMemberForm(APIForm):
    """Form for adding a user to a group."""

    user_id = StringField(
        "User",
        name="userId",
        validators=[DataRequired(message="User ID to invite cannot be empty.")],
    )


class UpdateMemberRoleForm(APIForm):
    """Form for promoting or demoting a member."""

    role = SelectField(
        "Role",
        choices=[(r.value, r.value) for r in MemberRole],
        validators=[DataRequired(message="Role cannot be empty.")],
        validate_choice=False,
    )


class TransferOwnershipForm(APIForm):
    """Form for handing a group to another member."""

    user_id = StringField(
        "New Owner",
        name="userId",
        validators=[DataRequired(message="New owner cannot be empty.")],
    )
