"""Utility functions for the group blueprint."""

from firebase_admin import firestore
from flask import current_app, g

from stepladder.group.firestore_repository import FirestoreGroupRepository
from stepladder.group.services.group_service import GroupService
from stepladder.steps.services import FirestoreStepLedger
from stepladder.user.services import FirestoreUserLookup


def get_group_service():
    """Return the request's GroupService, wiring the Firestore stores once."""
    if "group_service" not in g:
        db = firestore.client()
        g.group_service = GroupService(
            FirestoreGroupRepository(db),
            FirestoreUserLookup(db),
            FirestoreStepLedger(db),
            join_code_attempts=current_app.config["JOIN_CODE_MAX_ATTEMPTS"],
            leaderboard_workers=current_app.config["LEADERBOARD_MAX_WORKERS"],
        )
    return g.group_service


def first_form_error(form):
    """Return the first validation message of a form."""
    for errors in form.errors.values():
        if errors:
            return errors[0]
    return "Invalid request."
