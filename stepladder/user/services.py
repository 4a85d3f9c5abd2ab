"""Service layer for resolving user display data from Firestore."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from stepladder.core.constants import USERS_COLLECTION
from stepladder.group.models import User

from .helpers import avatar_url, smart_display_name

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


class FirestoreUserLookup:
    """Batched user lookup over the ``users`` collection."""

    def __init__(self, db: Client) -> None:
        self.db = db

    def get_users_by_ids(self, user_ids: Iterable[str]) -> list[User]:
        """Fetch all users with a single ``get_all`` call.

        Ids without a user document are left out of the result.
        """
        unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not unique_ids:
            return []

        refs = [self.db.collection(USERS_COLLECTION).document(uid) for uid in unique_ids]
        users = []
        for doc in self.db.get_all(refs):
            if not doc.exists:
                continue
            data = doc.to_dict() or {}
            users.append(
                User(
                    id=doc.id,
                    display_name=smart_display_name(data),
                    avatar_url=avatar_url(data),
                )
            )
        return users
