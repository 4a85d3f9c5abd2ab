"""Firestore implementation of the group and membership store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud.firestore import FieldFilter

from stepladder.core.constants import (
    FIRESTORE_BATCH_LIMIT,
    GROUPS_COLLECTION,
    JOIN_CODES_COLLECTION,
    MEMBERSHIPS_COLLECTION,
)
from stepladder.errors import InvariantError
from stepladder.group.models import (
    Group,
    GroupDocument,
    GroupMembership,
    MemberRole,
    MembershipDocument,
)
from stepladder.group.repository import DuplicateRecordError
from stepladder.group.services.periods import parse_period_type

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def membership_doc_id(group_id: str, user_id: str) -> str:
    """Return the document id that makes (group, user) unique."""
    return f"{group_id}_{user_id}"


def _group_to_data(group: Group) -> dict[str, Any]:
    return {
        "name": group.name,
        "nameLower": group.name.lower(),
        "description": group.description,
        "creatorId": group.creator_id,
        "isPublic": group.is_public,
        "joinCode": group.join_code,
        "periodType": group.period_type.value,
        "createdAt": group.created_at,
    }


def _group_from_doc(doc: DocumentSnapshot) -> Group | None:
    if not doc.exists:
        return None
    data = cast(GroupDocument, doc.to_dict() or {})
    return Group(
        id=doc.id,
        name=data.get("name", ""),
        description=data.get("description"),
        creator_id=data.get("creatorId", ""),
        is_public=bool(data.get("isPublic", False)),
        join_code=data.get("joinCode"),
        period_type=parse_period_type(data.get("periodType", "weekly")),
        member_count=int(data.get("memberCount", 0)),
        created_at=data.get("createdAt") or EPOCH,
    )


def _membership_to_data(membership: GroupMembership) -> dict[str, Any]:
    return {
        "groupId": membership.group_id,
        "userId": membership.user_id,
        "role": membership.role.value,
        "joinedAt": membership.joined_at,
    }


def _membership_from_doc(doc: DocumentSnapshot) -> GroupMembership | None:
    if not doc.exists:
        return None
    data = cast(MembershipDocument, doc.to_dict() or {})
    return GroupMembership(
        id=doc.id,
        group_id=data["groupId"],
        user_id=data["userId"],
        role=MemberRole(data.get("role", MemberRole.MEMBER.value)),
        joined_at=data.get("joinedAt") or EPOCH,
    )


class FirestoreGroupRepository:
    """Group store backed by the ``groups``, ``groupMemberships`` and
    ``joinCodes`` collections.

    Join codes and memberships are written with ``create`` so Firestore
    rejects duplicates; that rejection surfaces as ``DuplicateRecordError``.
    The group's ``memberCount`` moves in the same batch as each membership
    write.
    """

    def __init__(self, db: Client) -> None:
        self.db = db

    def _group_ref(self, group_id: str) -> DocumentReference:
        return self.db.collection(GROUPS_COLLECTION).document(group_id)

    def _membership_ref(self, group_id: str, user_id: str) -> DocumentReference:
        return self.db.collection(MEMBERSHIPS_COLLECTION).document(
            membership_doc_id(group_id, user_id)
        )

    def _code_ref(self, join_code: str) -> DocumentReference:
        return self.db.collection(JOIN_CODES_COLLECTION).document(join_code)

    # Groups

    def get_group(self, group_id: str) -> Group | None:
        return _group_from_doc(self._group_ref(group_id).get())

    def get_group_by_join_code(self, join_code: str) -> Group | None:
        code_doc = self._code_ref(join_code).get()
        if not code_doc.exists:
            return None
        group_id = (code_doc.to_dict() or {}).get("groupId")
        if not group_id:
            return None
        group = self.get_group(group_id)
        # A stale reservation must not open another group.
        if group is None or group.join_code != join_code:
            return None
        return group

    def create_group(self, group: Group, owner: GroupMembership) -> Group:
        batch = self.db.batch()
        data = {**_group_to_data(group), "memberCount": 1}
        batch.create(self._group_ref(group.id), data)
        owner_ref = self._membership_ref(group.id, owner.user_id)
        batch.create(owner_ref, _membership_to_data(owner))
        if group.join_code:
            batch.create(self._code_ref(group.join_code), {"groupId": group.id})
        try:
            batch.commit()
        except AlreadyExists as e:
            raise DuplicateRecordError(
                "Join code already in use.", key=group.join_code
            ) from e
        owner.id = owner_ref.id
        group.member_count = 1
        return group

    def update_group(self, group: Group) -> Group:
        group_ref = self._group_ref(group.id)
        current = group_ref.get()
        old_code = (current.to_dict() or {}).get("joinCode") if current.exists else None

        data = _group_to_data(group)
        data.pop("createdAt")
        data.pop("creatorId")
        batch = self.db.batch()
        batch.update(group_ref, data)
        if group.join_code != old_code:
            if group.join_code:
                batch.create(self._code_ref(group.join_code), {"groupId": group.id})
            if old_code:
                batch.delete(self._code_ref(old_code))
        try:
            batch.commit()
        except AlreadyExists as e:
            raise DuplicateRecordError(
                "Join code already in use.", key=group.join_code
            ) from e

        updated = self.get_group(group.id)
        return updated if updated is not None else group

    def delete_group(self, group_id: str) -> None:
        group_ref = self._group_ref(group_id)
        group_doc = group_ref.get()
        join_code = (group_doc.to_dict() or {}).get("joinCode") if group_doc.exists else None

        memberships = list(
            self.db.collection(MEMBERSHIPS_COLLECTION)
            .where(filter=FieldFilter("groupId", "==", group_id))
            .stream()
        )
        for start in range(0, len(memberships), FIRESTORE_BATCH_LIMIT):
            batch = self.db.batch()
            for doc in memberships[start : start + FIRESTORE_BATCH_LIMIT]:
                batch.delete(doc.reference)
            batch.commit()

        batch = self.db.batch()
        if join_code:
            batch.delete(self._code_ref(join_code))
        batch.delete(group_ref)
        batch.commit()

    # Memberships

    def get_membership(self, group_id: str, user_id: str) -> GroupMembership | None:
        return _membership_from_doc(self._membership_ref(group_id, user_id).get())

    def add_member(self, membership: GroupMembership) -> GroupMembership:
        data = _membership_to_data(membership)
        ref = self._membership_ref(membership.group_id, membership.user_id)
        batch = self.db.batch()
        batch.create(ref, data)
        batch.update(
            self._group_ref(membership.group_id),
            {"memberCount": firestore.Increment(1)},
        )
        try:
            batch.commit()
        except AlreadyExists as e:
            raise DuplicateRecordError(
                "Membership already exists.", key=ref.id
            ) from e
        membership.id = ref.id
        return membership

    def remove_member(self, group_id: str, user_id: str) -> None:
        batch = self.db.batch()
        batch.delete(
            self._membership_ref(group_id, user_id),
            option=self.db.write_option(exists=True),
        )
        batch.update(self._group_ref(group_id), {"memberCount": firestore.Increment(-1)})
        try:
            batch.commit()
        except NotFound:
            # Already gone; the count was never incremented for it.
            return

    def update_member_role(
        self, group_id: str, user_id: str, role: MemberRole
    ) -> GroupMembership:
        ref = self._membership_ref(group_id, user_id)
        ref.update({"role": role.value})
        membership = _membership_from_doc(ref.get())
        if membership is None:
            raise InvariantError(
                f"Membership of {user_id} in group {group_id} vanished after update."
            )
        return membership

    def transfer_ownership(
        self, group_id: str, from_user_id: str, to_user_id: str
    ) -> None:
        batch = self.db.batch()
        batch.update(
            self._membership_ref(group_id, from_user_id),
            {"role": MemberRole.ADMIN.value},
        )
        batch.update(
            self._membership_ref(group_id, to_user_id),
            {"role": MemberRole.OWNER.value},
        )
        batch.commit()

    def get_members(self, group_id: str) -> list[GroupMembership]:
        docs = (
            self.db.collection(MEMBERSHIPS_COLLECTION)
            .where(filter=FieldFilter("groupId", "==", group_id))
            .stream()
        )
        members = [m for m in map(_membership_from_doc, docs) if m is not None]
        members.sort(key=lambda m: m.joined_at)
        return members

    def get_user_groups(self, user_id: str) -> list[tuple[Group, MemberRole]]:
        """Fetch a user's memberships, then all their groups in one batch."""
        docs = (
            self.db.collection(MEMBERSHIPS_COLLECTION)
            .where(filter=FieldFilter("userId", "==", user_id))
            .stream()
        )
        memberships = [m for m in map(_membership_from_doc, docs) if m is not None]
        if not memberships:
            return []

        group_refs = [self._group_ref(m.group_id) for m in memberships]
        groups = {}
        for doc in self.db.get_all(group_refs):
            group = _group_from_doc(doc)
            if group is not None:
                groups[group.id] = group

        return [
            (groups[m.group_id], m.role) for m in memberships if m.group_id in groups
        ]

    # Discovery

    def list_public_groups(self, limit: int) -> list[Group]:
        docs = (
            self.db.collection(GROUPS_COLLECTION)
            .where(filter=FieldFilter("isPublic", "==", True))
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(limit)
            .stream()
        )
        return [g for g in map(_group_from_doc, docs) if g is not None]

    def search_public_groups(self, query: str, limit: int) -> list[Group]:
        term = query.lower()
        docs = (
            self.db.collection(GROUPS_COLLECTION)
            .where(filter=FieldFilter("isPublic", "==", True))
            .where(filter=FieldFilter("nameLower", ">=", term))
            .where(filter=FieldFilter("nameLower", "<=", term + "\uf8ff"))
            .limit(limit)
            .stream()
        )
        return [g for g in map(_group_from_doc, docs) if g is not None]
