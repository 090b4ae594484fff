"""
In-memory book of collection invitations.

Tracks who invited whom to which collection and whether the invitation was
accepted. The broadcaster turns changes here into live notifications.
"""

import itertools
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class CollaborationPermission(str, Enum):
    VIEW = "view"
    EDIT = "edit"


class CollaborationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class InvitationError(Exception):
    """Base exception for invitation operations"""
    pass


class InvitationNotFound(InvitationError):
    """Raised when an invitation id is unknown"""
    pass


class InvitationConflict(InvitationError):
    """Raised when the user is already invited to the collection"""
    pass


class InvitationForbidden(InvitationError):
    """Raised when the acting user may not change the invitation"""
    pass


@dataclass
class Invitation:
    id: int
    collection_id: int
    invited_user_id: str
    invited_by_user_id: str
    permission: CollaborationPermission
    status: CollaborationStatus
    created_at: datetime
    collection_name: str = ""
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "collection_id": self.collection_id,
            "collection_name": self.collection_name,
            "invited_user_id": self.invited_user_id,
            "invited_by_user_id": self.invited_by_user_id,
            "permission": self.permission.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class InvitationBook:
    """Thread-safe invitation store keyed by id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._invitations: Dict[int, Invitation] = {}
        self._ids = itertools.count(1)

    def create(
        self,
        collection_id: int,
        invited_user_id: str,
        invited_by_user_id: str,
        permission: CollaborationPermission = CollaborationPermission.VIEW,
        collection_name: str = "",
    ) -> Invitation:
        """
        Invite a user to a collection.

        Raises:
            InvitationForbidden: If a user invites themselves
            InvitationConflict: If the user already has an invitation for the collection
        """
        if invited_user_id == invited_by_user_id:
            raise InvitationForbidden("You cannot invite yourself to a collection")

        with self._lock:
            for existing in self._invitations.values():
                if existing.collection_id == collection_id and existing.invited_user_id == invited_user_id:
                    raise InvitationConflict("User is already invited to this collection")

            invitation = Invitation(
                id=next(self._ids),
                collection_id=collection_id,
                invited_user_id=invited_user_id,
                invited_by_user_id=invited_by_user_id,
                permission=CollaborationPermission(permission),
                status=CollaborationStatus.PENDING,
                created_at=datetime.now(timezone.utc),
                collection_name=collection_name,
            )
            self._invitations[invitation.id] = invitation
            return invitation

    def update_status(self, invitation_id: int, user_id: str, status: CollaborationStatus) -> Invitation:
        """
        Accept or decline an invitation. Only the invited user may do this.

        Raises:
            InvitationNotFound: If the invitation does not exist
            InvitationForbidden: If `user_id` is not the invited user
            ValueError: If `status` is not accepted or declined
        """
        status = CollaborationStatus(status)
        if status == CollaborationStatus.PENDING:
            raise ValueError("Status must be accepted or declined")

        with self._lock:
            invitation = self._invitations.get(invitation_id)
            if invitation is None:
                raise InvitationNotFound(f"Collaboration with ID {invitation_id} not found")
            if invitation.invited_user_id != user_id:
                raise InvitationForbidden("You don't have permission to update this collaboration")

            invitation.status = status
            invitation.updated_at = datetime.now(timezone.utc)
            return invitation

    def delete(self, invitation_id: int, user_id: str) -> Invitation:
        """
        Withdraw an invitation. Only the user who sent it may do this.

        Raises:
            InvitationNotFound: If the invitation does not exist
            InvitationForbidden: If `user_id` did not send the invitation
        """
        with self._lock:
            invitation = self._invitations.get(invitation_id)
            if invitation is None:
                raise InvitationNotFound(f"Collaboration with ID {invitation_id} not found")
            if invitation.invited_by_user_id != user_id:
                raise InvitationForbidden("You don't have permission to delete this collaboration")
            return self._invitations.pop(invitation_id)

    def for_user(self, user_id: str) -> List[Invitation]:
        """Every invitation the user sent or received."""
        with self._lock:
            return [
                i for i in self._invitations.values()
                if user_id in (i.invited_user_id, i.invited_by_user_id)
            ]

    def pending_for(self, user_id: str) -> List[Invitation]:
        with self._lock:
            return [
                i for i in self._invitations.values()
                if i.invited_user_id == user_id and i.status == CollaborationStatus.PENDING
            ]

    def for_collection(self, collection_id: int) -> List[Invitation]:
        with self._lock:
            return [i for i in self._invitations.values() if i.collection_id == collection_id]

    def can_view_collection(self, collection_id: int, user_id: str) -> bool:
        """Inviters into a collection and accepted collaborators may see its invitations."""
        with self._lock:
            invited_others = any(
                i.collection_id == collection_id and i.invited_by_user_id == user_id
                for i in self._invitations.values()
            )
        return invited_others or self.has_access(collection_id, user_id, CollaborationPermission.VIEW)

    def has_access(self, collection_id: int, user_id: str, required: CollaborationPermission) -> bool:
        """True if the user accepted an invitation granting at least `required`."""
        with self._lock:
            for i in self._invitations.values():
                if (
                    i.collection_id == collection_id
                    and i.invited_user_id == user_id
                    and i.status == CollaborationStatus.ACCEPTED
                ):
                    return required == CollaborationPermission.VIEW or i.permission == CollaborationPermission.EDIT
        return False
