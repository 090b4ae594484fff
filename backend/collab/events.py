"""Named events pushed to collaboration clients."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class EventName(str, Enum):
    RECEIVE_INVITATION = "ReceiveInvitation"                   # to the invited user
    RECEIVE_INVITATION_RESPONSE = "ReceiveInvitationResponse"  # to the inviter
    COLLABORATOR_JOINED = "CollaboratorJoined"                 # to a collection group
    COLLABORATOR_LEFT = "CollaboratorLeft"                     # to a collection group


@dataclass(frozen=True)
class CollabEvent:
    """A named event with an arbitrary JSON payload."""
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        name = self.name.value if isinstance(self.name, EventName) else self.name
        return {"type": "event", "event": name, "payload": self.payload}
