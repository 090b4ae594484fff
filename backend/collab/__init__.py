"""
Real-time collaboration presence module.

This module provides:
- PresenceRegistry: which live connections belong to which user / collection group
- CollaborationBroadcaster: connection lifecycle and event fan-out to groups
- InvitationBook: collection invitations that trigger notifications
"""

from .broadcaster import CollaborationBroadcaster, initialize_collab_broadcaster
from .events import CollabEvent, EventName
from .invitations import (
    CollaborationPermission,
    CollaborationStatus,
    Invitation,
    InvitationBook,
    InvitationConflict,
    InvitationError,
    InvitationForbidden,
    InvitationNotFound,
)
from .registry import GroupKey, GroupKind, PresenceRegistry

__all__ = [
    'CollaborationBroadcaster',
    'initialize_collab_broadcaster',
    'CollabEvent',
    'EventName',
    'CollaborationPermission',
    'CollaborationStatus',
    'Invitation',
    'InvitationBook',
    'InvitationConflict',
    'InvitationError',
    'InvitationForbidden',
    'InvitationNotFound',
    'GroupKey',
    'GroupKind',
    'PresenceRegistry',
]
