"""
Collaboration API - invitations over REST, presence over WebSocket.

Handles:
- Invitation lifecycle (create, accept/decline) with live notifications
- The collaboration WebSocket: connect, join/leave collection groups, disconnect
"""

import json
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from auth import get_current_user, identity_from_token
from collab import broadcaster as broadcaster_module
from collab import (
    CollabEvent,
    CollaborationBroadcaster,
    CollaborationPermission,
    CollaborationStatus,
    EventName,
    GroupKey,
    InvitationBook,
    InvitationConflict,
    InvitationForbidden,
    InvitationNotFound,
)
from config import ALLOW_ANONYMOUS_CONNECTIONS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/collaboration", tags=["collaboration"])


# ─────────────────────────────────────────────────────────────────────────────
# Pydantic Models
# ─────────────────────────────────────────────────────────────────────────────

class CreateCollaborationRequest(BaseModel):
    collection_id: int
    invited_user_id: str
    permission: CollaborationPermission = CollaborationPermission.VIEW
    collection_name: str = ""


class UpdateCollaborationStatusRequest(BaseModel):
    collaboration_id: int
    status: CollaborationStatus


# ─────────────────────────────────────────────────────────────────────────────
# Dependencies
# ─────────────────────────────────────────────────────────────────────────────

invitation_book = InvitationBook()


def get_invitation_book() -> InvitationBook:
    return invitation_book


def get_broadcaster() -> CollaborationBroadcaster:
    if broadcaster_module.collab_broadcaster is None:
        raise HTTPException(status_code=503, detail="Collaboration broadcaster not initialized")
    return broadcaster_module.collab_broadcaster


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────

@router.post("")
async def create_collaboration(
    data: CreateCollaborationRequest,
    user_id: str = Depends(get_current_user),
    book: InvitationBook = Depends(get_invitation_book),
    broadcaster: CollaborationBroadcaster = Depends(get_broadcaster),
):
    """Invite a user to a collection and notify them if they are online."""
    logger.info(f"Creating collaboration for collection {data.collection_id} with user {data.invited_user_id}")
    try:
        invitation = book.create(
            collection_id=data.collection_id,
            invited_user_id=data.invited_user_id,
            invited_by_user_id=user_id,
            permission=data.permission,
            collection_name=data.collection_name,
        )
    except InvitationForbidden as e:
        raise HTTPException(status_code=403, detail=str(e))
    except InvitationConflict as e:
        raise HTTPException(status_code=409, detail=str(e))

    broadcaster.notify_user(
        invitation.invited_user_id,
        CollabEvent(EventName.RECEIVE_INVITATION, invitation.to_dict()),
    )
    return {"success": True, "data": invitation.to_dict(), "message": "Collaboration invitation sent successfully"}


@router.put("/status")
async def update_collaboration_status(
    data: UpdateCollaborationStatusRequest,
    user_id: str = Depends(get_current_user),
    book: InvitationBook = Depends(get_invitation_book),
    broadcaster: CollaborationBroadcaster = Depends(get_broadcaster),
):
    """Accept or decline an invitation and notify whoever sent it."""
    try:
        invitation = book.update_status(data.collaboration_id, user_id, data.status)
    except InvitationNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvitationForbidden as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    broadcaster.notify_user(
        invitation.invited_by_user_id,
        CollabEvent(EventName.RECEIVE_INVITATION_RESPONSE, invitation.to_dict()),
    )
    return {
        "success": True,
        "data": invitation.to_dict(),
        "message": f"Collaboration status updated to {invitation.status.value}",
    }


@router.get("/pending")
async def get_pending_invitations(
    user_id: str = Depends(get_current_user),
    book: InvitationBook = Depends(get_invitation_book),
):
    return {"invitations": [i.to_dict() for i in book.pending_for(user_id)]}


@router.get("/user")
async def get_user_collaborations(
    user_id: str = Depends(get_current_user),
    book: InvitationBook = Depends(get_invitation_book),
):
    """Invitations the current user sent or received."""
    return {"collaborations": [i.to_dict() for i in book.for_user(user_id)]}


@router.get("/collection/{collection_id}")
async def get_collection_collaborations(
    collection_id: int,
    user_id: str = Depends(get_current_user),
    book: InvitationBook = Depends(get_invitation_book),
):
    """Invitations into a collection, for its inviters and accepted collaborators."""
    if not book.can_view_collection(collection_id, user_id):
        raise HTTPException(
            status_code=403,
            detail="You don't have permission to view collaborations for this collection",
        )
    return {"collaborations": [i.to_dict() for i in book.for_collection(collection_id)]}


@router.delete("/{collaboration_id}")
async def delete_collaboration(
    collaboration_id: int,
    user_id: str = Depends(get_current_user),
    book: InvitationBook = Depends(get_invitation_book),
):
    """Withdraw an invitation the current user sent."""
    try:
        book.delete(collaboration_id, user_id)
    except InvitationNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvitationForbidden as e:
        raise HTTPException(status_code=403, detail=str(e))

    logger.info(f"Collaboration {collaboration_id} deleted by {user_id}")
    return {"success": True, "message": "Collaboration deleted successfully"}


@router.get("/presence/{collection_id}")
async def get_collection_presence(
    collection_id: int,
    user_id: str = Depends(get_current_user),
    broadcaster: CollaborationBroadcaster = Depends(get_broadcaster),
):
    """Number of live connections currently looking at a collection."""
    members = broadcaster.registry.members_of(GroupKey.collection(collection_id))
    return {"collection_id": collection_id, "connections": len(members)}


# ─────────────────────────────────────────────────────────────────────────────
# WebSocket
# ─────────────────────────────────────────────────────────────────────────────

async def serve_collaboration_socket(websocket: WebSocket, broadcaster: CollaborationBroadcaster):
    """
    Run one collaboration WebSocket connection until the client goes away.

    The client authenticates with `?access_token=<jwt>` and then sends
    `{"type": "join_collection" | "leave_collection", "collection_id": ...}`.
    """
    user_id = identity_from_token(websocket.query_params.get("access_token"))
    if not user_id and not ALLOW_ANONYMOUS_CONNECTIONS:
        await websocket.close(code=1008, reason="Authentication required")
        return

    await websocket.accept()
    connection_id = str(uuid.uuid4())
    await broadcaster.connect(connection_id, user_id, websocket.send_json)
    broadcaster.send_to(connection_id, {"type": "connected", "connection_id": connection_id, "user_id": user_id})

    try:
        while True:
            text = await websocket.receive_text()
            reply = handle_client_message(broadcaster, connection_id, text)
            broadcaster.send_to(connection_id, reply)
    except WebSocketDisconnect:
        logger.info(f"Client {connection_id} disconnected")
    finally:
        await broadcaster.disconnect(connection_id, user_id)


def parse_collection_id(value: Any) -> Optional[int]:
    """Collection ids are integers, given as a number or a string of digits."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return None


def handle_client_message(broadcaster: CollaborationBroadcaster, connection_id: str, text: str) -> Dict[str, Any]:
    """Apply one client message and return the reply to send back."""
    try:
        message = json.loads(text)
    except json.JSONDecodeError:
        return {"type": "error", "message": "Invalid JSON"}
    if not isinstance(message, dict):
        return {"type": "error", "message": "Message must be an object"}

    msg_type = message.get("type")
    if msg_type not in ("join_collection", "leave_collection"):
        return {"type": "error", "message": f"Unknown message type: {msg_type}"}
    if message.get("collection_id") in (None, ""):
        return {"type": "error", "message": "collection_id is required"}
    collection_id = parse_collection_id(message["collection_id"])
    if collection_id is None:
        return {"type": "error", "message": "collection_id must be an integer"}

    if msg_type == "join_collection":
        group = broadcaster.join_collection(connection_id, collection_id)
        return {"type": "joined_collection", "collection_id": group.id}

    group = broadcaster.leave_collection(connection_id, collection_id)
    return {"type": "left_collection", "collection_id": group.id}
