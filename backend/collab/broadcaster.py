"""
Collaboration Broadcaster - pushes collaboration events to live connections.

Drives the PresenceRegistry from connection lifecycle events (connect, join,
leave, disconnect) and fans named events out to everyone in a user or
collection group.

Delivery is fire-and-forget. Each connection has exactly one delivery channel
(a queue drained by one sender task), so events addressed to the same
connection arrive in the order they were sent. Events for a connection that has
gone away are dropped.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .events import CollabEvent, EventName
from .registry import GroupKey, GroupRef, PresenceRegistry, as_group_key

logger = logging.getLogger(__name__)

# Pushes one JSON-able message to the client (e.g. WebSocket.send_json)
Sender = Callable[[Dict[str, Any]], Awaitable[None]]

# Messages a connection may have waiting before it is treated as gone
MAX_PENDING_MESSAGES = 256


class ConnectionChannel:
    """Ordered outbound queue for a single live connection."""

    def __init__(self, connection_id: str, sender: Sender, max_pending: int = MAX_PENDING_MESSAGES):
        self.connection_id = connection_id
        self._sender = sender
        self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=max_pending)
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self):
        self._task = asyncio.create_task(self._run())

    def put(self, message: Dict[str, Any]) -> bool:
        """Queue a message. Returns False if the channel no longer delivers."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            # Client stopped reading, stop buffering for it
            logger.warning(f"Connection {self.connection_id} is not keeping up, closing its channel")
            self._closed = True
            return False
        return True

    async def _run(self):
        while True:
            message = await self._queue.get()
            try:
                await self._sender(message)
            except Exception as e:
                # Client went away mid-delivery, the rest of the queue is dropped
                logger.debug(f"Delivery to {self.connection_id} failed, closing channel: {e}")
                self._closed = True
                return

    async def close(self):
        self._closed = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None


class CollaborationBroadcaster:
    """
    Bridges collaboration events to PresenceRegistry-resolved recipients.

    Must be used from a single event loop; `notify` only enqueues and never
    waits on the network.
    """

    def __init__(self, registry: Optional[PresenceRegistry] = None, max_pending: int = MAX_PENDING_MESSAGES):
        self.registry = registry or PresenceRegistry()
        self.max_pending = max_pending
        # connection id -> delivery channel
        self._channels: Dict[str, ConnectionChannel] = {}

    # ─────────────────────────────────────────────────────────────────────────
    # Connection lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    async def connect(self, connection_id: str, user_id: Optional[str], sender: Sender):
        """Open a delivery channel and add the connection to its user's group."""
        channel = ConnectionChannel(connection_id, sender, self.max_pending)
        channel.start()
        previous = self._channels.pop(connection_id, None)
        self._channels[connection_id] = channel
        if previous:
            await previous.close()

        self.registry.on_connect(connection_id, user_id)
        logger.info(f"Connection {connection_id} opened for user {user_id or 'anonymous'}")

    async def disconnect(self, connection_id: str, user_id: Optional[str] = None):
        """Drop the connection from every group and tell its collections it left."""
        user_id = user_id or self.registry.user_of(connection_id)
        channel = self._channels.pop(connection_id, None)
        left = self.registry.on_disconnect(connection_id, user_id)
        if channel:
            await channel.close()

        for group in left:
            self.notify(self._presence_event(EventName.COLLABORATOR_LEFT, group, user_id), group)
        logger.info(f"Connection {connection_id} closed for user {user_id or 'anonymous'}")

    def join_collection(self, connection_id: str, collection_id) -> GroupKey:
        group = GroupKey.collection(collection_id)
        if self.registry.join_collection(connection_id, collection_id):
            user_id = self.registry.user_of(connection_id)
            logger.info(f"User {user_id} joined collection group {collection_id}")
            self.notify(
                self._presence_event(EventName.COLLABORATOR_JOINED, group, user_id),
                group,
                exclude=connection_id,
            )
        return group

    def leave_collection(self, connection_id: str, collection_id) -> GroupKey:
        group = GroupKey.collection(collection_id)
        if self.registry.leave_collection(connection_id, collection_id):
            user_id = self.registry.user_of(connection_id)
            logger.info(f"User {user_id} left collection group {collection_id}")
            self.notify(self._presence_event(EventName.COLLABORATOR_LEFT, group, user_id), group)
        return group

    # ─────────────────────────────────────────────────────────────────────────
    # Delivery
    # ─────────────────────────────────────────────────────────────────────────

    def notify(self, event: CollabEvent, target: GroupRef, exclude: Optional[str] = None) -> int:
        """
        Queue `event` for every connection in `target`.

        Args:
            event: The event to deliver
            target: GroupKey or its string form (`user:<id>`, `collection:<id>`)
            exclude: Connection id to skip, usually the one that caused the event

        Returns:
            Number of connections the event was queued for
        """
        message = event.to_message()
        delivered = 0
        for connection_id in self.registry.members_of(as_group_key(target)):
            if connection_id == exclude:
                continue
            channel = self._channels.get(connection_id)
            if channel is None or not channel.put(message):
                continue
            delivered += 1
        return delivered

    def send_to(self, connection_id: str, message: Dict[str, Any]) -> bool:
        """Queue a raw message for one connection, behind anything already queued for it."""
        channel = self._channels.get(connection_id)
        return channel is not None and channel.put(message)

    def notify_user(self, user_id: str, event: CollabEvent) -> int:
        return self.notify(event, GroupKey.user(user_id))

    def notify_collection(self, collection_id, event: CollabEvent) -> int:
        return self.notify(event, GroupKey.collection(collection_id))

    def get_active_connections(self) -> int:
        return len(self._channels)

    async def close_all(self):
        """Close every delivery channel (server shutdown)."""
        for connection_id in list(self._channels):
            await self.disconnect(connection_id)

    @staticmethod
    def _presence_event(name: EventName, group: GroupKey, user_id: Optional[str]) -> CollabEvent:
        return CollabEvent(name, {"collection_id": group.id, "user_id": user_id})


# Global instance
collab_broadcaster: Optional[CollaborationBroadcaster] = None


def initialize_collab_broadcaster(registry: Optional[PresenceRegistry] = None) -> CollaborationBroadcaster:
    """Initialize the global collaboration broadcaster."""
    global collab_broadcaster
    collab_broadcaster = CollaborationBroadcaster(registry)
    return collab_broadcaster
