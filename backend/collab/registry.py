"""
Presence Registry - which live connections are subscribed to which groups.

A group is either a user's personal group (every connection the user has open)
or a collection's group (every connection looking at that collection). Keys
are tagged so a user id can never collide with a collection id.

All mutations, including the reverse index kept per connection, happen under
one lock, so readers never see a connection that is in a group but missing
from its own membership set (or the other way around).
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Union

logger = logging.getLogger(__name__)


class GroupKind(str, Enum):
    USER = "user"
    COLLECTION = "collection"


@dataclass(frozen=True)
class GroupKey:
    """Tagged group identifier, rendered as `user:<id>` or `collection:<id>`."""
    kind: GroupKind
    id: str

    @classmethod
    def user(cls, user_id) -> "GroupKey":
        return cls(GroupKind.USER, str(user_id))

    @classmethod
    def collection(cls, collection_id) -> "GroupKey":
        return cls(GroupKind.COLLECTION, str(collection_id))

    @classmethod
    def parse(cls, text: str) -> "GroupKey":
        kind, sep, ident = text.partition(":")
        if not sep or not ident:
            raise ValueError(f"Invalid group key: {text!r}")
        return cls(GroupKind(kind), ident)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


GroupRef = Union[GroupKey, str]


def as_group_key(group: GroupRef) -> GroupKey:
    return group if isinstance(group, GroupKey) else GroupKey.parse(group)


class PresenceRegistry:
    """
    Process-wide table of group memberships.

    Operations are idempotent: joining a group twice or leaving a group that was
    never joined does nothing. Nothing here raises for membership changes.
    """

    def __init__(self):
        self._lock = threading.RLock()
        # group -> connection ids
        self._groups: Dict[GroupKey, Set[str]] = {}
        # connection id -> groups (reverse index, used on disconnect)
        self._memberships: Dict[str, Set[GroupKey]] = {}
        # connection id -> user bound at connect time
        self._connection_user: Dict[str, str] = {}

    # ─────────────────────────────────────────────────────────────────────────
    # Mutations (callers hold no lock, each method is one atomic unit)
    # ─────────────────────────────────────────────────────────────────────────

    def on_connect(self, connection_id: str, user_id: Optional[str]) -> None:
        """Add the connection to `user:<user_id>`. Anonymous connections are not grouped."""
        if not user_id:
            return
        with self._lock:
            previous = self._connection_user.get(connection_id)
            if previous is not None and previous != user_id:
                self._remove(connection_id, GroupKey.user(previous))
            self._connection_user[connection_id] = user_id
            self._add(connection_id, GroupKey.user(user_id))

    def on_disconnect(self, connection_id: str, user_id: Optional[str] = None) -> List[GroupKey]:
        """
        Remove the connection from its user group and every collection group.

        Returns:
            The collection groups the connection was still a member of
        """
        with self._lock:
            groups = self._memberships.pop(connection_id, set())
            if user_id:
                groups.add(GroupKey.user(user_id))
            for group in groups:
                self._discard_from_group(connection_id, group)
            self._connection_user.pop(connection_id, None)

        return sorted(
            (g for g in groups if g.kind == GroupKind.COLLECTION),
            key=lambda g: g.id,
        )

    def join_collection(self, connection_id: str, collection_id) -> bool:
        """Add the connection to `collection:<id>`. Returns False if it was already there."""
        group = GroupKey.collection(collection_id)
        with self._lock:
            return self._add(connection_id, group)

    def leave_collection(self, connection_id: str, collection_id) -> bool:
        """Remove the connection from `collection:<id>`. Returns False if it wasn't there."""
        group = GroupKey.collection(collection_id)
        with self._lock:
            return self._remove(connection_id, group)

    # ─────────────────────────────────────────────────────────────────────────
    # Reads (snapshots)
    # ─────────────────────────────────────────────────────────────────────────

    def members_of(self, group: GroupRef) -> FrozenSet[str]:
        key = as_group_key(group)
        with self._lock:
            return frozenset(self._groups.get(key, ()))

    def groups_of(self, connection_id: str) -> FrozenSet[GroupKey]:
        with self._lock:
            return frozenset(self._memberships.get(connection_id, ()))

    def user_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._connection_user.get(connection_id)

    def get_active_groups(self) -> Dict[str, int]:
        """All non-empty groups with their connection counts."""
        with self._lock:
            return {str(group): len(members) for group, members in self._groups.items()}

    # ─────────────────────────────────────────────────────────────────────────
    # Internals (lock must be held)
    # ─────────────────────────────────────────────────────────────────────────

    def _add(self, connection_id: str, group: GroupKey) -> bool:
        members = self._groups.setdefault(group, set())
        if connection_id in members:
            return False
        members.add(connection_id)
        self._memberships.setdefault(connection_id, set()).add(group)
        return True

    def _remove(self, connection_id: str, group: GroupKey) -> bool:
        if not self._discard_from_group(connection_id, group):
            return False
        groups = self._memberships.get(connection_id)
        if groups is not None:
            groups.discard(group)
            if not groups:
                del self._memberships[connection_id]
        return True

    def _discard_from_group(self, connection_id: str, group: GroupKey) -> bool:
        members = self._groups.get(group)
        if not members or connection_id not in members:
            return False
        members.discard(connection_id)
        if not members:
            del self._groups[group]
            logger.debug(f"Group {group}: no active connections, removed")
        return True
