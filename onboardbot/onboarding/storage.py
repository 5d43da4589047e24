"""Conversation storage backends for the onboarding flow.

We support an in-memory store (tests, demos) and a Supabase-backed store.
The interface is deliberately minimal so the turn graph and the review
step never care which one they are talking to.
"""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .schemas import PROFILE_TEMPLATE, SENDER_USER, TOPIC_ONBOARD, Conversation, Message


class StorageError(RuntimeError):
    """A create/read/update against the storage service failed."""


def new_profile() -> Dict[str, Any]:
    """Return a fresh, independent copy of the base profile template."""
    return copy.deepcopy(PROFILE_TEMPLATE)


def stamp_messages(messages: Sequence[Message], now: Optional[datetime] = None) -> List[Message]:
    """Give messages strictly increasing ``message_date`` values in caller order."""
    base = now or datetime.now(timezone.utc)
    for i, m in enumerate(messages):
        m.message_date = base + timedelta(microseconds=i)
    return list(messages)


class ConversationStore(Protocol):
    """Minimal interface expected by the turn graph and review step."""

    def get_conversation(self, user_id: str, topic: str = TOPIC_ONBOARD) -> Optional[Conversation]:  # pragma: no cover - interface only
        ...

    def get_or_create_conversation(self, user_id: str, topic: str = TOPIC_ONBOARD) -> Conversation:  # pragma: no cover - interface only
        ...

    def fetch_messages(self, conversation: Conversation) -> List[Message]:  # pragma: no cover - interface only
        ...

    def append_messages(self, conversation: Conversation, messages: Sequence[Message]) -> List[Message]:  # pragma: no cover - interface only
        ...

    def finalize_messages(self, conversation: Conversation, edits: Sequence[Tuple[str, str]]) -> int:  # pragma: no cover - interface only
        ...

    def get_user_profile(self, user_id: str) -> Dict[str, Any]:  # pragma: no cover - interface only
        ...

    def update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - interface only
        ...


class InMemoryConversationStore:
    """Volatile store, useful for tests or ephemeral sessions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._conversations: Dict[Tuple[str, str], Conversation] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._profiles: Dict[str, Dict[str, Any]] = {}

    def get_conversation(self, user_id: str, topic: str = TOPIC_ONBOARD) -> Optional[Conversation]:
        return self._conversations.get((user_id, topic))

    def get_or_create_conversation(self, user_id: str, topic: str = TOPIC_ONBOARD) -> Conversation:
        with self._lock:
            conversation = self._conversations.get((user_id, topic))
            if conversation is None:
                conversation = Conversation(conversation_id=str(uuid.uuid4()), user_id=user_id, topic_type=topic)
                self._conversations[(user_id, topic)] = conversation
                self._messages[conversation.conversation_id] = []
            return conversation

    def fetch_messages(self, conversation: Conversation) -> List[Message]:
        rows = self._messages.get(conversation.conversation_id, [])
        return [copy.copy(m) for m in sorted(rows, key=lambda m: m.message_date)]

    def append_messages(self, conversation: Conversation, messages: Sequence[Message]) -> List[Message]:
        existing = self._messages.get(conversation.conversation_id) or []
        now = datetime.now(timezone.utc)
        if existing and existing[-1].message_date and existing[-1].message_date >= now:
            now = existing[-1].message_date + timedelta(microseconds=1)

        stored = []
        for m in stamp_messages([copy.copy(m) for m in messages], now=now):
            m.conversation_id = conversation.conversation_id
            m.user_id = m.user_id or conversation.user_id
            m.message_id = m.message_id or str(uuid.uuid4())
            stored.append(m)
        with self._lock:
            self._messages.setdefault(conversation.conversation_id, []).extend(stored)
        return [copy.copy(m) for m in stored]

    def finalize_messages(self, conversation: Conversation, edits: Sequence[Tuple[str, str]]) -> int:
        # Already-final rows are matched too, so a second review can re-edit them.
        touched = set()
        with self._lock:
            rows = self._messages.get(conversation.conversation_id, [])
            for original, new_text in edits:
                for i, m in enumerate(rows):
                    if i not in touched and m.sender_type == SENDER_USER and m.message == original:
                        m.message = new_text
                        m.is_draft = False
                        touched.add(i)
        return len(touched)

    def get_user_profile(self, user_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self._profiles.get(user_id) or new_profile())

    def update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            profile = self._profiles.get(user_id) or new_profile()
            profile.update(copy.deepcopy(fields))
            self._profiles[user_id] = profile
            return copy.deepcopy(profile)


class SupabaseConversationStore:
    """Store backed by Supabase tables ``conversations``, ``messages`` and ``user_info``.

    Every SDK error is re-raised as :class:`StorageError` so callers only
    need to handle one exception type.
    """

    def __init__(self, client: Any, profile_table: str = "user_info") -> None:
        self.client = client
        self.profile_table = profile_table

    def _execute(self, query: Any, what: str) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as e:
            raise StorageError(f"Failed to {what}: {e}") from e
        return list(getattr(result, "data", None) or [])

    @staticmethod
    def _to_message(row: Dict[str, Any]) -> Message:
        date = row.get("message_date")
        if isinstance(date, str):
            date = datetime.fromisoformat(date.replace("Z", "+00:00"))
        return Message(
            conversation_id=row["conversation_id"],
            sender_type=row["sender_type"],
            message=row["message"],
            message_type=row.get("message_type") or "",
            is_draft=bool(row.get("is_draft", True)),
            topic=row.get("topic") or "",
            user_id=row.get("user_id"),
            message_date=date,
            message_id=row.get("message_id"),
        )

    def get_conversation(self, user_id: str, topic: str = TOPIC_ONBOARD) -> Optional[Conversation]:
        rows = self._execute(
            self.client.table("conversations")
            .select("conversation_id, user_id, topic_type")
            .eq("user_id", user_id)
            .eq("topic_type", topic)
            .limit(1),
            "fetch conversation",
        )
        if not rows:
            return None
        return Conversation(conversation_id=str(rows[0]["conversation_id"]), user_id=user_id, topic_type=topic)

    def get_or_create_conversation(self, user_id: str, topic: str = TOPIC_ONBOARD) -> Conversation:
        conversation = self.get_conversation(user_id, topic)
        if conversation is not None:
            return conversation
        rows = self._execute(
            self.client.table("conversations").insert({"user_id": user_id, "topic_type": topic}),
            "create conversation",
        )
        if not rows:
            raise StorageError("Failed to create conversation: no row returned")
        return Conversation(conversation_id=str(rows[0]["conversation_id"]), user_id=user_id, topic_type=topic)

    def fetch_messages(self, conversation: Conversation) -> List[Message]:
        rows = self._execute(
            self.client.table("messages")
            .select("*")
            .eq("conversation_id", conversation.conversation_id)
            .order("message_date", desc=False),
            "fetch messages",
        )
        return [self._to_message(r) for r in rows]

    def append_messages(self, conversation: Conversation, messages: Sequence[Message]) -> List[Message]:
        stamped = stamp_messages([copy.copy(m) for m in messages])
        rows = []
        for m in stamped:
            m.conversation_id = conversation.conversation_id
            m.user_id = m.user_id or conversation.user_id
            rows.append(m.to_row())
        inserted = self._execute(self.client.table("messages").insert(rows), "store messages")
        return [self._to_message(r) for r in inserted] or stamped

    def finalize_messages(self, conversation: Conversation, edits: Sequence[Tuple[str, str]]) -> int:
        updated = 0
        for original, new_text in edits:
            rows = self._execute(
                self.client.table("messages")
                .update({"message": new_text, "is_draft": False})
                .eq("conversation_id", conversation.conversation_id)
                .eq("sender_type", SENDER_USER)
                .eq("message", original),
                "update message",
            )
            updated += len(rows)
        return updated

    def get_user_profile(self, user_id: str) -> Dict[str, Any]:
        rows = self._execute(
            self.client.table(self.profile_table)
            .select("grade_level, interests, subject_comfort, onboarded")
            .eq("id", user_id)
            .limit(1),
            "fetch user info",
        )
        profile = new_profile()
        if rows:
            profile.update({k: v for k, v in rows[0].items() if v is not None})
        return profile

    def update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._execute(
            self.client.table(self.profile_table).update(fields).eq("id", user_id),
            "update user info",
        )
        return self.get_user_profile(user_id)
