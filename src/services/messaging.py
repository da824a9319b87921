"""Messaging service - conversation list, threads and realtime reconciliation."""

import asyncio
from collections import Counter
from typing import Any, Optional

from pydantic import ValidationError
from supabase import AsyncClient

from src.models.message import Conversation, Message, Profile
from src.services.supabase_client import (
    get_async_supabase_client,
    get_messages_for_user,
    get_profiles,
    get_thread,
    insert_message,
    mark_message_read,
    mark_messages_read,
)
from src.utils.errors import MessagingError
from src.utils.logging import (
    get_structured_logger,
    log_timing,
    mask_user_id,
    sanitize_message_text,
    timed,
)

logger = get_structured_logger(__name__)

PREVIEW_LENGTH = 50


def preview_text(content: str, length: int = PREVIEW_LENGTH) -> str:
    """First ``length`` characters of a message, with an ellipsis when cut."""
    content = content or ""
    return content[:length] + ("..." if len(content) > length else "")


def sort_conversations(conversations: list[Conversation]) -> list[Conversation]:
    return sorted(conversations, key=lambda conversation: conversation.last_message_time, reverse=True)


def build_conversations(
    messages: list[Message],
    user_id: str,
    profiles: dict[str, Profile],
) -> list[Conversation]:
    """Collapse a user's messages into one conversation per counterpart, newest first."""
    latest: dict[str, Message] = {}
    unread: Counter = Counter()

    for message in sorted(messages, key=lambda m: m.created_at, reverse=True):
        other_id = message.counterpart(user_id)
        latest.setdefault(other_id, message)
        if message.receiver_id == user_id and not message.is_read:
            unread[other_id] += 1

    conversations = []
    for other_id, message in latest.items():
        profile = profiles.get(other_id)
        if profile is None:
            logger.warning("No profile for conversation counterpart", other_user_id=mask_user_id(other_id))
            continue
        conversations.append(Conversation(
            id=other_id,
            other_user_id=other_id,
            other_user_name=profile.display_name,
            other_user_avatar=profile.avatar_url or "",
            last_message=preview_text(message.content),
            last_message_time=message.created_at,
            unread_count=unread[other_id],
        ))
    return sort_conversations(conversations)


def filter_conversations(conversations: list[Conversation], search: str) -> list[Conversation]:
    """Conversations whose counterpart name contains ``search`` (case-insensitive)."""
    needle = (search or "").lower()
    return [c for c in conversations if needle in c.other_user_name.lower()]


def apply_message_event(
    conversations: list[Conversation],
    message: Message,
    user_id: str,
    profiles: dict[str, Profile],
) -> Optional[list[Conversation]]:
    """Fold one newly inserted message into the conversation list.

    Returns ``None`` when the counterpart has no known profile; the caller
    should refetch in that case.
    """
    other_id = message.counterpart(user_id)
    existing = next((c for c in conversations if c.id == other_id), None)

    if existing is None:
        profile = profiles.get(other_id)
        if profile is None:
            return None
        existing = Conversation(
            id=other_id,
            other_user_id=other_id,
            other_user_name=profile.display_name,
            other_user_avatar=profile.avatar_url or "",
            last_message_time=message.created_at,
        )
        is_latest = True
    else:
        is_latest = message.created_at >= existing.last_message_time

    updates: dict[str, Any] = {}
    if is_latest:
        updates["last_message"] = preview_text(message.content)
        updates["last_message_time"] = message.created_at
    if message.receiver_id == user_id and not message.is_read:
        updates["unread_count"] = existing.unread_count + 1

    updated = existing.model_copy(update=updates)
    others = [c for c in conversations if c.id != other_id]
    return sort_conversations(others + [updated])


def normalize_change(payload: dict) -> tuple[Optional[str], Optional[dict]]:
    """Event type and new row of a realtime ``postgres_changes`` payload."""
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    event_type = data.get("eventType") or data.get("type")
    record = data.get("new") or data.get("record")
    return (event_type.upper() if event_type else None), (record or None)


class ConversationFeed:
    """Conversation list of one user, kept current from the messages change feed."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.conversations: list[Conversation] = []
        self.profiles: dict[str, Profile] = {}
        self.channel = None
        self._client: Optional[AsyncClient] = None
        self._tasks: set[asyncio.Task] = set()

    async def refresh(self) -> list[Conversation]:
        """Rebuild the conversation list from the store."""
        with log_timing("refresh_conversations", logger=logger, user_id=mask_user_id(self.user_id)):
            messages = await get_messages_for_user(self.user_id)
            counterpart_ids = list(dict.fromkeys(m.counterpart(self.user_id) for m in messages))
            self.profiles = await get_profiles(counterpart_ids)
            self.conversations = build_conversations(messages, self.user_id, self.profiles)
        return self.conversations

    async def handle_change(self, payload: dict) -> list[Conversation]:
        """Reconcile one change-feed event; anything not handled incrementally refetches."""
        event_type, record = normalize_change(payload)

        if (
            record
            and {"sender_id", "receiver_id"} <= record.keys()
            and self.user_id not in (record["sender_id"], record["receiver_id"])
        ):
            return self.conversations

        if event_type == "INSERT" and record:
            try:
                message = Message(**record)
            except ValidationError as e:
                logger.warning("Malformed message in change feed", error=str(e))
            else:
                updated = apply_message_event(self.conversations, message, self.user_id, self.profiles)
                if updated is not None:
                    self.conversations = updated
                    logger.debug(
                        "Conversation list reconciled",
                        user_id=mask_user_id(self.user_id),
                        message_preview=sanitize_message_text(message.content, max_length=50)
                    )
                    return self.conversations

        return await self.refresh()

    async def start(self) -> list[Conversation]:
        """Load the conversation list, then follow the change feed on a fresh async client."""
        conversations = await self.refresh()
        await self.subscribe(await get_async_supabase_client())
        return conversations

    async def subscribe(self, client: AsyncClient) -> None:
        """Listen to every change on the messages table; rows are filtered locally."""
        channel = client.channel(f"messages-{self.user_id}")
        channel.on_postgres_changes("*", schema="public", table="messages", callback=self._on_change)
        await channel.subscribe()
        self._client = client
        self.channel = channel
        logger.info("Subscribed to message changes", user_id=mask_user_id(self.user_id))

    async def unsubscribe(self) -> None:
        if self.channel is not None and self._client is not None:
            await self._client.remove_channel(self.channel)
            logger.info("Removed message channel", user_id=mask_user_id(self.user_id))
        self.channel = None

    def _on_change(self, payload: dict) -> None:
        task = asyncio.create_task(self._handle_change_logged(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_change_logged(self, payload: dict) -> None:
        try:
            await self.handle_change(payload)
        except Exception as e:
            logger.error(
                "Failed to reconcile message change",
                user_id=mask_user_id(self.user_id),
                error=str(e),
                exc_info=True
            )


async def send_message(sender_id: str, receiver_id: str, content: str) -> Message:
    """Send a text message from one user to another."""
    content = (content or "").strip()
    if not content:
        raise MessagingError("Message content must not be empty")
    if sender_id == receiver_id:
        raise MessagingError("Cannot send a message to yourself")

    message = await insert_message(sender_id, receiver_id, content)
    logger.info(
        "Message sent",
        sender_id=mask_user_id(sender_id),
        receiver_id=mask_user_id(receiver_id),
        message_preview=sanitize_message_text(content, max_length=50)
    )
    return message


@timed("open_thread", logger=logger)
async def open_thread(user_id: str, other_user_id: str) -> list[Message]:
    """Messages between two users, oldest first; the counterpart's messages become read."""
    messages = await get_thread(user_id, other_user_id)
    if any(m.sender_id == other_user_id and not m.is_read for m in messages):
        await mark_messages_read(user_id, other_user_id)
    return messages


async def acknowledge_message(user_id: str, message: Message) -> None:
    """Mark a message arriving in an open thread as read when it is addressed to the user."""
    if message.receiver_id == user_id and not message.is_read:
        await mark_message_read(message.id)
