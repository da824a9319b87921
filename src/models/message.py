"""Messaging models - chat messages, profiles and conversation summaries."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Message(BaseModel):
    """Row of the messages table."""
    id: str = Field(..., description="Message ID")
    sender_id: str = Field(..., description="Sender profile ID")
    receiver_id: str = Field(..., description="Receiver profile ID")
    content: str = Field(default="", description="Message body")
    message_type: str = Field(default="text", description="text or system")
    is_read: bool = Field(default=False)
    created_at: datetime = Field(..., description="Insert time")

    def counterpart(self, user_id: str) -> str:
        """The other participant from ``user_id``'s point of view."""
        return self.receiver_id if self.sender_id == user_id else self.sender_id

    def involves(self, user_id: str) -> bool:
        return user_id in (self.sender_id, self.receiver_id)


class Profile(BaseModel):
    """Public profile of a landlord or rentee."""
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email or "Unknown"


class Conversation(BaseModel):
    """One row of a user's conversation list, keyed by the other participant."""
    id: str = Field(..., description="Counterpart profile ID")
    other_user_id: str
    other_user_name: str
    other_user_avatar: str = ""
    last_message: str = ""
    last_message_time: datetime
    unread_count: int = Field(default=0, ge=0)
