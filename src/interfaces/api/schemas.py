"""Pydantic models for FastAPI request/response validation.

Wire names are camelCase to match the bot runtime SDK; Python attribute
names stay snake_case through field aliases.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.relay import RelayEvent


class CamelModel(BaseModel):
    """Base model accepting both camelCase and snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RelayEventIn(CamelModel):
    """Request body for POST /v1/relay/events.

    Unknown fields sent by the SDK (``type``, ``id``, ``timestamp``, ...)
    are ignored.

    Attributes:
        content: Message text, mentions included.
        channel_id: Channel the message was posted in.
        author_id: User who wrote the message.
        bot_id: Relay bot id; a key bound to a bot overrides it.
        bot_client_id: The bot's own platform user id.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    content: str = Field("", description="Message text")
    channel_id: str = Field(..., description="Channel the message was posted in")
    guild_id: str | None = Field(None, description="Server the channel belongs to")
    author_id: str | None = Field(None, description="Message author")
    bot_id: str | None = Field(None, description="Relay bot id")
    bot_client_id: str | None = Field(None, description="Bot's own platform user id")
    is_reply_to_bot: bool = Field(False, description="Message replies to the bot")
    referenced_message_content: str | None = Field(
        None, description="Text of the bot message being replied to"
    )

    def to_event(self) -> RelayEvent:
        return RelayEvent(
            content=self.content,
            channel_id=self.channel_id,
            guild_id=self.guild_id,
            author_id=self.author_id,
            bot_id=self.bot_id,
            bot_client_id=self.bot_client_id,
            is_reply_to_bot=self.is_reply_to_bot,
            referenced_message_content=self.referenced_message_content,
        )


class DecisionResponse(BaseModel):
    """Response body for POST /v1/relay/events.

    Attributes:
        decision: Serialized Decision, or None when nothing should happen.
    """

    decision: dict[str, Any] | None = None


class RegisterRequest(CamelModel):
    """Request body for POST /v1/relay/register."""

    platform: str = Field("discord", description="Chat platform")
    name: str | None = Field(None, description="Bot display name")
    client_id: str | None = Field(None, description="Platform application id")
    bot_id: str | None = Field(None, description="Existing relay bot id")


class RegisterResponse(CamelModel):
    bot_id: str


class HeartbeatRequest(CamelModel):
    """Request body for POST /v1/relay/heartbeat and /v1/relay/sync-request."""

    bot_id: str | None = Field(None, description="Relay bot id")


class HeartbeatResponse(CamelModel):
    ok: bool = True
    sync_requested: bool = False
