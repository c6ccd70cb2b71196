"""Webhook payload schemas.

Only the fields the relay reads are declared; every other field Telegram sends
is ignored so schema additions on the platform side never break parsing.
"""

from pydantic import BaseModel, ConfigDict


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int


class TelegramMessage(BaseModel):
    """Incoming chat message. `text` is absent for stickers, photos, etc."""

    model_config = ConfigDict(extra="ignore")

    message_id: int
    chat: TelegramChat
    text: str | None = None


class TelegramUpdate(BaseModel):
    """One webhook delivery. `message` is absent for edits, callbacks, etc."""

    model_config = ConfigDict(extra="ignore")

    update_id: int | None = None
    message: TelegramMessage | None = None
