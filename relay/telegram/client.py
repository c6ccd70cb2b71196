"""Async Telegram Bot API client.

Architectural role:
    Thin transport used by `relay.core.pipeline` to reply to chats and by the
    heartbeat to emit `upload_photo` chat actions.

Request model:
    - JSON bodies for text replies, chat actions, webhook registration, and
      photos referenced by URL.
    - Multipart uploads for photos passed as raw bytes.

Retry behavior:
    None. Each call is attempted once; callers decide whether a failure matters.

Error handling strategy:
    - Non-200 responses and `ok: false` bodies raise `TelegramApiError`.
    - Transport failures propagate as `httpx.RequestError`.

Security considerations:
    The bot token is part of every request URL and is never logged.
"""

import logging
from typing import Any

import httpx

from relay.config import TELEGRAM_API_URL

logger = logging.getLogger(__name__)

UPLOAD_PHOTO_ACTION = "upload_photo"
DEFAULT_TIMEOUT_SECONDS = 30.0


class TelegramApiError(RuntimeError):
    """Raised when the Bot API rejects a call."""

    def __init__(self, method: str, status_code: int, description: str) -> None:
        super().__init__(f"Telegram {method} failed with status {status_code}: {description}")
        self.method = method
        self.status_code = status_code
        self.description = description


class TelegramClient:
    """Bot API client bound to one bot token.

    Args:
        token: Bot token from BotFather.
        timeout_seconds: Per-request timeout.
        transport: Optional `httpx` transport override (used by tests).
        base_url: Bot API root, without the `/bot<token>` suffix.
    """

    def __init__(
        self,
        token: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = TELEGRAM_API_URL,
    ) -> None:
        token = (token or "").strip()
        if not token:
            raise ValueError("Telegram bot token must be a non-empty string")
        self._bot_url = f"{base_url.rstrip('/')}/bot{token}"
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        reply_to_message_id: int | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_to_message_id is not None:
            payload["reply_to_message_id"] = reply_to_message_id
        return await self._call("sendMessage", json_body=payload)

    async def send_photo(
        self,
        chat_id: int | str,
        photo: str | bytes,
        reply_to_message_id: int | None = None,
        filename: str = "image.png",
        mime_type: str = "image/png",
    ) -> dict[str, Any]:
        """Send a photo by URL (`str`) or upload it (`bytes`)."""
        if isinstance(photo, str):
            payload: dict[str, Any] = {"chat_id": chat_id, "photo": photo}
            if reply_to_message_id is not None:
                payload["reply_to_message_id"] = reply_to_message_id
            return await self._call("sendPhoto", json_body=payload)

        form = {"chat_id": str(chat_id)}
        if reply_to_message_id is not None:
            form["reply_to_message_id"] = str(reply_to_message_id)
        files = {"photo": (filename, photo, mime_type)}
        return await self._call("sendPhoto", form=form, files=files)

    async def send_chat_action(
        self,
        chat_id: int | str,
        action: str = UPLOAD_PHOTO_ACTION,
    ) -> bool:
        result = await self._call("sendChatAction", json_body={"chat_id": chat_id, "action": action})
        return bool(result)

    async def set_webhook(self, url: str, secret_token: str | None = None) -> bool:
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        result = await self._call("setWebhook", json_body=payload)
        return bool(result)

    async def _call(
        self,
        method: str,
        *,
        json_body: dict[str, Any] | None = None,
        form: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        """POST one Bot API method and return its `result` field.

        Raises:
            TelegramApiError: On non-200 status or `ok: false`.
            httpx.RequestError: On transport failures.
        """
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.post(
                f"{self._bot_url}/{method}",
                json=json_body,
                data=form,
                files=files,
            )

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code != 200 or not body.get("ok", False):
            description = body.get("description") or response.text
            raise TelegramApiError(method, response.status_code, description)

        logger.debug("Telegram %s succeeded", method)
        return body.get("result")
