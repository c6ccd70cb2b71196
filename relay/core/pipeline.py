"""Relay pipeline: one webhook message in, generated image(s) out.

Architectural role:
    Sits between the HTTP adapter (`relay.api.http_api`) and the lower-level
    clients (`relay.image`, `relay.telegram`). Turns one Telegram update into a
    provider call and the matching chat replies.

Control-flow model:
    1. Drop updates without a message, without text, or without the
       configured prompt prefix.
    2. Normalize the prompt (prefix removed, whitespace flattened, trimmed).
    3. Dispatch to the preferred provider (`prefer_deepai`).
    4. Keep the chat's `upload_photo` indicator alive with a heartbeat while
       the provider call runs.
    5. Reply with the image(s), the sliced tiles, or a "no images" notice.

Error handling strategy:
    Log and continue. Every Telegram call is individually guarded, provider
    failures are logged with `logger.exception`, and `handle_update` never
    raises. The heartbeat is cancelled on every exit path.

Side effects:
    - Outbound Telegram Bot API calls.
    - Outbound provider HTTP calls (in worker threads via `asyncio.to_thread`).
    - Per-request tile directories under `deepai_output_dir`, removed after use.
"""

import asyncio
import logging
import os
import re
import tempfile
from functools import partial
from typing import Callable

from relay.config import DEEPAI_PROVIDER, NO_IMAGES_TEXT, STABILITY_PROVIDER, RelaySettings
from relay.heartbeat import heartbeat_during, start_heartbeat
from relay.image.results import GeneratedImage
from relay.image.service import generate_image
from relay.image.slicer import download_image, slice_to_directory
from relay.telegram.client import UPLOAD_PHOTO_ACTION, TelegramClient
from relay.telegram.models import TelegramUpdate

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")


def extract_prompt(text: str | None, message_token: str) -> str | None:
    """Return the prompt carried by `text`, or None when it carries none.

    Every whitespace character after the prefix becomes a plain space and the
    result is trimmed.

    Edge cases:
        - Missing text or a missing prefix -> None.
        - Prefix followed only by whitespace -> None.
        - Empty `message_token` accepts every text message.
    """
    if text is None or not text.startswith(message_token):
        return None
    prompt = _WHITESPACE.sub(" ", text[len(message_token):]).strip()
    return prompt or None


async def handle_update(
    update: TelegramUpdate,
    settings: RelaySettings,
    telegram: TelegramClient | None = None,
) -> None:
    """Process one webhook update end to end. Never raises."""
    message = update.message
    if message is None:
        logger.info("Update %s carries no message, ignoring", update.update_id)
        return

    prompt = extract_prompt(message.text, settings.message_token)
    if prompt is None:
        logger.info(
            "Message %s in chat %s has no prompt (missing text, token, or empty prompt)",
            message.message_id,
            message.chat.id,
        )
        return

    logger.info("Prompt from chat %s: %r", message.chat.id, prompt)

    try:
        telegram = telegram or TelegramClient(settings.telegram_api_token)
        if settings.prefer_deepai:
            logger.info("Using DeepAI")
            await process_with_deepai(telegram, message.chat.id, message.message_id, prompt, settings)
        else:
            logger.info("Using Stability AI")
            await process_with_stability(telegram, message.chat.id, message.message_id, prompt, settings)
    except Exception:
        logger.exception("Relay processing failed for chat %s", message.chat.id)


# ============================================================
# Provider flows
# ============================================================

async def process_with_stability(
    telegram: TelegramClient,
    chat_id: int,
    message_id: int,
    prompt: str,
    settings: RelaySettings,
) -> None:
    """Generate with Stability AI and upload every returned image in order.

    The status heartbeat only covers generation; it is cancelled before the
    first upload.
    """
    async with heartbeat_during(
        partial(telegram.send_chat_action, chat_id, UPLOAD_PHOTO_ACTION),
        settings.heartbeat,
        name=f"upload_photo[{chat_id}]",
    ):
        try:
            result = await asyncio.to_thread(generate_image, prompt, settings, STABILITY_PROVIDER)
        except Exception:
            logger.exception("Stability generation failed for chat %s", chat_id)
            return

    if result.is_empty:
        await _send_no_images(telegram, chat_id, message_id)
        return

    for index, image in enumerate(result.images):
        logger.info("Sending Stability image %d seed=%s", index, image.seed)
        await _send_image(telegram, chat_id, message_id, image, filename=f"image-{index}.png")


async def process_with_deepai(
    telegram: TelegramClient,
    chat_id: int,
    message_id: int,
    prompt: str,
    settings: RelaySettings,
) -> None:
    """Generate with DeepAI; optionally slice into tiles, else send the original.

    Falls back to the original image when splitting is enabled but no tile
    could be delivered.
    """
    cancel_status_updates = start_status_updates(telegram, chat_id, settings)
    try:
        try:
            result = await asyncio.to_thread(generate_image, prompt, settings, DEEPAI_PROVIDER)
        except Exception:
            logger.exception("DeepAI generation failed for chat %s", chat_id)
            return

        if result.is_empty:
            cancel_status_updates()
            await _send_no_images(telegram, chat_id, message_id)
            return

        image = result.images[0]

        if settings.deepai_split_images:
            logger.info("Splitting image")
            if await send_tiles(telegram, chat_id, message_id, image, settings, cancel_status_updates):
                return
            logger.info("No tile delivered, sending original photo")

        cancel_status_updates()
        await _send_image(telegram, chat_id, message_id, image)
    finally:
        cancel_status_updates()


async def send_tiles(
    telegram: TelegramClient,
    chat_id: int,
    message_id: int,
    image: GeneratedImage,
    settings: RelaySettings,
    on_first_delivery: Callable[[], None],
) -> bool:
    """Slice `image` into tiles and upload them in row-major order.

    Args:
        on_first_delivery: Called after each successful upload (must be
            idempotent); used to stop the status heartbeat.

    Returns:
        True when at least one tile was delivered.
    """
    delivered = 0
    try:
        os.makedirs(settings.deepai_output_dir, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=settings.deepai_output_dir, prefix="tiles-") as output_dir:
            await _send_chat_action(telegram, chat_id)

            if image.data is not None:
                image_bytes = image.data
            else:
                image_bytes = await asyncio.to_thread(download_image, image.url)

            paths = await asyncio.to_thread(
                slice_to_directory, image_bytes, output_dir, settings.tile_size
            )

            for path in paths:
                tile_bytes = await asyncio.to_thread(_read_tile, path)
                try:
                    await telegram.send_photo(
                        chat_id,
                        tile_bytes,
                        reply_to_message_id=message_id,
                        filename=os.path.basename(path),
                    )
                except Exception:
                    logger.exception("Failed to send tile %s to chat %s", path, chat_id)
                    continue
                delivered += 1
                on_first_delivery()
    except Exception:
        logger.exception("Slicing image for chat %s failed", chat_id)

    logger.info("Delivered %d tile(s) to chat %s", delivered, chat_id)
    return delivered > 0


def _read_tile(path: str) -> bytes:
    with open(path, "rb") as tile_file:
        return tile_file.read()


# ============================================================
# Telegram helpers (log and continue)
# ============================================================

def start_status_updates(
    telegram: TelegramClient,
    chat_id: int,
    settings: RelaySettings,
) -> Callable[[], None]:
    """Keep the chat's `upload_photo` indicator alive; returns `cancel`."""
    return start_heartbeat(
        partial(telegram.send_chat_action, chat_id, UPLOAD_PHOTO_ACTION),
        settings.heartbeat,
        name=f"upload_photo[{chat_id}]",
    )


async def _send_chat_action(telegram: TelegramClient, chat_id: int) -> None:
    try:
        await telegram.send_chat_action(chat_id, UPLOAD_PHOTO_ACTION)
    except Exception:
        logger.exception("Failed to set upload_photo status for chat %s", chat_id)


async def _send_image(
    telegram: TelegramClient,
    chat_id: int,
    message_id: int,
    image: GeneratedImage,
    filename: str = "image.png",
) -> None:
    photo = image.url if image.url is not None else image.data
    try:
        await telegram.send_photo(
            chat_id,
            photo,
            reply_to_message_id=message_id,
            filename=filename,
            mime_type=image.mime_type,
        )
    except Exception:
        logger.exception("Failed to send photo to chat %s", chat_id)


async def _send_no_images(telegram: TelegramClient, chat_id: int, message_id: int) -> None:
    try:
        await telegram.send_message(chat_id, NO_IMAGES_TEXT, reply_to_message_id=message_id)
    except Exception:
        logger.exception("Failed to send no-images notice to chat %s", chat_id)
