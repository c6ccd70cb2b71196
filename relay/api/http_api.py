"""
HTTP API adapter for the Telegram image relay.

Endpoint responsibilities:
- `POST /tg`: authenticate the Telegram webhook delivery, acknowledge it, and
  schedule relay processing after the response is sent.
- `GET /{path}`: placeholder page; the relay has no GUI.

Webhook request lifecycle (`POST /tg`):
1. Compare `X-Telegram-Bot-Api-Secret-Token` with the configured secret.
2. Parse the JSON body into `TelegramUpdate`.
3. Respond `200 {}` immediately.
4. Run `relay.core.pipeline.handle_update` as a background task.

Input validation behavior:
- Wrong or missing secret header -> HTTP 401 `{}`.
- Malformed JSON or schema mismatch -> logged, HTTP 200 `{}` (acknowledged
  so Telegram does not redeliver an update the relay can never process).

Error handling strategy:
- Processing failures happen after the response and are logged inside the
  pipeline; they never surface as HTTP errors.

Side effects:
- Logs incoming bodies at DEBUG level only.
"""

import hmac
import json
import logging

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from relay.config import get_settings
from relay.core.pipeline import handle_update
from relay.telegram.models import TelegramUpdate

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"
NO_GUI_TEXT = "No GUI available :("

app = FastAPI()


def is_authorized(header_value: str | None, expected_secret: str) -> bool:
    """Constant-time secret comparison; an unset secret disables the check."""
    if not expected_secret:
        return True
    if header_value is None:
        return False
    return hmac.compare_digest(header_value.encode(), expected_secret.encode())


# ============================================================
# Telegram Webhook
# ============================================================

@app.post("/tg")
async def telegram_webhook(request: Request, background_tasks: BackgroundTasks):
    settings = get_settings()

    if not is_authorized(request.headers.get(SECRET_HEADER), settings.telegram_secret_key):
        logger.warning("Rejected webhook call without a valid secret token")
        return JSONResponse(status_code=401, content={})

    raw_body = await request.body()
    logger.debug("Webhook body: %s", raw_body.decode(errors="replace"))

    try:
        update = TelegramUpdate.model_validate(json.loads(raw_body))
    except (ValueError, ValidationError):
        logger.warning("Ignoring malformed webhook payload", exc_info=True)
        return JSONResponse(status_code=200, content={})

    background_tasks.add_task(handle_update, update, settings)
    return JSONResponse(status_code=200, content={})


# ============================================================
# Catch-all
# ============================================================

@app.get("/{path:path}")
def no_gui(path: str):
    return PlainTextResponse(NO_GUI_TEXT)
