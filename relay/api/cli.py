"""
Command-line entrypoint for the relay (`python -m relay`).

Subcommands:
- `serve`: configure logging and run the FastAPI app under uvicorn.
- `set-webhook URL`: register `URL` as the bot's webhook, using
  `TELEGRAM_SECRET_KEY` as the secret token Telegram echoes back.

Error handling strategy:
- Argument errors are reported by `argparse`.
- Webhook registration failures are printed and exit with status 1.
"""

import argparse
import asyncio
import logging
import sys

from relay.config import get_settings
from relay.telegram.client import TelegramClient

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


async def _register_webhook(url: str) -> bool:
    settings = get_settings()
    client = TelegramClient(settings.telegram_api_token)
    return await client.set_webhook(url, secret_token=settings.telegram_secret_key or None)


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch the selected subcommand."""
    settings = get_settings()

    parser = argparse.ArgumentParser(prog="relay", description="Telegram image relay")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the webhook HTTP server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=settings.port)

    webhook_parser = subparsers.add_parser("set-webhook", help="Register the Telegram webhook")
    webhook_parser.add_argument("url", help="Public HTTPS URL of the /tg endpoint")

    args = parser.parse_args(argv)
    configure_logging(settings.log_level)

    if args.command == "serve":
        import uvicorn

        logging.getLogger(__name__).info("Listening to port: %d", args.port)
        uvicorn.run("relay.api.http_api:app", host=args.host, port=args.port)
        return

    try:
        ok = asyncio.run(_register_webhook(args.url))
    except Exception as exc:
        print(f"Webhook registration failed: {exc}")
        sys.exit(1)

    print("Webhook registered." if ok else "Telegram did not confirm the webhook.")
    if not ok:
        sys.exit(1)
