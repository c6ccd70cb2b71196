"""Telegram image relay.

Architectural role:
    Receives Telegram webhook updates, forwards prompt text to an external
    image-generation provider, and relays the generated image(s) back to the
    originating chat.

Package layout:
    - `config`: environment-driven runtime settings and provider endpoints.
    - `heartbeat`: cancellable periodic status notifier.
    - `telegram`: Bot API client and webhook payload models.
    - `image`: provider clients, provider dispatch, and tile slicing.
    - `core`: relay pipeline connecting updates, providers, and replies.
    - `api`: HTTP adapter and command-line entrypoint.
"""
