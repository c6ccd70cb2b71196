"""Runtime configuration for the relay.

Architectural role:
    Centralizes environment-driven settings (Telegram credentials, provider
    keys, feature switches, heartbeat timing) and provider endpoint maps used by
    `relay.image`, `relay.telegram`, and `relay.api`.

Resolution model:
    - `.env` is loaded once at import time via `load_dotenv()`.
    - `load_settings()` reads the current process environment on every call.
    - `get_settings()` caches the first result for request handlers.

Flag semantics:
    Boolean switches are enabled only by the literal value `"1"`; anything else
    (including `"true"`) leaves them disabled.

Determinism:
    Deterministic for a fixed process environment and `.env` contents.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from relay.heartbeat import HeartbeatConfig

load_dotenv()

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

TELEGRAM_API_URL = "https://api.telegram.org"

# Image generation provider settings consumed by `relay.image` modules.
STABILITY_PROVIDER = "stability"
DEEPAI_PROVIDER = "deepai"

IMAGE_PROVIDERS = {

    STABILITY_PROVIDER: {
        "url": "https://api.stability.ai/v1/generation/{engine}/text-to-image",
        "engine": os.getenv("STABILITY_ENGINE", "stable-diffusion-v1-6"),
    },

    DEEPAI_PROVIDER: {
        "url": "https://api.deepai.org/api/text2img",
    },

}

NO_IMAGES_TEXT = "Unfortunately, no images were generated for your request."


def _flag(name: str, *aliases: str) -> bool:
    """Return True when env var `name` (or the first set alias) equals "1"."""
    for key in (name, *aliases):
        value = os.getenv(key)
        if value is not None:
            return value.strip() == "1"
    return False


@dataclass(frozen=True)
class RelaySettings:
    """Resolved relay settings.

    Attributes:
        message_token: Prefix a chat message must start with to become a prompt.
            Empty means every text message is treated as a prompt.
        telegram_api_token: Bot token used to build Bot API URLs.
        telegram_secret_key: Expected `X-Telegram-Bot-Api-Secret-Token` value.
        stability_key: Stability AI API key.
        deepai_key: DeepAI API key.
        prefer_deepai: Route prompts to DeepAI instead of Stability AI.
        deepai_split_images: Slice DeepAI output into tiles before sending.
        deepai_output_dir: Parent directory for per-request tile directories.
        tile_size: Tile edge length in pixels.
        heartbeat_interval_seconds: Delay between `upload_photo` status pings.
        heartbeat_max_ticks: Maximum number of scheduled status pings.
        port: HTTP listen port.
        log_level: Root logging level name.
    """

    message_token: str = ""
    telegram_api_token: str = ""
    telegram_secret_key: str = ""
    stability_key: str = ""
    deepai_key: str = ""
    prefer_deepai: bool = False
    deepai_split_images: bool = False
    deepai_output_dir: str = os.path.join(PROJECT_ROOT, ".deepai_out")
    tile_size: int = 512
    heartbeat_interval_seconds: float = 4.5
    heartbeat_max_ticks: int = 6
    port: int = 3001
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.tile_size <= 0:
            raise ValueError("TILE_SIZE must be > 0")
        # Builds and discards one config so bad heartbeat timing fails here.
        self.heartbeat

    @property
    def heartbeat(self) -> HeartbeatConfig:
        """Status heartbeat timing for one request."""
        return HeartbeatConfig(
            interval_seconds=self.heartbeat_interval_seconds,
            max_ticks=self.heartbeat_max_ticks,
        )

    @property
    def image_provider(self) -> str:
        """Provider name selected by `prefer_deepai`."""
        return DEEPAI_PROVIDER if self.prefer_deepai else STABILITY_PROVIDER


def load_settings() -> RelaySettings:
    """Build `RelaySettings` from the current process environment.

    Returns:
        Fresh settings instance.

    Edge cases:
        - `PREFFER_DEEPAI` is honored as a legacy spelling of `PREFER_DEEPAI`.
        - Malformed numeric values raise `ValueError` at startup, as do a
          non-positive `TILE_SIZE`, `HEARTBEAT_INTERVAL_SECONDS` or
          `HEARTBEAT_MAX_TICKS`.
    """
    return RelaySettings(
        message_token=os.getenv("MESSAGE_TOKEN", ""),
        telegram_api_token=os.getenv("TELEGRAM_API_TOKEN", "").strip(),
        telegram_secret_key=os.getenv("TELEGRAM_SECRET_KEY", ""),
        stability_key=os.getenv("STABILITY_KEY", "").strip(),
        deepai_key=os.getenv("DEEP_AI_KEY", "").strip(),
        prefer_deepai=_flag("PREFER_DEEPAI", "PREFFER_DEEPAI"),
        deepai_split_images=_flag("DEEPAI_SPLIT_IMAGES"),
        deepai_output_dir=os.getenv(
            "DEEPAI_OUTPUT_DIR", os.path.join(PROJECT_ROOT, ".deepai_out")
        ),
        tile_size=int(os.getenv("TILE_SIZE", "512")),
        heartbeat_interval_seconds=float(os.getenv("HEARTBEAT_INTERVAL_SECONDS", "4.5")),
        heartbeat_max_ticks=int(os.getenv("HEARTBEAT_MAX_TICKS", "6")),
        port=int(os.getenv("PORT", "3001")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """Return process-wide cached settings."""
    return load_settings()
