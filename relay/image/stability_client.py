"""Stability AI text-to-image client.

Processing flow:
    1. Resolve the provider endpoint from `relay.config.IMAGE_PROVIDERS`.
    2. Submit a JSON generation request with the configured sampler settings.
    3. Decode the returned Base64 artifacts into `GeneratedImage` entries.

Generation defaults:
    Sampler `K_LMS`, `cfg_scale=20`, `steps=52`, 512x512, one sample.

Artifact filtering:
    - Artifacts reported with `finishReason == "ERROR"` are dropped.
    - `CONTENT_FILTERED` artifacts are kept (the provider returns a blurred
      image) and logged.

Error handling strategy:
    - Missing API key -> `RuntimeError`.
    - Non-200 HTTP response -> `RuntimeError` with status and body.
    - Transport failures propagate as `requests` exceptions.

Performance characteristics:
    Synchronous HTTP; callers on the event loop run it via `asyncio.to_thread`.
"""

import base64
import logging

import requests

from relay.config import IMAGE_PROVIDERS, STABILITY_PROVIDER
from relay.image.results import GeneratedImage, GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_SAMPLER = "K_LMS"
DEFAULT_CFG_SCALE = 20
DEFAULT_STEPS = 52
REQUEST_TIMEOUT_SECONDS = 180


def send_stability_request(
    prompt: str,
    api_key: str,
    width: int = 512,
    height: int = 512,
    steps: int = DEFAULT_STEPS,
    cfg_scale: float = DEFAULT_CFG_SCALE,
    sampler: str = DEFAULT_SAMPLER,
    samples: int = 1,
) -> GenerationResult:
    """Generate images for `prompt` with Stability AI.

    Args:
        prompt: Text prompt forwarded unchanged.
        api_key: Stability AI API key.
        width: Output width in pixels.
        height: Output height in pixels.
        steps: Diffusion steps.
        cfg_scale: Prompt adherence strength.
        sampler: Sampler name understood by the REST API.
        samples: Number of images requested.

    Returns:
        `GenerationResult` holding inline image bytes; may be empty.

    Error handling:
        - Empty API key -> `RuntimeError`
        - Non-200 HTTP response -> `RuntimeError`
    """
    if not api_key:
        raise RuntimeError("STABILITY_KEY is not set")

    provider_config = IMAGE_PROVIDERS[STABILITY_PROVIDER]
    url = provider_config["url"].format(engine=provider_config["engine"])

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    payload = {
        "text_prompts": [{"text": prompt}],
        "cfg_scale": cfg_scale,
        "sampler": sampler,
        "steps": steps,
        "width": width,
        "height": height,
        "samples": samples,
    }

    response = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)

    if response.status_code != 200:
        raise RuntimeError(
            f"Stability request failed with status {response.status_code}: {response.text}"
        )

    images = []
    for artifact in response.json().get("artifacts") or []:
        finish_reason = artifact.get("finishReason")
        encoded = artifact.get("base64")
        if finish_reason == "ERROR" or not encoded:
            logger.warning("Dropping Stability artifact seed=%s finishReason=%s",
                           artifact.get("seed"), finish_reason)
            continue
        if finish_reason == "CONTENT_FILTERED":
            logger.info("Stability artifact seed=%s was content filtered", artifact.get("seed"))

        images.append(
            GeneratedImage(
                data=base64.b64decode(encoded),
                mime_type="image/png",
                seed=artifact.get("seed"),
                finish_reason=finish_reason,
            )
        )

    logger.info("Stability returned %d usable image(s)", len(images))
    return GenerationResult(provider=STABILITY_PROVIDER, images=images)
