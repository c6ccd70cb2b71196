"""DeepAI text-to-image client.

Processing flow:
    1. Submit the prompt as form data to the `text2img` endpoint.
    2. Read `output_url` from the JSON response.
    3. Wrap the URL in a single-image `GenerationResult`.

Base64 and temporary files:
    - No image bytes are downloaded here; the image stays hosted by DeepAI.

Error handling strategy:
    - Missing API key -> `RuntimeError`.
    - Non-200 HTTP response -> `RuntimeError` with status and body.
    - A missing or empty `output_url` is not an error; the result is empty.
"""

import logging

import requests

from relay.config import DEEPAI_PROVIDER, IMAGE_PROVIDERS
from relay.image.results import GeneratedImage, GenerationResult

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 180


def send_deepai_request(prompt: str, api_key: str) -> GenerationResult:
    """Generate one hosted image for `prompt` with DeepAI.

    Args:
        prompt: Text prompt forwarded unchanged.
        api_key: DeepAI API key.

    Returns:
        `GenerationResult` with zero or one URL image.
    """
    if not api_key:
        raise RuntimeError("DEEP_AI_KEY is not set")

    url = IMAGE_PROVIDERS[DEEPAI_PROVIDER]["url"]
    response = requests.post(
        url,
        data={"text": prompt},
        headers={"api-key": api_key},
        timeout=REQUEST_TIMEOUT_SECONDS,
    )

    if response.status_code != 200:
        raise RuntimeError(
            f"DeepAI request failed with status {response.status_code}: {response.text}"
        )

    data = response.json() or {}
    logger.info("DeepAI response id=%s output_url=%s", data.get("id"), data.get("output_url"))

    output_url = data.get("output_url")
    if not output_url:
        return GenerationResult(provider=DEEPAI_PROVIDER)

    return GenerationResult(provider=DEEPAI_PROVIDER, images=[GeneratedImage(url=output_url)])
