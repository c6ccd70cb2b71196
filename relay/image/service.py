"""Image service dispatcher used by the relay pipeline.

Role in pipeline:
    - Receives a prompt plus the provider selected by configuration.
    - Selects the provider client (`stability` vs `deepai`).
    - Returns the normalized `GenerationResult` unchanged to the caller.

Error handling strategy:
    - Unknown provider -> `ValueError`.
    - Exceptions from provider clients are intentionally propagated.

Performance characteristics:
    Thin dispatch layer; blocking like the provider clients it calls.
"""

from relay.config import DEEPAI_PROVIDER, STABILITY_PROVIDER, RelaySettings
from relay.image.deepai_client import send_deepai_request
from relay.image.results import GenerationResult
from relay.image.stability_client import send_stability_request


def generate_image(prompt: str, settings: RelaySettings, provider: str | None = None) -> GenerationResult:
    """Generate image(s) for `prompt` via the requested provider.

    Args:
        prompt: Text prompt for generation.
        settings: Resolved settings carrying provider API keys.
        provider: Provider name; defaults to `settings.image_provider`.

    Returns:
        Provider result normalized to `GenerationResult`.
    """
    provider = provider or settings.image_provider

    if provider == DEEPAI_PROVIDER:
        return send_deepai_request(prompt, settings.deepai_key)

    if provider == STABILITY_PROVIDER:
        return send_stability_request(prompt, settings.stability_key)

    raise ValueError(f"Unknown image provider: {provider}")
